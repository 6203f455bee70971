"""
CLI view formatters using Rich for pretty console output.

Handles table formatting and display of recovery, progression, habit and
coach data.
"""

from rich.console import Console
from rich.table import Table

from ..core.models import (
    CoachResponse,
    HabitRecommendations,
    ProgressionHistoryEntry,
    ProgressionPlan,
    RecoveryAnalysis,
    ToneSelection,
    TrainingPatternPrediction,
    UserHabit,
    WorkoutSession,
)

console = Console()

WEEKDAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

FATIGUE_STYLES = {"low": "green", "moderate": "yellow", "high": "red", "extreme": "bold red"}
PRIORITY_STYLES = {"high": "bold red", "medium": "yellow", "low": "dim"}


def _score_style(score: int) -> str:
    if score >= 70:
        return "green"
    if score >= 50:
        return "yellow"
    return "red"


def print_recovery_analysis(analysis: RecoveryAnalysis) -> None:
    """
    Print a recovery analysis with its recommendations.

    Args:
        analysis: Analysis to display
    """
    fatigue_style = FATIGUE_STYLES[analysis.fatigue_level]
    console.print(f"[bold]Recovery for {analysis.date}[/bold]")
    console.print(
        f"  Score: [{_score_style(analysis.recovery_score)}]{analysis.recovery_score}/100[/]"
        f"   Fatigue: [{fatigue_style}]{analysis.fatigue_level}[/]"
        f"   Suggested intensity: [cyan]{analysis.suggested_workout_intensity}[/cyan]"
    )
    if analysis.predicted_fatigue_days:
        console.print(f"  Predicted fatigue days: {', '.join(analysis.predicted_fatigue_days)}")

    table = Table(title="Recommendations")
    table.add_column("Priority")
    table.add_column("Type", style="magenta")
    table.add_column("Title", style="bold")
    table.add_column("Duration", justify="right")
    table.add_column("Description")

    for r in analysis.recommendations:
        table.add_row(
            f"[{PRIORITY_STYLES[r.priority]}]{r.priority}[/]",
            r.type,
            r.title,
            r.duration or "-",
            r.description,
        )
    console.print(table)


def format_progression_table(plans: list[ProgressionPlan]) -> Table:
    """
    Create a Rich table of progression plans.

    Args:
        plans: Plans to display

    Returns:
        Rich Table object
    """
    table = Table(title="Load Progression")

    table.add_column("Exercise", style="cyan")
    table.add_column("Current(kg)", justify="right")
    table.add_column("Next(kg)", justify="right", style="bold")
    table.add_column("Phase", style="magenta")
    table.add_column("Adjustment")

    for plan in plans:
        adj = plan.adjustments[0] if plan.adjustments else None
        table.add_row(
            plan.exercise_name,
            f"{plan.current_weight:g}",
            f"{plan.recommended_weight:g}",
            plan.next_phase,
            f"{adj.adjustment_type} {adj.value:+g}% ({adj.reason})" if adj else "-",
        )

    return table


def print_progression_plans(plans: list[ProgressionPlan]) -> None:
    if not plans:
        console.print("[yellow]No progression data yet. Log sessions with RPE first.[/yellow]")
        return
    console.print(format_progression_table(plans))
    for plan in plans:
        for note in plan.notes:
            console.print(f"  [dim]{plan.exercise_name}: {note}[/dim]")


def print_progression_history(entries: list[ProgressionHistoryEntry]) -> None:
    if not entries:
        console.print("[yellow]No sets recorded in this period.[/yellow]")
        return

    table = Table(title=f"{entries[0].exercise_name} history")
    table.add_column("Date", style="cyan")
    table.add_column("Weight", justify="right")
    table.add_column("Reps", justify="right")
    table.add_column("RPE", justify="right")
    table.add_column("Volume", justify="right")
    table.add_column("%1RM", justify="right")
    for e in entries:
        table.add_row(
            e.date, f"{e.weight:g}", str(e.reps), f"{e.rpe:g}", f"{e.volume:g}", f"{e.intensity:.0%}"
        )
    console.print(table)


def print_habits(
    habit: UserHabit,
    prediction: TrainingPatternPrediction | None,
    recommendations: HabitRecommendations,
) -> None:
    """Print habit statistics, the next likely session and habit tips."""
    days = ", ".join(WEEKDAY_NAMES[d] for d in habit.preferred_training_days) or "-"
    console.print("[bold]Training habits[/bold]")
    console.print(f"  Sessions tracked: {habit.training_frequency}")
    console.print(f"  Preferred times: {', '.join(habit.preferred_training_times) or '-'}")
    console.print(f"  Preferred days: {days}")
    console.print(f"  Average duration: {habit.average_training_duration:.0f} min")

    if prediction is not None and prediction.next_likely_session is not None:
        console.print(
            f"  Next likely session: [cyan]{prediction.next_likely_session:%a %Y-%m-%d %H:%M}[/cyan]"
        )

    for title, items in (
        ("Reminders", recommendations.workout_reminders),
        ("Rest", recommendations.rest_recommendations),
        ("Nutrition", recommendations.nutrition_tips),
    ):
        if items:
            console.print(f"\n[bold]{title}[/bold]")
            for item in items:
                console.print(f"  • {item}")


def print_session_summary(session: WorkoutSession) -> None:
    total_sets = sum(len(ex.sets) for ex in session.exercises)
    names = ", ".join(ex.name for ex in session.exercises) or "no exercises"
    console.print(f"  {session.date}: {names} ({total_sets} sets)")


def print_coach_response(response: CoachResponse, tone: ToneSelection | None = None) -> None:
    """
    Print a coach answer followed by its suggested actions.

    Args:
        response: Coach response
        tone: Resolved tone, shown as a dim header when given
    """
    if tone is not None:
        console.print(f"[dim]{tone.persona} · {tone.plan_phase}[/dim]")
    console.print(response.response)
    if response.action_items:
        console.print()
        for item in response.action_items:
            console.print(f"  [cyan]→[/cyan] {item}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]{message}[/green]")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]Error: {message}[/red]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]Warning: {message}[/yellow]")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]{message}[/blue]")
