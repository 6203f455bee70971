"""Session commands: log-session, check-in, show-history."""

import json
import uuid
from datetime import datetime
from typing import Annotated, Optional

import typer

from ...core.models import PerformedExercise, WorkoutSession
from ...io.serializers import (
    ValidationError,
    parse_sets_string,
    recovery_analysis_to_dict,
    recovery_metric_to_dict,
    validate_date,
    validate_time,
    workout_session_to_dict,
)
from ...io.store import StoreError
from .. import views
from ..app import DEFAULT_USER, DataDirOption, JsonOption, UserOption, app, get_orchestrator


@app.command("log-session")
def log_session(
    exercises: Annotated[
        list[str],
        typer.Option("--exercise", "-e", help="Exercise name (repeatable, paired with --sets)"),
    ],
    sets: Annotated[
        list[str],
        typer.Option("--sets", "-s", help="Sets for the matching --exercise: WEIGHTxREPS@RPE,... e.g. 80x8@7,80x8@8"),
    ],
    date: Annotated[
        Optional[str],
        typer.Option("--date", "-d", help="Session date (YYYY-MM-DD, default: today)"),
    ] = None,
    start_time: Annotated[
        Optional[str],
        typer.Option("--start-time", "-t", help="Start time (HH:MM)"),
    ] = None,
    duration: Annotated[
        Optional[int],
        typer.Option("--duration", "-m", help="Duration in minutes"),
    ] = None,
    notes: Annotated[
        str,
        typer.Option("--notes", "-n", help="Session notes"),
    ] = "",
    data_dir: DataDirOption = None,
    user_id: UserOption = DEFAULT_USER,
    json_out: JsonOption = False,
) -> None:
    """
    Log a completed training session.

    Each --exercise is paired with the --sets given in the same position:

      adaptive-coach log-session --date 2026-02-18 --start-time 18:30 --duration 60 \\
        --exercise "press banca" --sets "80x8@7,80x8@8" \\
        --exercise sentadilla --sets "100x5@8,100x5@9"

    Habits, load progression and the recovery analysis for the session date
    are updated immediately.
    """
    if len(exercises) != len(sets):
        views.print_error("Each --exercise needs exactly one matching --sets")
        raise typer.Exit(1)

    try:
        session_date = validate_date(date) if date else datetime.now().strftime("%Y-%m-%d")
        if start_time:
            validate_time(start_time)
        performed = [
            PerformedExercise(name=name, sets=tuple(parse_sets_string(sets_str)))
            for name, sets_str in zip(exercises, sets)
        ]
        session = WorkoutSession(
            session_id=uuid.uuid4().hex[:12],
            user_id=user_id,
            date=session_date,
            start_time=start_time,
            duration_minutes=duration,
            exercises=tuple(performed),
            notes=notes,
        )
    except (ValidationError, ValueError) as e:
        views.print_error(f"Invalid session data: {e}")
        raise typer.Exit(1)

    coach = get_orchestrator(data_dir)
    try:
        coach.record_workout_session(session)
    except StoreError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(json.dumps(workout_session_to_dict(session), indent=2))
        return

    views.print_success(f"Logged session {session.session_id}")
    views.print_session_summary(session)
    plans = [p for p in coach.progression.get_progression_plans(user_id) if p.exercise_name in exercises]
    if plans:
        views.print_progression_plans(plans)


def _scale(value: float) -> float:
    if not 0 <= value <= 10:
        raise typer.BadParameter("must be between 0 and 10")
    return value


@app.command("check-in")
def check_in(
    energy: Annotated[
        float,
        typer.Option("--energy", help="Energy level 0-10", callback=_scale),
    ],
    soreness: Annotated[
        float,
        typer.Option("--soreness", help="Muscle soreness 0-10", callback=_scale),
    ],
    sleep: Annotated[
        float,
        typer.Option("--sleep", help="Sleep quality 0-10", callback=_scale),
    ],
    stress: Annotated[
        float,
        typer.Option("--stress", help="Stress level 0-10", callback=_scale),
    ],
    motivation: Annotated[
        float,
        typer.Option("--motivation", help="Motivation 0-10", callback=_scale),
    ],
    date: Annotated[
        Optional[str],
        typer.Option("--date", "-d", help="Check-in date (YYYY-MM-DD, default: today)"),
    ] = None,
    notes: Annotated[
        str,
        typer.Option("--notes", "-n", help="Free-form notes"),
    ] = "",
    data_dir: DataDirOption = None,
    user_id: UserOption = DEFAULT_USER,
    json_out: JsonOption = False,
) -> None:
    """
    Record today's recovery check-in and show the resulting analysis.
    """
    coach = get_orchestrator(data_dir)
    try:
        metric = coach.record_recovery_metrics(user_id, {
            "date": validate_date(date) if date else None,
            "energy_level": energy,
            "muscle_soreness": soreness,
            "sleep_quality": sleep,
            "stress_level": stress,
            "motivation": motivation,
            "notes": notes,
        })
        analysis = coach.recovery.analyze_recovery(user_id, metric.date)
    except (ValidationError, ValueError, StoreError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(json.dumps({
            "metric": recovery_metric_to_dict(metric),
            "analysis": recovery_analysis_to_dict(analysis),
        }, indent=2))
        return

    views.print_success(f"Check-in saved for {metric.date}")
    views.print_recovery_analysis(analysis)


@app.command("show-history")
def show_history(
    limit: Annotated[
        int,
        typer.Option("--limit", "-l", help="Number of sessions to show"),
    ] = 10,
    data_dir: DataDirOption = None,
    user_id: UserOption = DEFAULT_USER,
    json_out: JsonOption = False,
) -> None:
    """
    Show recently logged sessions, newest first.
    """
    coach = get_orchestrator(data_dir)
    try:
        sessions = coach.repository.get_workout_sessions(user_id)[:limit]
    except StoreError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(json.dumps([workout_session_to_dict(s) for s in sessions], indent=2))
        return

    if not sessions:
        views.console.print("[yellow]No sessions recorded yet.[/yellow]")
        return
    for session in sessions:
        views.print_session_summary(session)
