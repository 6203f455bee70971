"""Analysis commands: recovery, progression, habits."""

import json
from datetime import datetime
from typing import Annotated, Optional

import typer

from ...core.recovery import recovery_trend
from ...io.serializers import (
    ValidationError,
    progression_plan_to_dict,
    recovery_analysis_to_dict,
    user_habit_to_dict,
    validate_date,
)
from ...io.store import StoreError
from .. import views
from ..app import DEFAULT_USER, DataDirOption, JsonOption, UserOption, app, get_orchestrator


@app.command()
def recovery(
    date: Annotated[
        Optional[str],
        typer.Option("--date", "-d", help="Date to analyze (YYYY-MM-DD, default: today)"),
    ] = None,
    refresh: Annotated[
        bool,
        typer.Option("--refresh", "-r", help="Recompute instead of using the cached analysis"),
    ] = False,
    data_dir: DataDirOption = None,
    user_id: UserOption = DEFAULT_USER,
    json_out: JsonOption = False,
) -> None:
    """
    Show the recovery analysis for a date.
    """
    coach = get_orchestrator(data_dir)
    try:
        target = validate_date(date) if date else None
        if refresh:
            analysis = coach.recovery.refresh_recovery_analysis(
                user_id, target or datetime.now().strftime("%Y-%m-%d")
            )
        else:
            analysis = coach.recovery.analyze_recovery(user_id, target)
        trend = recovery_trend(coach.recovery.get_recent_recovery_analyses(user_id))
    except (ValidationError, StoreError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(json.dumps({**recovery_analysis_to_dict(analysis), "trend": trend}, indent=2))
        return

    views.print_recovery_analysis(analysis)
    views.print_info(f"7-day trend: {trend}")


@app.command()
def progression(
    exercise: Annotated[
        Optional[str],
        typer.Option("--exercise", "-e", help="Exercise to analyze (default: every logged exercise)"),
    ] = None,
    history_days: Annotated[
        Optional[int],
        typer.Option("--history", help="Also show per-set history for the last N days (needs --exercise)"),
    ] = None,
    data_dir: DataDirOption = None,
    user_id: UserOption = DEFAULT_USER,
    json_out: JsonOption = False,
) -> None:
    """
    Re-analyze load progression and show the plan per exercise.
    """
    if history_days is not None and exercise is None:
        views.print_error("--history requires --exercise")
        raise typer.Exit(1)

    coach = get_orchestrator(data_dir)
    try:
        if exercise is not None:
            names = [exercise]
        else:
            metrics = coach.repository.get_progression_metrics(user_id)
            names = list(dict.fromkeys(m.exercise_name for m in metrics))
        plans = [coach.progression.analyze_progression(user_id, name) for name in names]
        history = (
            coach.progression.get_progression_history(user_id, exercise, history_days)
            if history_days is not None and exercise is not None
            else []
        )
    except StoreError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(json.dumps({
            "plans": [progression_plan_to_dict(p) for p in plans],
            "history": [
                {
                    "date": h.date,
                    "weight": h.weight,
                    "reps": h.reps,
                    "rpe": h.rpe,
                    "rir": h.rir,
                    "volume": h.volume,
                    "intensity": round(h.intensity, 3),
                }
                for h in history
            ],
        }, indent=2))
        return

    views.print_progression_plans(plans)
    if history_days is not None:
        views.print_progression_history(history)


@app.command()
def habits(
    data_dir: DataDirOption = None,
    user_id: UserOption = DEFAULT_USER,
    json_out: JsonOption = False,
) -> None:
    """
    Show habit statistics, the next likely session and habit-based tips.
    """
    coach = get_orchestrator(data_dir)
    try:
        habit = coach.habits.get_user_habits(user_id)
        if habit is None:
            views.print_error(f"No habit data for {user_id}")
            views.print_info("Run 'init' or log a session first.")
            raise typer.Exit(1)
        prediction = coach.habits.predict_training_patterns(user_id)
        analysis = coach.recovery.analyze_recovery(user_id)
        recommendations = coach.habits.generate_recommendations(user_id, analysis)
    except StoreError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        next_session = prediction.next_likely_session if prediction else None
        print(json.dumps({
            "habits": user_habit_to_dict(habit),
            "next_likely_session": next_session.isoformat(timespec="minutes") if next_session else None,
            "workout_reminders": list(recommendations.workout_reminders),
            "rest_recommendations": list(recommendations.rest_recommendations),
            "nutrition_tips": list(recommendations.nutrition_tips),
        }, indent=2))
        return

    views.print_habits(habit, prediction, recommendations)
