"""Coach commands: ask, workout."""

import json
from pathlib import Path
from typing import Annotated, Optional

import typer
import yaml

from ...io.serializers import (
    ValidationError,
    dict_to_wearable_insight,
    dict_to_workout_plan,
    workout_plan_to_dict,
)
from ...io.store import StoreError
from .. import views
from ..app import DEFAULT_USER, DataDirOption, JsonOption, UserOption, app, get_orchestrator


def _load_document(path: Path) -> dict:
    """Read a YAML or JSON mapping from disk."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ValidationError(f"Cannot read {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError(f"{path} must contain a mapping")
    return data


@app.command()
def ask(
    text: Annotated[str, typer.Argument(help="What you want to ask the coach")],
    screen: Annotated[
        str,
        typer.Option("--screen", "-s", help="Screen the question is asked from (dashboard, workoutDetail, recovery, ...)"),
    ] = "dashboard",
    wearable: Annotated[
        Optional[Path],
        typer.Option("--wearable", help="YAML/JSON file with a wearable insight summary"),
    ] = None,
    data_dir: DataDirOption = None,
    user_id: UserOption = DEFAULT_USER,
    json_out: JsonOption = False,
) -> None:
    """
    Ask the coach a question.

    The answer uses everything stored for the user. Changes the coach makes
    to the active workout are saved.

      adaptive-coach ask "¿Qué ejercicio debo hacer hoy?"
      adaptive-coach ask "Quiero reducir la carga un 10%" --screen workoutDetail
    """
    coach = get_orchestrator(data_dir)
    try:
        insight = dict_to_wearable_insight(_load_document(wearable)) if wearable else None
        active = coach.repository.get_active_workout(user_id)
        context = coach.build_context(user_id, screen, active, insight)
        intent, tone = coach.classify(text, context)
        response = coach.respond(text, context, intent, tone)

        updates = response.context_updates
        if updates is not None:
            updated = coach.apply_context_updates(context, updates)
            coach.repository.save_active_workout(user_id, updated.active_workout)
    except (ValidationError, StoreError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(json.dumps({
            "intent": intent,
            "persona": tone.persona,
            "plan_phase": tone.plan_phase,
            "tone": {
                "intensity": tone.modifiers.intensity,
                "firmness": tone.modifiers.firmness,
                "enthusiasm": tone.modifiers.enthusiasm,
                "technicality": tone.modifiers.technicality,
            },
            "response": response.response,
            "action_items": list(response.action_items),
            "active_workout_changed": updates is not None,
        }, indent=2, ensure_ascii=False))
        return

    views.print_coach_response(response, tone)
    if updates is not None:
        views.print_info("Active workout updated.")


@app.command()
def workout(
    plan_file: Annotated[
        Optional[Path],
        typer.Option("--set", help="YAML/JSON file with the workout plan to make active"),
    ] = None,
    clear: Annotated[
        bool,
        typer.Option("--clear", help="Remove the active workout"),
    ] = False,
    data_dir: DataDirOption = None,
    user_id: UserOption = DEFAULT_USER,
    json_out: JsonOption = False,
) -> None:
    """
    Show, replace or clear the active workout.
    """
    if plan_file is not None and clear:
        views.print_error("Use either --set or --clear, not both")
        raise typer.Exit(1)

    coach = get_orchestrator(data_dir)
    try:
        if plan_file is not None:
            coach.repository.save_active_workout(user_id, dict_to_workout_plan(_load_document(plan_file)))
        elif clear:
            coach.repository.save_active_workout(user_id, None)
        plan = coach.repository.get_active_workout(user_id)
    except (ValidationError, StoreError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(json.dumps(workout_plan_to_dict(plan) if plan else None, indent=2, ensure_ascii=False))
        return

    if plan is None:
        views.print_info("No active workout.")
        return
    views.console.print(f"[bold]{plan.name}[/bold] ({plan.difficulty}, {plan.duration_minutes} min)")
    for day in plan.days:
        views.console.print(f"  Day {day.day}: {day.focus}")
        for ex in day.exercises:
            loads = ", ".join(f"{s.weight:g}x{s.reps}" if s.weight else f"{s.reps}" for s in ex.sets)
            views.console.print(f"    {ex.name}: {loads or '-'}")
