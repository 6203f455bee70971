"""Profile management commands: init."""

import json
from dataclasses import replace
from typing import Annotated, Optional

import typer

from ...core.models import UserProfile
from ...io.serializers import user_habit_to_dict, user_profile_to_dict
from ...io.store import StoreError
from .. import views
from ..app import DEFAULT_USER, DataDirOption, JsonOption, UserOption, app, get_orchestrator

NUTRITION_GOAL_CHOICES = ("definition", "strength", "muscle_mass", "endurance", "maintenance")


@app.command()
def init(
    name: Annotated[
        str,
        typer.Option("--name", "-n", help="Display name"),
    ] = "Athlete",
    age: Annotated[
        int,
        typer.Option("--age", "-a", help="Age in years"),
    ] = 30,
    weight_kg: Annotated[
        float,
        typer.Option("--weight-kg", "-w", help="Bodyweight in kg"),
    ] = 75.0,
    height_cm: Annotated[
        float,
        typer.Option("--height-cm", "-h", help="Height in centimeters"),
    ] = 175.0,
    fitness_level: Annotated[
        str,
        typer.Option("--fitness-level", "-l", help="beginner | intermediate | advanced"),
    ] = "beginner",
    goals: Annotated[
        Optional[list[str]],
        typer.Option("--goal", "-g", help="Training goal (repeatable)"),
    ] = None,
    nutrition_goals: Annotated[
        Optional[list[str]],
        typer.Option("--nutrition-goal", help="definition | strength | muscle_mass | endurance | maintenance"),
    ] = None,
    data_dir: DataDirOption = None,
    user_id: UserOption = DEFAULT_USER,
    json_out: JsonOption = False,
) -> None:
    """
    Create or update the user profile and start habit tracking.

    Re-running init keeps existing sessions, check-ins and habits; only the
    profile (and nutrition goals, when given) are replaced.

      adaptive-coach init --name Ana --age 29 --weight-kg 62 --height-cm 168 \\
        --fitness-level intermediate --goal fuerza --nutrition-goal strength
    """
    for goal in nutrition_goals or []:
        if goal not in NUTRITION_GOAL_CHOICES:
            views.print_error(f"Nutrition goal must be one of: {', '.join(NUTRITION_GOAL_CHOICES)}")
            raise typer.Exit(1)

    try:
        profile = UserProfile(
            name=name,
            age=age,
            weight_kg=weight_kg,
            height_cm=height_cm,
            fitness_level=fitness_level,  # type: ignore[arg-type]
            goals=list(goals or []),
        )
    except ValueError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    coach = get_orchestrator(data_dir)
    try:
        coach.repository.save_user_data(user_id, profile)
        habit = coach.habits.initialize_user_habit_tracking(user_id)
        if nutrition_goals:
            habit = replace(habit, nutrition_goals=list(nutrition_goals))
            coach.repository.save_user_habits(habit)
    except StoreError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(json.dumps({
            "user_id": user_id,
            "profile": user_profile_to_dict(profile),
            "habits": user_habit_to_dict(habit),
        }, indent=2))
        return

    views.print_success(f"Profile saved for {user_id} ({profile.name}, {profile.fitness_level})")
    views.print_info(f"Nutrition goals: {', '.join(habit.nutrition_goals)}")
