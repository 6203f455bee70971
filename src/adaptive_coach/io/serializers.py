"""
JSON serialization for coaching data models.

Handles conversion between dataclasses and JSON-compatible dicts, plus
parsing of the compact set notation used on the command line.
"""

import re
from datetime import datetime
from typing import Any

from ..core.models import (
    DailyNutrition,
    ExerciseSet,
    LoadProgressionMetric,
    Meal,
    Nutrient,
    PerformedExercise,
    PlannedExercise,
    PlannedSet,
    ProgressionAdjustment,
    ProgressionPlan,
    RecoveryAnalysis,
    RecoveryMetric,
    RecoveryRecommendation,
    UserHabit,
    UserProfile,
    WearableAdjustment,
    WearableInsight,
    WorkoutDay,
    WorkoutPlan,
    WorkoutSession,
)


class ValidationError(Exception):
    """Raised when data validation fails."""

    pass


def validate_date(date_str: str) -> str:
    """
    Validate and normalize date string to ISO format.

    Args:
        date_str: Date string to validate

    Returns:
        Normalized YYYY-MM-DD string

    Raises:
        ValidationError: If date format is invalid
    """
    if not isinstance(date_str, str) or not re.match(r"^\d{4}-\d{2}-\d{2}$", date_str):
        raise ValidationError(f"Invalid date format: {date_str}. Expected YYYY-MM-DD")

    try:
        datetime.strptime(date_str, "%Y-%m-%d")
    except ValueError as e:
        raise ValidationError(f"Invalid date: {date_str}") from e

    return date_str


def validate_time(time_str: str) -> str:
    """
    Validate a time of day in HH:MM format.

    Raises:
        ValidationError: If the time is malformed or out of range
    """
    if not isinstance(time_str, str) or not re.match(r"^\d{2}:\d{2}$", time_str):
        raise ValidationError(f"Invalid time format: {time_str}. Expected HH:MM")
    try:
        datetime.strptime(time_str, "%H:%M")
    except ValueError as e:
        raise ValidationError(f"Invalid time: {time_str}") from e
    return time_str


def _build(factory, *args, **kwargs):
    """Call a model constructor, turning model validation errors into ValidationError."""
    try:
        return factory(*args, **kwargs)
    except (ValueError, TypeError) as e:
        raise ValidationError(str(e)) from e


def _require(data: dict[str, Any], *keys: str) -> None:
    missing = [k for k in keys if k not in data]
    if missing:
        raise ValidationError(f"Missing required field(s): {', '.join(missing)}")


# =============================================================================
# PROFILE
# =============================================================================


def user_profile_to_dict(profile: UserProfile) -> dict[str, Any]:
    return {
        "name": profile.name,
        "age": profile.age,
        "weight_kg": profile.weight_kg,
        "height_cm": profile.height_cm,
        "fitness_level": profile.fitness_level,
        "goals": list(profile.goals),
    }


def dict_to_user_profile(data: dict[str, Any]) -> UserProfile:
    """
    Convert dict to UserProfile.

    Raises:
        ValidationError: If data is invalid
    """
    _require(data, "name", "age", "weight_kg", "height_cm")
    return _build(
        UserProfile,
        name=data["name"],
        age=int(data["age"]),
        weight_kg=float(data["weight_kg"]),
        height_cm=float(data["height_cm"]),
        fitness_level=data.get("fitness_level", "beginner"),
        goals=list(data.get("goals", [])),
    )


# =============================================================================
# SESSIONS
# =============================================================================


def exercise_set_to_dict(s: ExerciseSet) -> dict[str, Any]:
    return {"weight": s.weight, "reps": s.reps, "rpe": s.rpe}


def dict_to_exercise_set(data: dict[str, Any]) -> ExerciseSet:
    return _build(ExerciseSet, weight=data.get("weight"), reps=data.get("reps"), rpe=data.get("rpe"))


def workout_session_to_dict(session: WorkoutSession) -> dict[str, Any]:
    """
    Convert WorkoutSession to dict.

    Args:
        session: WorkoutSession to convert

    Returns:
        Dict representation suitable for JSON
    """
    return {
        "session_id": session.session_id,
        "user_id": session.user_id,
        "date": session.date,
        "start_time": session.start_time,
        "duration_minutes": session.duration_minutes,
        "exercises": [
            {"name": ex.name, "sets": [exercise_set_to_dict(s) for s in ex.sets]}
            for ex in session.exercises
        ],
        "notes": session.notes,
    }


def dict_to_workout_session(data: dict[str, Any]) -> WorkoutSession:
    """
    Convert dict to WorkoutSession.

    Args:
        data: Dict representation

    Returns:
        WorkoutSession instance

    Raises:
        ValidationError: If data is invalid
    """
    _require(data, "session_id", "user_id", "date")
    validate_date(data["date"])
    if data.get("start_time") is not None:
        validate_time(data["start_time"])

    exercises = [
        _build(
            PerformedExercise,
            name=ex.get("name", ""),
            sets=[dict_to_exercise_set(s) for s in ex.get("sets", [])],
        )
        for ex in data.get("exercises", [])
    ]
    return _build(
        WorkoutSession,
        session_id=data["session_id"],
        user_id=data["user_id"],
        date=data["date"],
        start_time=data.get("start_time"),
        duration_minutes=data.get("duration_minutes"),
        exercises=exercises,
        notes=data.get("notes", ""),
    )


# =============================================================================
# RECOVERY
# =============================================================================

_METRIC_FIELDS = ("energy_level", "muscle_soreness", "sleep_quality", "stress_level", "motivation")


def recovery_metric_to_dict(metric: RecoveryMetric) -> dict[str, Any]:
    d: dict[str, Any] = {"user_id": metric.user_id, "date": metric.date}
    d.update({k: getattr(metric, k) for k in _METRIC_FIELDS})
    d["notes"] = metric.notes
    return d


def dict_to_recovery_metric(data: dict[str, Any]) -> RecoveryMetric:
    """
    Convert dict to RecoveryMetric.

    Raises:
        ValidationError: If a field is missing or outside 0-10
    """
    _require(data, "user_id", "date", *_METRIC_FIELDS)
    validate_date(data["date"])
    return _build(
        RecoveryMetric,
        user_id=data["user_id"],
        date=data["date"],
        notes=data.get("notes", ""),
        **{k: float(data[k]) for k in _METRIC_FIELDS},
    )


def recovery_analysis_to_dict(analysis: RecoveryAnalysis) -> dict[str, Any]:
    return {
        "date": analysis.date,
        "fatigue_level": analysis.fatigue_level,
        "recovery_score": analysis.recovery_score,
        "recommendations": [
            {
                "type": r.type,
                "title": r.title,
                "description": r.description,
                "priority": r.priority,
                "duration": r.duration,
                "intensity": r.intensity,
            }
            for r in analysis.recommendations
        ],
        "predicted_fatigue_days": list(analysis.predicted_fatigue_days),
        "suggested_workout_intensity": analysis.suggested_workout_intensity,
    }


def dict_to_recovery_analysis(data: dict[str, Any]) -> RecoveryAnalysis:
    _require(data, "date", "fatigue_level", "recovery_score", "suggested_workout_intensity")
    recommendations = [
        _build(
            RecoveryRecommendation,
            type=r["type"],
            title=r["title"],
            description=r["description"],
            priority=r["priority"],
            duration=r.get("duration"),
            intensity=r.get("intensity"),
        )
        for r in data.get("recommendations", [])
    ]
    return _build(
        RecoveryAnalysis,
        date=validate_date(data["date"]),
        fatigue_level=data["fatigue_level"],
        recovery_score=int(data["recovery_score"]),
        recommendations=recommendations,
        predicted_fatigue_days=list(data.get("predicted_fatigue_days", [])),
        suggested_workout_intensity=data["suggested_workout_intensity"],
    )


# =============================================================================
# PROGRESSION
# =============================================================================


def progression_metric_to_dict(metric: LoadProgressionMetric) -> dict[str, Any]:
    return {
        "exercise_name": metric.exercise_name,
        "date": metric.date,
        "weight": metric.weight,
        "reps": metric.reps,
        "rpe": metric.rpe,
        "rir": metric.rir,
        "completed": metric.completed,
    }


def dict_to_progression_metric(data: dict[str, Any]) -> LoadProgressionMetric:
    _require(data, "exercise_name", "date", "weight", "reps", "rpe")
    rpe = float(data["rpe"])
    return _build(
        LoadProgressionMetric,
        exercise_name=data["exercise_name"],
        date=validate_date(data["date"]),
        weight=float(data["weight"]),
        reps=int(data["reps"]),
        rpe=rpe,
        rir=float(data.get("rir", max(0.0, 10.0 - rpe))),
        completed=bool(data.get("completed", int(data["reps"]) > 0)),
    )


def progression_plan_to_dict(plan: ProgressionPlan) -> dict[str, Any]:
    return {
        "exercise_name": plan.exercise_name,
        "current_weight": plan.current_weight,
        "recommended_weight": plan.recommended_weight,
        "next_phase": plan.next_phase,
        "adjustments": [
            {
                "exercise_name": a.exercise_name,
                "adjustment_type": a.adjustment_type,
                "value": a.value,
                "reason": a.reason,
                "confidence": a.confidence,
                "applied": a.applied,
            }
            for a in plan.adjustments
        ],
        "notes": list(plan.notes),
    }


def dict_to_progression_adjustment(data: dict[str, Any]) -> ProgressionAdjustment:
    _require(data, "exercise_name", "adjustment_type", "value", "reason", "confidence")
    return _build(
        ProgressionAdjustment,
        exercise_name=data["exercise_name"],
        adjustment_type=data["adjustment_type"],
        value=float(data["value"]),
        reason=data["reason"],
        confidence=float(data["confidence"]),
        applied=bool(data.get("applied", False)),
    )


def dict_to_progression_plan(data: dict[str, Any]) -> ProgressionPlan:
    _require(data, "exercise_name", "current_weight", "recommended_weight", "next_phase")
    return _build(
        ProgressionPlan,
        exercise_name=data["exercise_name"],
        current_weight=float(data["current_weight"]),
        recommended_weight=float(data["recommended_weight"]),
        next_phase=data["next_phase"],
        adjustments=[dict_to_progression_adjustment(a) for a in data.get("adjustments", [])],
        notes=list(data.get("notes", [])),
    )


# =============================================================================
# HABITS
# =============================================================================

_HABIT_LIST_FIELDS = (
    "preferred_training_times",
    "preferred_training_days",
    "last_training_sessions",
    "preferred_meal_times",
    "preferred_foods",
    "disliked_foods",
    "dietary_restrictions",
    "nutrition_goals",
)


def user_habit_to_dict(habit: UserHabit) -> dict[str, Any]:
    d: dict[str, Any] = {
        "user_id": habit.user_id,
        "training_frequency": habit.training_frequency,
        "average_training_duration": habit.average_training_duration,
    }
    d.update({k: list(getattr(habit, k)) for k in _HABIT_LIST_FIELDS})
    return d


def dict_to_user_habit(data: dict[str, Any]) -> UserHabit:
    _require(data, "user_id")
    habit = _build(
        UserHabit,
        user_id=data["user_id"],
        training_frequency=int(data.get("training_frequency", 0)),
        average_training_duration=float(data.get("average_training_duration", 0.0)),
    )
    for k in _HABIT_LIST_FIELDS:
        if k in data:
            setattr(habit, k, list(data[k]))
    habit.preferred_training_days = [int(d) for d in habit.preferred_training_days]
    return habit


# =============================================================================
# WORKOUT PLANS
# =============================================================================


def workout_plan_to_dict(plan: WorkoutPlan) -> dict[str, Any]:
    return {
        "plan_id": plan.plan_id,
        "name": plan.name,
        "duration_minutes": plan.duration_minutes,
        "difficulty": plan.difficulty,
        "description": plan.description,
        "days": [
            {
                "day": day.day,
                "focus": day.focus,
                "exercises": [
                    {
                        "name": ex.name,
                        "equipment": ex.equipment,
                        "notes": ex.notes,
                        "sets": [
                            {"reps": s.reps, "weight": s.weight, "rest_seconds": s.rest_seconds}
                            for s in ex.sets
                        ],
                    }
                    for ex in day.exercises
                ],
            }
            for day in plan.days
        ],
    }


def dict_to_workout_plan(data: dict[str, Any]) -> WorkoutPlan:
    """
    Convert dict to WorkoutPlan.

    Raises:
        ValidationError: If data is invalid
    """
    _require(data, "plan_id", "name", "duration_minutes")
    days = []
    for day in data.get("days", []):
        exercises = [
            _build(
                PlannedExercise,
                name=ex["name"],
                equipment=ex.get("equipment", ""),
                notes=ex.get("notes", ""),
                sets=[
                    _build(
                        PlannedSet,
                        reps=int(s["reps"]),
                        weight=s.get("weight"),
                        rest_seconds=int(s.get("rest_seconds", 90)),
                    )
                    for s in ex.get("sets", [])
                ],
            )
            for ex in day.get("exercises", [])
        ]
        days.append(_build(WorkoutDay, day=int(day.get("day", 1)), focus=day.get("focus", ""), exercises=exercises))
    return _build(
        WorkoutPlan,
        plan_id=data["plan_id"],
        name=data["name"],
        duration_minutes=int(data["duration_minutes"]),
        days=days,
        difficulty=data.get("difficulty", "beginner"),
        description=data.get("description", ""),
    )


# =============================================================================
# NUTRITION & WEARABLE
# =============================================================================


def _nutrient_to_dict(n: Nutrient) -> dict[str, float]:
    return {"calories": n.calories, "protein": n.protein, "carbs": n.carbs, "fats": n.fats}


def daily_nutrition_to_dict(nutrition: DailyNutrition) -> dict[str, Any]:
    return {
        "date": nutrition.date,
        "total_nutrients": _nutrient_to_dict(nutrition.total_nutrients),
        "meals": [
            {
                "meal_type": m.meal_type,
                "name": m.name,
                "time": m.time,
                "nutrients": _nutrient_to_dict(m.nutrients),
                "workout_related": m.workout_related,
            }
            for m in nutrition.meals
        ],
        "calorie_expenditure": nutrition.calorie_expenditure,
        "nutrition_goal": nutrition.nutrition_goal,
    }


def dict_to_daily_nutrition(data: dict[str, Any]) -> DailyNutrition:
    _require(data, "date", "total_nutrients")
    meals = [
        _build(
            Meal,
            meal_type=m["meal_type"],
            name=m["name"],
            time=m["time"],
            nutrients=_build(Nutrient, **m["nutrients"]),
            workout_related=bool(m.get("workout_related", False)),
        )
        for m in data.get("meals", [])
    ]
    return _build(
        DailyNutrition,
        date=validate_date(data["date"]),
        total_nutrients=_build(Nutrient, **data["total_nutrients"]),
        meals=meals,
        calorie_expenditure=data.get("calorie_expenditure"),
        nutrition_goal=data.get("nutrition_goal", "maintenance"),
    )


def dict_to_wearable_insight(data: dict[str, Any]) -> WearableInsight:
    """
    Convert a caller-supplied wearable summary into a WearableInsight.

    Raises:
        ValidationError: If the status or readiness value is unknown
    """
    _require(data, "recovery_status", "training_readiness")
    if data["recovery_status"] not in ("optimal", "good", "fair", "poor", "critical"):
        raise ValidationError(f"Invalid recovery_status: {data['recovery_status']}")
    if data["training_readiness"] not in ("ready", "caution", "rest"):
        raise ValidationError(f"Invalid training_readiness: {data['training_readiness']}")
    return _build(
        WearableInsight,
        recovery_status=data["recovery_status"],
        training_readiness=data["training_readiness"],
        adjustments=[
            _build(WearableAdjustment, type=a["type"], value=float(a["value"]),
                   reason=a.get("reason", ""), confidence=float(a.get("confidence", 0.5)))
            for a in data.get("adjustments", [])
        ],
        recommendations=list(data.get("recommendations", [])),
        risk_factors=list(data.get("risk_factors", [])),
    )


# =============================================================================
# CLI SET NOTATION
# =============================================================================

_SET_RE = re.compile(
    r"^(?P<weight>\d+(?:\.\d+)?)\s*[x×]\s*(?P<reps>\d+)(?:\s*@\s*(?P<rpe>\d+(?:\.\d+)?))?$"
)


def parse_sets_string(sets_str: str) -> list[ExerciseSet]:
    """
    Parse a comma-separated sets string.

    Per-set format:
        WEIGHTxREPS@RPE   e.g. "80x8@7"     canonical
        WEIGHTxREPS       e.g. "80x8"       RPE not recorded
        0 weight          e.g. "0x12@8"     bodyweight work

    Sets without an RPE are stored but never feed load progression.

    Args:
        sets_str: Sets string to parse

    Returns:
        List of ExerciseSet in the order given

    Raises:
        ValidationError: If format is invalid
    """
    if not sets_str or not sets_str.strip():
        raise ValidationError("Sets string cannot be empty")

    sets: list[ExerciseSet] = []
    for part in (p.strip() for p in sets_str.split(",")):
        if not part:
            continue
        match = _SET_RE.match(part.lower())
        if match is None:
            raise ValidationError(f"Invalid set format: '{part}'. Expected WEIGHTxREPS@RPE, e.g. 80x8@7")
        rpe = match.group("rpe")
        sets.append(
            _build(
                ExerciseSet,
                weight=float(match.group("weight")),
                reps=int(match.group("reps")),
                rpe=float(rpe) if rpe is not None else None,
            )
        )

    if not sets:
        raise ValidationError("No sets found in sets string")
    return sets
