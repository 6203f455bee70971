"""
Daily nutrition recommendations.

Energy needs come from the Mifflin-St Jeor BMR times a moderate activity
factor, scaled per nutrition goal; protein is set per kg of bodyweight, fat
as a share of calories and carbohydrates fill the remainder.  A session
logged on the day adds a goal-dependent workout allowance and pre/post
workout meals.
"""

from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from .config import (
    BMR_ACTIVITY_FACTOR,
    DEFAULT_NUTRIENTS,
    DEFAULT_SESSION_DURATION,
    DEFAULT_SNACK_TIMES,
    MEAL_SHARES,
    NUTRITION_GOALS,
    POST_WORKOUT_MINUTES,
    PRE_WORKOUT_MINUTES,
    WORKOUT_KCAL_PER_MINUTE,
    WORKOUT_MEAL_NUTRIENTS,
    WORKOUT_NUTRITION_ADJUSTMENT,
)
from .models import DailyNutrition, Meal, Nutrient, NutritionGoal, UserHabit, UserProfile, WorkoutSession

if TYPE_CHECKING:
    from ..io.repository import CoachRepository

_DEFAULT_MEAL_TIMES = ("08:00", "13:00", "19:00")


def basal_metabolic_rate(profile: UserProfile) -> float:
    """Mifflin-St Jeor: 10w + 6.25h - 5a + 5."""
    return 10 * profile.weight_kg + 6.25 * profile.height_cm - 5 * profile.age + 5


def primary_goal(habit: UserHabit | None) -> NutritionGoal:
    if habit is not None and habit.nutrition_goals and habit.nutrition_goals[0] in NUTRITION_GOALS:
        return habit.nutrition_goals[0]  # type: ignore[return-value]
    return "maintenance"


def base_nutrients(profile: UserProfile | None, goal: NutritionGoal) -> Nutrient:
    """Daily macros for a goal; fixed defaults when no profile exists."""
    if profile is None:
        return Nutrient(**DEFAULT_NUTRIENTS)

    calorie_mult, protein_per_kg, fat_share = NUTRITION_GOALS[goal]
    calories = basal_metabolic_rate(profile) * BMR_ACTIVITY_FACTOR * calorie_mult
    protein = profile.weight_kg * protein_per_kg
    fats = calories * fat_share / 9
    carbs = (calories - protein * 4 - fats * 9) / 4
    return Nutrient(
        calories=round(calories),
        protein=round(protein),
        carbs=round(carbs),
        fats=round(fats),
    )


def workout_adjustment(session: WorkoutSession, goal: NutritionGoal) -> Nutrient:
    duration = session.duration_minutes or DEFAULT_SESSION_DURATION
    kcal_mult, protein_pm, carbs_pm, fats_pm = WORKOUT_NUTRITION_ADJUSTMENT[goal]
    return Nutrient(
        calories=round(duration * WORKOUT_KCAL_PER_MINUTE * kcal_mult),
        protein=round(duration * protein_pm),
        carbs=round(duration * carbs_pm),
        fats=round(duration * fats_pm),
    )


def _add(a: Nutrient, b: Nutrient) -> Nutrient:
    return Nutrient(a.calories + b.calories, a.protein + b.protein, a.carbs + b.carbs, a.fats + b.fats)


def _share(total: Nutrient, fraction: float) -> Nutrient:
    return Nutrient(
        calories=round(total.calories * fraction),
        protein=round(total.protein * fraction),
        carbs=round(total.carbs * fraction),
        fats=round(total.fats * fraction),
    )


def _offset_time(hhmm: str, minutes: int) -> str:
    t = datetime.strptime(hhmm, "%H:%M") + timedelta(minutes=minutes)
    return t.strftime("%H:%M")


def plan_meals(
    total: Nutrient,
    habit: UserHabit | None,
    session: WorkoutSession | None,
) -> list[Meal]:
    """
    Split the day's intake into meals ordered by time.

    Main meals use the first three preferred meal times, any further
    preferred times become snacks (10:30 and 15:30 otherwise).
    """
    meal_times = list(habit.preferred_meal_times) if habit and habit.preferred_meal_times else list(_DEFAULT_MEAL_TIMES)
    meals: list[Meal] = []

    for i, meal_type in enumerate(("breakfast", "lunch", "dinner")):
        name, fraction = MEAL_SHARES[meal_type]
        time = meal_times[i] if i < len(meal_times) else _DEFAULT_MEAL_TIMES[i]
        meals.append(Meal(meal_type=meal_type, name=name, time=time, nutrients=_share(total, fraction)))

    snack_name, snack_fraction = MEAL_SHARES["snack"]
    for time in meal_times[3:] or DEFAULT_SNACK_TIMES:
        meals.append(Meal(meal_type="snack", name=snack_name, time=time, nutrients=_share(total, snack_fraction)))

    if session is not None and session.start_time:
        duration = session.duration_minutes or int(DEFAULT_SESSION_DURATION)
        meals.append(
            Meal(
                meal_type="pre_workout",
                name="Pre-entreno",
                time=_offset_time(session.start_time, -PRE_WORKOUT_MINUTES),
                nutrients=Nutrient(**WORKOUT_MEAL_NUTRIENTS["pre_workout"]),
                workout_related=True,
            )
        )
        meals.append(
            Meal(
                meal_type="post_workout",
                name="Post-entreno",
                time=_offset_time(session.start_time, duration + POST_WORKOUT_MINUTES),
                nutrients=Nutrient(**WORKOUT_MEAL_NUTRIENTS["post_workout"]),
                workout_related=True,
            )
        )

    meals.sort(key=lambda m: m.time)
    return meals


def calculate_daily_nutrition(
    date: str,
    profile: UserProfile | None,
    habit: UserHabit | None,
    session: WorkoutSession | None,
) -> DailyNutrition:
    """
    Recommended intake for one day.

    Args:
        date: ISO date
        profile: User profile (None falls back to fixed defaults)
        habit: Habit record providing goal and meal times
        session: Session logged on that date, if any

    Returns:
        DailyNutrition with totals and meals
    """
    goal = primary_goal(habit)
    total = base_nutrients(profile, goal)
    expenditure = None
    if session is not None:
        total = _add(total, workout_adjustment(session, goal))
        if profile is not None:
            duration = session.duration_minutes
            activity = (duration / 60) * 0.1 + 1.2 if duration else 1.2
            expenditure = round(basal_metabolic_rate(profile) * activity)

    return DailyNutrition(
        date=date,
        total_nutrients=total,
        meals=plan_meals(total, habit, session),
        calorie_expenditure=expenditure,
        nutrition_goal=goal,
    )


class NutritionService:
    """Nutrition collaborator consumed by the context builder."""

    def __init__(self, repository: "CoachRepository"):
        self.repository = repository

    def get_nutrition_recommendations(self, user_id: str, date: str) -> DailyNutrition:
        sessions = self.repository.get_workout_sessions(user_id)
        session = next((s for s in sessions if s.date == date), None)
        return calculate_daily_nutrition(
            date,
            self.repository.get_user_data(user_id),
            self.repository.get_user_habits(user_id),
            session,
        )
