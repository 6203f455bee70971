"""
Data models for adaptive-coach.

All core dataclasses representing profiles, logged sessions, recovery
check-ins, derived analyses and the per-interaction decision context.
Dates are ISO strings (YYYY-MM-DD) and times of day are "HH:MM" strings,
the same representation used on disk.

Records that are immutable once created (sessions, metrics, analyses,
plans, the decision context) are frozen; their collection fields are
coerced to tuples so the snapshot cannot be mutated through a shared list.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

FitnessLevel = Literal["beginner", "intermediate", "advanced"]
FatigueLevel = Literal["low", "moderate", "high", "extreme"]
WorkoutIntensity = Literal["low", "moderate", "high", "rest"]
PeriodizationPhase = Literal["accumulation", "intensification", "deload"]
AdjustmentType = Literal["weight", "volume", "intensity", "deload"]
RecommendationType = Literal[
    "rest", "active_recovery", "mobility", "stretching", "sauna", "massage", "nap", "light_training"
]
Priority = Literal["low", "medium", "high"]
NutritionGoal = Literal["definition", "strength", "muscle_mass", "endurance", "maintenance"]
MealType = Literal["breakfast", "lunch", "dinner", "snack", "pre_workout", "post_workout"]
Persona = Literal["disciplinarian", "mentor", "scientist", "warrior", "philosopher", "adaptive"]
PlanPhase = Literal["initiation", "stagnation", "achievement"]
WearableRecoveryStatus = Literal["optimal", "good", "fair", "poor", "critical"]
TrainingReadiness = Literal["ready", "caution", "rest"]
IntentCategory = Literal[
    "workout_inquiry",
    "recovery_advice",
    "progression_guidance",
    "nutrition_guidance",
    "routine_modification",
    "performance_analysis",
    "goal_setting",
    "technical_support",
    "technical_question",
    "motivational_question",
    "ambiguous_question",
    "system_optimization",
    "general",
]


def _check_scale(name: str, value: float | None, low: float = 0, high: float = 10) -> None:
    if value is not None and not (low <= value <= high):
        raise ValueError(f"{name} must be between {low} and {high}")


# =============================================================================
# PROFILE & SESSIONS
# =============================================================================


@dataclass
class UserProfile:
    """User profile; owned by the user and read-only to the coach."""

    name: str
    age: int
    weight_kg: float
    height_cm: float
    fitness_level: FitnessLevel = "beginner"
    goals: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Validate profile data."""
        if self.age <= 0:
            raise ValueError("age must be positive")
        if self.weight_kg <= 0:
            raise ValueError("weight_kg must be positive")
        if self.height_cm <= 0:
            raise ValueError("height_cm must be positive")
        if self.fitness_level not in ("beginner", "intermediate", "advanced"):
            raise ValueError(f"Unknown fitness level: {self.fitness_level}")


@dataclass(frozen=True)
class ExerciseSet:
    """
    One performed set.

    Any field may be None when the user logged the set incompletely;
    such sets never produce progression metrics.
    """

    weight: float | None
    reps: int | None
    rpe: float | None

    def __post_init__(self) -> None:
        if self.weight is not None and self.weight < 0:
            raise ValueError("weight must be non-negative")
        if self.reps is not None and self.reps < 0:
            raise ValueError("reps must be non-negative")
        _check_scale("rpe", self.rpe, 1, 10)

    @property
    def is_complete(self) -> bool:
        """True when weight, reps and RPE were all recorded."""
        return self.weight is not None and self.reps is not None and self.rpe is not None


@dataclass(frozen=True)
class PerformedExercise:
    """An exercise within a logged session, with its sets in order."""

    name: str
    sets: tuple[ExerciseSet, ...] = ()

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("exercise name must be non-empty")
        object.__setattr__(self, "sets", tuple(self.sets))


@dataclass(frozen=True)
class WorkoutSession:
    """
    A logged training session. Immutable once recorded.

    The source of truth for both the habit tracker and the progression
    engine.
    """

    session_id: str
    user_id: str
    date: str  # ISO format YYYY-MM-DD
    start_time: str | None = None  # HH:MM
    duration_minutes: int | None = None
    exercises: tuple[PerformedExercise, ...] = ()
    notes: str = ""

    def __post_init__(self) -> None:
        """Validate session data."""
        if self.duration_minutes is not None and self.duration_minutes < 0:
            raise ValueError("duration_minutes must be non-negative")
        object.__setattr__(self, "exercises", tuple(self.exercises))


# =============================================================================
# RECOVERY
# =============================================================================


@dataclass(frozen=True)
class RecoveryMetric:
    """Daily subjective check-in; each value on a 0-10 scale."""

    user_id: str
    date: str
    energy_level: float
    muscle_soreness: float
    sleep_quality: float
    stress_level: float
    motivation: float
    notes: str = ""

    def __post_init__(self) -> None:
        """Validate metric ranges."""
        _check_scale("energy_level", self.energy_level)
        _check_scale("muscle_soreness", self.muscle_soreness)
        _check_scale("sleep_quality", self.sleep_quality)
        _check_scale("stress_level", self.stress_level)
        _check_scale("motivation", self.motivation)


@dataclass(frozen=True)
class RecoveryRecommendation:
    type: RecommendationType
    title: str
    description: str
    priority: Priority
    duration: str | None = None  # e.g. "10-15 minutos"
    intensity: Literal["low", "moderate", "high"] | None = None


@dataclass(frozen=True)
class RecoveryAnalysis:
    """
    Derived recovery assessment for one (user, date).

    recovery_score and fatigue_level are computed from the same metric
    window and always stored together.
    """

    date: str
    fatigue_level: FatigueLevel
    recovery_score: int  # 0-100
    recommendations: tuple[RecoveryRecommendation, ...]
    predicted_fatigue_days: tuple[str, ...]
    suggested_workout_intensity: WorkoutIntensity

    def __post_init__(self) -> None:
        object.__setattr__(self, "recommendations", tuple(self.recommendations))
        object.__setattr__(self, "predicted_fatigue_days", tuple(self.predicted_fatigue_days))


# =============================================================================
# LOAD PROGRESSION
# =============================================================================


@dataclass(frozen=True)
class LoadProgressionMetric:
    """One completed set with full data. RIR is derived as max(0, 10 - RPE)."""

    exercise_name: str
    date: str
    weight: float
    reps: int
    rpe: float
    rir: float
    completed: bool


@dataclass(frozen=True)
class ProgressionAdjustment:
    exercise_name: str
    adjustment_type: AdjustmentType
    value: float  # percent change
    reason: str
    confidence: float  # 0-1
    applied: bool = False

    def __post_init__(self) -> None:
        _check_scale("confidence", self.confidence, 0, 1)


@dataclass(frozen=True)
class ProgressionPlan:
    """Current progression recommendation for one exercise."""

    exercise_name: str
    current_weight: float
    recommended_weight: float
    next_phase: PeriodizationPhase
    adjustments: tuple[ProgressionAdjustment, ...] = ()
    notes: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "adjustments", tuple(self.adjustments))
        object.__setattr__(self, "notes", tuple(self.notes))


@dataclass(frozen=True)
class ProgressionHistoryEntry:
    """Per-set history row with derived volume and relative intensity."""

    exercise_name: str
    date: str
    weight: float
    reps: int
    rpe: float
    rir: float
    volume: float  # weight * reps
    intensity: float  # weight / estimated 1RM


# =============================================================================
# HABITS
# =============================================================================


@dataclass
class UserHabit:
    """
    Rolling per-user training statistics. Evolves; never deleted.

    Weekdays use Monday = 0 ... Sunday = 6.
    """

    user_id: str
    preferred_training_times: list[str] = field(default_factory=list)
    preferred_training_days: list[int] = field(default_factory=list)
    training_frequency: int = 0
    last_training_sessions: list[str] = field(default_factory=list)  # newest first, max 10
    average_training_duration: float = 0.0
    preferred_meal_times: list[str] = field(default_factory=lambda: ["08:00", "13:00", "19:00"])
    preferred_foods: list[str] = field(default_factory=list)
    disliked_foods: list[str] = field(default_factory=list)
    dietary_restrictions: list[str] = field(default_factory=list)
    nutrition_goals: list[str] = field(default_factory=lambda: ["maintenance"])


@dataclass(frozen=True)
class TrainingPatternPrediction:
    """Most likely training slots and the projected next session."""

    likely_times: tuple[str, ...]
    likely_days: tuple[int, ...]
    next_likely_session: datetime | None
    average_duration: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "likely_times", tuple(self.likely_times))
        object.__setattr__(self, "likely_days", tuple(self.likely_days))


@dataclass(frozen=True)
class HabitRecommendations:
    """Habit-driven reminders and tips shown on the dashboard."""

    workout_reminders: tuple[str, ...] = ()
    rest_recommendations: tuple[str, ...] = ()
    nutrition_tips: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "workout_reminders", tuple(self.workout_reminders))
        object.__setattr__(self, "rest_recommendations", tuple(self.rest_recommendations))
        object.__setattr__(self, "nutrition_tips", tuple(self.nutrition_tips))


# =============================================================================
# WORKOUT PLANS
# =============================================================================


@dataclass(frozen=True)
class PlannedSet:
    """A prescribed set. weight is None for bodyweight work."""

    reps: int
    weight: float | None = None
    rest_seconds: int = 90

    def __post_init__(self) -> None:
        if self.reps < 0:
            raise ValueError("reps must be non-negative")
        if self.weight is not None and self.weight < 0:
            raise ValueError("weight must be non-negative")
        if self.rest_seconds < 0:
            raise ValueError("rest_seconds must be non-negative")


@dataclass(frozen=True)
class PlannedExercise:
    name: str
    sets: tuple[PlannedSet, ...] = ()
    equipment: str = ""
    notes: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "sets", tuple(self.sets))


@dataclass(frozen=True)
class WorkoutDay:
    day: int
    focus: str
    exercises: tuple[PlannedExercise, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "exercises", tuple(self.exercises))


@dataclass(frozen=True)
class WorkoutPlan:
    """An active workout routine. Transformations return new plans."""

    plan_id: str
    name: str
    duration_minutes: int
    days: tuple[WorkoutDay, ...] = ()
    difficulty: FitnessLevel = "beginner"
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "days", tuple(self.days))

    def exercise_names(self) -> list[str]:
        """All exercise names in day order, without duplicates."""
        seen: list[str] = []
        for day in self.days:
            for ex in day.exercises:
                if ex.name not in seen:
                    seen.append(ex.name)
        return seen


# =============================================================================
# NUTRITION
# =============================================================================


@dataclass(frozen=True)
class Nutrient:
    calories: float
    protein: float
    carbs: float
    fats: float


@dataclass(frozen=True)
class Meal:
    meal_type: MealType
    name: str
    time: str  # HH:MM
    nutrients: Nutrient
    workout_related: bool = False


@dataclass(frozen=True)
class DailyNutrition:
    """Recommended intake for one day, split into meals."""

    date: str
    total_nutrients: Nutrient
    meals: tuple[Meal, ...] = ()
    calorie_expenditure: float | None = None
    nutrition_goal: NutritionGoal = "maintenance"

    def __post_init__(self) -> None:
        object.__setattr__(self, "meals", tuple(self.meals))


# =============================================================================
# WEARABLE INSIGHT
# =============================================================================


@dataclass(frozen=True)
class WearableAdjustment:
    type: Literal["volume", "intensity", "rest", "deload"]
    value: float
    reason: str
    confidence: float


@dataclass(frozen=True)
class WearableInsight:
    """Pre-computed wearable summary supplied by the caller."""

    recovery_status: WearableRecoveryStatus
    training_readiness: TrainingReadiness
    adjustments: tuple[WearableAdjustment, ...] = ()
    recommendations: tuple[str, ...] = ()
    risk_factors: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "adjustments", tuple(self.adjustments))
        object.__setattr__(self, "recommendations", tuple(self.recommendations))
        object.__setattr__(self, "risk_factors", tuple(self.risk_factors))


# =============================================================================
# DECISION CONTEXT & RESPONSES
# =============================================================================


@dataclass(frozen=True)
class DecisionContext:
    """
    Snapshot of everything the coach knows about a user for one interaction.

    Every collaborator output is an explicit optional field; a None value
    means the data was absent or its collaborator failed.
    """

    user_id: str
    current_screen: str
    user_profile: UserProfile | None = None
    active_workout: WorkoutPlan | None = None
    habits: UserHabit | None = None
    recent_sessions: tuple[WorkoutSession, ...] = ()  # newest first, max 10
    recovery_analysis: RecoveryAnalysis | None = None
    progression_plans: tuple[ProgressionPlan, ...] = ()
    nutrition: DailyNutrition | None = None
    wearable_insight: WearableInsight | None = None
    recent_recovery_scores: tuple[int, ...] = ()  # trailing 7 days, newest first

    def __post_init__(self) -> None:
        object.__setattr__(self, "recent_sessions", tuple(self.recent_sessions))
        object.__setattr__(self, "progression_plans", tuple(self.progression_plans))
        object.__setattr__(self, "recent_recovery_scores", tuple(self.recent_recovery_scores))

    @property
    def fatigue_level(self) -> FatigueLevel | None:
        return self.recovery_analysis.fatigue_level if self.recovery_analysis else None


@dataclass(frozen=True)
class ToneModifiers:
    intensity: Literal["low", "moderate", "high"] = "moderate"
    firmness: Literal["gentle", "firm"] = "firm"
    enthusiasm: Literal["calm", "energetic", "intense"] = "energetic"
    technicality: Literal["simple", "complex"] = "simple"


@dataclass(frozen=True)
class ToneSelection:
    """Resolved persona plus the modifiers and plan phase behind it."""

    persona: Persona
    modifiers: ToneModifiers
    plan_phase: PlanPhase


@dataclass(frozen=True)
class ContextUpdates:
    """
    Mutations a handler asks the caller to apply before the next turn.

    active_workout replaces the current workout; clear_active_workout
    removes it. Both unset means no change. progression_plans carries
    plans whose adjustments were just applied to the workout, so the caller
    can persist the applied flags.
    """

    active_workout: WorkoutPlan | None = None
    clear_active_workout: bool = False
    progression_plans: tuple[ProgressionPlan, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "progression_plans", tuple(self.progression_plans))


@dataclass(frozen=True)
class CoachResponse:
    response: str
    action_items: tuple[str, ...] = ()
    context_updates: ContextUpdates | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "action_items", tuple(self.action_items))
