"""
Configuration constants for the coaching engines.

All weights and thresholds are centralized here for easy tuning. The
settings dataclasses at the bottom bundle them per engine and can be
overridden from coaching.yaml (see config_loader).
"""

from dataclasses import dataclass, fields
from typing import Any, Final

# =============================================================================
# RECOVERY WINDOWS
# =============================================================================

RECOVERY_WINDOW_DAYS: Final[int] = 7  # Metrics/sessions considered for one analysis
PREDICTION_HORIZON_DAYS: Final[int] = 7  # Days ahead scanned for fatigue risk
FATIGUE_PREDICTION_RADIUS_DAYS: Final[int] = 3  # Sessions within this many days count
FATIGUE_PREDICTION_MIN_SESSIONS: Final[int] = 3  # Sessions needed to flag a day
SLEEP_PRIORITY_METRICS: Final[int] = 3  # Most recent check-ins averaged for sleep
SLEEP_PRIORITY_THRESHOLD: Final[float] = 6.0  # Below this: sleep-priority entry

# =============================================================================
# FATIGUE COMPOSITE
# =============================================================================

FATIGUE_DIVISOR_WITH_METRICS: Final[int] = 6
FATIGUE_DIVISOR_NO_METRICS: Final[int] = 4
DEFAULT_SESSION_DURATION: Final[float] = 60.0  # Assumed when no duration was logged

# (minimum exclusive average duration, penalty), checked top-down
DURATION_PENALTY_STEPS: Final[tuple[tuple[float, float], ...]] = (
    (90.0, 3.0),
    (60.0, 2.0),
    (30.0, 1.0),
)

FATIGUE_EXTREME: Final[float] = 7.0
FATIGUE_HIGH: Final[float] = 5.0
FATIGUE_MODERATE: Final[float] = 3.0

# =============================================================================
# RECOVERY SCORE
# =============================================================================

WEIGHT_ENERGY: Final[float] = 0.3
WEIGHT_SORENESS: Final[float] = 0.2  # Applied to (10 - soreness)
WEIGHT_SLEEP: Final[float] = 0.3
WEIGHT_STRESS: Final[float] = 0.1  # Applied to (10 - stress)
WEIGHT_MOTIVATION: Final[float] = 0.1
METRIC_SCALE: Final[float] = 10.0  # 0-10 metric to 0-100 basis
DEFAULT_RECOVERY_SCORE: Final[float] = 70.0

# (minimum exclusive average duration, score adjustment), checked top-down
LOAD_PENALTY_STEPS: Final[tuple[tuple[float, float], ...]] = (
    (90.0, -15.0),
    (75.0, -10.0),
    (60.0, -5.0),
)
LONG_SESSION_MINUTES: Final[float] = 75.0
LONG_SESSION_PENALTY: Final[float] = 3.0

# Suggested intensity cut-offs on the recovery score
SCORE_REST: Final[int] = 30
SCORE_LOW: Final[int] = 50
SCORE_MODERATE: Final[int] = 70

RECOVERY_TREND_DELTA: Final[int] = 10  # Score change that counts as a trend

# =============================================================================
# LOAD PROGRESSION
# =============================================================================

TREND_WINDOW: Final[int] = 3  # Recent vs prior points compared by trend signals
NEUTRAL_TREND: Final[float] = 0.5
EPLEY_DIVISOR: Final[float] = 30.0  # 1RM = weight * (1 + reps / 30)

DELOAD_LOOKBACK: Final[int] = 4
DELOAD_HIGH_RPE: Final[float] = 8.0
DELOAD_HIGH_RPE_COUNT: Final[int] = 3
DELOAD_FAILED_COUNT: Final[int] = 2
DELOAD_LOW_RIR: Final[float] = 1.0
DELOAD_LOW_RIR_COUNT: Final[int] = 3

EASY_RPE: Final[float] = 7.0  # Latest RPE below this ...
EASY_RIR: Final[float] = 3.0  # ... and RIR above this: add weight
HARD_RPE: Final[float] = 8.0
HARD_RIR: Final[float] = 1.0

WEIGHT_INCREASE_PCT: Final[float] = 5.0
WEIGHT_DECREASE_PCT: Final[float] = -2.5
DELOAD_PCT: Final[float] = -10.0
VOLUME_DECREASE_PCT: Final[float] = -15.0
INTENSITY_INCREASE_PCT: Final[float] = 3.0

CONFIDENCE_WEIGHT_INCREASE: Final[float] = 0.85
CONFIDENCE_WEIGHT_DECREASE: Final[float] = 0.80
CONFIDENCE_DELOAD: Final[float] = 0.90
CONFIDENCE_VOLUME_DECREASE: Final[float] = 0.85
CONFIDENCE_INTENSITY_INCREASE: Final[float] = 0.75

PERFORMANCE_TREND_HIGH: Final[float] = 0.7
INTENSITY_TREND_MIN: Final[float] = 0.5
VOLUME_TREND_HIGH: Final[float] = 0.6
VOLUME_TREND_LOW: Final[float] = 0.3
INTENSITY_TREND_HIGH: Final[float] = 0.8

# =============================================================================
# HABITS
# =============================================================================

MAX_SESSION_HISTORY: Final[int] = 10
PATTERN_TOP_N: Final[int] = 3
HIGH_FREQUENCY_SESSIONS: Final[int] = 5  # At or above: suggest active rest
LOW_FREQUENCY_SESSIONS: Final[int] = 2  # At or below: suggest training more

# =============================================================================
# PERSONA
# =============================================================================

CONSISTENCY_PERIOD_SESSIONS: Final[int] = 7  # sessions / 7, capped at 1.0
CONSISTENCY_HIGH: Final[float] = 0.8
CONSISTENCY_LOW: Final[float] = 0.5
STRUGGLE_MIN_SESSIONS: Final[int] = 3
STRUGGLE_RECOVERY_SCORE: Final[float] = 50.0

PROGRESSION_SCREENS: Final[frozenset[str]] = frozenset({"progression", "loadProgression"})
RECOVERY_SCREENS: Final[frozenset[str]] = frozenset({"recovery", "recoveryDashboard"})
NUTRITION_SCREENS: Final[frozenset[str]] = frozenset({"nutrition", "nutritionDashboard"})
WORKOUT_SCREENS: Final[frozenset[str]] = frozenset({"workoutDetail"})
TECHNICAL_SCREENS: Final[frozenset[str]] = PROGRESSION_SCREENS | RECOVERY_SCREENS | NUTRITION_SCREENS

# =============================================================================
# NUTRITION (Mifflin-St Jeor, male constant)
# =============================================================================

BMR_ACTIVITY_FACTOR: Final[float] = 1.55
WORKOUT_KCAL_PER_MINUTE: Final[float] = 8.0
DEFAULT_NUTRIENTS: Final[dict[str, float]] = {
    "calories": 2000.0,
    "protein": 150.0,
    "carbs": 250.0,
    "fats": 70.0,
}

# goal -> (calorie multiplier, protein g/kg, fat share of calories)
NUTRITION_GOALS: Final[dict[str, tuple[float, float, float]]] = {
    "definition": (0.85, 2.2, 0.25),
    "strength": (1.10, 2.0, 0.30),
    "muscle_mass": (1.20, 2.5, 0.25),
    "endurance": (1.15, 1.8, 0.20),
    "maintenance": (1.00, 2.0, 0.25),
}

# goal -> (workout kcal multiplier, protein g/min, carbs g/min, fats g/min)
WORKOUT_NUTRITION_ADJUSTMENT: Final[dict[str, tuple[float, float, float, float]]] = {
    "definition": (0.5, 0.3, 0.2, 0.1),
    "strength": (1.5, 0.5, 0.8, 0.2),
    "muscle_mass": (1.5, 0.5, 0.8, 0.2),
    "endurance": (1.3, 0.3, 1.0, 0.2),
    "maintenance": (1.0, 0.4, 0.5, 0.1),
}

# meal type -> (name, share of daily nutrients)
MEAL_SHARES: Final[dict[str, tuple[str, float]]] = {
    "breakfast": ("Desayuno", 0.25),
    "lunch": ("Almuerzo", 0.30),
    "dinner": ("Cena", 0.25),
    "snack": ("Tentempié", 0.10),
}
DEFAULT_SNACK_TIMES: Final[tuple[str, ...]] = ("10:30", "15:30")
PRE_WORKOUT_MINUTES: Final[int] = 60  # Pre-workout meal this long before start
POST_WORKOUT_MINUTES: Final[int] = 30  # Post-workout meal this long after the end
WORKOUT_MEAL_NUTRIENTS: Final[dict[str, dict[str, float]]] = {
    "pre_workout": {"calories": 300.0, "protein": 20.0, "carbs": 40.0, "fats": 5.0},
    "post_workout": {"calories": 350.0, "protein": 30.0, "carbs": 35.0, "fats": 8.0},
}

# =============================================================================
# CONTEXT BUILDER
# =============================================================================

RECENT_SESSIONS_LIMIT: Final[int] = 10
CONTEXT_FETCH_WORKERS: Final[int] = 5


# =============================================================================
# OVERRIDABLE SETTINGS
# =============================================================================


def _from_section(cls, section: dict[str, Any] | None):
    """Build a settings dataclass from a YAML section, ignoring unknown keys."""
    if not section:
        return cls()
    names = {f.name for f in fields(cls)}
    kwargs = {k.lower(): v for k, v in section.items() if k.lower() in names}
    return cls(**kwargs)


@dataclass(frozen=True)
class RecoverySettings:
    """Tunable recovery thresholds."""

    window_days: int = RECOVERY_WINDOW_DAYS
    fatigue_extreme: float = FATIGUE_EXTREME
    fatigue_high: float = FATIGUE_HIGH
    fatigue_moderate: float = FATIGUE_MODERATE
    default_score: float = DEFAULT_RECOVERY_SCORE
    sleep_priority_threshold: float = SLEEP_PRIORITY_THRESHOLD

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "RecoverySettings":
        return _from_section(cls, config.get("recovery"))


@dataclass(frozen=True)
class ProgressionSettings:
    """Tunable progression percentages."""

    weight_increase_pct: float = WEIGHT_INCREASE_PCT
    weight_decrease_pct: float = WEIGHT_DECREASE_PCT
    deload_pct: float = DELOAD_PCT
    volume_decrease_pct: float = VOLUME_DECREASE_PCT
    intensity_increase_pct: float = INTENSITY_INCREASE_PCT

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "ProgressionSettings":
        return _from_section(cls, config.get("progression"))


@dataclass(frozen=True)
class PersonaSettings:
    """Tunable persona thresholds."""

    consistency_high: float = CONSISTENCY_HIGH
    consistency_low: float = CONSISTENCY_LOW
    struggle_min_sessions: int = STRUGGLE_MIN_SESSIONS
    struggle_recovery_score: float = STRUGGLE_RECOVERY_SCORE

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "PersonaSettings":
        return _from_section(cls, config.get("persona"))


@dataclass(frozen=True)
class CoachSettings:
    """All engine settings, as loaded from coaching.yaml."""

    recovery: RecoverySettings = RecoverySettings()
    progression: ProgressionSettings = ProgressionSettings()
    persona: PersonaSettings = PersonaSettings()

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "CoachSettings":
        return cls(
            recovery=RecoverySettings.from_config(config),
            progression=ProgressionSettings.from_config(config),
            persona=PersonaSettings.from_config(config),
        )
