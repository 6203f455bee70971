"""
Recovery scoring engine.

Turns daily subjective check-ins and recent training load into a fatigue
tier, a 0-100 recovery score, prioritized recommendations and a list of
upcoming days at risk of accumulated fatigue.

Formulas:
    fatigue composite = ((10-E) + S + (10-Sl) + St + (10-M) + P_dur) / 6
                        (P_dur / 4 when there are no check-ins)
    metric score      = 10 * (0.3E + 0.2(10-S) + 0.3Sl + 0.1(10-St) + 0.1M)
    recovery score    = clamp(mean(metric score) + load adjustment, 0, 100)

All scoring functions are pure; RecoveryEngine adds the per-(user, date)
cache and persistence.
"""

import logging
import threading
from collections import defaultdict
from datetime import date
from typing import TYPE_CHECKING, Any, Callable, Literal, Mapping

from .config import (
    DEFAULT_SESSION_DURATION,
    DURATION_PENALTY_STEPS,
    FATIGUE_DIVISOR_NO_METRICS,
    FATIGUE_DIVISOR_WITH_METRICS,
    FATIGUE_PREDICTION_MIN_SESSIONS,
    FATIGUE_PREDICTION_RADIUS_DAYS,
    LOAD_PENALTY_STEPS,
    LONG_SESSION_MINUTES,
    LONG_SESSION_PENALTY,
    METRIC_SCALE,
    PREDICTION_HORIZON_DAYS,
    RECOVERY_TREND_DELTA,
    SCORE_LOW,
    SCORE_MODERATE,
    SCORE_REST,
    SLEEP_PRIORITY_METRICS,
    WEIGHT_ENERGY,
    WEIGHT_MOTIVATION,
    WEIGHT_SLEEP,
    WEIGHT_SORENESS,
    WEIGHT_STRESS,
    RecoverySettings,
)
from .dates import days_between, iso, parse_date, shift, within_prior_days
from .models import (
    FatigueLevel,
    RecoveryAnalysis,
    RecoveryMetric,
    RecoveryRecommendation,
    UserHabit,
    WorkoutIntensity,
    WorkoutSession,
)

if TYPE_CHECKING:
    from ..io.repository import CoachRepository

logger = logging.getLogger(__name__)

RecoveryTrend = Literal["improving", "declining", "stable"]


# =============================================================================
# FATIGUE
# =============================================================================


def average_session_duration(sessions: list[WorkoutSession]) -> float | None:
    """Mean duration over sessions that logged one; None if none did."""
    durations = [s.duration_minutes for s in sessions if s.duration_minutes is not None]
    if not durations:
        return None
    return sum(durations) / len(durations)


def duration_penalty(avg_duration: float) -> float:
    """Fatigue penalty (0-3) for long average sessions."""
    for threshold, penalty in DURATION_PENALTY_STEPS:
        if avg_duration > threshold:
            return penalty
    return 0.0


def fatigue_composite(metrics: list[RecoveryMetric], sessions: list[WorkoutSession]) -> float:
    """
    Combine check-in averages and session length into a 0-10 fatigue score.

    Args:
        metrics: Check-ins in the analysis window
        sessions: Sessions in the analysis window

    Returns:
        Composite score; higher means more fatigued
    """
    avg_duration = average_session_duration(sessions)
    penalty = duration_penalty(avg_duration if avg_duration is not None else DEFAULT_SESSION_DURATION)

    if not metrics:
        return penalty / FATIGUE_DIVISOR_NO_METRICS

    n = len(metrics)
    energy = sum(m.energy_level for m in metrics) / n
    soreness = sum(m.muscle_soreness for m in metrics) / n
    sleep = sum(m.sleep_quality for m in metrics) / n
    stress = sum(m.stress_level for m in metrics) / n
    motivation = sum(m.motivation for m in metrics) / n

    total = (10 - energy) + soreness + (10 - sleep) + stress + (10 - motivation) + penalty
    return total / FATIGUE_DIVISOR_WITH_METRICS


def classify_fatigue(composite: float, settings: RecoverySettings | None = None) -> FatigueLevel:
    """Map a composite score to a tier. Monotonic: a higher composite never lowers the tier."""
    s = settings or RecoverySettings()
    if composite >= s.fatigue_extreme:
        return "extreme"
    if composite >= s.fatigue_high:
        return "high"
    if composite >= s.fatigue_moderate:
        return "moderate"
    return "low"


def calculate_fatigue_level(
    metrics: list[RecoveryMetric],
    sessions: list[WorkoutSession],
    settings: RecoverySettings | None = None,
) -> FatigueLevel:
    if not metrics and not sessions:
        return "low"
    return classify_fatigue(fatigue_composite(metrics, sessions), settings)


# =============================================================================
# RECOVERY SCORE
# =============================================================================


def metric_score(metric: RecoveryMetric) -> float:
    """Weighted 0-100 score of a single check-in."""
    return (
        metric.energy_level * WEIGHT_ENERGY * METRIC_SCALE
        + (10 - metric.muscle_soreness) * WEIGHT_SORENESS * METRIC_SCALE
        + metric.sleep_quality * WEIGHT_SLEEP * METRIC_SCALE
        + (10 - metric.stress_level) * WEIGHT_STRESS * METRIC_SCALE
        + metric.motivation * WEIGHT_MOTIVATION * METRIC_SCALE
    )


def workout_load_adjustment(sessions: list[WorkoutSession]) -> float:
    """
    Score penalty for recent training load.

    Stepped penalty on the average duration, plus a fixed penalty for each
    session longer than 75 minutes.
    """
    avg_duration = average_session_duration(sessions)
    if avg_duration is None:
        return 0.0

    adjustment = 0.0
    for threshold, penalty in LOAD_PENALTY_STEPS:
        if avg_duration > threshold:
            adjustment = penalty
            break

    long_sessions = sum(
        1 for s in sessions if s.duration_minutes is not None and s.duration_minutes > LONG_SESSION_MINUTES
    )
    return adjustment - long_sessions * LONG_SESSION_PENALTY


def calculate_recovery_score(
    metrics: list[RecoveryMetric],
    sessions: list[WorkoutSession],
    settings: RecoverySettings | None = None,
) -> int:
    """
    Recovery score in [0, 100].

    Args:
        metrics: Check-ins in the analysis window
        sessions: Sessions in the analysis window
        settings: Engine settings (default score when no check-ins)

    Returns:
        Rounded, clamped integer score
    """
    s = settings or RecoverySettings()
    if metrics:
        base = sum(metric_score(m) for m in metrics) / len(metrics)
    else:
        base = s.default_score

    score = base + workout_load_adjustment(sessions)
    return int(round(max(0.0, min(100.0, score))))


# =============================================================================
# RECOMMENDATIONS
# =============================================================================

_BASELINE_RECOMMENDATIONS = (
    RecoveryRecommendation(
        type="stretching",
        title="Sesión de estiramientos",
        description="Dedica 10-15 minutos a estirar los grupos musculares principales",
        priority="medium",
        duration="10-15 minutos",
    ),
    RecoveryRecommendation(
        type="mobility",
        title="Trabajo de movilidad",
        description="Ejercicios de movilidad articular para mantener el rango de movimiento",
        priority="medium",
        duration="15-20 minutos",
    ),
)

_TIER_RECOMMENDATIONS: dict[str, tuple[RecoveryRecommendation, ...]] = {
    "extreme": (
        RecoveryRecommendation(
            type="rest",
            title="Día de descanso completo",
            description="Tu cuerpo necesita recuperarse; evita cualquier entrenamiento intenso hoy",
            priority="high",
        ),
        RecoveryRecommendation(
            type="nap",
            title="Siesta reparadora",
            description="Una siesta de 20-30 minutos ayuda a restaurar la energía",
            priority="high",
            duration="20-30 minutos",
        ),
        RecoveryRecommendation(
            type="sauna",
            title="Sesión de sauna",
            description="El calor relaja la musculatura y mejora la circulación",
            priority="medium",
            duration="15-20 minutos",
        ),
    ),
    "high": (
        RecoveryRecommendation(
            type="active_recovery",
            title="Recuperación activa",
            description="Actividad suave como caminar o nadar a ritmo cómodo",
            priority="high",
            intensity="low",
        ),
        RecoveryRecommendation(
            type="massage",
            title="Masaje de descarga",
            description="Un masaje alivia la tensión muscular y acelera la recuperación",
            priority="medium",
        ),
    ),
    "moderate": (
        RecoveryRecommendation(
            type="light_training",
            title="Entrenamiento ligero",
            description="Puedes entrenar, pero reduce intensidad y volumen",
            priority="medium",
            intensity="low",
        ),
    ),
    "low": (),
}

_SLEEP_PRIORITY = RecoveryRecommendation(
    type="rest",
    title="Prioriza el sueño",
    description="Intenta dormir 7-9 horas para recuperarte mejor",
    priority="high",
)


def generate_recovery_recommendations(
    fatigue_level: FatigueLevel,
    metrics: list[RecoveryMetric],
    settings: RecoverySettings | None = None,
) -> list[RecoveryRecommendation]:
    """
    Build the ordered recommendation list.

    Stretching and mobility always come first, followed by the entries for
    the fatigue tier and, when recent sleep is poor, a sleep-priority entry.

    Args:
        fatigue_level: Classified fatigue tier
        metrics: Check-ins in the window, newest first

    Returns:
        Recommendations in display order
    """
    s = settings or RecoverySettings()
    recommendations = list(_BASELINE_RECOMMENDATIONS)
    recommendations.extend(_TIER_RECOMMENDATIONS[fatigue_level])

    latest = metrics[:SLEEP_PRIORITY_METRICS]
    if latest:
        avg_sleep = sum(m.sleep_quality for m in latest) / len(latest)
        if avg_sleep < s.sleep_priority_threshold:
            recommendations.append(_SLEEP_PRIORITY)

    return recommendations


# =============================================================================
# PREDICTION & INTENSITY
# =============================================================================


def predict_fatigue_days(
    habit: UserHabit | None,
    sessions: list[WorkoutSession],
    target_date: str,
) -> list[str]:
    """
    Upcoming preferred training days at risk of accumulated fatigue.

    Each of the next 7 days that falls on a preferred weekday is flagged if
    at least 3 sessions lie within 3 days of it.

    Returns:
        ISO dates in chronological order; empty without a habit record
    """
    if habit is None or not habit.preferred_training_days:
        return []

    flagged: list[str] = []
    for offset in range(1, PREDICTION_HORIZON_DAYS + 1):
        candidate = shift(target_date, offset)
        if parse_date(candidate).weekday() not in habit.preferred_training_days:
            continue
        nearby = sum(1 for s in sessions if days_between(s.date, candidate) <= FATIGUE_PREDICTION_RADIUS_DAYS)
        if nearby >= FATIGUE_PREDICTION_MIN_SESSIONS:
            flagged.append(candidate)
    return flagged


def suggest_workout_intensity(fatigue_level: FatigueLevel, recovery_score: int) -> WorkoutIntensity:
    """Low scores force rest/low/moderate; otherwise the fatigue tier decides."""
    if recovery_score < SCORE_REST:
        return "rest"
    if recovery_score < SCORE_LOW:
        return "low"
    if recovery_score < SCORE_MODERATE:
        return "moderate"
    return {
        "extreme": "rest",
        "high": "low",
        "moderate": "moderate",
        "low": "high",
    }[fatigue_level]


def recovery_trend(analyses: list[RecoveryAnalysis]) -> RecoveryTrend:
    """Compare the newest and oldest score of a newest-first list."""
    if len(analyses) < 2:
        return "stable"
    delta = analyses[0].recovery_score - analyses[-1].recovery_score
    if delta >= RECOVERY_TREND_DELTA:
        return "improving"
    if delta <= -RECOVERY_TREND_DELTA:
        return "declining"
    return "stable"


def build_recovery_analysis(
    target_date: str,
    metrics: list[RecoveryMetric],
    sessions: list[WorkoutSession],
    habit: UserHabit | None,
    settings: RecoverySettings | None = None,
) -> RecoveryAnalysis:
    """
    Compute a full analysis from already-windowed inputs.

    Args:
        target_date: ISO date being analyzed
        metrics: Check-ins in the window, newest first
        sessions: Sessions in the window, newest first
        habit: Habit record for fatigue-day prediction (may be None)

    Returns:
        RecoveryAnalysis with a consistent fatigue tier and score
    """
    fatigue = calculate_fatigue_level(metrics, sessions, settings)
    score = calculate_recovery_score(metrics, sessions, settings)
    return RecoveryAnalysis(
        date=target_date,
        fatigue_level=fatigue,
        recovery_score=score,
        recommendations=generate_recovery_recommendations(fatigue, metrics, settings),
        predicted_fatigue_days=predict_fatigue_days(habit, sessions, target_date),
        suggested_workout_intensity=suggest_workout_intensity(fatigue, score),
    )


# =============================================================================
# ENGINE
# =============================================================================


class RecoveryEngine:
    """
    Cached recovery analysis per (user, date).

    Recomputation for one key is serialized by a per-key lock; the analysis
    is built in memory and stored with a single write.
    """

    def __init__(
        self,
        repository: "CoachRepository",
        settings: RecoverySettings | None = None,
        today: Callable[[], date] = date.today,
    ):
        self.repository = repository
        self.settings = settings or RecoverySettings()
        self.today = today
        self.cache_hits = 0
        self.cache_misses = 0
        self._locks: defaultdict[tuple[str, str], threading.Lock] = defaultdict(threading.Lock)
        self._locks_guard = threading.Lock()

    def _lock_for(self, user_id: str, target_date: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks[(user_id, target_date)]

    def _compute(self, user_id: str, target_date: str) -> RecoveryAnalysis:
        window = self.settings.window_days
        metrics = [
            m for m in self.repository.get_recovery_metrics(user_id)
            if within_prior_days(m.date, target_date, window)
        ]
        sessions = [
            s for s in self.repository.get_workout_sessions(user_id)
            if within_prior_days(s.date, target_date, window)
        ]
        habit = self.repository.get_user_habits(user_id)
        return build_recovery_analysis(target_date, metrics, sessions, habit, self.settings)

    def analyze_recovery(self, user_id: str, target_date: str | None = None) -> RecoveryAnalysis:
        """
        Return the analysis for a date, computing and caching it if needed.

        Args:
            user_id: User to analyze
            target_date: ISO date (defaults to today)

        Returns:
            Cached or freshly computed RecoveryAnalysis
        """
        target_date = target_date or iso(self.today())
        cached = self.repository.get_recovery_analysis(user_id, target_date)
        if cached is not None:
            self.cache_hits += 1
            logger.debug("Recovery analysis for %s on %s served from cache", user_id, target_date)
            return cached

        with self._lock_for(user_id, target_date):
            cached = self.repository.get_recovery_analysis(user_id, target_date)
            if cached is not None:
                self.cache_hits += 1
                return cached
            self.cache_misses += 1
            analysis = self._compute(user_id, target_date)
            self.repository.save_recovery_analysis(user_id, analysis)

        logger.debug(
            "Recovery analysis for %s on %s: fatigue=%s score=%d",
            user_id, target_date, analysis.fatigue_level, analysis.recovery_score,
        )
        return analysis

    get_recovery_analysis = analyze_recovery

    def refresh_recovery_analysis(self, user_id: str, target_date: str) -> RecoveryAnalysis:
        """Recompute the analysis for a date, replacing any cached version."""
        with self._lock_for(user_id, target_date):
            analysis = self._compute(user_id, target_date)
            self.repository.save_recovery_analysis(user_id, analysis)
        return analysis

    def record_recovery_metrics(self, user_id: str, metrics: Mapping[str, Any]) -> RecoveryMetric:
        """
        Store a daily check-in and re-analyze that date.

        Args:
            user_id: User checking in
            metrics: energy_level, muscle_soreness, sleep_quality,
                stress_level, motivation (0-10), optional date and notes

        Returns:
            The stored RecoveryMetric

        Raises:
            ValueError: If a value is missing or outside 0-10
        """
        try:
            metric = RecoveryMetric(
                user_id=user_id,
                date=metrics.get("date") or iso(self.today()),
                energy_level=float(metrics["energy_level"]),
                muscle_soreness=float(metrics["muscle_soreness"]),
                sleep_quality=float(metrics["sleep_quality"]),
                stress_level=float(metrics["stress_level"]),
                motivation=float(metrics["motivation"]),
                notes=metrics.get("notes", ""),
            )
        except KeyError as e:
            raise ValueError(f"Missing recovery metric: {e.args[0]}") from e

        self.repository.add_recovery_metric(metric)
        self.refresh_recovery_analysis(user_id, metric.date)
        return metric

    def get_recent_recovery_analyses(self, user_id: str, days: int = 7) -> list[RecoveryAnalysis]:
        """Stored analyses from the last ``days`` days, newest first."""
        today = iso(self.today())
        return [
            a for a in self.repository.get_recovery_analyses(user_id)
            if within_prior_days(a.date, today, days)
        ]
