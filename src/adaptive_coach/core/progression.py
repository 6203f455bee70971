"""
Load progression engine.

Converts per-set performance (weight, reps, RPE) into trend signals, at
most one concrete adjustment per analysis, and a periodization-phase
decision for the next block.

Trend signals are on a 0-1 scale where 0.5 means "no change"; each
compares the most recent three metrics against the three before them.
"""

import logging
import threading
from collections import defaultdict
from dataclasses import replace
from datetime import date
from typing import TYPE_CHECKING, Callable

from .config import (
    CONFIDENCE_DELOAD,
    CONFIDENCE_INTENSITY_INCREASE,
    CONFIDENCE_VOLUME_DECREASE,
    CONFIDENCE_WEIGHT_DECREASE,
    CONFIDENCE_WEIGHT_INCREASE,
    DELOAD_FAILED_COUNT,
    DELOAD_HIGH_RPE,
    DELOAD_HIGH_RPE_COUNT,
    DELOAD_LOOKBACK,
    DELOAD_LOW_RIR,
    DELOAD_LOW_RIR_COUNT,
    EASY_RIR,
    EASY_RPE,
    EPLEY_DIVISOR,
    HARD_RIR,
    HARD_RPE,
    INTENSITY_TREND_HIGH,
    INTENSITY_TREND_MIN,
    NEUTRAL_TREND,
    PERFORMANCE_TREND_HIGH,
    TREND_WINDOW,
    VOLUME_TREND_HIGH,
    VOLUME_TREND_LOW,
    ProgressionSettings,
)
from .dates import iso, within_prior_days
from .models import (
    LoadProgressionMetric,
    PeriodizationPhase,
    PlannedExercise,
    PlannedSet,
    ProgressionAdjustment,
    ProgressionHistoryEntry,
    ProgressionPlan,
    WorkoutDay,
    WorkoutPlan,
    WorkoutSession,
)

if TYPE_CHECKING:
    from ..io.repository import CoachRepository

logger = logging.getLogger(__name__)


def _clamp01(x: float) -> float:
    return max(0.0, min(1.0, x))


def _mean(values: list[float]) -> float:
    return sum(values) / len(values)


# =============================================================================
# METRIC EXTRACTION
# =============================================================================


def calculate_rir(rpe: float) -> float:
    """Reps in reserve: max(0, 10 - RPE)."""
    return max(0.0, 10.0 - rpe)


def estimate_1rm(weight: float, reps: int) -> float:
    """Epley estimate: weight * (1 + reps / 30)."""
    return weight * (1 + reps / EPLEY_DIVISOR)


def metrics_from_session(session: WorkoutSession) -> list[LoadProgressionMetric]:
    """
    One progression metric per set with weight, reps and RPE recorded.

    Sets missing any of the three are skipped. A set counts as completed
    when at least one rep was performed.
    """
    metrics: list[LoadProgressionMetric] = []
    for exercise in session.exercises:
        for s in exercise.sets:
            if not s.is_complete:
                continue
            metrics.append(
                LoadProgressionMetric(
                    exercise_name=exercise.name,
                    date=session.date,
                    weight=float(s.weight),  # type: ignore[arg-type]
                    reps=int(s.reps),  # type: ignore[arg-type]
                    rpe=float(s.rpe),  # type: ignore[arg-type]
                    rir=calculate_rir(float(s.rpe)),  # type: ignore[arg-type]
                    completed=s.reps > 0,  # type: ignore[operator]
                )
            )
    return metrics


# =============================================================================
# TREND SIGNALS
# =============================================================================


def _windows(
    metrics: list[LoadProgressionMetric],
) -> tuple[list[LoadProgressionMetric], list[LoadProgressionMetric]] | None:
    """Split newest-first metrics into (recent <=3, prior <=3); None if not comparable."""
    if len(metrics) < 2:
        return None
    recent = metrics[:TREND_WINDOW]
    older = metrics[TREND_WINDOW:TREND_WINDOW * 2]
    if not older:
        return None
    return recent, older


def _relative_trend(recent_value: float, older_value: float) -> float:
    if recent_value == 0:
        return NEUTRAL_TREND
    return _clamp01((recent_value - older_value) / recent_value + NEUTRAL_TREND)


def performance_trend(metrics: list[LoadProgressionMetric]) -> float:
    """Higher when recent sets felt easier (lower RPE) than before."""
    windows = _windows(metrics)
    if windows is None:
        return NEUTRAL_TREND
    recent, older = windows
    recent_rpe = _mean([m.rpe for m in recent])
    older_rpe = _mean([m.rpe for m in older])
    return _clamp01((older_rpe - recent_rpe) / 10 + NEUTRAL_TREND)


def volume_trend(metrics: list[LoadProgressionMetric]) -> float:
    """Relative change of mean set volume (weight x reps)."""
    windows = _windows(metrics)
    if windows is None:
        return NEUTRAL_TREND
    recent, older = windows
    return _relative_trend(
        _mean([m.weight * m.reps for m in recent]),
        _mean([m.weight * m.reps for m in older]),
    )


def _relative_intensity(m: LoadProgressionMetric) -> float:
    one_rm = estimate_1rm(m.weight, m.reps)
    return m.weight / one_rm if one_rm > 0 else 0.0


def intensity_trend(metrics: list[LoadProgressionMetric]) -> float:
    """Relative change of weight as a fraction of estimated 1RM."""
    windows = _windows(metrics)
    if windows is None:
        return NEUTRAL_TREND
    recent, older = windows
    return _relative_trend(
        _mean([_relative_intensity(m) for m in recent]),
        _mean([_relative_intensity(m) for m in older]),
    )


def should_deload(metrics: list[LoadProgressionMetric]) -> bool:
    """
    Deload trigger over the latest four metrics.

    Fires when at least 3 have RPE > 8, at least 2 were not completed, or
    at least 3 have RIR < 1. Needs four metrics.
    """
    if len(metrics) < DELOAD_LOOKBACK:
        return False
    latest = metrics[:DELOAD_LOOKBACK]
    high_rpe = sum(1 for m in latest if m.rpe > DELOAD_HIGH_RPE)
    failed = sum(1 for m in latest if not m.completed)
    low_rir = sum(1 for m in latest if m.rir < DELOAD_LOW_RIR)
    return (
        high_rpe >= DELOAD_HIGH_RPE_COUNT
        or failed >= DELOAD_FAILED_COUNT
        or low_rir >= DELOAD_LOW_RIR_COUNT
    )


# =============================================================================
# DECISIONS
# =============================================================================


def decide_adjustment(
    metrics: list[LoadProgressionMetric],
    perf_trend: float,
    int_trend: float,
    deload: bool,
    settings: ProgressionSettings | None = None,
) -> ProgressionAdjustment | None:
    """
    Pick at most one adjustment from the latest metric; first rule wins.

    1. Easy set (RPE < 7 and RIR > 3): add weight.
    2. Hard set (RPE > 8 or RIR < 1): deload if triggered, else trim weight.
    3. Set not completed: cut volume.
    4. Improving performance and intensity: raise intensity.
    """
    s = settings or ProgressionSettings()
    latest = metrics[0]
    name = latest.exercise_name

    if latest.rpe < EASY_RPE and latest.rir > EASY_RIR:
        return ProgressionAdjustment(
            exercise_name=name,
            adjustment_type="weight",
            value=s.weight_increase_pct,
            reason="RPE bajo y muchas repeticiones en reserva: hay margen para subir el peso",
            confidence=CONFIDENCE_WEIGHT_INCREASE,
        )

    if latest.rpe > HARD_RPE or latest.rir < HARD_RIR:
        if deload:
            return ProgressionAdjustment(
                exercise_name=name,
                adjustment_type="deload",
                value=s.deload_pct,
                reason="Fatiga acumulada en las últimas series: semana de descarga",
                confidence=CONFIDENCE_DELOAD,
            )
        return ProgressionAdjustment(
            exercise_name=name,
            adjustment_type="weight",
            value=s.weight_decrease_pct,
            reason="RPE muy alto en la última serie: reduce ligeramente el peso",
            confidence=CONFIDENCE_WEIGHT_DECREASE,
        )

    if not latest.completed:
        return ProgressionAdjustment(
            exercise_name=name,
            adjustment_type="volume",
            value=s.volume_decrease_pct,
            reason="La última serie no se completó: reduce el volumen",
            confidence=CONFIDENCE_VOLUME_DECREASE,
        )

    if perf_trend > PERFORMANCE_TREND_HIGH and int_trend > INTENSITY_TREND_MIN:
        return ProgressionAdjustment(
            exercise_name=name,
            adjustment_type="intensity",
            value=s.intensity_increase_pct,
            reason="Rendimiento e intensidad en alza: sube la intensidad",
            confidence=CONFIDENCE_INTENSITY_INCREASE,
        )

    return None


def determine_next_phase(perf_trend: float, vol_trend: float, deload: bool) -> PeriodizationPhase:
    if deload:
        return "deload"
    if perf_trend > PERFORMANCE_TREND_HIGH and vol_trend > VOLUME_TREND_HIGH:
        return "intensification"
    return "accumulation"


def recommended_weight(current_weight: float, adjustments: list[ProgressionAdjustment]) -> float:
    """Scale by the summed weight-type percentages; other types leave weight alone."""
    pct = sum(a.value for a in adjustments if a.adjustment_type == "weight")
    return round(current_weight * (1 + pct / 100), 2)


def progression_notes(perf_trend: float, vol_trend: float, int_trend: float) -> list[str]:
    notes: list[str] = []
    if perf_trend > PERFORMANCE_TREND_HIGH:
        notes.append("Progreso consistente: el esfuerzo percibido está bajando")
    if vol_trend < VOLUME_TREND_LOW:
        notes.append("Volumen bajo: considera añadir series o repeticiones")
    if int_trend > INTENSITY_TREND_HIGH:
        notes.append("Intensidad alta: vigila la técnica y la recuperación")
    return notes


def build_progression_plan(
    exercise_name: str,
    metrics: list[LoadProgressionMetric],
    settings: ProgressionSettings | None = None,
) -> ProgressionPlan:
    """
    Analyze newest-first metrics for one exercise into a plan.

    Args:
        exercise_name: Exercise being analyzed
        metrics: Its progression metrics, newest first

    Returns:
        ProgressionPlan; zero weights and an explanatory note when empty
    """
    if not metrics:
        return ProgressionPlan(
            exercise_name=exercise_name,
            current_weight=0.0,
            recommended_weight=0.0,
            next_phase="accumulation",
            adjustments=(),
            notes=("Aún no hay datos suficientes: registra algunas series con peso, repeticiones y RPE",),
        )

    perf = performance_trend(metrics)
    vol = volume_trend(metrics)
    inten = intensity_trend(metrics)
    deload = should_deload(metrics)

    adjustment = decide_adjustment(metrics, perf, inten, deload, settings)
    adjustments = [adjustment] if adjustment is not None else []
    current = metrics[0].weight

    return ProgressionPlan(
        exercise_name=exercise_name,
        current_weight=current,
        recommended_weight=recommended_weight(current, adjustments),
        next_phase=determine_next_phase(perf, vol, deload),
        adjustments=adjustments,
        notes=progression_notes(perf, vol, inten),
    )


# =============================================================================
# PLAN TRANSFORMATION
# =============================================================================


def _scale_set(s: PlannedSet, pct: float) -> PlannedSet:
    if s.weight is None:
        return s
    return replace(s, weight=round(s.weight * (1 + pct / 100), 2))


def apply_progression_adjustments(
    plan: WorkoutPlan,
    adjustments: list[ProgressionAdjustment],
) -> tuple[WorkoutPlan, list[ProgressionAdjustment]]:
    """
    Apply unapplied weight adjustments to a workout plan.

    Every set of every exercise whose name matches an adjustment has its
    weight scaled by that adjustment's percentage. Adjustments already
    marked applied are skipped, so re-applying the returned list is a no-op.
    The input plan is left untouched.

    Args:
        plan: Workout plan to transform
        adjustments: Adjustments to apply

    Returns:
        (new plan, adjustments with the applied ones marked)
    """
    pending = [a for a in adjustments if a.adjustment_type == "weight" and not a.applied]
    if not pending:
        return plan, list(adjustments)

    days: list[WorkoutDay] = []
    for day in plan.days:
        exercises: list[PlannedExercise] = []
        for ex in day.exercises:
            sets = ex.sets
            for adj in pending:
                if adj.exercise_name == ex.name:
                    sets = tuple(_scale_set(s, adj.value) for s in sets)
            exercises.append(replace(ex, sets=sets) if sets is not ex.sets else ex)
        days.append(replace(day, exercises=exercises))

    marked = [
        replace(a, applied=True) if a in pending else a
        for a in adjustments
    ]
    return replace(plan, days=days), marked


# =============================================================================
# ENGINE
# =============================================================================


class LoadProgressionEngine:
    """Per-user progression metrics and the current plan per exercise."""

    def __init__(
        self,
        repository: "CoachRepository",
        settings: ProgressionSettings | None = None,
        today: Callable[[], date] = date.today,
    ):
        self.repository = repository
        self.settings = settings or ProgressionSettings()
        self.today = today
        self.analyses_run = 0
        self._locks: defaultdict[tuple[str, str], threading.Lock] = defaultdict(threading.Lock)
        self._locks_guard = threading.Lock()

    def _lock_for(self, user_id: str, exercise_name: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks[(user_id, exercise_name)]

    def record_progression_metrics(self, session: WorkoutSession) -> list[LoadProgressionMetric]:
        """Append metrics for every fully recorded set of a session."""
        metrics = metrics_from_session(session)
        self.repository.add_progression_metrics(session.user_id, metrics)
        logger.debug("Recorded %d progression metrics for %s", len(metrics), session.user_id)
        return metrics

    def analyze_progression(self, user_id: str, exercise_name: str) -> ProgressionPlan:
        """
        Re-analyze one exercise and replace its stored plan.

        Args:
            user_id: Owner of the metrics
            exercise_name: Exercise to analyze

        Returns:
            The new ProgressionPlan
        """
        with self._lock_for(user_id, exercise_name):
            metrics = self.repository.get_progression_metrics(user_id, exercise_name)
            plan = build_progression_plan(exercise_name, metrics, self.settings)
            if metrics:
                self.repository.save_progression_plan(user_id, plan)
            self.analyses_run += 1
        logger.debug(
            "Progression for %s/%s: phase=%s adjustments=%d",
            user_id, exercise_name, plan.next_phase, len(plan.adjustments),
        )
        return plan

    def get_progression_plans(self, user_id: str) -> list[ProgressionPlan]:
        return self.repository.get_progression_plans(user_id)

    def get_progression_history(self, user_id: str, exercise_name: str, days: int = 30) -> list[ProgressionHistoryEntry]:
        """Per-set history rows from the last ``days`` days, newest first."""
        today = iso(self.today())
        return [
            ProgressionHistoryEntry(
                exercise_name=m.exercise_name,
                date=m.date,
                weight=m.weight,
                reps=m.reps,
                rpe=m.rpe,
                rir=m.rir,
                volume=m.weight * m.reps,
                intensity=_relative_intensity(m),
            )
            for m in self.repository.get_progression_metrics(user_id, exercise_name)
            if within_prior_days(m.date, today, days)
        ]
