"""
Habit and pattern tracking.

Keeps one rolling UserHabit per user, updated after every recorded
session, and derives the likely next training slot and habit-driven
reminders from it.
"""

import logging
import threading
from collections import Counter, defaultdict
from dataclasses import replace
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from .config import (
    HIGH_FREQUENCY_SESSIONS,
    LOW_FREQUENCY_SESSIONS,
    MAX_SESSION_HISTORY,
    PATTERN_TOP_N,
    SCORE_LOW,
)
from .dates import parse_date
from .models import (
    HabitRecommendations,
    RecoveryAnalysis,
    TrainingPatternPrediction,
    UserHabit,
    WorkoutSession,
)

if TYPE_CHECKING:
    from ..io.repository import CoachRepository

logger = logging.getLogger(__name__)


def apply_session_to_habit(habit: UserHabit, session: WorkoutSession) -> UserHabit:
    """
    Fold one session into a habit record, returning a new record.

    The session date is prepended to a 10-entry history and frequency is
    the history length. Novel start times and weekdays are added to the
    preferred sets, and the average duration is updated incrementally:
    ((avg * (n - 1)) + duration) / n.

    Args:
        habit: Current habit record
        session: Newly recorded session

    Returns:
        Updated UserHabit (the input is not modified)
    """
    history = [session.date] + list(habit.last_training_sessions)
    history = history[:MAX_SESSION_HISTORY]

    times = list(habit.preferred_training_times)
    if session.start_time and session.start_time not in times:
        times.append(session.start_time)

    days = list(habit.preferred_training_days)
    weekday = parse_date(session.date).weekday()
    if weekday not in days:
        days.append(weekday)

    avg = habit.average_training_duration
    if session.duration_minutes is not None:
        n = len(history)
        avg = ((avg * (n - 1)) + session.duration_minutes) / n

    return replace(
        habit,
        last_training_sessions=history,
        training_frequency=len(history),
        preferred_training_times=times,
        preferred_training_days=days,
        average_training_duration=avg,
    )


def predict_training_patterns(habit: UserHabit | None, now: datetime) -> TrainingPatternPrediction | None:
    """
    Top training times and weekdays, and the next likely session.

    Weekdays are ranked by how often they appear in the recent session
    history (ties keep their preferred order); times keep their preferred
    order. The next session is the next occurrence, strictly after today,
    of the top weekday at the top time.

    Returns:
        None when there is no habit record
    """
    if habit is None:
        return None

    times = habit.preferred_training_times[:PATTERN_TOP_N]

    seen = Counter(parse_date(d).weekday() for d in habit.last_training_sessions)
    ranked_days = sorted(
        habit.preferred_training_days,
        key=lambda d: (-seen[d], habit.preferred_training_days.index(d)),
    )
    days = ranked_days[:PATTERN_TOP_N]

    next_session = None
    if times and days:
        hour, minute = (int(x) for x in times[0].split(":"))
        days_ahead = (days[0] - now.weekday()) % 7
        if days_ahead == 0:
            days_ahead = 7
        next_day = now + timedelta(days=days_ahead)
        next_session = next_day.replace(hour=hour, minute=minute, second=0, microsecond=0)

    return TrainingPatternPrediction(
        likely_times=times,
        likely_days=days,
        next_likely_session=next_session,
        average_duration=habit.average_training_duration,
    )


def generate_habit_recommendations(
    habit: UserHabit | None,
    recovery_analysis: RecoveryAnalysis | None = None,
) -> HabitRecommendations:
    """
    Reminders, rest advice and nutrition-timing tips from habits.

    Args:
        habit: User's habit record (None yields empty lists)
        recovery_analysis: Today's analysis, if available

    Returns:
        HabitRecommendations
    """
    if habit is None:
        return HabitRecommendations()

    reminders = [f"Recordatorio: entreno programado a las {t}" for t in habit.preferred_training_times]

    rest: list[str] = []
    if habit.training_frequency >= HIGH_FREQUENCY_SESSIONS:
        rest.append("Considera un día de descanso activo esta semana")
    elif habit.training_frequency <= LOW_FREQUENCY_SESSIONS:
        rest.append("Intenta entrenar con más frecuencia para ver mejores resultados")

    if recovery_analysis is not None:
        if recovery_analysis.fatigue_level in ("high", "extreme"):
            rest.append(
                f"Nivel de fatiga {recovery_analysis.fatigue_level}: reduce la intensidad o toma un día libre"
            )
        if recovery_analysis.recovery_score < SCORE_LOW:
            rest.append(
                f"Recuperación baja ({recovery_analysis.recovery_score}/100): prioriza descansar"
            )
        rest.extend(
            f"{r.title}: {r.description}" for r in recovery_analysis.recommendations if r.priority == "high"
        )

    tips: list[str] = []
    for t in habit.preferred_training_times:
        hour = int(t.split(":")[0])
        if hour < 12:
            tips.append("Desayuna proteína y carbohidratos complejos antes del entreno de la mañana")
        elif hour < 17:
            tips.append("Haz una comida ligera 1-2 horas antes del entreno de la tarde")
        else:
            tips.append("Evita entrenar con el estómago lleno por la noche")

    return HabitRecommendations(
        workout_reminders=reminders,
        rest_recommendations=rest,
        nutrition_tips=tips,
    )


class HabitTracker:
    """Owns the per-user habit records."""

    def __init__(self, repository: "CoachRepository"):
        self.repository = repository
        self._locks: defaultdict[str, threading.Lock] = defaultdict(threading.Lock)
        self._locks_guard = threading.Lock()

    def _lock_for(self, user_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks[user_id]

    def initialize_user_habit_tracking(self, user_id: str) -> UserHabit:
        """Create the default habit record if the user has none; return the current one."""
        with self._lock_for(user_id):
            habit = self.repository.get_user_habits(user_id)
            if habit is None:
                habit = UserHabit(user_id=user_id)
                self.repository.save_user_habits(habit)
                logger.debug("Initialized habit tracking for %s", user_id)
            return habit

    def get_user_habits(self, user_id: str) -> UserHabit | None:
        return self.repository.get_user_habits(user_id)

    def update_habits(self, session: WorkoutSession) -> UserHabit:
        """Fold a recorded session into the user's habit record."""
        with self._lock_for(session.user_id):
            habit = self.repository.get_user_habits(session.user_id) or UserHabit(user_id=session.user_id)
            updated = apply_session_to_habit(habit, session)
            self.repository.save_user_habits(updated)
        return updated

    def predict_training_patterns(self, user_id: str, now: datetime | None = None) -> TrainingPatternPrediction | None:
        return predict_training_patterns(self.repository.get_user_habits(user_id), now or datetime.now())

    def predict_next_training_time(self, user_id: str, now: datetime | None = None) -> datetime | None:
        """Next likely session start, or None without enough habit data."""
        prediction = self.predict_training_patterns(user_id, now)
        return prediction.next_likely_session if prediction is not None else None

    def generate_recommendations(
        self, user_id: str, recovery_analysis: RecoveryAnalysis | None = None
    ) -> HabitRecommendations:
        return generate_habit_recommendations(self.repository.get_user_habits(user_id), recovery_analysis)
