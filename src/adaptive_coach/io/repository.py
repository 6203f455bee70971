"""
Domain-level persistence on top of a RecordStore.

Every record is namespaced by user id, so different users never share a
key.  Collection records (sessions, metrics, plans) are read, modified in
memory and written back whole under a per-key lock.
"""

import threading
from collections import defaultdict
from typing import Any, Callable

from ..core.models import (
    LoadProgressionMetric,
    ProgressionPlan,
    RecoveryAnalysis,
    RecoveryMetric,
    UserHabit,
    UserProfile,
    WorkoutPlan,
    WorkoutSession,
)
from .serializers import (
    dict_to_progression_metric,
    dict_to_progression_plan,
    dict_to_recovery_analysis,
    dict_to_recovery_metric,
    dict_to_user_habit,
    dict_to_user_profile,
    dict_to_workout_plan,
    dict_to_workout_session,
    progression_metric_to_dict,
    progression_plan_to_dict,
    recovery_analysis_to_dict,
    recovery_metric_to_dict,
    user_habit_to_dict,
    user_profile_to_dict,
    workout_plan_to_dict,
    workout_session_to_dict,
)
from .store import RecordStore


class CoachRepository:
    """
    Typed access to everything the coach persists for a user.

    Sessions and metrics are returned newest first.
    """

    def __init__(self, store: RecordStore):
        self.store = store
        self._locks: defaultdict[str, threading.Lock] = defaultdict(threading.Lock)
        self._locks_guard = threading.Lock()

    @staticmethod
    def _key(user_id: str, record: str) -> str:
        return f"{user_id}:{record}"

    def _lock_for(self, key: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks[key]

    def _update(self, key: str, default: Any, change: Callable[[Any], Any]) -> None:
        """Read-modify-write one record under its key lock."""
        with self._lock_for(key):
            self.store.set(key, change(self.store.get(key, default)))

    # -- profile -----------------------------------------------------------

    def get_user_data(self, user_id: str) -> UserProfile | None:
        data = self.store.get(self._key(user_id, "profile"))
        return dict_to_user_profile(data) if data is not None else None

    def save_user_data(self, user_id: str, profile: UserProfile) -> None:
        self.store.set(self._key(user_id, "profile"), user_profile_to_dict(profile))

    # -- habits ------------------------------------------------------------

    def get_user_habits(self, user_id: str) -> UserHabit | None:
        data = self.store.get(self._key(user_id, "habit"))
        return dict_to_user_habit(data) if data is not None else None

    def save_user_habits(self, habit: UserHabit) -> None:
        self.store.set(self._key(habit.user_id, "habit"), user_habit_to_dict(habit))

    # -- sessions ----------------------------------------------------------

    def get_workout_sessions(self, user_id: str) -> list[WorkoutSession]:
        """All sessions for the user, newest first."""
        raw = self.store.get(self._key(user_id, "sessions"), [])
        sessions = [dict_to_workout_session(d) for d in raw]
        sessions.sort(key=lambda s: (s.date, s.start_time or ""), reverse=True)
        return sessions

    def add_workout_session(self, session: WorkoutSession) -> None:
        """Append a session; a session with the same id replaces the old one."""
        record = workout_session_to_dict(session)

        def change(rows: list[dict]) -> list[dict]:
            return [r for r in rows if r.get("session_id") != session.session_id] + [record]

        self._update(self._key(session.user_id, "sessions"), [], change)

    # -- recovery ----------------------------------------------------------

    def get_recovery_metrics(self, user_id: str) -> list[RecoveryMetric]:
        raw = self.store.get(self._key(user_id, "recovery_metrics"), [])
        metrics = [dict_to_recovery_metric(d) for d in raw]
        metrics.sort(key=lambda m: m.date, reverse=True)
        return metrics

    def add_recovery_metric(self, metric: RecoveryMetric) -> None:
        """Store a daily check-in; a second check-in on the same date replaces the first."""
        record = recovery_metric_to_dict(metric)

        def change(rows: list[dict]) -> list[dict]:
            return [r for r in rows if r.get("date") != metric.date] + [record]

        self._update(self._key(metric.user_id, "recovery_metrics"), [], change)

    def get_recovery_analysis(self, user_id: str, date: str) -> RecoveryAnalysis | None:
        data = self.store.get(self._key(user_id, "recovery_analyses"), {}).get(date)
        return dict_to_recovery_analysis(data) if data is not None else None

    def get_recovery_analyses(self, user_id: str) -> list[RecoveryAnalysis]:
        raw = self.store.get(self._key(user_id, "recovery_analyses"), {})
        analyses = [dict_to_recovery_analysis(d) for d in raw.values()]
        analyses.sort(key=lambda a: a.date, reverse=True)
        return analyses

    def save_recovery_analysis(self, user_id: str, analysis: RecoveryAnalysis) -> None:
        record = recovery_analysis_to_dict(analysis)

        def change(by_date: dict) -> dict:
            return {**by_date, analysis.date: record}

        self._update(self._key(user_id, "recovery_analyses"), {}, change)

    def delete_recovery_analysis(self, user_id: str, date: str) -> None:
        def change(by_date: dict) -> dict:
            return {d: a for d, a in by_date.items() if d != date}

        self._update(self._key(user_id, "recovery_analyses"), {}, change)

    # -- progression -------------------------------------------------------

    def get_progression_metrics(self, user_id: str, exercise_name: str | None = None) -> list[LoadProgressionMetric]:
        """Progression metrics newest first, optionally for one exercise."""
        raw = self.store.get(self._key(user_id, "progression_metrics"), [])
        # Within one day the last logged set counts as newest
        indexed = [
            (i, dict_to_progression_metric(d))
            for i, d in enumerate(raw)
            if exercise_name is None or d.get("exercise_name") == exercise_name
        ]
        indexed.sort(key=lambda pair: (pair[1].date, pair[0]), reverse=True)
        return [m for _, m in indexed]

    def add_progression_metrics(self, user_id: str, metrics: list[LoadProgressionMetric]) -> None:
        """Append-only."""
        if not metrics:
            return
        records = [progression_metric_to_dict(m) for m in metrics]
        self._update(self._key(user_id, "progression_metrics"), [], lambda rows: rows + records)

    def get_progression_plans(self, user_id: str) -> list[ProgressionPlan]:
        raw = self.store.get(self._key(user_id, "progression_plans"), {})
        return [dict_to_progression_plan(raw[name]) for name in sorted(raw)]

    def save_progression_plan(self, user_id: str, plan: ProgressionPlan) -> None:
        """Replace the current plan for the plan's exercise."""
        record = progression_plan_to_dict(plan)

        def change(by_exercise: dict) -> dict:
            return {**by_exercise, plan.exercise_name: record}

        self._update(self._key(user_id, "progression_plans"), {}, change)

    # -- active workout ----------------------------------------------------

    def get_active_workout(self, user_id: str) -> WorkoutPlan | None:
        data = self.store.get(self._key(user_id, "active_workout"))
        return dict_to_workout_plan(data) if data else None

    def save_active_workout(self, user_id: str, plan: WorkoutPlan | None) -> None:
        """Store the user's active workout; None clears it."""
        value = workout_plan_to_dict(plan) if plan is not None else None
        self.store.set(self._key(user_id, "active_workout"), value)
