"""
Decision-context assembly.

Fetches every independent piece of user state concurrently, joins, reads
the trailing recovery scores (which depend on today's analysis), and
freezes the result into a DecisionContext.  A failing collaborator is
logged and its field is left empty; the rest of the context is still
usable.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import TYPE_CHECKING, Any, Callable

from .config import CONTEXT_FETCH_WORKERS, RECENT_SESSIONS_LIMIT
from .dates import iso
from .models import DecisionContext, WearableInsight, WorkoutPlan

if TYPE_CHECKING:
    from ..io.repository import CoachRepository
    from .nutrition import NutritionService
    from .recovery import RecoveryEngine

logger = logging.getLogger(__name__)


class ContextBuilder:
    """
    Builds one immutable DecisionContext per interaction.

    Args:
        repository: Persistence collaborator (profile, habits, sessions, plans)
        recovery: Recovery engine (analysis for today, recent scores)
        nutrition: Nutrition collaborator
        today: Clock used for the analysis and nutrition date
    """

    def __init__(
        self,
        repository: "CoachRepository",
        recovery: "RecoveryEngine",
        nutrition: "NutritionService",
        today: Callable[[], date] = date.today,
    ):
        self.repository = repository
        self.recovery = recovery
        self.nutrition = nutrition
        self.today = today
        self.collaborator_failures = 0

    def _fetchers(self, user_id: str) -> dict[str, Callable[[], Any]]:
        today = iso(self.today())
        return {
            "user_profile": lambda: self.repository.get_user_data(user_id),
            "habits": lambda: self.repository.get_user_habits(user_id),
            "recent_sessions": lambda: self.repository.get_workout_sessions(user_id)[:RECENT_SESSIONS_LIMIT],
            "recovery_analysis": lambda: self.recovery.get_recovery_analysis(user_id, today),
            "progression_plans": lambda: self.repository.get_progression_plans(user_id),
            "nutrition": lambda: self.nutrition.get_nutrition_recommendations(user_id, today),
        }

    def _recent_scores(self, user_id: str) -> list[int]:
        return [a.recovery_score for a in self.recovery.get_recent_recovery_analyses(user_id, days=7)]

    def _collect(self, fields: dict[str, Any], name: str, fetch: Callable[[], Any], user_id: str) -> None:
        try:
            value = fetch()
        except Exception as e:
            self.collaborator_failures += 1
            logger.warning("Context field %r unavailable for %s: %s", name, user_id, e)
            return
        if value is not None:
            fields[name] = value

    def build_context(
        self,
        user_id: str,
        current_screen: str,
        active_workout: WorkoutPlan | None = None,
        wearable_insight: WearableInsight | None = None,
    ) -> DecisionContext:
        """
        Aggregate user state into a DecisionContext.

        Args:
            user_id: User the interaction belongs to
            current_screen: Screen the message was sent from
            active_workout: Workout currently open, if any
            wearable_insight: Pre-computed wearable summary, if any

        Returns:
            Frozen DecisionContext; fields whose fetch failed are empty
        """
        fields: dict[str, Any] = {}

        with ThreadPoolExecutor(max_workers=CONTEXT_FETCH_WORKERS) as pool:
            futures = {name: pool.submit(fn) for name, fn in self._fetchers(user_id).items()}
            for name, future in futures.items():
                self._collect(fields, name, future.result, user_id)

        # Read after the join: includes the analysis computed for today.
        self._collect(fields, "recent_recovery_scores", lambda: self._recent_scores(user_id), user_id)

        return DecisionContext(
            user_id=user_id,
            current_screen=current_screen,
            active_workout=active_workout,
            wearable_insight=wearable_insight,
            **fields,
        )
