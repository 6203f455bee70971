"""
Coaching orchestrator.

Wires the engines together once and exposes the two flows callers need:
answering an utterance against a decision context, and recording new
training or recovery data so later contexts reflect it.
"""

import logging
from dataclasses import replace
from datetime import date
from typing import Any, Callable, Mapping

from ..io.repository import CoachRepository
from ..io.store import RecordStore
from .config import CoachSettings
from .context import ContextBuilder
from .dispatcher import FALLBACK_RESPONSE, ResponseDispatcher
from .habits import HabitTracker
from .intent import determine_intent
from .models import (
    CoachResponse,
    ContextUpdates,
    DecisionContext,
    IntentCategory,
    RecoveryMetric,
    ToneSelection,
    WearableInsight,
    WorkoutPlan,
    WorkoutSession,
)
from .nutrition import NutritionService
from .persona import select_tone
from .progression import LoadProgressionEngine
from .recovery import RecoveryEngine

logger = logging.getLogger(__name__)


class CoachOrchestrator:
    """
    Facade over the coaching engines.

    Args:
        repository: Shared persistence collaborator
        recovery: Recovery scoring engine
        progression: Load progression engine
        habits: Habit tracker
        context_builder: Decision-context builder
        settings: Tunable thresholds
    """

    def __init__(
        self,
        repository: CoachRepository,
        recovery: RecoveryEngine,
        progression: LoadProgressionEngine,
        habits: HabitTracker,
        context_builder: ContextBuilder,
        settings: CoachSettings | None = None,
    ):
        self.repository = repository
        self.recovery = recovery
        self.progression = progression
        self.habits = habits
        self.context_builder = context_builder
        self.settings = settings or CoachSettings()
        self.dispatcher = ResponseDispatcher(system_status=self.system_status)

    def system_status(self) -> dict[str, int]:
        return {
            "cache_hits": self.recovery.cache_hits,
            "cache_misses": self.recovery.cache_misses,
            "analyses_run": self.progression.analyses_run,
            "collaborator_failures": self.context_builder.collaborator_failures,
        }

    def build_context(
        self,
        user_id: str,
        current_screen: str,
        active_workout: WorkoutPlan | None = None,
        wearable_insight: WearableInsight | None = None,
    ) -> DecisionContext:
        return self.context_builder.build_context(user_id, current_screen, active_workout, wearable_insight)

    def classify(self, text: str, context: DecisionContext) -> tuple[IntentCategory, ToneSelection]:
        """Intent and tone for one utterance, without producing a response."""
        return determine_intent(text, context), select_tone(context, self.settings.persona)

    def process_input(self, text: str, context: DecisionContext) -> CoachResponse:
        """
        Answer one user utterance.

        Args:
            text: Raw user message
            context: Decision context built for this interaction

        Returns:
            CoachResponse from the matching handler, or the generic
            not-enough-data response if anything fails along the way
        """
        try:
            intent, tone = self.classify(text, context)
        except Exception:
            logger.exception("Failed to classify %r for %s", text, context.user_id)
            return FALLBACK_RESPONSE
        return self.respond(text, context, intent, tone)

    def respond(
        self,
        text: str,
        context: DecisionContext,
        intent: IntentCategory,
        tone: ToneSelection,
    ) -> CoachResponse:
        """Answer an utterance already classified with ``classify``."""
        try:
            logger.debug("Intent %s, persona %s for %s", intent, tone.persona, context.user_id)
            return self.dispatcher.dispatch(intent, context, tone, text)
        except Exception:
            logger.exception("Failed to answer %r for %s", text, context.user_id)
            return FALLBACK_RESPONSE

    def record_workout_session(self, session: WorkoutSession) -> None:
        """
        Store a session and propagate it to every engine that learns from it.

        Habits are updated, progression metrics appended and each touched
        exercise re-analyzed; the recovery analysis for the session date is
        recomputed.
        """
        self.repository.add_workout_session(session)
        self.habits.update_habits(session)
        metrics = self.progression.record_progression_metrics(session)
        for exercise_name in dict.fromkeys(m.exercise_name for m in metrics):
            self.progression.analyze_progression(session.user_id, exercise_name)
        self.recovery.refresh_recovery_analysis(session.user_id, session.date)
        logger.debug("Recorded session %s for %s", session.session_id, session.user_id)

    def record_recovery_metrics(self, user_id: str, metrics: Mapping[str, Any]) -> RecoveryMetric:
        return self.recovery.record_recovery_metrics(user_id, metrics)

    def apply_context_updates(self, context: DecisionContext, updates: ContextUpdates | None) -> DecisionContext:
        """
        Return a context with a handler's requested changes applied.

        Progression plans carried in the updates are saved, so adjustments
        already applied to the workout stay marked for later turns.
        """
        if updates is None:
            return context
        changes: dict[str, Any] = {}
        if updates.progression_plans:
            for plan in updates.progression_plans:
                self.repository.save_progression_plan(context.user_id, plan)
            saved = {p.exercise_name: p for p in updates.progression_plans}
            changes["progression_plans"] = tuple(saved.get(p.exercise_name, p) for p in context.progression_plans)
        if updates.clear_active_workout:
            changes["active_workout"] = None
        elif updates.active_workout is not None:
            changes["active_workout"] = updates.active_workout
        return replace(context, **changes) if changes else context


def create_orchestrator(
    store: RecordStore,
    settings: CoachSettings | None = None,
    today: Callable[[], date] = date.today,
) -> CoachOrchestrator:
    """
    Build the full engine graph over one store.

    Args:
        store: Key/value persistence backend
        settings: Tunable thresholds (defaults when omitted)
        today: Clock shared by every engine

    Returns:
        Ready-to-use CoachOrchestrator
    """
    settings = settings or CoachSettings()
    repository = CoachRepository(store)
    recovery = RecoveryEngine(repository, settings.recovery, today)
    progression = LoadProgressionEngine(repository, settings.progression, today)
    habits = HabitTracker(repository)
    nutrition = NutritionService(repository)
    context_builder = ContextBuilder(repository, recovery, nutrition, today)
    return CoachOrchestrator(repository, recovery, progression, habits, context_builder, settings)
