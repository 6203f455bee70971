"""
Unit tests for decision-context assembly.
"""

from datetime import date

from adaptive_coach.core.context import ContextBuilder
from adaptive_coach.core.models import UserProfile, WearableInsight, WorkoutSession
from adaptive_coach.core.nutrition import NutritionService
from adaptive_coach.core.recovery import RecoveryEngine
from adaptive_coach.io.repository import CoachRepository
from adaptive_coach.io.store import MemoryStore


class FailingPlansRepository(CoachRepository):
    """Repository whose progression-plan lookup always fails."""

    def get_progression_plans(self, user_id):
        raise RuntimeError("plans backend down")


def _today() -> date:
    return date(2026, 3, 12)


def _builder(repo: CoachRepository) -> ContextBuilder:
    return ContextBuilder(repo, RecoveryEngine(repo, today=_today), NutritionService(repo), _today)


def _seed(repo: CoachRepository, sessions: int = 1) -> None:
    repo.save_user_data("u1", UserProfile(name="Ana", age=30, weight_kg=60, height_cm=165))
    for day in range(1, sessions + 1):
        repo.add_workout_session(WorkoutSession(session_id=f"s{day}", user_id="u1", date=f"2026-03-{day:02d}"))


class TestContextBuilder:
    """Concurrent fetch and failure isolation."""

    def test_all_fields_populated(self):
        repo = CoachRepository(MemoryStore())
        _seed(repo)
        ctx = _builder(repo).build_context("u1", "dashboard")

        assert ctx.user_profile.name == "Ana"
        assert len(ctx.recent_sessions) == 1
        assert ctx.recovery_analysis is not None
        assert ctx.recovery_analysis.date == "2026-03-12"
        assert ctx.nutrition is not None
        assert ctx.habits is None
        assert ctx.current_screen == "dashboard"

    def test_recent_sessions_capped_newest_first(self):
        repo = CoachRepository(MemoryStore())
        _seed(repo, sessions=12)
        ctx = _builder(repo).build_context("u1", "dashboard")
        assert len(ctx.recent_sessions) == 10
        assert ctx.recent_sessions[0].date == "2026-03-12"

    def test_failing_collaborator_leaves_field_empty(self):
        repo = FailingPlansRepository(MemoryStore())
        _seed(repo)
        builder = _builder(repo)
        ctx = builder.build_context("u1", "dashboard")

        assert ctx.progression_plans == ()
        assert builder.collaborator_failures == 1
        assert ctx.user_profile is not None
        assert ctx.recovery_analysis is not None

    def test_caller_supplied_fields_pass_through(self):
        repo = CoachRepository(MemoryStore())
        wearable = WearableInsight(recovery_status="good", training_readiness="ready")
        ctx = _builder(repo).build_context("u1", "recovery", wearable_insight=wearable)
        assert ctx.wearable_insight == wearable
        assert ctx.active_workout is None
        assert ctx.user_profile is None

    def test_users_are_isolated(self):
        repo = CoachRepository(MemoryStore())
        _seed(repo)
        ctx = _builder(repo).build_context("u2", "dashboard")
        assert ctx.user_profile is None
        assert ctx.recent_sessions == ()
