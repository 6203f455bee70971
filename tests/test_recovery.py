"""
Unit tests for the recovery scoring engine.

Expected values are hand-computed from the formulas in core/recovery.py:
    composite = ((10-E) + S + (10-Sl) + St + (10-M) + P_dur) / 6
    score     = 10 * (0.3E + 0.2(10-S) + 0.3Sl + 0.1(10-St) + 0.1M) + load adjustment
"""

from datetime import date

import pytest

from adaptive_coach.core.config import RecoverySettings
from adaptive_coach.core.models import RecoveryAnalysis, RecoveryMetric, UserHabit, WorkoutSession
from adaptive_coach.core.recovery import (
    RecoveryEngine,
    build_recovery_analysis,
    calculate_fatigue_level,
    calculate_recovery_score,
    classify_fatigue,
    duration_penalty,
    fatigue_composite,
    generate_recovery_recommendations,
    metric_score,
    predict_fatigue_days,
    recovery_trend,
    suggest_workout_intensity,
    workout_load_adjustment,
)
from adaptive_coach.io.repository import CoachRepository
from adaptive_coach.io.store import MemoryStore


def _metric(d: str = "2026-03-04", e=8.0, s=2.0, sl=8.0, st=2.0, m=8.0) -> RecoveryMetric:
    return RecoveryMetric(
        user_id="u1", date=d, energy_level=e, muscle_soreness=s,
        sleep_quality=sl, stress_level=st, motivation=m,
    )


def _session(d: str = "2026-03-04", duration: int | None = 60, start: str | None = "18:00", sid: str | None = None) -> WorkoutSession:
    return WorkoutSession(
        session_id=sid or f"s-{d}-{duration}",
        user_id="u1",
        date=d,
        start_time=start,
        duration_minutes=duration,
    )


def _analysis(d: str, score: int) -> RecoveryAnalysis:
    return RecoveryAnalysis(
        date=d, fatigue_level="low", recovery_score=score,
        recommendations=(), predicted_fatigue_days=(), suggested_workout_intensity="high",
    )


class TestFatigueComposite:
    """Fatigue composite and tier classification."""

    def test_duration_penalty_steps(self):
        """Penalty steps are exclusive thresholds at 30/60/90 minutes."""
        assert duration_penalty(20) == 0.0
        assert duration_penalty(30) == 0.0
        assert duration_penalty(45) == 1.0
        assert duration_penalty(60) == 1.0
        assert duration_penalty(75) == 2.0
        assert duration_penalty(95) == 3.0

    def test_good_metrics_without_sessions(self):
        """Default 60-minute duration adds penalty 1: (2+2+2+2+2+1)/6."""
        assert fatigue_composite([_metric()], []) == pytest.approx(11 / 6)

    def test_poor_metrics(self):
        """(8+8+8+8+8+1)/6 = 6.83 -> high."""
        metrics = [_metric(e=2, s=8, sl=2, st=8, m=2)]
        assert fatigue_composite(metrics, []) == pytest.approx(41 / 6)
        assert calculate_fatigue_level(metrics, []) == "high"

    def test_worst_metrics_are_extreme(self):
        metrics = [_metric(e=0, s=10, sl=0, st=10, m=0)]
        assert calculate_fatigue_level(metrics, []) == "extreme"

    def test_metrics_are_averaged(self):
        """Two check-ins average to E=5 S=5 Sl=5 St=5 M=5: (25+1)/6."""
        metrics = [_metric(e=8, s=2, sl=8, st=2, m=8), _metric(e=2, s=8, sl=2, st=8, m=2)]
        assert fatigue_composite(metrics, []) == pytest.approx(26 / 6)

    def test_no_metrics_uses_duration_penalty_only(self):
        """Long sessions without check-ins: 3 / 4."""
        assert fatigue_composite([], [_session(duration=100)]) == pytest.approx(0.75)

    def test_sessions_without_duration_assume_sixty(self):
        assert fatigue_composite([_metric()], [_session(duration=None)]) == pytest.approx(11 / 6)

    def test_no_data_is_low(self):
        assert calculate_fatigue_level([], []) == "low"

    def test_classification_thresholds(self):
        assert classify_fatigue(2.99) == "low"
        assert classify_fatigue(3.0) == "moderate"
        assert classify_fatigue(5.0) == "high"
        assert classify_fatigue(7.0) == "extreme"

    def test_classification_is_monotonic(self):
        order = ["low", "moderate", "high", "extreme"]
        tiers = [order.index(classify_fatigue(x / 10)) for x in range(0, 101)]
        assert tiers == sorted(tiers)

    def test_settings_override_thresholds(self):
        settings = RecoverySettings(fatigue_moderate=1.0)
        assert classify_fatigue(1.5, settings) == "moderate"


class TestRecoveryScore:
    """Recovery score formula and load adjustment."""

    def test_metric_score(self):
        """24 + 16 + 24 + 8 + 8 = 80."""
        assert metric_score(_metric()) == pytest.approx(80.0)

    def test_score_from_metrics(self):
        assert calculate_recovery_score([_metric()], []) == 80

    def test_default_score_without_metrics(self):
        assert calculate_recovery_score([], []) == 70

    def test_load_adjustment_steps(self):
        """Average 100 min: -15, plus -3 for the one session over 75 min."""
        assert workout_load_adjustment([_session(duration=100)]) == pytest.approx(-18.0)
        assert workout_load_adjustment([_session(duration=70)]) == pytest.approx(-5.0)
        assert workout_load_adjustment([_session(duration=45)]) == pytest.approx(0.0)

    def test_load_adjustment_ignores_sessions_without_duration(self):
        assert workout_load_adjustment([_session(duration=None)]) == 0.0

    def test_default_score_includes_load_adjustment(self):
        assert calculate_recovery_score([], [_session(duration=100)]) == 52

    def test_score_is_clamped(self):
        """Worst check-in scores 0 before a load penalty; the result stays 0."""
        worst = [_metric(e=0, s=10, sl=0, st=10, m=0)]
        long_sessions = [_session(d=f"2026-03-0{i}", duration=120) for i in range(1, 4)]
        assert calculate_recovery_score(worst, long_sessions) == 0

    def test_score_is_integer_in_range(self):
        for e in range(0, 11, 2):
            score = calculate_recovery_score([_metric(e=e, s=10 - e, sl=e, st=10 - e, m=e)], [])
            assert isinstance(score, int)
            assert 0 <= score <= 100


class TestRecommendations:
    """Recommendation list ordering."""

    def test_baseline_comes_first(self):
        recs = generate_recovery_recommendations("low", [_metric()])
        assert [r.type for r in recs] == ["stretching", "mobility"]

    def test_high_fatigue_with_poor_sleep(self):
        recs = generate_recovery_recommendations("high", [_metric(sl=3)])
        assert [r.type for r in recs] == ["stretching", "mobility", "active_recovery", "massage", "rest"]
        assert recs[-1].title == "Prioriza el sueño"

    def test_extreme_tier_entries(self):
        recs = generate_recovery_recommendations("extreme", [])
        assert [r.type for r in recs[2:]] == ["rest", "nap", "sauna"]

    def test_sleep_uses_latest_three_metrics(self):
        """Old poor sleep outside the latest three check-ins is ignored."""
        metrics = [_metric(sl=8), _metric(sl=8), _metric(sl=8), _metric(sl=0)]
        recs = generate_recovery_recommendations("low", metrics)
        assert all(r.title != "Prioriza el sueño" for r in recs)


class TestIntensityAndTrend:
    """Suggested intensity and score trend."""

    def test_low_scores_override_tier(self):
        assert suggest_workout_intensity("low", 20) == "rest"
        assert suggest_workout_intensity("low", 45) == "low"
        assert suggest_workout_intensity("low", 60) == "moderate"

    def test_tier_decides_for_good_scores(self):
        assert suggest_workout_intensity("low", 85) == "high"
        assert suggest_workout_intensity("moderate", 85) == "moderate"
        assert suggest_workout_intensity("high", 85) == "low"
        assert suggest_workout_intensity("extreme", 85) == "rest"

    def test_trend(self):
        assert recovery_trend([_analysis("2026-03-04", 80), _analysis("2026-03-01", 60)]) == "improving"
        assert recovery_trend([_analysis("2026-03-04", 50), _analysis("2026-03-01", 70)]) == "declining"
        assert recovery_trend([_analysis("2026-03-04", 70)]) == "stable"


class TestFatiguePrediction:
    """Predicted fatigue days."""

    def test_flags_preferred_day_with_dense_sessions(self):
        """2026-03-07 is a Saturday; Sunday 03-08 has 3 sessions within 3 days."""
        habit = UserHabit(user_id="u1", preferred_training_days=[6])
        sessions = [_session("2026-03-07"), _session("2026-03-06"), _session("2026-03-05")]
        assert predict_fatigue_days(habit, sessions, "2026-03-07") == ["2026-03-08"]

    def test_two_sessions_are_not_enough(self):
        habit = UserHabit(user_id="u1", preferred_training_days=[6])
        sessions = [_session("2026-03-07"), _session("2026-03-06")]
        assert predict_fatigue_days(habit, sessions, "2026-03-07") == []

    def test_no_habit(self):
        assert predict_fatigue_days(None, [_session()], "2026-03-04") == []

    def test_build_analysis_is_consistent(self):
        analysis = build_recovery_analysis("2026-03-04", [_metric(e=2, s=8, sl=2, st=8, m=2)], [], None)
        assert analysis.fatigue_level == "high"
        assert analysis.recovery_score == 20
        assert analysis.suggested_workout_intensity == "rest"


class TestRecoveryEngine:
    """Caching and persistence through the engine."""

    def _engine(self) -> tuple[RecoveryEngine, CoachRepository]:
        repo = CoachRepository(MemoryStore())
        return RecoveryEngine(repo, today=lambda: date(2026, 3, 4)), repo

    def test_second_call_is_served_from_cache(self):
        engine, _ = self._engine()
        first = engine.analyze_recovery("u1")
        second = engine.analyze_recovery("u1")
        assert first == second
        assert engine.cache_misses == 1
        assert engine.cache_hits == 1

    def test_record_metrics_refreshes_analysis(self):
        engine, repo = self._engine()
        engine.analyze_recovery("u1")
        engine.record_recovery_metrics("u1", {
            "energy_level": 2, "muscle_soreness": 8, "sleep_quality": 2,
            "stress_level": 8, "motivation": 2,
        })
        stored = repo.get_recovery_analysis("u1", "2026-03-04")
        assert stored.fatigue_level == "high"
        assert engine.analyze_recovery("u1").recovery_score == 20

    def test_missing_metric_raises(self):
        engine, _ = self._engine()
        with pytest.raises(ValueError, match="motivation"):
            engine.record_recovery_metrics("u1", {
                "energy_level": 5, "muscle_soreness": 5, "sleep_quality": 5, "stress_level": 5,
            })

    def test_out_of_range_metric_raises(self):
        engine, _ = self._engine()
        with pytest.raises(ValueError):
            engine.record_recovery_metrics("u1", {
                "energy_level": 11, "muscle_soreness": 5, "sleep_quality": 5,
                "stress_level": 5, "motivation": 5,
            })

    def test_window_excludes_old_metrics(self):
        """A check-in 10 days before the target date does not count."""
        engine, repo = self._engine()
        repo.add_recovery_metric(_metric(d="2026-02-22", e=0, s=10, sl=0, st=10, m=0))
        analysis = engine.analyze_recovery("u1", "2026-03-04")
        assert analysis.recovery_score == 70
        assert analysis.fatigue_level == "low"

    def test_window_includes_prior_week(self):
        engine, repo = self._engine()
        repo.add_recovery_metric(_metric(d="2026-02-26"))
        assert engine.analyze_recovery("u1", "2026-03-04").recovery_score == 80

    def test_recent_analyses_newest_first(self):
        engine, repo = self._engine()
        repo.save_recovery_analysis("u1", _analysis("2026-03-01", 60))
        repo.save_recovery_analysis("u1", _analysis("2026-03-03", 75))
        repo.save_recovery_analysis("u1", _analysis("2026-02-01", 10))
        recent = engine.get_recent_recovery_analyses("u1")
        assert [a.date for a in recent] == ["2026-03-03", "2026-03-01"]
