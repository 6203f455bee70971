"""
Minimal smoke tests for the adaptive-coach CLI.

Tests basic functionality:
- App runs without errors
- Profile and habit records are created
- Sessions and check-ins can be logged
- Analyses are shown
- The coach answers and edits the active workout
"""

import json
import tempfile
from pathlib import Path

import pytest
from typer.testing import CliRunner

from adaptive_coach.cli.main import app


runner = CliRunner()


@pytest.fixture
def temp_data_dir():
    """Create a temporary directory for coaching records."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def _init(data_dir: Path) -> None:
    runner.invoke(app, [
        "init",
        "--data-dir", str(data_dir),
        "--name", "Ana",
        "--age", "30",
        "--weight-kg", "80",
        "--height-cm", "180",
    ])


def _log(data_dir: Path, sets: str = "100x8@7,100x8@6") -> None:
    runner.invoke(app, [
        "log-session",
        "--data-dir", str(data_dir),
        "--start-time", "18:00",
        "--duration", "60",
        "--exercise", "Press banca",
        "--sets", sets,
    ])


def _set_workout(data_dir: Path) -> None:
    plan_file = data_dir / "plan.yaml"
    plan_file.write_text(
        "plan_id: p1\n"
        "name: Empuje\n"
        "duration_minutes: 60\n"
        "days:\n"
        "  - day: 1\n"
        "    focus: Pecho\n"
        "    exercises:\n"
        "      - name: Press banca\n"
        "        sets:\n"
        "          - {reps: 8, weight: 100}\n"
        "          - {reps: 8, weight: 100}\n",
        encoding="utf-8",
    )
    result = runner.invoke(app, ["workout", "--data-dir", str(data_dir), "--set", str(plan_file)])
    assert result.exit_code == 0


class TestCLISmoke:
    """Basic smoke tests for CLI commands."""

    def test_app_help(self):
        """Test that app runs and shows help."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "adaptive-coach" in result.output or "coach" in result.output.lower()

    def test_init_creates_records(self, temp_data_dir):
        """Test init stores the profile and starts habit tracking."""
        result = runner.invoke(app, [
            "init",
            "--data-dir", str(temp_data_dir),
            "--name", "Ana",
            "--nutrition-goal", "strength",
        ])

        assert result.exit_code == 0
        assert "Profile saved" in result.output
        assert (temp_data_dir / "default-user_profile.json").exists()
        assert "strength" in (temp_data_dir / "default-user_habit.json").read_text()

    def test_init_rejects_unknown_nutrition_goal(self, temp_data_dir):
        result = runner.invoke(app, [
            "init",
            "--data-dir", str(temp_data_dir),
            "--nutrition-goal", "bulking",
        ])
        assert result.exit_code == 1

    def test_log_session_updates_engines(self, temp_data_dir):
        """Test log-session stores the session and its progression plan."""
        _init(temp_data_dir)
        result = runner.invoke(app, [
            "log-session",
            "--data-dir", str(temp_data_dir),
            "--date", "2026-02-16",
            "--exercise", "Press banca",
            "--sets", "100x8@7,100x8@6",
        ])

        assert result.exit_code == 0
        assert "Logged" in result.output
        assert "2026-02-16" in (temp_data_dir / "default-user_sessions.json").read_text()
        assert (temp_data_dir / "default-user_progression_plans.json").exists()

    def test_log_session_mismatched_sets(self, temp_data_dir):
        result = runner.invoke(app, [
            "log-session",
            "--data-dir", str(temp_data_dir),
            "--exercise", "Press banca",
            "--exercise", "Sentadilla",
            "--sets", "100x8@7",
        ])
        assert result.exit_code == 1

    def test_log_session_bad_sets(self, temp_data_dir):
        result = runner.invoke(app, [
            "log-session",
            "--data-dir", str(temp_data_dir),
            "--exercise", "Press banca",
            "--sets", "cien por ocho",
        ])
        assert result.exit_code == 1

    def test_show_history_displays_sessions(self, temp_data_dir):
        """Test show-history lists logged sessions as JSON."""
        _init(temp_data_dir)
        _log(temp_data_dir)

        result = runner.invoke(app, ["show-history", "--data-dir", str(temp_data_dir), "--json"])

        assert result.exit_code == 0
        sessions = json.loads(result.stdout)
        assert len(sessions) == 1
        assert sessions[0]["exercises"][0]["name"] == "Press banca"

    def test_check_in_shows_analysis(self, temp_data_dir):
        """Test check-in records metrics and returns the analysis."""
        result = runner.invoke(app, [
            "check-in",
            "--data-dir", str(temp_data_dir),
            "--date", "2026-02-16",
            "--energy", "2", "--soreness", "8", "--sleep", "2", "--stress", "8", "--motivation", "2",
            "--json",
        ])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["analysis"]["fatigue_level"] == "high"
        assert data["analysis"]["recovery_score"] == 20

    def test_check_in_rejects_out_of_range(self, temp_data_dir):
        result = runner.invoke(app, [
            "check-in",
            "--data-dir", str(temp_data_dir),
            "--energy", "12", "--soreness", "2", "--sleep", "8", "--stress", "2", "--motivation", "8",
        ])
        assert result.exit_code != 0

    def test_recovery_json(self, temp_data_dir):
        result = runner.invoke(app, ["recovery", "--data-dir", str(temp_data_dir), "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["recovery_score"] == 70
        assert data["trend"] == "stable"

    def test_progression_json(self, temp_data_dir):
        """Test progression recommends more weight after an easy set."""
        _log(temp_data_dir)
        result = runner.invoke(app, [
            "progression",
            "--data-dir", str(temp_data_dir),
            "--exercise", "Press banca",
            "--history", "30",
            "--json",
        ])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["plans"][0]["recommended_weight"] == 105.0
        assert len(data["history"]) == 2

    def test_progression_history_needs_exercise(self, temp_data_dir):
        result = runner.invoke(app, ["progression", "--data-dir", str(temp_data_dir), "--history", "30"])
        assert result.exit_code == 1

    def test_habits_without_data(self, temp_data_dir):
        result = runner.invoke(app, ["habits", "--data-dir", str(temp_data_dir)])
        assert result.exit_code == 1

    def test_habits_json(self, temp_data_dir):
        _init(temp_data_dir)
        _log(temp_data_dir)
        result = runner.invoke(app, ["habits", "--data-dir", str(temp_data_dir), "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["habits"]["preferred_training_times"] == ["18:00"]
        assert data["next_likely_session"] is not None

    def test_ask_general(self, temp_data_dir):
        """Test ask answers a greeting with the stored name."""
        _init(temp_data_dir)
        result = runner.invoke(app, ["ask", "Hola, ¿cómo estás?", "--data-dir", str(temp_data_dir), "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["intent"] == "general"
        assert "Ana" in data["response"]
        assert data["persona"] != "adaptive"
        assert data["active_workout_changed"] is False

    def test_ask_modifies_active_workout(self, temp_data_dir):
        """Test a routine change request is saved to the active workout."""
        _set_workout(temp_data_dir)

        result = runner.invoke(app, [
            "ask", "Quiero ajustar mi rutina y reducir la carga un 10%",
            "--data-dir", str(temp_data_dir),
            "--json",
        ])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["intent"] == "routine_modification"
        assert data["active_workout_changed"] is True

        shown = runner.invoke(app, ["workout", "--data-dir", str(temp_data_dir), "--json"])
        plan = json.loads(shown.stdout)
        assert plan["days"][0]["exercises"][0]["sets"][0]["weight"] == pytest.approx(90.0)

    def test_ask_applies_progression_once(self, temp_data_dir):
        """Test repeating a routine adjustment does not raise the weight again."""
        _log(temp_data_dir)
        _set_workout(temp_data_dir)

        for _ in range(2):
            result = runner.invoke(app, ["ask", "Quiero ajustar mi rutina", "--data-dir", str(temp_data_dir)])
            assert result.exit_code == 0

        shown = runner.invoke(app, ["workout", "--data-dir", str(temp_data_dir), "--json"])
        plan = json.loads(shown.stdout)
        assert plan["days"][0]["exercises"][0]["sets"][0]["weight"] == pytest.approx(105.0)

    def test_workout_set_and_clear_conflict(self, temp_data_dir):
        result = runner.invoke(app, [
            "workout", "--data-dir", str(temp_data_dir), "--set", "plan.yaml", "--clear",
        ])
        assert result.exit_code == 1
