"""
Unit tests for routine modification requests.
"""

import pytest

from adaptive_coach.core.models import PlannedExercise, PlannedSet, WorkoutDay, WorkoutPlan
from adaptive_coach.core.modification import (
    ModificationRequest,
    apply_modification,
    detect_modification_request,
)


def _plan(press_sets: int = 4) -> WorkoutPlan:
    return WorkoutPlan(
        plan_id="p1",
        name="Fuerza A",
        duration_minutes=60,
        days=[
            WorkoutDay(
                day=1,
                focus="Empuje",
                exercises=[
                    PlannedExercise(name="Press banca", sets=[PlannedSet(reps=8, weight=100.0)] * press_sets),
                    PlannedExercise(name="Fondos", sets=[PlannedSet(reps=10)]),
                ],
            )
        ],
    )


class TestDetection:
    """Recognizing explicit change requests."""

    @pytest.mark.parametrize(
        "text,kind,value",
        [
            ("Quiero reducir la carga un 10%", "load_reduction", -10.0),
            ("Quiero reducir la carga", "load_reduction", -10.0),
            ("Hay que aumentar 20% el peso", "load_increase", 20.0),
            ("Quiero aumentar la carga", "load_increase", 5.0),
            ("Dame más intensidad", "intensity_change", 5.0),
            ("Necesito menos intensidad", "intensity_change", -10.0),
            ("Quiero menos volumen", "volume_change", -15.0),
            ("Un poco más de volumen", "volume_change", 10.0),
        ],
    )
    def test_requests(self, text, kind, value):
        request = detect_modification_request(text)
        assert request.type == kind
        assert request.value == pytest.approx(value)

    def test_exercise_change_with_target(self):
        request = detect_modification_request("Quiero cambiar el ejercicio por remo")
        assert request.type == "exercise_change"
        assert request.exercise_name == "remo"

    def test_exercise_change_without_target(self):
        request = detect_modification_request("Quiero cambiar el ejercicio")
        assert request.type == "exercise_change"
        assert request.exercise_name is None

    def test_no_request(self):
        assert detect_modification_request("Hola").type == "none"
        assert detect_modification_request("").type == "none"


class TestApply:
    """Applying requests to a plan."""

    def test_load_reduction_scales_weighted_sets(self):
        plan = _plan()
        result = apply_modification(plan, ModificationRequest(type="load_reduction", value=-10.0))
        press, dips = result.plan.days[0].exercises

        assert all(s.weight == pytest.approx(90.0) for s in press.sets)
        assert dips.sets[0].weight is None
        assert press.notes == "Carga ajustada -10%"
        assert result.affected_exercises == ("Press banca", "Fondos")
        assert all(a.applied and a.adjustment_type == "weight" for a in result.adjustments)

    def test_input_plan_is_untouched(self):
        plan = _plan()
        apply_modification(plan, ModificationRequest(type="load_increase", value=5.0))
        assert plan.days[0].exercises[0].sets[0].weight == 100.0
        assert plan.days[0].exercises[0].notes == ""

    def test_intensity_scales_weights(self):
        result = apply_modification(_plan(), ModificationRequest(type="intensity_change", value=5.0))
        assert result.plan.days[0].exercises[0].sets[0].weight == pytest.approx(105.0)
        assert result.adjustments[0].adjustment_type == "intensity"

    def test_volume_reduction_drops_sets(self):
        """round(4 * 0.85) = 3 sets."""
        result = apply_modification(_plan(), ModificationRequest(type="volume_change", value=-15.0))
        press, dips = result.plan.days[0].exercises
        assert len(press.sets) == 3
        assert len(dips.sets) == 1
        assert "(4 → 3 series)" in press.notes

    def test_volume_increase_repeats_last_set(self):
        result = apply_modification(_plan(press_sets=2), ModificationRequest(type="volume_change", value=50.0))
        assert len(result.plan.days[0].exercises[0].sets) == 3

    def test_exercise_change_renames_first_exercise(self):
        request = ModificationRequest(type="exercise_change", exercise_name="remo", details="Cambio de ejercicio solicitado")
        result = apply_modification(_plan(), request)
        first = result.plan.days[0].exercises[0]
        assert first.name == "remo"
        assert first.notes == "Modificado: Cambio de ejercicio solicitado"
        assert result.affected_exercises == ("Press banca",)
        assert result.plan.days[0].exercises[1].name == "Fondos"

    def test_exercise_change_without_name(self):
        result = apply_modification(_plan(), ModificationRequest(type="exercise_change"))
        assert result.plan.days[0].exercises[0].name == "Variación de Press banca"

    def test_none_is_a_no_op(self):
        plan = _plan()
        result = apply_modification(plan, ModificationRequest(type="none"))
        assert result.plan == plan
        assert result.adjustments == ()
