"""
Unit tests for intent handlers and the response dispatcher.
"""

from dataclasses import replace

import pytest

from adaptive_coach.core.dispatcher import (
    CREATE_ROUTINE,
    LOG_RECOVERY,
    LOG_SESSION,
    ResponseDispatcher,
    handle_ambiguous_question,
    handle_general,
    handle_goal_setting,
    handle_nutrition_guidance,
    handle_performance_analysis,
    handle_progression_guidance,
    handle_recovery_advice,
    handle_routine_modification,
    handle_technical_support,
    handle_workout_inquiry,
    proactive_suggestions,
)
from adaptive_coach.core.models import (
    DailyNutrition,
    DecisionContext,
    Nutrient,
    PlannedExercise,
    PlannedSet,
    ProgressionAdjustment,
    ProgressionPlan,
    RecoveryAnalysis,
    ToneModifiers,
    ToneSelection,
    UserHabit,
    UserProfile,
    WearableAdjustment,
    WearableInsight,
    WorkoutDay,
    WorkoutPlan,
    WorkoutSession,
)

NEUTRAL = ToneSelection(persona="scientist", modifiers=ToneModifiers(), plan_phase="initiation")
GENTLE = ToneSelection(
    persona="mentor",
    modifiers=ToneModifiers(intensity="low", firmness="gentle", enthusiasm="calm"),
    plan_phase="initiation",
)


def _workout() -> WorkoutPlan:
    return WorkoutPlan(
        plan_id="p1",
        name="Fuerza A",
        duration_minutes=60,
        days=[
            WorkoutDay(
                day=1,
                focus="Pierna",
                exercises=[
                    PlannedExercise("Sentadilla", [PlannedSet(reps=5, weight=100.0)] * 4),
                    PlannedExercise("Zancadas", [PlannedSet(reps=10)] * 3),
                ],
            )
        ],
    )


def _analysis(fatigue: str = "moderate", score: int = 60) -> RecoveryAnalysis:
    return RecoveryAnalysis(
        date="2026-03-04",
        fatigue_level=fatigue,  # type: ignore[arg-type]
        recovery_score=score,
        recommendations=(),
        predicted_fatigue_days=(),
        suggested_workout_intensity="moderate",
    )


def _plan(name: str, current: float, recommended: float, pct: float = 5.0) -> ProgressionPlan:
    return ProgressionPlan(
        exercise_name=name,
        current_weight=current,
        recommended_weight=recommended,
        next_phase="accumulation",
        adjustments=[ProgressionAdjustment(name, "weight", pct, "RPE bajo", 0.85)],
    )


def _sessions(n: int) -> list[WorkoutSession]:
    return [WorkoutSession(session_id=f"s{i}", user_id="u1", date=f"2026-03-0{i + 1}") for i in range(n)]


def _ctx(**kwargs) -> DecisionContext:
    kwargs.setdefault("current_screen", "dashboard")
    return DecisionContext(user_id="u1", **kwargs)


class TestVoice:
    """Persona opener and enthusiasm closer."""

    def test_persona_frames_the_body(self):
        response = handle_general(_ctx(), GENTLE, "hola")
        assert response.response.startswith("Vamos con calma")
        assert response.response.endswith("Recupérate bien.")

    def test_support_answers_without_persona(self):
        response = handle_technical_support(_ctx(), GENTLE, "la app falla")
        assert response.response.startswith("Siento el inconveniente")


class TestWorkoutInquiry:
    """Active workout questions."""

    def test_no_workout(self):
        response = handle_workout_inquiry(_ctx(), NEUTRAL, "¿Qué hago hoy?")
        assert "No he encontrado un entrenamiento activo" in response.response
        assert response.action_items == (CREATE_ROUTINE,)

    def test_no_workout_mentions_usual_time(self):
        habits = UserHabit(user_id="u1", preferred_training_times=["18:00"])
        response = handle_workout_inquiry(_ctx(habits=habits), NEUTRAL, "¿Qué hago hoy?")
        assert "Sueles entrenar a las 18:00" in response.response

    def test_next_exercise_on_detail_screen(self):
        ctx = _ctx(current_screen="workoutDetail", active_workout=_workout())
        response = handle_workout_inquiry(ctx, NEUTRAL, "¿Y el siguiente?")
        assert "Tu siguiente ejercicio es Sentadilla: 4 series de 5 repeticiones con 100 kg, descanso 90 s." in response.response
        assert response.action_items == ("Iniciar ejercicio",)

    def test_summary_includes_recommended_weight(self):
        ctx = _ctx(active_workout=_workout(), progression_plans=[_plan("Sentadilla", 100, 105)])
        response = handle_workout_inquiry(ctx, NEUTRAL, "¿Qué toca hoy?")
        assert "Fuerza A" in response.response
        assert "En Sentadilla te recomiendo 105 kg." in response.response
        assert response.action_items == ("Iniciar entrenamiento", "Ver detalles de la rutina")

    def test_summary_includes_wearable_adjustments(self):
        insight = WearableInsight("good", "ready", adjustments=[WearableAdjustment("intensity", 5, "", 0.6)])
        ctx = _ctx(active_workout=_workout(), wearable_insight=insight)
        response = handle_workout_inquiry(ctx, NEUTRAL, "¿Qué toca hoy?")
        assert "Ajustes sugeridos por tu wearable: intensidad +5%." in response.response


class TestRecoveryAndProgression:
    """Recovery and progression answers."""

    def test_recovery_without_analysis(self):
        response = handle_recovery_advice(_ctx(), NEUTRAL, "¿Cómo estoy?")
        assert response.action_items == (LOG_RECOVERY,)

    def test_recovery_with_analysis(self):
        response = handle_recovery_advice(_ctx(recovery_analysis=_analysis()), NEUTRAL, "¿Cómo estoy?")
        assert "Tu nivel de fatiga es moderada y tu puntuación de recuperación es 60/100." in response.response
        assert response.action_items == (LOG_RECOVERY, "Ver recomendaciones completas")

    def test_recovery_includes_wearable_advice(self):
        insight = WearableInsight(
            recovery_status="fair",
            training_readiness="caution",
            adjustments=[WearableAdjustment("volume", -20, "HRV baja", 0.8)],
            recommendations=["Duerme al menos 8 horas"],
            risk_factors=["Sueño corto"],
        )
        ctx = _ctx(recovery_analysis=_analysis(), wearable_insight=insight)
        response = handle_recovery_advice(ctx, NEUTRAL, "¿Cómo estoy?")
        assert "Tu wearable señala: Sueño corto." in response.response
        assert "Según tus datos del wearable: Duerme al menos 8 horas." in response.response
        assert "Ajustes sugeridos por tu wearable: volumen -20% (HRV baja)." in response.response

    def test_progression_without_plans(self):
        response = handle_progression_guidance(_ctx(), NEUTRAL, "¿Subo peso?")
        assert response.action_items == (LOG_SESSION,)

    def test_progression_for_mentioned_exercise(self):
        ctx = _ctx(progression_plans=[_plan("Press banca", 80, 84), _plan("Sentadilla", 100, 105)])
        response = handle_progression_guidance(ctx, NEUTRAL, "¿Y la sentadilla?")
        assert "Sentadilla: de 100 kg a 105 kg, fase de acumulación" in response.response
        assert "Press banca" not in response.response


class TestNutritionGuidance:
    """Nutrition answers."""

    def _nutrition(self) -> DailyNutrition:
        return DailyNutrition(date="2026-03-04", total_nutrients=Nutrient(2759, 160, 357, 77))

    def test_without_data(self):
        assert handle_nutrition_guidance(_ctx(), NEUTRAL, "¿Qué como?").action_items == ("Completar perfil",)

    def test_calories(self):
        response = handle_nutrition_guidance(_ctx(nutrition=self._nutrition()), NEUTRAL, "¿Cuántas calorías?")
        assert "Tu objetivo de hoy es de 2759 kcal." in response.response

    def test_protein(self):
        response = handle_nutrition_guidance(_ctx(nutrition=self._nutrition()), NEUTRAL, "¿Y proteínas?")
        assert "160 g de proteína" in response.response

    def test_full_breakdown(self):
        response = handle_nutrition_guidance(_ctx(nutrition=self._nutrition()), NEUTRAL, "¿Qué como?")
        assert "mantenimiento" in response.response
        assert "357 g de carbohidratos" in response.response


class TestRoutineModification:
    """Routine changes and context updates."""

    def test_high_fatigue_clears_workout(self):
        ctx = _ctx(active_workout=_workout(), recovery_analysis=_analysis("high", 40))
        response = handle_routine_modification(ctx, GENTLE, "Quiero cambiar mi rutina")
        assert response.context_updates is not None
        assert response.context_updates.clear_active_workout
        assert response.action_items == ("Ver rutina de recuperación",)

    def test_no_workout(self):
        response = handle_routine_modification(_ctx(), NEUTRAL, "Quiero cambiar mi rutina")
        assert response.action_items == (CREATE_ROUTINE,)
        assert response.context_updates is None

    def test_explicit_request(self):
        ctx = _ctx(active_workout=_workout())
        response = handle_routine_modification(ctx, NEUTRAL, "Quiero reducir la carga un 10%")
        new_plan = response.context_updates.active_workout
        assert new_plan.days[0].exercises[0].sets[0].weight == pytest.approx(90.0)
        assert "Sentadilla" in response.response
        assert response.action_items == ("Ver rutina actualizada",)

    def test_pending_progression_adjustments(self):
        ctx = _ctx(
            active_workout=_workout(),
            progression_plans=[_plan("Sentadilla", 100, 105), _plan("Press banca", 80, 84)],
        )
        response = handle_routine_modification(ctx, NEUTRAL, "Quiero ajustar mi rutina")
        assert "Sentadilla +5%" in response.response
        assert "Press banca" not in response.response
        new_plan = response.context_updates.active_workout
        assert new_plan.days[0].exercises[0].sets[0].weight == pytest.approx(105.0)

    def test_applied_adjustments_come_back_marked(self):
        ctx = _ctx(
            active_workout=_workout(),
            progression_plans=[_plan("Sentadilla", 100, 105), _plan("Press banca", 80, 84)],
        )
        updates = handle_routine_modification(ctx, NEUTRAL, "Quiero ajustar mi rutina").context_updates
        assert [p.exercise_name for p in updates.progression_plans] == ["Sentadilla"]
        assert updates.progression_plans[0].adjustments[0].applied

        again = _ctx(active_workout=updates.active_workout, progression_plans=updates.progression_plans)
        response = handle_routine_modification(again, NEUTRAL, "Quiero ajustar mi rutina")
        assert response.context_updates is None

    def test_nothing_to_apply_offers_options(self):
        response = handle_routine_modification(_ctx(active_workout=_workout()), NEUTRAL, "Quiero ajustar mi rutina")
        assert response.action_items == ("Cambiar un ejercicio", "Ajustar la carga", "Ajustar el volumen")
        assert response.context_updates is None


class TestOtherHandlers:
    """Performance, goals, ambiguity and greetings."""

    def test_performance_without_sessions(self):
        assert handle_performance_analysis(_ctx(), NEUTRAL, "¿Cómo voy?").action_items == (LOG_SESSION,)

    def test_performance_summary(self):
        ctx = _ctx(recent_sessions=_sessions(3), recent_recovery_scores=(90, 80))
        response = handle_performance_analysis(ctx, NEUTRAL, "¿Cómo voy?")
        assert "Tu consistencia reciente es del 60%." in response.response
        assert "excelente (85/100)" in response.response
        assert "Y va mejorando." in response.response

    def test_goal_setting_low_frequency(self):
        ctx = _ctx(
            habits=UserHabit(user_id="u1", training_frequency=1),
            user_profile=UserProfile(name="Ana", age=30, weight_kg=60, height_cm=165, goals=["correr 10k"]),
        )
        response = handle_goal_setting(ctx, NEUTRAL, "Nueva meta")
        assert "al menos 3 días" in response.response
        assert "correr 10k" in response.response

    def test_ambiguous_offers_topics(self):
        response = handle_ambiguous_question(_ctx(), NEUTRAL, "mmm")
        assert response.action_items == ("Entrenamiento", "Nutrición", "Recuperación", "Motivación")

    def test_general_greets_by_name(self):
        profile = UserProfile(name="Ana", age=30, weight_kg=60, height_cm=165)
        assert "¡Hola, Ana!" in handle_general(_ctx(user_profile=profile), NEUTRAL, "hola").response


class TestProactiveSuggestions:
    """Forward-looking tips in greetings."""

    def test_none_without_data(self):
        assert proactive_suggestions(_ctx()) == []

    def test_fatigue_day_and_pending_increase_come_first(self):
        habits = UserHabit(user_id="u1", preferred_training_times=["18:00"], preferred_training_days=[0])
        ctx = _ctx(
            recovery_analysis=replace(_analysis(), predicted_fatigue_days=("2026-03-06",)),
            progression_plans=[_plan("Sentadilla", 100, 105)],
            habits=habits,
        )
        assert proactive_suggestions(ctx) == [
            "Podrías acusar fatiga el 2026-03-06; planifica una sesión más suave.",
            "Estás listo para subir un 5% la carga en Sentadilla.",
        ]

    def test_applied_increase_is_not_suggested(self):
        plan = _plan("Sentadilla", 100, 105)
        plan = replace(plan, adjustments=[replace(plan.adjustments[0], applied=True)])
        assert proactive_suggestions(_ctx(progression_plans=[plan])) == []

    def test_greeting_mentions_usual_slot(self):
        habits = UserHabit(user_id="u1", preferred_training_times=["18:00"], preferred_training_days=[0])
        response = handle_general(_ctx(habits=habits), NEUTRAL, "hola")
        assert "Sueles entrenar los lunes a las 18:00; ¿preparamos esa sesión?" in response.response


class TestResponseDispatcher:
    """Routing and system status."""

    def test_every_intent_has_a_handler(self):
        assert len(ResponseDispatcher().handlers) == 13

    def test_unknown_intent_falls_back_to_general(self):
        response = ResponseDispatcher().dispatch("unknown", _ctx(), NEUTRAL, "hola")  # type: ignore[arg-type]
        assert "¡Hola!" in response.response

    def test_system_optimization_reports_status_and_gaps(self):
        dispatcher = ResponseDispatcher(system_status=lambda: {"cache_hits": 2, "analyses_run": 1})
        response = dispatcher.dispatch("system_optimization", _ctx(), NEUTRAL, "estado del sistema")
        assert "analyses_run: 1, cache_hits: 2." in response.response
        assert response.action_items == (LOG_RECOVERY, LOG_SESSION, "Completar perfil")

    def test_system_optimization_all_data_present(self):
        ctx = _ctx(
            user_profile=UserProfile(name="Ana", age=30, weight_kg=60, height_cm=165),
            recent_sessions=_sessions(2),
            recovery_analysis=_analysis(),
            recent_recovery_scores=(60,),
        )
        response = ResponseDispatcher().dispatch("system_optimization", ctx, NEUTRAL, "estado")
        assert response.action_items == ("Todo en orden",)
