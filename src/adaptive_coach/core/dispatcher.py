"""
Response dispatcher.

One handler per intent category. Handlers read only the decision context,
the resolved tone and the raw message; the only state they change is
what they return in ``context_updates``.  Missing optional data never
raises: the handler explains what is missing and suggests the next step.
"""

import logging
from dataclasses import replace
from typing import Callable

from .intent import Utterance
from .modification import apply_modification, detect_modification_request
from .models import (
    CoachResponse,
    ContextUpdates,
    DecisionContext,
    IntentCategory,
    PlannedExercise,
    ProgressionAdjustment,
    ProgressionPlan,
    ToneSelection,
    WearableInsight,
    WorkoutPlan,
)
from .persona import session_consistency
from .progression import apply_progression_adjustments

logger = logging.getLogger(__name__)

Handler = Callable[[DecisionContext, ToneSelection, str], CoachResponse]

FATIGUE_LABELS = {"low": "baja", "moderate": "moderada", "high": "alta", "extreme": "extrema"}
INTENSITY_LABELS = {"low": "baja", "moderate": "moderada", "high": "alta", "rest": "descanso"}
PHASE_LABELS = {"accumulation": "acumulación", "intensification": "intensificación", "deload": "descarga"}
GOAL_LABELS = {
    "definition": "definición",
    "strength": "fuerza",
    "muscle_mass": "masa muscular",
    "endurance": "resistencia",
    "maintenance": "mantenimiento",
}
LEVEL_LABELS = {"beginner": "principiante", "intermediate": "intermedio", "advanced": "avanzado"}
WEARABLE_ADJUSTMENT_LABELS = {"volume": "volumen", "intensity": "intensidad", "rest": "descanso", "deload": "descarga"}
WEEKDAY_LABELS = ("lunes", "martes", "miércoles", "jueves", "viernes", "sábados", "domingos")

PERSONA_OPENERS = {
    "mentor": "Vamos con calma y escuchando a tu cuerpo.",
    "warrior": "¡Estás en racha, vamos a por todas!",
    "scientist": "Veamos lo que dicen tus datos.",
    "philosopher": "Cada paso cuenta, incluso los más pequeños.",
    "disciplinarian": "La constancia es la base de todo.",
    "adaptive": "",
}
ENTHUSIASM_CLOSERS = {"calm": "Recupérate bien.", "energetic": "", "intense": "¡A por ello!"}

FALLBACK_RESPONSE = CoachResponse(
    response="Todavía no tengo suficientes datos para ayudarte con eso. Empieza registrando tu próxima sesión.",
    action_items=("Registrar sesión de entrenamiento",),
)

CREATE_ROUTINE = "Crear nueva rutina"
LOG_SESSION = "Registrar sesión de entrenamiento"
LOG_RECOVERY = "Registrar métricas de recuperación"


def _voice(tone: ToneSelection, body: str) -> str:
    """Frame a handler body with the persona's opener and tone closer."""
    parts = [PERSONA_OPENERS.get(tone.persona, ""), body, ENTHUSIASM_CLOSERS.get(tone.modifiers.enthusiasm, "")]
    return " ".join(p for p in parts if p)


def _describe_sets(ex: PlannedExercise) -> str:
    if not ex.sets:
        return ex.name
    first = ex.sets[0]
    load = f" con {first.weight:g} kg" if first.weight else ""
    return f"{ex.name}: {len(ex.sets)} series de {first.reps} repeticiones{load}, descanso {first.rest_seconds} s"


def _wearable_adjustments(insight: WearableInsight | None) -> str:
    if insight is None or not insight.adjustments:
        return ""
    parts = []
    for adj in insight.adjustments:
        part = f"{WEARABLE_ADJUSTMENT_LABELS[adj.type]} {adj.value:+g}%"
        if adj.reason:
            part += f" ({adj.reason})"
        parts.append(part)
    return "Ajustes sugeridos por tu wearable: " + "; ".join(parts) + "."


def _mentioned_exercises(text: str, names: list[str]) -> list[str]:
    u = Utterance.from_text(text)
    padded = f" {u.normalized} "
    return [n for n in names if f" {Utterance.from_text(n).normalized} " in padded]


# =============================================================================
# HANDLERS
# =============================================================================


def handle_workout_inquiry(ctx: DecisionContext, tone: ToneSelection, text: str) -> CoachResponse:
    workout = ctx.active_workout
    if workout is None:
        if ctx.habits is not None and ctx.habits.preferred_training_times:
            times = ", ".join(ctx.habits.preferred_training_times[:3])
            body = f"No tienes una rutina activa. Sueles entrenar a las {times}; puedo prepararte una nueva rutina para esa hora."
        else:
            body = "No he encontrado un entrenamiento activo. ¿Quieres que creemos una rutina nueva?"
        if ctx.recovery_analysis is not None:
            label = INTENSITY_LABELS[ctx.recovery_analysis.suggested_workout_intensity]
            body += f" Hoy te recomiendo una intensidad {label}."
        return CoachResponse(response=_voice(tone, body), action_items=(CREATE_ROUTINE,))

    u = Utterance.from_text(text)
    if ctx.current_screen == "workoutDetail" and u.mentions(("siguiente", "proximo", "proxima", "next")):
        first_day = workout.days[0] if workout.days else None
        if first_day is None or not first_day.exercises:
            body = f"La rutina {workout.name} no tiene ejercicios programados todavía."
            return CoachResponse(response=_voice(tone, body), action_items=("Editar rutina",))
        body = f"Tu siguiente ejercicio es {_describe_sets(first_day.exercises[0])}."
        return CoachResponse(response=_voice(tone, body), action_items=("Iniciar ejercicio",))

    lines = [f"Tu rutina activa es {workout.name} ({len(workout.days)} días, {workout.duration_minutes} min por sesión)."]
    if workout.days:
        day = workout.days[0]
        exercises = ", ".join(ex.name for ex in day.exercises) or "sin ejercicios"
        lines.append(f"Día {day.day} ({day.focus or 'general'}): {exercises}.")
    if ctx.recovery_analysis is not None:
        label = INTENSITY_LABELS[ctx.recovery_analysis.suggested_workout_intensity]
        lines.append(f"Según tu recuperación, hoy conviene una intensidad {label}.")
    names = set(workout.exercise_names())
    for plan in ctx.progression_plans:
        if plan.exercise_name in names and plan.recommended_weight != plan.current_weight:
            lines.append(f"En {plan.exercise_name} te recomiendo {plan.recommended_weight:g} kg.")
    adjustments = _wearable_adjustments(ctx.wearable_insight)
    if adjustments:
        lines.append(adjustments)
    return CoachResponse(
        response=_voice(tone, " ".join(lines)),
        action_items=("Iniciar entrenamiento", "Ver detalles de la rutina"),
    )


def handle_recovery_advice(ctx: DecisionContext, tone: ToneSelection, text: str) -> CoachResponse:
    analysis = ctx.recovery_analysis
    if analysis is None:
        body = "Aún no tengo datos de tu recuperación. Registra cómo te sientes hoy y te daré recomendaciones."
        return CoachResponse(response=_voice(tone, body), action_items=(LOG_RECOVERY,))

    lines = [
        f"Tu nivel de fatiga es {FATIGUE_LABELS[analysis.fatigue_level]} "
        f"y tu puntuación de recuperación es {analysis.recovery_score}/100.",
        f"Intensidad sugerida: {INTENSITY_LABELS[analysis.suggested_workout_intensity]}.",
    ]
    if analysis.recommendations:
        lines.append("Te recomiendo: " + "; ".join(r.title for r in analysis.recommendations[:4]) + ".")
    if analysis.predicted_fatigue_days:
        lines.append("Ojo con estos días de posible fatiga: " + ", ".join(analysis.predicted_fatigue_days) + ".")
    wearable = ctx.wearable_insight
    if wearable is not None:
        if wearable.risk_factors:
            lines.append("Tu wearable señala: " + ", ".join(wearable.risk_factors) + ".")
        if wearable.recommendations:
            lines.append("Según tus datos del wearable: " + "; ".join(wearable.recommendations[:3]) + ".")
        adjustments = _wearable_adjustments(wearable)
        if adjustments:
            lines.append(adjustments)
    return CoachResponse(
        response=_voice(tone, " ".join(lines)),
        action_items=(LOG_RECOVERY, "Ver recomendaciones completas"),
    )


def handle_progression_guidance(ctx: DecisionContext, tone: ToneSelection, text: str) -> CoachResponse:
    plans = list(ctx.progression_plans)
    if not plans:
        body = "Todavía no tengo historial de progresión. Registra tus series con peso, repeticiones y RPE."
        return CoachResponse(response=_voice(tone, body), action_items=(LOG_SESSION,))

    mentioned = _mentioned_exercises(text, [p.exercise_name for p in plans])
    selected = [p for p in plans if p.exercise_name in mentioned] or plans[:3]

    lines = []
    for plan in selected:
        line = (
            f"{plan.exercise_name}: de {plan.current_weight:g} kg a {plan.recommended_weight:g} kg, "
            f"fase de {PHASE_LABELS[plan.next_phase]}"
        )
        if plan.adjustments:
            line += f" ({plan.adjustments[0].reason})"
        lines.append(line + ".")
        lines.extend(plan.notes)
    return CoachResponse(
        response=_voice(tone, " ".join(lines)),
        action_items=("Aplicar ajustes a la rutina", "Ver historial de progresión"),
    )


def handle_nutrition_guidance(ctx: DecisionContext, tone: ToneSelection, text: str) -> CoachResponse:
    nutrition = ctx.nutrition
    if nutrition is None:
        body = "No puedo calcular tu plan nutricional todavía. Completa tu perfil con peso, altura y edad."
        return CoachResponse(response=_voice(tone, body), action_items=("Completar perfil",))

    total = nutrition.total_nutrients
    u = Utterance.from_text(text)
    if u.mentions(("caloria*", "kcal")):
        body = f"Tu objetivo de hoy es de {total.calories:g} kcal."
    elif u.mentions(("proteina*",)):
        body = f"Hoy deberías tomar unos {total.protein:g} g de proteína, repartidos entre tus comidas."
    else:
        goal = GOAL_LABELS.get(nutrition.nutrition_goal, nutrition.nutrition_goal)
        body = (
            f"Para tu objetivo de {goal}: {total.calories:g} kcal, {total.protein:g} g de proteína, "
            f"{total.carbs:g} g de carbohidratos y {total.fats:g} g de grasas."
        )
        workout_meals = [m for m in nutrition.meals if m.workout_related]
        if workout_meals:
            body += " " + " ".join(f"{m.name} a las {m.time}." for m in workout_meals)
    return CoachResponse(
        response=_voice(tone, body),
        action_items=("Ver plan nutricional completo", "Registrar comida"),
    )


def _marked_plans(plans: list[ProgressionPlan], marked: list[ProgressionAdjustment]) -> tuple[ProgressionPlan, ...]:
    """Plans whose adjustments changed, rebuilt from the flat marked list."""
    remaining = iter(marked)
    changed = []
    for plan in plans:
        adjustments = tuple(next(remaining) for _ in plan.adjustments)
        if adjustments != plan.adjustments:
            changed.append(replace(plan, adjustments=adjustments))
    return tuple(changed)


def _recovery_routine(base: WorkoutPlan | None) -> str:
    name = base.name if base is not None else "tu rutina"
    return (
        f"Tu fatiga es alta, así que dejamos {name} en pausa. "
        "Hoy toca una rutina de recuperación: 10 minutos de movilidad, 15 de estiramientos y una caminata suave."
    )


def handle_routine_modification(ctx: DecisionContext, tone: ToneSelection, text: str) -> CoachResponse:
    if ctx.fatigue_level in ("high", "extreme"):
        return CoachResponse(
            response=_voice(tone, _recovery_routine(ctx.active_workout)),
            action_items=("Ver rutina de recuperación",),
            context_updates=ContextUpdates(clear_active_workout=True),
        )

    workout = ctx.active_workout
    if workout is None:
        body = "No tienes una rutina activa que modificar. Creemos una nueva adaptada a ti."
        return CoachResponse(response=_voice(tone, body), action_items=(CREATE_ROUTINE,))

    request = detect_modification_request(text)
    if request.type != "none":
        result = apply_modification(workout, request)
        if result.adjustments:
            body = f"Listo: {request.details.lower()}. Ejercicios afectados: {', '.join(result.affected_exercises)}."
            return CoachResponse(
                response=_voice(tone, body),
                action_items=("Ver rutina actualizada",),
                context_updates=ContextUpdates(active_workout=result.plan),
            )

    names = set(workout.exercise_names())
    relevant = [p for p in ctx.progression_plans if p.exercise_name in names]
    pending: list[ProgressionAdjustment] = [a for p in relevant for a in p.adjustments]
    new_plan, marked = apply_progression_adjustments(workout, pending)
    applied = [a for a, before in zip(marked, pending) if a.applied and not before.applied]
    if applied:
        changes = "; ".join(f"{a.exercise_name} {a.value:+g}%" for a in applied)
        body = f"He ajustado tu rutina según tu progresión: {changes}."
        return CoachResponse(
            response=_voice(tone, body),
            action_items=("Ver rutina actualizada",),
            context_updates=ContextUpdates(
                active_workout=new_plan,
                progression_plans=_marked_plans(relevant, marked),
            ),
        )

    body = "¿Qué quieres cambiar de tu rutina? Puedo cambiar un ejercicio, ajustar la carga o el volumen."
    return CoachResponse(
        response=_voice(tone, body),
        action_items=("Cambiar un ejercicio", "Ajustar la carga", "Ajustar el volumen"),
    )


def handle_performance_analysis(ctx: DecisionContext, tone: ToneSelection, text: str) -> CoachResponse:
    if not ctx.recent_sessions:
        body = "Aún no hay sesiones registradas para analizar tu rendimiento."
        return CoachResponse(response=_voice(tone, body), action_items=(LOG_SESSION,))

    consistency = min(1.0, len(ctx.recent_sessions[:5]) / 5)
    lines = [f"Tu consistencia reciente es del {round(consistency * 100)}%."]

    improving = sum(1 for p in ctx.progression_plans for a in p.adjustments if a.value > 0)
    if improving:
        lines.append(f"Tienes {improving} ejercicio(s) listos para progresar.")

    scores = list(ctx.recent_recovery_scores)
    if not scores and ctx.recovery_analysis is not None:
        scores = [ctx.recovery_analysis.recovery_score]
    if scores:
        avg = sum(scores) / len(scores)
        if avg < 50:
            lines.append(f"Tu recuperación media es baja ({avg:.0f}/100); prioriza el descanso.")
        elif avg > 80:
            lines.append(f"Tu recuperación media es excelente ({avg:.0f}/100).")
        else:
            lines.append(f"Tu recuperación media es de {avg:.0f}/100.")
        if len(scores) >= 2:
            delta = scores[0] - scores[-1]
            if delta >= 10:
                lines.append("Y va mejorando.")
            elif delta <= -10:
                lines.append("Aunque viene empeorando estos días.")
    return CoachResponse(
        response=_voice(tone, " ".join(lines)),
        action_items=("Ver análisis detallado", "Ajustar objetivos"),
    )


def handle_goal_setting(ctx: DecisionContext, tone: ToneSelection, text: str) -> CoachResponse:
    lines = []
    if ctx.habits is not None:
        freq = ctx.habits.training_frequency
        if freq < 3:
            lines.append("Para avanzar hacia tu meta, intenta entrenar al menos 3 días por semana.")
        elif freq > 5:
            lines.append("Entrenas mucho; incluye días de descanso para que tu meta sea sostenible.")
    profile = ctx.user_profile
    if profile is not None:
        lines.append(f"Con tu nivel {LEVEL_LABELS[profile.fitness_level]}, fija metas realistas a 4-8 semanas.")
        if profile.goals:
            lines.append("Tus metas actuales: " + ", ".join(profile.goals) + ".")
    lines.append("Define una meta específica, medible, alcanzable, relevante y con fecha límite.")
    return CoachResponse(
        response=_voice(tone, " ".join(lines)),
        action_items=("Definir nueva meta", "Revisar metas existentes"),
    )


def handle_technical_support(ctx: DecisionContext, tone: ToneSelection, text: str) -> CoachResponse:
    body = "Siento el inconveniente. Cuéntame qué pantalla usabas y qué ocurrió para ayudarte a resolverlo."
    return CoachResponse(
        response=body,
        action_items=("Reportar problema técnico", "Ver guía de solución de problemas"),
    )


def handle_technical_question(ctx: DecisionContext, tone: ToneSelection, text: str) -> CoachResponse:
    names = ctx.active_workout.exercise_names() if ctx.active_workout is not None else []
    names += [p.exercise_name for p in ctx.progression_plans if p.exercise_name not in names]
    mentioned = _mentioned_exercises(text, names)
    cues = "controla la bajada, completa todo el rango de movimiento y mantén la respiración constante"
    if mentioned:
        body = f"Para {mentioned[0]}: {cues}. Si la técnica se rompe, baja el peso."
    else:
        body = f"En cualquier ejercicio: {cues}. ¿Sobre qué ejercicio quieres detalles?"
    if tone.modifiers.technicality == "complex":
        body += " Trabaja con 2-3 repeticiones en reserva para mantener la calidad de cada serie."
    return CoachResponse(response=_voice(tone, body), action_items=("Ver guía de técnica",))


def handle_motivational_question(ctx: DecisionContext, tone: ToneSelection, text: str) -> CoachResponse:
    sessions = len(ctx.recent_sessions)
    if sessions:
        body = f"Ya llevas {sessions} sesiones recientes; eso demuestra que puedes."
    else:
        body = "Empezar es lo más difícil, y ya estás aquí."
    if ctx.fatigue_level in ("high", "extreme"):
        body += " Hoy descansar también es avanzar."
    else:
        body += " Márcate un objetivo pequeño para hoy y cúmplelo."
    return CoachResponse(
        response=_voice(tone, body),
        action_items=("Ver mi progreso", "Establecer un mini objetivo"),
    )


def handle_ambiguous_question(ctx: DecisionContext, tone: ToneSelection, text: str) -> CoachResponse:
    body = "No estoy seguro de haberte entendido. ¿Sobre qué quieres hablar?"
    return CoachResponse(
        response=body,
        action_items=("Entrenamiento", "Nutrición", "Recuperación", "Motivación"),
    )


def proactive_suggestions(ctx: DecisionContext, limit: int = 2) -> list[str]:
    """
    Forward-looking tips from what the context already predicts.

    Upcoming fatigue days come first, then pending load increases, then the
    usual training slot.
    """
    tips = []
    analysis = ctx.recovery_analysis
    if analysis is not None and analysis.predicted_fatigue_days:
        tips.append(f"Podrías acusar fatiga el {analysis.predicted_fatigue_days[0]}; planifica una sesión más suave.")
    increases = [
        a for p in ctx.progression_plans for a in p.adjustments
        if a.adjustment_type == "weight" and a.value > 0 and not a.applied
    ]
    if increases:
        a = increases[0]
        tips.append(f"Estás listo para subir un {a.value:g}% la carga en {a.exercise_name}.")
    habits = ctx.habits
    if habits is not None and habits.preferred_training_days and habits.preferred_training_times:
        day = WEEKDAY_LABELS[habits.preferred_training_days[0]]
        tips.append(f"Sueles entrenar los {day} a las {habits.preferred_training_times[0]}; ¿preparamos esa sesión?")
    return tips[:limit]


def handle_general(ctx: DecisionContext, tone: ToneSelection, text: str) -> CoachResponse:
    name = ctx.user_profile.name if ctx.user_profile is not None else ""
    greeting = f"¡Hola, {name}!" if name else "¡Hola!"
    body = (
        f"{greeting} Puedo ayudarte con tu entrenamiento, tu recuperación, la progresión de cargas, "
        "tu nutrición y tus metas."
    )
    tips = proactive_suggestions(ctx)
    if tips:
        body += " " + " ".join(tips)
    return CoachResponse(
        response=_voice(tone, body),
        action_items=("Ver mi entrenamiento de hoy", LOG_RECOVERY),
    )


class ResponseDispatcher:
    """
    Maps each intent to its handler.

    Args:
        system_status: Optional callable returning engine counters for
            system-optimization questions
    """

    def __init__(self, system_status: Callable[[], dict[str, int]] | None = None):
        self.system_status = system_status
        self.handlers: dict[IntentCategory, Handler] = {
            "workout_inquiry": handle_workout_inquiry,
            "recovery_advice": handle_recovery_advice,
            "progression_guidance": handle_progression_guidance,
            "nutrition_guidance": handle_nutrition_guidance,
            "routine_modification": handle_routine_modification,
            "performance_analysis": handle_performance_analysis,
            "goal_setting": handle_goal_setting,
            "technical_support": handle_technical_support,
            "technical_question": handle_technical_question,
            "motivational_question": handle_motivational_question,
            "ambiguous_question": handle_ambiguous_question,
            "system_optimization": self.handle_system_optimization,
            "general": handle_general,
        }

    def handle_system_optimization(self, ctx: DecisionContext, tone: ToneSelection, text: str) -> CoachResponse:
        missing: list[str] = []
        if ctx.recovery_analysis is None or not ctx.recent_recovery_scores:
            missing.append(LOG_RECOVERY)
        if not ctx.recent_sessions:
            missing.append(LOG_SESSION)
        if ctx.user_profile is None:
            missing.append("Completar perfil")

        lines = []
        if self.system_status is not None:
            stats = self.system_status()
            lines.append(", ".join(f"{k}: {v}" for k, v in sorted(stats.items())) + ".")
        consistency = session_consistency(ctx)
        lines.append(f"Datos disponibles: consistencia {round(consistency * 100)}%, {len(ctx.progression_plans)} planes de progresión.")
        if missing:
            lines.append("Para afinar mis recomendaciones me faltan algunos datos.")
        else:
            lines.append("El sistema tiene todo lo necesario para personalizar tus recomendaciones.")
        return CoachResponse(response=" ".join(lines), action_items=tuple(missing) or ("Todo en orden",))

    def dispatch(self, intent: IntentCategory, ctx: DecisionContext, tone: ToneSelection, text: str) -> CoachResponse:
        """Run the handler for an intent (general when unknown)."""
        handler = self.handlers.get(intent, handle_general)
        logger.debug("Dispatching %s for %s as %s", intent, ctx.user_id, tone.persona)
        return handler(ctx, tone, text)
