"""
Tone and persona selection.

The primary persona is chosen by an ordered rule table; empathy (mentor)
outranks everything, then readiness (warrior), then technical screens
(scientist), then the motivational-struggle heuristic (philosopher).
The plan-phase suggestion may only replace the neutral ``adaptive``
default, never an earlier selection.
"""

from dataclasses import dataclass
from typing import Callable

from .config import CONSISTENCY_PERIOD_SESSIONS, TECHNICAL_SCREENS, PersonaSettings
from .models import DecisionContext, Persona, PlanPhase, ToneModifiers, ToneSelection

PLAN_PHASE_PERSONAS: dict[PlanPhase, Persona] = {
    "initiation": "disciplinarian",
    "stagnation": "scientist",
    "achievement": "warrior",
}


def session_consistency(ctx: DecisionContext) -> float:
    """Recent sessions per 7-day period, capped at 1.0."""
    return min(1.0, len(ctx.recent_sessions) / CONSISTENCY_PERIOD_SESSIONS)


def is_fatigued(ctx: DecisionContext) -> bool:
    wearable = ctx.wearable_insight
    return ctx.fatigue_level in ("high", "extreme") or (
        wearable is not None and wearable.recovery_status in ("poor", "critical")
    )


def is_ready(ctx: DecisionContext) -> bool:
    wearable = ctx.wearable_insight
    return ctx.fatigue_level == "low" or (wearable is not None and wearable.training_readiness == "ready")


def motivational_struggle(ctx: DecisionContext, settings: PersonaSettings) -> bool:
    """
    Low consistency over enough sessions, or a poor trailing recovery average.
    """
    if (
        len(ctx.recent_sessions) >= settings.struggle_min_sessions
        and session_consistency(ctx) < settings.consistency_low
    ):
        return True
    scores = ctx.recent_recovery_scores
    return bool(scores) and sum(scores) / len(scores) < settings.struggle_recovery_score


@dataclass(frozen=True)
class PersonaRule:
    name: str
    predicate: Callable[[DecisionContext, PersonaSettings], bool]
    persona: Persona


PERSONA_RULES: tuple[PersonaRule, ...] = (
    PersonaRule("fatigued", lambda ctx, s: is_fatigued(ctx), "mentor"),
    PersonaRule(
        "ready_and_consistent",
        lambda ctx, s: is_ready(ctx) and session_consistency(ctx) > s.consistency_high,
        "warrior",
    ),
    PersonaRule("technical_screen", lambda ctx, s: ctx.current_screen in TECHNICAL_SCREENS, "scientist"),
    PersonaRule("struggling", motivational_struggle, "philosopher"),
)


def select_primary_persona(ctx: DecisionContext, settings: PersonaSettings | None = None) -> Persona:
    s = settings or PersonaSettings()
    for rule in PERSONA_RULES:
        if rule.predicate(ctx, s):
            return rule.persona
    return "adaptive"


def determine_plan_phase(ctx: DecisionContext, settings: PersonaSettings | None = None) -> PlanPhase:
    """initiation without sessions; otherwise by consistency (0.5 / 0.8)."""
    s = settings or PersonaSettings()
    if not ctx.recent_sessions:
        return "initiation"
    consistency = session_consistency(ctx)
    if consistency < s.consistency_low:
        return "stagnation"
    if consistency > s.consistency_high:
        return "achievement"
    return "initiation"


def generate_tone_modifiers(ctx: DecisionContext) -> ToneModifiers:
    """
    Derive tone modifiers independently of the persona.

    Fatigue softens the tone, readiness sharpens it, technical screens
    raise technicality.
    """
    technicality = "complex" if ctx.current_screen in TECHNICAL_SCREENS else "simple"
    if is_fatigued(ctx):
        return ToneModifiers(intensity="low", firmness="gentle", enthusiasm="calm", technicality=technicality)
    if is_ready(ctx):
        return ToneModifiers(intensity="high", firmness="firm", enthusiasm="intense", technicality=technicality)
    return ToneModifiers(technicality=technicality)


def select_tone(ctx: DecisionContext, settings: PersonaSettings | None = None) -> ToneSelection:
    """
    Resolve the persona for one interaction.

    Args:
        ctx: Decision context
        settings: Persona thresholds

    Returns:
        ToneSelection with the final persona, modifiers and plan phase
    """
    primary = select_primary_persona(ctx, settings)
    phase = determine_plan_phase(ctx, settings)
    persona = PLAN_PHASE_PERSONAS[phase] if primary == "adaptive" else primary
    return ToneSelection(persona=persona, modifiers=generate_tone_modifiers(ctx), plan_phase=phase)
