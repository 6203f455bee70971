"""
Rule-based intent classifier.

Maps a free-text utterance plus the current screen to one IntentCategory.
Rules live in an ordered table and the first matching rule wins, so the
precedence between categories is fixed by position in INTENT_RULES.

Text is lower-cased and accent-folded before matching. A keyword matches
as a whole word, as a word prefix when it ends in ``*``, or as a phrase
when it contains a space.
"""

import re
import unicodedata
from dataclasses import dataclass
from typing import Callable

from .config import NUTRITION_SCREENS, PROGRESSION_SCREENS, RECOVERY_SCREENS, WORKOUT_SCREENS
from .models import DecisionContext, IntentCategory

AMBIGUOUS_MAX_LENGTH = 10

# =============================================================================
# KEYWORD SETS
# =============================================================================

HOW_KEYWORDS = (
    "como", "instrucciones", "tecnica", "forma", "manera", "pasos",
    "procedimiento", "metodo", "how",
)
WHAT_KEYWORDS = ("que", "cual", "cuales", "what", "which")
INSTRUCTION_NOUNS = (
    "tecnica", "forma", "manera", "postura", "pasos", "ejecucion", "procedimiento", "metodo",
)
ACTION_KEYWORDS = (
    "hacer", "hago", "hacerlo", "realizar", "realizo", "ejecutar", "ejecuto",
    "do", "perform", "execute",
)

MOTIVATIONAL_KEYWORDS = (
    "animo", "animos", "motivacion", "motivame", "motivarme", "desanim*", "sin ganas",
    "no tengo ganas", "rendirme", "me rindo", "abandonar", "dejarlo", "quemado", "quemada",
    "deprimido", "deprimida", "frustrado", "frustrada", "inspiracion", "no puedo mas",
)

CONFUSION_MARKERS = (
    "no se", "no entiendo", "confundido", "confundida", "confusion", "no estoy seguro",
    "no estoy segura", "duda", "dudas", "algo mal", "que significa",
)

SYSTEM_OPTIMIZATION_PHRASES = (
    "optimizacion del sistema", "optimizar el sistema", "eficiencia del sistema",
    "estado del sistema", "system optimization", "system efficiency",
)

# Screen-scoped references
NEXT_EXERCISE_KEYWORDS = ("siguiente", "proximo", "proxima", "next", "upcoming", "ejercicio*")
REST_KEYWORDS = ("descans*", "fatiga*", "cansad*", "cansancio", "recuper*", "dolor*", "rest")
LOAD_KEYWORDS = ("carga*", "peso*", "progres*", "load", "weight")
FOOD_KEYWORDS = ("comida*", "comer", "caloria*", "proteina*", "aliment*", "food")

# General buckets, evaluated in this order
NUTRITION_KEYWORDS = (
    "comida*", "comer", "nutricion*", "caloria*", "proteina*", "dieta*", "alimentacion",
    "alimento*", "macros", "desayuno", "almuerzo", "cena", "receta*", "suplemento*",
)
ROUTINE_MODIFICATION_KEYWORDS = (
    "cambiar", "modificar", "ajustar", "adaptar", "sustituir", "reemplazar",
    "personalizar", "rutina semanal",
)
PERFORMANCE_KEYWORDS = (
    "rendimiento", "analisis", "analizar", "evaluacion", "evaluar", "estadisticas",
    "mejorar", "como voy", "mi progreso", "progreso ultimamente",
)
WORKOUT_KEYWORDS = (
    "entrenamiento*", "entreno*", "ejercicio*", "rutina*", "workout", "que hago hoy",
)
RECOVERY_KEYWORDS = (
    "descans*", "recuper*", "cansad*", "cansancio", "fatiga*", "dolor*", "agujetas",
    "sueno", "dormir", "lesion*",
)
PROGRESSION_KEYWORDS = ("progres*", "carga*", "peso*", "intensidad", "volumen")
GOAL_KEYWORDS = ("meta*", "objetivo*", "plan", "planes", "estrategia", "proposito*")
TECH_SUPPORT_KEYWORDS = ("problema*", "error*", "fallo*", "bug", "ayuda", "funciona", "aplicacion", "app")


# =============================================================================
# MATCHING
# =============================================================================


def fold_accents(text: str) -> str:
    """Lower-case and strip diacritics, keeping punctuation."""
    decomposed = unicodedata.normalize("NFKD", text.lower())
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def normalize_text(text: str) -> str:
    """Lower-case, strip accents and reduce to space-separated words."""
    return " ".join(re.findall(r"[a-z0-9]+", fold_accents(text)))


@dataclass(frozen=True)
class Utterance:
    """A user message prepared for keyword matching."""

    raw: str
    normalized: str
    tokens: tuple[str, ...]

    @classmethod
    def from_text(cls, text: str) -> "Utterance":
        normalized = normalize_text(text or "")
        return cls(raw=text or "", normalized=normalized, tokens=tuple(normalized.split()))

    def mentions(self, keywords: tuple[str, ...]) -> bool:
        """True if any keyword matches (word, ``stem*`` prefix, or phrase)."""
        padded = f" {self.normalized} "
        for kw in keywords:
            if " " in kw:
                if f" {kw} " in padded:
                    return True
            elif kw.endswith("*"):
                stem = kw[:-1]
                if any(t.startswith(stem) for t in self.tokens):
                    return True
            elif kw in self.tokens:
                return True
        return False


# =============================================================================
# PREDICATES
# =============================================================================


def _is_technical(u: Utterance, ctx: DecisionContext) -> bool:
    instructional = u.mentions(HOW_KEYWORDS) or (u.mentions(WHAT_KEYWORDS) and u.mentions(INSTRUCTION_NOUNS))
    return instructional and u.mentions(ACTION_KEYWORDS)


def _is_motivational(u: Utterance, ctx: DecisionContext) -> bool:
    return u.mentions(MOTIVATIONAL_KEYWORDS)


def _on_workout_next(u: Utterance, ctx: DecisionContext) -> bool:
    return (
        ctx.current_screen in WORKOUT_SCREENS
        and ctx.active_workout is not None
        and u.mentions(NEXT_EXERCISE_KEYWORDS)
    )


def _on_recovery_rest(u: Utterance, ctx: DecisionContext) -> bool:
    return ctx.current_screen in RECOVERY_SCREENS and u.mentions(REST_KEYWORDS)


def _on_progression_load(u: Utterance, ctx: DecisionContext) -> bool:
    return ctx.current_screen in PROGRESSION_SCREENS and u.mentions(LOAD_KEYWORDS)


def _on_nutrition_food(u: Utterance, ctx: DecisionContext) -> bool:
    return ctx.current_screen in NUTRITION_SCREENS and u.mentions(FOOD_KEYWORDS)


def _keywords(keywords: tuple[str, ...]) -> Callable[[Utterance, DecisionContext], bool]:
    def predicate(u: Utterance, ctx: DecisionContext) -> bool:
        return u.mentions(keywords)

    return predicate


def _is_ambiguous(u: Utterance, ctx: DecisionContext) -> bool:
    stripped = u.raw.strip()
    if not u.tokens:
        return True
    if len(stripped) < AMBIGUOUS_MAX_LENGTH and "?" not in stripped:
        return True
    return u.mentions(CONFUSION_MARKERS)


@dataclass(frozen=True)
class IntentRule:
    name: str
    predicate: Callable[[Utterance, DecisionContext], bool]
    intent: IntentCategory


INTENT_RULES: tuple[IntentRule, ...] = (
    IntentRule("technical", _is_technical, "technical_question"),
    IntentRule("motivational", _is_motivational, "motivational_question"),
    IntentRule("screen:workout", _on_workout_next, "workout_inquiry"),
    IntentRule("screen:recovery", _on_recovery_rest, "recovery_advice"),
    IntentRule("screen:progression", _on_progression_load, "progression_guidance"),
    IntentRule("screen:nutrition", _on_nutrition_food, "nutrition_guidance"),
    IntentRule("nutrition", _keywords(NUTRITION_KEYWORDS), "nutrition_guidance"),
    IntentRule("routine_modification", _keywords(ROUTINE_MODIFICATION_KEYWORDS), "routine_modification"),
    IntentRule("performance", _keywords(PERFORMANCE_KEYWORDS), "performance_analysis"),
    IntentRule("workout", _keywords(WORKOUT_KEYWORDS), "workout_inquiry"),
    IntentRule("recovery", _keywords(RECOVERY_KEYWORDS), "recovery_advice"),
    IntentRule("progression", _keywords(PROGRESSION_KEYWORDS), "progression_guidance"),
    IntentRule("goal", _keywords(GOAL_KEYWORDS), "goal_setting"),
    IntentRule("tech_support", _keywords(TECH_SUPPORT_KEYWORDS), "technical_support"),
    IntentRule("ambiguous", _is_ambiguous, "ambiguous_question"),
    IntentRule("system_optimization", _keywords(SYSTEM_OPTIMIZATION_PHRASES), "system_optimization"),
)


def match_intent_rule(text: str, context: DecisionContext) -> IntentRule | None:
    """First rule matching the text, or None when only the default applies."""
    utterance = Utterance.from_text(text)
    for rule in INTENT_RULES:
        if rule.predicate(utterance, context):
            return rule
    return None


def determine_intent(text: str, context: DecisionContext) -> IntentCategory:
    """
    Classify an utterance.

    Args:
        text: Raw user input (may be empty)
        context: Current decision context (screen, active workout)

    Returns:
        The intent of the first matching rule, else "general"
    """
    rule = match_intent_rule(text, context)
    return rule.intent if rule is not None else "general"
