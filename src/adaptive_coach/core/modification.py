"""
Real-time routine modification.

Detects explicit change requests in a message ("reducir la carga 10%",
"cambiar el ejercicio por remo") and applies them to the active workout as
a pure transformation.
"""

import re
from dataclasses import dataclass, replace
from typing import Literal

from .intent import fold_accents
from .models import PlannedExercise, PlannedSet, ProgressionAdjustment, WorkoutPlan

ModificationType = Literal[
    "exercise_change", "load_reduction", "load_increase", "intensity_change", "volume_change", "none"
]

DEFAULT_LOAD_REDUCTION = 10.0
DEFAULT_LOAD_INCREASE = 5.0
DEFAULT_INTENSITY_INCREASE = 5.0
DEFAULT_INTENSITY_REDUCTION = 10.0
DEFAULT_VOLUME_INCREASE = 10.0
DEFAULT_VOLUME_REDUCTION = 15.0

_UP_WORDS = ("aumentar", "subir", "mas")
_DOWN_WORDS = ("reducir", "bajar", "menos")
_UP_VALUE = re.compile(r"(?:aumentar|subir|mas)\s+(?:\w+\s+)?(\d+(?:\.\d+)?)")
_DOWN_VALUE = re.compile(r"(?:reducir|bajar|menos)\s+(?:\w+\s+)?(\d+(?:\.\d+)?)")
_PCT_VALUE = re.compile(r"(\d+(?:\.\d+)?)\s*%")
_EXERCISE_TARGET = re.compile(r"(?:cambiar|reemplazar).*?ejercicio.*?\b(?:por|con)\s+([a-z\s]+)")


@dataclass(frozen=True)
class ModificationRequest:
    type: ModificationType
    value: float | None = None  # signed percent
    exercise_name: str | None = None
    details: str = ""


@dataclass(frozen=True)
class ModificationResult:
    plan: WorkoutPlan
    adjustments: tuple[ProgressionAdjustment, ...]
    affected_exercises: tuple[str, ...]


def _has(text: str, words: tuple[str, ...]) -> bool:
    return any(re.search(rf"\b{w}\b", text) for w in words)


def _value(text: str, pattern: re.Pattern, default: float) -> float:
    match = pattern.search(text) or _PCT_VALUE.search(text)
    return float(match.group(1)) if match else default


def detect_modification_request(text: str) -> ModificationRequest:
    """
    Recognize an explicit routine change request.

    Checked in order: exercise change, load reduction, load increase,
    intensity change, volume change. Values are percentages; a number in
    the message overrides the default for that request type.
    """
    t = fold_accents(text or "")

    if "cambiar" in t and "ejercicio" in t:
        match = _EXERCISE_TARGET.search(t)
        return ModificationRequest(
            type="exercise_change",
            exercise_name=match.group(1).strip() if match else None,
            details="Cambio de ejercicio solicitado",
        )

    mentions_load = "carga" in t or "peso" in t
    if "reducir" in t and mentions_load:
        return ModificationRequest(
            type="load_reduction",
            value=-_value(t, _DOWN_VALUE, DEFAULT_LOAD_REDUCTION),
            details="Reducción de carga solicitada",
        )
    if "aumentar" in t and mentions_load:
        return ModificationRequest(
            type="load_increase",
            value=_value(t, _UP_VALUE, DEFAULT_LOAD_INCREASE),
            details="Aumento de carga solicitado",
        )

    if "intensidad" in t:
        if _has(t, _UP_WORDS):
            return ModificationRequest(
                type="intensity_change",
                value=_value(t, _UP_VALUE, DEFAULT_INTENSITY_INCREASE),
                details="Aumento de intensidad solicitado",
            )
        if _has(t, _DOWN_WORDS):
            return ModificationRequest(
                type="intensity_change",
                value=-_value(t, _DOWN_VALUE, DEFAULT_INTENSITY_REDUCTION),
                details="Reducción de intensidad solicitada",
            )

    if "volumen" in t:
        if _has(t, _UP_WORDS):
            return ModificationRequest(
                type="volume_change",
                value=_value(t, _UP_VALUE, DEFAULT_VOLUME_INCREASE),
                details="Aumento de volumen solicitado",
            )
        if _has(t, _DOWN_WORDS):
            return ModificationRequest(
                type="volume_change",
                value=-_value(t, _DOWN_VALUE, DEFAULT_VOLUME_REDUCTION),
                details="Reducción de volumen solicitada",
            )

    return ModificationRequest(type="none")


def _signed(pct: float) -> str:
    return f"{pct:+g}%"


def _append_note(ex: PlannedExercise, note: str) -> str:
    return f"{ex.notes} | {note}" if ex.notes else note


def _scale_weights(ex: PlannedExercise, pct: float) -> tuple[PlannedSet, ...]:
    return tuple(
        replace(s, weight=round(s.weight * (1 + pct / 100), 2)) if s.weight is not None else s
        for s in ex.sets
    )


def _resize_sets(ex: PlannedExercise, pct: float) -> tuple[PlannedSet, ...]:
    if not ex.sets:
        return ex.sets
    count = max(1, round(len(ex.sets) * (1 + pct / 100)))
    if count <= len(ex.sets):
        return ex.sets[:count]
    return ex.sets + (ex.sets[-1],) * (count - len(ex.sets))


def _map_exercises(plan: WorkoutPlan, fn) -> WorkoutPlan:
    return replace(
        plan,
        days=[replace(day, exercises=[fn(ex) for ex in day.exercises]) for day in plan.days],
    )


def apply_modification(plan: WorkoutPlan, request: ModificationRequest) -> ModificationResult:
    """
    Apply a detected request to a workout plan without mutating it.

    Exercise changes rename the first exercise of the first day. Load and
    intensity changes scale every weighted set; volume changes resize the
    set list of every exercise (never below one set).

    Returns:
        ModificationResult with the new plan and applied adjustments
    """
    if request.type == "none" or not plan.days:
        return ModificationResult(plan=plan, adjustments=(), affected_exercises=())

    if request.type == "exercise_change":
        first_day = plan.days[0]
        if not first_day.exercises:
            return ModificationResult(plan=plan, adjustments=(), affected_exercises=())
        original = first_day.exercises[0]
        new_name = request.exercise_name or f"Variación de {original.name}"
        changed = replace(
            original,
            name=new_name,
            notes=_append_note(original, f"Modificado: {request.details}"),
        )
        new_day = replace(first_day, exercises=(changed,) + first_day.exercises[1:])
        adjustment = ProgressionAdjustment(
            exercise_name=original.name,
            adjustment_type="volume",
            value=0.0,
            reason=f"Ejercicio cambiado a {new_name}",
            confidence=0.9,
            applied=True,
        )
        return ModificationResult(
            plan=replace(plan, days=(new_day,) + plan.days[1:]),
            adjustments=(adjustment,),
            affected_exercises=(original.name,),
        )

    pct = request.value or 0.0
    if request.type in ("load_reduction", "load_increase"):
        adj_type, confidence, label = "weight", 0.95, "Carga"

        def transform(ex: PlannedExercise) -> PlannedExercise:
            return replace(ex, sets=_scale_weights(ex, pct), notes=_append_note(ex, f"Carga ajustada {_signed(pct)}"))
    elif request.type == "intensity_change":
        adj_type, confidence, label = "intensity", 0.9, "Intensidad"

        def transform(ex: PlannedExercise) -> PlannedExercise:
            return replace(ex, sets=_scale_weights(ex, pct), notes=_append_note(ex, f"Intensidad ajustada {_signed(pct)}"))
    else:
        adj_type, confidence, label = "volume", 0.85, "Volumen"

        def transform(ex: PlannedExercise) -> PlannedExercise:
            sets = _resize_sets(ex, pct)
            note = f"Volumen ajustado {_signed(pct)} ({len(ex.sets)} → {len(sets)} series)"
            return replace(ex, sets=sets, notes=_append_note(ex, note))

    new_plan = _map_exercises(plan, transform)
    names = tuple(plan.exercise_names())
    adjustments = tuple(
        ProgressionAdjustment(
            exercise_name=name,
            adjustment_type=adj_type,
            value=pct,
            reason=f"{label} {_signed(pct)} a petición del usuario",
            confidence=confidence,
            applied=True,
        )
        for name in names
    )
    return ModificationResult(plan=new_plan, adjustments=adjustments, affected_exercises=names)
