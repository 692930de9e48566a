"""
Extraction Reconciler - Merge extraction events into session state

Responsibilities:
- Filter candidate symptoms (empty, placeholder, template echoes)
- Deduplicate symptoms case-insensitively and append new ones
- Accept vitals candidates only when they match their shape
- Report what was accepted and rejected (for logging/debug)

Design principles:
- Pure reducer: (state, event) -> state, no I/O
- Monotonic symptoms: the set only grows until an explicit reset
- Vitals are last-valid-wins per field: invalid candidates are skipped,
  they never clear an accepted value
- Idempotent: applying the same event twice equals applying it once
- Safe under any interleaving of events (order only decides which of two
  valid vitals values is kept)
"""

import dataclasses
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from encounter.contracts import (
    ExtractionEvent,
    SessionState,
    Symptom,
    VITAL_FIELDS,
    symptom_key,
)

logger = logging.getLogger(__name__)

# Placeholder/template sentinels echoed by a malformed extraction
PLACEHOLDER_SYMPTOMS = {
    'symptom',
    'symptoms',
    'symptom1',
    'symptom2',
    'symptom3',
    'symptom 1',
    'symptom 2',
    'symptom 3',
    'string',
    'none',
    'n/a',
    'na',
    'null',
    'unknown',
    '...',
    '<symptom>',
    '[symptom]',
}

TEMPLATE_CHARS = ('{', '}')

# Vitals shape validators (full match on trimmed candidate)
VITAL_PATTERNS = {
    'temperature': re.compile(r"\d+(\.\d+)?°F"),
    'bloodPressure': re.compile(r"\d+/\d+\s*mmHg"),
    'pulse': re.compile(r"\d+\s*bpm"),
}

# Rejection reasons
REASON_EMPTY = "empty"
REASON_NOT_STRING = "not_string"
REASON_PLACEHOLDER = "placeholder"
REASON_TEMPLATE = "template_echo"
REASON_SHAPE = "shape_mismatch"


@dataclass(frozen=True)
class ReconcileResult:
    """
    Outcome of reconciling one extraction event.

    Attributes:
        state: Next session state
        added_symptoms: Names appended to the symptom list
        detected_symptoms: Existing checklist names flipped to detected
        accepted_vitals: Vitals fields written, with their new values
        rejected_symptoms: [{'value', 'reason'}] for dropped candidates
        rejected_vitals: [{'field', 'value', 'reason'}] for skipped candidates
    """
    state: SessionState
    added_symptoms: Tuple[str, ...] = ()
    detected_symptoms: Tuple[str, ...] = ()
    accepted_vitals: Tuple[Tuple[str, str], ...] = ()
    rejected_symptoms: Tuple[Dict[str, Any], ...] = ()
    rejected_vitals: Tuple[Dict[str, Any], ...] = ()

    @property
    def changed(self) -> bool:
        return bool(self.added_symptoms or self.detected_symptoms or self.accepted_vitals)

    def to_debug(self) -> Dict[str, Any]:
        """Debug view for API/console output."""
        return {
            'added_symptoms': list(self.added_symptoms),
            'detected_symptoms': list(self.detected_symptoms),
            'accepted_vitals': dict(self.accepted_vitals),
            'rejected_symptoms': list(self.rejected_symptoms),
            'rejected_vitals': list(self.rejected_vitals),
        }


def capitalize_initial(name: str) -> str:
    """Upper-case the first character only ('night sweats' -> 'Night sweats')."""
    return name[:1].upper() + name[1:]


def symptom_rejection(candidate: Any) -> str:
    """
    Check a candidate symptom.

    Returns:
        str: Rejection reason, or '' if the candidate is usable
    """
    if not isinstance(candidate, str):
        return REASON_NOT_STRING

    normalized = candidate.strip().lower()
    if not normalized:
        return REASON_EMPTY
    if any(ch in candidate for ch in TEMPLATE_CHARS):
        return REASON_TEMPLATE
    if normalized in PLACEHOLDER_SYMPTOMS:
        return REASON_PLACEHOLDER
    return ""


def is_valid_vital(field_name: str, value: Any) -> bool:
    """True if value is a string matching the shape for field_name."""
    pattern = VITAL_PATTERNS.get(field_name)
    if pattern is None or not isinstance(value, str):
        return False
    return pattern.fullmatch(value.strip()) is not None


def _merge_symptoms(state: SessionState, candidates) -> Tuple[Tuple[Symptom, ...], List[str], List[str], List[Dict[str, Any]]]:
    symptoms = list(state.symptoms)
    index_by_key = {s.key: i for i, s in enumerate(symptoms)}
    added: List[str] = []
    detected: List[str] = []
    rejected: List[Dict[str, Any]] = []

    for candidate in candidates:
        reason = symptom_rejection(candidate)
        if reason:
            rejected.append({'value': candidate, 'reason': reason})
            logger.debug(f"Dropped symptom candidate {candidate!r} ({reason})")
            continue

        key = symptom_key(candidate)
        if key in index_by_key:
            index = index_by_key[key]
            if not symptoms[index].detected:
                symptoms[index] = dataclasses.replace(symptoms[index], detected=True)
                detected.append(symptoms[index].name)
                logger.debug(f"Checklist symptom detected: {symptoms[index].name}")
            continue

        name = capitalize_initial(candidate.strip())
        index_by_key[key] = len(symptoms)
        symptoms.append(Symptom(name=name, detected=True))
        added.append(name)
        logger.debug(f"New symptom: {name}")

    return tuple(symptoms), added, detected, rejected


def _merge_vitals(state: SessionState, candidates: Dict[str, Any]):
    updates: Dict[str, str] = {}
    rejected: List[Dict[str, Any]] = []

    for field_name in VITAL_FIELDS:
        if field_name not in candidates:
            continue
        value = candidates[field_name]
        if value is None or (isinstance(value, str) and not value.strip()):
            continue

        if is_valid_vital(field_name, value):
            updates[field_name] = value.strip()
        else:
            rejected.append({'field': field_name, 'value': value, 'reason': REASON_SHAPE})
            logger.warning(f"Rejected {field_name} candidate {value!r} (shape mismatch)")

    unknown = set(candidates) - set(VITAL_FIELDS)
    if unknown:
        logger.debug(f"Ignored unknown vitals fields: {sorted(unknown)}")

    accepted = tuple(
        (name, value) for name, value in updates.items()
        if getattr(state.vitals, name) != value
    )
    vitals = dataclasses.replace(state.vitals, **updates) if updates else state.vitals
    return vitals, accepted, rejected


def reconcile_event(state: SessionState, event: ExtractionEvent) -> ReconcileResult:
    """
    Merge one extraction event into the session state.

    Args:
        state: Current session state
        event: Candidate symptoms and vitals from one extraction response

    Returns:
        ReconcileResult: next state plus what was accepted/rejected

    Example:
        >>> s = reconcile(SessionState(), ExtractionEvent(symptoms=('fever',)))
        >>> s.detected_symptoms
        ['Fever']
    """
    if not isinstance(state, SessionState):
        raise TypeError(f"state must be SessionState, got {type(state).__name__}")
    if not isinstance(event, ExtractionEvent):
        raise TypeError(f"event must be ExtractionEvent, got {type(event).__name__}")

    symptoms, added, detected, rejected_symptoms = _merge_symptoms(state, event.symptoms or ())
    vitals, accepted_vitals, rejected_vitals = _merge_vitals(state, event.vitals or {})

    if added or detected or accepted_vitals:
        next_state = dataclasses.replace(state, symptoms=symptoms, vitals=vitals)
        logger.info(
            f"Reconciled event: +{len(added)} symptom(s), {len(detected)} detected, "
            f"vitals updated {[name for name, _ in accepted_vitals]}"
        )
    else:
        next_state = state

    return ReconcileResult(
        state=next_state,
        added_symptoms=tuple(added),
        detected_symptoms=tuple(detected),
        accepted_vitals=accepted_vitals,
        rejected_symptoms=tuple(rejected_symptoms),
        rejected_vitals=tuple(rejected_vitals),
    )


def reconcile(state: SessionState, event: ExtractionEvent) -> SessionState:
    """Pure reducer form of reconcile_event: (state, event) -> state."""
    return reconcile_event(state, event).state
