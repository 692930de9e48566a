"""
Display Helpers - Convert session state to human-readable format

Used by the console harness and the web API for state views.
"""

from typing import Any, Dict, List

from encounter.contracts import SessionState
from encounter.core.lab_panel import abnormal


# Vitals field -> label
VITAL_LABELS = {
    'temperature': 'Temperature',
    'bloodPressure': 'Blood Pressure',
    'pulse': 'Pulse',
}

# Shown when a vital has not been heard yet
VITAL_PLACEHOLDER = "Value"

NO_SYMPTOMS_TEXT = "No symptoms detected"
NO_LABS_TEXT = "No lab results"


def format_symptoms(state: SessionState) -> List[str]:
    """Detected symptom names, or a single placeholder line."""
    detected = state.detected_symptoms
    return detected if detected else [NO_SYMPTOMS_TEXT]


def format_vitals(state: SessionState) -> List[str]:
    """One 'Label: value' line per vital, placeholder for missing ones."""
    lines = []
    for field_name, label in VITAL_LABELS.items():
        value = getattr(state.vitals, field_name) or VITAL_PLACEHOLDER
        lines.append(f"{label}: {value}")
    return lines


def format_lab_results(state: SessionState) -> List[str]:
    """
    Lab lines with abnormal results first, flagged with (H)/(L).

    Example:
        ['ALT: 88 U/L (H)', 'AST: 30 U/L']
    """
    results = list(state.labResults or ())
    if not results:
        return [NO_LABS_TEXT]

    flagged = abnormal(results)
    ordered = flagged + [r for r in results if r not in flagged]

    lines = []
    for r in ordered:
        text = f"{r.name}: {r.value}"
        if r.unit:
            text += f" {r.unit}"
        if r.flag:
            text += f" ({r.flag[0]})"
        lines.append(text)
    return lines


def format_medical_history(state: SessionState) -> List[str]:
    """Condition and medication lines for the history panel."""
    history = state.medicalHistory
    if history is None or history.is_empty():
        return []

    lines = []
    for c in history.activeConditions:
        lines.append(f"{c.condition} (Diagnosed: {c.date})" if c.date else c.condition)
    for m in history.currentMedication:
        lines.append(f"{m.name} {m.dosage}".strip())
    for a in history.allergies:
        lines.append(f"Allergy: {a.allergen}" + (f" ({a.reaction})" if a.reaction else ""))
    return lines


def get_state_view(state: SessionState) -> Dict[str, Any]:
    """
    Summary view for UI display.

    Returns:
        dict: {'symptoms': [...], 'vitals': [...], 'labs': [...], 'history': [...]}
    """
    return {
        'symptoms': format_symptoms(state),
        'vitals': format_vitals(state),
        'labs': format_lab_results(state),
        'history': format_medical_history(state),
    }
