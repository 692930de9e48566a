"""
Semantic contracts for the clinical encounter assistant.

This module defines immutable data structures that serve as contracts
between modules. These are NOT validators - they define shape and
(de)serialization without enforcing clinical rules.

Design principles:
- Frozen dataclasses (immutable after creation)
- Wire format is the camelCase JSON the downstream screens consume
- No dependencies on other modules
- Every string field defaults to "" rather than None

Contents:
- Symptom, Vitals: live-extraction signal
- LabResult, LabPanel: normalized lab values
- MedicalCondition, Medication, Surgery, Allergy, Immunization, MedicalHistory
- Diagnosis: opaque diagnosis payload carried through the session
- SessionState: top-level aggregate, sole unit of persistence
- WriteUp: independently persisted write-up artifact
- ExtractionEvent: one response from the extraction service

Usage:
    from encounter.contracts import SessionState, ExtractionEvent
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Tuple


# Symptoms offered as an undetected checklist at the start of an encounter
DEFAULT_SYMPTOM_CHECKLIST = (
    "Fatigue",
    "Weight Loss",
    "Fever",
    "Night Sweats",
    "Abdominal Pain",
    "Nausea",
    "Jaundice",
    "Loss of Appetite",
)

VITAL_FIELDS = ("temperature", "bloodPressure", "pulse")


def _as_str(value: Any) -> str:
    """Coerce a loosely typed JSON value to string ('' for None)."""
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _as_float(value: Any, default: float = 0.0) -> float:
    """Coerce a loosely typed JSON value to float (default when not numeric)."""
    if isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class Symptom:
    """
    A symptom name and whether it was heard during the encounter.

    Identity is the case-insensitive, whitespace-trimmed name (see key).
    """
    name: str
    detected: bool = False

    @property
    def key(self) -> str:
        return symptom_key(self.name)


def symptom_key(name: str) -> str:
    """Dedup key for symptom names."""
    return name.strip().lower()


def _unique_symptoms(names: Any) -> Tuple[Symptom, ...]:
    """Detected symptoms from stored names, first spelling wins per key."""
    if not isinstance(names, list):
        return ()
    seen = set()
    symptoms = []
    for name in names:
        if not isinstance(name, str) or not name.strip():
            continue
        if symptom_key(name) in seen:
            continue
        seen.add(symptom_key(name))
        symptoms.append(Symptom(name=name, detected=True))
    return tuple(symptoms)


@dataclass(frozen=True)
class Vitals:
    """
    Formatted vital signs, each carrying its own unit suffix.

    Attributes:
        temperature: e.g. '99.5°F'
        bloodPressure: e.g. '120/80 mmHg'
        pulse: e.g. '72 bpm'

    A field is None until a value passing its shape check has been seen.
    """
    temperature: Optional[str] = None
    bloodPressure: Optional[str] = None
    pulse: Optional[str] = None

    def to_json(self) -> Dict[str, str]:
        return {k: v for k, v in asdict(self).items() if v is not None}

    @staticmethod
    def from_json(data: Optional[Dict[str, Any]]) -> "Vitals":
        data = data or {}
        return Vitals(**{
            name: data[name] for name in VITAL_FIELDS
            if isinstance(data.get(name), str)
        })


@dataclass(frozen=True)
class LabResult:
    """
    One analyte from a lab panel.

    flag is exactly 'High', 'Low' or '' (normal).
    """
    name: str
    value: str
    unit: str = ""
    flag: str = ""

    @property
    def is_abnormal(self) -> bool:
        return self.flag in ("High", "Low")


@dataclass(frozen=True)
class LabPanel:
    """Output of the lab panel normalizer for one patient row."""
    results: Tuple[LabResult, ...] = ()
    test_date: Optional[str] = None


@dataclass(frozen=True)
class MedicalCondition:
    condition: str = ""
    date: str = ""


@dataclass(frozen=True)
class Medication:
    name: str = ""
    dosage: str = ""


@dataclass(frozen=True)
class Surgery:
    surgery: str = ""
    date: str = ""


@dataclass(frozen=True)
class Allergy:
    allergen: str = ""
    reaction: str = ""


@dataclass(frozen=True)
class Immunization:
    immunization: str = ""
    date: str = ""


@dataclass(frozen=True)
class MedicalHistory:
    """
    Aggregate of positionally paired entity lists plus free-text history.

    Produced by the record decoder; every entity string is non-null.
    """
    activeConditions: Tuple[MedicalCondition, ...] = ()
    currentMedication: Tuple[Medication, ...] = ()
    pastSurgeries: Tuple[Surgery, ...] = ()
    allergies: Tuple[Allergy, ...] = ()
    immunizations: Tuple[Immunization, ...] = ()
    socialHistory: str = ""
    familyHistory: str = ""

    def is_empty(self) -> bool:
        return not (
            self.activeConditions or self.currentMedication or self.pastSurgeries
            or self.allergies or self.immunizations
            or self.socialHistory or self.familyHistory
        )

    def to_json(self) -> Dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_json(data: Optional[Dict[str, Any]]) -> "MedicalHistory":
        data = data or {}

        def entities(key, cls, fields):
            return tuple(
                cls(**{f: _as_str(item.get(f)) for f in fields})
                for item in (data.get(key) or [])
                if isinstance(item, dict)
            )

        return MedicalHistory(
            activeConditions=entities('activeConditions', MedicalCondition, ('condition', 'date')),
            currentMedication=entities('currentMedication', Medication, ('name', 'dosage')),
            pastSurgeries=entities('pastSurgeries', Surgery, ('surgery', 'date')),
            allergies=entities('allergies', Allergy, ('allergen', 'reaction')),
            immunizations=entities('immunizations', Immunization, ('immunization', 'date')),
            socialHistory=_as_str(data.get('socialHistory')),
            familyHistory=_as_str(data.get('familyHistory')),
        )


@dataclass(frozen=True)
class Diagnosis:
    """
    Diagnosis payload produced downstream of this engine.

    Carried through the session unchanged; this package never computes one.
    """
    name: str
    confidence: float = 0.0
    findings: Tuple[str, ...] = ()
    differential: Tuple[str, ...] = ()
    plan: Tuple[str, ...] = ()
    severity: str = "Mild"

    def to_json(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'confidence': self.confidence,
            'findings': list(self.findings),
            'differential': list(self.differential),
            'plan': list(self.plan),
            'severity': self.severity,
        }

    @staticmethod
    def from_json(data: Dict[str, Any]) -> "Diagnosis":
        return Diagnosis(
            name=_as_str(data.get('name')),
            confidence=_as_float(data.get('confidence')),
            findings=tuple(_as_str(x) for x in data.get('findings') or []),
            differential=tuple(_as_str(x) for x in data.get('differential') or []),
            plan=tuple(_as_str(x) for x in data.get('plan') or []),
            severity=_as_str(data.get('severity')) or "Mild",
        )


@dataclass(frozen=True)
class ExtractionEvent:
    """
    Symptom/vitals candidate set inferred from one transcript fragment.

    Values are untrusted: the reconciler filters and validates them.

    Attributes:
        symptoms: Candidate symptom names as returned by the service
        vitals: Candidate vitals keyed by 'temperature', 'bloodPressure', 'pulse'
    """
    symptoms: Tuple[Any, ...] = ()
    vitals: Dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def from_json(data: Optional[Dict[str, Any]]) -> "ExtractionEvent":
        data = data or {}
        symptoms = data.get('symptoms') or []
        vitals = data.get('vitals') or {}
        if not isinstance(symptoms, list):
            symptoms = []
        if not isinstance(vitals, dict):
            vitals = {}
        return ExtractionEvent(symptoms=tuple(symptoms), vitals=dict(vitals))


@dataclass(frozen=True)
class SessionState:
    """
    Top-level encounter aggregate (DiagnosisResult on the wire).

    Created empty at session start, grown by the extraction reconciler,
    wholesale-updated by patient record loads, cleared on reset.

    Wire format notes:
    - 'symptoms' is serialized as the list of detected symptom names
    - labResults/labTestDate/medicalHistory/timestamp/rawText/imageData
      are omitted when unset
    """
    diagnoses: Tuple[Diagnosis, ...] = ()
    symptoms: Tuple[Symptom, ...] = ()
    vitals: Vitals = field(default_factory=Vitals)
    labResults: Optional[Tuple[LabResult, ...]] = None
    labTestDate: Optional[str] = None
    medicalHistory: Optional[MedicalHistory] = None
    timestamp: Optional[str] = None
    rawText: Optional[str] = None
    imageData: Optional[str] = None

    @staticmethod
    def empty(checklist: Tuple[str, ...] = DEFAULT_SYMPTOM_CHECKLIST) -> "SessionState":
        """Fresh session state seeded with an undetected symptom checklist."""
        return SessionState(symptoms=tuple(Symptom(name) for name in checklist))

    @property
    def detected_symptoms(self) -> List[str]:
        return [s.name for s in self.symptoms if s.detected]

    def to_json(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'diagnoses': [d.to_json() for d in self.diagnoses],
            'symptoms': self.detected_symptoms,
            'vitals': self.vitals.to_json(),
        }
        if self.labResults is not None:
            data['labResults'] = [asdict(r) for r in self.labResults]
        if self.labTestDate is not None:
            data['labTestDate'] = self.labTestDate
        if self.medicalHistory is not None:
            data['medicalHistory'] = self.medicalHistory.to_json()
        for key in ('timestamp', 'rawText', 'imageData'):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data

    @staticmethod
    def from_json(data: Dict[str, Any]) -> "SessionState":
        """
        Rebuild state from its JSON form.

        Tolerates missing keys; symptoms come back as detected entries.
        """
        if not isinstance(data, dict):
            raise TypeError(f"session data must be dict, got {type(data).__name__}")

        lab_results = data.get('labResults')
        medical_history = data.get('medicalHistory')

        return SessionState(
            diagnoses=tuple(
                Diagnosis.from_json(d) for d in data.get('diagnoses') or []
                if isinstance(d, dict)
            ),
            symptoms=_unique_symptoms(data.get('symptoms') or []),
            vitals=Vitals.from_json(data.get('vitals')),
            labResults=None if lab_results is None else tuple(
                LabResult(
                    name=_as_str(r.get('name')),
                    value=_as_str(r.get('value')),
                    unit=_as_str(r.get('unit')),
                    flag=_as_str(r.get('flag')),
                )
                for r in lab_results if isinstance(r, dict)
            ),
            labTestDate=data.get('labTestDate'),
            medicalHistory=None if medical_history is None else MedicalHistory.from_json(medical_history),
            timestamp=data.get('timestamp'),
            rawText=data.get('rawText'),
            imageData=data.get('imageData'),
        )


@dataclass(frozen=True)
class WriteUp:
    """
    Free-text write-up artifact, persisted separately from the session.

    Attributes:
        content: Write-up text
        createdAt: ISO 8601 creation time
        diagnosisId: Optional reference to the associated diagnosis
    """
    content: str
    createdAt: str
    diagnosisId: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        data = {'content': self.content, 'createdAt': self.createdAt}
        if self.diagnosisId is not None:
            data['diagnosisId'] = self.diagnosisId
        return data

    @staticmethod
    def from_json(data: Dict[str, Any]) -> "WriteUp":
        if not isinstance(data, dict):
            raise TypeError(f"write-up data must be dict, got {type(data).__name__}")
        return WriteUp(
            content=_as_str(data.get('content')),
            createdAt=_as_str(data.get('createdAt')),
            diagnosisId=data.get('diagnosisId'),
        )
