"""
Test SessionStore - best-effort session and write-up persistence

Run with: pytest tests/test_persistence.py -v
"""

import json
from unittest.mock import Mock

import pytest

from encounter.contracts import (
    Diagnosis,
    LabResult,
    MedicalCondition,
    MedicalHistory,
    SessionState,
    Symptom,
    Vitals,
)
from encounter.persistence import (
    SESSION_STORAGE_KEY,
    WRITEUP_STORAGE_KEY,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    SessionStore,
)


@pytest.fixture
def full_state():
    return SessionState(
        diagnoses=(Diagnosis(name="Hepatitis", confidence=0.7, findings=("ALT high",), severity="Moderate"),),
        symptoms=(Symptom("Fatigue", detected=False), Symptom("Fever", detected=True)),
        vitals=Vitals(temperature="100.1°F", pulse="90 bpm"),
        labResults=(LabResult(name="ALT", value="88", unit="U/L", flag="High"),),
        labTestDate="2024-02-14",
        medicalHistory=MedicalHistory(activeConditions=(MedicalCondition("Flu", "2021"),)),
        rawText="Hepatitis likely",
        imageData="data:image/png;base64,AAAA",
    )


@pytest.fixture(params=["memory", "file"])
def store(request, tmp_path):
    if request.param == "memory":
        return SessionStore(InMemoryKeyValueStore())
    return SessionStore(JsonFileKeyValueStore(str(tmp_path / "sessions")))


class TestSessionState:

    def test_load_empty(self, store):
        assert store.load() is None

    def test_save_stamps_timestamp(self, store, full_state):
        stored = store.save(full_state)

        assert stored.timestamp
        assert store.load().timestamp == stored.timestamp

    def test_save_keeps_existing_timestamp(self, store):
        stored = store.save(SessionState(timestamp="2024-01-01T00:00:00.000Z"))

        assert stored.timestamp == "2024-01-01T00:00:00.000Z"

    def test_round_trip_keeps_clinical_fields(self, store, full_state):
        store.save(full_state)
        loaded = store.load()

        assert loaded.detected_symptoms == ["Fever"]
        assert loaded.vitals == full_state.vitals
        assert loaded.labResults == full_state.labResults
        assert loaded.medicalHistory == full_state.medicalHistory
        assert loaded.diagnoses == full_state.diagnoses
        assert loaded.rawText == "Hepatitis likely"

    def test_save_overwrites(self, store, full_state):
        store.save(full_state)
        store.save(SessionState(rawText="second"))

        loaded = store.load()
        assert loaded.rawText == "second"
        assert loaded.labResults is None

    def test_clear(self, store, full_state):
        store.save(full_state)

        assert store.clear() is True
        assert store.load() is None

    def test_reset_keep_clinical_signal(self, store, full_state):
        store.save(full_state)
        store.save_write_up("Assessment and plan")

        reset = store.reset_keep_clinical_signal()
        loaded = store.load()

        assert reset is not None
        assert loaded.diagnoses == ()
        assert loaded.rawText is None
        assert loaded.imageData is None
        assert loaded.detected_symptoms == ["Fever"]
        assert loaded.vitals == full_state.vitals
        assert loaded.labResults == full_state.labResults
        assert loaded.labTestDate == "2024-02-14"
        assert loaded.medicalHistory == full_state.medicalHistory
        assert loaded.timestamp
        assert store.load_write_up() is None

    def test_reset_with_nothing_stored(self, store):
        assert store.reset_keep_clinical_signal() is None
        assert store.load() is None


class TestWriteUp:

    def test_round_trip(self, store):
        stored = store.save_write_up("Patient presents with fatigue", diagnosis_id="dx-1")
        loaded = store.load_write_up()

        assert loaded == stored
        assert loaded.diagnosisId == "dx-1"
        assert loaded.createdAt

    def test_independent_of_session(self, store, full_state):
        store.save_write_up("note")
        store.save(full_state)
        store.clear()

        assert store.load_write_up().content == "note"

    def test_clear(self, store):
        store.save_write_up("note")
        store.clear_write_up()

        assert store.load_write_up() is None


class TestBestEffort:
    """Storage errors are logged, never raised"""

    def test_corrupt_session_record(self):
        kv = InMemoryKeyValueStore()
        kv.set(SESSION_STORAGE_KEY, "{not json")
        kv.set(WRITEUP_STORAGE_KEY, "[1, 2]")
        store = SessionStore(kv)

        assert store.load() is None
        assert store.load_write_up() is None

    def test_bad_diagnosis_keeps_rest_of_record(self):
        kv = InMemoryKeyValueStore()
        kv.set(SESSION_STORAGE_KEY, json.dumps({
            'diagnoses': [{'name': 'Hepatitis', 'confidence': 'high'}],
            'symptoms': ['Fever'],
            'vitals': {'pulse': '80 bpm'},
        }))

        loaded = SessionStore(kv).load()

        assert loaded is not None
        assert loaded.diagnoses[0].name == 'Hepatitis'
        assert loaded.diagnoses[0].confidence == 0.0
        assert loaded.detected_symptoms == ['Fever']
        assert loaded.vitals.pulse == '80 bpm'

    def test_duplicate_symptoms_collapse_on_load(self):
        kv = InMemoryKeyValueStore()
        kv.set(SESSION_STORAGE_KEY, json.dumps({'symptoms': ['Fever', 'fever ', 'Nausea', '']}))

        loaded = SessionStore(kv).load()

        assert loaded.detected_symptoms == ['Fever', 'Nausea']

    def test_failing_file_write_leaves_no_temp_file(self, tmp_path, monkeypatch):
        kv = JsonFileKeyValueStore(str(tmp_path))

        def broken_replace(self, target):
            raise OSError("rename failed")

        monkeypatch.setattr(type(tmp_path), "replace", broken_replace)

        with pytest.raises(OSError):
            kv.set(SESSION_STORAGE_KEY, "{}")
        assert list(tmp_path.iterdir()) == []

    def test_failing_backend(self, full_state):
        kv = Mock()
        kv.get.side_effect = OSError("disk gone")
        kv.set.side_effect = OSError("disk full")
        kv.remove.side_effect = OSError("read-only")
        store = SessionStore(kv)

        stored = store.save(full_state)

        assert stored.timestamp
        assert store.load() is None
        assert store.clear() is False
        assert store.reset_keep_clinical_signal() is None
        assert store.save_write_up("x").content == "x"
        assert store.load_write_up() is None

    def test_rejects_incomplete_backend(self):
        with pytest.raises(TypeError, match="remove"):
            SessionStore(Mock(spec=['get', 'set']))


def test_file_store_layout(tmp_path):
    kv = JsonFileKeyValueStore(str(tmp_path))
    store = SessionStore(kv)

    store.save(SessionState(rawText="x"))

    path = tmp_path / f"{SESSION_STORAGE_KEY}.json"
    assert path.exists()
    assert json.loads(path.read_text(encoding='utf-8'))['rawText'] == "x"
    assert not list(tmp_path.glob("*.tmp"))
