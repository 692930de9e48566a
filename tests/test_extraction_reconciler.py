"""
Test Extraction Reconciler - streaming merge of extraction events

Run with: pytest tests/test_extraction_reconciler.py -v
"""

import itertools

import pytest

from encounter.contracts import ExtractionEvent, SessionState, Symptom, Vitals
from encounter.core.extraction_reconciler import (
    capitalize_initial,
    is_valid_vital,
    reconcile,
    reconcile_event,
)


def event(symptoms=(), **vitals):
    return ExtractionEvent(symptoms=tuple(symptoms), vitals=vitals)


@pytest.fixture
def empty_state():
    return SessionState()


@pytest.fixture
def seeded_state():
    return SessionState.empty()


class TestSymptoms:
    """Symptom filtering and dedup"""

    def test_case_insensitive_dedup(self, empty_state):
        state = reconcile(empty_state, event(["Fever"]))
        state = reconcile(state, event(["fever"]))

        assert state.detected_symptoms == ["Fever"]

    def test_dedup_within_event(self, empty_state):
        state = reconcile(empty_state, event(["cough", "Cough", " COUGH "]))

        assert state.detected_symptoms == ["Cough"]

    def test_initial_capital_only(self, empty_state):
        state = reconcile(empty_state, event(["night sweats", "shortness of BREATH"]))

        assert state.detected_symptoms == ["Night sweats", "Shortness of BREATH"]

    @pytest.mark.parametrize("candidate", [
        "", "   ", "symptom1", "Symptom 2", "N/A", "none", "{symptom}",
        "{{symptoms}}", "headache}", None, 42,
    ])
    def test_rejected_candidates(self, empty_state, candidate):
        outcome = reconcile_event(empty_state, event([candidate]))

        assert outcome.state.symptoms == ()
        assert len(outcome.rejected_symptoms) == 1

    def test_checklist_entry_flips_to_detected(self, seeded_state):
        outcome = reconcile_event(seeded_state, event(["jaundice"]))

        assert outcome.detected_symptoms == ("Jaundice",)
        assert outcome.added_symptoms == ()
        assert len(outcome.state.symptoms) == len(seeded_state.symptoms)
        assert outcome.state.detected_symptoms == ["Jaundice"]

    def test_monotonic_growth(self, seeded_state):
        state = seeded_state
        for symptoms in (["fever"], [], ["nausea", "itching"], ["symptom1"]):
            next_state = reconcile(state, event(symptoms))
            assert len(next_state.symptoms) >= len(state.symptoms)
            assert set(state.detected_symptoms) <= set(next_state.detected_symptoms)
            state = next_state

    def test_names_stay_unique(self, seeded_state):
        state = reconcile(seeded_state, event(["FATIGUE", "fatigue", "Dizziness", "dizziness"]))

        keys = [s.key for s in state.symptoms]
        assert len(keys) == len(set(keys))


class TestVitals:
    """Shape validation and skip-on-invalid"""

    @pytest.mark.parametrize("field_name,value,expected", [
        ("temperature", "99.5°F", True),
        ("temperature", "101°F", True),
        ("temperature", "99", False),
        ("temperature", "99.5 F", False),
        ("temperature", "37.5°C", False),
        ("bloodPressure", "120/80 mmHg", True),
        ("bloodPressure", "120/80mmHg", True),
        ("bloodPressure", "120/80", False),
        ("bloodPressure", "120 over 80 mmHg", False),
        ("pulse", "72 bpm", True),
        ("pulse", "72bpm", True),
        ("pulse", "72", False),
        ("pulse", 72, False),
        ("respiratoryRate", "16", False),
    ])
    def test_validators(self, field_name, value, expected):
        assert is_valid_vital(field_name, value) is expected

    def test_rejected_temperature_keeps_prior_value(self, empty_state):
        state = reconcile(empty_state, event(temperature="99.5°F"))
        outcome = reconcile_event(state, event(temperature="99"))

        assert outcome.state.vitals.temperature == "99.5°F"
        assert outcome.rejected_vitals[0]['field'] == "temperature"

    def test_fields_update_independently(self, empty_state):
        state = reconcile(empty_state, event(temperature="98.6°F", pulse="80 bpm"))
        state = reconcile(state, event(pulse="fast", bloodPressure="130/85 mmHg"))

        assert state.vitals == Vitals(temperature="98.6°F", bloodPressure="130/85 mmHg", pulse="80 bpm")

    def test_later_valid_value_wins(self, empty_state):
        state = reconcile(empty_state, event(pulse="80 bpm"))
        state = reconcile(state, event(pulse="92 bpm"))

        assert state.vitals.pulse == "92 bpm"

    def test_missing_or_empty_candidates_ignored(self, empty_state):
        state = reconcile(empty_state, event(pulse="80 bpm"))
        outcome = reconcile_event(state, event(pulse="", temperature=None))

        assert outcome.state.vitals.pulse == "80 bpm"
        assert outcome.rejected_vitals == ()


class TestReducerProperties:
    """Idempotence and order-insensitivity"""

    EVENTS = [
        event(["Fever", "symptom1"], temperature="100.2°F"),
        event(["fever", "chills"], bloodPressure="118/76 mmHg"),
        event(["{symptom}"], temperature="hot", pulse="88 bpm"),
        event([], pulse="not measured"),
    ]

    @pytest.mark.parametrize("e", EVENTS)
    def test_idempotent(self, seeded_state, e):
        once = reconcile(seeded_state, e)
        twice = reconcile(once, e)

        assert twice == once

    def test_replay_of_unchanged_event_returns_same_state(self, seeded_state):
        once = reconcile(seeded_state, self.EVENTS[0])

        assert reconcile(once, self.EVENTS[0]) is once

    def test_any_order_yields_valid_state(self, empty_state):
        detected_sets = set()
        for ordering in itertools.permutations(self.EVENTS):
            state = empty_state
            for e in ordering:
                state = reconcile(state, e)

            detected_sets.add(frozenset(state.detected_symptoms))
            for name in ("temperature", "bloodPressure", "pulse"):
                value = getattr(state.vitals, name)
                assert value is None or is_valid_vital(name, value)

        assert detected_sets == {frozenset({"Fever", "Chills"})}

    def test_input_state_not_mutated(self, seeded_state):
        before = SessionState.empty()

        reconcile(seeded_state, self.EVENTS[0])

        assert seeded_state == before

    def test_other_fields_untouched(self):
        state = SessionState(labTestDate="2024-01-01", rawText="raw")

        state = reconcile(state, event(["cough"]))

        assert state.labTestDate == "2024-01-01"
        assert state.rawText == "raw"

    def test_rejects_wrong_types(self, empty_state):
        with pytest.raises(TypeError):
            reconcile({}, event())
        with pytest.raises(TypeError):
            reconcile(empty_state, {'symptoms': []})


def test_capitalize_initial():
    assert capitalize_initial("fever") == "Fever"
    assert capitalize_initial("") == ""
    assert capitalize_initial("iPhone thumb") == "IPhone thumb"


def test_symptom_identity():
    assert Symptom(" Fever ").key == "fever"
