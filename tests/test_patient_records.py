"""
Test PatientRecordRepository - CSV sources to patient records

Run with: pytest tests/test_patient_records.py -v
"""

from pathlib import Path

import pytest

from encounter.contracts import MedicalHistory, SessionState, Vitals
from encounter.core.patient_records import (
    PatientRecordRepository,
    apply_patient_record,
)

SAMPLE_DATA_DIR = Path(__file__).parent.parent / "data" / "epic_data"

LAB_CSV = """Patient ID,Test Date,ALT,ALT Flag,AST,Sodium
P1,2024-02-14,88, high ,30,NA
P2,2024-03-01,20,,25,140
P1,2030-01-01,1,,1,1
"""

HISTORY_CSV = """Patient ID,Active Conditions,Current Medication,Allergies,Allergy Reactions,Social History
P1,"[('Flu', '2021'), ('Asthma', '')]","[('Albuterol', '90 mcg')]","['Penicillin', 'Latex']","['Rash']",Non-smoker
P3,malformed(((,,,,
"""


@pytest.fixture
def data_dir(tmp_path):
    (tmp_path / "lab_results.csv").write_text(LAB_CSV, encoding="utf-8")
    (tmp_path / "medical_history.csv").write_text(HISTORY_CSV, encoding="utf-8")
    return tmp_path


@pytest.fixture
def repo(data_dir):
    return PatientRecordRepository(str(data_dir))


def test_loads_labs_and_history(repo):
    record = repo.load("P1")

    assert record.found
    assert [r.name for r in record.lab_results] == ["ALT", "AST", "Sodium"]
    assert record.lab_results[0].flag == "High"
    assert record.lab_results[0].unit == "U/L"
    assert record.lab_test_date == "2024-02-14"
    assert [c.condition for c in record.medical_history.activeConditions] == ["Flu", "Asthma"]
    assert record.medical_history.allergies[1].reaction == ""
    assert record.medical_history.socialHistory == "Non-smoker"


def test_cells_are_not_coerced(repo):
    record = repo.load("P1")

    sodium = record.lab_results[2]
    assert sodium.value == "NA"


def test_first_matching_row_wins(repo):
    assert repo.load("P1").lab_test_date == "2024-02-14"


def test_lab_only_patient(repo):
    record = repo.load("P2")

    assert record.found
    assert len(record.lab_results) == 3
    assert record.medical_history == MedicalHistory()


def test_history_only_patient_with_malformed_field(repo):
    record = repo.load("P3")

    assert record.found
    assert record.lab_results == ()
    assert record.medical_history.activeConditions[0].condition == "malformed((("


def test_exact_match_only(repo):
    assert not repo.load("p1").found
    assert not repo.load("P1 ").found


def test_no_match_resets_to_empty(repo):
    state = SessionState(vitals=Vitals(pulse="70 bpm"))
    state = apply_patient_record(state, repo.load("P1"))

    state = apply_patient_record(state, repo.load("P9999"))

    assert state.labResults == ()
    assert state.labTestDate is None
    assert state.medicalHistory == MedicalHistory()
    assert state.vitals.pulse == "70 bpm"


def test_missing_tables(tmp_path):
    record = PatientRecordRepository(str(tmp_path / "nowhere")).load("P1")

    assert not record.found
    assert record.lab_results == ()


def test_sample_data_decodes():
    record = PatientRecordRepository(str(SAMPLE_DATA_DIR)).load("P1000")

    assert record.found
    assert record.lab_test_date == "2024-02-14"
    assert record.medical_history.currentMedication[0].name == "Entecavir"
    assert record.medical_history.allergies[1].reaction == ""
    assert any(r.flag == "Low" for r in record.lab_results)
