"""
Patient Record Repository - Tabular patient sources to typed records

Responsibilities:
- Read the lab-values and medical-history tables
- Select a patient's row by exact Patient ID match
- Run the row through the lab panel normalizer / record decoder
- Apply a patient record to the session state (wholesale replacement)

Design principles:
- Cells are read as raw strings (no numeric or NA coercion)
- No match is not an error: derived collections reset to empty
- Unreadable source tables are logged and treated as empty
"""

import dataclasses
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from encounter.contracts import LabPanel, LabResult, MedicalHistory, SessionState
from encounter.core import lab_panel, record_decoder

logger = logging.getLogger(__name__)

LAB_RESULTS_FILENAME = "lab_results.csv"
MEDICAL_HISTORY_FILENAME = "medical_history.csv"
PATIENT_ID_COLUMN = lab_panel.PATIENT_ID_COLUMN


@dataclass(frozen=True)
class PatientRecord:
    """
    Structured data for one patient, derived from both source tables.

    Attributes:
        patient_id: Requested patient identifier
        lab_results: Normalized lab results (empty if no lab row)
        lab_test_date: Test date from the lab row, or None
        medical_history: Decoded history (empty if no history row)
        found: Whether either table had a row for patient_id
    """
    patient_id: str
    lab_results: Tuple[LabResult, ...] = ()
    lab_test_date: Optional[str] = None
    medical_history: MedicalHistory = dataclasses.field(default_factory=MedicalHistory)
    found: bool = False


def read_table(path: Path) -> List[Dict[str, str]]:
    """
    Read a CSV table as a list of row dicts (column order preserved).

    Returns an empty list if the file is missing or unreadable.
    """
    if not path.exists():
        logger.warning(f"Patient data table not found: {path}")
        return []

    try:
        df = pd.read_csv(path, dtype=str, keep_default_na=False, skip_blank_lines=True)
    except Exception as e:
        logger.error(f"Failed to read {path}: {type(e).__name__} - {e}")
        return []

    df.columns = [str(c).strip() for c in df.columns]
    return df.to_dict(orient="records")


def select_row(rows: List[Dict[str, Any]], patient_id: str) -> Optional[Dict[str, Any]]:
    """First row whose Patient ID equals patient_id exactly, or None."""
    for row in rows:
        if row.get(PATIENT_ID_COLUMN) == patient_id:
            return row
    return None


class PatientRecordRepository:
    """Loads patient records from a directory of CSV tables"""

    def __init__(self, data_dir: str = "data/epic_data", unit_table=None) -> None:
        """
        Initialize repository.

        Args:
            data_dir: Directory containing lab_results.csv and medical_history.csv
            unit_table: Optional analyte -> unit override for the normalizer
        """
        self.data_dir = Path(data_dir)
        self.unit_table = unit_table
        logger.info(f"PatientRecordRepository initialized: {self.data_dir}")

    def load(self, patient_id: str) -> PatientRecord:
        """
        Load one patient's lab panel and medical history.

        Tables are re-read on every call so source edits are picked up.

        Args:
            patient_id: Exact Patient ID to select

        Returns:
            PatientRecord (empty collections if the patient is absent)
        """
        lab_row = select_row(read_table(self.data_dir / LAB_RESULTS_FILENAME), patient_id)
        history_row = select_row(read_table(self.data_dir / MEDICAL_HISTORY_FILENAME), patient_id)

        if lab_row is None and history_row is None:
            logger.info(f"Patient data not found for ID: {patient_id}")
            return PatientRecord(patient_id=patient_id)

        panel = lab_panel.normalize(lab_row, self.unit_table) if lab_row else LabPanel()
        history = record_decoder.decode(history_row) if history_row else MedicalHistory()

        logger.info(
            f"Loaded patient {patient_id}: {len(panel.results)} lab result(s), "
            f"{len(history.activeConditions)} active condition(s)"
        )
        return PatientRecord(
            patient_id=patient_id,
            lab_results=panel.results,
            lab_test_date=panel.test_date,
            medical_history=history,
            found=True,
        )


def apply_patient_record(state: SessionState, record: PatientRecord) -> SessionState:
    """
    Replace lab results, test date and medical history in the session.

    Symptoms and vitals are untouched. A record with no data resets the
    derived collections to empty.
    """
    return dataclasses.replace(
        state,
        labResults=record.lab_results,
        labTestDate=record.lab_test_date,
        medicalHistory=record.medical_history,
    )
