"""
Runtime configuration for the encounter assistant.

Values come from environment variables (a .env file is loaded by the
entry points via python-dotenv). Defaults suit local development.

Variables:
    EXTRACTION_URL       Extraction service endpoint
    EXTRACTION_TIMEOUT   Request timeout in seconds
    PATIENT_DATA_DIR     Directory holding lab_results.csv / medical_history.csv
    SESSION_STORE_DIR    Directory for persisted session/write-up JSON
    DEFAULT_PATIENT_ID   Patient selected when an encounter starts
"""

import os
from dataclasses import dataclass

DEFAULT_EXTRACTION_URL = "http://127.0.0.1:8000/api/extract"
DEFAULT_PATIENT_DATA_DIR = "data/epic_data"
DEFAULT_SESSION_STORE_DIR = "outputs/sessions"
DEFAULT_PATIENT_ID = "P1000"


@dataclass(frozen=True)
class Settings:
    extraction_url: str = DEFAULT_EXTRACTION_URL
    extraction_timeout: float = 30.0
    patient_data_dir: str = DEFAULT_PATIENT_DATA_DIR
    session_store_dir: str = DEFAULT_SESSION_STORE_DIR
    default_patient_id: str = DEFAULT_PATIENT_ID

    @staticmethod
    def from_env() -> "Settings":
        """
        Build settings from the process environment.

        Raises:
            ValueError: If EXTRACTION_TIMEOUT is not a number
        """
        timeout = os.getenv("EXTRACTION_TIMEOUT", "30")
        try:
            timeout_value = float(timeout)
        except ValueError:
            raise ValueError(f"EXTRACTION_TIMEOUT must be a number, got {timeout!r}")

        return Settings(
            extraction_url=os.getenv("EXTRACTION_URL", DEFAULT_EXTRACTION_URL),
            extraction_timeout=timeout_value,
            patient_data_dir=os.getenv("PATIENT_DATA_DIR", DEFAULT_PATIENT_DATA_DIR),
            session_store_dir=os.getenv("SESSION_STORE_DIR", DEFAULT_SESSION_STORE_DIR),
            default_patient_id=os.getenv("DEFAULT_PATIENT_ID", DEFAULT_PATIENT_ID),
        )
