"""
Encounter session persistence.

Single overwritten JSON record per key: the current session state and,
independently, the current write-up.

Design:
- Key-value store is injected (file-backed in production, in-memory in tests)
- No versioning, no merge-on-save: callers read-modify-write the whole object
- Best effort: storage and serialization errors are logged, never raised
"""

import dataclasses
import json
import logging
from pathlib import Path
from typing import Dict, Optional

from encounter.contracts import SessionState, WriteUp
from encounter.utils.helpers import utc_now_iso

logger = logging.getLogger(__name__)

SESSION_STORAGE_KEY = "currentDiagnosis"
WRITEUP_STORAGE_KEY = "currentWriteUp"


class InMemoryKeyValueStore:
    """Dict-backed store (tests, single-process use)."""

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileKeyValueStore:
    """
    One file per key under a base directory.

    Layout:
        outputs/sessions/
            currentDiagnosis.json
            currentWriteUp.json
    """

    def __init__(self, base_dir: str = "outputs/sessions") -> None:
        """
        Initialize file store.

        Args:
            base_dir: Directory holding one JSON file per key
        """
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"JsonFileKeyValueStore initialized: {self.base_dir}")

    def _path(self, key: str) -> Path:
        return self.base_dir / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()

    def set(self, key: str, value: str) -> None:
        # Write-then-rename so a failed write never leaves a partial record
        path = self._path(key)
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            with open(tmp_path, 'w', encoding='utf-8') as f:
                f.write(value)
            tmp_path.replace(path)
        except Exception:
            tmp_path.unlink(missing_ok=True)
            raise

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class SessionStore:
    """
    Durable holder of the latest reconciled session state and write-up.

    Every public method is best effort: failures are logged and reported
    through the return value (None / False), never as exceptions.
    """

    def __init__(self, kv_store=None) -> None:
        """
        Initialize session store.

        Args:
            kv_store: Object with get(key), set(key, value), remove(key).
                      Defaults to InMemoryKeyValueStore.

        Raises:
            TypeError: If kv_store lacks the required methods
        """
        kv_store = kv_store if kv_store is not None else InMemoryKeyValueStore()
        for method in ('get', 'set', 'remove'):
            if not callable(getattr(kv_store, method, None)):
                raise TypeError(f"kv_store must have callable {method}() method")

        self.kv_store = kv_store
        logger.info(f"SessionStore initialized ({type(kv_store).__name__})")

    # ========================
    # Session state
    # ========================

    def load(self) -> Optional[SessionState]:
        """
        Load the current session state.

        Returns:
            SessionState, or None if nothing stored or the record is unreadable
        """
        try:
            raw = self.kv_store.get(SESSION_STORAGE_KEY)
            if not raw:
                return None
            return SessionState.from_json(json.loads(raw))
        except Exception as e:
            logger.error(f"Error retrieving session: {type(e).__name__} - {e}")
            return None

    def save(self, state: SessionState) -> SessionState:
        """
        Overwrite the stored session record.

        Args:
            state: Session state to store

        Returns:
            SessionState: The state as stored (timestamp stamped if absent)
        """
        if not state.timestamp:
            state = dataclasses.replace(state, timestamp=utc_now_iso())

        try:
            self.kv_store.set(SESSION_STORAGE_KEY, json.dumps(state.to_json(), ensure_ascii=False))
            logger.info(f"Stored session (timestamp={state.timestamp})")
        except Exception as e:
            logger.error(f"Error storing session: {type(e).__name__} - {e}")

        return state

    def reset_keep_clinical_signal(self) -> Optional[SessionState]:
        """
        Drop diagnoses and write-up, keep the clinical signal.

        Kept: symptoms, vitals, lab results, lab test date, medical history.
        Dropped: diagnoses, raw text, image data, timestamp (re-stamped on save).

        Returns:
            SessionState stored after reset, or None if nothing was stored
        """
        try:
            current = self.load()
            if current is None:
                return None

            reset_state = SessionState(
                diagnoses=(),
                symptoms=current.symptoms,
                vitals=current.vitals,
                labResults=current.labResults,
                labTestDate=current.labTestDate,
                medicalHistory=current.medicalHistory,
            )
            self.clear_write_up()
            return self.save(reset_state)
        except Exception as e:
            logger.error(f"Error resetting session: {type(e).__name__} - {e}")
            return None

    def clear(self) -> bool:
        """
        Remove the stored session record.

        Returns:
            bool: True if removal succeeded
        """
        try:
            self.kv_store.remove(SESSION_STORAGE_KEY)
            logger.info("Session record cleared")
            return True
        except Exception as e:
            logger.error(f"Error clearing session: {type(e).__name__} - {e}")
            return False

    # ========================
    # Write-up
    # ========================

    def save_write_up(self, content: str, diagnosis_id: Optional[str] = None) -> WriteUp:
        """
        Store the write-up artifact.

        Args:
            content: Write-up text
            diagnosis_id: Optional reference to the associated diagnosis

        Returns:
            WriteUp: The artifact as stored
        """
        write_up = WriteUp(content=content, createdAt=utc_now_iso(), diagnosisId=diagnosis_id)
        try:
            self.kv_store.set(WRITEUP_STORAGE_KEY, json.dumps(write_up.to_json(), ensure_ascii=False))
            logger.info(f"Stored write-up ({len(content)} chars)")
        except Exception as e:
            logger.error(f"Error storing write-up data: {type(e).__name__} - {e}")
        return write_up

    def load_write_up(self) -> Optional[WriteUp]:
        """Load the stored write-up, or None."""
        try:
            raw = self.kv_store.get(WRITEUP_STORAGE_KEY)
            return WriteUp.from_json(json.loads(raw)) if raw else None
        except Exception as e:
            logger.error(f"Error retrieving write-up data: {type(e).__name__} - {e}")
            return None

    def clear_write_up(self) -> bool:
        """Remove the stored write-up."""
        try:
            self.kv_store.remove(WRITEUP_STORAGE_KEY)
            return True
        except Exception as e:
            logger.error(f"Error clearing write-up data: {type(e).__name__} - {e}")
            return False
