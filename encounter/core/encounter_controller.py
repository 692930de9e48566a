"""
Encounter Controller - Recording lifecycle and session orchestration

Responsibilities:
- Own the IDLE/LISTENING recording lifecycle
- Accumulate the visible transcript
- Send each fragment's transcript to the extraction service and merge
  the response through the reconciler
- Load patient records into the session
- Persist the final session for the next screen

Design principles:
- Command in, result out (handle() is the only public entry point)
- Thin orchestration layer (merge logic lives in the reconciler)
- Network calls happen outside the lock; reconciliation is applied under
  it, so concurrent handle() calls merge sequentially
- Extraction failures are surfaced, never fatal; the fragment is dropped
"""

import logging
import threading
from typing import Optional, Union

from encounter.commands import (
    FinishEncounter,
    ResetEncounter,
    SelectPatient,
    StartRecording,
    StopRecording,
    TranscriptFragment,
)
from encounter.contracts import SessionState
from encounter.core.extraction_reconciler import reconcile_event
from encounter.core.patient_records import apply_patient_record
from encounter.results import EncounterResult, IllegalCommand
from encounter.utils.extraction_client import (
    ExtractionError,
    ExtractionTransportError,
)
from encounter.utils.helpers import generate_session_id
from encounter.utils.recording_states import RecordingState, can_transition

logger = logging.getLogger(__name__)

Result = Union[EncounterResult, IllegalCommand]


class EncounterController:
    """
    Orchestrates one live encounter session.

    Holds the single logical session state; callers interact through
    handle() only.
    """

    def __init__(self, extraction_client, patient_repository, session_store,
                 initial_state: Optional[SessionState] = None):
        """
        Initialize controller with collaborators.

        Args:
            extraction_client: Object with extract(transcript) -> ExtractionEvent
            patient_repository: Object with load(patient_id) -> PatientRecord
            session_store: SessionStore instance
            initial_state: Starting state (defaults to SessionState.empty())

        Raises:
            TypeError: If any collaborator is missing its required method
        """
        self._validate_modules(extraction_client, patient_repository, session_store)

        self.extraction_client = extraction_client
        self.patient_repository = patient_repository
        self.session_store = session_store

        self.session_id = generate_session_id()
        self._lock = threading.Lock()
        self._state = initial_state if initial_state is not None else SessionState.empty()
        self._recording_state = RecordingState.IDLE
        self._fragments = []

        logger.info(f"Encounter controller initialized (session {self.session_id})")

    def _validate_modules(self, extraction_client, patient_repository, session_store):
        """Validate collaborator interfaces"""
        if not callable(getattr(extraction_client, 'extract', None)):
            raise TypeError("extraction_client must have callable extract() method")

        if not callable(getattr(patient_repository, 'load', None)):
            raise TypeError("patient_repository must have callable load() method")

        for method in ('save', 'clear'):
            if not callable(getattr(session_store, method, None)):
                raise TypeError(f"session_store must have callable {method}() method")

    # ========================
    # Read-only views
    # ========================

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def recording_state(self) -> RecordingState:
        return self._recording_state

    @property
    def transcript(self) -> str:
        return " ".join(self._fragments)

    def _result(self, error: Optional[str] = None, debug: Optional[dict] = None) -> EncounterResult:
        return EncounterResult(
            state=self._state,
            recording_state=self._recording_state.value,
            transcript=self.transcript,
            error=error,
            debug=debug or {},
        )

    # ========================
    # Command dispatch
    # ========================

    def handle(self, command) -> Result:
        """
        Process a single command.

        Args:
            command: One of the types in encounter.commands

        Returns:
            EncounterResult or IllegalCommand

        Raises:
            TypeError: If command is not a known command type
        """
        if isinstance(command, StartRecording):
            return self._transition(RecordingState.LISTENING, command)
        elif isinstance(command, StopRecording):
            return self._transition(RecordingState.IDLE, command)
        elif isinstance(command, TranscriptFragment):
            return self._handle_fragment(command)
        elif isinstance(command, SelectPatient):
            return self._handle_select_patient(command)
        elif isinstance(command, ResetEncounter):
            return self._handle_reset()
        elif isinstance(command, FinishEncounter):
            return self._handle_finish()
        else:
            raise TypeError(f"Unknown command type: {type(command).__name__}")

    def _transition(self, target: RecordingState, command) -> Result:
        with self._lock:
            if not can_transition(self._recording_state, target):
                reason = f"Cannot move from {self._recording_state.value} to {target.value}"
                logger.warning(f"Illegal command {type(command).__name__}: {reason}")
                return IllegalCommand(reason=reason, command_type=type(command).__name__)

            self._recording_state = target
            logger.info(f"Recording state -> {target.value}")
            return self._result()

    def _handle_fragment(self, command: TranscriptFragment) -> Result:
        text = (command.text or "").strip()

        with self._lock:
            if self._recording_state != RecordingState.LISTENING:
                return IllegalCommand(
                    reason="Not recording; transcript fragments are only accepted while listening",
                    command_type=type(command).__name__,
                )
            if not text:
                return self._result()
            self._fragments.append(text)
            transcript = self.transcript
            session_id = self.session_id

        # Network call outside the lock; overlapping requests are allowed
        try:
            event = self.extraction_client.extract(transcript)
        except ExtractionTransportError as e:
            with self._lock:
                if self.session_id != session_id:
                    return self._stale_response(session_id)
                self._recording_state = RecordingState.IDLE
                logger.error(f"Recording halted after transport failure: {e}")
                return self._result(error=str(e))
        except ExtractionError as e:
            logger.warning(f"Fragment dropped after extraction failure: {e}")
            with self._lock:
                return self._result(error=str(e))

        with self._lock:
            # Responses for an encounter discarded by Reset never merge
            if self.session_id != session_id:
                return self._stale_response(session_id)
            outcome = reconcile_event(self._state, event)
            self._state = outcome.state
            return self._result(debug={'reconciliation': outcome.to_debug()})

    def _stale_response(self, session_id: str) -> EncounterResult:
        logger.info(f"Dropped extraction response for reset session {session_id}")
        return self._result(debug={'stale_session_id': session_id})

    def _handle_select_patient(self, command: SelectPatient) -> Result:
        record = self.patient_repository.load(command.patient_id)

        with self._lock:
            self._state = apply_patient_record(self._state, record)
            logger.info(f"Patient {command.patient_id} selected (found={record.found})")
            return self._result(debug={'patient_id': command.patient_id, 'found': record.found})

    def _handle_reset(self) -> Result:
        with self._lock:
            self._state = SessionState.empty()
            self._fragments = []
            previous_id = self.session_id
            while self.session_id == previous_id:
                self.session_id = generate_session_id()
            self.session_store.clear()
            logger.info(f"Encounter reset (new session {self.session_id})")
            return self._result()

    def _handle_finish(self) -> Result:
        with self._lock:
            self._state = self.session_store.save(self._state)
            logger.info(f"Encounter finished (session {self.session_id})")
            return self._result(debug={'session_id': self.session_id})
