"""
Command types for EncounterController control flow.

Commands are the ONLY public interface to EncounterController.
No direct method calls. No state inspection. Commands only.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class StartRecording:
    """
    Begin listening (IDLE -> LISTENING).

    Returns: EncounterResult with current state.
    """
    pass


@dataclass(frozen=True)
class StopRecording:
    """
    Stop listening (LISTENING -> IDLE).

    Accumulated symptoms/vitals are kept. In-flight extractions still apply.
    Returns: EncounterResult with current state.
    """
    pass


@dataclass(frozen=True)
class TranscriptFragment:
    """
    One transcribed text fragment from the live stream.

    Only valid while LISTENING.
    Returns: EncounterResult with reconciled state (or error).
    """
    text: str


@dataclass(frozen=True)
class SelectPatient:
    """
    Load a patient's lab results and medical history into the session.

    Returns: EncounterResult with updated state.
    """
    patient_id: str


@dataclass(frozen=True)
class ResetEncounter:
    """
    Discard all accumulated signal and the stored session.

    Returns: EncounterResult with fresh state.
    """
    pass


@dataclass(frozen=True)
class FinishEncounter:
    """
    Persist the session for the next screen.

    Returns: EncounterResult with the stored state.
    """
    pass


# Command union type for type hints
Command = (
    StartRecording | StopRecording | TranscriptFragment
    | SelectPatient | ResetEncounter | FinishEncounter
)
