"""
Recording state enum for the encounter lifecycle.

Invariants:
- Exactly one state is active at a time
- Transitions are explicit (StartRecording / StopRecording commands)
- Leaving LISTENING never resets accumulated symptoms or vitals;
  only ResetEncounter does

Design:
- RecordingState is a string-based enum for JSON serialization
- EncounterController owns all transitions
"""

from enum import Enum


class RecordingState(str, Enum):
    """
    IDLE:
        No audio stream open. Transcript fragments are rejected.

        Entry: Session start, StopRecording, transport failure
        Exit: StartRecording -> LISTENING

    LISTENING:
        Audio stream open; each transcript fragment triggers one
        extraction request.

        Entry: StartRecording
        Exit: StopRecording or transport failure -> IDLE
    """
    IDLE = "idle"
    LISTENING = "listening"


# Allowed transitions: current state -> states reachable from it
TRANSITIONS = {
    RecordingState.IDLE: {RecordingState.LISTENING},
    RecordingState.LISTENING: {RecordingState.IDLE},
}


def can_transition(current: RecordingState, target: RecordingState) -> bool:
    return target in TRANSITIONS.get(current, set())
