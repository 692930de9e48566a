"""
Result types returned by EncounterController.handle()

These are the ONLY return types from the command handler.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from encounter.contracts import SessionState


@dataclass(frozen=True)
class EncounterResult:
    """
    Command processed (possibly with a surfaced, non-fatal error).

    Returned by: every command except rejected ones

    Attributes:
        state: Session state after the command
        recording_state: 'idle' or 'listening' after the command
        transcript: Visible transcript so far
        error: User-visible error message (extraction failure), or None
        debug: Debug information (reconciliation report, patient lookup, etc.)
    """
    state: SessionState
    recording_state: str
    transcript: str = ""
    error: Optional[str] = None
    debug: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class IllegalCommand:
    """
    Command rejected by the controller (invalid lifecycle transition).

    Examples:
    - StartRecording while already listening
    - TranscriptFragment while idle

    Attributes:
        reason: Human-readable explanation
        command_type: Name of rejected command type
    """
    reason: str
    command_type: str
