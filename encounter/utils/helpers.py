"""
Utility helpers for the encounter assistant

Simple utility functions for ID and timestamp generation.
"""

import uuid
from datetime import datetime, timezone


def generate_session_id(short=True):
    """
    Generate unique encounter session identifier

    Args:
        short (bool): If True, return 8-char hex. If False, return full UUID.

    Returns:
        str: Session ID

    Examples:
        >>> generate_session_id()
        'a3f7e2b9'

        >>> generate_session_id(short=False)
        'a3f7e2b9c1d2e3f4a5b6c7d8e9f0a1b2'
    """
    full_id = uuid.uuid4().hex
    return full_id[:8] if short else full_id


def utc_now_iso():
    """
    Current time as an ISO 8601 string (UTC, millisecond precision)

    Returns:
        str: e.g. '2025-11-26T15:30:45.123Z'
    """
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"
