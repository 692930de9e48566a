"""
Extraction Client - HTTP wrapper for the remote symptom/vitals extractor

Responsibilities:
- POST the accumulated transcript to the extraction service
- Decode the response into an ExtractionEvent
- Classify failures (transport vs. service) for the controller

Design principles:
- Dependency injection (session passed in, no module-level client)
- No retry: a failed fragment is dropped by the caller
- Response content is untrusted; validation belongs to the reconciler
"""

import logging
from typing import Optional

import requests

from encounter.contracts import ExtractionEvent

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class ExtractionError(RuntimeError):
    """Base class for extraction failures surfaced to the user."""


class ExtractionTransportError(ExtractionError):
    """Service unreachable (connection refused, DNS, timeout)."""


class ExtractionServiceError(ExtractionError):
    """Service answered, but not with a usable success response."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ExtractionClient:
    """Client for the remote extraction endpoint"""

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None
    ) -> None:
        """
        Initialize client.

        Args:
            url: Full URL of the extraction endpoint
            timeout: Request timeout in seconds
            session: Optional requests.Session (tests inject a mock)

        Raises:
            ValueError: If url is empty
        """
        if not url:
            raise ValueError("Extraction service URL is required")

        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

        logger.info(f"Extraction client initialized (url={url}, timeout={timeout}s)")

    def extract(self, transcript: str) -> ExtractionEvent:
        """
        Request symptoms/vitals for a transcript.

        Args:
            transcript: Transcript text (accumulated within the session)

        Returns:
            ExtractionEvent: Untrusted candidates

        Raises:
            ExtractionTransportError: Network failure or timeout
            ExtractionServiceError: Non-2xx status or malformed body
        """
        payload = {"transcript": transcript}
        headers = {"Content-Type": "application/json"}

        try:
            resp = self.session.post(self.url, json=payload, headers=headers, timeout=self.timeout)
        except (requests.ConnectionError, requests.Timeout) as e:
            logger.error(f"Extraction service unreachable: {type(e).__name__} - {e}")
            raise ExtractionTransportError(f"Extraction service unreachable: {e}") from e
        except requests.RequestException as e:
            logger.error(f"Extraction request failed: {type(e).__name__} - {e}")
            raise ExtractionServiceError(f"Extraction request failed: {e}") from e

        if not resp.ok:
            logger.warning(f"Extraction service returned HTTP {resp.status_code}")
            raise ExtractionServiceError(
                f"Extraction service returned HTTP {resp.status_code}",
                status_code=resp.status_code
            )

        try:
            data = resp.json()
        except ValueError as e:
            logger.warning(f"Extraction service returned invalid JSON: {e}")
            raise ExtractionServiceError(
                f"Invalid JSON from extraction service: {e}",
                status_code=resp.status_code
            ) from e

        if not isinstance(data, dict):
            raise ExtractionServiceError(
                f"Expected JSON object from extraction service, got {type(data).__name__}",
                status_code=resp.status_code
            )

        event = ExtractionEvent.from_json(data)
        logger.debug(
            f"Extraction response: {len(event.symptoms)} symptom(s), "
            f"vitals keys {sorted(event.vitals)}"
        )
        return event
