"""Relay error taxonomy."""

from typing import Optional


class RelayError(Exception):
    """An outbound call could not be completed.

    Carries the last upstream status and a body preview when one was seen,
    so callers can diagnose without the relay re-reading the response.
    """

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        body: str = "",
    ) -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class UpstreamRejected(RelayError):
    """Discord answered with a non-retryable, non-2xx status.

    Forwarded to the caller verbatim; not an internal failure.
    """

    def __init__(self, status: int, body: str) -> None:
        super().__init__(f"HTTP {status}", status=status, body=body)


class InvalidState(Exception):
    """OAuth state token is malformed, forged, or expired."""


class MalformedInput(ValueError):
    """Caller input is missing or has the wrong shape."""


class Unauthorized(Exception):
    """Shared-secret header missing or wrong."""
