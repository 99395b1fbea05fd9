"""Classified outcome of a single outbound attempt."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union


@dataclass(frozen=True)
class Success:
    """Anything that is not 429/5xx. Body is left unread for the caller."""

    response: Any


@dataclass(frozen=True)
class RetryableFailure:
    reason: str
    retry_after_ms: Optional[float] = None
    status: Optional[int] = None  # None for network-level failures
    body: str = ""


@dataclass(frozen=True)
class TerminalFailure:
    reason: str
    status: Optional[int] = None
    body: str = ""


Outcome = Union[Success, RetryableFailure, TerminalFailure]


def is_retryable_status(status: int) -> bool:
    return status == 429 or status >= 500


def finalize(outcome: RetryableFailure) -> TerminalFailure:
    """A retryable failure on the last allowed attempt becomes terminal."""
    return TerminalFailure(reason=outcome.reason, status=outcome.status, body=outcome.body)
