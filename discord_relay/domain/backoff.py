"""Backoff policy and Retry-After parsing.

Pure Python, no framework dependencies. All durations are milliseconds.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional

# Server hints are honoured but never trusted beyond a minute
MAX_RETRY_AFTER_MS = 60_000


def parse_retry_after(value: Optional[str], now: Optional[datetime] = None) -> Optional[float]:
    """Parse a Retry-After header into milliseconds.

    Numeric values are seconds; anything else is tried as an HTTP-date and
    turned into the (non-negative) delay from ``now``. Returns None when the
    header is absent or unparseable.
    """
    if value is None:
        return None
    raw = value.strip()
    if not raw:
        return None

    try:
        seconds = float(raw)
    except ValueError:
        seconds = None
    if seconds is not None:
        return seconds * 1000 if math.isfinite(seconds) else None

    try:
        when = parsedate_to_datetime(raw)
    except (TypeError, ValueError, IndexError):
        return None
    if when is None:
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)

    now = now or datetime.now(timezone.utc)
    delta_ms = (when - now).total_seconds() * 1000
    return max(0.0, delta_ms)


def compute_wait(
    attempt: int,
    retry_after_ms: Optional[float] = None,
    base_backoff_ms: float = 600,
) -> float:
    """Return how long to wait before the next attempt.

    A server hint wins and is clamped to [0, 60000]; otherwise the wait is
    ``base_backoff_ms * 2 ** attempt``.
    """
    if retry_after_ms is not None:
        return float(min(max(retry_after_ms, 0.0), MAX_RETRY_AFTER_MS))
    return float(base_backoff_ms * (2 ** attempt))
