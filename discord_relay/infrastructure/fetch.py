"""Outbound HTTP execution with bounded retries (aiohttp-based)."""

import asyncio
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

import aiohttp

from discord_relay.config import BASE_BACKOFF_MS, DEFAULT_RETRIES
from discord_relay.domain.backoff import compute_wait, parse_retry_after
from discord_relay.domain.outcome import (
    Outcome,
    RetryableFailure,
    Success,
    TerminalFailure,
    finalize,
    is_retryable_status,
)
from discord_relay.errors import RelayError

# Diagnostic body prefix kept from a failed attempt
BODY_PREVIEW_CHARS = 200

SleepFn = Callable[[float], Awaitable[Any]]


def _log(msg: str):
    print(f"[{datetime.now(timezone.utc).isoformat()}] {msg}", file=sys.stderr)


@dataclass(frozen=True)
class OutboundRequest:
    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Optional[Union[str, bytes]] = None

    def __post_init__(self):
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = DEFAULT_RETRIES
    base_backoff_ms: float = BASE_BACKOFF_MS


class FetchExecutor:
    """Runs one outbound call with up to ``max_retries`` extra attempts.

    429 and 5xx responses (and network errors) are retried, honouring
    Retry-After when Discord sends it. Every other response is returned
    as-is with its body unread; the caller owns reading and releasing it.
    """

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        *,
        timeout_seconds: float = 15.0,
        sleep: SleepFn = asyncio.sleep,
    ):
        self._session = session
        self._owns_session = session is None
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._sleep = sleep

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _attempt(self, request: OutboundRequest) -> Outcome:
        session = self._get_session()
        try:
            resp = await session.request(
                request.method,
                request.url,
                headers=dict(request.headers),
                data=request.body,
            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            reason = f"{type(e).__name__} {request.method} {request.url}: {e}"
            return RetryableFailure(reason=reason)

        if not is_retryable_status(resp.status):
            return Success(resp)

        try:
            body = (await resp.text())[:BODY_PREVIEW_CHARS]
        except Exception:
            body = ""
        finally:
            resp.release()

        return RetryableFailure(
            reason=f"HTTP {resp.status} {request.method} {request.url} body={body}",
            retry_after_ms=parse_retry_after(resp.headers.get("Retry-After")),
            status=resp.status,
            body=body,
        )

    async def execute(self, request: OutboundRequest, policy: Optional[RetryPolicy] = None):
        """Execute ``request`` and return the first non-retryable response.

        Raises RelayError with the last observed failure once the retry
        budget is spent.
        """
        policy = policy or RetryPolicy()
        attempt = 0
        while True:
            outcome = await self._attempt(request)

            if isinstance(outcome, Success):
                return outcome.response

            if isinstance(outcome, RetryableFailure) and attempt >= policy.max_retries:
                outcome = finalize(outcome)

            if isinstance(outcome, TerminalFailure):
                _log(f"Giving up after {attempt + 1} attempt(s): {outcome.reason}")
                raise RelayError(outcome.reason, status=outcome.status, body=outcome.body)

            wait_ms = compute_wait(attempt, outcome.retry_after_ms, policy.base_backoff_ms)
            _log(
                f"Retrying {request.method} {request.url} in {wait_ms:.0f}ms "
                f"(attempt {attempt + 1}/{policy.max_retries + 1}): {outcome.reason}"
            )
            await self._sleep(wait_ms / 1000)
            attempt += 1
