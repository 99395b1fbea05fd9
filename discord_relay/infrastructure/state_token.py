"""Signed, time-bound OAuth state tokens (PyJWT, HS256)."""

import time
from dataclasses import dataclass
from typing import Callable

import jwt

from discord_relay.errors import InvalidState

STATE_TOKEN_TTL_SECONDS = 10 * 60
_ALGORITHM = "HS256"


@dataclass(frozen=True)
class StatePayload:
    user_id: str
    issued_at_ms: int


class StateTokenManager:
    """Issues and verifies the state carried through the OAuth redirect.

    Nothing is stored server-side: the token itself carries the initiating
    user id and its expiry. Verification does signature and expiry in one
    step and reports every failure the same way.
    """

    def __init__(
        self,
        secret: str,
        ttl_seconds: int = STATE_TOKEN_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self._secret = secret
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def issue(self, user_id: str) -> str:
        if not self._secret:
            raise RuntimeError("OAUTH_JWT_SECRET not configured")
        now = self._clock()
        claims = {
            "userId": str(user_id),
            "ts": int(now * 1000),
            "iat": int(now),
            "exp": int(now) + self.ttl_seconds,
        }
        return jwt.encode(claims, self._secret, algorithm=_ALGORITHM)

    def verify(self, token: str) -> StatePayload:
        if not self._secret or not token:
            raise InvalidState("invalid/expired state")
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[_ALGORITHM],
                # Expiry is checked below against the injected clock
                options={"require": ["exp", "iat"], "verify_exp": False, "verify_iat": False},
            )
            expires_at = float(claims["exp"])
            user_id = str(claims["userId"])
            issued_at_ms = int(claims.get("ts") or int(claims["iat"]) * 1000)
        except (jwt.PyJWTError, KeyError, TypeError, ValueError) as e:
            raise InvalidState("invalid/expired state") from e

        if expires_at <= self._clock() or not user_id:
            raise InvalidState("invalid/expired state")
        return StatePayload(user_id=user_id, issued_at_ms=issued_at_ms)

    def age_seconds(self, payload: StatePayload) -> float:
        """Seconds since ``payload`` was issued, by this manager's clock."""
        return max(0.0, self._clock() - payload.issued_at_ms / 1000)
