"""Shared-secret auth gate (``X-Relay-Auth`` header)."""

import hmac

from fastapi import Header

from discord_relay.config import CONFIG
from discord_relay.errors import Unauthorized


async def require_auth(x_relay_auth: str = Header(default="")) -> None:
    secret = CONFIG["relay_shared_secret"]
    # An unset secret locks every gated route
    if not secret or not hmac.compare_digest(x_relay_auth.encode(), secret.encode()):
        raise Unauthorized()
