"""Discord REST v10 endpoint mappers.

Each method builds one OutboundRequest and hands it to the FetchExecutor.
Responses come back unread; callers decide how to relay them.
"""

import json
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from discord_relay.config import (
    DEFAULT_RETRIES,
    DISCORD_OAUTH_TOKEN_URL,
    LOOKUP_RETRIES,
    OAuthConfig,
)
from discord_relay.domain.emoji import encode_segment
from discord_relay.infrastructure.fetch import FetchExecutor, OutboundRequest, RetryPolicy
from discord_relay.ports.outbound import HTTPResponse

USER_AGENT = "DiscordBot (https://github.com/discord/discord-api-docs, v10) Relay/1.0"

LOOKUP_POLICY = RetryPolicy(max_retries=LOOKUP_RETRIES)
DEFAULT_POLICY = RetryPolicy(max_retries=DEFAULT_RETRIES)
NO_RETRY_POLICY = RetryPolicy(max_retries=0)


def is_success(resp: HTTPResponse) -> bool:
    return 200 <= resp.status < 300


async def read_text(resp: HTTPResponse) -> str:
    try:
        return await resp.text()
    finally:
        resp.release()


async def read_json(resp: HTTPResponse) -> Any:
    """Decode a JSON body; empty or non-JSON bodies become None."""
    text = await read_text(resp)
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return None


class DiscordRestClient:
    """Bot-authenticated Discord API client built on FetchExecutor."""

    def __init__(self, executor: FetchExecutor, *, bot_token: str, api_base: str):
        self._executor = executor
        self._api_base = api_base.rstrip("/")
        self._bot_headers = {
            "Authorization": f"Bot {bot_token}",
            "User-Agent": USER_AGENT,
            "X-Track": "discord-relay",
            "Content-Type": "application/json",
        }

    async def _bot_request(
        self,
        method: str,
        path: str,
        *,
        payload: Optional[Dict[str, Any]] = None,
        policy: RetryPolicy = DEFAULT_POLICY,
    ):
        body = json.dumps(payload) if payload is not None else None
        request = OutboundRequest(method, f"{self._api_base}{path}", self._bot_headers, body)
        return await self._executor.execute(request, policy)

    async def _bearer_get(self, path: str, access_token: str):
        request = OutboundRequest(
            "GET",
            f"{self._api_base}{path}",
            {"Authorization": f"Bearer {access_token}", "User-Agent": USER_AGENT},
        )
        return await self._executor.execute(request, DEFAULT_POLICY)

    # ── Lookups ─────────────────────────────────────────────

    async def get_channel(self, channel_id: str, policy: RetryPolicy = DEFAULT_POLICY):
        return await self._bot_request("GET", f"/channels/{encode_segment(channel_id)}", policy=policy)

    async def list_guild_emojis(self, guild_id: str):
        return await self._bot_request(
            "GET", f"/guilds/{encode_segment(guild_id)}/emojis", policy=LOOKUP_POLICY
        )

    async def get_guild_member(self, guild_id: str, user_id: str):
        path = f"/guilds/{encode_segment(guild_id)}/members/{encode_segment(user_id)}"
        return await self._bot_request("GET", path)

    async def get_current_user(self, policy: RetryPolicy = DEFAULT_POLICY):
        return await self._bot_request("GET", "/users/@me", policy=policy)

    async def get_gateway(self):
        request = OutboundRequest("GET", f"{self._api_base}/gateway", {"User-Agent": USER_AGENT})
        return await self._executor.execute(request, NO_RETRY_POLICY)

    # ── Messages ────────────────────────────────────────────

    async def list_messages(
        self,
        channel_id: str,
        *,
        after: Optional[str] = None,
        around: Optional[str] = None,
        limit: Optional[str] = None,
    ):
        if around:
            params = {"around": around}
            if limit:
                params["limit"] = limit
        elif after:
            params = {"limit": limit or 100, "after": after}
        else:
            params = {"limit": limit or 50}
        path = f"/channels/{encode_segment(channel_id)}/messages?{urlencode(params)}"
        return await self._bot_request("GET", path)

    async def get_message(self, channel_id: str, message_id: str):
        path = f"/channels/{encode_segment(channel_id)}/messages/{encode_segment(message_id)}"
        return await self._bot_request("GET", path)

    async def create_message(self, channel_id: str, payload: Dict[str, Any]):
        path = f"/channels/{encode_segment(channel_id)}/messages"
        return await self._bot_request("POST", path, payload=payload)

    async def edit_message(self, channel_id: str, message_id: str, payload: Dict[str, Any]):
        path = f"/channels/{encode_segment(channel_id)}/messages/{encode_segment(message_id)}"
        return await self._bot_request("PATCH", path, payload=payload)

    async def delete_message(self, channel_id: str, message_id: str):
        path = f"/channels/{encode_segment(channel_id)}/messages/{encode_segment(message_id)}"
        return await self._bot_request("DELETE", path)

    async def create_dm_channel(self, user_id: str):
        return await self._bot_request(
            "POST", "/users/@me/channels", payload={"recipient_id": str(user_id)}
        )

    # ── Reactions ───────────────────────────────────────────

    async def add_reaction(self, channel_id: str, message_id: str, emoji: str):
        path = (
            f"/channels/{encode_segment(channel_id)}/messages/{encode_segment(message_id)}"
            f"/reactions/{encode_segment(emoji)}/@me"
        )
        return await self._bot_request("PUT", path)

    async def list_reactions(self, channel_id: str, message_id: str, emoji_segment: str, limit: int = 100):
        """``emoji_segment`` must already be URL-encoded."""
        path = (
            f"/channels/{encode_segment(channel_id)}/messages/{encode_segment(message_id)}"
            f"/reactions/{emoji_segment}?limit={limit}"
        )
        return await self._bot_request("GET", path, policy=LOOKUP_POLICY)

    # ── OAuth (user bearer token) ───────────────────────────

    async def exchange_code(self, code: str, oauth: OAuthConfig):
        body = urlencode({
            "client_id": oauth.client_id,
            "client_secret": oauth.client_secret,
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": oauth.redirect_uri,
        })
        request = OutboundRequest(
            "POST",
            DISCORD_OAUTH_TOKEN_URL,
            {"Content-Type": "application/x-www-form-urlencoded", "User-Agent": USER_AGENT},
            body,
        )
        return await self._executor.execute(request, DEFAULT_POLICY)

    async def get_oauth_user(self, access_token: str):
        return await self._bearer_get("/users/@me", access_token)

    async def get_oauth_connections(self, access_token: str):
        return await self._bearer_get("/users/@me/connections", access_token)
