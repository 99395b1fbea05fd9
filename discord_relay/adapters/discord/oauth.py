"""Discord OAuth account linking.

States: (idle) -> AWAITING_CALLBACK -> EXCHANGING -> LINKED | UNLINKED
                                  \\-> FAILED

The state token is the only thing carried between the two legs; nothing is
stored server-side.
"""

import html
import json
import re
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional
from urllib.parse import urlencode

from discord_relay.adapters.discord.rest import DiscordRestClient, is_success, read_json, read_text
from discord_relay.config import DISCORD_OAUTH_AUTHORIZE_URL, OAUTH_SCOPES, LinkConfig, OAuthConfig
from discord_relay.domain.models import Connection, DiscordUser, OAuthToken
from discord_relay.errors import InvalidState, MalformedInput, RelayError
from discord_relay.infrastructure.state_token import StateTokenManager
from discord_relay.ports.outbound import LinkNotifierPort

USER_ID_RE = re.compile(r"^\d{5,30}$")
FALLBACK_NAME = "shoutcaster"


def _log(msg: str):
    print(msg, file=sys.stderr)


class LinkState(str, Enum):
    AWAITING_CALLBACK = "awaiting_callback"
    EXCHANGING = "exchanging"
    LINKED = "linked"
    UNLINKED = "unlinked"
    FAILED = "failed"


@dataclass
class LoginRedirect:
    state: LinkState
    url: str


@dataclass
class LinkOutcome:
    state: LinkState
    status_code: int
    body: str
    media_type: str = "text/html"
    username: Optional[str] = None
    handle_url: Optional[str] = None


def _page(username: str, *paragraphs: str) -> str:
    inner = "\n".join(f"      <p>{p}</p>" for p in paragraphs)
    return (
        '<html><body style="font-family:system-ui">\n'
        f"      <h2>Thanks, {html.escape(username)}!</h2>\n"
        f"{inner}\n"
        "    </body></html>"
    )


def _failed(status_code: int, body: str, media_type: str = "text/plain") -> LinkOutcome:
    return LinkOutcome(state=LinkState.FAILED, status_code=status_code, body=body, media_type=media_type)


def find_linked_handle(connections: Any, connection_type: str) -> Optional[str]:
    """First connection of ``connection_type`` with a non-empty name."""
    if not isinstance(connections, list):
        return None
    for item in connections:
        conn = Connection.from_payload(item)
        if conn.type == connection_type and conn.name:
            return conn.name
    return None


class OAuthLinker:
    """Links a Discord user to the streaming account on their profile."""

    def __init__(
        self,
        rest: DiscordRestClient,
        tokens: StateTokenManager,
        notifier: LinkNotifierPort,
        oauth: OAuthConfig,
        link: LinkConfig,
    ):
        self._rest = rest
        self._tokens = tokens
        self._notifier = notifier
        self._oauth = oauth
        self._link = link

    def begin(self, user_id: Optional[str]) -> LoginRedirect:
        """Start a link: issue state, build the consent URL."""
        user_id = str(user_id or "")
        if not USER_ID_RE.match(user_id):
            raise MalformedInput("Missing/invalid userId")
        state = self._tokens.issue(user_id)
        query = urlencode({
            "client_id": self._oauth.client_id,
            "redirect_uri": self._oauth.redirect_uri,
            "response_type": "code",
            "scope": OAUTH_SCOPES,
            "state": state,
        })
        return LoginRedirect(state=LinkState.AWAITING_CALLBACK, url=f"{DISCORD_OAUTH_AUTHORIZE_URL}?{query}")

    def handle_url(self, name: str) -> str:
        return self._link.profile_url_template.format(name=name)

    async def complete(self, code: Optional[str], state: Optional[str]) -> LinkOutcome:
        """AWAITING_CALLBACK -> EXCHANGING -> LINKED | UNLINKED | FAILED."""
        if not code or not state:
            raise MalformedInput("Missing code/state")

        try:
            payload = self._tokens.verify(state)
        except InvalidState:
            return _failed(400, "Invalid/expired state")

        age_s = self._tokens.age_seconds(payload)
        _log(f"[oauth callback] {LinkState.EXCHANGING.value} user={payload.user_id} state_age={age_s:.0f}s")
        try:
            return await self._exchange(code, payload.user_id)
        except Exception as e:
            _log(f"[oauth callback] error: {e}")
            return _failed(500, "OAuth error")

    async def _exchange(self, code: str, user_id: str) -> LinkOutcome:
        token_resp = await self._rest.exchange_code(code, self._oauth)
        token_text = await read_text(token_resp)
        if not is_success(token_resp):
            return _failed(token_resp.status, token_text, media_type="application/json")
        try:
            token = OAuthToken.from_payload(json.loads(token_text))
        except ValueError:
            token = None
        if token is None:
            raise RelayError("token exchange returned no access_token", status=token_resp.status)

        # Profile is only used for the greeting
        me: Optional[DiscordUser] = None
        me_resp = await self._rest.get_oauth_user(token.access_token)
        if is_success(me_resp):
            me = DiscordUser.from_payload(await read_json(me_resp))
        else:
            me_resp.release()
        username = (me.username if me else None) or FALLBACK_NAME
        platform = self._link.connection_type.title()

        conn_resp = await self._rest.get_oauth_connections(token.access_token)
        if not is_success(conn_resp):
            raise RelayError(
                f"connections lookup failed: HTTP {conn_resp.status}",
                status=conn_resp.status,
                body=(await read_text(conn_resp))[:200],
            )
        connections: List[Any] = await read_json(conn_resp) or []

        name = find_linked_handle(connections, self._link.connection_type)
        if not name:
            return LinkOutcome(
                state=LinkState.UNLINKED,
                status_code=200,
                username=username,
                body=_page(
                    username,
                    f"We couldn't find a {platform} connection on your Discord account.",
                    f"Please connect {platform} in Discord (User Settings → Connections), then retry, "
                    f'or reply "{self._link.connection_type} yourname" to the bot.',
                ),
            )

        handle_url = self.handle_url(name)
        await self._notifier.notify(user_id, handle_url)
        safe_url = html.escape(handle_url, quote=True)
        return LinkOutcome(
            state=LinkState.LINKED,
            status_code=200,
            username=username,
            handle_url=handle_url,
            body=_page(
                username,
                f'We linked your {platform}: <a href="{safe_url}" target="_blank">{safe_url}</a>.',
                "You can close this tab.",
            ),
        )
