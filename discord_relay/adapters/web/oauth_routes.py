"""OAuth account-linking routes (login kickoff + Discord callback)."""

import sys
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse, RedirectResponse, Response

from discord_relay.errors import MalformedInput
from discord_relay.state import RelayState, get_state

oauth_router = APIRouter(prefix="/oauth/discord", tags=["OAuth"])


def _log(msg: str):
    print(msg, file=sys.stderr)


@oauth_router.get("/login")
async def oauth_login(userId: Optional[str] = None, relay: RelayState = Depends(get_state)):
    """Send the user to Discord's consent page."""
    try:
        redirect = relay.oauth.begin(userId)
    except MalformedInput as e:
        return PlainTextResponse(str(e), status_code=400)
    except Exception as e:
        _log(f"[oauth login] error: {e}")
        return PlainTextResponse("OAuth error", status_code=500)
    return RedirectResponse(redirect.url, status_code=302)


@oauth_router.get("/callback")
async def oauth_callback(
    code: Optional[str] = None,
    state: Optional[str] = Query(default=None),
    relay: RelayState = Depends(get_state),
):
    """Exchange the code, look up connections, render the result page."""
    try:
        outcome = await relay.oauth.complete(code, state)
    except MalformedInput as e:
        return PlainTextResponse(str(e), status_code=400)
    _log(f"[oauth callback] {outcome.state.value} status={outcome.status_code}")
    return Response(content=outcome.body, status_code=outcome.status_code, media_type=outcome.media_type)
