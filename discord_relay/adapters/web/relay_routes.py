"""Discord pass-through routes.

Upstream status and body are relayed verbatim; only /reactions and /dm
compose more than one call.
"""

import json
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import BaseModel

from discord_relay.adapters.discord.rest import NO_RETRY_POLICY, is_success, read_json, read_text
from discord_relay.adapters.web.auth import require_auth
from discord_relay.config import CONFIG
from discord_relay.errors import MalformedInput, RelayError
from discord_relay.state import RelayState, get_state

relay_router = APIRouter(tags=["Relay"])
_auth = [Depends(require_auth)]

# Discord rejects content over 2000 chars; leave room for prefixes
MAX_CONTENT_CHARS = 1900
NO_MENTIONS = {"parse": []}


def _ts() -> str:
    return datetime.now(timezone.utc).isoformat()


def _log(msg: str):
    print(f"{_ts()} {msg}", file=sys.stderr)


async def _relay(resp, label: str, **context) -> Response:
    """Forward an upstream response, logging anything that is not 2xx."""
    text = await read_text(resp)
    if not is_success(resp):
        _log(f"{label} error status={resp.status} {context} body={text[:500]}")
    if resp.status in (204, 304):
        return Response(status_code=resp.status)
    return Response(content=text or "{}", status_code=resp.status, media_type="application/json")


# Request models
class ReplyRequest(BaseModel):
    channelId: Optional[str] = None
    content: Optional[str] = None
    embeds: Optional[List[Dict[str, Any]]] = None
    referenceMessageId: Optional[str] = None


class ReactRequest(BaseModel):
    channelId: Optional[str] = None
    messageId: Optional[str] = None
    emoji: Optional[str] = None


class DMRequest(BaseModel):
    userId: Optional[Union[str, int]] = None
    content: Optional[Union[str, int, float]] = None


class EditRequest(BaseModel):
    channelId: Optional[str] = None
    messageId: Optional[str] = None
    content: Optional[str] = None
    embeds: Optional[List[Dict[str, Any]]] = None


# ── Open endpoints ──────────────────────────────────────────


@relay_router.get("/", response_class=PlainTextResponse)
async def root():
    return f"relay ok @ {_ts()}"


@relay_router.get("/health")
async def health():
    if not CONFIG["discord_bot_token"]:
        return JSONResponse({"ok": False, "error": "Missing DISCORD_BOT_TOKEN"}, status_code=500)
    if not CONFIG["relay_shared_secret"]:
        return JSONResponse({"ok": False, "error": "Missing RELAY_SHARED_SECRET"}, status_code=500)
    return {"ok": True, "time": _ts()}


@relay_router.get("/httpcheck")
async def httpcheck(relay: RelayState = Depends(get_state)):
    try:
        resp = await relay.rest.get_gateway()
    except RelayError as e:
        _log(f"[httpcheck] fetch failed: {e}")
        return JSONResponse({"error": "fetch_failed", "detail": str(e)}, status_code=500)
    text = await read_text(resp)
    return PlainTextResponse(text[:400], status_code=resp.status)


@relay_router.get("/whoami-public")
async def whoami_public(relay: RelayState = Depends(get_state)):
    try:
        resp = await relay.rest.get_current_user(policy=NO_RETRY_POLICY)
    except RelayError as e:
        _log(f"[whoami] fetch failed: {e}")
        return JSONResponse({"error": "fetch_failed", "detail": str(e)}, status_code=500)
    return await _relay(resp, "GET /whoami-public")


# ── Gated endpoints ─────────────────────────────────────────


@relay_router.get("/whoami", dependencies=_auth)
async def whoami(relay: RelayState = Depends(get_state)):
    return await _relay(await relay.rest.get_current_user(), "GET /whoami")


@relay_router.get("/messages", dependencies=_auth)
async def list_messages(
    channelId: Optional[str] = None,
    after: Optional[str] = None,
    around: Optional[str] = None,
    limit: Optional[str] = None,
    relay: RelayState = Depends(get_state),
):
    if not channelId:
        raise MalformedInput("channelId required")
    resp = await relay.rest.list_messages(channelId, after=after, around=around, limit=limit)
    return await _relay(resp, "GET /messages", channelId=channelId, after=after, around=around, limit=limit)


@relay_router.get("/message/{channelId}/{messageId}", dependencies=_auth)
async def get_message(channelId: str, messageId: str, relay: RelayState = Depends(get_state)):
    resp = await relay.rest.get_message(channelId, messageId)
    return await _relay(resp, "GET /message", channelId=channelId, messageId=messageId)


@relay_router.get("/channel/{channelId}", dependencies=_auth)
async def get_channel(channelId: str, relay: RelayState = Depends(get_state)):
    return await _relay(await relay.rest.get_channel(channelId), "GET /channel", channelId=channelId)


@relay_router.get("/reactions", dependencies=_auth)
async def list_reactions(
    channelId: Optional[str] = None,
    messageId: Optional[str] = None,
    emoji: Optional[str] = None,
    relay: RelayState = Depends(get_state),
):
    """Reactors for one emoji, each with their guild role ids."""
    if not channelId or not messageId or not emoji:
        raise MalformedInput("missing channelId/messageId/emoji")
    records = await relay.reactions.list_reactors(channelId, messageId, emoji)
    return [r.to_dict() for r in records]


@relay_router.post("/reply", dependencies=_auth)
async def reply(req: ReplyRequest, relay: RelayState = Depends(get_state)):
    if not req.channelId:
        raise MalformedInput("channelId required")

    # Discord allows empty content when embeds exist
    payload: Dict[str, Any] = {"content": (req.content or "")[:MAX_CONTENT_CHARS]}
    if req.embeds:
        payload["embeds"] = req.embeds
    if req.referenceMessageId:
        payload["message_reference"] = {
            "message_id": req.referenceMessageId,
            "fail_if_not_exists": False,
        }
    payload["allowed_mentions"] = NO_MENTIONS

    resp = await relay.rest.create_message(req.channelId, payload)
    return await _relay(resp, "POST /reply", channelId=req.channelId)


@relay_router.post("/react", dependencies=_auth)
async def react(req: ReactRequest, relay: RelayState = Depends(get_state)):
    if not req.channelId or not req.messageId or not req.emoji:
        raise MalformedInput("channelId, messageId and emoji are required")
    # unicode or "name:id"
    resp = await relay.rest.add_reaction(req.channelId, req.messageId, req.emoji)
    if resp.status == 204:
        resp.release()
        return Response(status_code=204)
    return await _relay(resp, "PUT /react", channelId=req.channelId, messageId=req.messageId, emoji=req.emoji)


@relay_router.post("/dm", dependencies=_auth)
async def direct_message(req: DMRequest, relay: RelayState = Depends(get_state)):
    """Open (or reuse) a DM channel, then send one message into it."""
    if not req.userId or not req.content:
        return JSONResponse({"ok": False, "error": "userId and content required"}, status_code=400)

    try:
        ch_resp = await relay.rest.create_dm_channel(str(req.userId))
        if not is_success(ch_resp):
            body = await read_text(ch_resp)
            return JSONResponse(
                {"ok": False, "step": "create_dm_channel", "body": body}, status_code=ch_resp.status
            )
        dm_channel = await read_json(ch_resp)
        dm_id = dm_channel.get("id") if isinstance(dm_channel, dict) else None
        if not dm_id:
            return JSONResponse({"ok": False, "error": "no dm channel id"}, status_code=502)

        msg_resp = await relay.rest.create_message(str(dm_id), {"content": str(req.content)})
        msg_text = await read_text(msg_resp)
        if not is_success(msg_resp):
            return JSONResponse({"ok": False, "step": "send_dm", "body": msg_text}, status_code=msg_resp.status)
    except RelayError as e:
        _log(f"POST /dm relay error: {e}")
        return JSONResponse({"ok": False, "error": str(e)}, status_code=500)

    try:
        message = json.loads(msg_text)
    except ValueError:
        message = {}
    message_id = message.get("id") if isinstance(message, dict) else None
    return {"ok": True, "id": message_id, "channelId": str(dm_id)}


@relay_router.post("/edit", dependencies=_auth)
async def edit(req: EditRequest, relay: RelayState = Depends(get_state)):
    if not req.channelId or not req.messageId:
        raise MalformedInput("channelId and messageId required")
    if req.content is None and not req.embeds:
        raise MalformedInput("nothing to edit (need content or embeds)")

    # PATCH only carries fields that change
    payload: Dict[str, Any] = {}
    if req.content is not None:
        payload["content"] = req.content[:MAX_CONTENT_CHARS]
    if req.embeds:
        payload["embeds"] = req.embeds
    payload["allowed_mentions"] = NO_MENTIONS

    resp = await relay.rest.edit_message(req.channelId, req.messageId, payload)
    return await _relay(resp, "POST /edit", channelId=req.channelId, messageId=req.messageId)


@relay_router.delete("/delete/{channelId}/{messageId}", dependencies=_auth)
async def delete(channelId: str, messageId: str, relay: RelayState = Depends(get_state)):
    resp = await relay.rest.delete_message(channelId, messageId)
    return await _relay(resp, "DELETE /delete", channelId=channelId, messageId=messageId)
