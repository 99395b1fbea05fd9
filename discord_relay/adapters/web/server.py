"""FastAPI application, error mapping, and startup/shutdown."""

import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from discord_relay.adapters.web.oauth_routes import oauth_router
from discord_relay.adapters.web.relay_routes import relay_router
from discord_relay.config import CONFIG, __version__
from discord_relay.errors import MalformedInput, RelayError, Unauthorized, UpstreamRejected
from discord_relay.state import reset_state


def _log(msg: str):
    print(f"{datetime.now(timezone.utc).isoformat()} {msg}", file=sys.stderr)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    _log(f"Discord relay {__version__} starting on :{CONFIG['port']}")
    if not CONFIG["discord_bot_token"]:
        _log("DISCORD_BOT_TOKEN not set; upstream calls will be rejected")
    if not CONFIG["relay_shared_secret"]:
        _log("RELAY_SHARED_SECRET not set; gated routes will answer 401")
    yield
    await reset_state()
    _log("Discord relay stopped")


app = FastAPI(title="Discord Relay", version=__version__, lifespan=lifespan)
app.include_router(relay_router)
app.include_router(oauth_router)


@app.exception_handler(Unauthorized)
async def unauthorized_handler(_request: Request, _exc: Unauthorized):
    return JSONResponse({"error": "unauthorized"}, status_code=401)


@app.exception_handler(MalformedInput)
async def malformed_input_handler(_request: Request, exc: MalformedInput):
    return JSONResponse({"error": str(exc)}, status_code=400)


@app.exception_handler(UpstreamRejected)
async def upstream_rejected_handler(_request: Request, exc: UpstreamRejected):
    return Response(content=exc.body, status_code=exc.status, media_type="application/json")


@app.exception_handler(RelayError)
async def relay_error_handler(request: Request, exc: RelayError):
    _log(f"{request.method} {request.url.path} relay error: {exc}")
    return JSONResponse({"error": "relay_error", "detail": str(exc)}, status_code=500)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(_request: Request, exc: RequestValidationError):
    """Wrong-shape bodies and params are malformed input, not 422."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ())[1:]) or "body"
        message = f"{field}: {first.get('msg', 'invalid')}"
    else:
        message = "invalid request"
    return JSONResponse({"error": message}, status_code=400)
