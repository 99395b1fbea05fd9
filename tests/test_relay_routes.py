"""Route tests for the relay and OAuth endpoints (ASGI, no network)."""

import json
from urllib.parse import parse_qs, urlparse

import pytest
from httpx import ASGITransport, AsyncClient

from discord_relay.adapters.web.server import app
from discord_relay.config import CONFIG, AppConfig, OAuthConfig
from discord_relay.infrastructure.fetch import FetchExecutor
from discord_relay.state import RelayState, get_state

from fakes import FakeResponse, FakeSession

API = "https://discord.test/api/v10"
AUTH = "relay-secret"
HEADERS = {"X-Relay-Auth": AUTH}


@pytest.fixture
def transport():
    return ASGITransport(app=app)


@pytest.fixture
def relay(monkeypatch, recording_sleep):
    """Install a RelayState backed by a FakeSession; returns a builder."""
    monkeypatch.setitem(CONFIG, "relay_shared_secret", AUTH)
    monkeypatch.setitem(CONFIG, "discord_bot_token", "bot-token")

    def build(responses=None, handler=None, jwt_secret="jwt-secret-for-route-tests-0123456789"):
        session = FakeSession(responses, handler)
        config = AppConfig(
            discord_api_base=API,
            discord_bot_token="bot-token",
            relay_shared_secret=AUTH,
            oauth=OAuthConfig(
                client_id="client-1",
                client_secret="client-secret",
                redirect_uri="https://relay.test/oauth/discord/callback",
                jwt_secret=jwt_secret,
            ),
        )
        state = RelayState(config, executor=FetchExecutor(session=session, sleep=recording_sleep))
        app.dependency_overrides[get_state] = lambda: state
        return session

    yield build
    app.dependency_overrides.clear()


class TestOpenRoutes:
    @pytest.mark.asyncio
    async def test_root(self, transport):
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/")
        assert resp.status_code == 200
        assert resp.text.startswith("relay ok @ ")

    @pytest.mark.asyncio
    async def test_health_ok(self, transport, relay):
        relay([])
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/health")
        assert resp.status_code == 200
        assert resp.json()["ok"] is True

    @pytest.mark.asyncio
    async def test_health_missing_token(self, transport, monkeypatch):
        monkeypatch.setitem(CONFIG, "discord_bot_token", "")
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/health")
        assert resp.status_code == 500
        assert resp.json() == {"ok": False, "error": "Missing DISCORD_BOT_TOKEN"}

    @pytest.mark.asyncio
    async def test_httpcheck_truncates(self, transport, relay):
        relay([FakeResponse(200, "g" * 1000)])
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/httpcheck")
        assert resp.status_code == 200
        assert len(resp.text) == 400

    @pytest.mark.asyncio
    async def test_whoami_public_fetch_failed(self, transport, relay):
        relay([FakeResponse(503, "down")])
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/whoami-public")
        assert resp.status_code == 500
        assert resp.json()["error"] == "fetch_failed"


class TestAuthGate:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("headers", [{}, {"X-Relay-Auth": "wrong"}])
    async def test_rejected(self, transport, relay, headers):
        session = relay([])
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/whoami", headers=headers)
        assert resp.status_code == 401
        assert resp.json() == {"error": "unauthorized"}
        assert session.calls == []

    @pytest.mark.asyncio
    async def test_unset_secret_locks_routes(self, transport, relay, monkeypatch):
        relay([])
        monkeypatch.setitem(CONFIG, "relay_shared_secret", "")
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/whoami", headers={"X-Relay-Auth": ""})
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_accepted(self, transport, relay):
        relay([FakeResponse(200, '{"id": "42"}')])
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/whoami", headers=HEADERS)
        assert resp.status_code == 200
        assert resp.json() == {"id": "42"}


class TestPassThrough:
    @pytest.mark.asyncio
    async def test_messages_requires_channel(self, transport, relay):
        relay([])
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/messages", headers=HEADERS)
        assert resp.status_code == 400
        assert resp.json() == {"error": "channelId required"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "params,expected",
        [
            ({}, "messages?limit=50"),
            ({"after": "5"}, "messages?limit=100&after=5"),
            ({"around": "7", "limit": "10"}, "messages?around=7&limit=10"),
        ],
    )
    async def test_messages_query(self, transport, relay, params, expected):
        session = relay([FakeResponse(200, "[]")])
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/messages", params={"channelId": "111", **params}, headers=HEADERS)
        assert resp.status_code == 200
        assert session.calls[0][1].endswith(expected)

    @pytest.mark.asyncio
    async def test_upstream_404_relayed_verbatim(self, transport, relay):
        relay([FakeResponse(404, '{"message": "Unknown Message", "code": 10008}')])
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/message/111/222", headers=HEADERS)
        assert resp.status_code == 404
        assert resp.json() == {"message": "Unknown Message", "code": 10008}

    @pytest.mark.asyncio
    async def test_exhausted_retries_map_to_500(self, transport, relay):
        session = relay([FakeResponse(503, "down") for _ in range(3)])
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/channel/111", headers=HEADERS)
        assert resp.status_code == 500
        assert resp.json()["error"] == "relay_error"
        assert len(session.calls) == 3

    @pytest.mark.asyncio
    async def test_reply_payload(self, transport, relay):
        session = relay([FakeResponse(200, '{"id": "9"}')])
        body = {"channelId": "111", "content": "x" * 2500, "referenceMessageId": "5"}
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.post("/reply", json=body, headers=HEADERS)
        assert resp.status_code == 200
        sent = json.loads(session.calls[0][2]["data"])
        assert len(sent["content"]) == 1900
        assert sent["message_reference"] == {"message_id": "5", "fail_if_not_exists": False}
        assert sent["allowed_mentions"] == {"parse": []}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body,field",
        [
            ({"channelId": "1", "content": 123}, "content"),
            ({"channelId": "1", "embeds": {"title": "x"}}, "embeds"),
        ],
    )
    async def test_wrong_shape_body_is_400(self, transport, relay, body, field):
        session = relay([])
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.post("/reply", json=body, headers=HEADERS)
        assert resp.status_code == 400
        assert resp.json()["error"].startswith(f"{field}:")
        assert session.calls == []

    @pytest.mark.asyncio
    async def test_unparseable_json_is_400(self, transport, relay):
        relay([])
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.post(
                "/edit",
                content=b"{not json",
                headers={**HEADERS, "Content-Type": "application/json"},
            )
        assert resp.status_code == 400
        assert "error" in resp.json()

    @pytest.mark.asyncio
    async def test_react_no_content(self, transport, relay):
        session = relay([FakeResponse(204)])
        body = {"channelId": "111", "messageId": "222", "emoji": "fire:123"}
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.post("/react", json=body, headers=HEADERS)
        assert resp.status_code == 204
        method, url, _ = session.calls[0]
        assert method == "PUT"
        assert url.endswith("/reactions/fire%3A123/@me")

    @pytest.mark.asyncio
    async def test_edit_needs_something(self, transport, relay):
        relay([])
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.post("/edit", json={"channelId": "1", "messageId": "2"}, headers=HEADERS)
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_delete(self, transport, relay):
        session = relay([FakeResponse(204)])
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.delete("/delete/111/222", headers=HEADERS)
        assert resp.status_code == 204
        assert session.calls[0][0] == "DELETE"


class TestDirectMessage:
    @pytest.mark.asyncio
    async def test_missing_fields(self, transport, relay):
        relay([])
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.post("/dm", json={"userId": "1"}, headers=HEADERS)
        assert resp.status_code == 400
        assert resp.json()["ok"] is False

    @pytest.mark.asyncio
    async def test_success(self, transport, relay):
        session = relay([
            FakeResponse(200, '{"id": "D1"}'),
            FakeResponse(200, '{"id": "M9"}'),
        ])
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.post("/dm", json={"userId": 123456, "content": "hi"}, headers=HEADERS)
        assert resp.status_code == 200
        assert resp.json() == {"ok": True, "id": "M9", "channelId": "D1"}
        assert json.loads(session.calls[0][2]["data"]) == {"recipient_id": "123456"}
        assert session.calls[1][1].endswith("/channels/D1/messages")

    @pytest.mark.asyncio
    async def test_channel_step_failure(self, transport, relay):
        relay([FakeResponse(403, '{"message": "Cannot send messages to this user"}')])
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.post("/dm", json={"userId": "1", "content": "hi"}, headers=HEADERS)
        assert resp.status_code == 403
        assert resp.json()["step"] == "create_dm_channel"


class TestReactionsRoute:
    @staticmethod
    def _handler(reactions_status=200):
        def handler(method, url):
            if "/reactions/" in url:
                if reactions_status != 200:
                    return FakeResponse(reactions_status, '{"message": "Unknown Emoji"}')
                return FakeResponse(json_data=[{"id": "1", "username": "a", "global_name": "A"}])
            if "/members/" in url:
                return FakeResponse(json_data={"roles": ["7"]})
            if "/channels/111" in url:
                return FakeResponse(json_data={"id": "111", "guild_id": "222"})
            raise AssertionError(url)

        return handler

    @pytest.mark.asyncio
    async def test_enriched_list(self, transport, relay):
        relay(handler=self._handler())
        params = {"channelId": "111", "messageId": "333", "emoji": "fire:123"}
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/reactions", params=params, headers=HEADERS)
        assert resp.status_code == 200
        assert resp.json() == [{"id": "1", "username": "a", "displayName": "A", "roles": ["7"]}]

    @pytest.mark.asyncio
    async def test_listing_rejection_forwarded(self, transport, relay):
        relay(handler=self._handler(reactions_status=400))
        params = {"channelId": "111", "messageId": "333", "emoji": "fire:123"}
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/reactions", params=params, headers=HEADERS)
        assert resp.status_code == 400
        assert resp.json() == {"message": "Unknown Emoji"}

    @pytest.mark.asyncio
    async def test_missing_params(self, transport, relay):
        relay([])
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/reactions", params={"channelId": "111"}, headers=HEADERS)
        assert resp.status_code == 400


class TestOAuthRoutes:
    @pytest.mark.asyncio
    async def test_login_redirects(self, transport, relay):
        relay([])
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/oauth/discord/login", params={"userId": "123456789012345678"})
        assert resp.status_code == 302
        location = urlparse(resp.headers["location"])
        assert location.path == "/api/oauth2/authorize"
        assert parse_qs(location.query)["state"][0]

    @pytest.mark.asyncio
    async def test_login_bad_user(self, transport, relay):
        relay([])
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/oauth/discord/login", params={"userId": "nope"})
        assert resp.status_code == 400
        assert resp.text == "Missing/invalid userId"

    @pytest.mark.asyncio
    async def test_login_without_secret(self, transport, relay):
        relay([], jwt_secret="")
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/oauth/discord/login", params={"userId": "123456789012345678"})
        assert resp.status_code == 500
        assert resp.text == "OAuth error"

    @pytest.mark.asyncio
    async def test_callback_missing_params(self, transport, relay):
        relay([])
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/oauth/discord/callback", params={"code": "c"})
        assert resp.status_code == 400
        assert resp.text == "Missing code/state"

    @pytest.mark.asyncio
    async def test_callback_invalid_state(self, transport, relay):
        relay([])
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/oauth/discord/callback", params={"code": "c", "state": "forged"})
        assert resp.status_code == 400
        assert resp.text == "Invalid/expired state"

    @pytest.mark.asyncio
    async def test_full_link(self, transport, relay):
        def handler(method, url):
            if url.endswith("/oauth2/token"):
                return FakeResponse(json_data={"access_token": "user-token"})
            if url.endswith("/users/@me/connections"):
                return FakeResponse(json_data=[{"type": "twitch", "name": "foo"}])
            if url.endswith("/users/@me"):
                return FakeResponse(json_data={"id": "123456789012345678", "username": "caster"})
            raise AssertionError(url)

        relay(handler=handler)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            login = await ac.get("/oauth/discord/login", params={"userId": "123456789012345678"})
            state = parse_qs(urlparse(login.headers["location"]).query)["state"][0]
            resp = await ac.get("/oauth/discord/callback", params={"code": "c", "state": state})
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/html")
        assert "https://twitch.tv/foo" in resp.text
