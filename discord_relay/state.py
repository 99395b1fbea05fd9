"""Process-wide state: wires config into the relay's collaborators."""

from __future__ import annotations

import sys
from typing import Optional

from discord_relay.adapters.discord.notifier import WebhookLinkNotifier
from discord_relay.adapters.discord.oauth import OAuthLinker
from discord_relay.adapters.discord.reactions import ReactionEnricher
from discord_relay.adapters.discord.rest import DiscordRestClient
from discord_relay.config import AppConfig
from discord_relay.infrastructure.cache import TTLCache
from discord_relay.infrastructure.fetch import FetchExecutor
from discord_relay.infrastructure.state_token import StateTokenManager


def _log(msg: str):
    print(msg, file=sys.stderr)


class RelayState:
    """Singleton-ish container for everything a request needs.

    The emoji cache is the only piece shared (and mutated) across requests.
    """

    def __init__(self, config: Optional[AppConfig] = None, executor: Optional[FetchExecutor] = None):
        self.config = config or AppConfig.from_env()
        self.executor = executor or FetchExecutor(timeout_seconds=self.config.http_timeout_seconds)
        self.rest = DiscordRestClient(
            self.executor,
            bot_token=self.config.discord_bot_token,
            api_base=self.config.discord_api_base,
        )
        self.emoji_cache: TTLCache = TTLCache(ttl_seconds=self.config.emoji_cache_ttl_seconds)
        self.reactions = ReactionEnricher(self.rest, self.emoji_cache)
        self.state_tokens = StateTokenManager(self.config.oauth.jwt_secret)
        self.link_notifier = WebhookLinkNotifier(
            self.executor,
            url=self.config.link.notifier_url,
            secret=self.config.link.notifier_secret,
        )
        self.oauth = OAuthLinker(
            self.rest,
            self.state_tokens,
            self.link_notifier,
            oauth=self.config.oauth,
            link=self.config.link,
        )
        if not self.link_notifier.is_configured:
            _log("LINK_NOTIFIER_URL not set; linked handles will not be forwarded")

    async def close(self) -> None:
        await self.executor.close()


# Module-level singleton
_state: Optional[RelayState] = None


async def get_state() -> RelayState:
    """Lazily build the singleton; no await between check and set."""
    global _state
    if _state is None:
        _state = RelayState()
    return _state


async def reset_state() -> None:
    """Close and drop the singleton (application shutdown)."""
    global _state
    if _state is not None:
        await _state.close()
        _state = None
