"""Discord Relay: resilient outbound proxy for the Discord REST API."""

from discord_relay.config import CONFIG, AppConfig, __version__
from discord_relay.errors import InvalidState, MalformedInput, RelayError, UpstreamRejected
from discord_relay.infrastructure.cache import TTLCache
from discord_relay.infrastructure.fetch import FetchExecutor, OutboundRequest, RetryPolicy
from discord_relay.infrastructure.state_token import StateTokenManager
from discord_relay.adapters.discord.reactions import ReactionEnricher
from discord_relay.adapters.discord.oauth import OAuthLinker, LinkState

__all__ = [
    "CONFIG",
    "AppConfig",
    "__version__",
    "InvalidState",
    "MalformedInput",
    "RelayError",
    "UpstreamRejected",
    "TTLCache",
    "FetchExecutor",
    "OutboundRequest",
    "RetryPolicy",
    "StateTokenManager",
    "ReactionEnricher",
    "OAuthLinker",
    "LinkState",
]
