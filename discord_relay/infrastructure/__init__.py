"""Infrastructure: outbound HTTP, caching and state tokens."""

from discord_relay.infrastructure.cache import TTLCache
from discord_relay.infrastructure.fetch import FetchExecutor, OutboundRequest, RetryPolicy
from discord_relay.infrastructure.state_token import StatePayload, StateTokenManager

__all__ = [
    "TTLCache",
    "FetchExecutor",
    "OutboundRequest",
    "RetryPolicy",
    "StatePayload",
    "StateTokenManager",
]
