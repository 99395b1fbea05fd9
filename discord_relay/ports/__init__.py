"""Port interfaces (Hexagonal Architecture)."""

from discord_relay.ports.outbound import CachePort, HTTPResponse, LinkNotifierPort

__all__ = [
    "CachePort",
    "HTTPResponse",
    "LinkNotifierPort",
]
