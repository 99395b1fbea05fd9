"""Discord adapters: REST mappers and the orchestrations built on them."""

from discord_relay.adapters.discord.notifier import WebhookLinkNotifier
from discord_relay.adapters.discord.oauth import LinkOutcome, LinkState, LoginRedirect, OAuthLinker
from discord_relay.adapters.discord.reactions import ReactionEnricher
from discord_relay.adapters.discord.rest import DiscordRestClient

__all__ = [
    "WebhookLinkNotifier",
    "LinkOutcome",
    "LinkState",
    "LoginRedirect",
    "OAuthLinker",
    "ReactionEnricher",
    "DiscordRestClient",
]
