"""Domain layer: pure Python, no framework dependencies."""

from discord_relay.domain.backoff import compute_wait, parse_retry_after, MAX_RETRY_AFTER_MS
from discord_relay.domain.emoji import emoji_path_segment, split_emoji_ref
from discord_relay.domain.models import (
    Channel,
    Connection,
    DiscordUser,
    Emoji,
    GuildMember,
    OAuthToken,
    ReactionRecord,
)
from discord_relay.domain.outcome import Outcome, RetryableFailure, Success, TerminalFailure

__all__ = [
    "compute_wait",
    "parse_retry_after",
    "MAX_RETRY_AFTER_MS",
    "emoji_path_segment",
    "split_emoji_ref",
    "Channel",
    "Connection",
    "DiscordUser",
    "Emoji",
    "GuildMember",
    "OAuthToken",
    "ReactionRecord",
    "Outcome",
    "RetryableFailure",
    "Success",
    "TerminalFailure",
]
