"""Reaction listing with guild-role enrichment.

Flow: channel -> guild id, emoji ref -> (name, id), reactors (limit 100),
then one member lookup per reactor. Only the reactor listing itself can fail
the request; channel, emoji and role lookups degrade instead.
"""

import asyncio
import sys
from typing import Any, Awaitable, Dict, List, Optional, Tuple

import aiohttp

from discord_relay.adapters.discord.rest import (
    LOOKUP_POLICY,
    DiscordRestClient,
    is_success,
    read_json,
    read_text,
)
from discord_relay.domain.emoji import emoji_path_segment, split_emoji_ref
from discord_relay.domain.models import Channel, DiscordUser, Emoji, GuildMember, ReactionRecord
from discord_relay.errors import RelayError, UpstreamRejected
from discord_relay.ports.outbound import CachePort

REACTOR_LIMIT = 100
# Concurrent member lookups per request
MEMBER_LOOKUP_CONCURRENCY = 4
# Enrichment failures that degrade instead of failing the listing
DEGRADABLE_ERRORS = (RelayError, aiohttp.ClientError, asyncio.TimeoutError, UnicodeDecodeError)


def _log(msg: str):
    print(msg, file=sys.stderr)


class ReactionEnricher:
    """Lists who reacted to a message and attaches their guild roles."""

    def __init__(
        self,
        rest: DiscordRestClient,
        emoji_cache: CachePort,
        member_concurrency: int = MEMBER_LOOKUP_CONCURRENCY,
    ):
        self._rest = rest
        self._emoji_cache = emoji_cache
        self._member_concurrency = max(1, member_concurrency)

    async def _lookup(self, fetch: Awaitable[Any], what: str) -> Tuple[bool, Any]:
        """Run one enrichment call; ``(False, None)`` on any failure.

        Covers the body read too, so a connection dropped mid-body degrades
        like a failed request.
        """
        try:
            resp = await fetch
            if not is_success(resp):
                resp.release()
                return False, None
            return True, await read_json(resp)
        except DEGRADABLE_ERRORS as e:
            _log(f"{what} failed, continuing without it: {type(e).__name__} {e}")
            return False, None

    async def resolve_guild_id(self, channel_id: str) -> Optional[str]:
        """Guild owning the channel, or None for DMs and failed lookups."""
        _, data = await self._lookup(
            self._rest.get_channel(channel_id, policy=LOOKUP_POLICY),
            f"Channel lookup for {channel_id}",
        )
        channel = Channel.from_payload(data)
        return channel.guild_id if channel else None

    async def guild_emoji_names(self, guild_id: str) -> Dict[str, str]:
        """Emoji id -> name for a guild, served from the TTL cache when fresh."""
        cached = self._emoji_cache.get(guild_id)
        if cached is not None:
            return cached

        ok, data = await self._lookup(
            self._rest.list_guild_emojis(guild_id), f"Emoji lookup for guild {guild_id}"
        )
        if not ok:
            return {}
        names: Dict[str, str] = {}
        for item in data if isinstance(data, list) else []:
            emoji = Emoji.from_payload(item)
            if emoji.id and emoji.name:
                names[emoji.id] = emoji.name

        self._emoji_cache.set(guild_id, names)
        return names

    async def resolve_emoji(self, emoji_ref: str, guild_id: Optional[str]) -> Emoji:
        emoji, needs_name = split_emoji_ref(emoji_ref)
        if needs_name and guild_id:
            names = await self.guild_emoji_names(guild_id)
            emoji.name = names.get(emoji.id)
        return emoji

    async def member_roles(self, guild_id: str, user_id: str) -> List[str]:
        _, data = await self._lookup(
            self._rest.get_guild_member(guild_id, user_id), f"Role lookup for {user_id}"
        )
        return GuildMember.from_payload(data).roles

    async def list_reactors(self, channel_id: str, message_id: str, emoji_ref: str) -> List[ReactionRecord]:
        """Return reactors in the order Discord lists them.

        Raises UpstreamRejected when the reaction listing itself is refused,
        and RelayError when it cannot be fetched at all.
        """
        guild_id = await self.resolve_guild_id(channel_id)
        emoji = await self.resolve_emoji(emoji_ref, guild_id)

        resp = await self._rest.list_reactions(
            channel_id, message_id, emoji_path_segment(emoji), limit=REACTOR_LIMIT
        )
        if not is_success(resp):
            raise UpstreamRejected(resp.status, await read_text(resp))

        data = await read_json(resp)
        items = data if isinstance(data, list) else []
        users = [u for u in (DiscordUser.from_payload(item) for item in items) if u]

        if not guild_id:
            return [self._record(u, []) for u in users]

        gate = asyncio.Semaphore(self._member_concurrency)

        async def _enrich(user: DiscordUser) -> ReactionRecord:
            async with gate:
                roles = await self.member_roles(guild_id, user.id)
            return self._record(user, roles)

        # gather preserves input order
        return list(await asyncio.gather(*(_enrich(u) for u in users)))

    @staticmethod
    def _record(user: DiscordUser, roles: List[str]) -> ReactionRecord:
        return ReactionRecord(
            id=user.id,
            username=user.username,
            display_name=user.display_name,
            roles=roles,
        )
