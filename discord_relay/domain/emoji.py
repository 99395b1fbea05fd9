"""Emoji reference parsing: pure Python, no framework dependencies."""

from __future__ import annotations

import re
from typing import Optional, Tuple
from urllib.parse import quote

from discord_relay.domain.models import Emoji

# "fire:123456" (custom emoji with name and id)
NAMED_EMOJI_RE = re.compile(r"^([^:]+):(\d+)$")
# "123456" (custom emoji by id only)
EMOJI_ID_RE = re.compile(r"^\d+$")


def split_emoji_ref(ref: str) -> Tuple[Emoji, bool]:
    """Split a caller emoji reference without touching the network.

    Returns the partially resolved emoji and whether the name still needs a
    guild lookup (id-only references).
    """
    ref = str(ref)
    m = NAMED_EMOJI_RE.match(ref)
    if m:
        return Emoji(name=m.group(1), id=m.group(2)), False
    if EMOJI_ID_RE.match(ref):
        return Emoji(id=ref), True
    # Unicode or bare name
    return Emoji(name=ref), False


def emoji_path_segment(emoji: Emoji) -> str:
    """Reaction path segment: ``name:id`` when both known, else whichever is."""
    if emoji.name and emoji.id:
        raw = f"{emoji.name}:{emoji.id}"
    else:
        raw = emoji.name or emoji.id or ""
    return quote(raw, safe="")


def encode_segment(value: Optional[str]) -> str:
    """Percent-encode one URL path segment."""
    return quote(str(value or ""), safe="")
