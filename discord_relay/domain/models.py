"""Domain data models: pure Python dataclasses.

Only the Discord payload fields the orchestrators actually branch on are
modelled; everything else is relayed as raw JSON.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


def _str_or_none(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


@dataclass
class Channel:
    id: str
    guild_id: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Any) -> Optional["Channel"]:
        if not isinstance(data, dict) or not data.get("id"):
            return None
        return cls(id=str(data["id"]), guild_id=_str_or_none(data.get("guild_id")))


@dataclass
class Emoji:
    id: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Any) -> "Emoji":
        if not isinstance(data, dict):
            return cls()
        return cls(id=_str_or_none(data.get("id")), name=_str_or_none(data.get("name")))


@dataclass
class DiscordUser:
    id: str
    username: Optional[str] = None
    global_name: Optional[str] = None

    @property
    def display_name(self) -> Optional[str]:
        """Platform-level display name, falling back to the raw username."""
        return self.global_name or self.username

    @classmethod
    def from_payload(cls, data: Any) -> Optional["DiscordUser"]:
        if not isinstance(data, dict) or not data.get("id"):
            return None
        return cls(
            id=str(data["id"]),
            username=_str_or_none(data.get("username")),
            global_name=_str_or_none(data.get("global_name")),
        )


@dataclass
class GuildMember:
    roles: List[str] = field(default_factory=list)

    @classmethod
    def from_payload(cls, data: Any) -> "GuildMember":
        roles = data.get("roles") if isinstance(data, dict) else None
        if not isinstance(roles, list):
            return cls()
        return cls(roles=[str(r) for r in roles])


@dataclass
class Connection:
    type: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Any) -> "Connection":
        if not isinstance(data, dict):
            return cls()
        return cls(type=_str_or_none(data.get("type")), name=_str_or_none(data.get("name")))


@dataclass
class OAuthToken:
    access_token: str
    token_type: str = "Bearer"

    @classmethod
    def from_payload(cls, data: Any) -> Optional["OAuthToken"]:
        if not isinstance(data, dict) or not data.get("access_token"):
            return None
        return cls(
            access_token=str(data["access_token"]),
            token_type=str(data.get("token_type") or "Bearer"),
        )


@dataclass
class ReactionRecord:
    """One reactor, enriched with guild roles."""

    id: str
    username: Optional[str]
    display_name: Optional[str]
    roles: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "displayName": self.display_name,
            "roles": list(self.roles),
        }
