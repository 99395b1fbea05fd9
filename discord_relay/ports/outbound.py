"""Outbound ports: interfaces for collaborators the orchestrators call."""

from typing import Any, Optional, Protocol, TypeVar, runtime_checkable

K = TypeVar("K")
V = TypeVar("V")


@runtime_checkable
class CachePort(Protocol[K, V]):
    """Key/value store with expiry; a miss is None."""

    def get(self, key: K) -> Optional[V]: ...
    def set(self, key: K, value: V) -> None: ...


@runtime_checkable
class LinkNotifierPort(Protocol):
    """Downstream webhook told about a linked external handle."""

    async def notify(self, user_id: str, handle_url: str) -> None: ...


@runtime_checkable
class HTTPResponse(Protocol):
    """The slice of aiohttp.ClientResponse the relay reads."""

    status: int
    headers: Any

    async def text(self) -> str: ...
    async def json(self, **kwargs) -> Any: ...
    def release(self) -> Any: ...
