"""Downstream webhook told about newly linked streaming handles."""

import sys
from urllib.parse import urlencode

from discord_relay.adapters.discord.rest import DEFAULT_POLICY
from discord_relay.infrastructure.fetch import FetchExecutor, OutboundRequest


def _log(msg: str):
    print(msg, file=sys.stderr)


class WebhookLinkNotifier:
    """LinkNotifierPort implementation: ``GET <url>?op=saveTwitch&...``.

    The webhook's response is released without being interpreted.
    """

    def __init__(self, executor: FetchExecutor, *, url: str, secret: str):
        self._executor = executor
        self._url = url
        self._secret = secret

    @property
    def is_configured(self) -> bool:
        return bool(self._url)

    async def notify(self, user_id: str, handle_url: str) -> None:
        if not self.is_configured:
            _log(f"Link notifier not configured; dropping link for {user_id}")
            return
        query = urlencode({
            "op": "saveTwitch",
            "key": self._secret,
            "userId": user_id,
            "twitch": handle_url,
        })
        sep = "&" if "?" in self._url else "?"
        resp = await self._executor.execute(OutboundRequest("GET", f"{self._url}{sep}{query}"), DEFAULT_POLICY)
        resp.release()
