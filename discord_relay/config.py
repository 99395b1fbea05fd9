"""Configuration and shared constants."""

__version__ = "1.0.0"

import os
import sys
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()

_stderr_print = lambda *a, **kw: print(*a, **kw, file=sys.stderr)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        _stderr_print(f"Invalid {name}={raw!r}, falling back to {default}")
        return default


DISCORD_OAUTH_AUTHORIZE_URL = "https://discord.com/api/oauth2/authorize"
DISCORD_OAUTH_TOKEN_URL = "https://discord.com/api/oauth2/token"
OAUTH_SCOPES = "identify connections"

# Retry budgets per call site
LOOKUP_RETRIES = 3
DEFAULT_RETRIES = 2
BASE_BACKOFF_MS = 600

CONFIG = {
    "port": _int_env("PORT", 8080),
    "discord_api_base": os.getenv("DISCORD_API_BASE", "https://discord.com/api/v10").rstrip("/"),
    "discord_bot_token": os.getenv("DISCORD_BOT_TOKEN", ""),
    "relay_shared_secret": os.getenv("RELAY_SHARED_SECRET", ""),
    # OAuth account linking
    "oauth_client_id": os.getenv("DISCORD_CLIENT_ID", ""),
    "oauth_client_secret": os.getenv("DISCORD_CLIENT_SECRET", ""),
    "oauth_redirect_uri": os.getenv("DISCORD_REDIRECT_URI", ""),
    "oauth_jwt_secret": os.getenv("OAUTH_JWT_SECRET", ""),
    # Downstream webhook that stores linked handles
    "link_notifier_url": os.getenv("LINK_NOTIFIER_URL", ""),
    "link_notifier_secret": os.getenv("WM_WEBAPP_SHARED_SECRET", ""),
    "link_connection_type": os.getenv("LINK_CONNECTION_TYPE", "twitch").strip().lower(),
    "link_profile_url_template": os.getenv("LINK_PROFILE_URL_TEMPLATE", "https://twitch.tv/{name}"),
    # Outbound HTTP
    "http_timeout_seconds": _int_env("RELAY_HTTP_TIMEOUT_SECONDS", 15),
    "emoji_cache_ttl_seconds": _int_env("EMOJI_CACHE_TTL_SECONDS", 60),
}


# ── Typed config ─────────────────────────────────────────────


@dataclass
class OAuthConfig:
    client_id: str = ""
    client_secret: str = ""
    redirect_uri: str = ""
    jwt_secret: str = ""


@dataclass
class LinkConfig:
    notifier_url: str = ""
    notifier_secret: str = ""
    connection_type: str = "twitch"
    profile_url_template: str = "https://twitch.tv/{name}"


@dataclass
class AppConfig:
    """Typed view over CONFIG, handed to RelayState."""

    port: int = 8080
    discord_api_base: str = "https://discord.com/api/v10"
    discord_bot_token: str = ""
    relay_shared_secret: str = ""
    http_timeout_seconds: int = 15
    emoji_cache_ttl_seconds: int = 60
    oauth: OAuthConfig = field(default_factory=OAuthConfig)
    link: LinkConfig = field(default_factory=LinkConfig)

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create AppConfig from the environment-backed CONFIG dict."""
        return cls(
            port=CONFIG["port"],
            discord_api_base=CONFIG["discord_api_base"],
            discord_bot_token=CONFIG["discord_bot_token"],
            relay_shared_secret=CONFIG["relay_shared_secret"],
            http_timeout_seconds=CONFIG["http_timeout_seconds"],
            emoji_cache_ttl_seconds=CONFIG["emoji_cache_ttl_seconds"],
            oauth=OAuthConfig(
                client_id=CONFIG["oauth_client_id"],
                client_secret=CONFIG["oauth_client_secret"],
                redirect_uri=CONFIG["oauth_redirect_uri"],
                jwt_secret=CONFIG["oauth_jwt_secret"],
            ),
            link=LinkConfig(
                notifier_url=CONFIG["link_notifier_url"],
                notifier_secret=CONFIG["link_notifier_secret"],
                connection_type=CONFIG["link_connection_type"],
                profile_url_template=CONFIG["link_profile_url_template"],
            ),
        )
