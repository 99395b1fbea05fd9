"""Run the relay: ``python -m discord_relay``."""

import uvicorn

from discord_relay.adapters.web.server import app
from discord_relay.config import CONFIG


def main():
    uvicorn.run(app, host="0.0.0.0", port=CONFIG["port"], log_level="info")


if __name__ == "__main__":
    main()
