"""
Entrypoint: `chad [config.yaml]` or `python -m chad.main`.

Loads and validates the config (exits on missing credentials), then runs the
bot until SIGINT/SIGTERM, at which point ChadBot.close() stops the background
jobs and writes a final snapshot.
"""

import asyncio
import logging
import os
import signal
import sys

from chad.config.loader import get_config
from chad.discord.client import ChadBot


def configure_logging() -> None:
    if os.environ.get("DEBUG"):
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(levelname)s: %(message)s")
        logging.getLogger("httpx").setLevel(logging.DEBUG)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s: %(message)s")


async def run_bot(config_path: str | None = None) -> None:
    config = get_config(config_path)
    bot = ChadBot(config)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, lambda: asyncio.ensure_future(bot.close()))
        except NotImplementedError:
            # Windows: KeyboardInterrupt still unwinds through `async with bot`
            pass

    logging.info("🚀 Bot starting | model: %s", config["openrouter"]["model"])
    async with bot:
        await bot.start(config["bot_token"])


def main() -> None:
    configure_logging()
    config_path = sys.argv[1] if len(sys.argv) > 1 else None
    try:
        asyncio.run(run_bot(config_path))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
