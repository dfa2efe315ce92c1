"""
Staff Status Bot entry point.

Tracks how long members of a chosen role spend online, idle, on
do-not-disturb and offline, and keeps a paginated status panel up to date.
Run with `python main.py` from the directory holding the .env file.
"""

import asyncio
import logging
import sys
import traceback
from datetime import datetime, timezone
from pathlib import Path

import discord

from bot.config import Config
from bot.client import create_bot, setup_bot

EXIT_OK = 0
EXIT_CRASH = 1       # a supervisor may restart the bot
EXIT_CONFIG = 2      # fix .env before restarting

CRASH_LOG = Path('logs') / 'crash.log'

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

logger = logging.getLogger(__name__)


def record_crash(exit_code: int):
    """Append the current traceback to logs/crash.log for abnormal exits.

    Independent of the rotating file handler so failures before logging is
    configured still leave a trace.
    """
    if exit_code == EXIT_OK:
        return

    details = traceback.format_exc()
    if not details or details.strip() == 'NoneType: None':
        details = "No traceback available.\n"

    try:
        CRASH_LOG.parent.mkdir(exist_ok=True)
        with CRASH_LOG.open('a', encoding='utf-8') as f:
            stamp = datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')
            f.write(f"\n{'=' * 60}\nExit code {exit_code} at {stamp}\n{'=' * 60}\n{details}\n")
    except OSError:
        logger.error(f"Could not write {CRASH_LOG}")


async def run_bot(config: Config):
    """Connect to Discord and serve until the connection is closed."""
    bot = create_bot(config)
    try:
        async with bot:
            await setup_bot(bot)
            logger.info("Connecting to Discord...")
            await bot.start(config.bot_token)
    finally:
        bot.db.close_pool()


async def main() -> int:
    """Load configuration and run the bot, returning the process exit code."""
    try:
        config = Config()
    except FileNotFoundError as e:
        logger.error(f"Configuration error: {e}")
        logger.error("Edit the .env file, add your Discord bot token, then restart the bot.")
        return EXIT_CONFIG
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG

    config.setup_logging()

    try:
        await run_bot(config)
    except discord.LoginFailure as e:
        logger.error(f"Discord rejected the bot token: {e}")
        return EXIT_CONFIG
    except Exception:
        logger.error("Fatal error occurred:", exc_info=True)
        return EXIT_CRASH

    return EXIT_OK


if __name__ == "__main__":
    exit_code = EXIT_OK
    try:
        exit_code = asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Bot stopped by user")
    finally:
        record_crash(exit_code)
        sys.exit(exit_code)
