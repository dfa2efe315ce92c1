"""Configuration loader for the staff status bot."""

import os
import logging
from logging.handlers import TimedRotatingFileHandler
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_DB_FILE = 'staff_status.db'
DEFAULT_REFRESH_INTERVAL = 60
MIN_REFRESH_INTERVAL = 10
DEFAULT_LOGS_DAYS_TO_KEEP = 5

DEFAULT_ENV_CONTENT = """# Discord Bot Configuration
# Fill in your bot token below

# REQUIRED: Your Discord bot token from https://discord.com/developers/applications
DISCORD_BOT_TOKEN=your-bot-token-here

# Application (client) ID of the bot, used when registering slash commands
DISCORD_CLIENT_ID=

# Database connection string (path to the SQLite file, sqlite:/// prefix allowed)
DB_FILE=staff_status.db

# How often the status panels are refreshed (in seconds)
REFRESH_INTERVAL_SECONDS=60

# Logging and Debug Settings
DEBUG_LEVEL=info  # options: info, debug, warning, error
DEBUG_LOGS_DAYS_TO_KEEP=5  # number of days to keep log files (older logs are deleted)
"""


def _parse_db_file(value: str) -> str:
    """Turn a database connection string into a SQLite file path."""
    value = value.strip()
    if value.startswith('sqlite:///'):
        value = value[len('sqlite:///'):]
    return value or DEFAULT_DB_FILE


def _read_int(name: str, default: int, minimum: int = 0) -> int:
    """Read an integer setting, falling back to default when it is missing or invalid."""
    raw = os.getenv(name, "").split("#")[0].strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Invalid {name} '{raw}', using {default}")
        return default
    if value < minimum:
        logger.warning(f"{name} must be at least {minimum}, using {default}")
        return default
    return value


class Config:
    """Bot configuration loaded from .env file."""

    def __init__(self, env_path: str = '.env'):
        """Load configuration from .env file."""
        self.env_path = Path(env_path)
        self.template_path = self.env_path.with_name('.env.template')

        if not self.env_path.exists():
            self._create_default_env()
            logger.error("No .env file found. A default .env file has been created.")
            logger.error("Please edit .env and add your Discord bot token, then restart the bot.")
            raise FileNotFoundError(
                "Please edit .env file and add your Discord bot token, then restart the bot."
            )

        load_dotenv(self.env_path)

        # Required settings
        self.bot_token = os.getenv('DISCORD_BOT_TOKEN', '').strip()
        if not self.bot_token or self.bot_token == 'your-bot-token-here':
            logger.error("DISCORD_BOT_TOKEN not set in .env file.")
            raise ValueError(
                "Please set DISCORD_BOT_TOKEN in .env file with your actual bot token."
            )

        client_id = os.getenv('DISCORD_CLIENT_ID', '').strip()
        try:
            self.client_id: Optional[int] = int(client_id) if client_id else None
        except ValueError:
            raise ValueError(f"DISCORD_CLIENT_ID must be a numeric application ID, got '{client_id}'")

        self.db_file = _parse_db_file(os.getenv('DB_FILE', DEFAULT_DB_FILE))

        debug_level = os.getenv('DEBUG_LEVEL', 'info').split('#')[0].strip().upper()
        self.log_level = getattr(logging, debug_level, logging.INFO)

        self.refresh_interval = _read_int('REFRESH_INTERVAL_SECONDS', DEFAULT_REFRESH_INTERVAL,
                                          minimum=MIN_REFRESH_INTERVAL)
        self.logs_days_to_keep = _read_int('DEBUG_LOGS_DAYS_TO_KEEP', DEFAULT_LOGS_DAYS_TO_KEEP, minimum=1)

        logger.info(
            f"Configuration loaded: database={self.db_file}, "
            f"log level={logging.getLevelName(self.log_level)}, "
            f"refresh every {self.refresh_interval}s, logs kept {self.logs_days_to_keep} days"
        )

    def _create_default_env(self):
        """Create a default .env file from template if it doesn't exist."""
        try:
            if self.template_path.exists():
                self.env_path.write_text(self.template_path.read_text())
                logger.info("Created .env file from template")
            else:
                self.env_path.write_text(DEFAULT_ENV_CONTENT)
                logger.info("Created default .env file")
        except Exception as e:
            logger.error(f"Failed to create .env file: {e}")
            raise

    @property
    def log_folder(self) -> Path:
        return Path('logs')

    def cleanup_old_logs(self) -> int:
        """Remove dated YYYY-MM-DD.log files past the retention window.

        crash.log and other non-dated files are left alone. Returns the number
        of files removed.
        """
        if not self.log_folder.exists():
            return 0

        cutoff = datetime.now() - timedelta(days=self.logs_days_to_keep)
        removed = 0
        for log_file in self.log_folder.glob('*.log'):
            try:
                if datetime.strptime(log_file.stem, '%Y-%m-%d') >= cutoff:
                    continue
                log_file.unlink()
                removed += 1
            except ValueError:
                continue
            except OSError as e:
                logger.warning(f"Could not remove old log {log_file.name}: {e}")

        if removed:
            logger.info(f"Removed {removed} log file(s) older than {self.logs_days_to_keep} days")
        return removed

    def setup_logging(self):
        """Send log records to the console and to a daily rotating file under logs/."""
        self.log_folder.mkdir(exist_ok=True)
        self.cleanup_old_logs()

        log_file = self.log_folder / f"{datetime.now(timezone.utc):%Y-%m-%d}.log"
        formatter = logging.Formatter('%(asctime)s [%(levelname)s] %(name)s: %(message)s',
                                      '%Y-%m-%d %H:%M:%S')

        file_handler = TimedRotatingFileHandler(
            log_file, when='midnight', backupCount=self.logs_days_to_keep,
            encoding='utf-8', utc=True,
        )
        file_handler.suffix = '%Y-%m-%d.log'

        root_logger = logging.getLogger()
        root_logger.handlers.clear()
        root_logger.setLevel(self.log_level)
        for handler in (file_handler, logging.StreamHandler()):
            handler.setLevel(self.log_level)
            handler.setFormatter(formatter)
            root_logger.addHandler(handler)

        # gateway payloads are too noisy at DEBUG
        logging.getLogger('discord').setLevel(max(self.log_level, logging.INFO))

        logger.info(f"Logging to {log_file}")
