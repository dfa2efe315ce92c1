import logging
import os
from datetime import datetime

import pytest

from bot.config import Config, DEFAULT_REFRESH_INTERVAL

CONFIG_KEYS = (
    'DISCORD_BOT_TOKEN', 'DISCORD_CLIENT_ID', 'DB_FILE', 'REFRESH_INTERVAL_SECONDS',
    'DEBUG_LEVEL', 'DEBUG_LOGS_DAYS_TO_KEEP',
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Run each test in an empty directory with none of the bot's variables set."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(os, 'environ', {k: v for k, v in os.environ.items() if k not in CONFIG_KEYS})


def write_env(tmp_path, **values):
    lines = [f"{key}={value}" for key, value in values.items()]
    (tmp_path / '.env').write_text("\n".join(lines) + "\n")


def test_missing_env_creates_template(tmp_path):
    with pytest.raises(FileNotFoundError):
        Config()

    assert "DISCORD_BOT_TOKEN=your-bot-token-here" in (tmp_path / '.env').read_text()


def test_placeholder_token_rejected(tmp_path):
    write_env(tmp_path, DISCORD_BOT_TOKEN='your-bot-token-here')

    with pytest.raises(ValueError):
        Config()


def test_loads_settings(tmp_path):
    write_env(
        tmp_path,
        DISCORD_BOT_TOKEN='abc.def',
        DISCORD_CLIENT_ID='123456789',
        DB_FILE='sqlite:///data/status.db',
        REFRESH_INTERVAL_SECONDS='120',
        DEBUG_LEVEL='debug',
    )

    config = Config()

    assert config.bot_token == 'abc.def'
    assert config.client_id == 123456789
    assert config.db_file == 'data/status.db'
    assert config.refresh_interval == 120
    assert config.log_level == logging.DEBUG


def test_defaults_and_invalid_numbers(tmp_path):
    write_env(tmp_path, DISCORD_BOT_TOKEN='abc.def', REFRESH_INTERVAL_SECONDS='soon',
              DEBUG_LOGS_DAYS_TO_KEEP='many')

    config = Config()

    assert config.client_id is None
    assert config.db_file == 'staff_status.db'
    assert config.refresh_interval == DEFAULT_REFRESH_INTERVAL
    assert config.logs_days_to_keep == 5


def test_refresh_interval_has_a_floor(tmp_path):
    write_env(tmp_path, DISCORD_BOT_TOKEN='abc.def', REFRESH_INTERVAL_SECONDS='1')

    assert Config().refresh_interval == DEFAULT_REFRESH_INTERVAL


def test_non_numeric_client_id_rejected(tmp_path):
    write_env(tmp_path, DISCORD_BOT_TOKEN='abc.def', DISCORD_CLIENT_ID='my-bot')

    with pytest.raises(ValueError):
        Config()


def test_cleanup_old_logs_keeps_recent_and_undated(tmp_path):
    write_env(tmp_path, DISCORD_BOT_TOKEN='abc.def', DEBUG_LOGS_DAYS_TO_KEEP='3')
    logs = tmp_path / 'logs'
    logs.mkdir()
    (logs / '2000-01-01.log').write_text("old")
    recent = logs / f"{datetime.now():%Y-%m-%d}.log"
    recent.write_text("new")
    (logs / 'crash.log').write_text("crash")

    assert Config().cleanup_old_logs() == 1

    assert sorted(p.name for p in logs.iterdir()) == sorted([recent.name, 'crash.log'])
