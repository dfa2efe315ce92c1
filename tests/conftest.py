"""Shared fixtures for the staff status bot tests."""

from types import SimpleNamespace

import pytest

from database import DatabaseManager


@pytest.fixture
def db(tmp_path):
    manager = DatabaseManager(str(tmp_path / 'test.db'), pool_size=2)
    yield manager
    manager.close_pool()


@pytest.fixture
def bot_config():
    return SimpleNamespace(refresh_interval=60)
