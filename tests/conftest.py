import logging
from pathlib import Path

import pytest
from typer.testing import CliRunner

from kvstash.domain.interfaces.clock import Clock
from kvstash.infrastructure.config import settings

FIXED_NOW = 1_700_000_000


class FakeClock(Clock):
    """Manually driven clock for expiration tests."""

    def __init__(self, now: int = FIXED_NOW):
        self.current = now

    def now(self) -> int:
        return self.current

    def advance(self, seconds: int) -> None:
        self.current += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache_file(tmp_path: Path) -> Path:
    """Path of a cache file that does not exist yet."""
    return tmp_path / "cache-file"


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Keeps user config files and earlier tests out of configuration lookups."""
    monkeypatch.setattr(settings, "_config", {})
    monkeypatch.setattr(settings, "_loaded", True)
    settings.clear_test_config()
    yield
    settings.clear_test_config()


@pytest.fixture(autouse=True)
def restore_root_logging():
    """CLI runs reconfigure the root logger; put its handlers back afterwards."""
    root_logger = logging.getLogger()
    handlers = root_logger.handlers[:]
    level = root_logger.level
    yield
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)
