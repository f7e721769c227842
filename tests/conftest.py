import logging
from typing import List, Optional
from unittest.mock import MagicMock

import pytest
from typer.testing import CliRunner

from poscache.core.cache_manager import CacheManager
from poscache.domain.exceptions import DurableStoreUnavailableError
from poscache.domain.interfaces.durable_store import DurableStore
from poscache.infrastructure.config import settings as settings_module
from poscache.infrastructure.durable.memory_store import InMemoryDurableStore
from poscache.infrastructure.monitoring.logger_setup import THIRD_PARTY_LOGGERS


class FakeClock:
    """Manually advanced wall clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FailingDurableStore(DurableStore):
    """A durable store whose every call fails."""

    supports_prefix_scan = True

    def __init__(self):
        self.calls: List[str] = []

    async def get(self, key):
        self.calls.append("get")
        raise DurableStoreUnavailableError("get", key, ConnectionError("connection refused"))

    async def put(self, key, payload, ttl_seconds):
        self.calls.append("put")
        raise DurableStoreUnavailableError("put", key, ConnectionError("connection refused"))

    async def delete(self, key):
        self.calls.append("delete")
        raise DurableStoreUnavailableError("delete", key, ConnectionError("connection refused"))

    async def keys(self, prefix=""):
        self.calls.append("keys")
        raise DurableStoreUnavailableError("keys", prefix, ConnectionError("connection refused"))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def durable(clock: FakeClock) -> InMemoryDurableStore:
    return InMemoryDurableStore(clock=clock)


@pytest.fixture
def failing_durable() -> FailingDurableStore:
    return FailingDurableStore()


@pytest.fixture
def make_cache(clock: FakeClock):
    """Factory for CacheManagers sharing the fake clock."""
    def _make(max_size: int = 100, policy: str = "lru", durable_store: Optional[DurableStore] = None, **kwargs) -> CacheManager:
        return CacheManager(
            max_size=max_size,
            eviction_policy=policy,
            durable_store=durable_store,
            clock=clock,
            **kwargs,
        )
    return _make


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keep tests away from the developer's ~/.poscache and POSCACHE_* variables."""
    import os
    for name in list(os.environ):
        if name.startswith(settings_module.ENV_PREFIX):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    settings_module.reset_config()
    yield
    settings_module.reset_config()


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def mock_console_display(mocker) -> MagicMock:
    """Replaces the CLI's ConsoleDisplay so tests can assert on what was shown."""
    return mocker.patch("poscache.main.ui")


@pytest.fixture
def restore_logging():
    """The CLI reconfigures the root logger; put the original handlers back afterwards."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    quiet_levels = {name: logging.getLogger(name).level for name in THIRD_PARTY_LOGGERS}
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            handler.close()
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
    for name, quiet_level in quiet_levels.items():
        logging.getLogger(name).setLevel(quiet_level)
