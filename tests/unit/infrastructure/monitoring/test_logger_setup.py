import logging

import pytest

from poscache.infrastructure.config.settings import CacheSettings
from poscache.infrastructure.monitoring.logger_setup import (
    THIRD_PARTY_LOGGERS,
    resolve_level,
    setup_logging,
    setup_logging_from_settings,
)

pytestmark = pytest.mark.usefixtures("restore_logging")


def test_setup_logging_configures_root_logger(tmp_path):
    log_file = tmp_path / "poscache.log"
    installed = setup_logging(log_level="debug", log_file=str(log_file))
    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert len(installed) == 2
    assert any(isinstance(h, logging.FileHandler) for h in installed)
    logging.getLogger("poscache.test").debug("written to file")
    assert "written to file" in log_file.read_text(encoding="utf-8")


def test_repeated_setup_replaces_only_its_own_handlers():
    root = logging.getLogger()
    host_handler = logging.NullHandler()
    root.addHandler(host_handler)

    first = setup_logging()
    second = setup_logging()

    assert host_handler in root.handlers
    assert not any(h in root.handlers for h in first)
    assert all(h in root.handlers for h in second)


def test_third_party_loggers_stay_quiet_at_debug():
    setup_logging(log_level="debug")
    for name in THIRD_PARTY_LOGGERS:
        assert logging.getLogger(name).level == logging.WARNING
    setup_logging(log_level="error")
    assert logging.getLogger("diskcache").level == logging.ERROR


def test_unwritable_log_file_falls_back_to_stdout(tmp_path):
    installed = setup_logging(log_file=str(tmp_path / "missing-dir" / "poscache.log"))
    assert len(installed) == 1
    assert not isinstance(installed[0], logging.FileHandler)


def test_setup_logging_from_settings():
    setup_logging_from_settings(CacheSettings(log_level="ERROR"))
    assert logging.getLogger().level == logging.ERROR
    setup_logging_from_settings(CacheSettings(log_level="ERROR"), log_level="debug")
    assert logging.getLogger().level == logging.DEBUG


def test_resolve_level():
    assert resolve_level("warning") == logging.WARNING
    assert resolve_level(logging.ERROR) == logging.ERROR
    assert resolve_level("chatty") == logging.INFO
