"""Logging wiring for the poscache CLI and for hosts that want the same output.

Library modules only ever call ``logging.getLogger(__name__)``. This module
attaches poscache's own handlers to the root logger (stdout, plus a file when
configured) and keeps third-party loggers at WARNING or above so that a DEBUG
session shows cache traffic rather than event-loop noise. Calling it again
replaces poscache's handlers and leaves handlers installed by the host alone.
"""

import logging
import sys
from typing import Any, Iterable, List, Optional, Union

DEFAULT_LOG_LEVEL = logging.INFO
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
THIRD_PARTY_LOGGERS = ("asyncio", "diskcache", "aiofiles")

_OWNED = "_poscache_owned"


def resolve_level(level: Union[int, str]) -> int:
    """Accepts logging.DEBUG or 'debug'; unknown names fall back to INFO."""
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper(), DEFAULT_LOG_LEVEL)


def _owned(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _OWNED, True)
    return handler


def _drop_owned_handlers(root: logging.Logger) -> None:
    for handler in root.handlers[:]:
        if getattr(handler, _OWNED, False):
            root.removeHandler(handler)
            handler.close()


def setup_logging(
    log_level: Union[int, str] = DEFAULT_LOG_LEVEL,
    log_format: str = DEFAULT_LOG_FORMAT,
    log_file: Optional[str] = None,
    quiet_loggers: Iterable[str] = THIRD_PARTY_LOGGERS,
) -> List[logging.Handler]:
    """Configures the root logger for poscache output.

    Args:
        log_level: Minimum level, as ``logging.DEBUG`` or ``'debug'``.
        log_format: Format string for every poscache handler.
        log_file: Optional path that also receives the log.
        quiet_loggers: Loggers held at WARNING or above regardless of level.

    Returns:
        The handlers that were installed.
    """
    level = resolve_level(log_level)
    root = logging.getLogger()
    root.setLevel(level)
    _drop_owned_handlers(root)

    formatter = logging.Formatter(log_format)
    handlers: List[logging.Handler] = [_owned(logging.StreamHandler(sys.stdout))]
    file_error: Optional[OSError] = None
    if log_file:
        try:
            handlers.append(_owned(logging.FileHandler(log_file, encoding="utf-8")))
        except OSError as e:
            file_error = e

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in quiet_loggers:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    if file_error is not None:
        logging.error(f"Failed to set up file logging to {log_file}: {file_error}")
    logging.debug(f"Logging configured. Level={logging.getLevelName(level)}, handlers={len(handlers)}")
    return handlers


def setup_logging_from_settings(settings: Any, log_level: Optional[str] = None) -> List[logging.Handler]:
    """Configures logging from a CacheSettings; ``log_level`` overrides its level."""
    return setup_logging(log_level=log_level or settings.log_level, log_file=settings.log_file)
