"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a YAML
configuration file (e.g., ~/.poscache/config.yaml), and turns the result
into a typed CacheSettings object.
"""

import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from poscache.domain.exceptions import ConfigurationError
from poscache.domain.interfaces.durable_store import DurableStore
from poscache.infrastructure.cache.eviction_policies import get_policy
from poscache.infrastructure.cache.serializer import get_serializer

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".poscache"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "POSCACHE_"

DURABLE_BACKENDS = ("none", "memory", "disk", "file")

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_overrides: Dict[str, Any] = {}  # set_config values, highest priority
_loaded = False


def _flatten(data: Dict[str, Any], parent: str = "") -> Dict[str, Any]:
    """Turns nested YAML mappings into dotted keys ({'cache': {'max_size': 5}} -> {'cache.max_size': 5})."""
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        dotted = f"{parent}.{key}" if parent else str(key)
        if isinstance(value, dict):
            flat.update(_flatten(value, dotted))
        else:
            flat[dotted] = value
    return flat


def env_var_name(key: str) -> str:
    """'cache.max_size' -> 'POSCACHE_CACHE_MAX_SIZE'."""
    return f"{ENV_PREFIX}{key.upper().replace('.', '_')}"


def load_configuration(config_file: Path = DEFAULT_CONFIG_FILE, env_file: Optional[Path] = None, force: bool = False) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Values set with set_config
    2. Environment Variables
    3. .env file
    4. YAML configuration file
    5. Default values passed to get_config

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
        force: Reload even if configuration was already loaded.
    """
    global _config, _loaded
    if _loaded and not force:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. Load from YAML file (Lowest priority)
    if config_file.exists():
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(_flatten(yaml_config))
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a mapping.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. Load from .env file (override=False: real env vars take precedence)
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path and load_dotenv(dotenv_path=dotenv_path, override=False):
        logger.info(f"Loaded environment variables from: {dotenv_path}")

    _loaded = True
    logger.debug("Configuration loading process completed.")


def _coerce(value: str) -> Any:
    lowered = value.strip().lower()
    if lowered in ("true", "yes", "on"):
        return True
    if lowered in ("false", "no", "off"):
        return False
    if lowered in ("", "none", "null"):
        return None
    try:
        return float(value) if "." in value else int(value)
    except ValueError:
        return value


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None or value == "" else str(value)


def get_config(key: str, default: Any = None) -> Any:
    """Get a configuration value by dotted key.

    Priority:
    1. Overrides from set_config
    2. Environment variable (POSCACHE_<KEY>)
    3. YAML config
    4. Default value
    """
    if key in _overrides:
        return _overrides[key]

    env_key = env_var_name(key)
    if env_key in os.environ:
        return _coerce(os.environ[env_key])

    if key in _config:
        return _config[key]

    return default


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


def set_config(key: str, value: Any) -> None:
    """Overrides a configuration value for the rest of the process."""
    logger.debug(f"Setting config: {key} = {value!r}")
    _overrides[key] = value


def reset_config() -> None:
    """Drops overrides and loaded values (used by tests)."""
    global _config, _loaded
    _overrides.clear()
    _config = {}
    _loaded = False


@dataclass(frozen=True)
class CacheSettings:
    max_size: int = 1000
    default_ttl_seconds: int = 3600
    eviction_policy: str = "lru"
    namespace: Optional[str] = None
    serializer: str = "pickle"
    # Durable Tier
    durable_backend: str = "none"
    durable_path: str = str(DEFAULT_CONFIG_DIR / "durable")
    write_retries: int = 0
    retry_initial_backoff_seconds: float = 0.05
    retry_backoff_factor: float = 2.0
    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def from_config(cls) -> "CacheSettings":
        """Builds settings from the loaded configuration sources.

        Raises:
            ConfigurationError: On values that cannot be used.
        """
        defaults = cls()
        try:
            settings = cls(
                max_size=int(get_config("cache.max_size", defaults.max_size)),
                default_ttl_seconds=int(get_config("cache.default_ttl_seconds", defaults.default_ttl_seconds)),
                eviction_policy=str(get_config("cache.eviction_policy", defaults.eviction_policy)).lower(),
                namespace=_optional_str(get_config("cache.namespace", defaults.namespace)),
                serializer=str(get_config("cache.serializer", defaults.serializer)).lower(),
                durable_backend=str(get_config("durable.backend", defaults.durable_backend)).lower(),
                durable_path=str(get_config("durable.path", defaults.durable_path)),
                write_retries=int(get_config("durable.write_retries", defaults.write_retries)),
                retry_initial_backoff_seconds=float(
                    get_config("durable.retry_initial_backoff_seconds", defaults.retry_initial_backoff_seconds)
                ),
                retry_backoff_factor=float(get_config("durable.retry_backoff_factor", defaults.retry_backoff_factor)),
                log_level=str(get_config("logging.level", defaults.log_level)).upper(),
                log_file=_optional_str(get_config("logging.file", defaults.log_file)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid cache configuration: {e}") from e
        settings.validate()
        return settings

    def validate(self) -> None:
        if self.max_size < 1:
            raise ConfigurationError(f"cache.max_size must be at least 1, got {self.max_size}")
        if self.default_ttl_seconds <= 0:
            raise ConfigurationError(f"cache.default_ttl_seconds must be positive, got {self.default_ttl_seconds}")
        if self.durable_backend not in DURABLE_BACKENDS:
            raise ConfigurationError(
                f"Unknown durable.backend '{self.durable_backend}'. Expected one of: {', '.join(DURABLE_BACKENDS)}"
            )
        if self.write_retries < 0:
            raise ConfigurationError(f"durable.write_retries must be >= 0, got {self.write_retries}")
        # Raise ConfigurationError on unknown names
        get_policy(self.eviction_policy)
        get_serializer(self.serializer)

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def build_durable_store(settings: CacheSettings) -> Optional[DurableStore]:
    """Creates the Durable Tier adapter selected by ``settings.durable_backend``."""
    backend = settings.durable_backend
    if backend == "none":
        return None
    if backend == "memory":
        from poscache.infrastructure.durable.memory_store import InMemoryDurableStore
        return InMemoryDurableStore()
    if backend == "disk":
        from poscache.infrastructure.durable.disk_store import DiskcacheDurableStore
        return DiskcacheDurableStore(settings.durable_path)
    if backend == "file":
        from poscache.infrastructure.durable.file_store import FileDurableStore
        return FileDurableStore(settings.durable_path)
    raise ConfigurationError(f"Unknown durable.backend '{backend}'")
