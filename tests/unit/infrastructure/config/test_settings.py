import pytest

from poscache.domain.exceptions import ConfigurationError
from poscache.infrastructure.config.settings import (
    CacheSettings,
    build_durable_store,
    env_var_name,
    get_config,
    load_configuration,
    set_config,
)
from poscache.infrastructure.durable.disk_store import DiskcacheDurableStore
from poscache.infrastructure.durable.file_store import FileDurableStore
from poscache.infrastructure.durable.memory_store import InMemoryDurableStore


def test_defaults_without_any_source(tmp_path):
    load_configuration(config_file=tmp_path / "missing.yaml", force=True)
    settings = CacheSettings.from_config()
    assert settings == CacheSettings()
    assert settings.eviction_policy == "lru"
    assert settings.durable_backend == "none"


def test_yaml_is_flattened_and_env_wins(tmp_path, monkeypatch):
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        "cache:\n"
        "  max_size: 50\n"
        "  eviction_policy: lfu\n"
        "durable:\n"
        "  backend: memory\n"
        "  write_retries: 2\n"
    )
    monkeypatch.setenv("POSCACHE_CACHE_MAX_SIZE", "75")
    load_configuration(config_file=config_file, force=True)

    settings = CacheSettings.from_config()
    assert settings.max_size == 75
    assert settings.eviction_policy == "lfu"
    assert settings.durable_backend == "memory"
    assert settings.write_retries == 2


def test_dotenv_file_is_loaded(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("POSCACHE_CACHE_NAMESPACE=store-12\n")
    # Registered with monkeypatch so the value dotenv exports is dropped on teardown
    monkeypatch.setenv("POSCACHE_CACHE_NAMESPACE", "")
    monkeypatch.delenv("POSCACHE_CACHE_NAMESPACE")
    load_configuration(config_file=tmp_path / "none.yaml", env_file=env_file, force=True)
    assert CacheSettings.from_config().namespace == "store-12"


def test_env_values_are_coerced(monkeypatch):
    monkeypatch.setenv("POSCACHE_FEATURE_ENABLED", "true")
    monkeypatch.setenv("POSCACHE_DURABLE_RETRY_BACKOFF_FACTOR", "1.5")
    monkeypatch.setenv("POSCACHE_CACHE_NAMESPACE", "none")
    assert get_config("feature.enabled") is True
    assert get_config("durable.retry_backoff_factor") == 1.5
    assert get_config("cache.namespace") is None
    assert get_config("not.there", "fallback") == "fallback"


def test_set_config_overrides_environment(monkeypatch):
    monkeypatch.setenv("POSCACHE_CACHE_EVICTION_POLICY", "lfu")
    set_config("cache.eviction_policy", "fifo")
    assert CacheSettings.from_config().eviction_policy == "fifo"


def test_env_var_name():
    assert env_var_name("cache.max_size") == "POSCACHE_CACHE_MAX_SIZE"


@pytest.mark.parametrize("key,value", [
    ("cache.max_size", 0),
    ("cache.default_ttl_seconds", -5),
    ("cache.eviction_policy", "mru"),
    ("cache.serializer", "xml"),
    ("durable.backend", "redis"),
    ("durable.write_retries", -1),
    ("cache.max_size", "lots"),
])
def test_invalid_settings_raise(key, value):
    set_config(key, value)
    with pytest.raises(ConfigurationError):
        CacheSettings.from_config()


@pytest.mark.parametrize("backend,expected", [
    ("none", type(None)),
    ("memory", InMemoryDurableStore),
    ("disk", DiskcacheDurableStore),
    ("file", FileDurableStore),
])
def test_build_durable_store(tmp_path, backend, expected):
    settings = CacheSettings(durable_backend=backend, durable_path=str(tmp_path / "durable"))
    assert isinstance(build_durable_store(settings), expected)
