"""Main entry point for the poscache operator CLI.

Sets up the Typer application, wires settings, logging and the configured
durable store (Composition Root), and defines commands for inspecting the
Durable Tier and for running a local workload through a CacheManager.

The Fast Tier lives inside each application process, so this tool never
sees another process's Fast Tier.
"""

import asyncio
import logging
import random
import time
from pathlib import Path
from typing import Any, Coroutine, Optional

import typer
from typing_extensions import Annotated

from poscache.core.cache_manager import CacheManager
from poscache.domain.exceptions import CacheError, SerializationError
from poscache.domain.interfaces.durable_store import DurableStore
from poscache.infrastructure.cache.serializer import PayloadCodec
from poscache.infrastructure.cli.display import ConsoleDisplay
from poscache.infrastructure.config.settings import (
    DEFAULT_CONFIG_FILE,
    CacheSettings,
    build_durable_store,
    load_configuration,
)
from poscache.infrastructure.durable.memory_store import InMemoryDurableStore
from poscache.infrastructure.monitoring.logger_setup import setup_logging_from_settings

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="poscache",
    help="poscache: inspect the durable cache tier and exercise the tiered cache locally.",
    add_completion=False,
)

ui = ConsoleDisplay()


class _State:
    settings: Optional[CacheSettings] = None


state = _State()


@app.callback()
def main(
    config: Annotated[Path, typer.Option("--config", "-c", help="YAML configuration file.")] = DEFAULT_CONFIG_FILE,
    log_level: Annotated[Optional[str], typer.Option("--log-level", help="Override logging.level.")] = None,
):
    """Load configuration and logging before any command runs."""
    load_configuration(config_file=config, force=True)
    try:
        settings = CacheSettings.from_config()
    except CacheError as e:
        ui.display_error(str(e))
        raise typer.Exit(code=2)
    setup_logging_from_settings(settings, log_level=log_level)
    state.settings = settings
    logger.debug(f"Loaded settings: {settings}")


def _settings() -> CacheSettings:
    return state.settings or CacheSettings.from_config()


def run_async(coro: Coroutine[Any, Any, Any]) -> Any:
    """Runs an async command body from a sync Typer command."""
    try:
        return asyncio.run(coro)
    except CacheError as e:
        logger.error(f"Command failed: {e}", exc_info=True)
        ui.display_error(str(e))
        raise typer.Exit(code=1)


def _open_store(settings: CacheSettings) -> DurableStore:
    store = build_durable_store(settings)
    if store is None:
        ui.display_error("No durable store configured (durable.backend is 'none').")
        raise typer.Exit(code=2)
    return store


def _qualified(settings: CacheSettings, key: str) -> str:
    return f"{settings.namespace}:{key}" if settings.namespace else key


@app.command()
def inspect(key: Annotated[str, typer.Argument(help="Cache key (without namespace).")]):
    """Decode and show the durable envelope stored under KEY."""
    settings = _settings()

    async def _inspect() -> None:
        store = _open_store(settings)
        try:
            payload = await store.get(_qualified(settings, key))
        finally:
            await store.close()
        if payload is None:
            ui.display_info(f"No durable entry for '{key}'.")
            raise typer.Exit(code=1)
        try:
            envelope = PayloadCodec(settings.serializer).decode(payload)
        except SerializationError as e:
            ui.display_error(f"Payload for '{key}' is not a readable cache envelope: {e}")
            raise typer.Exit(code=1)
        ui.display_envelope(key, envelope, time.time())

    run_async(_inspect())


@app.command()
def delete(key: Annotated[str, typer.Argument(help="Cache key (without namespace).")]):
    """Delete KEY from the durable store."""
    settings = _settings()

    async def _delete() -> None:
        store = _open_store(settings)
        try:
            await store.delete(_qualified(settings, key))
        finally:
            await store.close()
        ui.display_info(f"Deleted '{key}' from the durable store.")

    run_async(_delete())


@app.command(name="purge-expired")
def purge_expired():
    """Remove expired records from a disk or file durable store."""
    settings = _settings()

    async def _purge() -> None:
        store = _open_store(settings)
        try:
            purge = getattr(store, "purge_expired", None)
            if purge is None:
                ui.display_error(f"The '{settings.durable_backend}' backend has no purge operation.")
                raise typer.Exit(code=2)
            removed = await purge()
        finally:
            await store.close()
        ui.display_info(f"Purged {removed} expired record(s).")

    run_async(_purge())


@app.command()
def simulate(
    policy: Annotated[Optional[str], typer.Option("--policy", "-p", help="lru, lfu or fifo (defaults to configured).")] = None,
    max_size: Annotated[Optional[int], typer.Option("--max-size", "-m", min=1, help="Fast tier capacity.")] = None,
    keys: Annotated[int, typer.Option("--keys", "-k", min=1, help="Distinct keys in the workload.")] = 200,
    requests: Annotated[int, typer.Option("--requests", "-n", min=1, help="Number of get_or_set calls.")] = 2000,
    skew: Annotated[float, typer.Option("--skew", help="Share of traffic that targets the hottest 10% of keys.")] = 0.8,
    seed: Annotated[int, typer.Option("--seed", help="Random seed.")] = 42,
    with_durable: Annotated[bool, typer.Option("--with-durable", help="Back the fast tier with an in-memory durable store.")] = False,
):
    """Run a seeded get_or_set workload through a local CacheManager and print its stats."""
    settings = _settings()
    rng = random.Random(seed)
    hot = max(1, keys // 10)

    def _pick() -> str:
        if rng.random() < skew:
            return f"product:{rng.randrange(hot)}"
        return f"product:{rng.randrange(keys)}"

    async def _simulate():
        durable = InMemoryDurableStore() if with_durable else None
        overrides = {}
        if policy:
            overrides["eviction_policy"] = policy
        if max_size:
            overrides["max_size"] = max_size
        async with CacheManager.from_settings(settings, durable_store=durable, **overrides) as cache:
            for _ in range(requests):
                key = _pick()
                await cache.get_or_set(key, lambda key=key: {"sku": key, "price": 100})
            return cache.stats()

    stats = run_async(_simulate())
    ui.display_stats(stats, title=f"Simulated workload ({stats['policy']}, max_size={stats['max_size']})")


@app.command(name="show-config")
def show_config():
    """Print the effective settings."""
    ui.display_settings(_settings().as_dict())


if __name__ == "__main__":
    app()
