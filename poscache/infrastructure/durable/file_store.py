"""File-based durable store.

One file per key under ``<root>/<hash[:2]>/<hash>``. Writes go to a temp file
that is atomically moved into place; expired or unreadable files are removed
when they are read.
"""

import asyncio
import hashlib
import logging
import os
import pickle
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Union

import aiofiles

from poscache.domain.exceptions import DurableStoreUnavailableError
from poscache.domain.interfaces.durable_store import DurableStore
from poscache.domain.models.common import CacheKey

logger = logging.getLogger(__name__)

DEFAULT_FILE_STORE_DIR = Path.home() / ".poscache" / "durable"


@dataclass
class StoredRecord:
    """On-disk representation of a durable payload with expiry."""
    key: str
    payload: bytes
    expiry_time: float  # Unix timestamp when the record expires


class FileDurableStore(DurableStore):
    """DurableStore keeping each key in its own file."""

    def __init__(self, root: Union[str, Path] = DEFAULT_FILE_STORE_DIR, clock: Callable[[], float] = time.time):
        self.root = Path(root).expanduser()
        self._clock = clock
        self._setup_root()
        logger.info(f"Initialized file durable store at: {self.root}")

    def _setup_root(self) -> None:
        """Creates the store directory if it doesn't exist."""
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create durable store directory {self.root}: {e}")
            raise DurableStoreUnavailableError("open", str(self.root), e) from e

    def path_for(self, key: CacheKey) -> Path:
        """Generates a safe file path for a key."""
        hashed_key = hashlib.sha256(str(key).encode("utf-8")).hexdigest()
        # Subdirectories keep any one folder small
        return self.root / hashed_key[:2] / hashed_key

    async def _read_record(self, path: Path) -> Optional[StoredRecord]:
        try:
            async with aiofiles.open(path, mode="rb") as f:
                raw = await f.read()
        except FileNotFoundError:
            return None
        try:
            record = pickle.loads(raw)
            if not isinstance(record, StoredRecord):
                raise TypeError(f"unexpected record type {type(record).__name__}")
            return record
        except (pickle.UnpicklingError, EOFError, AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Failed to parse durable record {path}: {e}. Removing.")
            self._unlink(path)
            return None

    async def get(self, key: CacheKey) -> Optional[bytes]:
        path = self.path_for(key)
        try:
            record = await self._read_record(path)
        except OSError as e:
            raise DurableStoreUnavailableError("get", key, e) from e
        if record is None:
            return None
        if self._clock() >= record.expiry_time:
            logger.debug(f"Durable record expired for key: {key}. Removing file.")
            self._unlink(path)
            return None
        return record.payload

    async def put(self, key: CacheKey, payload: bytes, ttl_seconds: float) -> None:
        path = self.path_for(key)
        record = StoredRecord(key=str(key), payload=bytes(payload), expiry_time=self._clock() + ttl_seconds)
        # Per-write temp name: concurrent puts of one key must not share a temp file
        temp_path = path.with_name(f"{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(temp_path, mode="wb") as f:
                await f.write(pickle.dumps(record, protocol=pickle.HIGHEST_PROTOCOL))
            os.replace(str(temp_path), str(path))
            logger.debug(f"Stored durable record: key={key}, file={path}")
        except OSError as e:
            self._unlink(temp_path)
            raise DurableStoreUnavailableError("put", key, e) from e

    async def delete(self, key: CacheKey) -> None:
        path = self.path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise DurableStoreUnavailableError("delete", key, e) from e
        # Try removing an empty parent directory
        try:
            if path.parent != self.root and not any(path.parent.iterdir()):
                path.parent.rmdir()
        except OSError:
            pass  # Concurrently repopulated or already gone

    async def purge_expired(self) -> int:
        """Walks the store and removes expired or corrupt records."""
        def _purge() -> int:
            removed = 0
            now = self._clock()
            for path in self.root.glob("*/*"):
                if path.suffix == ".tmp":
                    continue
                try:
                    record = pickle.loads(path.read_bytes())
                    stale = not isinstance(record, StoredRecord) or now >= record.expiry_time
                except (pickle.UnpicklingError, EOFError, AttributeError, KeyError, TypeError, ValueError):
                    stale = True
                except OSError:
                    continue
                if stale:
                    self._unlink(path)
                    removed += 1
            return removed

        removed = await asyncio.to_thread(_purge)
        logger.info(f"Purged {removed} expired record(s) from {self.root}")
        return removed

    @staticmethod
    def _unlink(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to delete durable file {path}: {e}")
