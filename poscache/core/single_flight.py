"""Per-key in-flight request registry.

The first caller for a key runs the work; callers arriving while it is in
flight await the same future instead of starting their own. The registry
entry is dropped as soon as the result or exception lands, so the next
caller after that starts fresh.
"""

import asyncio
import logging
import threading
from typing import Any, Awaitable, Callable, Dict, Tuple

logger = logging.getLogger(__name__)


class _Call:
    __slots__ = ("future", "waiters")

    def __init__(self, future: asyncio.Future):
        self.future = future
        self.waiters = 0


class SingleFlight:
    """Coalesces concurrent calls that share a key."""

    def __init__(self):
        self._lock = threading.Lock()
        self._calls: Dict[str, _Call] = {}

    def in_flight(self, key: str) -> bool:
        with self._lock:
            return key in self._calls

    def waiters(self, key: str) -> int:
        """Number of callers currently waiting on another caller's run for ``key``."""
        with self._lock:
            call = self._calls.get(key)
            return call.waiters if call else 0

    async def do(self, key: str, fn: Callable[[], Awaitable[Any]]) -> Tuple[Any, bool]:
        """Runs ``fn`` once per key across concurrent callers.

        Returns:
            ``(result, shared)`` where ``shared`` is True for callers that
            waited on another caller's run.

        Raises:
            Whatever ``fn`` raised, for the runner and every waiter.
        """
        with self._lock:
            call = self._calls.get(key)
            leader = call is None
            if leader:
                call = _Call(asyncio.get_running_loop().create_future())
                self._calls[key] = call
            else:
                call.waiters += 1

        if not leader:
            logger.debug(f"Joining in-flight call for key: {key}")
            return await asyncio.shield(call.future), True

        try:
            result = await fn()
        except asyncio.CancelledError:
            self._release(key)
            call.future.cancel()
            raise
        except BaseException as e:
            self._release(key)
            call.future.set_exception(e)
            # Mark retrieved so a failure nobody waited on is not reported as unhandled
            call.future.exception()
            raise
        self._release(key)
        call.future.set_result(result)
        return result, False

    def _release(self, key: str) -> None:
        with self._lock:
            self._calls.pop(key, None)
