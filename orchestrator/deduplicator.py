"""
RequestDeduplicator - Collapses concurrent identical searches into one upstream call.

Must be used from a single event loop. The registry is only touched between
awaits, so no lock is needed.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from utils.logger import get_logger

logger = get_logger(__name__)


class RequestDeduplicator:
    def __init__(self, ttl_seconds: float = 300.0, max_entries: int = 100):
        """
        Initialize the deduplicator.

        Args:
            ttl_seconds: How long a completed future stays reusable
            max_entries: Registry size above which it is cleared wholesale
        """
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._pending: dict[str, asyncio.Future] = {}

    def __len__(self) -> int:
        return len(self._pending)

    async def dedupe(self, key: str, producer: Callable[[], Awaitable[Any]]) -> Any:
        """
        Return the shared result for ``key``, invoking ``producer`` only if no
        future is registered for it.

        Producer errors propagate to every waiter. Shielding keeps one
        cancelled waiter from cancelling the shared call for the others.
        """
        existing = self._pending.get(key)
        if existing is not None and existing.get_loop() is not asyncio.get_running_loop():
            # Left over from a loop that has since finished (sync entry points)
            del self._pending[key]
            existing = None

        if existing is not None:
            logger.info(f"Deduplicating concurrent query: {key[:50]}...")
            if existing.done():
                return existing.result()
            return await asyncio.shield(existing)

        task = asyncio.ensure_future(producer())
        self._pending[key] = task
        task.add_done_callback(lambda done: self._schedule_eviction(key, done))

        self._enforce_capacity()
        return await asyncio.shield(task)

    def clear(self) -> None:
        self._pending.clear()

    def _schedule_eviction(self, key: str, task: asyncio.Future) -> None:
        # Mark the exception retrieved so an unawaited failure is not reported at GC
        if not task.cancelled():
            task.exception()
        task.get_loop().call_later(self._ttl, self._evict, key, task)

    def _evict(self, key: str, task: asyncio.Future) -> None:
        if self._pending.get(key) is task:
            del self._pending[key]

    def _enforce_capacity(self) -> None:
        size = len(self._pending)
        if size > self._max_entries:
            logger.warning(f"Clearing {size} deduplication entries to bound memory")
            self._pending.clear()
