"""At-most-one concurrent execution per key.

The first caller for a key starts the work; concurrent callers for the same
key await the same future and receive the same result or exception. The
entry is removed as soon as the work settles, successfully or not.

A waiter being cancelled never cancels the shared work: other waiters may
still need the result.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InFlightDeduplicator(Generic[T]):
    def __init__(self, name: str = "inflight"):
        self.name = name
        self._pending: dict[str, asyncio.Task[T]] = {}

    async def run(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        """
        Run ``factory()`` for ``key`` unless a call for it is already running.

        Args:
            key: Deduplication key (e.g. image content hash)
            factory: Zero-argument coroutine function doing the work

        Returns:
            The shared result.
        """
        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._pending[key] = task
            task.add_done_callback(lambda t, k=key: self._settle(k, t))
        else:
            logger.debug(
                "Joining in-flight call",
                extra={"service": self.name, "cache_key": key},
            )
        return await asyncio.shield(task)

    def _settle(self, key: str, task: asyncio.Task) -> None:
        if self._pending.get(key) is task:
            del self._pending[key]
        # Mark the exception retrieved when every waiter was cancelled
        if not task.cancelled():
            task.exception()

    def is_pending(self, key: str) -> bool:
        return key in self._pending

    def __len__(self) -> int:
        return len(self._pending)
