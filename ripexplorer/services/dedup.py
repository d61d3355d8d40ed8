"""
Request coalescing.

Concurrent callers asking for the same key share one in-flight
operation. The operation runs in its own task, which every caller awaits
through a shield, so cancelling one caller never cancels the others.
The key is released once the task settles (success or failure), and the
next call after that starts fresh.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)


class RequestCoalescer:
    """One pending operation per key."""

    def __init__(self) -> None:
        self._pending: dict[str, asyncio.Future[Any]] = {}

    async def run(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        """
        Await `factory()` once per key across concurrent callers.

        Every caller gets the same result, or the same exception.
        """
        task = self._pending.get(key)
        if task is None:
            logger.debug("Starting new request for %s", key)
            task = asyncio.ensure_future(factory())
            self._pending[key] = task
            task.add_done_callback(lambda done: self._release(key, done))
        else:
            logger.debug("Waiting for ongoing request for %s", key)
        return await asyncio.shield(task)

    def _release(self, key: str, task: asyncio.Future[Any]) -> None:
        if self._pending.get(key) is task:
            del self._pending[key]
        if not task.cancelled():
            # Mark retrieved; every caller may have gone away
            task.exception()

    @property
    def pending_count(self) -> int:
        return len(self._pending)
