"""
Background Writer for fire-and-forget persistence.

The attention queue returns its freshly computed result before the cache
write-back finishes. BackgroundWriter owns those detached writes:

- submit() schedules a coroutine with asyncio.create_task and returns at once
- a strong reference is kept until the task finishes, so it cannot be
  garbage-collected mid-flight
- failures are logged from a done-callback and never re-raised to a caller
- drain() awaits everything still pending (app shutdown, tests)

Usage:
    writer = get_background_writer()
    writer.submit(cache.write(items, now), name="attention-cache-write")
    ...
    await writer.drain()
"""

import asyncio
import logging
from typing import Any, Coroutine, Optional, Set


logger = logging.getLogger(__name__)


class BackgroundWriter:
    """Tracks detached persistence tasks and logs their failures."""

    def __init__(self) -> None:
        self._tasks: Set[asyncio.Task] = set()
        self.failures = 0

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, coro: Coroutine[Any, Any, Any], name: Optional[str] = None) -> asyncio.Task:
        """Schedule coro on the running loop without awaiting it."""
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning(f"Background write '{task.get_name()}' was cancelled")
            return
        error = task.exception()
        if error is not None:
            self.failures += 1
            logger.error(
                f"Background write '{task.get_name()}' failed: {error}",
                exc_info=error,
            )

    async def drain(self) -> None:
        """Wait for every pending write. Failures are already logged."""
        while True:
            pending = [task for task in self._tasks if not task.done()]
            if not pending:
                break
            await asyncio.gather(*pending, return_exceptions=True)
        # Let done-callbacks of the last batch run
        await asyncio.sleep(0)


_writer: Optional[BackgroundWriter] = None


def get_background_writer() -> BackgroundWriter:
    """Process-wide writer shared by request handlers and jobs."""
    global _writer
    if _writer is None:
        _writer = BackgroundWriter()
    return _writer
