"""
Background runner for fire-and-forget jobs started from request handlers.

Owned by the app lifespan; shutdown() waits for jobs still in flight.
"""

import asyncio
from typing import Awaitable, Optional, Set

from sharpstack.logging_config import get_logger

logger = get_logger(__name__)


class BackgroundRunner:
    def __init__(self) -> None:
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def spawn(self, job: Awaitable, name: Optional[str] = None) -> asyncio.Task:
        task = asyncio.ensure_future(job)
        if name:
            task.set_name(name)
        self._tasks.add(task)
        task.add_done_callback(self._finished)
        return task

    def _finished(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Background job failed",
                extra={"job": task.get_name()},
                exc_info=(type(exc), exc, exc.__traceback__),
            )

    async def drain(self) -> None:
        """Wait for every job spawned so far."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self, timeout: float = 10.0) -> None:
        if not self._tasks:
            return
        try:
            await asyncio.wait_for(self.drain(), timeout=timeout)
        except asyncio.TimeoutError:
            for task in list(self._tasks):
                task.cancel()
            logger.warning("Cancelled background jobs on shutdown", extra={"jobs": len(self._tasks)})
