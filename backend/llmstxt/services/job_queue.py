"""In-process admission queue bounding how many jobs run at once."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class JobQueueClosed(RuntimeError):
    """Raised by ``submit`` once the queue has been closed."""


class JobQueue:
    """Runs at most ``max_concurrent`` jobs concurrently.

    Jobs are admitted in arrival order (``asyncio.Semaphore`` wakes waiters
    first in, first out) and complete in any order. Each job's coroutine is
    only created once it has a slot, so a waiting job holds no resources.
    """

    def __init__(self, max_concurrent: int):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.max_concurrent = max_concurrent
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._tasks: set[asyncio.Task] = set()
        self._closed = False
        self.pending = 0
        self.running = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def submit(self, name: str, coroutine_factory: Callable[[], Awaitable[T]]) -> "asyncio.Task[T]":
        """Admit a job; must be called from the queue's event loop.

        Raises:
            JobQueueClosed: if ``close`` has been called.
        """
        if self._closed:
            raise JobQueueClosed(f"Job queue is closed, rejecting {name}")

        self.pending += 1
        task = asyncio.create_task(self._run(name, coroutine_factory), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, name: str, coroutine_factory: Callable[[], Awaitable[T]]) -> T:
        started = False
        try:
            async with self._semaphore:
                started = True
                self.pending -= 1
                self.running += 1
                logger.debug(f"Starting {name} ({self.running} running, {self.pending} pending)")
                try:
                    return await coroutine_factory()
                finally:
                    self.running -= 1
        finally:
            # Cancelled while still waiting for a slot
            if not started:
                self.pending -= 1

    async def join(self) -> None:
        """Wait until every admitted job has finished."""
        while self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def close(self) -> None:
        """Stop admitting jobs and wait for the admitted ones."""
        self._closed = True
        logger.info(f"Closing job queue with {self.running} running and {self.pending} pending jobs")
        await self.join()
