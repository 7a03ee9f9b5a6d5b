"""Event loop that runs queued jobs inside a Celery worker process.

Celery's thread pool delivers messages; each thread hands its job to one
long-lived asyncio loop where the shared clients live and the ``JobQueue``
bounds how many jobs run at once.
"""

import asyncio
import logging
import threading
from concurrent.futures import Future
from contextlib import AsyncExitStack

from llmstxt.config import Settings, get_settings
from llmstxt.resources import Resources, open_resources
from llmstxt.schemas import JobData, JobMessage
from llmstxt.services.job_queue import JobQueue

logger = logging.getLogger(__name__)


class WorkerRuntime:
    """Owns the worker's event loop thread, shared resources and job queue."""

    def __init__(self, settings: Settings, resources_factory=open_resources):
        self.settings = settings
        self.resources_factory = resources_factory
        self.loop: asyncio.AbstractEventLoop | None = None
        self.resources: Resources | None = None
        self.queue: JobQueue | None = None
        self._thread: threading.Thread | None = None
        self._stack: AsyncExitStack | None = None
        self._lock = threading.Lock()

    @property
    def started(self) -> bool:
        return self.loop is not None

    def start(self) -> None:
        """Start the loop thread and open resources; no-op if already started."""
        with self._lock:
            if self.loop is not None:
                return

            loop = asyncio.new_event_loop()
            thread = threading.Thread(
                target=self._run_loop,
                args=(loop,),
                name="llmstxt-jobs",
                daemon=True,
            )
            thread.start()
            try:
                asyncio.run_coroutine_threadsafe(self._open(), loop).result()
            except Exception:
                loop.call_soon_threadsafe(loop.stop)
                thread.join()
                loop.close()
                raise

            self.loop = loop
            self._thread = thread
            logger.info(f"Worker runtime started with {self.settings.job_concurrency} job slots")

    @staticmethod
    def _run_loop(loop: asyncio.AbstractEventLoop) -> None:
        asyncio.set_event_loop(loop)
        loop.run_forever()

    async def _open(self) -> None:
        self._stack = AsyncExitStack()
        self.resources = await self._stack.enter_async_context(
            self.resources_factory(self.settings)
        )
        self.queue = JobQueue(self.settings.job_concurrency)

    def dispatch(self, message: JobMessage) -> "Future[JobData | None]":
        """Admit ``message`` to the job queue from any thread.

        Returns a future resolved with the job's final projection.
        """
        if self.loop is None:
            raise RuntimeError("Worker runtime is not started")
        return asyncio.run_coroutine_threadsafe(self._submit(message), self.loop)

    async def _submit(self, message: JobMessage) -> JobData | None:
        orchestrator = self.resources.orchestrator()
        task = self.queue.submit(message.job_id, lambda: orchestrator.run(message))
        return await task

    def stop(self) -> None:
        """Drain admitted jobs, close resources and stop the loop."""
        with self._lock:
            if self.loop is None:
                return
            try:
                asyncio.run_coroutine_threadsafe(self._close(), self.loop).result()
            finally:
                self.loop.call_soon_threadsafe(self.loop.stop)
                self._thread.join()
                self.loop.close()
                self.loop = None
                self._thread = None
            logger.info("Worker runtime stopped")

    async def _close(self) -> None:
        await self.queue.close()
        await self._stack.aclose()


_runtime: WorkerRuntime | None = None


def get_runtime() -> WorkerRuntime:
    """The process-wide runtime, created on first use."""
    global _runtime
    if _runtime is None:
        _runtime = WorkerRuntime(get_settings())
    return _runtime
