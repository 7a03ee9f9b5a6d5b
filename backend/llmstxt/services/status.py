"""Job status projection and content cache, both stored in Redis."""

import logging
import time

from redis.asyncio import Redis
from redis.exceptions import WatchError

from llmstxt.schemas import JobData, JobStatus

logger = logging.getLogger(__name__)


class InvalidStatusTransition(Exception):
    """Raised when a status update would move a job backwards or reopen it."""

    def __init__(self, job_id: str, current: JobStatus, requested: JobStatus):
        super().__init__(
            f"Job {job_id} cannot move from {current.value} to {requested.value}"
        )
        self.job_id = job_id
        self.current = current
        self.requested = requested


def _decode(value: bytes | str | None) -> str | None:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


class JobStatusStore:
    """Manages the ``job:<jobId>`` projection of each job.

    Status only moves forward (pending < processing < completed/failed) and
    a terminal projection is never overwritten. Updates merge into the
    existing projection.
    """

    def __init__(self, redis: Redis, ttl: int = 3600):
        self.redis = redis
        self.ttl = ttl  # Status expires after 1 hour unless refreshed

    def _key(self, job_id: str) -> str:
        return f"job:{job_id}"

    async def get(self, job_id: str) -> JobData | None:
        """Get the current projection, or None if unknown or expired."""
        data = _decode(await self.redis.get(self._key(job_id)))
        if data:
            return JobData.model_validate_json(data)
        return None

    async def update(self, job_id: str, status: JobStatus, **fields) -> JobData:
        """Move a job to ``status``, merging ``fields`` into its projection.

        The read and the write run as one WATCH/MULTI transaction, retried
        when another writer touches the key in between.

        Raises:
            InvalidStatusTransition: if the job is terminal or ``status``
                would move it backwards.
        """
        key = self._key(job_id)
        async with self.redis.pipeline(transaction=True) as pipe:
            while True:
                try:
                    await pipe.watch(key)
                    data = _decode(await pipe.get(key))
                    current = JobData.model_validate_json(data) if data else None
                    if current is not None and (
                        current.status.is_terminal or status.rank < current.status.rank
                    ):
                        raise InvalidStatusTransition(job_id, current.status, status)

                    values = current.model_dump() if current else {"job_id": job_id}
                    values.update(fields)
                    values["status"] = status
                    values["updated_at"] = int(time.time() * 1000)
                    job = JobData.model_validate(values)

                    pipe.multi()
                    pipe.set(key, job.to_json(), ex=self.ttl)
                    await pipe.execute()
                    break
                except WatchError:
                    logger.debug(f"Job {job_id} changed during update, retrying")
                    continue

        logger.info(f"Job {job_id} status updated to {status.value}")
        return job


class ContentCache:
    """Caches generated llms.txt content under ``llms:<url>``."""

    def __init__(self, redis: Redis, ttl: int = 86400):
        self.redis = redis
        self.ttl = ttl

    def _key(self, url: str) -> str:
        return f"llms:{url}"

    async def get(self, url: str) -> str | None:
        """Get cached content for a URL."""
        return _decode(await self.redis.get(self._key(url)))

    async def set(self, url: str, content: str) -> None:
        """Store generated content for a URL."""
        await self.redis.set(self._key(url), content, ex=self.ttl)
