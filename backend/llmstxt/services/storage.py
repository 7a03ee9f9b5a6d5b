"""Durable storage of generated documents and job audit records."""

import hashlib
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from llmstxt.repositories import PostgresJobRepository, PostgresLlmsEntryRepository
from llmstxt.schemas import JobStatus

logger = logging.getLogger(__name__)


def content_hash(content: str) -> str:
    return hashlib.sha256(content.encode()).hexdigest()


class ResultStore:
    """Writes pipeline output to the relational store, one transaction per call."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    async def save_entry(self, url: str, content: str) -> None:
        """Upsert the latest document for ``url``."""
        async with self.session_maker() as session:
            repo = PostgresLlmsEntryRepository(session)
            await repo.upsert(url, content, content_hash(content))
            await session.commit()
        logger.info(f"Stored llms.txt for {url} ({len(content)} chars)")

    async def save_job(
        self,
        job_id: str,
        url: str,
        status: JobStatus,
        error: str | None = None,
    ) -> None:
        """Upsert the audit record for ``job_id``."""
        async with self.session_maker() as session:
            repo = PostgresJobRepository(session)
            await repo.upsert(job_id, url, status.value, error)
            await session.commit()
