"""Detect when a site's regenerated llms.txt differs from the last check."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from llmstxt.models import ContentHash
from llmstxt.repositories import PostgresContentHashRepository
from llmstxt.schemas import JobMessage, JobStatus
from llmstxt.services.orchestrator import JobOrchestrator
from llmstxt.services.storage import content_hash

logger = logging.getLogger(__name__)


class ChangeCheckError(Exception):
    """Generation for the change check did not produce content."""


@dataclass
class ChangeCheckResult:
    url: str
    has_changed: bool
    previous_hash: str | None
    current_hash: str
    change_count: int

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "hasChanged": self.has_changed,
            "previousHash": self.previous_hash,
            "currentHash": self.current_hash,
            "changeCount": self.change_count,
        }


class ChangeDetector:
    """Regenerates a URL and compares the result with its stored hash."""

    def __init__(
        self,
        orchestrator: JobOrchestrator,
        session_maker: async_sessionmaker[AsyncSession],
    ):
        self.orchestrator = orchestrator
        self.session_maker = session_maker

    async def check(self, url: str) -> ChangeCheckResult:
        """Force a regeneration of ``url`` and record whether it changed.

        Raises:
            ChangeCheckError: if the generation job failed or produced no content.
        """
        job_id = f"check-{uuid4()}"
        message = JobMessage(url=url, job_id=job_id, source="webhook", options={"force": True})
        job = await self.orchestrator.run(message)

        if job is None or job.status is not JobStatus.COMPLETED:
            error = job.error if job is not None and job.error else "Failed to generate content"
            raise ChangeCheckError(error)
        if not job.content:
            raise ChangeCheckError("Generated content is empty")

        current_hash = content_hash(job.content)
        now = datetime.now(timezone.utc)

        async with self.session_maker() as session:
            repo = PostgresContentHashRepository(session)
            record = await repo.get_by_url(url)

            if record is None:
                # First time seeing this URL
                previous_hash = None
                has_changed = False
                change_count = 0
                await repo.save(ContentHash(
                    url=url,
                    content_hash=current_hash,
                    content_length=len(job.content),
                    last_checked=now,
                ))
            else:
                previous_hash = record.content_hash
                has_changed = previous_hash != current_hash
                if has_changed:
                    record.content_hash = current_hash
                    record.content_length = len(job.content)
                    record.change_count += 1
                    record.is_changed = True
                    record.last_changed = now
                change_count = record.change_count
                record.last_checked = now
                record.updated_at = now
                await repo.save(record)

            await session.commit()

        logger.info(
            f"Change check for {url}: changed={has_changed}, "
            f"hash={current_hash[:12]}, changes={change_count}"
        )
        return ChangeCheckResult(
            url=url,
            has_changed=has_changed,
            previous_hash=previous_hash,
            current_hash=current_hash,
            change_count=change_count,
        )

    async def pending_changes(self) -> list[ContentHash]:
        """Records flagged as changed, newest change first."""
        async with self.session_maker() as session:
            return await PostgresContentHashRepository(session).get_pending_changes()

    async def mark_processed(self, urls: list[str]) -> int:
        """Clear the changed flag for ``urls``; returns the number of records updated."""
        async with self.session_maker() as session:
            count = await PostgresContentHashRepository(session).mark_processed(urls)
            await session.commit()
        logger.info(f"Marked {count} changed URLs as processed")
        return count
