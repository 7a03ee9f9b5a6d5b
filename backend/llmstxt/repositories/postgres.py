"""PostgreSQL repository implementations.

Upserts are single INSERT ... ON CONFLICT DO UPDATE statements, so concurrent
writers for the same key resolve as last-writer-wins.
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from llmstxt.models import ContentHash, Job, LlmsEntry


class PostgresLlmsEntryRepository:
    """PostgreSQL implementation of the generated document repository."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_url(self, url: str) -> LlmsEntry | None:
        """Get the stored document for a target URL."""
        result = await self.session.execute(
            select(LlmsEntry).where(LlmsEntry.url == url)
        )
        return result.scalar_one_or_none()

    async def upsert(self, url: str, content: str, content_hash: str) -> None:
        """Insert or replace the document for ``url``."""
        now = datetime.now(timezone.utc)
        stmt = insert(LlmsEntry).values(
            id=str(uuid4()),
            url=url,
            content=content,
            content_hash=content_hash,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["url"],
            set_={
                "content": stmt.excluded.content,
                "content_hash": stmt.excluded.content_hash,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        await self.session.execute(stmt)


class PostgresJobRepository:
    """PostgreSQL implementation of the job audit repository."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def upsert(
        self,
        job_id: str,
        url: str,
        status: str,
        error: str | None = None,
    ) -> None:
        """Insert or update the audit record for ``job_id``."""
        now = datetime.now(timezone.utc)
        stmt = insert(Job).values(
            id=job_id,
            url=url,
            status=status,
            error=error,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["id"],
            set_={
                "url": stmt.excluded.url,
                "status": stmt.excluded.status,
                "error": stmt.excluded.error,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        await self.session.execute(stmt)


class PostgresContentHashRepository:
    """PostgreSQL implementation of the content hash repository."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_url(self, url: str) -> ContentHash | None:
        """Get the stored hash record for a URL."""
        result = await self.session.execute(
            select(ContentHash).where(ContentHash.url == url)
        )
        return result.scalar_one_or_none()

    async def save(self, record: ContentHash) -> ContentHash:
        """Save a hash record."""
        self.session.add(record)
        await self.session.flush()
        return record

    async def get_pending_changes(self) -> list[ContentHash]:
        """Get all records flagged as changed, newest change first."""
        result = await self.session.execute(
            select(ContentHash)
            .where(ContentHash.is_changed.is_(True))
            .order_by(ContentHash.last_changed.desc())
        )
        return list(result.scalars().all())

    async def mark_processed(self, urls: list[str]) -> int:
        """Clear the changed flag for the given URLs."""
        result = await self.session.execute(
            update(ContentHash)
            .where(ContentHash.url.in_(urls))
            .values(is_changed=False, updated_at=datetime.now(timezone.utc))
        )
        return result.rowcount
