from unittest.mock import AsyncMock

import pytest
from sqlalchemy.dialects import postgresql

from llmstxt.repositories import PostgresJobRepository, PostgresLlmsEntryRepository


def executed_sql(session) -> str:
    stmt = session.execute.await_args.args[0]
    return str(stmt.compile(dialect=postgresql.dialect()))


@pytest.mark.anyio
async def test_entry_upsert_is_one_conflict_safe_statement():
    session = AsyncMock()

    await PostgresLlmsEntryRepository(session).upsert("https://example.com", "# Site\n", "abc")

    session.execute.assert_awaited_once()
    sql = executed_sql(session)
    assert sql.startswith("INSERT INTO llms_entries")
    assert "ON CONFLICT (url) DO UPDATE SET" in sql
    updated = sql.split("DO UPDATE SET", 1)[1]
    assert "content = excluded.content" in updated
    assert "content_hash = excluded.content_hash" in updated
    # The first insert keeps its id and creation time
    assert "created_at" not in updated
    assert " id = " not in updated


@pytest.mark.anyio
async def test_job_upsert_is_one_conflict_safe_statement():
    session = AsyncMock()

    await PostgresJobRepository(session).upsert("job-1", "https://example.com", "failed", "boom")

    session.execute.assert_awaited_once()
    sql = executed_sql(session)
    assert sql.startswith("INSERT INTO jobs")
    assert "ON CONFLICT (id) DO UPDATE SET" in sql
    updated = sql.split("DO UPDATE SET", 1)[1]
    assert "status = excluded.status" in updated
    assert "error = excluded.error" in updated
    assert "created_at" not in updated
