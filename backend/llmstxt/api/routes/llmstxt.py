"""llms.txt retrieval routes."""

from fastapi import APIRouter, HTTPException, Query, status
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from llmstxt.api.deps import DbSession
from llmstxt.repositories import PostgresLlmsEntryRepository

router = APIRouter()


class LlmsTxtResponse(BaseModel):
    """llms.txt content response."""

    url: str
    content: str
    content_hash: str
    updated_at: str


@router.get("/llmstxt", response_model=LlmsTxtResponse)
async def get_llmstxt(
    db: DbSession,
    url: str = Query(..., description="Target site URL"),
) -> LlmsTxtResponse:
    """Get the latest generated llms.txt for a URL."""
    entry = await PostgresLlmsEntryRepository(db).get_by_url(url)
    if not entry:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="llms.txt not yet generated for this URL",
        )

    return LlmsTxtResponse(
        url=entry.url,
        content=entry.content,
        content_hash=entry.content_hash,
        updated_at=entry.updated_at.isoformat(),
    )


@router.get("/llmstxt/download")
async def download_llmstxt(
    db: DbSession,
    url: str = Query(..., description="Target site URL"),
) -> PlainTextResponse:
    """Download the llms.txt file."""
    entry = await PostgresLlmsEntryRepository(db).get_by_url(url)
    if not entry:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="llms.txt not yet generated",
        )

    return PlainTextResponse(
        content=entry.content,
        media_type="text/plain",
        headers={
            "Content-Disposition": 'attachment; filename="llms.txt"',
        },
    )
