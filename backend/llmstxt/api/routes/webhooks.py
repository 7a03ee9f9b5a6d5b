"""Webhook endpoints for change detection."""

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, field_validator

from llmstxt.api.deps import AppResources
from llmstxt.schemas import validate_http_url
from llmstxt.services.change_detector import ChangeCheckError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/webhooks", tags=["webhooks"])


class CheckChangesRequest(BaseModel):
    url: str

    @field_validator("url")
    @classmethod
    def check_url(cls, value: str) -> str:
        return validate_http_url(value)


class MarkProcessedRequest(BaseModel):
    urls: list[str] = []


@router.post("/check-changes")
async def check_changes(
    data: CheckChangesRequest,
    resources: AppResources,
) -> dict[str, Any]:
    """Regenerate llms.txt for a URL and report whether it changed.

    Runs the pipeline in the request, bypassing the cache.
    """
    logger.info(f"Checking {data.url} for changes")
    try:
        result = await resources.change_detector().check(data.url)
    except ChangeCheckError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e),
        )
    return result.to_dict()


@router.get("/pending-changes")
async def pending_changes(resources: AppResources) -> dict[str, Any]:
    """List URLs whose content changed and has not been processed yet."""
    records = await resources.change_detector().pending_changes()
    return {
        "count": len(records),
        "changes": [record.to_dict() for record in records],
    }


@router.post("/mark-processed")
async def mark_processed(
    data: MarkProcessedRequest,
    resources: AppResources,
) -> dict[str, Any]:
    """Clear the changed flag for the given URLs."""
    if not data.urls:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="URLs array is required",
        )
    processed = await resources.change_detector().mark_processed(data.urls)
    return {"success": True, "processed": processed}
