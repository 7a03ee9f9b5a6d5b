"""Job submission and status routes."""

import logging
from uuid import uuid4

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from llmstxt.api.deps import AppResources, AppSettings
from llmstxt.resources import Resources
from llmstxt.schemas import JobData, JobMessage, JobOptions, JobStatus, validate_http_url
from llmstxt.workers.tasks import generate_llms_txt

logger = logging.getLogger(__name__)
router = APIRouter()


class GenerateRequest(BaseModel):
    """Request to generate llms.txt for one URL."""

    url: str
    priority: int = 1
    source: str = "api"
    options: JobOptions | None = None

    @field_validator("url")
    @classmethod
    def check_url(cls, value: str) -> str:
        return validate_http_url(value)


class BulkGenerateRequest(BaseModel):
    """Request to generate llms.txt for many URLs under one batch."""

    urls: list[str] = Field(default_factory=list)
    priority: int = 1
    source: str = "api"
    options: JobOptions | None = None


class GenerateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str
    job_id: str = Field(alias="jobId")


class QueuedJob(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(alias="jobId")
    url: str


class BulkGenerateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str
    count: int
    batch_id: str = Field(alias="batchId")
    jobs: list[QueuedJob]


async def queue_job(resources: Resources, message: JobMessage) -> None:
    """Record the job as pending, then hand it to the worker queue."""
    await resources.status_store.update(
        message.job_id,
        JobStatus.PENDING,
        url=message.url,
        batch_id=message.batch_id,
    )
    generate_llms_txt.delay(message.model_dump(mode="json", by_alias=True, exclude_none=True))
    logger.info(f"Queued job {message.job_id} for {message.url}")


@router.post("/generate", response_model=GenerateResponse)
async def generate(
    data: GenerateRequest,
    resources: AppResources,
) -> GenerateResponse:
    """Queue generation of llms.txt for a single URL."""
    message = JobMessage(
        url=data.url,
        job_id=str(uuid4()),
        priority=data.priority,
        source=data.source,
        options=data.options,
    )
    await queue_job(resources, message)
    return GenerateResponse(status="Job queued successfully", job_id=message.job_id)


@router.post("/generate/bulk", response_model=BulkGenerateResponse)
async def generate_bulk(
    data: BulkGenerateRequest,
    resources: AppResources,
    settings: AppSettings,
) -> BulkGenerateResponse:
    """Queue one job per URL, capped at the configured bulk limit."""
    if not data.urls:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No URLs provided",
        )

    batch_id = str(uuid4())
    try:
        messages = [
            JobMessage(
                url=url,
                job_id=str(uuid4()),
                batch_id=batch_id,
                priority=data.priority,
                source=data.source,
                options=data.options,
            )
            for url in data.urls[:settings.max_bulk_urls]
        ]
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid URL in request: {e.errors()[0]['msg']}",
        )

    for message in messages:
        await queue_job(resources, message)

    return BulkGenerateResponse(
        status="Bulk jobs queued successfully",
        count=len(messages),
        batch_id=batch_id,
        jobs=[QueuedJob(job_id=m.job_id, url=m.url) for m in messages],
    )


@router.get(
    "/status/{job_id}",
    response_model=JobData,
    response_model_exclude_none=True,
)
async def get_status(
    job_id: str,
    resources: AppResources,
) -> JobData:
    """Get the current status projection of a job."""
    job = await resources.status_store.get(job_id)
    if not job:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Job not found",
        )
    return job
