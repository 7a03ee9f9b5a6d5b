"""Shared data shapes: queue payloads, job status projection and page records."""

import time
from dataclasses import dataclass, field
from enum import Enum
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator


class JobStatus(str, Enum):
    """Lifecycle states of a generation job."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)

    @property
    def rank(self) -> int:
        """Position in the monotone order pending < processing < terminal."""
        if self is JobStatus.PENDING:
            return 0
        if self is JobStatus.PROCESSING:
            return 1
        return 2


class Outcome(str, Enum):
    """Tag attached to the result of each best-effort pipeline phase."""

    SUCCESS = "success"
    PARTIAL = "partial"
    FAILURE = "failure"


@dataclass
class PageRecord:
    """A single page of the target site.

    Created by discovery with empty metadata, filled in by enrichment and
    optionally rewritten by enhancement. ``category`` is assigned by the formatter.
    """

    url: str
    title: str = ""
    description: str = ""
    category: str | None = None

    @property
    def has_metadata(self) -> bool:
        return bool(self.title)


@dataclass(frozen=True)
class GenerationOptions:
    """Immutable per-job options that affect the pipeline."""

    include_paths: tuple[str, ...] = ()
    exclude_paths: tuple[str, ...] = ()
    force: bool = False
    enhance: bool = False


def validate_http_url(value: str) -> str:
    """Normalize and check an absolute http(s) URL."""
    value = value.strip()
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https"):
        raise ValueError("URL must use http:// or https://")
    if not parsed.netloc:
        raise ValueError("URL must include a domain name")
    return value


class JobOptions(BaseModel):
    """Options bag accepted on the wire.

    Only ``includePath``, ``excludePath``, ``force`` and ``enhance`` change
    pipeline behaviour; the remaining fields are accepted for compatibility.
    Unknown keys are ignored.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    depth: int | None = None
    include_metadata: bool | None = Field(default=None, alias="includeMetadata")
    format: str | None = None
    include_path: list[str] = Field(default_factory=list, alias="includePath")
    exclude_path: list[str] = Field(default_factory=list, alias="excludePath")
    force: bool = False
    enhance: bool | None = None

    def to_generation_options(self, default_enhance: bool = False) -> GenerationOptions:
        """Freeze into the options used by the pipeline."""
        return GenerationOptions(
            include_paths=tuple(self.include_path),
            exclude_paths=tuple(self.exclude_path),
            force=self.force,
            enhance=default_enhance if self.enhance is None else self.enhance,
        )


class JobMessage(BaseModel):
    """Job payload delivered by the queue."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    url: str
    job_id: str = Field(alias="jobId", min_length=1)
    batch_id: str | None = Field(default=None, alias="batchId")
    priority: int = 1
    source: str = "api"
    timestamp: int = Field(default_factory=lambda: int(time.time() * 1000))
    options: JobOptions = Field(default_factory=JobOptions)

    @field_validator("url")
    @classmethod
    def check_url(cls, value: str) -> str:
        return validate_http_url(value)

    @field_validator("options", mode="before")
    @classmethod
    def default_options(cls, value):
        return {} if value is None else value


class JobData(BaseModel):
    """Projection of a job stored under ``job:<jobId>``."""

    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(alias="jobId")
    status: JobStatus
    url: str | None = None
    batch_id: str | None = Field(default=None, alias="batchId")
    content: str | None = None
    count: int | None = None
    error: str | None = None
    warning: str | None = None
    from_cache: bool | None = Field(default=None, alias="fromCache")
    updated_at: int = Field(default_factory=lambda: int(time.time() * 1000), alias="updatedAt")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


@dataclass
class GenerationResult:
    """What a finished pipeline run produced."""

    content: str
    pages: list[PageRecord] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.pages)
