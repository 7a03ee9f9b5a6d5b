"""SQLAlchemy models."""

from llmstxt.models.content_hash import ContentHash
from llmstxt.models.job import Job
from llmstxt.models.llms_entry import LlmsEntry

__all__ = [
    "LlmsEntry",
    "Job",
    "ContentHash",
]
