"""Repository implementations for data access."""

from llmstxt.repositories.postgres import (
    PostgresContentHashRepository,
    PostgresJobRepository,
    PostgresLlmsEntryRepository,
)

__all__ = [
    "PostgresLlmsEntryRepository",
    "PostgresJobRepository",
    "PostgresContentHashRepository",
]
