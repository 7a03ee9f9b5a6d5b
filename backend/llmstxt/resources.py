"""Long-lived clients shared by the API process and the worker runtime."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import httpx
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from llmstxt.config import Settings
from llmstxt.database import create_engine, create_session_maker
from llmstxt.services.change_detector import ChangeDetector
from llmstxt.services.llm_client import LLMClient
from llmstxt.services.orchestrator import JobOrchestrator
from llmstxt.services.status import ContentCache, JobStatusStore
from llmstxt.services.storage import ResultStore

logger = logging.getLogger(__name__)


@dataclass
class Resources:
    """Connections opened once per process and injected into services."""

    settings: Settings
    redis: Redis
    engine: AsyncEngine
    session_maker: async_sessionmaker[AsyncSession]
    http_client: httpx.AsyncClient
    llm: LLMClient | None = None

    @property
    def status_store(self) -> JobStatusStore:
        return JobStatusStore(self.redis, ttl=self.settings.job_status_ttl_seconds)

    @property
    def content_cache(self) -> ContentCache:
        return ContentCache(self.redis, ttl=self.settings.content_cache_ttl_seconds)

    def orchestrator(self) -> JobOrchestrator:
        return JobOrchestrator(
            settings=self.settings,
            http_client=self.http_client,
            status_store=self.status_store,
            content_cache=self.content_cache,
            result_store=ResultStore(self.session_maker),
            llm=self.llm,
        )

    def change_detector(self) -> ChangeDetector:
        return ChangeDetector(self.orchestrator(), self.session_maker)


def create_http_client(settings: Settings) -> httpx.AsyncClient:
    """Shared outbound client; per-request timeouts are set by the fetcher."""
    return httpx.AsyncClient(
        follow_redirects=True,
        timeout=settings.request_timeout_seconds,
        headers={"User-Agent": settings.user_agent},
    )


def create_llm_client(settings: Settings) -> LLMClient | None:
    """LLM client for the configured provider, or None if it has no API key."""
    if settings.llm_provider == "openai" and settings.openai_api_key:
        return LLMClient(settings)
    if settings.llm_provider == "anthropic" and settings.anthropic_api_key:
        return LLMClient(settings)
    if settings.enhancement_enabled:
        logger.warning(f"Enhancement enabled but no API key set for {settings.llm_provider}")
    return None


@asynccontextmanager
async def open_resources(settings: Settings) -> AsyncIterator[Resources]:
    """Open every shared connection and close them all on exit."""
    redis = Redis.from_url(settings.redis_url, decode_responses=True)
    engine = create_engine(settings)
    http_client = create_http_client(settings)
    llm = create_llm_client(settings)
    resources = Resources(
        settings=settings,
        redis=redis,
        engine=engine,
        session_maker=create_session_maker(engine),
        http_client=http_client,
        llm=llm,
    )
    logger.info("Shared connections opened")
    try:
        yield resources
    finally:
        await http_client.aclose()
        if llm is not None:
            await llm.close()
        await redis.aclose()
        await engine.dispose()
        logger.info("Shared connections closed")
