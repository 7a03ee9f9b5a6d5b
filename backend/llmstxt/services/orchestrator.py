"""Per-job orchestration of the llms.txt generation pipeline.

A job runs: status PROCESSING -> cache check -> sitemap discovery -> crawl
fallback -> enrichment -> optional enhancement -> site info -> render ->
persist -> status COMPLETED. Any exception, including the global timeout,
ends the job FAILED.
"""

import asyncio
import logging

import httpx

from llmstxt.config import Settings
from llmstxt.schemas import (
    GenerationOptions,
    GenerationResult,
    JobData,
    JobMessage,
    JobStatus,
    Outcome,
)
from llmstxt.services.discovery import DiscoveryService, get_origin
from llmstxt.services.enhancer import MetadataEnhancer
from llmstxt.services.enricher import MetadataEnricher, has_usable_title
from llmstxt.services.fetcher import PageFetcher
from llmstxt.services.formatter import format_llms_txt
from llmstxt.services.llm_client import LLMClient
from llmstxt.services.status import ContentCache, InvalidStatusTransition, JobStatusStore
from llmstxt.services.storage import ResultStore
from llmstxt.services.url_filter import create_url_filter

logger = logging.getLogger(__name__)

ZERO_PAGES_WARNING = "Job completed but no valid pages were found after processing and filtering"


class JobTimeoutError(Exception):
    """The pipeline did not finish within the job timeout."""

    def __init__(self, job_id: str, timeout: float):
        super().__init__(f"Job {job_id} timed out after {timeout:g}s")
        self.job_id = job_id
        self.timeout = timeout


class JobOrchestrator:
    """Runs generation jobs against injected clients and stores."""

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        status_store: JobStatusStore,
        content_cache: ContentCache,
        result_store: ResultStore,
        llm: LLMClient | None = None,
    ):
        self.settings = settings
        self.http_client = http_client
        self.status_store = status_store
        self.content_cache = content_cache
        self.result_store = result_store
        self.llm = llm

    async def run(self, message: JobMessage) -> JobData | None:
        """Run one queued job under the global timeout.

        On timeout the pipeline task is cancelled, which cancels its in-flight
        requests, and the job is marked FAILED.
        """
        options = message.options.to_generation_options(self.settings.enhancement_enabled)
        timeout = self.settings.job_timeout_seconds
        try:
            return await asyncio.wait_for(
                self.generate(message.url, message.job_id, options),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            error = JobTimeoutError(message.job_id, timeout)
            logger.error(str(error))
            return await self._fail(message.job_id, message.url, str(error))

    async def generate(
        self,
        url: str,
        job_id: str,
        options: GenerationOptions,
    ) -> JobData | None:
        """Generate llms.txt for ``url`` and drive the job's status."""
        try:
            current = await self.status_store.get(job_id)
            if current is not None and current.status.is_terminal:
                logger.info(f"Job {job_id} already {current.status.value}, ignoring redelivery")
                return current

            await self.status_store.update(job_id, JobStatus.PROCESSING, url=url)

            # Check cache first
            if not options.force:
                cached = await self.content_cache.get(url)
                if cached is not None:
                    logger.info(f"Job {job_id} served from cache for {url}")
                    return await self.status_store.update(
                        job_id,
                        JobStatus.COMPLETED,
                        content=cached,
                        from_cache=True,
                    )

            result = await self.run_pipeline(url, options)

            # Persist to database and cache, even when empty
            await self.result_store.save_entry(url, result.content)
            await self.content_cache.set(url, result.content)
            await self._record_job(job_id, url, JobStatus.COMPLETED)

            if result.count > 0:
                logger.info(f"Job {job_id} completed successfully with {result.count} pages")
                return await self.status_store.update(
                    job_id,
                    JobStatus.COMPLETED,
                    content=result.content,
                    count=result.count,
                    from_cache=False,
                )

            logger.warning(f"Job {job_id}: {ZERO_PAGES_WARNING}")
            return await self.status_store.update(
                job_id,
                JobStatus.COMPLETED,
                content=result.content,
                count=0,
                warning=ZERO_PAGES_WARNING,
                from_cache=False,
            )

        except Exception as e:
            logger.exception(f"Job {job_id} failed: {e}")
            return await self._fail(job_id, url, str(e) or type(e).__name__)

    async def run_pipeline(self, url: str, options: GenerationOptions) -> GenerationResult:
        """Discover, enrich, enhance and render pages for ``url``."""
        base_url = get_origin(url)
        url_filter = create_url_filter(
            options.include_paths,
            options.exclude_paths,
            self.settings.standard_exclude_paths,
        )
        # One fetcher per job: its semaphore is the job's request bound
        fetcher = PageFetcher(
            self.http_client,
            concurrency=self.settings.request_concurrency,
            timeout=self.settings.request_timeout_seconds,
        )
        discovery = DiscoveryService(
            fetcher,
            url_filter,
            max_pages=self.settings.max_pages,
            max_depth=self.settings.max_crawl_depth,
        )

        # Try sitemap-first approach
        found = await discovery.discover_from_sitemaps(base_url)
        if found.outcome is Outcome.FAILURE:
            logger.info("No pages found via sitemap, falling back to crawling")
            found = await discovery.crawl(url)
            logger.info(f"Found {len(found.pages)} URLs via crawling")

        enriched = await MetadataEnricher(fetcher).enrich(found.pages)
        pages = enriched.pages
        if enriched.outcome is not Outcome.SUCCESS:
            logger.warning(f"Could not fetch metadata for {enriched.failed} pages, using URLs as titles")

        if options.enhance and pages:
            if self.llm is None:
                logger.warning("Enhancement requested but no LLM client is configured")
            else:
                enhanced = await MetadataEnhancer(
                    self.llm,
                    batch_size=self.settings.enhancement_batch_size,
                ).enhance(pages)
                pages = enhanced.pages
                if enhanced.outcome is not Outcome.SUCCESS:
                    logger.warning(
                        f"{enhanced.failed_batches}/{enhanced.batches} enhancement batches "
                        f"fell back to original metadata"
                    )

        site_title, site_description = await self.fetch_site_info(fetcher, base_url)

        pages = [p for p in pages if has_usable_title(p)]
        content = format_llms_txt(site_title, site_description, pages)
        return GenerationResult(content=content, pages=pages)

    async def fetch_site_info(self, fetcher: PageFetcher, base_url: str) -> tuple[str, str]:
        """Site title and description from the origin page, best effort."""
        page = await fetcher.fetch_page(base_url)
        if page is None:
            logger.info(f"Couldn't fetch base page, using {base_url} as title")
            return base_url, ""
        return page.title, page.description

    async def _fail(self, job_id: str, url: str, error: str) -> JobData | None:
        # Status first: the projection is what callers poll
        try:
            job = await self.status_store.update(job_id, JobStatus.FAILED, error=error)
        except InvalidStatusTransition as e:
            logger.warning(str(e))
            job = await self.status_store.get(job_id)
        await self._record_job(job_id, url, JobStatus.FAILED, error)
        return job

    async def _record_job(
        self,
        job_id: str,
        url: str,
        status: JobStatus,
        error: str | None = None,
    ) -> None:
        try:
            await self.result_store.save_job(job_id, url, status, error)
        except Exception as e:
            # Audit record only; the status projection is authoritative
            logger.error(f"Failed to update job {job_id} in database: {e}")
