"""Page discovery: sitemap-first with a breadth-first crawl fallback."""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from urllib.parse import urldefrag, urlparse

from llmstxt.schemas import Outcome, PageRecord
from llmstxt.services.fetcher import PageFetcher
from llmstxt.services.sitemap import SitemapParser
from llmstxt.services.url_filter import UrlFilter

logger = logging.getLogger(__name__)


def get_origin(url: str) -> str:
    """Return ``scheme://host[:port]`` for ``url``."""
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


@dataclass
class DiscoveryResult:
    """Tagged result of a discovery attempt."""

    outcome: Outcome
    source: str  # robots_sitemap, sitemap, crawl
    pages: list[PageRecord] = field(default_factory=list)
    total_found: int = 0
    failed_fetches: int = 0


class DiscoveryService:
    """Finds candidate pages for a target site.

    All requests go through the job's ``PageFetcher``, so discovery shares the
    job's request concurrency bound.
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        url_filter: UrlFilter,
        max_pages: int,
        max_depth: int,
    ):
        self.fetcher = fetcher
        self.url_filter = url_filter
        self.max_pages = max_pages
        self.max_depth = max_depth
        self.sitemaps = SitemapParser(fetcher)

    async def fetch_sitemap_urls(self, base_url: str) -> tuple[list[str], str]:
        """Collect page URLs from the first sitemap that yields any.

        Tries every sitemap declared in robots.txt, then the conventional
        ``/sitemap.xml`` on the HTTPS form of the origin.

        Returns:
            Tuple of (urls, source); urls is empty when no sitemap worked.
        """
        declared = await self.sitemaps.get_sitemaps_from_robots(base_url)
        for sitemap_url in declared:
            logger.info(f"Trying sitemap from robots.txt: {sitemap_url}")
            urls = await self.sitemaps.get_urls(sitemap_url)
            if urls:
                logger.info(f"Found {len(urls)} URLs from robots.txt sitemap: {sitemap_url}")
                return urls, "robots_sitemap"

        logger.info("No valid sitemaps found in robots.txt, trying standard location")
        secure_origin = f"https://{urlparse(base_url).netloc}"
        sitemap_url = f"{secure_origin}/sitemap.xml"
        if sitemap_url in declared:
            return [], "sitemap"
        return await self.sitemaps.get_urls(sitemap_url), "sitemap"

    async def discover_from_sitemaps(self, base_url: str) -> DiscoveryResult:
        """Build the page set from sitemaps, filtered and capped at ``max_pages``.

        Pages are returned with empty titles; enrichment fills them in.
        """
        urls, source = await self.fetch_sitemap_urls(base_url)
        pages = self._select(urls)
        logger.info(
            f"Found {len(urls)} total URLs via sitemap, "
            f"using {len(pages)} after filtering and limiting"
        )
        return DiscoveryResult(
            outcome=Outcome.SUCCESS if pages else Outcome.FAILURE,
            source=source,
            pages=pages,
            total_found=len(urls),
        )

    def _select(self, urls: list[str]) -> list[PageRecord]:
        """Deduplicate, filter and cap sitemap URLs."""
        seen: set[str] = set()
        pages: list[PageRecord] = []
        for url in urls:
            if len(pages) >= self.max_pages:
                break
            if url in seen:
                continue
            seen.add(url)
            if self.url_filter(url):
                pages.append(PageRecord(url=url))
        return pages

    async def crawl(self, start_url: str) -> DiscoveryResult:
        """Breadth-first crawl of same-origin links starting at ``start_url``.

        Pages are fetched in waves of up to the fetcher's concurrency, taken
        from the front of the FIFO queue. Metadata is recorded as pages are
        fetched so no separate enrichment pass is needed. A failed fetch
        yields no outlinks and does not stop the crawl.
        """
        origin = get_origin(start_url)
        start, _ = urldefrag(start_url)
        queue: deque[tuple[str, int]] = deque([(start, 0)])
        seen: set[str] = set()
        pages: list[PageRecord] = []
        failed = 0

        while queue and len(pages) < self.max_pages:
            slots = min(self.fetcher.concurrency, self.max_pages - len(pages))
            batch: list[tuple[str, int]] = []
            while queue and len(batch) < slots:
                url, depth = queue.popleft()
                if url in seen or depth > self.max_depth:
                    continue
                seen.add(url)
                batch.append((url, depth))

            if not batch:
                break

            fetched = await asyncio.gather(
                *(self.fetcher.fetch_page(url) for url, _ in batch)
            )

            for (url, depth), page in zip(batch, fetched):
                if page is None:
                    failed += 1
                    continue

                pages.append(PageRecord(url=url, title=page.title, description=page.description))

                # Children would exceed the depth limit
                if depth >= self.max_depth:
                    continue

                for link in page.links:
                    if link in seen or get_origin(link) != origin:
                        continue
                    if self.url_filter(link):
                        queue.append((link, depth + 1))

        logger.info(f"Crawl visited {len(seen)} URLs, found {len(pages)} pages ({failed} failed)")

        if not pages:
            outcome = Outcome.FAILURE
        elif failed:
            outcome = Outcome.PARTIAL
        else:
            outcome = Outcome.SUCCESS
        return DiscoveryResult(
            outcome=outcome,
            source="crawl",
            pages=pages,
            total_found=len(pages),
            failed_fetches=failed,
        )
