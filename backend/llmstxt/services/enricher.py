"""Fill in missing page titles and descriptions by fetching each page."""

import asyncio
import logging
from dataclasses import dataclass, field

from llmstxt.schemas import Outcome, PageRecord
from llmstxt.services.fetcher import PageFetcher

logger = logging.getLogger(__name__)

# Titles carrying no usable signal
DEGENERATE_TITLES = {"", "[]"}


def has_usable_title(page: PageRecord) -> bool:
    return page.title.strip() not in DEGENERATE_TITLES


@dataclass
class EnrichmentResult:
    """Tagged result of an enrichment pass."""

    outcome: Outcome
    pages: list[PageRecord] = field(default_factory=list)
    fetched: int = 0
    failed: int = 0
    dropped: int = 0


class MetadataEnricher:
    """Fetches metadata for pages that discovery left empty."""

    def __init__(self, fetcher: PageFetcher):
        self.fetcher = fetcher

    async def enrich(self, pages: list[PageRecord]) -> EnrichmentResult:
        """Populate title/description for every page lacking a title.

        Pages that already carry metadata (the crawl path) are left as they
        are. A failed fetch sets the title to the page URL. Pages left with a
        degenerate title are dropped.
        """
        missing = [p for p in pages if not p.has_metadata]
        if not missing:
            return EnrichmentResult(outcome=Outcome.SUCCESS, pages=list(pages))

        logger.info(
            f"Enriching page metadata for {len(missing)} pages "
            f"(limited to {self.fetcher.concurrency} concurrent requests)"
        )
        outcomes = await asyncio.gather(*(self._enrich_page(p) for p in missing))
        failed = outcomes.count(False)

        kept = [p for p in pages if has_usable_title(p)]
        dropped = len(pages) - len(kept)
        logger.info(
            f"Enriched {len(missing) - failed}/{len(missing)} pages, "
            f"dropped {dropped} without a usable title"
        )

        if failed == 0:
            outcome = Outcome.SUCCESS
        elif failed < len(missing):
            outcome = Outcome.PARTIAL
        else:
            outcome = Outcome.FAILURE
        return EnrichmentResult(
            outcome=outcome,
            pages=kept,
            fetched=len(missing) - failed,
            failed=failed,
            dropped=dropped,
        )

    async def _enrich_page(self, page: PageRecord) -> bool:
        fetched = await self.fetcher.fetch_page(page.url)
        if fetched is None:
            # If we can't enrich, just use the URL as title
            page.title = page.url
            return False
        page.title = fetched.title
        page.description = fetched.description
        return True
