"""Optional rewriting of page titles and descriptions through an LLM."""

import logging
from dataclasses import dataclass, field
from typing import Any

from llmstxt.prompts import PAGE_ENHANCEMENT_PROMPT
from llmstxt.schemas import Outcome, PageRecord
from llmstxt.services.llm_client import LLMClient, parse_json

logger = logging.getLogger(__name__)


class EnhancementFormatError(ValueError):
    """The LLM response parsed as JSON but not as a list of page entries."""


@dataclass
class EnhancementResult:
    """Tagged result of an enhancement pass."""

    outcome: Outcome
    pages: list[PageRecord] = field(default_factory=list)
    batches: int = 0
    failed_batches: int = 0


def format_pages_for_prompt(pages: list[PageRecord]) -> str:
    """One block per page: URL, current title and description."""
    return "\n\n".join(
        f"URL: {p.url}\n"
        f"Current Title: {p.title or 'None'}\n"
        f"Description: {p.description or 'None'}"
        for p in pages
    )


def _text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _extract_entries(data: Any) -> list[dict[str, Any]]:
    """Accept a bare JSON array, or an object wrapping one."""
    if isinstance(data, dict):
        data = next((v for v in data.values() if isinstance(v, list)), None)
    if not isinstance(data, list):
        raise EnhancementFormatError("Expected a JSON array of page entries")
    return [item for item in data if isinstance(item, dict)]


def merge_enhancements(batch: list[PageRecord], entries: list[dict[str, Any]]) -> list[PageRecord]:
    """Apply returned entries to the original pages.

    Output has exactly one page per input page, in input order. Pages with no
    matching entry are kept unchanged; missing fields keep their originals.
    """
    by_url = {
        entry["url"]: entry
        for entry in entries
        if isinstance(entry.get("url"), str)
    }

    merged = []
    for page in batch:
        entry = by_url.get(page.url)
        if entry is None:
            merged.append(page)
            continue
        merged.append(PageRecord(
            url=page.url,
            title=_text(entry.get("enhancedTitle")) or page.title,
            description=(
                _text(entry.get("enhancedDescription"))
                or _text(entry.get("description"))
                or page.description
            ),
            category=page.category,
        ))
    return merged


class MetadataEnhancer:
    """Sends pages to the LLM in fixed-size batches.

    A batch that cannot be enhanced (API error, unparseable or wrongly shaped
    response) falls back to its original pages, so enhancement never drops
    or duplicates a page and never fails the job.
    """

    def __init__(self, llm: LLMClient, batch_size: int = 100):
        self.llm = llm
        self.batch_size = batch_size

    async def enhance(self, pages: list[PageRecord]) -> EnhancementResult:
        total_batches = (len(pages) + self.batch_size - 1) // self.batch_size
        enhanced_pages: list[PageRecord] = []
        failed = 0

        for index, start in enumerate(range(0, len(pages), self.batch_size), 1):
            batch = pages[start:start + self.batch_size]
            logger.info(
                f"Sending batch {index} of {total_batches} "
                f"({len(batch)} pages) to LLM for enhancement"
            )
            try:
                enhanced_pages.extend(await self._enhance_batch(batch))
            except Exception as e:
                logger.error(f"Error enhancing batch {index}, keeping original metadata: {e}")
                enhanced_pages.extend(batch)
                failed += 1

        logger.info(f"Enhanced {len(enhanced_pages)} pages, preserving all original URLs")

        if failed == 0:
            outcome = Outcome.SUCCESS
        elif failed < total_batches:
            outcome = Outcome.PARTIAL
        else:
            outcome = Outcome.FAILURE
        return EnhancementResult(
            outcome=outcome,
            pages=enhanced_pages,
            batches=total_batches,
            failed_batches=failed,
        )

    async def _enhance_batch(self, batch: list[PageRecord]) -> list[PageRecord]:
        response = await self.llm.complete(
            PAGE_ENHANCEMENT_PROMPT,
            format_pages_for_prompt(batch),
        )
        logger.debug(f"Raw LLM response: {response[:200]}...")
        entries = _extract_entries(parse_json(response))
        return merge_enhancements(batch, entries)
