"""Sitemap discovery and parsing service."""

import gzip
import logging
from urllib.parse import urljoin
from xml.etree import ElementTree

from llmstxt.services.fetcher import PageFetcher

logger = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"


class SitemapParser:
    """Service for reading robots.txt sitemap directives and sitemap.xml files."""

    # Upper bound on documents fetched while following sitemap indexes
    MAX_SITEMAPS = 50

    def __init__(self, fetcher: PageFetcher):
        self.fetcher = fetcher

    async def get_sitemaps_from_robots(self, base_url: str) -> list[str]:
        """Get every ``Sitemap:`` directive declared in the site's robots.txt.

        Returns:
            Sitemap URLs in declaration order (empty if robots.txt is unavailable).
        """
        robots_url = urljoin(base_url, "/robots.txt")
        logger.info(f"Checking robots.txt at {robots_url}")

        robots_txt = await self.fetcher.fetch_text(robots_url)
        if not robots_txt:
            return []

        sitemaps = parse_robots_sitemaps(robots_txt, robots_url)
        logger.info(f"Found {len(sitemaps)} sitemaps in robots.txt: {', '.join(sitemaps)}")
        return sitemaps

    async def get_urls(self, sitemap_url: str) -> list[str]:
        """Get all page URLs from a sitemap.

        Handles both regular sitemaps and sitemap indexes.

        Returns:
            List of URLs found in the sitemap (empty on any failure).
        """
        return await self._fetch_sitemap(sitemap_url, seen=set())

    async def _fetch_sitemap(self, url: str, seen: set[str]) -> list[str]:
        """Fetch and parse a sitemap, returning URLs."""
        if url in seen or len(seen) >= self.MAX_SITEMAPS:
            return []
        seen.add(url)

        content = await self.fetcher.fetch_bytes(url)
        if not content:
            return []

        if content.startswith(GZIP_MAGIC):
            try:
                content = gzip.decompress(content)
            except OSError as e:
                logger.info(f"Could not decompress sitemap {url}: {e}")
                return []

        try:
            root = ElementTree.fromstring(content)
        except ElementTree.ParseError as e:
            logger.info(f"Could not parse sitemap {url}: {e}")
            return []

        # Check if this is a sitemap index
        if root.tag.endswith("sitemapindex"):
            urls = []
            for loc in root.findall(".//{*}sitemap/{*}loc"):
                if loc.text and loc.text.strip():
                    urls.extend(await self._fetch_sitemap(loc.text.strip(), seen))
            return urls

        # Regular sitemap
        return [
            loc.text.strip()
            for loc in root.findall(".//{*}url/{*}loc")
            if loc.text and loc.text.strip()
        ]


def parse_robots_sitemaps(robots_txt: str, robots_url: str) -> list[str]:
    """Extract ``Sitemap:`` directive values from robots.txt content."""
    sitemaps: list[str] = []
    for line in robots_txt.splitlines():
        line = line.strip()
        if not line.lower().startswith("sitemap:"):
            continue
        value = line.split(":", 1)[1].strip()
        if value:
            sitemap_url = urljoin(robots_url, value)
            if sitemap_url not in sitemaps:
                sitemaps.append(sitemap_url)
    return sitemaps
