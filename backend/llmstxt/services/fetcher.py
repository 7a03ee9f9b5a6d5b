"""Bounded page fetching and HTML metadata extraction."""

import asyncio
import logging
from dataclasses import dataclass, field
from urllib.parse import urldefrag, urljoin, urlparse

import httpx
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)


@dataclass
class FetchedPage:
    """Metadata and outlinks extracted from one HTML page."""

    url: str
    title: str
    description: str
    links: list[str] = field(default_factory=list)


def extract_title(soup: BeautifulSoup) -> str:
    """Extract page title, falling back to og:title."""
    title_tag = soup.find("title")
    if title_tag:
        title = title_tag.get_text(strip=True)[:512]
        if title:
            return title

    og_title = soup.find("meta", property="og:title")
    if og_title:
        return (og_title.get("content") or "").strip()[:512]

    return ""


def extract_description(soup: BeautifulSoup) -> str:
    """Extract meta description, falling back to og:description."""
    meta_desc = soup.find("meta", attrs={"name": "description"})
    if meta_desc and meta_desc.get("content"):
        return meta_desc["content"].strip()

    og_desc = soup.find("meta", property="og:description")
    if og_desc and og_desc.get("content"):
        return og_desc["content"].strip()

    return ""


def extract_links(soup: BeautifulSoup, base_url: str) -> list[str]:
    """Extract every http(s) anchor target, resolved against ``base_url``.

    Fragments are removed; order of first appearance is kept.
    """
    links: list[str] = []
    for a in soup.find_all("a", href=True):
        href = a["href"].strip()

        # Skip non-HTTP links
        if not href or href.startswith(("mailto:", "tel:", "javascript:", "#")):
            continue

        try:
            abs_url, _ = urldefrag(urljoin(base_url, href))
        except ValueError:
            continue
        if urlparse(abs_url).scheme in ("http", "https"):
            links.append(abs_url)

    return list(dict.fromkeys(links))


class PageFetcher:
    """Issues the outbound requests of one job.

    At most ``concurrency`` requests are in flight at once and each request
    is bounded by ``timeout`` seconds. Failures are logged and reported as
    ``None``; cancellation is never swallowed.
    """

    def __init__(self, client: httpx.AsyncClient, concurrency: int, timeout: float):
        self.client = client
        self.concurrency = concurrency
        self.timeout = timeout
        self._semaphore = asyncio.Semaphore(concurrency)
        self.requests_made = 0

    async def get(self, url: str) -> httpx.Response:
        """GET ``url`` under the concurrency bound, raising on HTTP errors."""
        async with self._semaphore:
            self.requests_made += 1
            response = await self.client.get(url, timeout=self.timeout)
        response.raise_for_status()
        return response

    async def fetch_text(self, url: str) -> str | None:
        """Fetch a text resource (robots.txt), or None on failure."""
        try:
            response = await self.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.info(f"Error fetching {url}: {e}")
            return None
        return response.text

    async def fetch_bytes(self, url: str) -> bytes | None:
        """Fetch a raw resource (sitemap XML), or None on failure."""
        try:
            response = await self.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.info(f"Error fetching {url}: {e}")
            return None
        return response.content

    async def fetch_page(self, url: str) -> FetchedPage | None:
        """Fetch an HTML page and extract its title, description and links.

        The title falls back to the URL when the page has none. Returns None
        when the request fails or the response is not HTML.
        """
        try:
            response = await self.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.info(f"Error fetching page {url}: {e}")
            return None

        content_type = response.headers.get("content-type", "")
        if content_type and "html" not in content_type.lower():
            logger.info(f"Skipping non-HTML page {url} ({content_type})")
            return None

        soup = BeautifulSoup(response.text, "lxml")
        return FetchedPage(
            url=url,
            title=extract_title(soup) or url,
            description=extract_description(soup),
            links=extract_links(soup, str(response.url)),
        )
