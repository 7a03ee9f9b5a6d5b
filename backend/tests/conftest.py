"""Shared fixtures: an in-memory Redis double and a mock website."""

import asyncio
from collections.abc import Callable, Iterable

import httpx
import pytest
from redis.exceptions import WatchError

from llmstxt.config import Settings


@pytest.fixture
def anyio_backend():
    return "asyncio"


class FakePipeline:
    """WATCH/MULTI/EXEC over a ``FakeRedis``; a watched key written by
    anyone else before ``execute`` raises ``WatchError``."""

    def __init__(self, redis: "FakeRedis"):
        self.redis = redis
        self.watched: dict[str, int] = {}
        self.queued: list[tuple[str, str, int | None]] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.reset()

    async def watch(self, *keys: str) -> None:
        for key in keys:
            self.watched[key] = self.redis.versions.get(key, 0)

    async def get(self, key: str) -> str | None:
        value = await self.redis.get(key)
        # Let concurrent writers run between this read and the write
        await asyncio.sleep(0)
        return value

    def multi(self) -> None:
        self.queued = []

    def set(self, key: str, value: str, ex: int | None = None) -> "FakePipeline":
        self.queued.append((key, value, ex))
        return self

    async def execute(self) -> list[bool]:
        try:
            for key, version in self.watched.items():
                if self.redis.versions.get(key, 0) != version:
                    raise WatchError(f"Watched variable changed: {key}")
            return [await self.redis.set(key, value, ex=ex) for key, value, ex in self.queued]
        finally:
            await self.reset()

    async def reset(self) -> None:
        self.watched = {}
        self.queued = []


class FakeRedis:
    """The subset of ``redis.asyncio.Redis`` the services use."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}
        self.versions: dict[str, int] = {}

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self.data[key] = value
        self.ttls[key] = ex
        self.versions[key] = self.versions.get(key, 0) + 1
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
                self.versions[key] = self.versions.get(key, 0) + 1
            self.ttls.pop(key, None)
        return removed

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self)


Route = httpx.Response | Callable[[httpx.Request], httpx.Response]


def html_page(
    title: str = "",
    description: str = "",
    links: Iterable[str] = (),
) -> str:
    head = f"<title>{title}</title>" if title else ""
    if description:
        head += f'<meta name="description" content="{description}">'
    body = "".join(f'<a href="{href}">{href}</a>' for href in links)
    return f"<html><head>{head}</head><body>{body}</body></html>"


def sitemap_xml(urls: Iterable[str]) -> str:
    entries = "".join(f"<url><loc>{url}</loc></url>" for url in urls)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
        f"{entries}</urlset>"
    )


def sitemap_index_xml(urls: Iterable[str]) -> str:
    entries = "".join(f"<sitemap><loc>{url}</loc></sitemap>" for url in urls)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
        f"{entries}</sitemapindex>"
    )


class MockSite:
    """Serves canned responses keyed by URL; anything else is a 404."""

    def __init__(self):
        self.routes: dict[str, Route] = {}
        self.requests: list[str] = []

    def add(
        self,
        url: str,
        content: str | bytes,
        content_type: str = "text/plain",
        status_code: int = 200,
    ) -> None:
        self.routes[url] = httpx.Response(
            status_code,
            content=content,
            headers={"content-type": content_type},
        )

    def add_html(self, url: str, title: str = "", description: str = "", links: Iterable[str] = ()) -> None:
        self.add(url, html_page(title, description, links), content_type="text/html; charset=utf-8")

    def add_robots(self, origin: str, sitemaps: Iterable[str]) -> None:
        lines = ["User-agent: *", "Disallow:"] + [f"Sitemap: {s}" for s in sitemaps]
        self.add(f"{origin}/robots.txt", "\n".join(lines))

    def add_sitemap(self, url: str, urls: Iterable[str]) -> None:
        self.add(url, sitemap_xml(urls), content_type="application/xml")

    def handler(self, request: httpx.Request):
        url = str(request.url)
        self.requests.append(url)
        route = self.routes.get(url)
        if route is None and request.url.path == "/":
            # The site root may be registered with or without its trailing slash
            bare = url.rstrip("/")
            route = self.routes.get(bare) or self.routes.get(f"{bare}/")
        if route is None:
            return httpx.Response(404, text="not found")
        if callable(route):
            return route(request)
        return route

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.MockTransport(self.handler),
            follow_redirects=True,
        )


@pytest.fixture
def site() -> MockSite:
    return MockSite()


@pytest.fixture
async def http_client(site: MockSite):
    async with site.client() as client:
        yield client


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        max_pages=100,
        max_crawl_depth=1,
        request_concurrency=5,
        request_timeout_seconds=5.0,
        job_timeout_seconds=30.0,
        enhancement_enabled=False,
        openai_api_key=None,
        anthropic_api_key=None,
    )
