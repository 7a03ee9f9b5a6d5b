import pytest

from llmstxt.schemas import Outcome
from llmstxt.services.discovery import DiscoveryService, get_origin
from llmstxt.services.fetcher import PageFetcher
from llmstxt.services.url_filter import create_url_filter

ORIGIN = "https://example.com"


def make_discovery(http_client, max_pages=100, max_depth=1, include_paths=(), concurrency=5):
    fetcher = PageFetcher(http_client, concurrency=concurrency, timeout=5.0)
    return DiscoveryService(
        fetcher,
        create_url_filter(include_paths=include_paths),
        max_pages=max_pages,
        max_depth=max_depth,
    )


def test_get_origin_keeps_port():
    assert get_origin("http://localhost:8000/docs/a?b=1") == "http://localhost:8000"


@pytest.mark.anyio
async def test_robots_declared_sitemap_is_preferred(site, http_client):
    site.add_robots(ORIGIN, [f"{ORIGIN}/sitemap-pages.xml"])
    site.add_sitemap(f"{ORIGIN}/sitemap-pages.xml", [f"{ORIGIN}/a", f"{ORIGIN}/b"])
    site.add_sitemap(f"{ORIGIN}/sitemap.xml", [f"{ORIGIN}/never"])

    result = await make_discovery(http_client).discover_from_sitemaps(ORIGIN)

    assert result.outcome is Outcome.SUCCESS
    assert result.source == "robots_sitemap"
    assert [p.url for p in result.pages] == [f"{ORIGIN}/a", f"{ORIGIN}/b"]
    assert all(p.title == "" for p in result.pages)
    assert f"{ORIGIN}/sitemap.xml" not in site.requests


@pytest.mark.anyio
async def test_empty_declared_sitemap_falls_through_to_next(site, http_client):
    site.add_robots(ORIGIN, [f"{ORIGIN}/broken.xml", f"{ORIGIN}/good.xml"])
    site.add_sitemap(f"{ORIGIN}/good.xml", [f"{ORIGIN}/a"])

    result = await make_discovery(http_client).discover_from_sitemaps(ORIGIN)

    assert result.source == "robots_sitemap"
    assert [p.url for p in result.pages] == [f"{ORIGIN}/a"]


@pytest.mark.anyio
async def test_conventional_sitemap_on_https_origin(site, http_client):
    site.add_sitemap(f"{ORIGIN}/sitemap.xml", [f"{ORIGIN}/a"])

    result = await make_discovery(http_client).discover_from_sitemaps("http://example.com")

    assert result.source == "sitemap"
    assert [p.url for p in result.pages] == [f"{ORIGIN}/a"]


@pytest.mark.anyio
async def test_no_sitemap_is_failure(http_client):
    result = await make_discovery(http_client).discover_from_sitemaps(ORIGIN)

    assert result.outcome is Outcome.FAILURE
    assert result.pages == []


@pytest.mark.anyio
async def test_sitemap_pages_are_filtered_deduplicated_and_capped(site, http_client):
    urls = [f"{ORIGIN}/docs/{i}" for i in range(150)]
    urls += [f"{ORIGIN}/docs/0", f"{ORIGIN}/blog/x", f"{ORIGIN}/login"]
    site.add_sitemap(f"{ORIGIN}/sitemap.xml", urls)

    discovery = make_discovery(http_client, max_pages=100, include_paths=["/docs/*"])
    result = await discovery.discover_from_sitemaps(ORIGIN)

    assert len(result.pages) == 100
    assert result.total_found == 153
    assert len({p.url for p in result.pages}) == 100
    assert all("/docs/" in p.url for p in result.pages)


@pytest.mark.anyio
async def test_crawl_follows_same_origin_links_to_max_depth(site, http_client):
    site.add_html(
        f"{ORIGIN}/",
        title="Home",
        links=["/a", "/b#section", "https://other.com/x", "mailto:hi@example.com"],
    )
    site.add_html(f"{ORIGIN}/a", title="A", description="Page A", links=["/a/deeper"])
    site.add_html(f"{ORIGIN}/b", title="B")
    site.add_html(f"{ORIGIN}/a/deeper", title="Deeper")

    result = await make_discovery(http_client, max_depth=1).crawl(f"{ORIGIN}/")

    assert result.outcome is Outcome.SUCCESS
    assert result.source == "crawl"
    assert [(p.url, p.title) for p in result.pages] == [
        (f"{ORIGIN}/", "Home"),
        (f"{ORIGIN}/a", "A"),
        (f"{ORIGIN}/b", "B"),
    ]
    assert result.pages[1].description == "Page A"
    assert not any("other.com" in url for url in site.requests)
    assert f"{ORIGIN}/a/deeper" not in site.requests


@pytest.mark.anyio
async def test_crawl_never_revisits_a_url(site, http_client):
    site.add_html(f"{ORIGIN}/", title="Home", links=["/a", "/b", "/"])
    site.add_html(f"{ORIGIN}/a", title="A", links=["/", "/b"])
    site.add_html(f"{ORIGIN}/b", title="B", links=["/a", "/"])

    result = await make_discovery(http_client, max_depth=3).crawl(f"{ORIGIN}/")

    assert len(result.pages) == 3
    assert len(site.requests) == len(set(site.requests)) == 3


@pytest.mark.anyio
async def test_crawl_stops_exactly_at_page_cap(site, http_client):
    links = [f"/p{i}" for i in range(10)]
    site.add_html(f"{ORIGIN}/", title="Home", links=links)
    for link in links:
        site.add_html(f"{ORIGIN}{link}", title=link)

    result = await make_discovery(http_client, max_pages=3).crawl(f"{ORIGIN}/")

    assert len(result.pages) == 3
    assert len(site.requests) == 3


@pytest.mark.anyio
async def test_crawl_applies_filter_to_outlinks(site, http_client):
    site.add_html(f"{ORIGIN}/", title="Home", links=["/docs/a", "/blog/b", "/login"])
    site.add_html(f"{ORIGIN}/docs/a", title="Docs A")
    site.add_html(f"{ORIGIN}/blog/b", title="Blog B")

    discovery = make_discovery(http_client, include_paths=["/docs/*"])
    result = await discovery.crawl(f"{ORIGIN}/")

    assert [p.url for p in result.pages] == [f"{ORIGIN}/", f"{ORIGIN}/docs/a"]
    assert f"{ORIGIN}/login" not in site.requests


@pytest.mark.anyio
async def test_crawl_failure_of_one_page_is_partial(site, http_client):
    site.add_html(f"{ORIGIN}/", title="Home", links=["/ok", "/missing"])
    site.add_html(f"{ORIGIN}/ok", title="OK")

    result = await make_discovery(http_client).crawl(f"{ORIGIN}/")

    assert result.outcome is Outcome.PARTIAL
    assert result.failed_fetches == 1
    assert [p.url for p in result.pages] == [f"{ORIGIN}/", f"{ORIGIN}/ok"]


@pytest.mark.anyio
async def test_crawl_with_unreachable_start_is_failure(http_client):
    result = await make_discovery(http_client).crawl(f"{ORIGIN}/")

    assert result.outcome is Outcome.FAILURE
    assert result.pages == []
