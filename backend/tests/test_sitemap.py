import gzip

import pytest

from conftest import sitemap_index_xml, sitemap_xml
from llmstxt.services.fetcher import PageFetcher
from llmstxt.services.sitemap import SitemapParser, parse_robots_sitemaps


@pytest.fixture
def parser(http_client):
    return SitemapParser(PageFetcher(http_client, concurrency=5, timeout=5.0))


def test_parse_robots_sitemaps_scans_every_directive():
    robots = "\n".join([
        "User-agent: *",
        "Disallow: /private",
        "Sitemap: https://example.com/sitemap-main.xml",
        "sitemap: /sitemap-blog.xml",
        "SITEMAP:https://example.com/sitemap-main.xml",
        "Sitemap:",
    ])

    assert parse_robots_sitemaps(robots, "https://example.com/robots.txt") == [
        "https://example.com/sitemap-main.xml",
        "https://example.com/sitemap-blog.xml",
    ]


@pytest.mark.anyio
async def test_get_sitemaps_from_robots(site, parser):
    site.add_robots("https://example.com", ["https://example.com/sitemap.xml"])

    assert await parser.get_sitemaps_from_robots("https://example.com") == [
        "https://example.com/sitemap.xml"
    ]


@pytest.mark.anyio
async def test_missing_robots_returns_empty(parser):
    assert await parser.get_sitemaps_from_robots("https://example.com") == []


@pytest.mark.anyio
async def test_get_urls_from_regular_sitemap(site, parser):
    site.add_sitemap("https://example.com/sitemap.xml", [
        "https://example.com/",
        "https://example.com/docs",
    ])

    assert await parser.get_urls("https://example.com/sitemap.xml") == [
        "https://example.com/",
        "https://example.com/docs",
    ]


@pytest.mark.anyio
async def test_get_urls_follows_sitemap_index(site, parser):
    site.add(
        "https://example.com/sitemap.xml",
        sitemap_index_xml([
            "https://example.com/sitemap-a.xml",
            "https://example.com/sitemap-b.xml",
            "https://example.com/sitemap.xml",
        ]),
        content_type="application/xml",
    )
    site.add_sitemap("https://example.com/sitemap-a.xml", ["https://example.com/a"])
    site.add_sitemap("https://example.com/sitemap-b.xml", ["https://example.com/b"])

    urls = await parser.get_urls("https://example.com/sitemap.xml")

    assert urls == ["https://example.com/a", "https://example.com/b"]
    # The self-reference is not fetched again
    assert site.requests.count("https://example.com/sitemap.xml") == 1


@pytest.mark.anyio
async def test_get_urls_decompresses_gzip(site, parser):
    body = gzip.compress(sitemap_xml(["https://example.com/zipped"]).encode())
    site.add("https://example.com/sitemap.xml.gz", body, content_type="application/gzip")

    assert await parser.get_urls("https://example.com/sitemap.xml.gz") == [
        "https://example.com/zipped"
    ]


@pytest.mark.anyio
async def test_malformed_sitemap_returns_empty(site, parser):
    site.add("https://example.com/sitemap.xml", "<urlset><url><loc>", content_type="application/xml")

    assert await parser.get_urls("https://example.com/sitemap.xml") == []


@pytest.mark.anyio
async def test_missing_sitemap_returns_empty(parser):
    assert await parser.get_urls("https://example.com/sitemap.xml") == []
