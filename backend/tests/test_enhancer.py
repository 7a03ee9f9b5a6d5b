import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from llmstxt.schemas import Outcome, PageRecord
from llmstxt.services.enhancer import (
    MetadataEnhancer,
    format_pages_for_prompt,
    merge_enhancements,
)
from llmstxt.services.llm_client import parse_json


def make_pages(count: int) -> list[PageRecord]:
    return [
        PageRecord(url=f"https://example.com/p{i}", title=f"Page {i}", description=f"Desc {i}")
        for i in range(count)
    ]


def enhanced_response(pages: list[PageRecord]) -> str:
    return json.dumps([
        {
            "url": p.url,
            "enhancedTitle": f"Better {p.title}",
            "enhancedDescription": f"Better {p.description}",
        }
        for p in pages
    ])


def make_llm(*responses) -> MagicMock:
    llm = MagicMock()
    llm.complete = AsyncMock(side_effect=list(responses))
    return llm


def test_parse_json_strips_code_fences():
    assert parse_json('```json\n[{"url": "a"}]\n```') == [{"url": "a"}]
    assert parse_json('[1, 2]') == [1, 2]


def test_format_pages_for_prompt():
    prompt = format_pages_for_prompt([
        PageRecord(url="https://example.com/a", title="A"),
    ])

    assert prompt == "URL: https://example.com/a\nCurrent Title: A\nDescription: None"


def test_merge_keeps_unmatched_pages_and_ignores_unknown_urls():
    batch = make_pages(2)
    entries = [
        {"url": "https://example.com/p0", "enhancedTitle": "New 0"},
        {"url": "https://example.com/unknown", "enhancedTitle": "Ghost"},
    ]

    merged = merge_enhancements(batch, entries)

    assert [(p.url, p.title, p.description) for p in merged] == [
        ("https://example.com/p0", "New 0", "Desc 0"),
        ("https://example.com/p1", "Page 1", "Desc 1"),
    ]


@pytest.mark.anyio
async def test_failed_batch_falls_back_to_original_pages():
    pages = make_pages(120)
    llm = make_llm(
        enhanced_response(pages[:50]),
        "this is not json",
        enhanced_response(pages[100:]),
    )

    result = await MetadataEnhancer(llm, batch_size=50).enhance(pages)

    assert result.outcome is Outcome.PARTIAL
    assert result.batches == 3
    assert result.failed_batches == 1
    assert [p.url for p in result.pages] == [p.url for p in pages]
    assert result.pages[0].title == "Better Page 0"
    assert result.pages[60].title == "Page 60"
    assert result.pages[119].description == "Better Desc 119"
    assert llm.complete.await_count == 3


@pytest.mark.anyio
async def test_object_wrapped_array_is_accepted():
    pages = make_pages(2)
    wrapped = json.dumps({"pages": json.loads(enhanced_response(pages))})
    llm = make_llm(f"```json\n{wrapped}\n```")

    result = await MetadataEnhancer(llm).enhance(pages)

    assert result.outcome is Outcome.SUCCESS
    assert [p.title for p in result.pages] == ["Better Page 0", "Better Page 1"]


@pytest.mark.anyio
async def test_wrong_shape_falls_back():
    pages = make_pages(3)
    llm = make_llm('{"message": "sorry"}')

    result = await MetadataEnhancer(llm).enhance(pages)

    assert result.outcome is Outcome.FAILURE
    assert result.pages == pages


@pytest.mark.anyio
async def test_api_error_never_drops_pages():
    pages = make_pages(5)
    llm = make_llm(RuntimeError("rate limited"))

    result = await MetadataEnhancer(llm, batch_size=100).enhance(pages)

    assert result.outcome is Outcome.FAILURE
    assert [p.url for p in result.pages] == [p.url for p in pages]


@pytest.mark.anyio
async def test_duplicate_entries_do_not_duplicate_pages():
    pages = make_pages(2)
    response = json.dumps([
        {"url": pages[0].url, "enhancedTitle": "First"},
        {"url": pages[0].url, "enhancedTitle": "Second"},
    ])
    llm = make_llm(response)

    result = await MetadataEnhancer(llm).enhance(pages)

    assert len(result.pages) == 2
    assert result.pages[1].title == "Page 1"
