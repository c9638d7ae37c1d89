"""Tests for URL classification and page extraction."""

import pytest

from helpers import FakeHost
from tabwright.core.enriched import (
    ContentExtractor,
    ExtractionStatus,
    PageAccessError,
    format_extracted_content,
    is_browser_internal_url,
    is_restricted_url,
    is_searchable_url,
    summarize_extraction,
)
from tabwright.core.enriched.extractor import (
    MAX_CONTENT_CHARS,
    MAX_HEADINGS,
    MAX_IMAGES,
    MAX_LINKS,
    TRUNCATION_MARKER,
    clean_content,
)
from tabwright.core.fallback import BackoffPolicy
from tabwright.utils.messages import TabDescriptor


def _extractor(host):
    return ContentExtractor(host, pacing=BackoffPolicy(delay=0))


@pytest.mark.parametrize(
    "url,restricted,internal,searchable",
    [
        ("https://example.com", False, False, True),
        ("http://localhost:8000/", False, False, True),
        ("chrome://settings", True, True, False),
        ("about:blank", True, True, False),
        ("edge://flags", True, True, False),
        ("file:///home/me/notes.txt", True, False, False),
        ("data:text/html,hi", True, False, False),
        ("", True, True, False),
        (None, True, True, False),
    ],
)
def test_url_classifiers(url, restricted, internal, searchable) -> None:
    assert is_restricted_url(url) is restricted
    assert is_browser_internal_url(url) is internal
    assert is_searchable_url(url) is searchable


def test_clean_content_collapses_whitespace_and_truncates() -> None:
    assert clean_content("  a \n\n b\tc  ") == "a b c"
    long_text = "x" * (MAX_CONTENT_CHARS + 50)
    cleaned = clean_content(long_text)
    assert cleaned.endswith(TRUNCATION_MARKER)
    assert len(cleaned) == MAX_CONTENT_CHARS + len(TRUNCATION_MARKER)
    assert clean_content(None) == ""


@pytest.mark.asyncio
async def test_successful_extraction_applies_limits() -> None:
    page = {
        "title": "Guide",
        "content": "Body text",
        "meta": {"description": "A guide", "ogTitle": "Guide OG"},
        "images": [{"src": "https://img/icon.png", "width": 16, "height": 16}]
        + [{"src": f"https://img/{i}.png", "width": 400, "height": 300} for i in range(15)],
        "headings": [{"level": 4, "text": "too deep"}, {"level": 2, "text": "x" * 250}]
        + [{"level": 1, "text": f"H{i}"} for i in range(25)],
        "links": [{"href": "#top", "text": "Top"}, {"href": "javascript:void(0)", "text": "js"}]
        + [{"href": f"https://l/{i}", "text": "t" * 150} for i in range(40)],
    }
    host = FakeHost([TabDescriptor(1, "Guide", "https://example.com/guide")], {1: page})

    result = await _extractor(host).extract(1)

    assert result.status is ExtractionStatus.EXTRACTED
    assert result.content == "Body text"
    assert result.meta.description == "A guide"
    assert result.meta.og_title == "Guide OG"
    assert len(result.images) == MAX_IMAGES
    assert all(image.width >= 100 for image in result.images)
    assert len(result.headings) == MAX_HEADINGS
    assert all(h.level == 1 for h in result.headings)
    assert len(result.links) == MAX_LINKS
    assert all(len(link.text) == 100 for link in result.links)


@pytest.mark.asyncio
async def test_failures_are_recorded_not_raised() -> None:
    tabs = [
        TabDescriptor(1, "Settings", "chrome://settings"),
        TabDescriptor(2, "Local", "file:///tmp/a.html"),
        TabDescriptor(3, "Bank", "https://bank.example.com"),
        TabDescriptor(4, "Broken", "https://broken.example.com"),
        TabDescriptor(5, "Blank", "https://blank.example.com"),
    ]
    host = FakeHost(
        tabs,
        {3: PageAccessError("denied"), 4: RuntimeError("script crashed"), 5: None},
    )
    results = await _extractor(host).extract_many([1, 2, 3, 4, 5, 6])

    statuses = [r.status for r in results]
    assert statuses == [
        ExtractionStatus.BROWSER_INTERNAL,
        ExtractionStatus.RESTRICTED,
        ExtractionStatus.SEARCHABLE,
        ExtractionStatus.SEARCHABLE,
        ExtractionStatus.SEARCHABLE,
        ExtractionStatus.FAILED,
    ]
    assert results[2].error == "Page is protected or not accessible"
    assert results[3].error == "script crashed"
    assert results[4].error == "Failed to extract content - empty response"
    assert results[5].error == "Tab no longer exists"
    # Browser and restricted pages are never handed to the host.
    assert host.extracted == [3, 4, 5]

    summary = summarize_extraction(results)
    assert summary.total == 6
    assert summary.successful == 0
    assert summary.browser_internal == 1
    assert summary.searchable == 3
    assert summary.restricted == 3
    assert summary.failed == 1
    assert not summary.has_content
    assert summary.has_searchable_urls


@pytest.mark.asyncio
async def test_progress_callback_may_be_sync_or_async() -> None:
    tabs = [TabDescriptor(i, f"T{i}", f"https://e.com/{i}") for i in (1, 2)]
    host = FakeHost(tabs, {1: {"content": "one"}, 2: {"content": "two"}})
    seen = []

    def sync_progress(current, total, result):
        seen.append(("sync", current, total, result.tab_id))

    async def async_progress(current, total, result):
        seen.append(("async", current, total, result.tab_id))

    await _extractor(host).extract_many([1, 2], sync_progress)
    await _extractor(host).extract_many([1, 2], async_progress)

    assert seen == [
        ("sync", 1, 2, 1),
        ("sync", 2, 2, 2),
        ("async", 1, 2, 1),
        ("async", 2, 2, 2),
    ]


class UnreliableHost(FakeHost):
    """Host whose tab lookup raises for some ids and returns odd shapes for others."""

    def __init__(self, tabs, pages=None, lookup_errors=None, raw_tabs=None) -> None:
        super().__init__(tabs, pages)
        self.lookup_errors = lookup_errors or {}
        self.raw_tabs = raw_tabs or {}

    async def get_tab(self, tab_id):
        if tab_id in self.lookup_errors:
            raise self.lookup_errors[tab_id]
        if tab_id in self.raw_tabs:
            return self.raw_tabs[tab_id]
        return await super().get_tab(tab_id)


@pytest.mark.asyncio
async def test_tab_lookup_errors_are_recorded_not_raised() -> None:
    host = UnreliableHost(
        [TabDescriptor(1, "Docs", "https://docs.example.com")],
        {1: {"content": "docs"}},
        lookup_errors={2: RuntimeError("tab query failed")},
        raw_tabs={3: "not a tab"},
    )
    results = await _extractor(host).extract_many([1, 2, 3])

    assert [r.status for r in results] == [
        ExtractionStatus.EXTRACTED,
        ExtractionStatus.FAILED,
        ExtractionStatus.FAILED,
    ]
    assert results[1].error == "Tab no longer exists"
    assert results[2].error == "Tab no longer exists"
    assert host.extracted == [1]


@pytest.mark.asyncio
async def test_tab_mappings_from_the_host_are_accepted() -> None:
    host = UnreliableHost(
        [],
        {4: {"content": "from a dict tab"}},
        raw_tabs={4: {"title": "Dict tab", "url": "https://dict.example.com"}},
    )
    result = await _extractor(host).extract(4)

    assert result.success
    assert result.title == "Dict tab"
    assert result.url == "https://dict.example.com"
    assert result.content == "from a dict tab"


@pytest.mark.asyncio
async def test_non_mapping_page_data_is_a_failure() -> None:
    tabs = [TabDescriptor(i, f"T{i}", f"https://e.com/{i}") for i in (1, 2)]
    host = FakeHost(tabs, {1: ["not", "a", "page"], 2: "<html>raw</html>"})
    results = await _extractor(host).extract_many([1, 2])

    assert [r.success for r in results] == [False, False]
    assert {r.error for r in results} == {"Failed to extract content - unexpected response"}
    # The URLs are still offered to web search.
    assert all(r.status is ExtractionStatus.SEARCHABLE for r in results)


@pytest.mark.asyncio
async def test_formatted_sections_describe_each_status() -> None:
    tabs = [
        TabDescriptor(1, "Docs", "https://docs.example.com"),
        TabDescriptor(2, "Flags", "about:flags"),
        TabDescriptor(3, "Paywall", "https://paywall.example.com"),
    ]
    host = FakeHost(
        tabs,
        {
            1: {"content": "Install with pip", "headings": [{"level": 2, "text": "Setup"}]},
            3: PageAccessError(),
        },
    )
    text = format_extracted_content(await _extractor(host).extract_many([1, 2, 3]))

    assert "=== TAB 1: Docs ===" in text
    assert "Status: CONTENT EXTRACTED SUCCESSFULLY" in text
    assert "  ## Setup" in text
    assert "Install with pip" in text
    assert "Status: BROWSER INTERNAL PAGE" in text
    assert "Skip this tab" in text
    assert "WEB SEARCH RECOMMENDED" in text
    assert ">>> Search for: https://paywall.example.com" in text
