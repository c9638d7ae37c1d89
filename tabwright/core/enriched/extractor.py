"""Page content extraction for the enriched pipeline.

The extractor never talks to a browser itself. It asks a :class:`TabHost`
for the tab and its page data, classifies the URL, enforces size limits on
whatever the host returns, and records every outcome (including failures)
as an :class:`ExtractionResult`.
"""

from __future__ import annotations

import inspect
import re
from dataclasses import dataclass
from enum import Enum
from typing import (
    Any,
    Awaitable,
    Callable,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    Union,
)

from tabwright.core.fallback import BackoffPolicy
from tabwright.utils.log import get_logger
from tabwright.utils.messages import TabDescriptor

logger = get_logger()

MAX_CONTENT_CHARS = 15000
TRUNCATION_MARKER = "... [content truncated]"
MAX_IMAGES = 10
MIN_IMAGE_SIZE = 100
MAX_HEADINGS = 20
MAX_HEADING_CHARS = 200
MAX_LINKS = 30
MAX_LINK_TEXT_CHARS = 100
EXTRACTION_PACING_SECONDS = 0.1

_RESTRICTED_PREFIXES = (
    "chrome://",
    "chrome-extension://",
    "moz-extension://",
    "edge://",
    "about:",
    "view-source:",
    "file://",
    "data:",
    "javascript:",
    "chrome-search://",
    "chrome-devtools://",
)
_BROWSER_INTERNAL_RE = re.compile(
    r"^(chrome|chrome-extension|moz-extension|edge|about|chrome-search|chrome-devtools):",
    re.IGNORECASE,
)
_SEARCHABLE_RE = re.compile(r"^https?://", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")


def is_restricted_url(url: Optional[str]) -> bool:
    """True when page content cannot be read (browser pages, local files, data URLs)."""
    if not url:
        return True
    return url.lower().startswith(_RESTRICTED_PREFIXES)


def is_browser_internal_url(url: Optional[str]) -> bool:
    """True for browser-owned pages that can neither be read nor looked up on the web."""
    if not url:
        return True
    return bool(_BROWSER_INTERNAL_RE.match(url))


def is_searchable_url(url: Optional[str]) -> bool:
    """True for http(s) URLs a web-search capable model could look up itself."""
    if not url:
        return False
    return bool(_SEARCHABLE_RE.match(url))


class PageAccessError(Exception):
    """The host refused to read a page (protected or otherwise inaccessible)."""


class TabHost(Protocol):
    """Host tab platform used by the extractor."""

    async def get_tab(self, tab_id: int) -> Optional[TabDescriptor]:
        """Return the tab, or None when it no longer exists."""
        ...

    async def extract_page(self, tab: TabDescriptor) -> Optional[Mapping[str, Any]]:
        """Return raw page data ({content, meta, images, headings, links}).

        Raises PageAccessError for protected pages; any other exception is
        recorded as a generic extraction failure.
        """
        ...


class ExtractionStatus(str, Enum):
    EXTRACTED = "extracted"
    BROWSER_INTERNAL = "browser_internal"
    SEARCHABLE = "searchable"
    RESTRICTED = "restricted"
    FAILED = "failed"


@dataclass(frozen=True)
class PageMeta:
    title: str = ""
    description: str = ""
    keywords: str = ""
    author: str = ""
    og_title: str = ""
    og_description: str = ""
    og_image: str = ""


@dataclass(frozen=True)
class PageImage:
    src: str
    alt: str = ""
    width: int = 0
    height: int = 0


@dataclass(frozen=True)
class PageHeading:
    level: int
    text: str


@dataclass(frozen=True)
class PageLink:
    href: str
    text: str


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of extracting one tab; never raised, always recorded."""

    tab_id: int
    url: Optional[str]
    title: Optional[str]
    success: bool
    content: str = ""
    meta: Optional[PageMeta] = None
    images: Tuple[PageImage, ...] = ()
    headings: Tuple[PageHeading, ...] = ()
    links: Tuple[PageLink, ...] = ()
    restricted: bool = False
    browser_internal: bool = False
    searchable: bool = False
    error: Optional[str] = None

    @property
    def status(self) -> ExtractionStatus:
        if self.success:
            return ExtractionStatus.EXTRACTED
        if self.browser_internal:
            return ExtractionStatus.BROWSER_INTERNAL
        if self.searchable:
            return ExtractionStatus.SEARCHABLE
        if self.restricted:
            return ExtractionStatus.RESTRICTED
        return ExtractionStatus.FAILED


@dataclass(frozen=True)
class ExtractionSummary:
    total: int = 0
    successful: int = 0
    restricted: int = 0
    browser_internal: int = 0
    searchable: int = 0
    failed: int = 0

    @property
    def has_content(self) -> bool:
        return self.successful > 0

    @property
    def has_searchable_urls(self) -> bool:
        return self.searchable > 0


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return 0


def clean_content(text: Any) -> str:
    """Collapse whitespace and cap the page text."""
    cleaned = _WHITESPACE_RE.sub(" ", text if isinstance(text, str) else "").strip()
    if len(cleaned) > MAX_CONTENT_CHARS:
        cleaned = cleaned[:MAX_CONTENT_CHARS] + TRUNCATION_MARKER
    return cleaned


def _parse_meta(raw: Any, fallback_title: str) -> PageMeta:
    data = raw if isinstance(raw, Mapping) else {}

    def pick(*keys: str) -> str:
        for key in keys:
            value = _text(data.get(key))
            if value:
                return value
        return ""

    return PageMeta(
        title=pick("title") or fallback_title,
        description=pick("description"),
        keywords=pick("keywords"),
        author=pick("author"),
        og_title=pick("og_title", "ogTitle"),
        og_description=pick("og_description", "ogDescription"),
        og_image=pick("og_image", "ogImage"),
    )


def _parse_images(raw: Any) -> Tuple[PageImage, ...]:
    images: List[PageImage] = []
    for item in raw if isinstance(raw, list) else []:
        if not isinstance(item, Mapping):
            continue
        src = _text(item.get("src"))
        if not src or src.startswith("data:"):
            continue
        width, height = _int(item.get("width")), _int(item.get("height"))
        # Tiny images are icons or tracking pixels.
        if width < MIN_IMAGE_SIZE or height < MIN_IMAGE_SIZE:
            continue
        images.append(PageImage(src=src, alt=_text(item.get("alt")), width=width, height=height))
        if len(images) >= MAX_IMAGES:
            break
    return tuple(images)


def _parse_headings(raw: Any) -> Tuple[PageHeading, ...]:
    headings: List[PageHeading] = []
    for item in raw if isinstance(raw, list) else []:
        if not isinstance(item, Mapping):
            continue
        level = _int(item.get("level"))
        text = _text(item.get("text"))
        if level not in (1, 2, 3) or not text or len(text) >= MAX_HEADING_CHARS:
            continue
        headings.append(PageHeading(level=level, text=text))
        if len(headings) >= MAX_HEADINGS:
            break
    return tuple(headings)


def _parse_links(raw: Any) -> Tuple[PageLink, ...]:
    links: List[PageLink] = []
    for item in raw if isinstance(raw, list) else []:
        if not isinstance(item, Mapping):
            continue
        href = _text(item.get("href"))
        text = _text(item.get("text"))
        if not href or href.startswith("#") or href.lower().startswith("javascript:"):
            continue
        if not text:
            continue
        links.append(PageLink(href=href, text=text[:MAX_LINK_TEXT_CHARS]))
        if len(links) >= MAX_LINKS:
            break
    return tuple(links)


def _coerce_tab(tab_id: int, raw: Any) -> Optional[TabDescriptor]:
    """Accept a TabDescriptor or a tab mapping from the host; anything else is missing."""
    if isinstance(raw, TabDescriptor):
        return raw
    if isinstance(raw, Mapping):
        return TabDescriptor.from_mapping({**raw, "id": tab_id})
    return None


ExtractionProgressCallback = Callable[
    [int, int, ExtractionResult], Union[None, Awaitable[None]]
]


class ContentExtractor:
    """Extracts tabs one at a time through a :class:`TabHost`."""

    def __init__(self, host: TabHost, pacing: Optional[BackoffPolicy] = None) -> None:
        self.host = host
        self.pacing = pacing or BackoffPolicy(delay=EXTRACTION_PACING_SECONDS)

    async def extract(self, tab_id: int) -> ExtractionResult:
        try:
            tab = _coerce_tab(tab_id, await self.host.get_tab(tab_id))
        except Exception as exc:
            logger.debug(
                "[extractor] Tab lookup failed: %s: %s",
                type(exc).__name__,
                exc,
                extra={"tab_id": tab_id},
            )
            tab = None
        if tab is None:
            return ExtractionResult(
                tab_id=tab_id, url=None, title=None, success=False, error="Tab no longer exists"
            )

        url = tab.url or None
        title = tab.title or None
        if is_browser_internal_url(url):
            return ExtractionResult(
                tab_id=tab_id,
                url=url,
                title=title,
                success=False,
                restricted=True,
                browser_internal=True,
                error="Cannot access content of browser internal page",
            )
        if is_restricted_url(url):
            return ExtractionResult(
                tab_id=tab_id,
                url=url,
                title=title,
                success=False,
                restricted=True,
                searchable=is_searchable_url(url),
                error="Cannot access content of restricted page",
            )

        searchable = is_searchable_url(url)
        try:
            page = await self.host.extract_page(tab)
        except PageAccessError:
            return ExtractionResult(
                tab_id=tab_id,
                url=url,
                title=title,
                success=False,
                restricted=True,
                searchable=searchable,
                error="Page is protected or not accessible",
            )
        except Exception as exc:
            logger.debug(
                "[extractor] Extraction failed: %s: %s",
                type(exc).__name__,
                exc,
                extra={"tab_id": tab_id},
            )
            return ExtractionResult(
                tab_id=tab_id,
                url=url,
                title=title,
                success=False,
                searchable=searchable,
                error=str(exc) or "Unknown error during extraction",
            )

        if not page:
            return ExtractionResult(
                tab_id=tab_id,
                url=url,
                title=title,
                success=False,
                searchable=searchable,
                error="Failed to extract content - empty response",
            )
        if not isinstance(page, Mapping):
            logger.debug(
                "[extractor] Host returned non-mapping page data",
                extra={"tab_id": tab_id, "type": type(page).__name__},
            )
            return ExtractionResult(
                tab_id=tab_id,
                url=url,
                title=title,
                success=False,
                searchable=searchable,
                error="Failed to extract content - unexpected response",
            )

        page_title = _text(page.get("title")) or title
        return ExtractionResult(
            tab_id=tab_id,
            url=_text(page.get("url")) or url,
            title=page_title,
            success=True,
            content=clean_content(page.get("content")),
            meta=_parse_meta(page.get("meta"), page_title or ""),
            images=_parse_images(page.get("images")),
            headings=_parse_headings(page.get("headings")),
            links=_parse_links(page.get("links")),
        )

    async def extract_many(
        self,
        tab_ids: Sequence[int],
        on_progress: Optional[ExtractionProgressCallback] = None,
    ) -> List[ExtractionResult]:
        """Extract tabs sequentially, pacing between them."""
        results: List[ExtractionResult] = []
        total = len(tab_ids)
        for index, tab_id in enumerate(tab_ids, start=1):
            result = await self.extract(tab_id)
            results.append(result)
            logger.debug(
                "[extractor] Tab processed",
                extra={"tab_id": tab_id, "status": result.status.value, "index": index},
            )
            if on_progress is not None:
                outcome = on_progress(index, total, result)
                if inspect.isawaitable(outcome):
                    await outcome
            if index < total:
                await self.pacing.wait(index)
        return results


def _format_section(index: int, result: ExtractionResult) -> str:
    lines = [
        f"\n=== TAB {index}: {result.title or 'Untitled'} ===",
        f"URL: {result.url or 'Unknown'}",
    ]
    status = result.status
    if status is ExtractionStatus.EXTRACTED:
        lines.append("Status: CONTENT EXTRACTED SUCCESSFULLY")
        if result.meta is not None:
            if result.meta.description:
                lines.append(f"Description: {result.meta.description}")
            if result.meta.author:
                lines.append(f"Author: {result.meta.author}")
        if result.headings:
            lines.append("\nPage Structure:")
            for heading in result.headings:
                indent = "  " * (heading.level - 1)
                lines.append(f"{indent}{'#' * heading.level} {heading.text}")
        if result.content:
            lines.append("\nContent:")
            lines.append(result.content)
        if result.images:
            lines.append("\nImages found:")
            for number, image in enumerate(result.images, start=1):
                lines.append(
                    f"  {number}. {image.alt or 'No description'} ({image.width}x{image.height})"
                )
                lines.append(f"     URL: {image.src}")
    elif status is ExtractionStatus.BROWSER_INTERNAL:
        lines.append("Status: BROWSER INTERNAL PAGE")
        lines.append(
            "This is a browser configuration/internal page that cannot be accessed or searched."
        )
        lines.append("Skip this tab in your analysis or note it as a browser page.")
    elif status is ExtractionStatus.SEARCHABLE:
        lines.append("Status: EXTRACTION FAILED - WEB SEARCH RECOMMENDED")
        lines.append(">>> IMPORTANT: Content extraction failed, but this is a valid web URL.")
        lines.append(">>> Please use your web search capabilities to look up this URL directly.")
        lines.append(f">>> Search for: {result.url}")
        lines.append("Include the searched information in your analysis.")
    elif status is ExtractionStatus.RESTRICTED:
        lines.append("Status: RESTRICTED PAGE")
        lines.append("This page type cannot be accessed.")
    else:
        lines.append("Status: EXTRACTION FAILED")
        lines.append(f"Error: {result.error or 'Unknown error'}")
    return "\n".join(lines)


def format_extracted_content(results: Sequence[ExtractionResult]) -> str:
    """Render every tab as a titled section describing what the model should do with it."""
    return "\n\n".join(
        _format_section(index, result) for index, result in enumerate(results, start=1)
    )


def summarize_extraction(results: Sequence[ExtractionResult]) -> ExtractionSummary:
    statuses = [result.status for result in results]
    return ExtractionSummary(
        total=len(results),
        successful=statuses.count(ExtractionStatus.EXTRACTED),
        restricted=sum(1 for result in results if result.restricted),
        browser_internal=statuses.count(ExtractionStatus.BROWSER_INTERNAL),
        searchable=statuses.count(ExtractionStatus.SEARCHABLE),
        failed=statuses.count(ExtractionStatus.FAILED),
    )
