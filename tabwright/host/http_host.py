"""Tab host backed by a static tab snapshot and plain HTTP fetches."""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup, Comment

from tabwright.core.enriched.extractor import PageAccessError
from tabwright.utils.log import get_logger
from tabwright.utils.messages import TabDescriptor

logger = get_logger()

DEFAULT_FETCH_TIMEOUT = 15.0
USER_AGENT = "Mozilla/5.0 (compatible; tabwright)"

_NOISE_TAGS = (
    "script",
    "style",
    "noscript",
    "iframe",
    "svg",
    "canvas",
    "video",
    "audio",
    "nav",
    "footer",
    "aside",
)
_NOISE_ROLES = ("navigation", "banner", "contentinfo")
_NOISE_CLASS_RE = re.compile(r"^(advertisement|ad|social-share|comments)$", re.IGNORECASE)
_META_FIELDS = {
    "description": "description",
    "keywords": "keywords",
    "author": "author",
    "og:title": "ogTitle",
    "og:description": "ogDescription",
    "og:image": "ogImage",
}


def _dimension(value: Any) -> int:
    if not isinstance(value, str):
        return 0
    match = re.match(r"\s*(\d+)", value)
    return int(match.group(1)) if match else 0


def _remove_noise(soup: BeautifulSoup) -> None:
    for tag in soup.find_all(list(_NOISE_TAGS)):
        tag.decompose()
    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()
    for tag in soup.find_all(attrs={"role": list(_NOISE_ROLES)}):
        tag.decompose()
    for tag in soup.find_all(class_=_NOISE_CLASS_RE):
        tag.decompose()
    ads = soup.find(id="ads")
    if ads is not None:
        ads.decompose()


def parse_html(html: str, base_url: str = "") -> Dict[str, Any]:
    """Turn an HTML document into the raw page data the extractor expects."""
    soup = BeautifulSoup(html, "html.parser")
    title_tag = soup.find("title")
    title = title_tag.get_text(strip=True) if title_tag else ""

    meta: Dict[str, str] = {"title": title}
    for tag in soup.find_all("meta"):
        name = (tag.get("name") or tag.get("property") or "").lower()
        if name in _META_FIELDS:
            meta[_META_FIELDS[name]] = tag.get("content") or ""

    # Nav, footer and ad regions count toward neither the content nor the caps.
    _remove_noise(soup)

    images: List[Dict[str, Any]] = []
    for img in soup.find_all("img"):
        src = img.get("src") or img.get("data-src") or ""
        if not src or src.startswith("data:"):
            continue
        images.append(
            {
                "src": urljoin(base_url, src),
                "alt": img.get("alt") or "",
                "width": _dimension(img.get("width")),
                "height": _dimension(img.get("height")),
            }
        )

    headings = [
        {"level": int(tag.name[1]), "text": tag.get_text(" ", strip=True)}
        for tag in soup.find_all(["h1", "h2", "h3"])
    ]

    links: List[Dict[str, str]] = []
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if not href or href.startswith("#") or href.lower().startswith("javascript:"):
            continue
        links.append({"href": urljoin(base_url, href), "text": anchor.get_text(" ", strip=True)})

    body = soup.body or soup
    content = body.get_text(" ", strip=True)

    return {
        "url": base_url,
        "title": title,
        "content": content,
        "meta": meta,
        "images": images,
        "headings": headings,
        "links": links,
    }


class HttpPageHost:
    """Serves tabs from a snapshot and reads pages over HTTP.

    ``client`` or ``transport`` may be supplied for connection reuse or tests.
    """

    def __init__(
        self,
        tabs: Iterable[TabDescriptor],
        *,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
    ) -> None:
        self._tabs: Dict[int, TabDescriptor] = {tab.id: tab for tab in tabs}
        self._client = client
        self._transport = transport
        self._timeout = timeout

    async def get_tab(self, tab_id: int) -> Optional[TabDescriptor]:
        return self._tabs.get(tab_id)

    async def _get(self, url: str) -> httpx.Response:
        headers = {"User-Agent": USER_AGENT, "Accept": "text/html,application/xhtml+xml"}
        if self._client is not None:
            return await self._client.get(url, headers=headers, follow_redirects=True)
        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport, follow_redirects=True
        ) as client:
            return await client.get(url, headers=headers)

    async def extract_page(self, tab: TabDescriptor) -> Optional[Dict[str, Any]]:
        response = await self._get(tab.url)
        if response.status_code in (401, 403):
            raise PageAccessError(f"Cannot access page (HTTP {response.status_code})")
        response.raise_for_status()

        content_type = response.headers.get("content-type", "")
        if content_type and "html" not in content_type and "text/plain" not in content_type:
            raise ValueError(f"Unsupported content type: {content_type.split(';')[0]}")

        logger.debug(
            "[http_host] Page fetched",
            extra={"tab_id": tab.id, "status": response.status_code, "bytes": len(response.content)},
        )
        if "text/plain" in content_type:
            return {"url": str(response.url), "title": tab.title, "content": response.text}
        page = parse_html(response.text, str(response.url))
        if not page["title"]:
            page["title"] = tab.title
        return page
