"""Tests for the HTTP-backed tab host."""

import httpx
import pytest

from tabwright.core.enriched import ContentExtractor, ExtractionStatus, PageAccessError
from tabwright.core.fallback import BackoffPolicy
from tabwright.host import HttpPageHost, parse_html
from tabwright.utils.messages import TabDescriptor

PAGE = """<!doctype html>
<html>
<head>
  <title> Plugin Guide </title>
  <meta name="description" content="How plugins work">
  <meta property="og:title" content="Plugins!">
  <script>var tracking = "secret-tracker";</script>
</head>
<body>
  <nav><a href="/home">Home</a></nav>
  <!-- build 42 -->
  <h1>Plugins</h1>
  <h2>Installing</h2>
  <h4>Footnote heading</h4>
  <p>Install plugins with the package manager.</p>
  <img src="/img/diagram.png" alt="Diagram" width="640" height="480">
  <img src="data:image/png;base64,AAAA" width="500" height="500">
  <a href="#top">Back to top</a>
  <a href="javascript:void(0)">Noop</a>
  <a href="https://other.example.com/docs">Other docs</a>
  <div class="advertisement"><a href="https://ads.example.com/">Buy now</a></div>
  <footer><h3>Site map</h3>Copyright</footer>
</body>
</html>
"""


def test_parse_html_collects_structure_and_strips_noise():
    page = parse_html(PAGE, "https://example.com/guide/")

    assert page["title"] == "Plugin Guide"
    assert page["meta"]["description"] == "How plugins work"
    assert page["meta"]["ogTitle"] == "Plugins!"
    assert page["headings"] == [
        {"level": 1, "text": "Plugins"},
        {"level": 2, "text": "Installing"},
    ]
    assert page["images"] == [
        {"src": "https://example.com/img/diagram.png", "alt": "Diagram", "width": 640, "height": 480}
    ]
    hrefs = [link["href"] for link in page["links"]]
    assert "https://other.example.com/docs" in hrefs
    # Links inside nav and footer regions are dropped with the rest of the noise.
    assert "https://example.com/home" not in hrefs
    assert "https://ads.example.com/" not in hrefs
    assert not any(href.startswith("#") or href.startswith("javascript") for href in hrefs)

    content = page["content"]
    assert "Install plugins with the package manager." in content
    assert "secret-tracker" not in content
    assert "Buy now" not in content
    assert "Copyright" not in content
    assert "build 42" not in content


@pytest.mark.asyncio
async def test_extract_page_fetches_and_parses_html():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, html=PAGE)

    tab = TabDescriptor(1, "Tab title", "https://example.com/guide/")
    host = HttpPageHost([tab], transport=httpx.MockTransport(handler))

    assert await host.get_tab(1) == tab
    assert await host.get_tab(2) is None
    page = await host.extract_page(tab)

    assert page["title"] == "Plugin Guide"
    assert "tabwright" in seen[0].headers["User-Agent"]


@pytest.mark.asyncio
async def test_protected_pages_raise_page_access_error():
    host = HttpPageHost(
        [TabDescriptor(1, "Bank", "https://bank.example.com")],
        transport=httpx.MockTransport(lambda request: httpx.Response(403)),
    )
    with pytest.raises(PageAccessError):
        await host.extract_page(await host.get_tab(1))


@pytest.mark.asyncio
async def test_plain_text_and_unsupported_types():
    def handler(request):
        if request.url.path.endswith(".txt"):
            return httpx.Response(200, text="just text", headers={"content-type": "text/plain"})
        return httpx.Response(200, content=b"%PDF", headers={"content-type": "application/pdf"})

    tabs = [
        TabDescriptor(1, "Notes", "https://example.com/notes.txt"),
        TabDescriptor(2, "Paper", "https://example.com/paper.pdf"),
    ]
    host = HttpPageHost(tabs, transport=httpx.MockTransport(handler))

    text_page = await host.extract_page(tabs[0])
    assert text_page["content"] == "just text"
    assert text_page["title"] == "Notes"
    with pytest.raises(ValueError, match="application/pdf"):
        await host.extract_page(tabs[1])


@pytest.mark.asyncio
async def test_extractor_over_http_host_records_http_failures():
    def handler(request):
        if request.url.host == "gone.example.com":
            return httpx.Response(404)
        return httpx.Response(401)

    tabs = [
        TabDescriptor(1, "Gone", "https://gone.example.com"),
        TabDescriptor(2, "Login", "https://login.example.com"),
    ]
    host = HttpPageHost(tabs, transport=httpx.MockTransport(handler))
    results = await ContentExtractor(host, pacing=BackoffPolicy(delay=0)).extract_many([1, 2])

    assert [r.status for r in results] == [ExtractionStatus.SEARCHABLE, ExtractionStatus.SEARCHABLE]
    assert "404" in results[0].error
    assert results[1].restricted
    assert results[1].error == "Page is protected or not accessible"
