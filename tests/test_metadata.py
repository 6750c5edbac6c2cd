"""Tests for page metadata extraction and its fallbacks."""
from __future__ import annotations

import threading

import pytest
import requests
from bs4.builder import ParserRejectedMarkup

from rendium import metadata
from rendium.config import DEFAULT_FETCH_TIMEOUT, USER_AGENT
from rendium.errors import MalformedDocumentError, ParseError, UnreachableError
from rendium.models import MetadataResult

from conftest import DummyResponse, FakeSession, page_html

PAGE = "https://example.com/page"


def _extract(html: str | int | Exception, url: str = PAGE) -> MetadataResult:
    return metadata.extract(url, session=FakeSession({url: html}))  # type: ignore[arg-type]


def test_extract_prefers_open_graph_fields() -> None:
    html = page_html(
        title="Raw Title",
        og={
            "og:title": "Social Title",
            "og:description": "Social Desc",
            "og:image": "https://cdn.example.com/a.png",
        },
        named={"description": "Plain Desc", "twitter:image": "/tw.png"},
    )
    result = _extract(html)
    expected = MetadataResult(
        title="Social Title",
        description="Social Desc",
        preview_image_url="https://cdn.example.com/a.png",
    )
    if result != expected:
        msg = f"Unexpected metadata: {result}"
        raise AssertionError(msg)


def test_extract_falls_back_to_plain_tags() -> None:
    html = page_html(
        title="  Raw Title \n",
        og={"og:title": ""},
        named={"description": "Plain Desc", "twitter:image": "/tw.png"},
    )
    result = _extract(html)
    if result.title != "Raw Title":
        msg = f"Expected trimmed <title> text, got {result.title!r}"
        raise AssertionError(msg)
    if result.description != "Plain Desc":
        raise AssertionError("Expected description meta tag fallback")
    if result.preview_image_url != "https://example.com/tw.png":
        raise AssertionError("Expected twitter:image fallback made absolute")


def test_extract_without_any_metadata_uses_hostname() -> None:
    result = _extract("<html><body>nothing here</body></html>")
    if result != MetadataResult(title="example.com"):
        msg = f"Unexpected metadata: {result}"
        raise AssertionError(msg)


@pytest.mark.parametrize(
    ("image", "expected"),
    [
        ("/img/a.png", "https://example.com/img/a.png"),
        ("rel.png", "https://example.com/rel.png"),
        ("https://cdn.example.com/a.png", "https://cdn.example.com/a.png"),
        ("//cdn.example.com/b.png", "https://cdn.example.com/b.png"),
    ],
)
def test_extract_normalises_image_url(image: str, expected: str) -> None:
    result = _extract(page_html(title="T", og={"og:image": image}))
    if result.preview_image_url != expected:
        msg = f"{image!r} resolved to {result.preview_image_url!r}, expected {expected!r}"
        raise AssertionError(msg)


def test_absolutise_keeps_port() -> None:
    resolved = metadata.absolutise_image_url("img.png", "http://localhost:8080/p/q")
    if resolved != "http://localhost:8080/img.png":
        msg = f"Unexpected resolution: {resolved}"
        raise AssertionError(msg)


def test_extract_unreachable_server_falls_back() -> None:
    result = _extract(requests.ConnectionError("refused"))
    if result != MetadataResult(title="example.com", description="", preview_image_url=""):
        msg = f"Unexpected fallback: {result}"
        raise AssertionError(msg)


def test_extract_timeout_falls_back() -> None:
    result = _extract(requests.Timeout("slow"), url="https://Slow.Example.org:8443/x")
    if result.title != "slow.example.org":
        msg = f"Expected host name fallback, got {result.title!r}"
        raise AssertionError(msg)


def test_extract_error_status_falls_back() -> None:
    result = _extract(404)
    if result != MetadataResult(title="example.com"):
        msg = f"Unexpected fallback for HTTP 404: {result}"
        raise AssertionError(msg)


def test_extract_decodes_utf8_page_without_header_charset() -> None:
    body = '<html><head><meta charset="utf-8"><title>Café Ünïcode</title>'.encode()
    response = DummyResponse(body, content_type="text/html")
    result = metadata.extract(PAGE, session=FakeSession({PAGE: response}))  # type: ignore[arg-type]
    if result.title != "Café Ünïcode":
        msg = f"Non-ASCII title was mangled: {result.title!r}"
        raise AssertionError(msg)


def test_extract_prefers_header_charset_over_page_declaration() -> None:
    body = '<meta charset="utf-8"><title>Crème brûlée</title>'.encode("latin-1")
    response = DummyResponse(body, content_type="text/html; charset=ISO-8859-1")
    result = metadata.extract(PAGE, session=FakeSession({PAGE: response}))  # type: ignore[arg-type]
    if result.title != "Crème brûlée":
        msg = f"Header charset should win, got {result.title!r}"
        raise AssertionError(msg)


def test_extract_binary_garbage_uses_hostname() -> None:
    body = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\xff\xd8\xff\xe0\x00\x10"
    response = DummyResponse(body, content_type="image/png")
    result = metadata.extract(PAGE, session=FakeSession({PAGE: response}))  # type: ignore[arg-type]
    if result != MetadataResult(title="example.com"):
        msg = f"Unexpected metadata for binary body: {result}"
        raise AssertionError(msg)


def test_extract_parser_failure_falls_back(monkeypatch: pytest.MonkeyPatch) -> None:
    def _reject(*_args: object, **_kwargs: object) -> None:
        msg = "markup rejected"
        raise ParserRejectedMarkup(msg)

    monkeypatch.setattr(metadata, "BeautifulSoup", _reject)
    result = _extract(page_html(title="Never parsed"))
    if result != MetadataResult(title="example.com"):
        msg = f"Parser failure should degrade to the host name: {result}"
        raise AssertionError(msg)
    with pytest.raises(MalformedDocumentError):
        metadata.scrape(PAGE, session=FakeSession({PAGE: page_html(title="T")}))  # type: ignore[arg-type]


def test_extract_sends_crawler_agent_and_timeout() -> None:
    session = FakeSession({PAGE: page_html(title="T")})
    metadata.extract(PAGE, session=session)  # type: ignore[arg-type]
    if len(session.calls) != 1:
        raise AssertionError("Expected exactly one request (no retries)")
    _url, kwargs = session.calls[0]
    if kwargs.get("headers") != {"User-Agent": USER_AGENT}:
        raise AssertionError("Crawler user-agent header missing")
    if kwargs.get("timeout") != DEFAULT_FETCH_TIMEOUT:
        raise AssertionError("Fetch should be bounded by the default timeout")


@pytest.mark.parametrize("bad_url", ["not a url", "/relative/path", "http://[::1"])
def test_extract_rejects_unparseable_url(bad_url: str) -> None:
    with pytest.raises(ParseError):
        metadata.extract(bad_url, session=FakeSession())  # type: ignore[arg-type]


def test_scrape_raises_instead_of_falling_back() -> None:
    with pytest.raises(UnreachableError):
        metadata.scrape(PAGE, session=FakeSession({PAGE: 500}))  # type: ignore[arg-type]


def test_lookup_title_uses_default_for_bad_url() -> None:
    result = metadata.lookup_title("example", "My default")
    if result != MetadataResult(title="My default"):
        msg = f"Unexpected lookup result: {result}"
        raise AssertionError(msg)


def test_prefetcher_ignores_overlapping_fetch() -> None:
    started = threading.Event()
    release = threading.Event()

    class BlockingSession(FakeSession):
        def get(self, url: str, **kwargs: object):  # noqa: ANN202
            started.set()
            release.wait(timeout=5)
            return super().get(url, **kwargs)

    prefetcher = metadata.MetadataPrefetcher(
        session=BlockingSession({PAGE: page_html(title="Slow Page")}),  # type: ignore[arg-type]
    )
    results: list[MetadataResult | None] = []
    worker = threading.Thread(target=lambda: results.append(prefetcher.fetch(PAGE)))
    worker.start()
    started.wait(timeout=5)
    try:
        if prefetcher.fetch(PAGE) is not None:
            raise AssertionError("Second fetch should be ignored while one is in flight")
    finally:
        release.set()
        worker.join(timeout=5)

    if results != [MetadataResult(title="Slow Page")]:
        msg = f"Unexpected first fetch result: {results}"
        raise AssertionError(msg)
    if prefetcher.busy:
        raise AssertionError("Prefetcher should be idle after the fetch completes")
