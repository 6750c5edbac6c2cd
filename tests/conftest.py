"""Shared pytest fixtures for rendium tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from rendium.repository import open_repositories
from rendium.service import BookmarkService

if TYPE_CHECKING:
    from pathlib import Path

SAMPLE_EXPORT = """<!DOCTYPE NETSCAPE-Bookmark-file-1>
<META HTTP-EQUIV="Content-Type" CONTENT="text/html; charset=UTF-8">
<TITLE>Bookmarks</TITLE>
<H1>Bookmarks</H1>
<DL><p>
    <DT><H3 ADD_DATE="1700000000" PERSONAL_TOOLBAR_FOLDER="true">Bookmarks bar</H3>
    <DL><p>
        <DT><A HREF="https://toolbar.example">Toolbar Link</A>
        <DT><H3 ADD_DATE="1700000000" COLOR="#ff0000">Work</H3>
        <DL><p>
            <DT><A HREF="https://jira.example/board">Board</A>
            <DT><H3 ADD_DATE="1700000000">Projects</H3>
            <DL><p>
                <DT><A HREF="https://git.example/repo">Repo</A>
            </DL><p>
            <DT><A HREF="https://wiki.example">Wiki</A>
        </DL><p>
    </DL><p>
    <DT><H3 ADD_DATE="1700000000">Reading</H3>
    <DL><p>
        <DT><A HREF="https://news.example">News</A>
    </DL><p>
    <DT><A HREF="https://loose.example">Loose</A>
</DL><p>
"""


class DummyResponse:
    """Mimics the parts of ``requests.Response`` the extractor reads."""

    def __init__(
        self,
        body: str | bytes,
        status: int = 200,
        content_type: str = "text/html; charset=utf-8",
    ) -> None:
        self.content = body.encode("utf-8") if isinstance(body, str) else body
        self.status_code = status
        self.headers = CaseInsensitiveDict({"Content-Type": content_type})
        charset = content_type.lower().partition("charset=")[2]
        self.encoding = charset or "ISO-8859-1"


class FakeSession:
    """Stands in for ``requests.Session``; maps URLs to canned pages."""

    def __init__(
        self, pages: dict[str, str | int | Exception | DummyResponse] | None = None,
    ) -> None:
        self.pages = pages or {}
        self.calls: list[tuple[str, dict[str, object]]] = []

    def get(self, url: str, **kwargs: object) -> DummyResponse:
        self.calls.append((url, kwargs))
        page = self.pages.get(url)
        if page is None:
            msg = f"No route to {url}"
            raise requests.ConnectionError(msg)
        if isinstance(page, Exception):
            raise page
        if isinstance(page, DummyResponse):
            return page
        if isinstance(page, int):
            return DummyResponse("", status=page)
        return DummyResponse(page)


def page_html(
    *,
    title: str = "",
    og: dict[str, str] | None = None,
    named: dict[str, str] | None = None,
) -> str:
    """Build a small HTML document with the given title and meta tags."""
    parts = ["<html><head>"]
    if title:
        parts.append(f"<title>{title}</title>")
    for prop, content in (og or {}).items():
        parts.append(f'<meta property="{prop}" content="{content}">')
    for name, content in (named or {}).items():
        parts.append(f'<meta name="{name}" content="{content}">')
    parts.append("</head><body><p>Body text</p></body></html>")
    return "".join(parts)


@pytest.fixture
def sample_export_text() -> str:
    return SAMPLE_EXPORT


@pytest.fixture
def sample_export_html(tmp_path: Path) -> Path:
    """Write the sample bookmark export to disk."""
    p = tmp_path / "bookmarks.html"
    p.write_text(SAMPLE_EXPORT, encoding="utf-8")
    return p


@pytest.fixture
def service() -> BookmarkService:
    """Service over in-memory repositories, without background enrichment."""
    bookmarks, folders = open_repositories()
    return BookmarkService(bookmarks, folders)
