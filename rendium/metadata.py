"""Extract title, description and preview image from a bookmarked page."""

from __future__ import annotations

import logging
import re
import threading
from typing import TYPE_CHECKING
from urllib.parse import SplitResult, urlsplit

import requests
from bs4 import BeautifulSoup

from .config import DEFAULT_FETCH_TIMEOUT, USER_AGENT
from .errors import MalformedDocumentError, ParseError, UnreachableError
from .models import MetadataResult

if TYPE_CHECKING:  # pragma: no cover
    from bs4 import Tag

LOGGER = logging.getLogger(__name__)

HEADERS = {"User-Agent": USER_AGENT}

_ABSOLUTE_URL = re.compile(r"^https?://", re.IGNORECASE)


def extract(
    url: str,
    *,
    session: requests.Session | None = None,
    timeout: float = DEFAULT_FETCH_TIMEOUT,
) -> MetadataResult:
    """Fetch ``url`` and return its metadata, never failing on remote problems.

    Transport errors, non-2xx responses and unparseable markup all degrade to a
    result titled with the URL's host name. Only an unparseable ``url`` raises
    (``ParseError``), since the host-name fallback cannot be built without it.
    """
    _split_url(url)
    try:
        return scrape(url, session=session, timeout=timeout)
    except (UnreachableError, MalformedDocumentError) as exc:
        LOGGER.warning("Metadata extraction failed for %s: %s", url, exc)
        return hostname_fallback(url)


def scrape(
    url: str,
    *,
    session: requests.Session | None = None,
    timeout: float = DEFAULT_FETCH_TIMEOUT,
) -> MetadataResult:
    """Fetch and parse ``url``, raising instead of falling back.

    Raises ParseError, UnreachableError or MalformedDocumentError.
    """
    _split_url(url)
    if session is not None:
        document, encoding = _fetch_document(session, url, timeout)
    else:
        with requests.Session() as own_session:
            document, encoding = _fetch_document(own_session, url, timeout)
    return parse_metadata(document, url, encoding=encoding)


def parse_metadata(
    document: str | bytes, url: str, *, encoding: str | None = None,
) -> MetadataResult:
    """Derive metadata from an already fetched document requested from ``url``.

    Raw bytes are decoded with ``encoding`` when the server declared one,
    otherwise BeautifulSoup sniffs the ``<meta charset>`` and falls back to
    UTF-8.
    """
    options: dict[str, str] = {}
    if isinstance(document, bytes) and encoding:
        options["from_encoding"] = encoding
    try:
        soup = BeautifulSoup(document, "html.parser", **options)
    except Exception as exc:  # noqa: BLE001
        msg = f"Could not parse document from {url}: {exc}"
        raise MalformedDocumentError(msg) from exc

    title = (
        _meta_content(soup, property="og:title")
        or _title_text(soup)
        or _split_url(url).hostname
        or ""
    )
    description = (
        _meta_content(soup, property="og:description")
        or _meta_content(soup, name="description")
    )
    image = (
        _meta_content(soup, property="og:image")
        or _meta_content(soup, name="twitter:image")
    )
    return MetadataResult(
        title=title,
        description=description,
        preview_image_url=absolutise_image_url(image, url),
    )


def absolutise_image_url(image: str, page_url: str) -> str:
    """Resolve a relative image reference against the page's scheme and host."""
    if not image or _ABSOLUTE_URL.match(image):
        return image
    parts = _split_url(page_url)
    if image.startswith("//"):
        return f"{parts.scheme}:{image}"
    host = parts.netloc.rpartition("@")[2]
    separator = "" if image.startswith("/") else "/"
    return f"{parts.scheme}://{host}{separator}{image}"


def hostname_fallback(url: str) -> MetadataResult:
    """Result used whenever a page cannot be fetched or parsed."""
    return MetadataResult(title=_split_url(url).hostname or "")


def lookup_title(
    url: str,
    default_title: str,
    *,
    session: requests.Session | None = None,
    timeout: float = DEFAULT_FETCH_TIMEOUT,
) -> MetadataResult:
    """Interactive lookup: like ``extract`` but falls back to ``default_title`` on a bad URL."""
    try:
        return extract(url, session=session, timeout=timeout)
    except ParseError as exc:
        LOGGER.debug("Not a fetchable URL (%s); using default title", exc)
        return MetadataResult(title=default_title)


class MetadataPrefetcher:
    """Runs interactive lookups with at most one request in flight.

    Meant for form fields that trigger a lookup on every change: a call made
    while another is still fetching returns ``None`` instead of queueing.
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
    ) -> None:
        self._session = session
        self._timeout = timeout
        self._lock = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def fetch(self, url: str, default_title: str = "") -> MetadataResult | None:
        if not self._lock.acquire(blocking=False):
            LOGGER.debug("Metadata fetch already in progress; ignoring %s", url)
            return None
        try:
            return lookup_title(
                url, default_title, session=self._session, timeout=self._timeout,
            )
        finally:
            self._lock.release()


def _split_url(url: str) -> SplitResult:
    try:
        parts = urlsplit(url)
        _ = parts.port  # raises ValueError for a malformed port
    except (TypeError, ValueError) as exc:
        msg = f"Invalid URL: {url!r}"
        raise ParseError(msg) from exc
    if not parts.scheme or not parts.hostname:
        msg = f"Invalid URL (missing scheme or host): {url!r}"
        raise ParseError(msg)
    return parts


def _fetch_document(
    session: requests.Session, url: str, timeout: float,
) -> tuple[bytes, str | None]:
    """Return the response body and the charset named in its Content-Type, if any."""
    try:
        response = session.get(url, headers=HEADERS, timeout=timeout, allow_redirects=True)
    except requests.RequestException as exc:
        msg = f"Request to {url} failed: {exc}"
        raise UnreachableError(msg) from exc
    if not 200 <= response.status_code < 300:  # noqa: PLR2004
        msg = f"Request to {url} returned HTTP {response.status_code}"
        raise UnreachableError(msg)
    # requests assumes ISO-8859-1 for text/* without a charset; ignore that guess.
    content_type = response.headers.get("Content-Type", "")
    declared = response.encoding if "charset=" in content_type.lower() else None
    return response.content, declared


def _meta_content(soup: BeautifulSoup, **attrs: str) -> str:
    tag: Tag | None = soup.find("meta", attrs=attrs)
    if tag is None:
        return ""
    content = tag.get("content")
    if isinstance(content, str):
        return content.strip()
    return ""


def _title_text(soup: BeautifulSoup) -> str:
    if soup.title is None:
        return ""
    return soup.title.get_text().strip()
