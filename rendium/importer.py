"""Parse a Netscape bookmark file into import records and folder drafts."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from bs4 import BeautifulSoup, Tag

from .config import SYSTEM_FOLDER_NAMES
from .models import FolderDraft, ImportRecord, ImportResult

if TYPE_CHECKING:  # pragma: no cover
    from pathlib import Path

LOGGER = logging.getLogger(__name__)


def import_bookmark_file(path: Path) -> ImportResult:
    """Read an exported bookmark file from disk and parse it."""
    LOGGER.debug("Importing bookmark export from %s", path)
    return import_bookmarks(path.read_text(encoding="utf-8"))


def import_bookmarks(text: str) -> ImportResult:
    """Parse the text of a Netscape bookmark file.

    Every ``<DT>`` holding an anchor and no ``<H3>`` becomes one record, in
    document order. Each record is attached to its nearest enclosing folder
    heading unless that heading is a browser system folder. Unparseable input
    yields an empty result.
    """
    try:
        soup = BeautifulSoup(text, "html5lib")
    except Exception as exc:  # noqa: BLE001
        LOGGER.warning("Bookmark file could not be parsed: %s", exc)
        return ImportResult.empty()

    result = ImportResult()
    drafts: dict[str, FolderDraft] = {}

    for container in soup.find_all("dt"):
        anchor = container.find("a")
        if anchor is None or container.find("h3") is not None:
            continue

        folder_name: str | None = None
        heading = _enclosing_folder_heading(container)
        if heading is not None:
            name = heading.get_text()
            if name and name not in SYSTEM_FOLDER_NAMES:
                if name not in drafts:
                    drafts[name] = FolderDraft(
                        name=name,
                        color=_attr(heading, "color"),
                        import_order=len(drafts),
                    )
                    result.folders.append(drafts[name])
                folder_name = name

        result.records.append(
            ImportRecord(
                url=_attr(anchor, "href"),
                title=anchor.get_text(),
                folder_name=folder_name,
            ),
        )

    LOGGER.info(
        "Parsed %d bookmark entries in %d folders", len(result.records), len(result.folders),
    )
    return result


def _enclosing_folder_heading(container: Tag) -> Tag | None:
    """Walk up to the first ``<DL>`` whose previous sibling is (or holds) an ``<H3>``."""
    parent = container.parent
    while isinstance(parent, Tag) and parent.name not in {"html", "[document]"}:
        if parent.name == "dl":
            previous = parent.find_previous_sibling()
            if previous is not None:
                if previous.name == "h3":
                    return previous
                heading = previous.find("h3")
                if heading is not None:
                    return heading
        parent = parent.parent
    return None


def _attr(tag: Tag, name: str) -> str:
    value = tag.get(name)
    if isinstance(value, list):
        return " ".join(value)
    return value or ""
