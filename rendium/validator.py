"""Export validation utilities."""

from __future__ import annotations

import collections
import logging
from typing import TYPE_CHECKING

from .config import SYSTEM_FOLDER_NAMES
from .importer import import_bookmarks

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Iterable

    from .models import BookmarkModel, FolderModel, ImportRecord

LOGGER = logging.getLogger(__name__)


def validate_export(
    bookmarks: Iterable[BookmarkModel],
    html_text: str,
    folders: Iterable[FolderModel] | None = None,
) -> None:
    """Re-import rendered export text and check every bookmark survived.

    When ``folders`` is given, each bookmark filed in a live folder must come
    back under that folder's name.
    """
    bookmark_list = list(bookmarks)
    reimported = import_bookmarks(html_text).records
    _assert_counts(bookmark_list, reimported)
    _assert_url_multiset(bookmark_list, reimported)
    if folders is not None:
        _assert_folders(bookmark_list, reimported, {f.id: f.name for f in folders})
    LOGGER.info("Validation successful: all %d bookmarks accounted for", len(bookmark_list))


def _assert_counts(original: list[BookmarkModel], reimported: list[ImportRecord]) -> None:
    if len(original) != len(reimported):
        msg = (
            "Mismatch between stored and exported bookmark counts: "
            f"{len(original)} vs {len(reimported)}"
        )
        raise ValueError(msg)


def _assert_url_multiset(original: list[BookmarkModel], reimported: list[ImportRecord]) -> None:
    original_urls = collections.Counter(b.url for b in original)
    exported_urls = collections.Counter(r.url for r in reimported)
    if original_urls != exported_urls:
        missing = original_urls - exported_urls
        extras = exported_urls - original_urls
        msg = "URL mismatch detected in export"
        raise ValueError(msg, {"missing": dict(missing), "extra": dict(extras)})


def _assert_folders(
    original: list[BookmarkModel],
    reimported: list[ImportRecord],
    folder_names: dict[str, str],
) -> None:
    expected = collections.Counter(
        (b.url, _reimported_folder_name(folder_names.get(b.folder_id or ""))) for b in original
    )
    actual = collections.Counter((r.url, r.folder_name) for r in reimported)
    if expected != actual:
        msg = "Folder assignment mismatch detected in export"
        raise ValueError(msg, {"missing": dict(expected - actual), "extra": dict(actual - expected)})


def _reimported_folder_name(name: str | None) -> str | None:
    # Folders sharing a browser system folder name come back unfiled.
    if not name or name in SYSTEM_FOLDER_NAMES:
        return None
    return name
