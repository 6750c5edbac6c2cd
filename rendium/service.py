"""Bookmark and folder workflows on top of the repositories."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING

from .config import DEFAULT_ENRICH_WORKERS, DEFAULT_FETCH_TIMEOUT
from .errors import ParseError, RendiumError
from .html_writer import render_export
from .importer import import_bookmarks
from .metadata import hostname_fallback, scrape
from .models import BookmarkModel, ImportSummary

if TYPE_CHECKING:  # pragma: no cover
    import requests

    from .models import FolderModel
    from .repository import BookmarkRepository, FolderRepository

LOGGER = logging.getLogger(__name__)


class BackgroundEnricher:
    """Fills in page metadata for saved bookmarks on worker threads.

    Each submitted job scrapes the bookmark URL once and patches title,
    description and preview image. A failed scrape is logged and leaves the
    bookmark untouched; it never reaches the code that created the bookmark.
    """

    def __init__(
        self,
        bookmarks: BookmarkRepository,
        *,
        max_workers: int = DEFAULT_ENRICH_WORKERS,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        self._bookmarks = bookmarks
        self._timeout = timeout
        self._session = session
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, max_workers), thread_name_prefix="rendium-enrich",
        )

    def submit(self, bookmark_id: str, url: str) -> Future[BookmarkModel | None]:
        """Queue enrichment of one bookmark."""
        return self._executor.submit(self._work, bookmark_id, url)

    def shutdown(self, *, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> BackgroundEnricher:
        return self

    def __exit__(self, *_exc: object) -> None:
        self.shutdown(wait=True)

    def _work(self, bookmark_id: str, url: str) -> BookmarkModel | None:
        try:
            result = scrape(url, session=self._session, timeout=self._timeout)
            return self._bookmarks.update_metadata_internal(
                bookmark_id,
                title=result.title,
                description=result.description,
                preview_image_url=result.preview_image_url,
            )
        except RendiumError as exc:
            LOGGER.warning("Background enrichment failed for %s: %s", url, exc)
            return None


class BookmarkService:
    """Everything a signed-in user can do with their bookmarks and folders."""

    def __init__(
        self,
        bookmarks: BookmarkRepository,
        folders: FolderRepository,
        enricher: BackgroundEnricher | None = None,
    ) -> None:
        self.bookmarks = bookmarks
        self.folders = folders
        self._enricher = enricher

    # Bookmarks ----------------------------------------------------------------

    def create_bookmark(  # noqa: PLR0913
        self,
        user_id: str,
        url: str,
        *,
        title: str | None = None,
        description: str = "",
        preview_image_url: str = "",
        folder_id: str | None = None,
        pinned: bool = False,
        enrich: bool = True,
    ) -> BookmarkModel:
        """Save a bookmark, then enrich it in the background when an enricher is set.

        A missing title defaults to the URL's host name (``ParseError`` when the
        URL cannot be parsed).
        """
        bookmark = self.bookmarks.create(
            user_id,
            url=url,
            title=title or hostname_fallback(url).title,
            description=description,
            preview_image_url=preview_image_url,
            folder_id=folder_id,
            pinned=pinned,
        )
        if enrich and self._enricher is not None:
            self._enricher.submit(bookmark.id, url)
        return bookmark

    def list_bookmarks(self, user_id: str, folder_id: str | None = None) -> list[BookmarkModel]:
        return self.bookmarks.list(user_id, folder_id)

    def list_trash(self, user_id: str) -> list[BookmarkModel]:
        return self.bookmarks.list_trash(user_id)

    def update_metadata(
        self,
        user_id: str,
        bookmark_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
        preview_image_url: str | None = None,
    ) -> BookmarkModel:
        return self.bookmarks.update_metadata(
            user_id,
            bookmark_id,
            title=title,
            description=description,
            preview_image_url=preview_image_url,
        )

    def move_to_trash(self, user_id: str, bookmark_id: str) -> BookmarkModel:
        return self.bookmarks.move_to_trash(user_id, bookmark_id)

    def restore_from_trash(self, user_id: str, bookmark_id: str) -> BookmarkModel:
        return self.bookmarks.restore_from_trash(user_id, bookmark_id)

    def remove(self, user_id: str, bookmark_id: str) -> None:
        self.bookmarks.remove(user_id, bookmark_id)

    def toggle_pin(self, user_id: str, bookmark_id: str, *, pinned: bool) -> BookmarkModel:
        return self.bookmarks.toggle_pin(user_id, bookmark_id, pinned=pinned)

    def move_to_folder(
        self, user_id: str, bookmark_id: str, folder_id: str | None,
    ) -> BookmarkModel:
        return self.bookmarks.move_to_folder(user_id, bookmark_id, folder_id)

    def empty_trash(self, user_id: str) -> int:
        """Permanently delete every trashed bookmark; returns how many went."""
        trashed = self.bookmarks.list_trash(user_id)
        for bookmark in trashed:
            self.bookmarks.remove(user_id, bookmark.id)
        LOGGER.info("Emptied trash: %d bookmarks deleted", len(trashed))
        return len(trashed)

    def clear_all(self, user_id: str) -> int:
        """Delete every bookmark (active and trashed) and every folder of the user."""
        everything = self.bookmarks.list(user_id) + self.bookmarks.list_trash(user_id)
        for bookmark in everything:
            self.bookmarks.remove(user_id, bookmark.id)
        folders = self.folders.list(user_id)
        for folder in folders:
            self.folders.remove(user_id, folder.id)
        LOGGER.info("Cleared %d bookmarks and %d folders", len(everything), len(folders))
        return len(everything)

    # Folders ------------------------------------------------------------------

    def list_folders(self, user_id: str) -> list[FolderModel]:
        return self.folders.list(user_id)

    def create_folder(self, user_id: str, name: str, color: str = "") -> FolderModel:
        return self.folders.create(user_id, name, color)

    def update_folder(
        self,
        user_id: str,
        folder_id: str,
        *,
        name: str | None = None,
        color: str | None = None,
    ) -> FolderModel:
        return self.folders.update(user_id, folder_id, name=name, color=color)

    def remove_folder(self, user_id: str, folder_id: str) -> None:
        self.folders.remove(user_id, folder_id)

    # Import / export ----------------------------------------------------------

    def import_text(self, user_id: str, text: str, *, enrich: bool = True) -> ImportSummary:
        """Persist every record of a bookmark file and queue each for enrichment.

        A folder is created the first time one of its records is kept, so a
        folder holding only unusable entries leaves nothing behind.
        """
        result = import_bookmarks(text)
        drafts = {draft.name: draft for draft in result.folders}
        folder_ids: dict[str, str] = {}

        skipped = 0
        for record in result.records:
            if not record.url.strip():
                LOGGER.debug("Skipping import entry without a URL (%r)", record.title)
                skipped += 1
                continue
            folder_id = None
            if record.folder_name:
                if record.folder_name not in folder_ids:
                    draft = drafts[record.folder_name]
                    folder_ids[draft.name] = self.folders.create(
                        user_id, draft.name, draft.color,
                    ).id
                folder_id = folder_ids[record.folder_name]
            bookmark = self.bookmarks.create(
                user_id,
                url=record.url,
                title=record.title.strip() or _default_title(record.url),
                folder_id=folder_id,
                pinned=False,
            )
            if enrich and self._enricher is not None:
                self._enricher.submit(bookmark.id, record.url)

        summary = ImportSummary(
            imported=len(result.records) - skipped,
            folders_created=len(folder_ids),
            skipped=skipped,
        )
        LOGGER.info(
            "Imported %d bookmarks into %d new folders", summary.imported, summary.folders_created,
        )
        return summary

    def export_html(self, user_id: str) -> str:
        """Render the user's active bookmarks as a Netscape bookmark file."""
        return render_export(self.folders.list(user_id), self.bookmarks.list(user_id))


def _default_title(url: str) -> str:
    try:
        return hostname_fallback(url).title
    except ParseError:
        return url
