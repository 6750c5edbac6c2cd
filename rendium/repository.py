"""Owner-scoped persistence for bookmarks and folders."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from pydantic import ValidationError

from .errors import MalformedDocumentError, NotFoundError, UnauthorizedError
from .models import BookmarkModel, FolderModel, StoreModel, now_millis

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Iterable
    from pathlib import Path

LOGGER = logging.getLogger(__name__)


class BookmarkRepository(ABC):
    """Bookmark persistence. Every owner-facing call is checked against ``user_id``."""

    @abstractmethod
    def list(self, user_id: str, folder_id: str | None = None) -> list[BookmarkModel]:
        """Active bookmarks, newest first, optionally restricted to one folder."""

    @abstractmethod
    def list_trash(self, user_id: str) -> list[BookmarkModel]:
        """Trashed bookmarks, newest first."""

    @abstractmethod
    def get(self, user_id: str, bookmark_id: str) -> BookmarkModel: ...

    @abstractmethod
    def create(  # noqa: PLR0913
        self,
        user_id: str,
        *,
        url: str,
        title: str,
        description: str = "",
        preview_image_url: str = "",
        folder_id: str | None = None,
        pinned: bool = False,
    ) -> BookmarkModel: ...

    @abstractmethod
    def update_metadata(
        self,
        user_id: str,
        bookmark_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
        preview_image_url: str | None = None,
    ) -> BookmarkModel: ...

    @abstractmethod
    def update_metadata_internal(
        self,
        bookmark_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
        preview_image_url: str | None = None,
    ) -> BookmarkModel:
        """Patch metadata without an owner check (background enrichment only)."""

    @abstractmethod
    def move_to_trash(self, user_id: str, bookmark_id: str) -> BookmarkModel: ...

    @abstractmethod
    def restore_from_trash(self, user_id: str, bookmark_id: str) -> BookmarkModel: ...

    @abstractmethod
    def remove(self, user_id: str, bookmark_id: str) -> None: ...

    @abstractmethod
    def toggle_pin(self, user_id: str, bookmark_id: str, *, pinned: bool) -> BookmarkModel: ...

    @abstractmethod
    def move_to_folder(
        self, user_id: str, bookmark_id: str, folder_id: str | None,
    ) -> BookmarkModel: ...


class FolderRepository(ABC):
    """Folder persistence, scoped to an owner."""

    @abstractmethod
    def list(self, user_id: str) -> list[FolderModel]:
        """Folders, newest first."""

    @abstractmethod
    def get(self, user_id: str, folder_id: str) -> FolderModel: ...

    @abstractmethod
    def create(self, user_id: str, name: str, color: str = "") -> FolderModel: ...

    @abstractmethod
    def update(
        self,
        user_id: str,
        folder_id: str,
        *,
        name: str | None = None,
        color: str | None = None,
    ) -> FolderModel: ...

    @abstractmethod
    def remove(self, user_id: str, folder_id: str) -> None:
        """Delete a folder; its bookmarks stay, detached from any folder."""


class Storage:
    """In-memory document shared by the repositories, guarded by one lock."""

    def __init__(self, document: StoreModel | None = None) -> None:
        self.document = document or StoreModel()
        self.lock = threading.RLock()

    def commit(self) -> None:
        """Persist the document after a mutation (no-op in memory)."""


class JsonFileStorage(Storage):
    """Storage backed by a JSON file, rewritten after every mutation."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(self._load(path))

    @staticmethod
    def _load(path: Path) -> StoreModel:
        if not path.exists():
            LOGGER.debug("No store at %s; starting empty", path)
            return StoreModel()
        try:
            return StoreModel.model_validate_json(path.read_text(encoding="utf-8"))
        except ValidationError as exc:
            msg = f"Invalid store file {path}: {exc}"
            raise MalformedDocumentError(msg) from exc

    def commit(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(self.document.model_dump_json(indent=2), encoding="utf-8")
        LOGGER.debug(
            "Wrote %d bookmarks and %d folders to %s",
            len(self.document.bookmarks),
            len(self.document.folders),
            self.path,
        )


def _newest_first(items: Iterable[BookmarkModel | FolderModel]) -> list:
    return sorted(reversed(list(items)), key=lambda item: item.created_at, reverse=True)


def _require_user(user_id: str) -> None:
    if not user_id:
        msg = "Unauthorized"
        raise UnauthorizedError(msg)


class StorageBookmarkRepository(BookmarkRepository):
    """BookmarkRepository over a ``Storage`` document."""

    def __init__(self, storage: Storage) -> None:
        self._storage = storage

    def list(self, user_id: str, folder_id: str | None = None) -> list[BookmarkModel]:
        if not user_id:
            return []
        with self._storage.lock:
            items = [
                b.model_copy()
                for b in self._storage.document.bookmarks
                if b.user_id == user_id and not b.is_deleted
                and (folder_id is None or b.folder_id == folder_id)
            ]
        return _newest_first(items)

    def list_trash(self, user_id: str) -> list[BookmarkModel]:
        if not user_id:
            return []
        with self._storage.lock:
            items = [
                b.model_copy()
                for b in self._storage.document.bookmarks
                if b.user_id == user_id and b.is_deleted
            ]
        return _newest_first(items)

    def get(self, user_id: str, bookmark_id: str) -> BookmarkModel:
        with self._storage.lock:
            return self._owned(user_id, bookmark_id).model_copy()

    def create(  # noqa: PLR0913
        self,
        user_id: str,
        *,
        url: str,
        title: str,
        description: str = "",
        preview_image_url: str = "",
        folder_id: str | None = None,
        pinned: bool = False,
    ) -> BookmarkModel:
        _require_user(user_id)
        bookmark = BookmarkModel(
            title=title,
            url=url,
            description=description,
            preview_image_url=preview_image_url,
            folder_id=folder_id,
            pinned=pinned,
            user_id=user_id,
        )
        with self._storage.lock:
            self._storage.document.bookmarks.append(bookmark)
            self._storage.commit()
        LOGGER.debug("Created bookmark %s for %s", bookmark.id, url)
        return bookmark.model_copy()

    def update_metadata(
        self,
        user_id: str,
        bookmark_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
        preview_image_url: str | None = None,
    ) -> BookmarkModel:
        with self._storage.lock:
            bookmark = self._owned(user_id, bookmark_id)
            return self._patch_metadata(bookmark, title, description, preview_image_url)

    def update_metadata_internal(
        self,
        bookmark_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
        preview_image_url: str | None = None,
    ) -> BookmarkModel:
        with self._storage.lock:
            bookmark = self._find(bookmark_id)
            if bookmark is None:
                msg = f"Bookmark {bookmark_id} not found"
                raise NotFoundError(msg)
            return self._patch_metadata(bookmark, title, description, preview_image_url)

    def move_to_trash(self, user_id: str, bookmark_id: str) -> BookmarkModel:
        now = now_millis()
        return self._patch(user_id, bookmark_id, is_deleted=True, deleted_at=now, updated_at=now)

    def restore_from_trash(self, user_id: str, bookmark_id: str) -> BookmarkModel:
        return self._patch(
            user_id, bookmark_id, is_deleted=False, deleted_at=None, updated_at=now_millis(),
        )

    def remove(self, user_id: str, bookmark_id: str) -> None:
        with self._storage.lock:
            bookmark = self._owned(user_id, bookmark_id)
            self._storage.document.bookmarks.remove(bookmark)
            self._storage.commit()

    def toggle_pin(self, user_id: str, bookmark_id: str, *, pinned: bool) -> BookmarkModel:
        return self._patch(user_id, bookmark_id, pinned=pinned, updated_at=now_millis())

    def move_to_folder(
        self, user_id: str, bookmark_id: str, folder_id: str | None,
    ) -> BookmarkModel:
        with self._storage.lock:
            if folder_id is not None and not any(
                f.id == folder_id and f.user_id == user_id
                for f in self._storage.document.folders
            ):
                msg = f"Folder {folder_id} not found"
                raise NotFoundError(msg)
            return self._patch(user_id, bookmark_id, folder_id=folder_id, updated_at=now_millis())

    def _find(self, bookmark_id: str) -> BookmarkModel | None:
        for bookmark in self._storage.document.bookmarks:
            if bookmark.id == bookmark_id:
                return bookmark
        return None

    def _owned(self, user_id: str, bookmark_id: str) -> BookmarkModel:
        bookmark = self._find(bookmark_id)
        if bookmark is None or not user_id or bookmark.user_id != user_id:
            msg = "Unauthorized"
            raise UnauthorizedError(msg)
        return bookmark

    def _patch(self, user_id: str, bookmark_id: str, **changes: object) -> BookmarkModel:
        with self._storage.lock:
            bookmark = self._owned(user_id, bookmark_id)
            for key, value in changes.items():
                setattr(bookmark, key, value)
            self._storage.commit()
            return bookmark.model_copy()

    def _patch_metadata(
        self,
        bookmark: BookmarkModel,
        title: str | None,
        description: str | None,
        preview_image_url: str | None,
    ) -> BookmarkModel:
        if title is not None:
            bookmark.title = title
        if description is not None:
            bookmark.description = description
        if preview_image_url is not None:
            bookmark.preview_image_url = preview_image_url
        bookmark.updated_at = now_millis()
        self._storage.commit()
        return bookmark.model_copy()


class StorageFolderRepository(FolderRepository):
    """FolderRepository over a ``Storage`` document."""

    def __init__(self, storage: Storage) -> None:
        self._storage = storage

    def list(self, user_id: str) -> list[FolderModel]:
        if not user_id:
            return []
        with self._storage.lock:
            items = [f.model_copy() for f in self._storage.document.folders if f.user_id == user_id]
        return _newest_first(items)

    def get(self, user_id: str, folder_id: str) -> FolderModel:
        with self._storage.lock:
            return self._owned(user_id, folder_id).model_copy()

    def create(self, user_id: str, name: str, color: str = "") -> FolderModel:
        _require_user(user_id)
        folder = FolderModel(name=name, color=color, user_id=user_id)
        with self._storage.lock:
            self._storage.document.folders.append(folder)
            self._storage.commit()
        LOGGER.debug("Created folder %s (%s)", folder.id, name)
        return folder.model_copy()

    def update(
        self,
        user_id: str,
        folder_id: str,
        *,
        name: str | None = None,
        color: str | None = None,
    ) -> FolderModel:
        with self._storage.lock:
            folder = self._owned(user_id, folder_id)
            if name is not None:
                folder.name = name
            if color is not None:
                folder.color = color
            folder.updated_at = now_millis()
            self._storage.commit()
            return folder.model_copy()

    def remove(self, user_id: str, folder_id: str) -> None:
        with self._storage.lock:
            folder = self._owned(user_id, folder_id)
            self._storage.document.folders.remove(folder)
            for bookmark in self._storage.document.bookmarks:
                if bookmark.folder_id == folder_id:
                    bookmark.folder_id = None
            self._storage.commit()

    def _owned(self, user_id: str, folder_id: str) -> FolderModel:
        for folder in self._storage.document.folders:
            if folder.id == folder_id:
                if not user_id or folder.user_id != user_id:
                    msg = "Unauthorized"
                    raise UnauthorizedError(msg)
                return folder
        msg = f"Folder {folder_id} not found"
        raise NotFoundError(msg)


def open_repositories(
    path: Path | None = None,
) -> tuple[BookmarkRepository, FolderRepository]:
    """Open bookmark and folder repositories over one shared storage.

    ``path`` selects a JSON file store; ``None`` keeps everything in memory.
    """
    storage = JsonFileStorage(path) if path is not None else Storage()
    return StorageBookmarkRepository(storage), StorageFolderRepository(storage)
