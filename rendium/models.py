"""Data models for the rendium bookmark manager."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field

from attrs import define
from pydantic import BaseModel, Field, field_validator


def now_millis() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass(slots=True, frozen=True)
class MetadataResult:
    """Title, description and preview image scraped from a page."""

    title: str
    description: str = ""
    preview_image_url: str = ""


@dataclass(slots=True, frozen=True)
class ImportRecord:
    """One link entry found in a bookmark file."""

    url: str
    title: str
    folder_name: str | None = None


@dataclass(slots=True, frozen=True)
class FolderDraft:
    """Folder identity assigned during an import run, before it is persisted."""

    name: str
    color: str
    import_order: int


@dataclass(slots=True)
class ImportResult:
    """Records and de-duplicated folder drafts produced by one import run."""

    records: list[ImportRecord] = field(default_factory=list)
    folders: list[FolderDraft] = field(default_factory=list)

    @classmethod
    def empty(cls) -> ImportResult:
        return cls()


@dataclass(slots=True, frozen=True)
class ImportSummary:
    """Outcome of persisting an import run."""

    imported: int
    folders_created: int
    skipped: int = 0

    @property
    def succeeded(self) -> bool:
        return self.imported > 0


class BookmarkModel(BaseModel):
    """Persisted bookmark."""

    id: str = Field(default_factory=new_id)
    title: str
    url: str
    description: str = ""
    preview_image_url: str = ""
    folder_id: str | None = None
    pinned: bool = False
    is_deleted: bool = False
    deleted_at: int | None = None
    user_id: str
    created_at: int = Field(default_factory=now_millis)
    updated_at: int = Field(default_factory=now_millis)

    @field_validator("description", "preview_image_url", mode="before")
    @classmethod
    def _none_to_empty(cls, value: str | None) -> str:
        return value or ""


class FolderModel(BaseModel):
    """Persisted folder."""

    id: str = Field(default_factory=new_id)
    name: str
    color: str = ""
    user_id: str
    created_at: int = Field(default_factory=now_millis)
    updated_at: int = Field(default_factory=now_millis)

    @field_validator("color", mode="before")
    @classmethod
    def _none_to_empty(cls, value: str | None) -> str:
        return value or ""


class StoreModel(BaseModel):
    """On-disk document holding every bookmark and folder."""

    bookmarks: list[BookmarkModel] = Field(default_factory=list)
    folders: list[FolderModel] = Field(default_factory=list)


@define(slots=True, init=False)
class ExportFolder:
    """A folder and its bookmarks, as laid out in an exported file."""

    folder: FolderModel | None
    bookmarks: list[BookmarkModel]

    def __init__(self, folder: FolderModel | None) -> None:
        """Initialise the section; ``None`` holds bookmarks outside any folder."""
        self.folder = folder
        self.bookmarks = []

    def add_bookmark(self, bookmark: BookmarkModel) -> None:
        """Add a bookmark to the section."""
        self.bookmarks.append(bookmark)
