"""Functions for rendering bookmarks as a Netscape bookmark file."""

from __future__ import annotations

import html
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Iterable
    from pathlib import Path

from .models import BookmarkModel, ExportFolder, FolderModel

HTML_HEADER = """<!DOCTYPE NETSCAPE-Bookmark-file-1>
<!-- This is an automatically generated file.
     It will be read and overwritten.
     DO NOT EDIT! -->
<META HTTP-EQUIV="Content-Type" CONTENT="text/html; charset=UTF-8">
<TITLE>Bookmarks</TITLE>
<H1>Bookmarks</H1>
"""


def build_sections(
    folders: Iterable[FolderModel], bookmarks: Iterable[BookmarkModel],
) -> list[ExportFolder]:
    """Group bookmarks by folder; the last section holds bookmarks outside any live folder."""
    sections = {folder.id: ExportFolder(folder) for folder in folders}
    unassigned = ExportFolder(None)
    for bookmark in bookmarks:
        section = sections.get(bookmark.folder_id) if bookmark.folder_id else None
        (section or unassigned).add_bookmark(bookmark)
    return [*sections.values(), unassigned]


def render_export(folders: Iterable[FolderModel], bookmarks: Iterable[BookmarkModel]) -> str:
    """Render folders and their bookmarks as Netscape bookmark HTML."""
    lines: list[str] = [HTML_HEADER.strip(), "<DL><p>"]
    for section in build_sections(folders, bookmarks):
        indent = "    "
        if section.folder is not None:
            lines.append(f"{indent}{_folder_heading(section.folder)}")
            lines.append(f"{indent}<DL><p>")
            indent = "        "
        lines.extend(f"{indent}{_bookmark_entry(b)}" for b in section.bookmarks)
        if section.folder is not None:
            lines.append("    </DL><p>")
    lines.append("</DL><p>")
    return "\n".join(lines)


def _folder_heading(folder: FolderModel) -> str:
    color = f' COLOR="{html.escape(folder.color, quote=True)}"' if folder.color else ""
    return (
        f'<DT><H3 ADD_DATE="{folder.created_at // 1000}" LAST_MODIFIED="0"{color}>'
        f"{html.escape(folder.name)}</H3>"
    )


def _bookmark_entry(bookmark: BookmarkModel) -> str:
    href = html.escape(bookmark.url, quote=True)
    return (
        f'<DT><A HREF="{href}" ADD_DATE="{bookmark.created_at // 1000}">'
        f"{html.escape(bookmark.title)}</A>"
    )


def write_export(
    output_path: Path, folders: Iterable[FolderModel], bookmarks: Iterable[BookmarkModel],
) -> None:
    """Write the bookmarks to an HTML file."""
    output_path.write_text(render_export(folders, bookmarks) + "\n", encoding="utf-8")
