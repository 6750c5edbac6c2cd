"""CLI entry point for the rendium bookmark manager.

Wraps the bookmark service: metadata lookup, bookmark and folder management,
trash handling, and Netscape bookmark file import/export against a local JSON
store. Each subcommand maps to one small handler function.
"""

from __future__ import annotations

# Standard library imports (alphabetical within groups)
import argparse
import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import TYPE_CHECKING

# Third-party imports
from dotenv import load_dotenv

# Internal imports
from rendium.config import DEFAULT_FETCH_TIMEOUT, DEFAULT_STORE_PATH
from rendium.errors import RendiumError
from rendium.html_writer import write_export
from rendium.metadata import lookup_title
from rendium.repository import open_repositories
from rendium.service import BackgroundEnricher, BookmarkService
from rendium.validator import validate_export

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Callable

    from rendium.models import BookmarkModel

LOGGER = logging.getLogger("rendium")


def configure_logging(*, verbose: bool) -> None:
    """Configure root logging (debug when verbose)."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def _print_json(payload: object) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))  # noqa: T201


def _bookmark_line(bookmark: BookmarkModel) -> str:
    pin = "*" if bookmark.pinned else " "
    return f"{pin} {bookmark.id}  {bookmark.title}  <{bookmark.url}>"


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Personal bookmark manager")
    parser.add_argument(
        "--store",
        type=Path,
        help=(
            "Path to the JSON store. Defaults to RENDIUM_STORE from the environment,"
            f" else {DEFAULT_STORE_PATH}"
        ),
    )
    parser.add_argument(
        "--user",
        help="Owner id for every operation (defaults to RENDIUM_USER from the environment)",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    fetch = sub.add_parser("fetch", help="Print the title, description and image of a page")
    fetch.add_argument("url")
    fetch.add_argument(
        "--timeout", type=float, default=DEFAULT_FETCH_TIMEOUT, help="Fetch timeout in seconds",
    )

    add = sub.add_parser("add", help="Save a bookmark")
    add.add_argument("url")
    add.add_argument("--title", help="Title to use instead of the host name")
    add.add_argument("--folder", help="Folder id to file the bookmark under")
    add.add_argument("--pin", action="store_true", help="Pin the bookmark")
    add.add_argument(
        "--no-enrich", action="store_true", help="Skip fetching page metadata after saving",
    )

    listing = sub.add_parser("list", help="List bookmarks")
    listing.add_argument("--folder", help="Only bookmarks in this folder id")
    listing.add_argument("--trash", action="store_true", help="List trashed bookmarks instead")

    for name, help_text in (
        ("trash", "Move a bookmark to the trash"),
        ("restore", "Restore a bookmark from the trash"),
        ("delete", "Permanently delete a bookmark"),
        ("pin", "Pin a bookmark"),
        ("unpin", "Unpin a bookmark"),
    ):
        sub.add_parser(name, help=help_text).add_argument("bookmark_id")

    move = sub.add_parser("move", help="Move a bookmark into a folder (or out of any folder)")
    move.add_argument("bookmark_id")
    move.add_argument("--folder", help="Target folder id; omit to unfile")

    sub.add_parser("folders", help="List folders")
    folder_add = sub.add_parser("folder-add", help="Create a folder")
    folder_add.add_argument("name")
    folder_add.add_argument("--color", default="", help="Folder colour")
    folder_edit = sub.add_parser("folder-edit", help="Rename or recolour a folder")
    folder_edit.add_argument("folder_id")
    folder_edit.add_argument("--name")
    folder_edit.add_argument("--color")
    sub.add_parser("folder-delete", help="Delete a folder").add_argument("folder_id")

    import_cmd = sub.add_parser("import", help="Import a browser bookmark HTML export")
    import_cmd.add_argument("path", type=Path)
    import_cmd.add_argument(
        "--no-enrich", action="store_true", help="Skip fetching page metadata for imported links",
    )
    export_cmd = sub.add_parser("export", help="Export bookmarks as Netscape bookmark HTML")
    export_cmd.add_argument("path", type=Path)
    export_cmd.add_argument(
        "--verify", action="store_true", help="Re-import the written file and compare",
    )

    sub.add_parser("empty-trash", help="Permanently delete everything in the trash")
    sub.add_parser("clear-all", help="Delete all bookmarks and folders")
    return parser.parse_args(argv)


def _resolve_store(path_arg: Path | None) -> Path:
    resolved = path_arg or os.getenv("RENDIUM_STORE")
    return Path(resolved) if resolved else DEFAULT_STORE_PATH


def _resolve_user(user_arg: str | None) -> str:
    resolved = user_arg or os.getenv("RENDIUM_USER")
    if not resolved:
        msg = "No user provided. Supply --user or set RENDIUM_USER in env."
        raise SystemExit(msg)
    return resolved


def _handle_fetch(args: argparse.Namespace) -> None:
    result = lookup_title(args.url, args.url, timeout=args.timeout)
    _print_json(asdict(result))


def _handle_add(service: BookmarkService, user: str, args: argparse.Namespace) -> None:
    bookmark = service.create_bookmark(
        user,
        args.url,
        title=args.title,
        folder_id=args.folder,
        pinned=args.pin,
        enrich=not args.no_enrich,
    )
    LOGGER.info("Saved bookmark %s", bookmark.id)


def _handle_list(service: BookmarkService, user: str, args: argparse.Namespace) -> None:
    if args.trash:
        bookmarks = service.list_trash(user)
    else:
        bookmarks = service.list_bookmarks(user, args.folder)
    for bookmark in bookmarks:
        print(_bookmark_line(bookmark))  # noqa: T201


def _handle_folders(service: BookmarkService, user: str, _args: argparse.Namespace) -> None:
    for folder in service.list_folders(user):
        color = f" [{folder.color}]" if folder.color else ""
        print(f"{folder.id}  {folder.name}{color}")  # noqa: T201


def _handle_import(service: BookmarkService, user: str, args: argparse.Namespace) -> None:
    if not args.path.exists():
        msg = f"Bookmark file not found: {args.path}"
        raise FileNotFoundError(msg)
    summary = service.import_text(
        user, args.path.read_text(encoding="utf-8"), enrich=not args.no_enrich,
    )
    if not summary.succeeded:
        msg = "Failed to import data. Make sure it is a valid HTML bookmark file."
        raise SystemExit(msg)
    LOGGER.info(
        "Successfully imported %d bookmarks (%d folders created, %d skipped)",
        summary.imported,
        summary.folders_created,
        summary.skipped,
    )


def _handle_export(service: BookmarkService, user: str, args: argparse.Namespace) -> None:
    folders = service.list_folders(user)
    bookmarks = service.list_bookmarks(user)
    write_export(args.path, folders, bookmarks)
    LOGGER.info("Exported %d bookmarks to %s", len(bookmarks), args.path)
    if args.verify:
        validate_export(bookmarks, args.path.read_text(encoding="utf-8"), folders)


def _handle_bookmark_action(service: BookmarkService, user: str, args: argparse.Namespace) -> None:
    bookmark_id = args.bookmark_id
    if args.command == "trash":
        service.move_to_trash(user, bookmark_id)
    elif args.command == "restore":
        service.restore_from_trash(user, bookmark_id)
    elif args.command == "delete":
        service.remove(user, bookmark_id)
    elif args.command in {"pin", "unpin"}:
        service.toggle_pin(user, bookmark_id, pinned=args.command == "pin")
    elif args.command == "move":
        service.move_to_folder(user, bookmark_id, args.folder)
    LOGGER.info("%s: done for bookmark %s", args.command, bookmark_id)


def _handle_folder_action(service: BookmarkService, user: str, args: argparse.Namespace) -> None:
    if args.command == "folder-add":
        folder = service.create_folder(user, args.name, args.color)
        print(folder.id)  # noqa: T201
    elif args.command == "folder-edit":
        service.update_folder(user, args.folder_id, name=args.name, color=args.color)
    elif args.command == "folder-delete":
        service.remove_folder(user, args.folder_id)


def _handle_cleanup(service: BookmarkService, user: str, args: argparse.Namespace) -> None:
    if args.command == "empty-trash":
        deleted = service.empty_trash(user)
    else:
        deleted = service.clear_all(user)
    LOGGER.info("Permanently deleted %d bookmarks", deleted)


HANDLERS: dict[str, Callable[[BookmarkService, str, argparse.Namespace], None]] = {
    "add": _handle_add,
    "list": _handle_list,
    "trash": _handle_bookmark_action,
    "restore": _handle_bookmark_action,
    "delete": _handle_bookmark_action,
    "pin": _handle_bookmark_action,
    "unpin": _handle_bookmark_action,
    "move": _handle_bookmark_action,
    "folders": _handle_folders,
    "folder-add": _handle_folder_action,
    "folder-edit": _handle_folder_action,
    "folder-delete": _handle_folder_action,
    "import": _handle_import,
    "export": _handle_export,
    "empty-trash": _handle_cleanup,
    "clear-all": _handle_cleanup,
}


def main(argv: list[str] | None = None) -> int:
    """Entry point for the rendium CLI."""
    load_dotenv()
    args = _parse_args(argv)
    configure_logging(verbose=args.verbose)

    if args.command == "fetch":  # Early dispatch: needs no store or user
        _handle_fetch(args)
        return 0

    user = _resolve_user(args.user)
    try:
        bookmarks, folders = open_repositories(_resolve_store(args.store))
        with BackgroundEnricher(bookmarks) as enricher:
            HANDLERS[args.command](BookmarkService(bookmarks, folders, enricher), user, args)
    except RendiumError as exc:
        LOGGER.error("%s failed: %s", args.command, exc)  # noqa: TRY400
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
