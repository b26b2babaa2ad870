"""
Archive entry lookup for zip imports.

Archives built on macOS carry a `__MACOSX/` metadata tree with resource-fork
copies of every file; those entries are never candidates.
"""

from __future__ import annotations

import logging
import zlib
import zipfile
from collections.abc import Iterable
from pathlib import Path, PurePosixPath

from core import uploads

from .spreadsheet import XLS_EXTENSIONS, XLSX_EXTENSIONS

METADATA_DIR = "__MACOSX"

logger = logging.getLogger(__name__)


def _is_candidate(entry: zipfile.ZipInfo) -> bool:
    return not entry.is_dir() and not entry.filename.startswith(METADATA_DIR)


def find_spreadsheet_entries(entries: Iterable[zipfile.ZipInfo]) -> list[zipfile.ZipInfo]:
    spreadsheet_exts = XLSX_EXTENSIONS | XLS_EXTENSIONS
    return [
        e
        for e in entries
        if _is_candidate(e) and PurePosixPath(e.filename).suffix.lower() in spreadsheet_exts
    ]


def find_photo_entry(entries: Iterable[zipfile.ZipInfo], declared_name: str) -> zipfile.ZipInfo | None:
    """
    First candidate entry whose path contains `declared_name`, ignoring case.
    """
    needle = (declared_name or "").strip().lower()
    if not needle:
        return None
    for entry in entries:
        if _is_candidate(entry) and needle in entry.filename.lower():
            return entry
    return None


def resolve_photo(
    archive: zipfile.ZipFile,
    declared_name: str | None,
    *,
    username: str,
    upload_dir: Path,
) -> str | None:
    """
    Extract the photo a row refers to and return its stored `uploads/<name>` path.

    Returns None when there is no matching entry or it cannot be written.
    """
    if not declared_name:
        return None

    entry = find_photo_entry(archive.infolist(), declared_name)
    if entry is None:
        logger.warning("photo_not_in_archive declared=%s username=%s", declared_name, username)
        return None

    ext = PurePosixPath(entry.filename).suffix
    target = upload_dir / f"{uploads.timestamp_ms()}-{uploads.safe_name(username)}{ext}"
    try:
        data = archive.read(entry)
        upload_dir.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
    except (OSError, zipfile.BadZipFile, zlib.error, RuntimeError) as exc:
        # RuntimeError: encrypted entries without a password.
        logger.warning("photo_extract_failed entry=%s username=%s error=%s", entry.filename, username, exc)
        return None

    logger.info("photo_extracted entry=%s path=%s", entry.filename, target.as_posix())
    return uploads.public_path(target.name)
