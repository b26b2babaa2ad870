"""
Multipart upload handling.

- Validate durable uploads by content type first, extension as fallback;
  bulk-import sources by extension only
- Stream the body to disk with a size limit
- Give every stored file a unique `<ms-timestamp>-<original name>` name

Durable files (photos, attachments) land in `UPLOAD_DIR` and are served under
`/uploads`. Bulk-import sources are staged in `UPLOAD_DIR/tmp` and removed
with `discard()` once processed.
"""

from __future__ import annotations

import logging
import re
import time
from pathlib import Path, PurePosixPath

from fastapi import HTTPException, UploadFile

from . import settings

ALLOWED_CONTENT_TYPE_MARKERS = ("pdf", "document", "sheet", "excel", "csv", "zip")

ALLOWED_EXTENSIONS = {
    ".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".heic",
    ".pdf", ".doc", ".docx", ".odt", ".txt",
    ".xls", ".xlsx", ".ods", ".csv",
    ".zip",
}

SPREADSHEET_EXTENSIONS = {".xlsx", ".xls", ".csv"}
ARCHIVE_EXTENSIONS = {".zip"}

# URL prefix of the static mount serving `UPLOAD_DIR`.
PUBLIC_PREFIX = "uploads"

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")

logger = logging.getLogger(__name__)


def _file_ext(filename: str) -> str:
    return Path(filename).suffix.lower()


def timestamp_ms() -> int:
    return int(time.time() * 1000)


def safe_name(name: str) -> str:
    """
    Reduce a client-supplied name to something safe to use as a file name.
    """
    cleaned = _UNSAFE_NAME_CHARS.sub("_", Path(name or "").name).strip("._")
    return cleaned or "file"


def public_path(name: str) -> str:
    """
    Stored form of an uploaded file: `uploads/<name>`, servable by the mount.
    """
    return f"{PUBLIC_PREFIX}/{name}"


def stored_file(path: str) -> Path:
    """
    Map a stored `uploads/<name>` path back to the file under `UPLOAD_DIR`.
    """
    return settings.upload_dir() / PurePosixPath(path).name


def is_allowed(file: UploadFile) -> bool:
    content_type = (file.content_type or "").lower()
    if content_type.startswith("image/"):
        return True
    if any(marker in content_type for marker in ALLOWED_CONTENT_TYPE_MARKERS):
        return True
    return _file_ext(file.filename or "") in ALLOWED_EXTENSIONS


def validate_upload(file: UploadFile) -> str:
    """
    Return the normalized file extension if this upload is acceptable.
    """
    if not file.filename:
        raise HTTPException(status_code=400, detail="Missing filename.")
    if not is_allowed(file):
        raise HTTPException(
            status_code=400,
            detail="Only images, PDFs, documents, Excel files, and ZIP files are allowed",
        )
    return _file_ext(file.filename)


async def _write_limited(file: UploadFile, target: Path, max_bytes: int) -> int:
    """
    Stream the upload into `target`, enforcing a maximum size.
    """
    chunk_size = 1024 * 1024  # 1 MiB
    written = 0
    target.parent.mkdir(parents=True, exist_ok=True)
    try:
        with target.open("wb") as out:
            while True:
                chunk = await file.read(chunk_size)
                if not chunk:
                    break
                written += len(chunk)
                if written > max_bytes:
                    raise HTTPException(
                        status_code=413,
                        detail=f"File too large. Max is {max_bytes} bytes.",
                    )
                out.write(chunk)
    except BaseException:
        target.unlink(missing_ok=True)
        raise
    return written


async def save_upload(file: UploadFile) -> str:
    """
    Store an upload durably and return its `uploads/<name>` path.
    """
    validate_upload(file)
    directory = settings.upload_dir()
    target = directory / f"{timestamp_ms()}-{safe_name(file.filename or '')}"
    size = await _write_limited(file, target, settings.max_upload_bytes())
    logger.info("upload_saved path=%s size_bytes=%s", target.as_posix(), size)
    return public_path(target.name)


async def save_optional_upload(file: UploadFile | None) -> str | None:
    if file is None or not file.filename:
        return None
    return await save_upload(file)


async def stage_upload(file: UploadFile | None, *, allowed_extensions: set[str], missing_detail: str) -> Path:
    """
    Stage a processing-only upload (bulk-import source) in the temp dir.

    The caller owns the returned path and must `discard()` it.
    """
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail=missing_detail)

    # Staged sources are judged by extension only; content types are too loose.
    ext = _file_ext(file.filename)
    if ext not in allowed_extensions:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type '{ext}'. Allowed: {sorted(allowed_extensions)}",
        )

    target = settings.staging_dir() / f"{timestamp_ms()}-{safe_name(file.filename)}"
    await _write_limited(file, target, settings.max_upload_bytes())
    return target


def discard(path: Path | None) -> None:
    if path is None:
        return
    try:
        path.unlink(missing_ok=True)
    except OSError:
        logger.warning("upload_discard_failed path=%s", path, exc_info=True)
