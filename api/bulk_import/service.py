"""
Bulk student import.

Flow:
1) Read the staged source (spreadsheet, or zip holding a spreadsheet + photos)
2) Map every record onto an `ImportRow`
3) Import rows one by one, each in its own transaction
4) Fold the per-row outcomes into an `ImportSummary`

Row problems (bad class, missing fields, duplicates, database errors) only
fail that row. Only an unreadable or empty source fails the whole request.
"""

from __future__ import annotations

import logging
import zipfile
from collections.abc import Sequence
from pathlib import Path, PurePosixPath
from typing import Any

import asyncpg

from core import settings, uploads
from students import repository as student_repository

from . import field_mapper, photos, spreadsheet
from .schemas import ImportRow, ImportSummary, RowOutcome

# Data row i sits on sheet row i + 2 (1-based, after the header row).
FIRST_DATA_ROW = 2

logger = logging.getLogger(__name__)


class ImportSourceError(ValueError):
    """
    The uploaded source cannot be imported at all.
    """


class RowRejected(Exception):
    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


async def resolve_class_id(conn: asyncpg.Connection, class_ref: str | None) -> int | None:
    """
    Digits are taken as a class id; anything else is looked up by class name.
    """
    if not class_ref:
        return None
    class_ref = class_ref.strip()
    if class_ref.isdigit():
        return int(class_ref)
    class_id = await student_repository.find_class_id_by_name(conn, class_ref)
    if class_id is None:
        raise RowRejected(f"Class '{class_ref}' not found")
    return class_id


async def _check_row(conn: asyncpg.Connection, row: ImportRow, class_id: int | None, *, from_archive: bool) -> None:
    if row.missing_required:
        raise RowRejected("Missing required fields")

    if await student_repository.username_exists(conn, row.username or ""):
        raise RowRejected(f"Username '{row.username}' already exists")

    if class_id and row.roll_number:
        if await student_repository.roll_number_exists(conn, row.roll_number, class_id):
            suffix = "" if from_archive else " in class"
            raise RowRejected(f"Roll number '{row.roll_number}' already exists{suffix}")


def _student_fields(row: ImportRow, class_id: int | None) -> dict[str, Any]:
    return {
        "class_id": class_id,
        "first_name": row.first_name,
        "last_name": row.last_name,
        "roll_number": row.roll_number,
        "phone": row.phone,
        "address": row.address,
        "date_of_birth": row.date_of_birth,
        "blood_group": row.blood_group,
        "parent_name": row.parent_name,
        "parent_phone": row.parent_phone,
        "parent_email": row.parent_email,
    }


async def import_row(
    pool: asyncpg.Pool,
    position: int,
    row: ImportRow,
    *,
    archive: zipfile.ZipFile | None = None,
    link_student: bool = True,
) -> RowOutcome:
    """
    Import one row in its own transaction.

    The user and student inserts commit together or not at all.
    """
    photo_path: str | None = None
    try:
        async with pool.acquire() as conn:
            async with conn.transaction():
                class_id = await resolve_class_id(conn, row.class_ref)
                await _check_row(conn, row, class_id, from_archive=archive is not None)

                if archive is not None:
                    photo_path = photos.resolve_photo(
                        archive,
                        row.photo_filename,
                        username=row.username or "",
                        upload_dir=settings.upload_dir(),
                    )

                user_id = await student_repository.insert_user(
                    conn,
                    username=row.username or "",
                    password=row.password or "",
                    email=row.email,
                )
                student = await student_repository.insert_student(
                    conn,
                    user_id=user_id,
                    fields=_student_fields(row, class_id),
                    profile_photo=photo_path,
                )
                if link_student:
                    await student_repository.link_user_to_student(
                        conn,
                        user_id=user_id,
                        student_id=int(student["id"]),
                    )
    except RowRejected as exc:
        outcome = RowOutcome(position=position, reason=exc.reason)
    except Exception as exc:
        logger.exception("bulk_import_row_error row=%s", position)
        outcome = RowOutcome(position=position, reason=str(exc) or exc.__class__.__name__)
    else:
        logger.info("bulk_import_row_ok row=%s student_id=%s", position, student.get("id"))
        return RowOutcome(position=position, student=student)

    logger.warning("bulk_import_row_failed row=%s reason=%s", position, outcome.reason)
    if photo_path:
        # The row was rolled back; drop the photo it extracted.
        uploads.discard(uploads.stored_file(photo_path))
    return outcome


async def import_rows(
    pool: asyncpg.Pool,
    rows: Sequence[ImportRow],
    *,
    archive: zipfile.ZipFile | None = None,
    link_student: bool = True,
) -> ImportSummary:
    """
    Import rows strictly in order, one transaction in flight at a time.
    """
    summary = ImportSummary()
    for offset, row in enumerate(rows):
        outcome = await import_row(
            pool,
            offset + FIRST_DATA_ROW,
            row,
            archive=archive,
            link_student=link_student,
        )
        summary.record(outcome)

    logger.info("bulk_import_complete imported=%s failed=%s", summary.imported, summary.failed)
    return summary


def _map_records(records: list[dict[str, Any]]) -> list[ImportRow]:
    if not records:
        raise ImportSourceError("Excel file is empty")
    return [field_mapper.build_import_row(r) for r in records]


async def import_spreadsheet(pool: asyncpg.Pool, source: Path) -> ImportSummary:
    """
    Spreadsheet-only import. Also back-fills `users.student_id`.
    """
    try:
        records = spreadsheet.read_records_from_path(source)
    except spreadsheet.SpreadsheetError as exc:
        raise ImportSourceError(str(exc)) from exc

    rows = _map_records(records)
    logger.info("bulk_import_start source=spreadsheet rows=%s", len(rows))
    return await import_rows(pool, rows, link_student=True)


def _open_archive(source: Path) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(source)
    except (zipfile.BadZipFile, OSError) as exc:
        raise ImportSourceError(f"Invalid ZIP file: {exc}") from exc


async def import_archive(pool: asyncpg.Pool, source: Path) -> ImportSummary:
    """
    Zip import: one spreadsheet plus the photos its rows refer to.

    Rows are linked to photos but `users.student_id` is not back-filled.
    """
    with _open_archive(source) as archive:
        entries = photos.find_spreadsheet_entries(archive.infolist())
        if not entries:
            raise ImportSourceError("No Excel file found in ZIP")
        if len(entries) > 1:
            logger.warning(
                "bulk_import_multiple_spreadsheets using=%s ignored=%s",
                entries[0].filename,
                [e.filename for e in entries[1:]],
            )

        entry = entries[0]
        logger.info("bulk_import_archive_sheet entry=%s", entry.filename)
        try:
            data = archive.read(entry)
            records = spreadsheet.read_records(data, PurePosixPath(entry.filename).suffix)
        except spreadsheet.SpreadsheetError as exc:
            raise ImportSourceError(str(exc)) from exc
        except (zipfile.BadZipFile, OSError) as exc:
            raise ImportSourceError(f"Invalid ZIP file: {exc}") from exc

        rows = _map_records(records)
        logger.info("bulk_import_start source=archive rows=%s", len(rows))
        return await import_rows(pool, rows, archive=archive, link_student=False)
