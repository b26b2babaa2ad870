"""
Spreadsheet parsing for bulk imports.

Only the first sheet is read. The first row holds the headers; every later
non-blank row becomes a dict keyed by header text. Cell values are kept as
the reader produced them (numbers stay numbers) so date serials can still be
recognized by the field mapper.
"""

from __future__ import annotations

import csv
import io
import logging
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

import xlrd
from openpyxl import load_workbook

logger = logging.getLogger(__name__)

XLSX_EXTENSIONS = {".xlsx", ".xlsm"}
XLS_EXTENSIONS = {".xls"}
CSV_EXTENSIONS = {".csv"}


class SpreadsheetError(ValueError):
    """
    The source cannot be read as a spreadsheet at all.
    """


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _rows_to_records(rows: Iterable[Sequence[Any]]) -> list[dict[str, Any]]:
    rows_iter = iter(rows)
    header_row = next(rows_iter, None)
    if header_row is None:
        return []

    headers: list[str | None] = []
    seen: set[str] = set()
    for cell in header_row:
        name = None if _is_blank(cell) else str(cell).strip()
        # Keep the first column when a header repeats.
        if name is not None and name in seen:
            name = None
        if name is not None:
            seen.add(name)
        headers.append(name)

    records: list[dict[str, Any]] = []
    for row in rows_iter:
        if not row or all(_is_blank(c) for c in row):
            continue
        record = {
            header: value
            for header, value in zip(headers, row)
            if header is not None and not _is_blank(value)
        }
        if record:
            records.append(record)
    return records


def _read_xlsx(data: bytes) -> list[dict[str, Any]]:
    try:
        wb = load_workbook(filename=io.BytesIO(data), read_only=True, data_only=True)
    except Exception as e:
        raise SpreadsheetError(f"Invalid Excel file: {e}") from e

    try:
        if not wb.worksheets:
            raise SpreadsheetError("Excel file has no sheets")
        ws = wb.worksheets[0]
        return _rows_to_records(ws.iter_rows(values_only=True))
    finally:
        wb.close()


def _xls_cell(cell: xlrd.sheet.Cell) -> Any:
    if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
        return None
    if cell.ctype == xlrd.XL_CELL_BOOLEAN:
        return bool(cell.value)
    if cell.ctype == xlrd.XL_CELL_ERROR:
        return None
    # Dates stay as day-serial floats.
    return cell.value


def _read_xls(data: bytes) -> list[dict[str, Any]]:
    try:
        book = xlrd.open_workbook(file_contents=data)
    except Exception as e:
        raise SpreadsheetError(f"Invalid Excel file: {e}") from e

    if book.nsheets == 0:
        raise SpreadsheetError("Excel file has no sheets")
    sheet = book.sheet_by_index(0)
    rows = ([_xls_cell(c) for c in sheet.row(i)] for i in range(sheet.nrows))
    return _rows_to_records(rows)


def _read_csv(data: bytes) -> list[dict[str, Any]]:
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise SpreadsheetError("CSV file must be UTF-8 encoded") from e
    return _rows_to_records(csv.reader(io.StringIO(text)))


def read_records(data: bytes, ext: str) -> list[dict[str, Any]]:
    """
    Parse spreadsheet bytes into header-keyed records.
    """
    ext = ext.lower()
    if ext in XLSX_EXTENSIONS:
        records = _read_xlsx(data)
    elif ext in XLS_EXTENSIONS:
        records = _read_xls(data)
    elif ext in CSV_EXTENSIONS:
        records = _read_csv(data)
    else:
        raise SpreadsheetError(f"Unsupported spreadsheet type '{ext}'")

    logger.info("spreadsheet_parsed ext=%s rows=%s", ext, len(records))
    return records


def read_records_from_path(path: Path) -> list[dict[str, Any]]:
    return read_records(path.read_bytes(), path.suffix)
