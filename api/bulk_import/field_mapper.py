"""
Spreadsheet header and value normalization.

Spreadsheets arrive with free-form headers ("First Name", "firstname",
"first_name", ...). `FIELD_VARIANTS` lists the accepted spellings for every
canonical field; `build_import_row` turns one raw row into an `ImportRow`.
"""

from __future__ import annotations

import datetime as dt
import re
from collections.abc import Mapping, Sequence
from typing import Any

from openpyxl.utils.datetime import from_excel

from .schemas import ImportRow

FIELD_VARIANTS: dict[str, tuple[str, ...]] = {
    "first_name": ("firstname", "first name", "first_name"),
    "last_name": ("lastname", "last name", "last_name"),
    "username": ("username", "user name"),
    "password": ("password", "pass"),
    "email": ("email", "e-mail"),
    "class_ref": ("classid", "class", "class id", "class_id"),
    "roll_number": ("rollnumber", "roll number", "roll_no"),
    "phone": ("phone", "mobile", "contact"),
    "address": ("address",),
    "date_of_birth": ("dateofbirth", "dob", "birth date"),
    "blood_group": ("bloodgroup", "blood group"),
    "parent_name": ("parentname", "parent name", "guardian"),
    "parent_phone": ("parentphone", "parent phone"),
    "parent_email": ("parentemail", "parent email"),
    "photo_filename": (
        "photo",
        "photo_filename",
        "photos",
        "photofilename",
        "image",
        "picture",
        "photo_file",
        "filename",
    ),
}

ABSENT_MARKERS = {"undefined", "null"}

# 9999-12-31 in the 1900 date system.
MAX_DATE_SERIAL = 2958465

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_NUMERIC = re.compile(r"^\d+(\.\d+)?$")


def _key(name: Any) -> str:
    return str(name).strip().lower()


def _cell_text(value: Any) -> str:
    if isinstance(value, dt.datetime):
        return value.date().isoformat()
    if isinstance(value, dt.date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def map_field(row: Mapping[Any, Any], variants: Sequence[str]) -> str | None:
    """
    Return the first non-empty value whose header matches one of `variants`.
    """
    for variant in variants:
        wanted = _key(variant)
        for header, value in row.items():
            if header is None or value is None or _key(header) != wanted:
                continue
            text = _cell_text(value)
            if text and text not in ABSENT_MARKERS:
                return text
    return None


def normalize_date(value: Any) -> str | None:
    """
    Normalize a date cell to `YYYY-MM-DD`.

    Accepts an ISO date string, a spreadsheet day-serial (number or numeric
    string, fraction ignored) or a date/datetime object. Anything else gives
    None.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, dt.datetime):
        return value.date().isoformat()
    if isinstance(value, dt.date):
        return value.isoformat()

    if isinstance(value, (int, float)):
        serial = int(value)
    else:
        text = str(value).strip()
        if _ISO_DATE.match(text):
            return text
        if not _NUMERIC.match(text):
            return None
        serial = int(float(text))

    if serial < 1 or serial > MAX_DATE_SERIAL:
        return None

    converted = from_excel(serial)
    return f"{converted.year:04d}-{converted.month:02d}-{converted.day:02d}"


def build_import_row(row: Mapping[Any, Any]) -> ImportRow:
    values = {name: map_field(row, variants) for name, variants in FIELD_VARIANTS.items()}
    values["date_of_birth"] = normalize_date(values["date_of_birth"])
    return ImportRow(**values)
