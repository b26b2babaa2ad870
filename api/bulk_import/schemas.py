"""
Bulk-import records.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ImportRow:
    """
    One spreadsheet row, mapped onto canonical student fields.

    Absent values are None; the importer decides which ones are required.
    """

    first_name: str | None = None
    last_name: str | None = None
    username: str | None = None
    password: str | None = None
    email: str | None = None
    class_ref: str | None = None
    roll_number: str | None = None
    phone: str | None = None
    address: str | None = None
    date_of_birth: str | None = None
    blood_group: str | None = None
    parent_name: str | None = None
    parent_phone: str | None = None
    parent_email: str | None = None
    photo_filename: str | None = None

    @property
    def missing_required(self) -> bool:
        return not (self.first_name and self.last_name and self.username and self.password)


@dataclass(frozen=True)
class RowOutcome:
    position: int
    student: dict[str, Any] | None = None
    reason: str | None = None

    @property
    def imported(self) -> bool:
        return self.student is not None

    @property
    def has_photo(self) -> bool:
        return bool(self.student and self.student.get("profile_photo"))

    def error_detail(self) -> str:
        return f"Row {self.position}: {self.reason}"


@dataclass
class ImportSummary:
    total: int = 0
    imported: int = 0
    photos_uploaded: int = 0
    error_details: list[str] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.error_details)

    def record(self, outcome: RowOutcome) -> ImportSummary:
        self.total += 1
        if outcome.imported:
            self.imported += 1
            if outcome.has_photo:
                self.photos_uploaded += 1
        else:
            self.error_details.append(outcome.error_detail())
        return self

    def as_dict(self, *, with_photos: bool = False) -> dict[str, Any]:
        data: dict[str, Any] = {
            "imported": self.imported,
            "failed": self.failed,
            "errorDetails": list(self.error_details),
        }
        if with_photos:
            data["photosUploaded"] = self.photos_uploaded
        return data
