"""
Student request schemas.

Admin and profile forms arrive as multipart (they may carry a photo), so
they are collected with `Form()` fields and cleaned into plain dicts; JSON
bodies use Pydantic models.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from fastapi import Form, HTTPException
from pydantic import BaseModel, Field

from bulk_import.field_mapper import normalize_date


def blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def parse_optional_id(value: str | None, field_name: str) -> int | None:
    value = blank_to_none(value)
    if value is None:
        return None
    if not value.isdigit():
        raise HTTPException(status_code=400, detail=f"Invalid {field_name}")
    return int(value)


def parse_optional_date(value: str | None) -> str | None:
    value = blank_to_none(value)
    if value is None:
        return None
    normalized = normalize_date(value)
    if normalized is None:
        raise HTTPException(status_code=400, detail="date_of_birth must be YYYY-MM-DD")
    return normalized


@dataclass(frozen=True)
class StudentForm:
    class_id: int | None
    first_name: str | None
    last_name: str | None
    roll_number: str | None
    username: str | None
    password: str | None
    email: str | None
    phone: str | None
    address: str | None
    date_of_birth: str | None
    blood_group: str | None
    parent_name: str | None
    parent_phone: str | None
    parent_email: str | None

    def student_fields(self) -> dict[str, Any]:
        return {
            "class_id": self.class_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "roll_number": self.roll_number,
            "phone": self.phone,
            "address": self.address,
            "date_of_birth": self.date_of_birth,
            "blood_group": self.blood_group,
            "parent_name": self.parent_name,
            "parent_phone": self.parent_phone,
            "parent_email": self.parent_email,
        }


def student_form(
    class_id: str | None = Form(default=None),
    first_name: str | None = Form(default=None),
    last_name: str | None = Form(default=None),
    roll_number: str | None = Form(default=None),
    username: str | None = Form(default=None),
    password: str | None = Form(default=None),
    email: str | None = Form(default=None),
    phone: str | None = Form(default=None),
    address: str | None = Form(default=None),
    date_of_birth: str | None = Form(default=None),
    blood_group: str | None = Form(default=None),
    parent_name: str | None = Form(default=None),
    parent_phone: str | None = Form(default=None),
    parent_email: str | None = Form(default=None),
) -> StudentForm:
    """
    FastAPI dependency: the shared student multipart form.
    """
    return StudentForm(
        class_id=parse_optional_id(class_id, "class_id"),
        first_name=blank_to_none(first_name),
        last_name=blank_to_none(last_name),
        roll_number=blank_to_none(roll_number),
        username=blank_to_none(username),
        password=blank_to_none(password),
        email=blank_to_none(email),
        phone=blank_to_none(phone),
        address=blank_to_none(address),
        date_of_birth=parse_optional_date(date_of_birth),
        blood_group=blank_to_none(blood_group),
        parent_name=blank_to_none(parent_name),
        parent_phone=blank_to_none(parent_phone),
        parent_email=blank_to_none(parent_email),
    )


class ContactUpdateRequest(BaseModel):
    address: str | None = None
    phone: str | None = None
    blood_group: str | None = None
    email: str | None = None
    parent_phone: str | None = None
    parent_email: str | None = None

    def student_fields(self) -> dict[str, Any]:
        return {
            "address": blank_to_none(self.address),
            "phone": blank_to_none(self.phone),
            "blood_group": blank_to_none(self.blood_group),
            "parent_phone": blank_to_none(self.parent_phone),
            "parent_email": blank_to_none(self.parent_email),
        }


class FcmTokenRequest(BaseModel):
    fcm_token: str | None = Field(default=None, max_length=4096)
