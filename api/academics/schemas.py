"""
Section and class request schemas.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class SectionCreateRequest(BaseModel):
    section_name: str = Field(default="", max_length=200)
    start_time: str = Field(default="", max_length=20)
    end_time: str = Field(default="", max_length=20)


class ClassCreateRequest(BaseModel):
    class_name: str = Field(default="", max_length=200)
    section_id: int | None = None
    teacher_name: str = Field(default="", max_length=200)
