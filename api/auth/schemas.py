"""
Auth API schemas (request/response models).
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    username: str = Field(default="", max_length=150)
    password: str = Field(default="", max_length=128)


class LoginUser(BaseModel):
    id: int
    username: str
    role: str
    studentId: int | None = None
