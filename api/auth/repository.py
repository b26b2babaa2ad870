"""
Auth persistence helpers.
"""

from __future__ import annotations

from core import db


async def get_user_by_username(username: str) -> dict | None:
    return await db.fetch_one(
        """
        SELECT id, username, password, role, student_id
        FROM users
        WHERE username = $1
        """,
        username,
    )


async def get_student_id_for_user(user_id: int) -> int | None:
    row = await db.fetch_one("SELECT id FROM students WHERE user_id = $1", user_id)
    return int(row["id"]) if row is not None else None


async def create_user(*, username: str, password: str, role: str) -> dict:
    row = await db.fetch_one(
        """
        INSERT INTO users (username, password, role, created_at, updated_at)
        VALUES ($1, $2, $3, NOW(), NOW())
        RETURNING id, username, role, email, student_id, created_at, updated_at
        """,
        username,
        password,
        role,
    )
    if row is None:
        raise RuntimeError("Failed to create user.")
    return row
