"""
Section and class persistence.
"""

from __future__ import annotations

from typing import Any

import asyncpg

from core import db


async def list_sections() -> list[dict[str, Any]]:
    return await db.fetch_all("SELECT * FROM sections ORDER BY created_at DESC")


async def section_exists(section_name: str, start_time: str, end_time: str) -> bool:
    row = await db.fetch_one(
        """
        SELECT 1 AS ok
        FROM sections
        WHERE section_name = $1
          AND start_time::text = $2
          AND end_time::text = $3
        LIMIT 1
        """,
        section_name,
        start_time,
        end_time,
    )
    return row is not None


async def insert_section(section_name: str, start_time: str, end_time: str) -> dict[str, Any]:
    row = await db.fetch_one(
        """
        INSERT INTO sections (section_name, start_time, end_time, created_at)
        VALUES ($1, $2::text::time, $3::text::time, NOW())
        RETURNING *
        """,
        section_name,
        start_time,
        end_time,
    )
    if row is None:
        raise RuntimeError("Failed to insert section.")
    return row


async def count_classes_in_section(conn: asyncpg.Connection, section_id: int) -> int:
    value = await conn.fetchval("SELECT COUNT(*) FROM classes WHERE section_id = $1", section_id)
    return int(value or 0)


async def delete_section(conn: asyncpg.Connection, section_id: int) -> dict[str, Any] | None:
    row = await conn.fetchrow("DELETE FROM sections WHERE id = $1 RETURNING *", section_id)
    return dict(row) if row is not None else None


async def list_classes() -> list[dict[str, Any]]:
    return await db.fetch_all(
        """
        SELECT
          c.*,
          s.section_name
        FROM classes c
        LEFT JOIN sections s ON c.section_id = s.id
        ORDER BY c.created_at DESC
        """
    )


async def insert_class(class_name: str, section_id: int, teacher_name: str) -> dict[str, Any]:
    row = await db.fetch_one(
        """
        INSERT INTO classes (class_name, section_id, teacher_name)
        VALUES ($1, $2, $3)
        RETURNING *
        """,
        class_name,
        section_id,
        teacher_name,
    )
    if row is None:
        raise RuntimeError("Failed to insert class.")
    return row


async def count_students_in_class(conn: asyncpg.Connection, class_id: int) -> int:
    value = await conn.fetchval("SELECT COUNT(*) FROM students WHERE class_id = $1", class_id)
    return int(value or 0)


async def delete_class(conn: asyncpg.Connection, class_id: int) -> dict[str, Any] | None:
    row = await conn.fetchrow("DELETE FROM classes WHERE id = $1 RETURNING *", class_id)
    return dict(row) if row is not None else None
