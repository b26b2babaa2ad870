"""
Assignment persistence.
"""

from __future__ import annotations

from typing import Any

import asyncpg

from core import db


async def list_assignments() -> list[dict[str, Any]]:
    return await db.fetch_all(
        """
        SELECT a.*, c.class_name, s.section_name
        FROM assignments a
        JOIN classes c ON a.class_id = c.id
        LEFT JOIN sections s ON c.section_id = s.id
        ORDER BY a.created_at DESC
        """
    )


async def insert_assignment(
    *,
    class_id: int,
    title: str,
    description: str | None,
    file_path: str | None,
) -> dict[str, Any]:
    row = await db.fetch_one(
        """
        INSERT INTO assignments (class_id, title, description, file_path, created_at)
        VALUES ($1, $2, $3, $4, NOW())
        RETURNING *
        """,
        class_id,
        title,
        description,
        file_path,
    )
    if row is None:
        raise RuntimeError("Failed to insert assignment.")
    return row


async def delete_assignment(assignment_id: int) -> dict[str, Any] | None:
    return await db.fetch_one("DELETE FROM assignments WHERE id = $1 RETURNING id", assignment_id)


async def lock_assignment(conn: asyncpg.Connection, assignment_id: int) -> bool:
    value = await conn.fetchval("SELECT 1 FROM assignments WHERE id = $1 FOR UPDATE", assignment_id)
    return value is not None


async def update_assignment(
    conn: asyncpg.Connection,
    assignment_id: int,
    *,
    class_id: int,
    title: str,
    description: str | None,
    file_path: str | None,
) -> dict[str, Any] | None:
    # Editing re-dates the assignment so it surfaces at the top of feeds again.
    row = await conn.fetchrow(
        """
        UPDATE assignments
        SET class_id = $1,
            title = $2,
            description = $3,
            file_path = COALESCE($4, file_path),
            created_at = NOW()
        WHERE id = $5
        RETURNING *
        """,
        class_id,
        title,
        description,
        file_path,
        assignment_id,
    )
    return dict(row) if row is not None else None


async def list_for_class(class_id: int, *, limit: int, offset: int) -> list[dict[str, Any]]:
    return await db.fetch_all(
        """
        SELECT
          a.id,
          a.class_id,
          a.title,
          a.description,
          a.file_path,
          a.created_at,
          c.class_name,
          s.section_name
        FROM assignments a
        LEFT JOIN classes c ON a.class_id = c.id
        LEFT JOIN sections s ON c.section_id = s.id
        WHERE a.class_id = $1
        ORDER BY a.created_at DESC
        LIMIT $2
        OFFSET $3
        """,
        class_id,
        limit,
        offset,
    )
