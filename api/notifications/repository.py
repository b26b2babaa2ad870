"""
Notification persistence.
"""

from __future__ import annotations

from typing import Any

import asyncpg

from core import db

# There is no per-admin identity yet; notifications are attributed to the
# bootstrap admin.
DEFAULT_CREATED_BY = 1


async def list_notifications() -> list[dict[str, Any]]:
    return await db.fetch_all(
        """
        SELECT n.*, c.class_name, s.section_name
        FROM notifications n
        LEFT JOIN classes c ON n.class_id = c.id
        LEFT JOIN sections s ON c.section_id = s.id
        ORDER BY n.created_at DESC
        """
    )


async def insert_notification(
    *,
    title: str,
    description: str,
    message: str | None,
    class_id: int,
    recipient_type: str,
    selected_students: list[int] | None,
    file_path: str | None,
) -> dict[str, Any]:
    row = await db.fetch_one(
        """
        INSERT INTO notifications (
          title, description, message, class_id, recipient_type,
          selected_students, file_path, created_by, created_at
        )
        VALUES ($1, $2, $3, $4, $5, $6::int[], $7, $8, NOW())
        RETURNING *
        """,
        title,
        description,
        message,
        class_id,
        recipient_type,
        selected_students,
        file_path,
        DEFAULT_CREATED_BY,
    )
    if row is None:
        raise RuntimeError("Failed to insert notification.")
    return row


async def lock_notification(conn: asyncpg.Connection, notification_id: int) -> bool:
    value = await conn.fetchval("SELECT 1 FROM notifications WHERE id = $1 FOR UPDATE", notification_id)
    return value is not None


async def update_notification(
    conn: asyncpg.Connection,
    notification_id: int,
    *,
    title: str,
    description: str,
    message: str | None,
    class_id: int,
    recipient_type: str,
    selected_students: list[int] | None,
    file_path: str | None,
) -> dict[str, Any] | None:
    row = await conn.fetchrow(
        """
        UPDATE notifications
        SET title = $1,
            description = $2,
            message = $3,
            class_id = $4,
            recipient_type = $5,
            selected_students = $6::int[],
            file_path = COALESCE($7, file_path),
            created_at = NOW()
        WHERE id = $8
        RETURNING *
        """,
        title,
        description,
        message,
        class_id,
        recipient_type,
        selected_students,
        file_path,
        notification_id,
    )
    return dict(row) if row is not None else None


async def delete_notification(notification_id: int) -> dict[str, Any] | None:
    return await db.fetch_one("DELETE FROM notifications WHERE id = $1 RETURNING id", notification_id)


async def list_for_student(
    *,
    student_id: int,
    class_id: int,
    limit: int,
    offset: int,
) -> list[dict[str, Any]]:
    return await db.fetch_all(
        """
        SELECT
          n.*,
          c.class_name,
          s.section_name,
          false AS "isRead"
        FROM notifications n
        LEFT JOIN classes c ON n.class_id = c.id
        LEFT JOIN sections s ON c.section_id = s.id
        WHERE n.class_id = $2
          AND (
            n.recipient_type = 'all'
            OR (n.recipient_type = 'particular' AND $1 = ANY(n.selected_students))
          )
        ORDER BY n.created_at DESC
        LIMIT $3
        OFFSET $4
        """,
        student_id,
        class_id,
        limit,
        offset,
    )
