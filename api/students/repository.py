"""
Student persistence.

Functions that take `conn` run inside the caller's transaction; the rest use
the pool directly.
"""

from __future__ import annotations

from typing import Any

import asyncpg

from core import db

STUDENT_COLUMNS = (
    "class_id",
    "first_name",
    "last_name",
    "roll_number",
    "phone",
    "address",
    "date_of_birth",
    "blood_group",
    "parent_name",
    "parent_phone",
    "parent_email",
)

PROFILE_SELECT = """
    SELECT
      s.*,
      u.username,
      u.email,
      c.class_name,
      c.id AS class_id,
      sec.section_name
    FROM students s
    LEFT JOIN users u ON s.user_id = u.id
    LEFT JOIN classes c ON s.class_id = c.id
    LEFT JOIN sections sec ON c.section_id = sec.id
"""


def _row(record: asyncpg.Record | None) -> dict[str, Any] | None:
    return dict(record) if record is not None else None


# ---- reads -----------------------------------------------------------------


async def list_students() -> list[dict[str, Any]]:
    return await db.fetch_all(
        """
        SELECT
          s.*,
          u.username,
          u.email,
          c.class_name,
          sec.section_name
        FROM students s
        LEFT JOIN users u ON s.user_id = u.id
        LEFT JOIN classes c ON s.class_id = c.id
        LEFT JOIN sections sec ON c.section_id = sec.id
        ORDER BY s.created_at DESC
        """
    )


async def list_students_by_class(class_id: int) -> list[dict[str, Any]]:
    return await db.fetch_all(
        """
        SELECT s.id, s.first_name, s.last_name, s.roll_number, s.class_id
        FROM students s
        WHERE s.class_id = $1
        ORDER BY s.roll_number
        """,
        class_id,
    )


async def get_profile_by_user_id(user_id: int) -> dict[str, Any] | None:
    return await db.fetch_one(PROFILE_SELECT + " WHERE s.user_id = $1", user_id)


async def get_profile_by_student_id(student_id: int) -> dict[str, Any] | None:
    return await db.fetch_one(PROFILE_SELECT + " WHERE s.id = $1", student_id)


async def get_profile(conn: asyncpg.Connection, user_id: int) -> dict[str, Any] | None:
    return _row(await conn.fetchrow(PROFILE_SELECT + " WHERE u.id = $1", user_id))


async def find_student_ref(conn: asyncpg.Connection, some_id: int) -> dict[str, Any] | None:
    """
    Resolve an id that may be a user id or a student id (user id wins).
    """
    row = await conn.fetchrow("SELECT id, user_id FROM students WHERE user_id = $1", some_id)
    if row is None:
        row = await conn.fetchrow("SELECT id, user_id FROM students WHERE id = $1", some_id)
    return _row(row)


async def find_student_for_feed(some_id: int) -> dict[str, Any] | None:
    """
    Same user-id-then-student-id resolution, for read-only feeds.
    """
    row = await db.fetch_one("SELECT id, class_id, user_id FROM students WHERE user_id = $1", some_id)
    if row is None:
        row = await db.fetch_one("SELECT id, class_id, user_id FROM students WHERE id = $1", some_id)
    return row


# ---- uniqueness checks -----------------------------------------------------


async def find_class_id_by_name(conn: asyncpg.Connection, class_name: str) -> int | None:
    value = await conn.fetchval(
        """
        SELECT id
        FROM classes
        WHERE LOWER(class_name) = LOWER($1)
        ORDER BY id
        LIMIT 1
        """,
        class_name,
    )
    return int(value) if value is not None else None


async def username_exists(conn: asyncpg.Connection, username: str, *, exclude_user_id: int | None = None) -> bool:
    value = await conn.fetchval(
        """
        SELECT 1
        FROM users
        WHERE username = $1
          AND ($2::int IS NULL OR id <> $2)
        LIMIT 1
        """,
        username,
        exclude_user_id,
    )
    return value is not None


async def roll_number_exists(
    conn: asyncpg.Connection,
    roll_number: str,
    class_id: int,
    *,
    exclude_user_id: int | None = None,
) -> bool:
    value = await conn.fetchval(
        """
        SELECT 1
        FROM students
        WHERE roll_number = $1
          AND class_id = $2
          AND ($3::int IS NULL OR user_id <> $3)
        LIMIT 1
        """,
        roll_number,
        class_id,
        exclude_user_id,
    )
    return value is not None


# ---- writes ----------------------------------------------------------------


async def insert_user(
    conn: asyncpg.Connection,
    *,
    username: str,
    password: str,
    email: str | None,
    role: str = "student",
) -> int:
    value = await conn.fetchval(
        """
        INSERT INTO users (username, password, email, role, created_at, updated_at)
        VALUES ($1, $2, $3, $4, NOW(), NOW())
        RETURNING id
        """,
        username,
        password,
        email,
        role,
    )
    if value is None:
        raise RuntimeError("Failed to insert user.")
    return int(value)


async def insert_student(
    conn: asyncpg.Connection,
    *,
    user_id: int,
    fields: dict[str, Any],
    profile_photo: str | None = None,
) -> dict[str, Any]:
    row = await conn.fetchrow(
        """
        INSERT INTO students (
          user_id, class_id, first_name, last_name, roll_number,
          phone, address, date_of_birth, blood_group,
          parent_name, parent_phone, parent_email, profile_photo,
          created_at, updated_at
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8::text::date, $9, $10, $11, $12, $13, NOW(), NOW())
        RETURNING *
        """,
        user_id,
        *(fields.get(col) for col in STUDENT_COLUMNS),
        profile_photo,
    )
    if row is None:
        raise RuntimeError("Failed to insert student.")
    return dict(row)


async def link_user_to_student(conn: asyncpg.Connection, *, user_id: int, student_id: int) -> None:
    await conn.execute("UPDATE users SET student_id = $1 WHERE id = $2", student_id, user_id)


async def update_student(
    conn: asyncpg.Connection,
    student_id: int,
    *,
    fields: dict[str, Any],
    profile_photo: str | None,
) -> dict[str, Any] | None:
    return _row(
        await conn.fetchrow(
            """
            UPDATE students
            SET
              class_id = $1,
              first_name = $2,
              last_name = $3,
              roll_number = $4,
              phone = $5,
              address = $6,
              date_of_birth = $7::text::date,
              blood_group = $8,
              parent_name = $9,
              parent_phone = $10,
              parent_email = $11,
              profile_photo = COALESCE($12, profile_photo),
              updated_at = NOW()
            WHERE id = $13
            RETURNING *
            """,
            *(fields.get(col) for col in STUDENT_COLUMNS),
            profile_photo,
            student_id,
        )
    )


async def update_student_by_user(
    conn: asyncpg.Connection,
    user_id: int,
    *,
    fields: dict[str, Any],
    profile_photo: str | None,
) -> None:
    await conn.execute(
        """
        UPDATE students
        SET
          class_id = $1,
          first_name = $2,
          last_name = $3,
          roll_number = $4,
          phone = $5,
          address = $6,
          date_of_birth = $7::text::date,
          blood_group = $8,
          parent_name = $9,
          parent_phone = $10,
          parent_email = $11,
          profile_photo = COALESCE($12, profile_photo),
          updated_at = NOW()
        WHERE user_id = $13
        """,
        *(fields.get(col) for col in STUDENT_COLUMNS),
        profile_photo,
        user_id,
    )


async def update_user_email_for_student(conn: asyncpg.Connection, student_id: int, email: str) -> None:
    await conn.execute(
        """
        UPDATE users
        SET email = $1, updated_at = NOW()
        WHERE id = (SELECT user_id FROM students WHERE id = $2)
        """,
        email,
        student_id,
    )


async def update_user_email(conn: asyncpg.Connection, user_id: int, email: str) -> None:
    await conn.execute("UPDATE users SET email = $1, updated_at = NOW() WHERE id = $2", email, user_id)


async def update_user_account(
    conn: asyncpg.Connection,
    user_id: int,
    *,
    username: str,
    email: str | None,
    password: str | None,
) -> None:
    # A blank password leaves the stored one unchanged.
    await conn.execute(
        """
        UPDATE users
        SET username = $1,
            email = $2,
            password = COALESCE($3, password),
            updated_at = NOW()
        WHERE id = $4
        """,
        username,
        email,
        password,
        user_id,
    )


async def get_username(conn: asyncpg.Connection, user_id: int) -> str | None:
    value = await conn.fetchval("SELECT username FROM users WHERE id = $1", user_id)
    return str(value) if value is not None else None


async def update_contact_fields(conn: asyncpg.Connection, user_id: int, *, fields: dict[str, Any]) -> None:
    await conn.execute(
        """
        UPDATE students
        SET
          address = $1,
          phone = $2,
          blood_group = $3,
          parent_phone = $4,
          parent_email = $5,
          updated_at = NOW()
        WHERE user_id = $6
        """,
        fields.get("address"),
        fields.get("phone"),
        fields.get("blood_group"),
        fields.get("parent_phone"),
        fields.get("parent_email"),
        user_id,
    )


async def update_profile_photo(conn: asyncpg.Connection, user_id: int, profile_photo: str) -> None:
    await conn.execute(
        "UPDATE students SET profile_photo = $1, updated_at = NOW() WHERE user_id = $2",
        profile_photo,
        user_id,
    )


async def get_student_with_username(conn: asyncpg.Connection, student_id: int) -> dict[str, Any] | None:
    return _row(
        await conn.fetchrow(
            """
            SELECT s.*, u.username
            FROM students s
            JOIN users u ON s.user_id = u.id
            WHERE s.id = $1
            """,
            student_id,
        )
    )


async def delete_student_and_user(conn: asyncpg.Connection, *, student_id: int, user_id: int) -> None:
    await conn.execute("DELETE FROM students WHERE id = $1", student_id)
    await conn.execute("DELETE FROM users WHERE id = $1", user_id)


async def set_fcm_token(student_id: int, token: str) -> dict[str, Any] | None:
    return await db.fetch_one(
        """
        UPDATE students
        SET fcm_token = $1, updated_at = NOW()
        WHERE id = $2
        RETURNING id, user_id, first_name, last_name
        """,
        token,
        student_id,
    )


async def fcm_tokens_for_class(class_id: int) -> list[str]:
    rows = await db.fetch_all(
        "SELECT fcm_token FROM students WHERE class_id = $1 AND fcm_token IS NOT NULL",
        class_id,
    )
    return [str(r["fcm_token"]) for r in rows]


async def fcm_tokens_for_students(student_ids: list[int], class_id: int) -> list[str]:
    rows = await db.fetch_all(
        """
        SELECT fcm_token
        FROM students
        WHERE id = ANY($1::int[])
          AND class_id = $2
          AND fcm_token IS NOT NULL
        """,
        student_ids,
        class_id,
    )
    return [str(r["fcm_token"]) for r in rows]
