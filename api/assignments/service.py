"""
Assignment business logic.

Creating an assignment pushes a data message to every student of the class
that registered a device token. Any assignment change flushes the response
cache, since per-student feeds are cached under many keys.
"""

from __future__ import annotations

import logging
from typing import Any

import asyncpg
from fastapi import HTTPException, status

from core.cache import ResponseCache
from notifications import push
from students import repository as student_repository

from . import repository

logger = logging.getLogger(__name__)


def feed_cache_key(some_id: int, page: int, limit: int) -> str:
    return f"assignments_{some_id}_page{page}_limit{limit}"


def _require(title: str | None, class_id: int | None) -> str:
    title = (title or "").strip()
    if not title:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Title is required")
    if not class_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Class is required")
    return title


async def notify_class(class_id: int, title: str) -> push.DeliveryTally:
    tokens = await student_repository.fcm_tokens_for_class(class_id)
    if not tokens:
        logger.info("assignment_push_skipped class_id=%s reason=no_tokens", class_id)
        return push.DeliveryTally()
    return await push.send_batch(
        tokens,
        {
            "type": "assignment",
            "title": "New Assignment Posted",
            "body": title,
            "message": title,
        },
    )


async def create_assignment(
    cache: ResponseCache,
    *,
    class_id: int | None,
    title: str | None,
    description: str | None,
    file_path: str | None,
) -> tuple[dict[str, Any], push.DeliveryTally]:
    title = _require(title, class_id)
    assignment = await repository.insert_assignment(
        class_id=int(class_id or 0),
        title=title,
        description=description,
        file_path=file_path,
    )
    cache.flush()

    try:
        tally = await notify_class(int(assignment["class_id"]), title)
    except Exception:
        # The assignment is saved; a push failure must not undo the request.
        logger.exception("assignment_push_failed assignment_id=%s", assignment.get("id"))
        tally = push.DeliveryTally()
    return assignment, tally


async def update_assignment(
    pool: asyncpg.Pool,
    cache: ResponseCache,
    assignment_id: int,
    *,
    class_id: int | None,
    title: str | None,
    description: str | None,
    file_path: str | None,
) -> dict[str, Any]:
    if not class_id or not (title or "").strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Class and title are required")

    async with pool.acquire() as conn:
        async with conn.transaction():
            if not await repository.lock_assignment(conn, assignment_id):
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Assignment not found")
            updated = await repository.update_assignment(
                conn,
                assignment_id,
                class_id=class_id,
                title=(title or "").strip(),
                description=description,
                file_path=file_path,
            )

    cache.flush()
    return updated or {}


async def delete_assignment(cache: ResponseCache, assignment_id: int) -> None:
    if await repository.delete_assignment(assignment_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Assignment not found")
    cache.flush()


async def student_feed(cache: ResponseCache, some_id: int, *, page: int, limit: int) -> dict[str, Any]:
    """
    Paginated assignments for the student's class (`some_id` is a user id or
    a student id).
    """
    key = feed_cache_key(some_id, page, limit)
    cached = cache.get(key)
    if cached is not None:
        return cached

    student = await student_repository.find_student_for_feed(some_id)
    if student is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student record not found")

    if not student.get("class_id"):
        return {
            "success": True,
            "data": [],
            "page": page,
            "hasMore": False,
            "message": "Student not assigned to any class",
        }

    rows = await repository.list_for_class(int(student["class_id"]), limit=limit, offset=(page - 1) * limit)
    response = {
        "success": True,
        "data": rows,
        "page": page,
        "hasMore": len(rows) == limit,
        "message": "Assignments fetched successfully",
    }
    cache.set(key, response)
    return response
