"""
Notification business logic.

A notification targets one class, either every student in it
(`recipient_type="all"`) or a chosen subset (`"particular"` with
`selected_students`). Creating one pushes to the targeted devices.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

import asyncpg
from fastapi import HTTPException, status

from core.cache import ResponseCache
from students import repository as student_repository

from . import push, repository

RECIPIENT_TYPES = {"all", "particular"}

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationInput:
    title: str
    description: str
    message: str | None
    class_id: int
    recipient_type: str
    selected_students: list[int] | None
    file_path: str | None


def feed_cache_key(some_id: int, page: int, limit: int) -> str:
    return f"notifications_{some_id}_page{page}_limit{limit}"


def parse_selected_students(raw: str | None) -> list[int] | None:
    """
    Accept a JSON list (`[3, 7]`) or a comma-separated list (`3,7`).
    """
    raw = (raw or "").strip()
    if not raw:
        return None

    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        value = [part for part in raw.split(",") if part.strip()]
    if not isinstance(value, list):
        value = [value]

    try:
        return [int(str(v).strip()) for v in value]
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="selected_students must be a list of student ids",
        ) from exc


def build_input(
    *,
    title: str | None,
    description: str | None,
    message: str | None,
    class_id: int | None,
    recipient_type: str | None,
    selected_students: str | None,
    file_path: str | None,
) -> NotificationInput:
    title = (title or "").strip()
    description = (description or "").strip()
    recipient_type = (recipient_type or "").strip()
    if not (title and description and class_id and recipient_type):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Title, description, class, and recipient type are required",
        )
    if recipient_type not in RECIPIENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"recipient_type must be one of {sorted(RECIPIENT_TYPES)}",
        )

    students = parse_selected_students(selected_students)
    if recipient_type == "particular" and not students:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Please select at least one student for particular notifications",
        )

    return NotificationInput(
        title=title,
        description=description,
        message=(message or "").strip() or None,
        class_id=int(class_id),
        recipient_type=recipient_type,
        selected_students=students,
        file_path=file_path,
    )


async def recipient_tokens(data: NotificationInput) -> list[str]:
    if data.recipient_type == "particular":
        return await student_repository.fcm_tokens_for_students(data.selected_students or [], data.class_id)
    return await student_repository.fcm_tokens_for_class(data.class_id)


async def create_notification(
    cache: ResponseCache,
    data: NotificationInput,
) -> tuple[dict[str, Any], push.DeliveryTally]:
    notification = await repository.insert_notification(
        title=data.title,
        description=data.description,
        message=data.message,
        class_id=data.class_id,
        recipient_type=data.recipient_type,
        selected_students=data.selected_students,
        file_path=data.file_path,
    )
    cache.flush()

    try:
        tokens = await recipient_tokens(data)
        logger.info(
            "notification_push notification_id=%s recipient_type=%s tokens=%s",
            notification.get("id"),
            data.recipient_type,
            len(tokens),
        )
        tally = await push.send_batch(
            tokens,
            {
                "type": "notification",
                "title": "New Notification",
                "body": data.description,
                "message": data.description,
            },
        )
    except Exception:
        # The notification is saved; a push failure must not undo the request.
        logger.exception("notification_push_failed notification_id=%s", notification.get("id"))
        tally = push.DeliveryTally()
    return notification, tally


async def update_notification(
    pool: asyncpg.Pool,
    cache: ResponseCache,
    notification_id: int,
    data: NotificationInput,
) -> dict[str, Any]:
    async with pool.acquire() as conn:
        async with conn.transaction():
            if not await repository.lock_notification(conn, notification_id):
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
            updated = await repository.update_notification(
                conn,
                notification_id,
                title=data.title,
                description=data.description,
                message=data.message,
                class_id=data.class_id,
                recipient_type=data.recipient_type,
                selected_students=data.selected_students,
                file_path=data.file_path,
            )

    cache.flush()
    return updated or {}


async def delete_notification(cache: ResponseCache, notification_id: int) -> None:
    if await repository.delete_notification(notification_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    cache.flush()


async def student_feed(cache: ResponseCache, some_id: int, *, page: int, limit: int) -> dict[str, Any]:
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

    rows = await repository.list_for_student(
        student_id=int(student["id"]),
        class_id=int(student["class_id"]),
        limit=limit,
        offset=(page - 1) * limit,
    )
    response = {
        "success": True,
        "data": rows,
        "page": page,
        "hasMore": len(rows) == limit,
        "message": "Notifications fetched successfully",
    }
    cache.set(key, response)
    return response
