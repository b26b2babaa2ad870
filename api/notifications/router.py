"""
Notification API endpoints.
"""

from __future__ import annotations

from dataclasses import replace

import asyncpg
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from core import db, uploads
from core.cache import ResponseCache, get_cache
from students.schemas import parse_optional_id

from . import repository, service

router = APIRouter()


@router.get("/api/admin/notifications")
async def list_notifications() -> dict:
    return {"success": True, "notifications": await repository.list_notifications()}


@router.post("/api/admin/notifications")
async def create_notification(
    title: str | None = Form(default=None),
    description: str | None = Form(default=None),
    message: str | None = Form(default=None),
    class_id: str | None = Form(default=None),
    recipient_type: str | None = Form(default=None),
    selected_students: str | None = Form(default=None),
    notificationFile: UploadFile | None = File(default=None),
    cache: ResponseCache = Depends(get_cache),
) -> dict:
    data = service.build_input(
        title=title,
        description=description,
        message=message,
        class_id=parse_optional_id(class_id, "class_id"),
        recipient_type=recipient_type,
        selected_students=selected_students,
        file_path=None,
    )
    file_path = await uploads.save_optional_upload(notificationFile)
    if file_path is not None:
        data = replace(data, file_path=file_path)

    notification, tally = await service.create_notification(cache, data)
    return {
        "success": True,
        "message": "Notification created successfully",
        "notification": notification,
        "push": tally.as_dict(),
    }


@router.put("/api/admin/notifications/{notification_id}")
async def update_notification(
    notification_id: int,
    title: str | None = Form(default=None),
    description: str | None = Form(default=None),
    message: str | None = Form(default=None),
    class_id: str | None = Form(default=None),
    recipient_type: str | None = Form(default=None),
    selected_students: str | None = Form(default=None),
    notificationFile: UploadFile | None = File(default=None),
    pool: asyncpg.Pool = Depends(db.get_pool),
    cache: ResponseCache = Depends(get_cache),
) -> dict:
    data = service.build_input(
        title=title,
        description=description,
        message=message,
        class_id=parse_optional_id(class_id, "class_id"),
        recipient_type=recipient_type,
        selected_students=selected_students,
        file_path=None,
    )
    file_path = await uploads.save_optional_upload(notificationFile)
    if file_path is not None:
        data = replace(data, file_path=file_path)

    notification = await service.update_notification(pool, cache, notification_id, data)
    return {"success": True, "message": "Notification updated successfully", "notification": notification}


@router.delete("/api/admin/notifications/{notification_id}")
async def delete_notification(notification_id: int, cache: ResponseCache = Depends(get_cache)) -> dict:
    await service.delete_notification(cache, notification_id)
    return {"success": True, "message": "Notification deleted successfully"}


@router.get("/api/student/notifications/{some_id}")
async def student_notifications(
    some_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    cache: ResponseCache = Depends(get_cache),
) -> dict:
    return await service.student_feed(cache, some_id, page=page, limit=limit)
