"""
Assignment API endpoints.
"""

from __future__ import annotations

import asyncpg
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from core import db, uploads
from core.cache import ResponseCache, get_cache
from students.schemas import blank_to_none, parse_optional_id

from . import repository, service

router = APIRouter()


@router.get("/api/admin/assignments")
async def list_assignments() -> dict:
    return {"success": True, "assignments": await repository.list_assignments()}


@router.post("/api/admin/assignments")
async def create_assignment(
    class_id: str | None = Form(default=None),
    title: str | None = Form(default=None),
    description: str | None = Form(default=None),
    assignmentFile: UploadFile | None = File(default=None),
    cache: ResponseCache = Depends(get_cache),
) -> dict:
    parsed_class_id = parse_optional_id(class_id, "class_id")
    file_path = await uploads.save_optional_upload(assignmentFile)
    assignment, tally = await service.create_assignment(
        cache,
        class_id=parsed_class_id,
        title=title,
        description=blank_to_none(description),
        file_path=file_path,
    )
    return {
        "success": True,
        "message": "Assignment created successfully",
        "assignment": assignment,
        "push": tally.as_dict(),
    }


@router.put("/api/admin/assignments/{assignment_id}")
async def update_assignment(
    assignment_id: int,
    class_id: str | None = Form(default=None),
    title: str | None = Form(default=None),
    description: str | None = Form(default=None),
    assignmentFile: UploadFile | None = File(default=None),
    pool: asyncpg.Pool = Depends(db.get_pool),
    cache: ResponseCache = Depends(get_cache),
) -> dict:
    parsed_class_id = parse_optional_id(class_id, "class_id")
    file_path = await uploads.save_optional_upload(assignmentFile)
    assignment = await service.update_assignment(
        pool,
        cache,
        assignment_id,
        class_id=parsed_class_id,
        title=title,
        description=blank_to_none(description),
        file_path=file_path,
    )
    return {"success": True, "message": "Assignment updated successfully", "assignment": assignment}


@router.delete("/api/admin/assignments/{assignment_id}")
async def delete_assignment(assignment_id: int, cache: ResponseCache = Depends(get_cache)) -> dict:
    await service.delete_assignment(cache, assignment_id)
    return {"success": True, "message": "Assignment deleted successfully"}


@router.get("/api/student/assignments/{some_id}")
async def student_assignments(
    some_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    cache: ResponseCache = Depends(get_cache),
) -> dict:
    return await service.student_feed(cache, some_id, page=page, limit=limit)
