"""
FastAPI router for student records and the student profile.
"""

from __future__ import annotations

import asyncpg
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from core import db, uploads
from core.cache import ResponseCache, get_cache

from . import repository, service
from .schemas import ContactUpdateRequest, FcmTokenRequest, StudentForm, student_form

router = APIRouter()


# ---- admin -------------------------------------------------------------------


@router.get("/api/admin/students")
async def list_students() -> dict:
    return {"success": True, "students": await repository.list_students()}


@router.get("/api/admin/students/class/{class_id}")
async def list_students_by_class(class_id: int) -> dict:
    return {"success": True, "students": await repository.list_students_by_class(class_id)}


@router.post("/api/admin/students")
async def create_student(
    form: StudentForm = Depends(student_form),
    photo: UploadFile | None = File(default=None),
    pool: asyncpg.Pool = Depends(db.get_pool),
) -> dict:
    profile_photo = await uploads.save_optional_upload(photo)
    student = await service.create_student(pool, form, profile_photo=profile_photo)
    return {"success": True, "message": "Student added successfully", "student": student}


@router.put("/api/admin/students/{student_id}")
async def update_student(
    student_id: int,
    form: StudentForm = Depends(student_form),
    photo: UploadFile | None = File(default=None),
    pool: asyncpg.Pool = Depends(db.get_pool),
    cache: ResponseCache = Depends(get_cache),
) -> dict:
    profile_photo = await uploads.save_optional_upload(photo)
    student = await service.update_student(pool, cache, student_id, form, profile_photo=profile_photo)
    return {"success": True, "message": "Student updated successfully", "student": student}


@router.delete("/api/admin/students/{student_id}")
async def delete_student(
    student_id: int,
    pool: asyncpg.Pool = Depends(db.get_pool),
    cache: ResponseCache = Depends(get_cache),
) -> dict:
    student = await service.delete_student(pool, cache, student_id)
    return {
        "success": True,
        "message": f"Student {student['first_name']} {student['last_name']} deleted successfully",
    }


# ---- student self-service ---------------------------------------------------


@router.get("/api/student/profile/{some_id}")
async def get_profile(some_id: int, cache: ResponseCache = Depends(get_cache)) -> dict:
    """
    `some_id` is tried as a user id first, then as a student id.
    """
    return await service.get_profile(cache, some_id)


@router.post("/api/student/profile/{some_id}")
async def update_contact(
    some_id: int,
    payload: ContactUpdateRequest,
    pool: asyncpg.Pool = Depends(db.get_pool),
    cache: ResponseCache = Depends(get_cache),
) -> dict:
    profile = await service.update_contact(pool, cache, some_id, payload)
    return {"success": True, "message": "Profile updated successfully", "profile": profile}


@router.post("/api/student/profile/{some_id}/photo")
async def update_photo(
    some_id: int,
    photo: UploadFile | None = File(default=None),
    pool: asyncpg.Pool = Depends(db.get_pool),
    cache: ResponseCache = Depends(get_cache),
) -> dict:
    profile_photo = await uploads.save_optional_upload(photo)
    if profile_photo is None:
        raise HTTPException(status_code=400, detail="No photo file provided")
    profile = await service.update_photo(pool, cache, some_id, profile_photo)
    return {"success": True, "message": "Profile photo updated successfully", "profile": profile}


@router.put("/api/student/profile/{user_id}")
async def update_full_profile(
    user_id: int,
    form: StudentForm = Depends(student_form),
    photo: UploadFile | None = File(default=None),
    pool: asyncpg.Pool = Depends(db.get_pool),
    cache: ResponseCache = Depends(get_cache),
) -> dict:
    profile_photo = await uploads.save_optional_upload(photo)
    profile = await service.update_full_profile(pool, cache, user_id, form, profile_photo=profile_photo)
    return {"success": True, "message": "Profile updated successfully", "profile": profile}


@router.post("/api/student/{student_id}/fcm-token")
async def register_fcm_token(
    student_id: int,
    payload: FcmTokenRequest,
    cache: ResponseCache = Depends(get_cache),
) -> dict:
    await service.register_fcm_token(cache, student_id, payload.fcm_token)
    return {"success": True, "message": "FCM token updated successfully", "data": "Token saved"}
