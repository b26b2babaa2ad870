"""
Student business logic: admin CRUD and the student self-service profile.
"""

from __future__ import annotations

import logging
from typing import Any

import asyncpg
from fastapi import HTTPException, status

from core.cache import ResponseCache

from . import repository
from .schemas import ContactUpdateRequest, StudentForm

logger = logging.getLogger(__name__)


def profile_cache_key(some_id: int) -> str:
    return f"profile_{some_id}"


def _drop_profile(cache: ResponseCache, ref: dict[str, Any]) -> None:
    # Profiles are cached under both the student id and the user id.
    cache.delete(profile_cache_key(int(ref["id"])), profile_cache_key(int(ref["user_id"])))


def _conflict(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)


def _not_found(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


async def create_student(pool: asyncpg.Pool, form: StudentForm, *, profile_photo: str | None) -> dict[str, Any]:
    if not (form.first_name and form.last_name and form.username and form.password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Required fields: first_name, last_name, username, password",
        )

    async with pool.acquire() as conn:
        async with conn.transaction():
            if await repository.username_exists(conn, form.username):
                raise _conflict("Username already exists")

            if form.class_id and form.roll_number:
                if await repository.roll_number_exists(conn, form.roll_number, form.class_id):
                    raise _conflict("Roll number already exists in this class")

            user_id = await repository.insert_user(
                conn,
                username=form.username,
                password=form.password,
                email=form.email,
            )
            student = await repository.insert_student(
                conn,
                user_id=user_id,
                fields=form.student_fields(),
                profile_photo=profile_photo,
            )
            await repository.link_user_to_student(conn, user_id=user_id, student_id=int(student["id"]))

    logger.info("student_created student_id=%s user_id=%s", student["id"], user_id)
    return student


async def update_student(
    pool: asyncpg.Pool,
    cache: ResponseCache,
    student_id: int,
    form: StudentForm,
    *,
    profile_photo: str | None,
) -> dict[str, Any]:
    """
    Admin update. Flushes the cache: a class change moves the student
    between feeds as well as changing the profile.
    """
    async with pool.acquire() as conn:
        async with conn.transaction():
            student = await repository.update_student(
                conn,
                student_id,
                fields=form.student_fields(),
                profile_photo=profile_photo,
            )
            if student is None:
                raise _not_found("Student not found")
            if form.email:
                await repository.update_user_email_for_student(conn, student_id, form.email)

    cache.flush()
    return student


async def delete_student(pool: asyncpg.Pool, cache: ResponseCache, student_id: int) -> dict[str, Any]:
    """
    Delete a student and its login account together.
    """
    async with pool.acquire() as conn:
        async with conn.transaction():
            student = await repository.get_student_with_username(conn, student_id)
            if student is None:
                raise _not_found("Student not found")
            await repository.delete_student_and_user(
                conn,
                student_id=student_id,
                user_id=int(student["user_id"]),
            )

    cache.flush()
    logger.info("student_deleted student_id=%s user_id=%s", student_id, student["user_id"])
    return student


async def get_profile(cache: ResponseCache, some_id: int) -> dict[str, Any]:
    key = profile_cache_key(some_id)
    cached = cache.get(key)
    if cached is not None:
        return cached

    profile = await repository.get_profile_by_user_id(some_id)
    if profile is None:
        profile = await repository.get_profile_by_student_id(some_id)
    if profile is None:
        raise _not_found("Student profile not found")

    response = {"success": True, "profile": profile}
    cache.set(key, response)
    return response


async def _resolve_ref(conn: asyncpg.Connection, some_id: int) -> dict[str, Any]:
    ref = await repository.find_student_ref(conn, some_id)
    if ref is None:
        raise _not_found("Student profile not found")
    return ref


async def update_contact(
    pool: asyncpg.Pool,
    cache: ResponseCache,
    some_id: int,
    payload: ContactUpdateRequest,
) -> dict[str, Any] | None:
    async with pool.acquire() as conn:
        async with conn.transaction():
            ref = await _resolve_ref(conn, some_id)
            user_id = int(ref["user_id"])
            await repository.update_contact_fields(conn, user_id, fields=payload.student_fields())
            email = (payload.email or "").strip()
            if email:
                await repository.update_user_email(conn, user_id, email)
        profile = await repository.get_profile(conn, user_id)

    _drop_profile(cache, ref)
    return profile


async def update_photo(
    pool: asyncpg.Pool,
    cache: ResponseCache,
    some_id: int,
    profile_photo: str,
) -> dict[str, Any] | None:
    async with pool.acquire() as conn:
        async with conn.transaction():
            ref = await _resolve_ref(conn, some_id)
            user_id = int(ref["user_id"])
            await repository.update_profile_photo(conn, user_id, profile_photo)
        profile = await repository.get_profile(conn, user_id)

    _drop_profile(cache, ref)
    return profile


async def update_full_profile(
    pool: asyncpg.Pool,
    cache: ResponseCache,
    user_id: int,
    form: StudentForm,
    *,
    profile_photo: str | None,
) -> dict[str, Any] | None:
    if not (form.first_name and form.last_name and form.username):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="First name, last name, and username are required",
        )

    try:
        async with pool.acquire() as conn:
            async with conn.transaction():
                ref = await repository.find_student_ref(conn, user_id)
                if ref is None or int(ref["user_id"]) != user_id:
                    raise _not_found("Student profile not found")

                current_username = await repository.get_username(conn, user_id)
                if current_username != form.username:
                    if await repository.username_exists(conn, form.username, exclude_user_id=user_id):
                        raise _conflict("Username already exists")

                if form.roll_number and form.class_id:
                    if await repository.roll_number_exists(
                        conn,
                        form.roll_number,
                        form.class_id,
                        exclude_user_id=user_id,
                    ):
                        raise _conflict("Roll number already exists in this class")

                await repository.update_user_account(
                    conn,
                    user_id,
                    username=form.username,
                    email=form.email,
                    password=form.password,
                )
                await repository.update_student_by_user(
                    conn,
                    user_id,
                    fields=form.student_fields(),
                    profile_photo=profile_photo,
                )
            profile = await repository.get_profile(conn, user_id)
    except asyncpg.UniqueViolationError as exc:
        raise _conflict("Duplicate entry detected") from exc

    # class_id may have changed, which moves the student between feeds.
    cache.flush()
    return profile


async def register_fcm_token(cache: ResponseCache, student_id: int, token: str | None) -> dict[str, Any]:
    token = (token or "").strip()
    if not token:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="FCM token is required")

    student = await repository.set_fcm_token(student_id, token)
    if student is None:
        logger.info("fcm_token_student_missing student_id=%s", student_id)
        raise _not_found("Student not found")

    _drop_profile(cache, student)
    logger.info("fcm_token_saved student_id=%s token_prefix=%s", student_id, token[:20])
    return student
