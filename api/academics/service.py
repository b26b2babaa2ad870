"""
Section and class business logic.

Both lists are cached under a fixed key; every mutation deletes that key.
"""

from __future__ import annotations

import logging
from typing import Any

import asyncpg
from fastapi import HTTPException, status

from core.cache import ResponseCache

from . import repository
from .schemas import ClassCreateRequest, SectionCreateRequest

SECTIONS_CACHE_KEY = "sections_all"
CLASSES_CACHE_KEY = "classes_all"

logger = logging.getLogger(__name__)


async def list_sections(cache: ResponseCache) -> dict[str, Any]:
    cached = cache.get(SECTIONS_CACHE_KEY)
    if cached is not None:
        return cached
    response = {"success": True, "sections": await repository.list_sections()}
    cache.set(SECTIONS_CACHE_KEY, response)
    return response


async def create_section(cache: ResponseCache, payload: SectionCreateRequest) -> dict[str, Any]:
    name = payload.section_name.strip()
    start_time = payload.start_time.strip()
    end_time = payload.end_time.strip()
    if not (name and start_time and end_time):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Section name, start time, and end time are required",
        )

    if await repository.section_exists(name, start_time, end_time):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A section with the same name and timing already exists",
        )

    section = await repository.insert_section(name, start_time, end_time)
    cache.delete(SECTIONS_CACHE_KEY)
    return section


async def delete_section(pool: asyncpg.Pool, cache: ResponseCache, section_id: int) -> None:
    async with pool.acquire() as conn:
        async with conn.transaction():
            if await repository.count_classes_in_section(conn, section_id) > 0:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="Cannot delete section. It is being used by existing classes.",
                )
            if await repository.delete_section(conn, section_id) is None:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Section not found")

    cache.delete(SECTIONS_CACHE_KEY, CLASSES_CACHE_KEY)
    logger.info("section_deleted section_id=%s", section_id)


async def list_classes(cache: ResponseCache) -> dict[str, Any]:
    cached = cache.get(CLASSES_CACHE_KEY)
    if cached is not None:
        return cached
    response = {"success": True, "classes": await repository.list_classes()}
    cache.set(CLASSES_CACHE_KEY, response)
    return response


async def create_class(cache: ResponseCache, payload: ClassCreateRequest) -> dict[str, Any]:
    name = payload.class_name.strip()
    teacher = payload.teacher_name.strip()
    if not (name and payload.section_id and teacher):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Class name, section, and teacher name are required",
        )

    created = await repository.insert_class(name, payload.section_id, teacher)
    cache.delete(CLASSES_CACHE_KEY)
    return created


async def delete_class(pool: asyncpg.Pool, cache: ResponseCache, class_id: int) -> None:
    async with pool.acquire() as conn:
        async with conn.transaction():
            if await repository.count_students_in_class(conn, class_id) > 0:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="Cannot delete class. It has enrolled students.",
                )
            if await repository.delete_class(conn, class_id) is None:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")

    cache.delete(CLASSES_CACHE_KEY)
    logger.info("class_deleted class_id=%s", class_id)
