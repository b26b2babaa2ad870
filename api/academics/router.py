"""
Section and class API endpoints.
"""

from __future__ import annotations

import asyncpg
from fastapi import APIRouter, Depends

from core import db
from core.cache import ResponseCache, get_cache

from . import schemas, service

router = APIRouter()


@router.get("/api/admin/sections")
async def list_sections(cache: ResponseCache = Depends(get_cache)) -> dict:
    return await service.list_sections(cache)


@router.post("/api/admin/sections")
async def create_section(
    request: schemas.SectionCreateRequest,
    cache: ResponseCache = Depends(get_cache),
) -> dict:
    section = await service.create_section(cache, request)
    return {"success": True, "message": "Section added successfully", "section": section}


@router.delete("/api/admin/sections/{section_id}")
async def delete_section(
    section_id: int,
    pool: asyncpg.Pool = Depends(db.get_pool),
    cache: ResponseCache = Depends(get_cache),
) -> dict:
    await service.delete_section(pool, cache, section_id)
    return {"success": True, "message": "Section deleted successfully"}


@router.get("/api/admin/classes")
async def list_classes(cache: ResponseCache = Depends(get_cache)) -> dict:
    return await service.list_classes(cache)


@router.post("/api/admin/classes")
async def create_class(
    request: schemas.ClassCreateRequest,
    cache: ResponseCache = Depends(get_cache),
) -> dict:
    created = await service.create_class(cache, request)
    return {"success": True, "message": "Class added successfully", "class": created}


@router.delete("/api/admin/classes/{class_id}")
async def delete_class(
    class_id: int,
    pool: asyncpg.Pool = Depends(db.get_pool),
    cache: ResponseCache = Depends(get_cache),
) -> dict:
    await service.delete_class(pool, cache, class_id)
    return {"success": True, "message": "Class deleted successfully"}
