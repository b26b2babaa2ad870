"""
FastAPI router for bulk student import endpoints.
"""

from __future__ import annotations

import logging

import asyncpg
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from core import db, uploads
from core.cache import ResponseCache, get_cache

from . import service

router = APIRouter()

logger = logging.getLogger(__name__)


@router.post("/api/admin/students/bulk-upload")
async def bulk_upload(
    excelFile: UploadFile | None = File(default=None),
    pool: asyncpg.Pool = Depends(db.get_pool),
    cache: ResponseCache = Depends(get_cache),
) -> dict:
    """
    Import students from a spreadsheet (.xlsx, .xls or .csv).
    """
    source = await uploads.stage_upload(
        excelFile,
        allowed_extensions=uploads.SPREADSHEET_EXTENSIONS,
        missing_detail="Excel file is required",
    )
    try:
        summary = await service.import_spreadsheet(pool, source)
    except service.ImportSourceError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("bulk_upload_failed source=%s", source.name)
        raise HTTPException(status_code=500, detail="Failed to upload students") from exc
    finally:
        uploads.discard(source)

    if summary.imported:
        cache.flush()

    return {
        "success": True,
        "message": f"Imported {summary.imported}/{summary.total} students",
        "data": summary.as_dict(),
    }


@router.post("/api/admin/students/bulk-upload-zip")
async def bulk_upload_zip(
    zipFile: UploadFile | None = File(default=None),
    pool: asyncpg.Pool = Depends(db.get_pool),
    cache: ResponseCache = Depends(get_cache),
) -> dict:
    """
    Import students from a zip holding one spreadsheet plus their photos.
    """
    source = await uploads.stage_upload(
        zipFile,
        allowed_extensions=uploads.ARCHIVE_EXTENSIONS,
        missing_detail="ZIP file is required",
    )
    try:
        summary = await service.import_archive(pool, source)
    except service.ImportSourceError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("bulk_upload_zip_failed source=%s", source.name)
        raise HTTPException(status_code=500, detail="Failed to upload students from ZIP") from exc
    finally:
        uploads.discard(source)

    if summary.imported:
        cache.flush()

    return {
        "success": True,
        "message": f"Imported {summary.imported}/{summary.total} students with photos",
        "data": summary.as_dict(with_photos=True),
    }
