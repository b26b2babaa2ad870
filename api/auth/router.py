"""
Auth API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter

from . import schemas, service

router = APIRouter()


@router.post("/api/login")
async def login(payload: schemas.LoginRequest) -> dict:
    user = await service.login(payload)
    return {"success": True, "message": "Login successful", "user": user.model_dump()}


@router.get("/api/setup-admin")
async def setup_admin() -> dict:
    created, user = await service.setup_admin()
    message = "Admin user created" if created else "Admin user already exists"
    return {"success": True, "message": message, "user": user}
