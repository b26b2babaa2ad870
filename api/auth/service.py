"""
Auth business logic.

Passwords are stored and compared as entered.
"""

from __future__ import annotations

import logging
import secrets

from fastapi import HTTPException, status

from core import settings

from . import repository, schemas

logger = logging.getLogger(__name__)


def _password_matches(given: str, stored: str | None) -> bool:
    return secrets.compare_digest(given.encode("utf-8"), (stored or "").encode("utf-8"))


async def login(payload: schemas.LoginRequest) -> schemas.LoginUser:
    username = payload.username.strip()
    if not username or not payload.password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username and password are required",
        )

    user_row = await repository.get_user_by_username(username)
    if user_row is None or not _password_matches(payload.password, user_row.get("password")):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )

    user_id = int(user_row["id"])
    role = str(user_row.get("role") or "")
    student_id: int | None = None

    if role == "student":
        # students.user_id is authoritative; users.student_id may be stale.
        student_id = await repository.get_student_id_for_user(user_id)
        if student_id is None:
            logger.error("login_student_missing user_id=%s", user_id)
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Student record not found for this user",
            )
        if user_row.get("student_id") != student_id:
            logger.warning(
                "login_student_id_mismatch user_id=%s users.student_id=%s students.id=%s",
                user_id,
                user_row.get("student_id"),
                student_id,
            )

    logger.info("login_ok user_id=%s role=%s", user_id, role)
    return schemas.LoginUser(id=user_id, username=str(user_row["username"]), role=role, studentId=student_id)


async def setup_admin() -> tuple[bool, dict]:
    """
    Create the bootstrap admin account if it does not exist yet.

    Returns (created, user_row).
    """
    username = settings.admin_username()
    existing = await repository.get_user_by_username(username)
    if existing is not None:
        existing.pop("password", None)
        return False, existing

    user_row = await repository.create_user(
        username=username,
        password=settings.admin_default_password(),
        role="admin",
    )
    logger.info("admin_created user_id=%s", user_row["id"])
    return True, user_row
