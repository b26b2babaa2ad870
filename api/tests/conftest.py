"""
Shared fixtures.

The import pipeline talks to Postgres through `pool.acquire()` /
`conn.transaction()` and the `students.repository` functions. Tests swap
both for an in-memory store whose transactions snapshot state on entry and
restore it when the block raises.
"""

from __future__ import annotations

import copy
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from bulk_import import router as bulk_import_router
from core import db
from core.cache import ResponseCache, get_cache
from core.errors import register_exception_handlers
from students import repository as student_repository


@dataclass
class MemoryStore:
    users: list[dict[str, Any]] = field(default_factory=list)
    students: list[dict[str, Any]] = field(default_factory=list)
    classes: list[dict[str, Any]] = field(default_factory=list)
    class_lookups: list[str] = field(default_factory=list)
    fail_student_insert_for: set[str] = field(default_factory=set)

    def add_class(self, class_name: str) -> int:
        class_id = len(self.classes) + 1
        self.classes.append({"id": class_id, "class_name": class_name})
        return class_id

    def add_user(self, username: str, *, role: str = "student") -> int:
        user_id = len(self.users) + 1
        self.users.append(
            {"id": user_id, "username": username, "password": "x", "email": None, "role": role, "student_id": None}
        )
        return user_id

    def snapshot(self) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
        return copy.deepcopy(self.users), copy.deepcopy(self.students)

    def restore(self, state: tuple[list[dict[str, Any]], list[dict[str, Any]]]) -> None:
        self.users, self.students = state

    def user(self, username: str) -> dict[str, Any] | None:
        return next((u for u in self.users if u["username"] == username), None)


class FakeConnection:
    def __init__(self, store: MemoryStore) -> None:
        self.store = store

    @asynccontextmanager
    async def transaction(self):
        state = self.store.snapshot()
        try:
            yield self
        except BaseException:
            self.store.restore(state)
            raise


class FakePool:
    def __init__(self, store: MemoryStore) -> None:
        self.store = store
        self.acquired = 0

    @asynccontextmanager
    async def acquire(self):
        self.acquired += 1
        yield FakeConnection(self.store)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def pool(store: MemoryStore) -> FakePool:
    return FakePool(store)


@pytest.fixture(autouse=True)
def upload_env(tmp_path, monkeypatch):
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "uploads"))
    return tmp_path / "uploads"


@pytest.fixture
def fake_repository(store: MemoryStore, monkeypatch) -> MemoryStore:
    async def find_class_id_by_name(conn, class_name):
        store.class_lookups.append(class_name)
        matches = [c["id"] for c in store.classes if c["class_name"].lower() == class_name.lower()]
        return min(matches) if matches else None

    async def username_exists(conn, username, *, exclude_user_id=None):
        return any(u["username"] == username and u["id"] != exclude_user_id for u in store.users)

    async def roll_number_exists(conn, roll_number, class_id, *, exclude_user_id=None):
        return any(
            s["roll_number"] == roll_number and s["class_id"] == class_id and s["user_id"] != exclude_user_id
            for s in store.students
        )

    async def insert_user(conn, *, username, password, email, role="student"):
        user_id = max((u["id"] for u in store.users), default=0) + 1
        store.users.append(
            {"id": user_id, "username": username, "password": password, "email": email, "role": role, "student_id": None}
        )
        return user_id

    async def insert_student(conn, *, user_id, fields, profile_photo=None):
        username = next(u["username"] for u in store.users if u["id"] == user_id)
        if username in store.fail_student_insert_for:
            raise RuntimeError("insert or update on table \"students\" violates foreign key constraint")
        student = {"id": max((s["id"] for s in store.students), default=0) + 1, "user_id": user_id}
        student.update(fields)
        student["profile_photo"] = profile_photo
        store.students.append(student)
        return dict(student)

    async def link_user_to_student(conn, *, user_id, student_id):
        for u in store.users:
            if u["id"] == user_id:
                u["student_id"] = student_id

    monkeypatch.setattr(student_repository, "find_class_id_by_name", find_class_id_by_name)
    monkeypatch.setattr(student_repository, "username_exists", username_exists)
    monkeypatch.setattr(student_repository, "roll_number_exists", roll_number_exists)
    monkeypatch.setattr(student_repository, "insert_user", insert_user)
    monkeypatch.setattr(student_repository, "insert_student", insert_student)
    monkeypatch.setattr(student_repository, "link_user_to_student", link_user_to_student)
    return store


@pytest.fixture
def response_cache() -> ResponseCache:
    return ResponseCache(ttl_seconds=300)


@pytest.fixture
def client(pool: FakePool, fake_repository: MemoryStore, response_cache: ResponseCache) -> TestClient:
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(bulk_import_router.router)

    async def _pool():
        return pool

    async def _cache():
        return response_cache

    app.dependency_overrides[db.get_pool] = _pool
    app.dependency_overrides[get_cache] = _cache
    return TestClient(app, raise_server_exceptions=False)


