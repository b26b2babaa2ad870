import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from auth import repository, router
from core.errors import register_exception_handlers

USERS = {
    "admin": {"id": 1, "username": "admin", "password": "admin@123", "role": "admin", "student_id": None},
    "ann": {"id": 2, "username": "ann", "password": "pw", "role": "student", "student_id": 99},
    "ghost": {"id": 3, "username": "ghost", "password": "pw", "role": "student", "student_id": None},
}

STUDENT_IDS = {2: 5}


@pytest.fixture
def auth_client(monkeypatch) -> TestClient:
    async def get_user_by_username(username):
        user = USERS.get(username)
        return dict(user) if user else None

    async def get_student_id_for_user(user_id):
        return STUDENT_IDS.get(user_id)

    monkeypatch.setattr(repository, "get_user_by_username", get_user_by_username)
    monkeypatch.setattr(repository, "get_student_id_for_user", get_student_id_for_user)

    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(router.router)
    return TestClient(app)


def test_admin_login(auth_client) -> None:
    res = auth_client.post("/api/login", json={"username": "admin", "password": "admin@123"})
    assert res.status_code == 200
    assert res.json()["user"] == {"id": 1, "username": "admin", "role": "admin", "studentId": None}


def test_student_id_comes_from_the_students_table(auth_client) -> None:
    res = auth_client.post("/api/login", json={"username": "ann", "password": "pw"})
    assert res.status_code == 200
    assert res.json()["user"]["studentId"] == 5


def test_student_without_record_is_404(auth_client) -> None:
    res = auth_client.post("/api/login", json={"username": "ghost", "password": "pw"})
    assert res.status_code == 404


@pytest.mark.parametrize("username, password", [("ann", "wrong"), ("nobody", "pw")])
def test_bad_credentials_are_401(auth_client, username, password) -> None:
    res = auth_client.post("/api/login", json={"username": username, "password": password})
    assert res.status_code == 401
    assert res.json() == {"success": False, "message": "Invalid username or password"}


def test_missing_fields_are_400(auth_client) -> None:
    res = auth_client.post("/api/login", json={"username": "ann"})
    assert res.status_code == 400
