from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient
from pydantic import BaseModel

from core.errors import register_exception_handlers


class Payload(BaseModel):
    name: str


def _client() -> TestClient:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/conflict")
    def conflict() -> dict:
        raise HTTPException(status_code=409, detail="Section already exists")

    @app.post("/validate")
    def validate(payload: Payload) -> dict:
        return {"success": True}

    @app.get("/boom")
    def boom() -> dict:
        raise RuntimeError("db went away")

    return TestClient(app, raise_server_exceptions=False)


def test_http_errors_use_the_envelope() -> None:
    res = _client().get("/conflict")
    assert res.status_code == 409
    assert res.json() == {"success": False, "message": "Section already exists"}


def test_unknown_route_reports_path() -> None:
    res = _client().get("/api/nope")
    assert res.status_code == 404
    assert res.json() == {"success": False, "message": "Route not found", "path": "/api/nope"}


def test_validation_errors_are_400() -> None:
    res = _client().post("/validate", json={})
    assert res.status_code == 400
    body = res.json()
    assert body["success"] is False
    assert "name" in body["message"]


def test_unhandled_errors_are_500_without_details() -> None:
    res = _client().get("/boom")
    assert res.status_code == 500
    assert res.json() == {"success": False, "message": "Internal server error"}
