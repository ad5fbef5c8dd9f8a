"""Tests for global exception handlers.

Validates that all exception types are handled consistently with
proper HTTP status codes, error format, and no information leakage.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.errors import (
    AppError,
    AuthenticationAppError,
    ConfigurationAppError,
    RateLimitExceededError,
)
from app.core.exception_handlers import setup_exception_handlers


@pytest.fixture
def app_with_handlers() -> FastAPI:
    app = FastAPI()
    setup_exception_handlers(app)

    @app.get("/validation")
    async def validation():
        raise AppError(code="bad_input", message="Bad input", details={"field": "page"})

    @app.get("/auth")
    async def auth():
        raise AuthenticationAppError(code="invalid_api_key", message="Nope")

    @app.get("/config")
    async def config():
        raise ConfigurationAppError(code="missing", message="Missing config")

    @app.get("/limited")
    async def limited():
        raise RateLimitExceededError(
            code="rate_limit_exceeded",
            message="Slow down",
            details={"retry_after": 12, "limit": 5, "remaining": 0, "reset_at": "2026-01-01T00:00:00.000Z"},
        )

    @app.get("/boom")
    async def boom():
        raise RuntimeError("database password is hunter2")

    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers, raise_server_exceptions=False)


def test_plain_app_error_returns_400_with_details(client: TestClient) -> None:
    resp = client.get("/validation")

    assert resp.status_code == 400
    error = resp.json()["error"]
    assert error["code"] == "bad_input"
    assert error["details"] == {"field": "page"}
    assert "request_id" in error


def test_authentication_error_returns_403(client: TestClient) -> None:
    assert client.get("/auth").status_code == 403


def test_configuration_error_returns_500(client: TestClient) -> None:
    resp = client.get("/config")

    assert resp.status_code == 500
    assert resp.json()["error"]["code"] == "missing"


def test_rate_limit_error_returns_429_payload_and_headers(client: TestClient) -> None:
    resp = client.get("/limited")

    assert resp.status_code == 429
    assert resp.json() == {
        "success": False,
        "error": "Rate limit exceeded",
        "message": "Slow down",
        "retryAfter": 12,
    }
    assert resp.headers["Retry-After"] == "12"
    assert resp.headers["X-RateLimit-Limit"] == "5"
    assert resp.headers["X-RateLimit-Remaining"] == "0"
    assert resp.headers["X-RateLimit-Reset"] == "2026-01-01T00:00:00.000Z"


def test_unexpected_error_returns_generic_500(client: TestClient) -> None:
    resp = client.get("/boom")

    assert resp.status_code == 500
    body = resp.json()
    assert body["error"]["code"] == "internal_server_error"
    assert "hunter2" not in resp.text
