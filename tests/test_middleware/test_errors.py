"""Tests for error handling middleware and exception handlers."""

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from app.core.errors import ConflictError, InternalServerError, NotFoundError
from app.middleware.errors import create_error_response, get_error_detail


@pytest.fixture
def failing_app(test_app: FastAPI) -> FastAPI:
    """Test application with routes that raise assorted errors."""

    async def crash() -> None:
        raise RuntimeError("secret connection string")

    async def missing() -> None:
        raise NotFoundError("Widget not found")

    async def forbidden() -> None:
        raise HTTPException(status_code=403, detail="Nope")

    async def bad_cast() -> None:
        int("postgres://admin:hunter2@db")

    async def internal() -> None:
        raise InternalServerError("pool exhausted on 10.0.0.5")

    test_app.add_api_route("/boom/crash", crash)
    test_app.add_api_route("/boom/missing", missing)
    test_app.add_api_route("/boom/forbidden", forbidden)
    test_app.add_api_route("/boom/value", bad_cast)
    test_app.add_api_route("/boom/internal", internal)
    return test_app


@pytest.mark.asyncio
async def test_unknown_exception_is_hidden(
    failing_app: FastAPI, api_client: AsyncClient
) -> None:
    response = await api_client.get("/boom/crash", headers={"X-Request-ID": "req-500"})

    assert response.status_code == 500
    assert response.json() == {
        "error": "InternalServerError",
        "message": "Internal server error",
        "status_code": 500,
        "correlation_id": "req-500",
    }
    assert "secret" not in response.text
    assert response.headers["X-Request-ID"] == "req-500"


@pytest.mark.asyncio
async def test_value_error_is_not_echoed(
    failing_app: FastAPI, api_client: AsyncClient
) -> None:
    response = await api_client.get("/boom/value")

    assert response.status_code == 500
    assert response.json()["error"] == "InternalServerError"
    assert response.json()["message"] == "Internal server error"
    assert "hunter2" not in response.text


@pytest.mark.asyncio
async def test_internal_app_error_uses_generic_message(
    failing_app: FastAPI, api_client: AsyncClient
) -> None:
    response = await api_client.get("/boom/internal")

    assert response.status_code == 500
    assert response.json()["error"] == "InternalServerError"
    assert response.json()["message"] == InternalServerError().message
    assert "10.0.0.5" not in response.text


@pytest.mark.asyncio
async def test_app_error_keeps_status_and_message(
    failing_app: FastAPI, api_client: AsyncClient
) -> None:
    response = await api_client.get("/boom/missing")

    assert response.status_code == 404
    data = response.json()
    assert data["error"] == "NotFoundError"
    assert data["message"] == "Widget not found"
    assert data["correlation_id"] == response.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_http_exception_uses_error_shape(
    failing_app: FastAPI, api_client: AsyncClient
) -> None:
    response = await api_client.get("/boom/forbidden")

    assert response.status_code == 403
    assert response.json()["message"] == "Nope"


@pytest.mark.asyncio
async def test_unknown_route_is_404(api_client: AsyncClient) -> None:
    response = await api_client.get("/api/v1/nothing-here")

    assert response.status_code == 404
    assert response.json()["status_code"] == 404


def test_get_error_detail_mapping() -> None:
    assert get_error_detail(ConflictError("taken")) == ("taken", 409)
    assert get_error_detail(ValueError("bad value")) == ("Internal server error", 500)
    assert get_error_detail(KeyError("x")) == ("Internal server error", 500)
    assert get_error_detail(
        OperationalError("SELECT 1", {}, Exception("refused"))
    ) == ("Database unavailable", 503)


def test_validation_message_names_fields() -> None:
    exc = RequestValidationError(
        [{"loc": ("body", "email"), "msg": "value is not a valid email", "type": "x"}]
    )

    detail, status_code = get_error_detail(exc)

    assert status_code == 422
    assert detail == "email: value is not a valid email"


def test_error_response_without_correlation_id() -> None:
    response = create_error_response("NotFoundError", "gone", 404, None)

    assert response.status_code == 404
    assert b'"correlation_id":"unknown"' in response.body
    assert "X-Request-ID" not in response.headers
