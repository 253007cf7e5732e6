"""Tests for correlation ID and security header middleware."""

import uuid

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_request_id_is_echoed(api_client: AsyncClient) -> None:
    response = await api_client.get("/api/v1/health", headers={"X-Request-ID": "abc-123"})

    assert response.headers["X-Request-ID"] == "abc-123"


@pytest.mark.asyncio
async def test_correlation_header_is_accepted(api_client: AsyncClient) -> None:
    response = await api_client.get(
        "/api/v1/health", headers={"X-Correlation-ID": "trace.42"}
    )

    assert response.headers["X-Request-ID"] == "trace.42"


@pytest.mark.asyncio
@pytest.mark.parametrize("value", ["has spaces", "-leading", "x" * 200, "<script>"])
async def test_unacceptable_request_id_is_replaced(
    api_client: AsyncClient, value: str
) -> None:
    response = await api_client.get("/api/v1/health", headers={"X-Request-ID": value})

    generated = response.headers["X-Request-ID"]
    assert generated != value
    assert uuid.UUID(generated)


@pytest.mark.asyncio
async def test_security_headers(api_client: AsyncClient) -> None:
    response = await api_client.get("/api/v1/health")

    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["Cache-Control"] == "no-store"


@pytest.mark.asyncio
async def test_error_responses_carry_security_headers(api_client: AsyncClient) -> None:
    response = await api_client.get("/api/v1/users")

    assert response.status_code == 401
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["Cache-Control"] == "no-store"


@pytest.mark.asyncio
async def test_non_api_paths_are_cacheable(api_client: AsyncClient) -> None:
    response = await api_client.get("/metrics")

    assert "Cache-Control" not in response.headers
