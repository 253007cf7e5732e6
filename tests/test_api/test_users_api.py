"""Tests for the users endpoints."""

import pytest
from httpx import AsyncClient

USERS = "/api/v1/users"


@pytest.mark.asyncio
async def test_create_user_returns_key_once(api_client: AsyncClient) -> None:
    response = await api_client.post(
        USERS,
        json={"name": "Ada Lovelace", "email": "ada@example.com", "address": "1 Main St"},
    )

    assert response.status_code == 201
    data = response.json()
    assert len(data["api_key"]) == 48
    assert data["user"]["coordinates"] == [-73.9, 40.7]
    assert data["user"]["address"] == "1 Main St"
    assert data["user"]["regions"] == []
    assert "api_key_hash" not in data["user"]


@pytest.mark.asyncio
async def test_create_user_from_coordinates(api_client: AsyncClient) -> None:
    response = await api_client.post(
        USERS,
        json={"name": "Grace", "email": "grace@example.com", "coordinates": [-73.9, 40.7]},
    )

    assert response.status_code == 201
    assert response.json()["user"]["address"] == "1 Main St"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "extra",
    [{}, {"address": "1 Main St", "coordinates": [-73.9, 40.7]}],
)
async def test_create_user_requires_exactly_one_location(
    api_client: AsyncClient, extra: dict
) -> None:
    response = await api_client.post(
        USERS, json={"name": "Ada", "email": "ada@example.com", **extra}
    )

    assert response.status_code == 400
    assert response.json()["error"] == "BadRequestError"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"name": "Ada", "email": "not-an-email", "address": "1 Main St"},
        {"name": "Ada", "email": "ada@example.com", "coordinates": [-73.9, 95]},
        {"name": "Ada", "email": "ada@example.com", "coordinates": [-73.9]},
        {"email": "ada@example.com", "address": "1 Main St"},
        {"name": "Ada", "email": "ada@example.com", "address": "x", "regions": []},
    ],
)
async def test_create_user_validation(api_client: AsyncClient, body: dict) -> None:
    response = await api_client.post(USERS, json=body)

    assert response.status_code == 422
    data = response.json()
    assert data["error"] == "RequestValidationError"
    assert data["status_code"] == 422


@pytest.mark.asyncio
async def test_create_user_with_unknown_address(api_client: AsyncClient) -> None:
    response = await api_client.post(
        USERS,
        json={"name": "Ada", "email": "ada@example.com", "address": "Nowhere Lane"},
    )

    assert response.status_code == 400
    assert "No results" in response.json()["message"]


@pytest.mark.asyncio
async def test_duplicate_email_conflicts(
    api_client: AsyncClient, registered_user: dict
) -> None:
    response = await api_client.post(
        USERS,
        json={"name": "Other", "email": "ada@example.com", "address": "1 Main St"},
    )

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_get_user(
    api_client: AsyncClient, registered_user: dict, auth_headers: dict
) -> None:
    user_id = registered_user["user"]["id"]

    response = await api_client.get(f"{USERS}/{user_id}", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["email"] == "ada@example.com"


@pytest.mark.asyncio
async def test_get_missing_user(api_client: AsyncClient, auth_headers: dict) -> None:
    response = await api_client.get(f"{USERS}/missing", headers=auth_headers)

    assert response.status_code == 404
    assert response.json()["message"] == "User not found"


@pytest.mark.asyncio
async def test_list_users_legacy_page_shape(
    api_client: AsyncClient, auth_headers: dict
) -> None:
    response = await api_client.get(
        USERS, params={"page": 1000, "limit": 10}, headers=auth_headers
    )

    assert response.status_code == 200
    assert response.json() == {"rows": [], "page": 1000, "limit": 10, "total": 1}


@pytest.mark.asyncio
async def test_list_users_filters(api_client: AsyncClient, auth_headers: dict) -> None:
    await api_client.post(
        USERS,
        json={
            "name": "Grace Hopper",
            "email": "grace@example.com",
            "address": "221B Baker Street, London",
        },
    )

    response = await api_client.get(
        USERS, params={"name": "hopper"}, headers=auth_headers
    )

    assert [row["name"] for row in response.json()["rows"]] == ["Grace Hopper"]


@pytest.mark.asyncio
async def test_list_users_rejects_unknown_sort(
    api_client: AsyncClient, auth_headers: dict
) -> None:
    response = await api_client.get(
        USERS, params={"sort_by": "api_key_hash"}, headers=auth_headers
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_update_address_regeocodes(
    api_client: AsyncClient, registered_user: dict, auth_headers: dict
) -> None:
    user_id = registered_user["user"]["id"]

    response = await api_client.patch(
        f"{USERS}/{user_id}",
        json={"address": "350 Fifth Avenue, New York, NY"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "updated"
    assert data["user"]["coordinates"] == [-73.9857, 40.7484]


@pytest.mark.asyncio
async def test_update_rejects_region_references(
    api_client: AsyncClient, registered_user: dict, auth_headers: dict
) -> None:
    user_id = registered_user["user"]["id"]

    response = await api_client.patch(
        f"{USERS}/{user_id}", json={"regions": ["x"]}, headers=auth_headers
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_update_rejects_both_locations(
    api_client: AsyncClient, registered_user: dict, auth_headers: dict
) -> None:
    user_id = registered_user["user"]["id"]

    response = await api_client.patch(
        f"{USERS}/{user_id}",
        json={"address": "1 Main St", "coordinates": [-73.9, 40.7]},
        headers=auth_headers,
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_delete_user(
    api_client: AsyncClient, registered_user: dict, auth_headers: dict
) -> None:
    user_id = registered_user["user"]["id"]

    response = await api_client.delete(f"{USERS}/{user_id}", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["status"] == "deleted"
    # The key belonged to the deleted user
    again = await api_client.get(f"{USERS}/{user_id}", headers=auth_headers)
    assert again.status_code == 401
