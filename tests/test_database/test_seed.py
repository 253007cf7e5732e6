"""Tests for the seed CLI."""

import random

import pytest
from geopy.exc import GeocoderUnavailable

from app.core.db import DatabaseManager
from app.core.geocoding import GeocodingClient
from app.database.seed import main, seed, square_polygon
from app.services.regions import RegionService
from app.services.users import UserService
from tests.fixtures.geocoding import FakeGeocodingProvider


def test_square_polygon_is_closed() -> None:
    polygon = square_polygon((-73.9, 40.7), 0.01)

    ring = polygon["coordinates"][0]  # type: ignore[index]
    assert polygon["type"] == "Polygon"
    assert len(ring) == 5
    assert ring[0] == ring[-1]


@pytest.mark.asyncio
async def test_seed_creates_users_and_regions(
    db_manager: DatabaseManager, geocoder: GeocodingClient
) -> None:
    users = UserService(db_manager, geocoder)
    regions = RegionService(db_manager)

    summary = await seed(users, regions, 3, 2, random.Random(7))

    assert (summary.users, summary.regions, summary.failures) == (3, 6, 0)
    page = await users.list(limit=10)
    for user in page.data:
        assert len(user.regions) == 2
        assert user.address.startswith("Near ")


@pytest.mark.asyncio
async def test_seed_skips_users_that_cannot_be_geocoded(
    db_manager: DatabaseManager,
    geocoder: GeocodingClient,
    fake_provider: FakeGeocodingProvider,
) -> None:
    fake_provider.error = GeocoderUnavailable("provider down")
    users = UserService(db_manager, geocoder)

    summary = await seed(users, RegionService(db_manager), 2, 1, random.Random(1))

    assert (summary.users, summary.regions, summary.failures) == (0, 0, 2)


def test_main_rejects_bad_counts() -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["--users", "0"])

    assert exc_info.value.code == 2
