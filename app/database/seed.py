"""Populate the database with sample users and regions.

Usage::

    python -m app.database.seed --users 5 --regions-per-user 3

Users are created from coordinates and regions through the services, so the
address is reverse geocoded and every region is registered on its owner
exactly as it would be through the API.
"""

import argparse
import asyncio
import logging
import random
import sys
from dataclasses import dataclass

from app.core.config import settings
from app.core.db import ConnectionState, DatabaseManager
from app.core.errors import AppError
from app.core.geocoding import create_geocoding_client
from app.core.logging import configure_logging
from app.services.regions import RegionService
from app.services.users import UserService

logger = logging.getLogger(__name__)

# Continental US bounds as (min, max)
LATITUDE_BOUNDS = (25.0, 49.0)
LONGITUDE_BOUNDS = (-123.0, -71.0)

REGION_PREFIXES = ("North", "South", "East", "West", "Central", "Upper", "Lower")
REGION_SUFFIXES = ("District", "Quarter", "Heights", "Park", "Commons", "Village")


@dataclass
class SeedSummary:
    users: int = 0
    regions: int = 0
    failures: int = 0


def square_polygon(
    center: tuple[float, float], offset: float
) -> dict[str, object]:
    """Closed square GeoJSON polygon around a ``(lng, lat)`` center."""
    lng, lat = center
    ring = [
        [lng - offset, lat - offset],
        [lng + offset, lat - offset],
        [lng + offset, lat + offset],
        [lng - offset, lat + offset],
        [lng - offset, lat - offset],
    ]
    return {"type": "Polygon", "coordinates": [ring]}


def region_name(rng: random.Random, index: int) -> str:
    return f"{rng.choice(REGION_PREFIXES)} {rng.choice(REGION_SUFFIXES)} {index + 1}"


async def seed(
    users: UserService,
    regions: RegionService,
    user_count: int,
    regions_per_user: int,
    rng: random.Random,
) -> SeedSummary:
    """Create ``user_count`` users with ``regions_per_user`` regions each.

    A user whose location cannot be geocoded is skipped and counted as a
    failure; the run continues with the next one.
    """
    summary = SeedSummary()
    for i in range(user_count):
        center = (
            round(rng.uniform(*LONGITUDE_BOUNDS), 6),
            round(rng.uniform(*LATITUDE_BOUNDS), 6),
        )
        try:
            user, _ = await users.create(
                {
                    "name": f"Seed User {i + 1}",
                    "email": f"seed-user-{i + 1}-{rng.randrange(10**8)}@example.com",
                    "coordinates": list(center),
                }
            )
        except AppError as e:
            logger.warning(f"Skipping user {i + 1} at {center}: {e.message}")
            summary.failures += 1
            continue
        summary.users += 1

        for j in range(regions_per_user):
            offset = 0.005 + rng.random() * 0.005
            await regions.create(
                user.id,
                {"name": region_name(rng, j), "geometry": square_polygon(center, offset)},
            )
            summary.regions += 1

        await regions.reconcile_owner(user.id)
        logger.info(f"Seeded {user.email} with {regions_per_user} regions")
    return summary


async def run(args: argparse.Namespace) -> int:
    db = DatabaseManager.from_settings(settings)
    try:
        if await db.initialize() is not ConnectionState.CONNECTED:
            logger.error("Could not connect to the database")
            return 1
        await db.verify_primary_writable(attempts=args.primary_attempts)

        summary = await seed(
            UserService(db, create_geocoding_client(settings)),
            RegionService(db),
            args.users,
            args.regions_per_user,
            random.Random(args.random_seed),
        )
    except AppError as e:
        logger.error(f"Seeding failed: {e.message}")
        return 1
    finally:
        await db.close()

    logger.info(
        f"Seeding complete: {summary.users} users, {summary.regions} regions, "
        f"{summary.failures} failures"
    )
    return 0 if summary.failures == 0 else 2


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the seed CLI."""
    parser = argparse.ArgumentParser(
        description="Seed the database with sample users and regions"
    )
    parser.add_argument(
        "--users", "-u", type=int, default=5, help="Number of users (default: 5)"
    )
    parser.add_argument(
        "--regions-per-user",
        "-r",
        type=int,
        default=3,
        help="Regions created for each user (default: 3)",
    )
    parser.add_argument(
        "--random-seed",
        type=int,
        default=None,
        help="Seed for reproducible locations and names",
    )
    parser.add_argument(
        "--primary-attempts",
        type=int,
        default=3,
        help="Checks for a writable primary before giving up (default: 3)",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose logging"
    )
    args = parser.parse_args(argv)

    if args.users < 1 or args.regions_per_user < 0:
        parser.error("--users must be positive and --regions-per-user non-negative")

    configure_logging(level="debug" if args.verbose else settings.LOG_LEVEL)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
