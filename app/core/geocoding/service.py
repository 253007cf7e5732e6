"""Geocoding client for the application.

This module wraps a geopy geocoder and provides:
- Forward (address to coordinates) and reverse (coordinates to address) lookups
- Deterministic selection when the provider returns several candidates
- Timeouts so a slow provider cannot hang a request
- A single error type hierarchy callers can map onto HTTP responses
"""

import asyncio
import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from geopy.exc import (
    GeocoderNotFound,
    GeocoderQueryError,
    GeopyError,
)
from geopy.geocoders import get_geocoder_for_service
from prometheus_client import Counter

from app.core.config import Settings, settings
from app.core.geocoding.coordinates import LatLng, coerce_coordinates

logger = logging.getLogger(__name__)

GEOCODING_REQUESTS = Counter(
    "app_geocoding_requests_total",
    "Total number of geocoding provider lookups",
    labelnames=["direction", "outcome"],
)


class GeocodingError(Exception):
    """Raised when a lookup produces no usable result."""


class GeocodingUnavailableError(GeocodingError):
    """Raised when the provider cannot be reached or refuses service."""


class GeocodedLocation(Protocol):
    """Shape of a provider result (``geopy.location.Location``)."""

    address: str
    latitude: float
    longitude: float
    raw: Any


class GeocodingProvider(Protocol):
    """Subset of the geopy geocoder interface used by the client."""

    def geocode(self, query: str, *, exactly_one: bool = ...) -> Any: ...

    def reverse(self, query: str, *, exactly_one: bool = ...) -> Any: ...


@dataclass(frozen=True)
class LocationResult:
    """Normalized geocoding result."""

    formatted_address: str
    point: LatLng
    raw: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def coordinates(self) -> list[float]:
        """GeoJSON ``[lng, lat]`` position."""
        return self.point.to_geojson()

    @classmethod
    def from_location(cls, location: GeocodedLocation) -> "LocationResult":
        raw = location.raw if isinstance(location.raw, dict) else {}
        return cls(
            formatted_address=str(location.address),
            point=coerce_coordinates(
                {"lat": location.latitude, "lng": location.longitude}
            ),
            raw=raw,
        )


def _normalize_address(address: str) -> str:
    return re.sub(r"\s+", " ", address).strip().casefold()


def select_by_address(candidates: Sequence[LocationResult], query: str) -> LocationResult:
    """Pick one candidate for a forward lookup.

    An exact formatted-address match wins (whitespace collapsed, case-folded).
    Otherwise the candidate nearest to the mean point of all candidates is
    chosen; ties go to the earliest candidate in provider order.

    Args:
        candidates: Provider results, in provider order
        query: Address that was looked up

    Returns:
        The selected candidate

    Raises:
        GeocodingError: If there are no candidates
    """
    if not candidates:
        raise GeocodingError(f"No results found for address: {query}")

    wanted = _normalize_address(query)
    for candidate in candidates:
        if _normalize_address(candidate.formatted_address) == wanted:
            return candidate

    centre = LatLng(
        lat=sum(c.point.lat for c in candidates) / len(candidates),
        lng=sum(c.point.lng for c in candidates) / len(candidates),
    )
    # min() keeps the first of equal keys
    return min(candidates, key=lambda c: c.point.manhattan_distance(centre))


def select_by_point(candidates: Sequence[LocationResult], point: LatLng) -> LocationResult:
    """Pick one candidate for a reverse lookup.

    A candidate located exactly at ``point`` wins. Otherwise the candidate
    nearest to ``point`` by Manhattan distance is chosen; ties go to the
    earliest candidate in provider order.

    Args:
        candidates: Provider results, in provider order
        point: Coordinates that were looked up

    Returns:
        The selected candidate

    Raises:
        GeocodingError: If there are no candidates
    """
    if not candidates:
        raise GeocodingError(f"No results found for coordinates: {point.to_query()}")

    for candidate in candidates:
        if candidate.point == point:
            return candidate

    return min(candidates, key=lambda c: c.point.manhattan_distance(point))


class GeocodingClient:
    """Async facade over a blocking geopy geocoder."""

    def __init__(self, provider: GeocodingProvider, timeout: float = 10.0):
        """Initialize the client.

        Args:
            provider: geopy geocoder (or compatible test double)
            timeout: Upper bound in seconds for a single provider call
        """
        self.provider = provider
        self.timeout = timeout

    async def _lookup(self, direction: str, method: Any, query: str) -> list[LocationResult]:
        try:
            response = await asyncio.wait_for(
                asyncio.to_thread(method, query, exactly_one=False),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            GEOCODING_REQUESTS.labels(direction=direction, outcome="timeout").inc()
            logger.warning(f"Geocoding {direction} lookup timed out for '{query[:50]}'")
            raise GeocodingUnavailableError(
                f"Geocoding provider timed out after {self.timeout}s"
            ) from e
        except GeocoderQueryError as e:
            GEOCODING_REQUESTS.labels(direction=direction, outcome="rejected").inc()
            raise GeocodingError(f"Geocoding failed: {e}") from e
        except GeopyError as e:
            GEOCODING_REQUESTS.labels(direction=direction, outcome="error").inc()
            logger.warning(f"Geocoding provider error for '{query[:50]}': {e}")
            raise GeocodingUnavailableError(f"Geocoding provider error: {e}") from e

        if response is None:
            locations = []
        elif isinstance(response, (list, tuple)):
            locations = list(response)
        else:
            locations = [response]

        GEOCODING_REQUESTS.labels(
            direction=direction, outcome="ok" if locations else "empty"
        ).inc()
        return [LocationResult.from_location(location) for location in locations]

    async def resolve_from_address(self, address: str) -> LocationResult:
        """Geocode an address to a single location.

        Args:
            address: Free-text address

        Returns:
            The selected location

        Raises:
            GeocodingError: If the address is empty or nothing matches
            GeocodingUnavailableError: If the provider fails or times out
        """
        if not address or not address.strip():
            raise GeocodingError("Address must not be empty")

        candidates = await self._lookup("forward", self.provider.geocode, address)
        result = select_by_address(candidates, address)
        logger.debug(f"Geocoded '{address[:50]}' to {result.coordinates}")
        return result

    async def resolve_from_coordinates(self, point: Any) -> LocationResult:
        """Reverse geocode coordinates to a single location.

        Args:
            point: Coordinates in any shape accepted by ``coerce_coordinates``

        Returns:
            The selected location

        Raises:
            InvalidCoordinatesError: If ``point`` is not a valid coordinate pair
            GeocodingError: If nothing matches
            GeocodingUnavailableError: If the provider fails or times out
        """
        latlng = coerce_coordinates(point)
        candidates = await self._lookup("reverse", self.provider.reverse, latlng.to_query())
        result = select_by_point(candidates, latlng)
        logger.debug(
            f"Reverse geocoded {latlng.to_geojson()} to '{result.formatted_address[:50]}'"
        )
        return result


def build_geocoding_provider(config: Settings = settings) -> GeocodingProvider:
    """Create the geopy geocoder named by ``GEOCODING_PROVIDER``.

    Args:
        config: Application settings

    Returns:
        Configured geopy geocoder

    Raises:
        ValueError: If the provider name is unknown to geopy
    """
    name = config.GEOCODING_PROVIDER.lower()
    try:
        geocoder_cls = get_geocoder_for_service(name)
    except GeocoderNotFound as e:
        raise ValueError(f"Unknown geocoding provider: {name}") from e

    kwargs: dict[str, Any] = {"timeout": config.GEOCODING_TIMEOUT}
    if name == "nominatim":
        kwargs["user_agent"] = config.GEOCODING_USER_AGENT
    elif name != "arcgis" and config.GEOCODING_API_KEY:
        kwargs["api_key"] = config.GEOCODING_API_KEY

    logger.info(f"Initializing {geocoder_cls.__name__} geocoder")
    return geocoder_cls(**kwargs)


def create_geocoding_client(config: Settings = settings) -> GeocodingClient:
    """Build a client around the configured provider."""
    return GeocodingClient(
        build_geocoding_provider(config), timeout=config.GEOCODING_TIMEOUT
    )
