"""Geocoding package for the application.

This package provides:
- Coordinate normalization across the accepted input shapes
- An async geocoding client with deterministic result selection
- Provider construction from application settings
"""

from app.core.geocoding.coordinates import (
    InvalidCoordinatesError,
    LatLng,
    coerce_coordinates,
)
from app.core.geocoding.service import (
    GeocodingClient,
    GeocodingError,
    GeocodingProvider,
    GeocodingUnavailableError,
    LocationResult,
    build_geocoding_provider,
    create_geocoding_client,
    select_by_address,
    select_by_point,
)

__all__ = [
    "GeocodingClient",
    "GeocodingError",
    "GeocodingProvider",
    "GeocodingUnavailableError",
    "InvalidCoordinatesError",
    "LatLng",
    "LocationResult",
    "build_geocoding_provider",
    "coerce_coordinates",
    "create_geocoding_client",
    "select_by_address",
    "select_by_point",
]
