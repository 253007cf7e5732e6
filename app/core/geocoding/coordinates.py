"""Coordinate normalization.

Coordinates reach the application in several shapes: GeoJSON positions
(``[lng, lat]``), ``"lat,lng"`` strings, and ``{lat, lng}`` or
``{latitude, longitude}`` mappings. Everything is normalized to ``LatLng``.
"""

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any


class InvalidCoordinatesError(ValueError):
    """Raised when a value cannot be read as a coordinate pair."""


@dataclass(frozen=True)
class LatLng:
    """A validated latitude/longitude pair in decimal degrees."""

    lat: float
    lng: float

    def __post_init__(self) -> None:
        if not -90 <= self.lat <= 90:
            raise InvalidCoordinatesError(
                f"Latitude must be between -90 and 90 degrees, got {self.lat}"
            )
        if not -180 <= self.lng <= 180:
            raise InvalidCoordinatesError(
                f"Longitude must be between -180 and 180 degrees, got {self.lng}"
            )

    def to_geojson(self) -> list[float]:
        """Return the GeoJSON position ``[lng, lat]``."""
        return [self.lng, self.lat]

    def to_query(self) -> str:
        """Return the ``"lat, lng"`` form geocoding providers accept."""
        return f"{self.lat}, {self.lng}"

    def manhattan_distance(self, other: "LatLng") -> float:
        """Sum of absolute latitude and longitude differences."""
        return abs(self.lat - other.lat) + abs(self.lng - other.lng)


def _to_number(value: Any, label: str) -> float:
    # bool is an int subclass and never a coordinate
    if isinstance(value, bool):
        raise InvalidCoordinatesError(f"{label} must be numeric, got {value!r}")
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError as e:
            raise InvalidCoordinatesError(
                f"{label} must be numeric, got {value!r}"
            ) from e
    else:
        raise InvalidCoordinatesError(f"{label} must be numeric, got {value!r}")
    if not math.isfinite(number):
        raise InvalidCoordinatesError(f"{label} must be finite, got {value!r}")
    return number


def coerce_coordinates(value: Any) -> LatLng:
    """Normalize any supported coordinate shape into a ``LatLng``.

    Accepted shapes:
        - ``LatLng`` instances (returned unchanged)
        - ``[lng, lat]`` lists or tuples (GeoJSON axis order)
        - ``"lat,lng"`` strings
        - ``{"lat": ..., "lng": ...}`` mappings
        - ``{"latitude": ..., "longitude": ...}`` mappings

    Args:
        value: Coordinates in one of the shapes above

    Returns:
        Normalized coordinates

    Raises:
        InvalidCoordinatesError: If the shape is unsupported or a component is
            not a finite number within geographic range
    """
    if isinstance(value, LatLng):
        return value

    if isinstance(value, str):
        parts = value.split(",")
        if len(parts) != 2:
            raise InvalidCoordinatesError(
                f"Invalid string coordinates format: {value!r}"
            )
        return LatLng(
            lat=_to_number(parts[0], "Latitude"),
            lng=_to_number(parts[1], "Longitude"),
        )

    if isinstance(value, Mapping):
        if "lat" in value and "lng" in value:
            lat, lng = value["lat"], value["lng"]
        elif "latitude" in value and "longitude" in value:
            lat, lng = value["latitude"], value["longitude"]
        else:
            raise InvalidCoordinatesError(f"Invalid coordinates object: {value!r}")
        if isinstance(lat, str) or isinstance(lng, str):
            raise InvalidCoordinatesError(f"Invalid coordinates object: {value!r}")
        return LatLng(lat=_to_number(lat, "Latitude"), lng=_to_number(lng, "Longitude"))

    if isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
        if len(value) != 2 or any(isinstance(v, str) for v in value):
            raise InvalidCoordinatesError(
                f"Invalid array coordinates format: {value!r}"
            )
        lng, lat = value
        return LatLng(lat=_to_number(lat, "Latitude"), lng=_to_number(lng, "Longitude"))

    raise InvalidCoordinatesError(f"Invalid coordinates: {value!r}")
