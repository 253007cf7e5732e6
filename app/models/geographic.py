"""Geographic models for coordinate and polygon handling."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.core.geocoding.coordinates import InvalidCoordinatesError, coerce_coordinates

Position = tuple[float, float]


def validate_position(value: Position) -> Position:
    """Check a ``[lng, lat]`` position lies within geographic range."""
    try:
        point = coerce_coordinates(value)
    except InvalidCoordinatesError as e:
        raise ValueError(str(e)) from e
    return (point.lng, point.lat)


class Polygon(BaseModel):
    """GeoJSON Polygon: a list of closed linear rings of ``[lng, lat]`` positions."""

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "type": "Polygon",
                "coordinates": [
                    [
                        [-74.01, 40.70],
                        [-73.97, 40.70],
                        [-73.97, 40.73],
                        [-74.01, 40.73],
                        [-74.01, 40.70],
                    ]
                ],
            }
        },
    )

    type: Literal["Polygon"] = Field(
        ...,
        title="Type",
        description="GeoJSON geometry type",
    )
    coordinates: list[list[Position]] = Field(
        ...,
        title="Coordinates",
        description="Linear rings; the first is the exterior ring",
        min_length=1,
    )

    @field_validator("coordinates")
    @classmethod
    def validate_rings(cls, rings: list[list[Position]]) -> list[list[Position]]:
        """Each ring has at least four positions and is closed."""
        validated = []
        for index, ring in enumerate(rings):
            if len(ring) < 4:
                raise ValueError(
                    f"Ring {index} must contain at least 4 positions, got {len(ring)}"
                )
            positions = [validate_position(position) for position in ring]
            if positions[0] != positions[-1]:
                raise ValueError(
                    f"Ring {index} is not closed: first and last positions differ"
                )
            validated.append(positions)
        return validated

    def to_geojson(self) -> dict[str, object]:
        return {
            "type": self.type,
            "coordinates": [[list(position) for position in ring] for ring in self.coordinates],
        }
