"""Tests for coordinate normalization."""

import math

import pytest

from app.core.geocoding import InvalidCoordinatesError, LatLng, coerce_coordinates


class TestLatLng:
    def test_should_convert_to_geojson_order(self):
        point = LatLng(lat=40.7, lng=-73.9)

        assert point.to_geojson() == [-73.9, 40.7]
        assert point.to_query() == "40.7, -73.9"

    @pytest.mark.parametrize(
        "lat,lng",
        [(90.1, 0), (-90.1, 0), (0, 180.1), (0, -180.1)],
    )
    def test_should_reject_out_of_range(self, lat, lng):
        with pytest.raises(InvalidCoordinatesError):
            LatLng(lat=lat, lng=lng)

    def test_should_accept_range_boundaries(self):
        assert LatLng(lat=90, lng=180).to_geojson() == [180, 90]
        assert LatLng(lat=-90, lng=-180).to_geojson() == [-180, -90]

    def test_manhattan_distance(self):
        a = LatLng(lat=1.0, lng=2.0)
        b = LatLng(lat=-1.0, lng=5.0)

        assert a.manhattan_distance(b) == pytest.approx(5.0)


class TestCoerceCoordinates:
    """Every accepted and rejected input shape."""

    def test_should_return_latlng_unchanged(self):
        point = LatLng(lat=1, lng=2)

        assert coerce_coordinates(point) is point

    @pytest.mark.parametrize(
        "value",
        [
            [-73.9, 40.7],
            (-73.9, 40.7),
            "40.7,-73.9",
            " 40.7 , -73.9 ",
            {"lat": 40.7, "lng": -73.9},
            {"latitude": 40.7, "longitude": -73.9},
            {"lat": 40.7, "lng": -73.9, "extra": "ignored"},
        ],
    )
    def test_should_accept_supported_shapes(self, value):
        assert coerce_coordinates(value) == LatLng(lat=40.7, lng=-73.9)

    def test_should_accept_integers(self):
        assert coerce_coordinates([10, 20]) == LatLng(lat=20.0, lng=10.0)

    @pytest.mark.parametrize(
        "value",
        [
            None,
            42,
            "40.7",
            "40.7,-73.9,0",
            "north,west",
            "",
            [1.0],
            [1.0, 2.0, 3.0],
            ["-73.9", "40.7"],
            [True, False],
            [math.nan, 1.0],
            [math.inf, 1.0],
            {"lat": 40.7},
            {"x": 1, "y": 2},
            {"lat": "40.7", "lng": "-73.9"},
            {"latitude": None, "longitude": 1},
            b"40.7,-73.9",
        ],
    )
    def test_should_reject_unsupported_shapes(self, value):
        with pytest.raises(InvalidCoordinatesError):
            coerce_coordinates(value)

    @pytest.mark.parametrize("value", [[0, 91], [181, 0], "91,0", {"lat": 0, "lng": -181}])
    def test_should_reject_out_of_range_values(self, value):
        with pytest.raises(InvalidCoordinatesError):
            coerce_coordinates(value)

    def test_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            coerce_coordinates("nope")
