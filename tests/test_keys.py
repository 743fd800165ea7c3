"""Tests for the coordinate key codec."""

import math
from types import SimpleNamespace

import pytest

from stbdiff.geometry.keys import (
    Coordinate,
    coordinate_axes,
    guid_key,
    key_of,
    line_key_of,
    polygon_key_of,
    spatial_key,
)


class TestKeyOf:
    """Tests for point keys."""

    def test_default_precision(self):
        """Test that three decimals are kept by default."""
        assert key_of(Coordinate(1, 2.5, -3)) == "1.000,2.500,-3.000"

    def test_accepts_mapping_and_attributes(self):
        """Test that mappings and plain objects encode like Coordinate."""
        expected = key_of(Coordinate(1, 2, 3))
        assert key_of({"x": 1, "y": 2, "z": 3}) == expected
        assert key_of(SimpleNamespace(x=1, y=2, z=3)) == expected

    def test_rounding_collapses_jitter(self):
        """Test that values equal after rounding share a key."""
        assert key_of(Coordinate(1000.0, 0, 0), 0) == key_of(Coordinate(1000.2, 0, 0), 0)
        assert key_of(Coordinate(1000.0, 0, 0), 3) != key_of(Coordinate(1000.2, 0, 0), 3)

    def test_negative_zero_normalized(self):
        """Test that a tiny negative value rounds to the same key as zero."""
        assert key_of(Coordinate(-0.0001, 0, -0.0)) == key_of(Coordinate(0, 0, 0))
        assert key_of(Coordinate(-0.0001, 0, 0)) == "0.000,0.000,0.000"

    @pytest.mark.parametrize("coords", [
        None,
        {"x": 1, "y": 2},
        {"x": "1", "y": 2, "z": 3},
        {"x": True, "y": 2, "z": 3},
        {"x": math.nan, "y": 2, "z": 3},
        {"x": math.inf, "y": 2, "z": 3},
    ])
    def test_invalid_coordinates(self, coords):
        """Test that invalid points produce no key."""
        assert key_of(coords) is None
        assert coordinate_axes(coords) is None


class TestLineKeyOf:
    """Tests for segment keys."""

    def test_direction_independent(self):
        """Test that A->B and B->A share a key."""
        a = Coordinate(0, 0, 0)
        b = Coordinate(6000, 0, 3000)
        assert line_key_of(a, b) == line_key_of(b, a)
        assert line_key_of(a, b).count("|") == 1

    def test_invalid_endpoint(self):
        """Test that one invalid endpoint fails the whole key."""
        assert line_key_of(Coordinate(0, 0, 0), None) is None


class TestPolygonKeyOf:
    """Tests for polygon keys."""

    @pytest.fixture
    def vertices(self):
        return [Coordinate(0, 0, 0), Coordinate(5000, 0, 0), Coordinate(5000, 4000, 0)]

    def test_rotation_and_reflection(self, vertices):
        """Test that vertex enumeration order does not change the key."""
        p1, p2, p3 = vertices
        key = polygon_key_of([p1, p2, p3], "F1", "S1")
        assert key == polygon_key_of([p3, p1, p2], "F1", "S1")
        assert key == polygon_key_of([p3, p2, p1], "F1", "S1")

    def test_tags_appended(self, vertices):
        """Test that floor and section tags end the key."""
        assert polygon_key_of(vertices, "F1", "S1").endswith("|F:F1|S:S1")
        assert polygon_key_of(vertices).endswith("|F:|S:")

    def test_tags_disambiguate(self, vertices):
        """Test that identical outlines on different floors differ."""
        assert polygon_key_of(vertices, "F1", "S1") != polygon_key_of(vertices, "F2", "S1")
        assert polygon_key_of(vertices, "F1", "S1") != polygon_key_of(vertices, "F1", "S2")

    def test_invalid_polygons(self, vertices):
        """Test that empty lists and invalid vertices produce no key."""
        assert polygon_key_of([]) is None
        assert polygon_key_of(vertices + [None]) is None


class TestPrefixedKeys:
    """Tests for identity key prefixes."""

    def test_prefixes(self):
        assert spatial_key("0.000,0.000,0.000") == "spatial:0.000,0.000,0.000"
        assert guid_key("2yt6D8WIv1pOA") == "guid:2yt6D8WIv1pOA"

    def test_coordinate_offset(self):
        """Test offsetting an immutable coordinate."""
        point = Coordinate(1, 2, 3)
        assert point.offset(dz=-5000) == Coordinate(1, 2, -4997)
        assert point == Coordinate(1, 2, 3)
