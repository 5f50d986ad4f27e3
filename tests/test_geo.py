"""
Unit tests for geographic helpers and category expansion.
"""

import math

import pytest

from modules.geo import (
    CATEGORY_KEYWORDS,
    Category,
    GeoPoint,
    expand,
    haversine_meters,
    parse_category,
    validate_point,
)


class TestHaversine:
    """Test cases for great-circle distance."""

    def test_same_point_is_zero(self):
        """Test distance from a point to itself."""
        p = GeoPoint(126.978, 37.5665)
        assert haversine_meters(p, p) == 0

    def test_one_degree_of_latitude(self):
        """Test one degree along a meridian is about 111.2 km."""
        a = GeoPoint(127.0, 37.0)
        b = GeoPoint(127.0, 38.0)
        expected = 6371e3 * math.pi / 180
        assert haversine_meters(a, b) == pytest.approx(expected, rel=1e-9)

    def test_symmetric(self):
        a = GeoPoint(126.978, 37.5665)
        b = GeoPoint(129.0756, 35.1796)
        assert haversine_meters(a, b) == pytest.approx(haversine_meters(b, a))

    def test_seoul_to_busan(self):
        """Test a real city pair lands in the expected range."""
        seoul = GeoPoint(126.978, 37.5665)
        busan = GeoPoint(129.0756, 35.1796)
        assert 320_000 < haversine_meters(seoul, busan) < 330_000


class TestCategoryExpansion:
    """Test cases for category keyword expansion."""

    def test_known_category_includes_itself(self):
        """Test expansion of a known category keeps the label."""
        keywords = expand("환경")
        assert "환경" in keywords
        assert {"청소", "재활용", "쓰레기", "공원", "녹지"} <= keywords

    def test_every_category_has_six_keywords(self):
        for category in Category:
            assert len(CATEGORY_KEYWORDS[category]) == 6
            assert category.value in expand(category.value)

    def test_unknown_category_expands_to_itself(self):
        """Test unknown labels are matched literally."""
        assert expand("소음") == frozenset({"소음"})

    def test_parse_category(self):
        assert parse_category("교통") is Category.TRAFFIC
        assert parse_category("traffic") is None


class TestValidatePoint:
    """Test cases for coordinate validation."""

    def test_valid_point(self):
        assert validate_point(126.978, "37.5665") == GeoPoint(126.978, 37.5665)

    @pytest.mark.parametrize(
        "lng,lat",
        [
            (181, 0),
            (0, -91),
            ("east", 0),
            (None, 0),
            (float("nan"), 0),
            (True, 0),
        ]
    )
    def test_invalid_point(self, lng, lat):
        """Test out-of-range and non-numeric coordinates are rejected."""
        with pytest.raises(ValueError):
            validate_point(lng, lat)
