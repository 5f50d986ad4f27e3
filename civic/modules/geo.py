"""
Geographic helpers and the category expansion table.

Pure functions only; nothing here touches the database.
"""

import enum
import math
from typing import NamedTuple, Optional

EARTH_RADIUS_M = 6371e3


class GeoPoint(NamedTuple):
    """A (longitude, latitude) pair in decimal degrees."""

    longitude: float
    latitude: float


class Category(str, enum.Enum):
    ENVIRONMENT = "환경"
    TRAFFIC = "교통"
    SAFETY = "안전"
    WELFARE = "복지"
    FACILITIES = "시설"


CATEGORY_KEYWORDS: dict[Category, frozenset[str]] = {
    Category.ENVIRONMENT: frozenset(
        {"환경", "청소", "재활용", "쓰레기", "공원", "녹지"}
    ),
    Category.TRAFFIC: frozenset(
        {"교통", "도로", "주차", "신호등", "보행로", "자전거"}
    ),
    Category.SAFETY: frozenset(
        {"안전", "범죄", "방범", "가로등", "화재", "재난"}
    ),
    Category.WELFARE: frozenset(
        {"복지", "노인", "아동", "장애인", "저소득", "교육"}
    ),
    Category.FACILITIES: frozenset(
        {"시설", "건물", "공공시설", "유지보수", "수리", "개선"}
    ),
}


def parse_category(value: str) -> Optional[Category]:
    """Return the Category for a label, or None if it is not one of ours."""
    try:
        return Category(value)
    except ValueError:
        return None


def expand(category: str) -> frozenset[str]:
    """
    Expand a coarse category into the keywords used for matching.

    Args:
        category: Problem category label

    Returns:
        frozenset: Related keywords, always including the category
        itself. Unknown categories expand to just themselves.
    """
    known = parse_category(category)
    if known is None:
        return frozenset({category})
    return CATEGORY_KEYWORDS[known] | {category}


def validate_point(longitude: object, latitude: object) -> GeoPoint:
    """
    Check a coordinate pair and return it as a GeoPoint.

    Raises:
        ValueError: If either value is not a finite number in range
    """
    if isinstance(longitude, bool) or isinstance(latitude, bool):
        raise ValueError("Coordinates must be numbers")
    try:
        lng = float(longitude)  # type: ignore[arg-type]
        lat = float(latitude)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ValueError("Coordinates must be numbers")

    if not (math.isfinite(lng) and math.isfinite(lat)):
        raise ValueError("Coordinates must be finite")
    if not -180.0 <= lng <= 180.0:
        raise ValueError(f"Longitude out of range: {lng}")
    if not -90.0 <= lat <= 90.0:
        raise ValueError(f"Latitude out of range: {lat}")
    return GeoPoint(lng, lat)


def haversine_meters(a: GeoPoint, b: GeoPoint) -> float:
    """
    Great-circle distance between two points on a spherical earth.

    Args:
        a: First point
        b: Second point

    Returns:
        float: Distance in meters
    """
    phi1 = a.latitude * math.pi / 180
    phi2 = b.latitude * math.pi / 180
    d_phi = (b.latitude - a.latitude) * math.pi / 180
    d_lambda = (b.longitude - a.longitude) * math.pi / 180

    h = (
        math.sin(d_phi / 2) * math.sin(d_phi / 2)
        + math.cos(phi1) * math.cos(phi2)
        * math.sin(d_lambda / 2) * math.sin(d_lambda / 2)
    )
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

    return EARTH_RADIUS_M * c
