"""
Geospatial candidate lookups backed by PostGIS.

The locator is constructed per session and passed to the code that
needs it; tests substitute any object exposing the same methods.
"""

import logging
from typing import Iterable, Protocol

from sqlalchemy import Select, Text, cast, func, or_, select, type_coerce
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, array
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from common.models import Problem, Resource, geography_point

from .errors import ValidationError
from .geo import GeoPoint

logger = logging.getLogger(__name__)

MAX_CANDIDATES = 10
SIMILAR_PROBLEM_RADIUS_M = 100.0


class Locator(Protocol):
    """Spatial queries needed by matching and priority classification."""

    def find_nearby(
        self,
        point: GeoPoint,
        radius_meters: float,
        match_categories: Iterable[str],
        limit: int = MAX_CANDIDATES
    ) -> list[Resource]:
        ...

    def count_similar(
        self,
        point: GeoPoint,
        category: str,
        radius_meters: float = SIMILAR_PROBLEM_RADIUS_M
    ) -> int:
        ...


def check_radius(radius_meters: object) -> float:
    """
    Validate a search radius.

    Raises:
        ValidationError: If the radius is not a strictly positive number
    """
    if isinstance(radius_meters, bool) or not isinstance(
        radius_meters, (int, float)
    ):
        raise ValidationError("Radius must be a number")
    if not radius_meters > 0:
        raise ValidationError("Radius must be strictly positive")
    return float(radius_meters)


def within_radius(
    longitude_col,
    latitude_col,
    point: GeoPoint,
    radius_meters: float
) -> ColumnElement[bool]:
    """
    Build an index-assisted ST_DWithin filter on geography points.

    Args:
        longitude_col: Longitude column of the searched table
        latitude_col: Latitude column of the searched table
        point: Search origin
        radius_meters: Search radius in meters

    Returns:
        ColumnElement: Boolean SQL expression
    """
    return func.ST_DWithin(
        geography_point(longitude_col, latitude_col),
        geography_point(point.longitude, point.latitude),
        radius_meters
    )


def _has_any(column, keywords: list[str]) -> ColumnElement[bool]:
    return type_coerce(column, JSONB).has_any(
        cast(array(keywords), ARRAY(Text))
    )


def nearby_query(
    point: GeoPoint,
    radius_meters: float,
    keywords: list[str],
    limit: int = MAX_CANDIDATES
) -> Select:
    """
    Resources within the radius whose categories or support keywords
    intersect the given keywords, nearest first.
    """
    origin = geography_point(point.longitude, point.latitude)
    return (
        select(Resource)
        .where(
            within_radius(
                Resource.longitude,
                Resource.latitude,
                point,
                radius_meters
            ),
            or_(
                _has_any(Resource.category, keywords),
                _has_any(Resource.available_support, keywords)
            )
        )
        .order_by(
            func.ST_Distance(
                geography_point(Resource.longitude, Resource.latitude),
                origin
            )
        )
        .limit(limit)
    )


def similar_query(
    point: GeoPoint,
    category: str,
    radius_meters: float
) -> Select:
    """Count of unresolved same-category problems within the radius."""
    return (
        select(func.count())
        .select_from(Problem)
        .where(
            within_radius(
                Problem.longitude,
                Problem.latitude,
                point,
                radius_meters
            ),
            Problem.category == category,
            Problem.status != "resolved"
        )
    )


class PostgisLocator:
    """
    Locator running nearest-neighbour queries against PostGIS.

    Requires the GiST expression indexes created by the initial
    migration so lookups stay logarithmic in table size.
    """

    def __init__(self, db: Session):
        self.db = db

    def find_nearby(
        self,
        point: GeoPoint,
        radius_meters: float,
        match_categories: Iterable[str],
        limit: int = MAX_CANDIDATES
    ) -> list[Resource]:
        """
        Find resources near a point whose categories or support
        keywords intersect the given keywords.

        Args:
            point: Search origin
            radius_meters: Search radius in meters
            match_categories: Keywords to match against
            limit: Maximum number of resources returned

        Returns:
            list: Resources ordered by increasing distance (may be empty)

        Raises:
            ValidationError: If the radius is not strictly positive
        """
        radius = check_radius(radius_meters)
        keywords = sorted(set(match_categories))
        if not keywords:
            return []

        query = nearby_query(point, radius, keywords, limit)
        resources = list(self.db.execute(query).scalars().all())
        logger.debug(
            f"Found {len(resources)} resources within {radius}m of "
            f"({point.longitude}, {point.latitude})"
        )
        return resources

    def count_similar(
        self,
        point: GeoPoint,
        category: str,
        radius_meters: float = SIMILAR_PROBLEM_RADIUS_M
    ) -> int:
        """
        Count unresolved problems of the same category near a point.

        Args:
            point: Search origin
            category: Problem category to match exactly
            radius_meters: Search radius in meters

        Returns:
            int: Number of matching problems
        """
        radius = check_radius(radius_meters)
        query = similar_query(point, category, radius)
        # Savepoint so a failed lookup leaves the caller's transaction usable
        with self.db.begin_nested():
            return int(self.db.execute(query).scalar_one())
