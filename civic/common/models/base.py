"""
Declarative base shared by all models.
"""

import uuid

from geoalchemy2 import Geography
from sqlalchemy import JSON, cast, func, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase

# JSON lists are stored as jsonb on PostgreSQL so the locator can use
# the ?| operator; other dialects fall back to plain JSON.
JSONList = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def generate_id(prefix: str) -> str:
    """Generate a prefixed unique identifier."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def geography_point(longitude, latitude):
    """
    Build a geography(Point, 4326) SQL expression from lon/lat columns
    or bound values.
    """
    return cast(
        func.ST_SetSRID(func.ST_MakePoint(longitude, latitude), text("4326")),
        Geography(geometry_type="POINT", srid=4326)
    )
