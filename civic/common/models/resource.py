"""
Resource model for organisations that can help resolve problems.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, JSONList, geography_point


class Resource(Base):
    """
    Resource entity (public body, private company or NGO).

    Discoverable by location; category and available_support are
    keyword lists compared against a problem's expanded category.
    """

    __tablename__ = "resources"

    resource_id: Mapped[str] = mapped_column(
        String(50),
        primary_key=True,
        index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    category: Mapped[list[str]] = mapped_column(
        JSONList,
        nullable=False,
        default=list
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    contact_email: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True
    )
    contact_phone: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True
    )
    contact_website: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True
    )
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    available_support: Mapped[list[str]] = mapped_column(
        JSONList,
        nullable=False,
        default=list
    )
    owner_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("users.user_id"),
        nullable=False,
        index=True
    )
    is_verified: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    @property
    def coordinates(self) -> tuple[float, float]:
        """(longitude, latitude)."""
        return (self.longitude, self.latitude)

    def __repr__(self) -> str:
        return (
            f"<Resource(resource_id={self.resource_id}, "
            f"type={self.type})>"
        )


Index(
    "ix_resources_location_gist",
    geography_point(Resource.longitude, Resource.latitude),
    postgresql_using="gist",
).ddl_if(dialect="postgresql")
