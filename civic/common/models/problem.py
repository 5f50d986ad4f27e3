"""
Problem model for storing user-reported civic issues.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, JSONList, geography_point

if TYPE_CHECKING:
    from .solution import Solution
    from .user import User


class Problem(Base):
    """
    Civic problem entity.

    Stores the report itself, its location, and the lifecycle state
    (pending -> processing -> resolved) along with the priority and
    frequency assigned when it was created.
    """

    __tablename__ = "problems"

    problem_id: Mapped[str] = mapped_column(
        String(50),
        primary_key=True,
        index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        index=True
    )

    # Location, [longitude, latitude] order like GeoJSON
    longitude: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True
    )
    latitude: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True
    )
    address: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default=""
    )

    images: Mapped[list[str]] = mapped_column(
        JSONList,
        nullable=False,
        default=list
    )
    author_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("users.user_id"),
        nullable=False,
        index=True
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="pending",
        index=True
    )
    votes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    priority: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1
    )
    frequency: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1
    )
    participants: Mapped[list[str]] = mapped_column(
        JSONList,
        nullable=False,
        default=list
    )
    tags: Mapped[list[str]] = mapped_column(
        JSONList,
        nullable=False,
        default=list
    )
    connected_resources: Mapped[list[str]] = mapped_column(
        JSONList,
        nullable=False,
        default=list
    )
    last_analysis: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default=""
    )
    is_completed: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False
    )
    selected_solution_id: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True
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

    # Relationships
    author: Mapped["User"] = relationship("User")
    solutions: Mapped[list["Solution"]] = relationship(
        "Solution",
        back_populates="problem",
        cascade="all, delete-orphan"
    )

    @property
    def coordinates(self) -> Optional[tuple[float, float]]:
        """(longitude, latitude), or None when the location is unset."""
        if self.longitude is None or self.latitude is None:
            return None
        return (self.longitude, self.latitude)

    def __repr__(self) -> str:
        return (
            f"<Problem(problem_id={self.problem_id}, "
            f"status={self.status}, priority={self.priority})>"
        )


Index(
    "ix_problems_location_gist",
    geography_point(Problem.longitude, Problem.latitude),
    postgresql_using="gist",
).ddl_if(dialect="postgresql")
