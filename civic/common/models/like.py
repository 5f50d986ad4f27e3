"""
Like model: one row per (user, solution) pair.
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .solution import Solution


class Like(Base):
    """A user's like on a solution. Presence means liked."""

    __tablename__ = "likes"
    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "solution_id",
            name="uq_likes_user_solution"
        ),
    )

    like_id: Mapped[str] = mapped_column(String(50), primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    solution_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("solutions.solution_id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    solution: Mapped["Solution"] = relationship(
        "Solution",
        back_populates="like_records"
    )

    def __repr__(self) -> str:
        return (
            f"<Like(user_id={self.user_id}, "
            f"solution_id={self.solution_id})>"
        )
