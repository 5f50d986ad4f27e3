"""
Solution model for storing proposed remedies to a problem.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .like import Like
    from .problem import Problem


class Solution(Base):
    """
    Solution entity.

    Lifecycle is proposed -> approved -> implemented. Only the
    solution chosen when its problem is completed becomes
    implemented and selected.
    """

    __tablename__ = "solutions"

    solution_id: Mapped[str] = mapped_column(
        String(50),
        primary_key=True,
        index=True
    )
    problem_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("problems.problem_id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    author_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("users.user_id"),
        nullable=False,
        index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    votes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    likes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ai_generated: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="proposed"
    )
    resources: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default=""
    )
    budget: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    timeline: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default=""
    )
    is_selected: Mapped[bool] = mapped_column(
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

    # Relationships
    problem: Mapped["Problem"] = relationship(
        "Problem",
        back_populates="solutions"
    )
    like_records: Mapped[list["Like"]] = relationship(
        "Like",
        back_populates="solution",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return (
            f"<Solution(solution_id={self.solution_id}, "
            f"status={self.status})>"
        )
