"""
User model mirroring identities issued by the auth provider.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class User(Base):
    """
    User entity.

    Rows are created on first authenticated write; credentials live
    with the auth provider, not here.
    """

    __tablename__ = "users"

    user_id: Mapped[str] = mapped_column(
        String(50),
        primary_key=True,
        index=True
    )
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default=""
    )
    email: Mapped[Optional[str]] = mapped_column(
        String(255),
        unique=True,
        nullable=True
    )
    image: Mapped[Optional[str]] = mapped_column(
        String(512),
        nullable=True
    )
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="user"
    )
    location: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<User(user_id={self.user_id}, role={self.role})>"
