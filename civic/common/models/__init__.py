"""
Database models package.

Exports all SQLAlchemy models for use across the application.
"""

from .base import Base, generate_id, geography_point
from .like import Like
from .problem import Problem
from .resource import Resource
from .solution import Solution
from .user import User

__all__ = [
    "Base",
    "Like",
    "Problem",
    "Resource",
    "Solution",
    "User",
    "generate_id",
    "geography_point",
]
