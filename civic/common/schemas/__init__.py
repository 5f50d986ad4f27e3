"""
Pydantic schemas for API request and response models.
"""

import re
from datetime import datetime
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Base response wrapper
class APIResponse(BaseModel):
    """Standard API response wrapper."""

    success: bool = Field(..., description="Operation success status")
    data: Optional[dict[str, Any]] = Field(
        default=None,
        description="Response data"
    )
    error: Optional[str] = Field(
        default=None,
        description="Error message if success=False"
    )


class Pagination(BaseModel):
    """Pagination metadata for list responses."""

    total: int
    page: int
    limit: int
    pages: int


# Health check schemas
class HealthData(BaseModel):
    """Health check response data."""

    status: str = Field(..., description="Service health status")


# Location
class Location(BaseModel):
    """A point with its free-text address."""

    coordinates: list[float] = Field(
        ...,
        min_length=2,
        max_length=2,
        description="[longitude, latitude] in decimal degrees"
    )
    address: str = Field(..., min_length=1, description="Street address")


# Problem schemas
class ProblemCreateRequest(BaseModel):
    """Request body for reporting a problem."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1, max_length=50)
    location: Location
    images: list[str] = Field(
        default_factory=list,
        description="Image references (URLs or data URLs)"
    )
    tags: list[str] = Field(default_factory=list)


class ProblemUpdateRequest(BaseModel):
    """Request body for editing a problem; omitted fields are unchanged."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = Field(default=None, min_length=1, max_length=50)
    location: Optional[Location] = None
    images: Optional[list[str]] = None
    tags: Optional[list[str]] = None
    status: Optional[str] = Field(
        default=None,
        description="pending or processing"
    )


class ProblemData(BaseModel):
    """Problem data for API responses."""

    model_config = ConfigDict(from_attributes=True)

    problem_id: str
    title: str
    description: str
    category: str
    longitude: Optional[float]
    latitude: Optional[float]
    address: str
    images: list[str]
    author_id: str
    status: str
    votes: int
    priority: int
    frequency: int
    participants: list[str]
    tags: list[str]
    connected_resources: list[str]
    last_analysis: str
    is_completed: bool
    selected_solution_id: Optional[str]
    created_at: datetime
    updated_at: datetime


# Solution schemas
class SolutionCreateRequest(BaseModel):
    """Request body for proposing a solution."""

    problem_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    budget: Optional[int] = Field(default=None, ge=0)
    timeline: Optional[str] = Field(default=None, max_length=255)
    resources: Union[list[str], str, None] = None
    ai_generated: bool = False


class SolutionUpdateRequest(BaseModel):
    """Request body for editing a solution."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, min_length=1)
    budget: Optional[int] = Field(default=None, ge=0)
    timeline: Optional[str] = Field(default=None, max_length=255)
    resources: Union[list[str], str, None] = None


class SolutionData(BaseModel):
    """Solution data for API responses."""

    model_config = ConfigDict(from_attributes=True)

    solution_id: str
    problem_id: str
    author_id: str
    title: str
    description: str
    votes: int
    likes: int
    ai_generated: bool
    status: str
    resources: str
    budget: Optional[int]
    timeline: str
    is_selected: bool
    created_at: datetime
    updated_at: datetime


class LikeData(BaseModel):
    """Like toggle / status result."""

    likes: Optional[int] = None
    liked: bool


class AISolutionDraft(BaseModel):
    """A solution proposed by the AI provider, before submission."""

    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    budget: Optional[int] = None
    timeline: str = ""
    resources: list[str] = Field(default_factory=list)

    @field_validator("budget", mode="before")
    @classmethod
    def parse_budget(cls, v: Any) -> Optional[int]:
        if v is None or isinstance(v, int):
            return v
        if isinstance(v, float):
            return int(v)
        digits = re.sub(r"[^0-9]", "", str(v))
        return int(digits) if digits else None

    @field_validator("timeline", mode="before")
    @classmethod
    def stringify_timeline(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("resources", mode="before")
    @classmethod
    def split_resources(cls, v: Any) -> list[str]:
        if v is None:
            return []
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return [str(item) for item in v]


# Resource schemas
class ResourceCreateRequest(BaseModel):
    """Request body for registering a resource."""

    name: str = Field(..., min_length=1, max_length=255)
    type: str = Field(..., description="public, private or ngo")
    category: list[str] = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1, max_length=255)
    coordinates: list[float] = Field(
        ...,
        min_length=2,
        max_length=2,
        description="[longitude, latitude] in decimal degrees"
    )
    available_support: list[str] = Field(..., min_length=1)
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_website: Optional[str] = None


class ResourceData(BaseModel):
    """Resource data for API responses."""

    model_config = ConfigDict(from_attributes=True)

    resource_id: str
    name: str
    type: str
    category: list[str]
    description: str
    contact_email: Optional[str]
    contact_phone: Optional[str]
    contact_website: Optional[str]
    address: str
    longitude: float
    latitude: float
    available_support: list[str]
    owner_id: str
    is_verified: bool
    created_at: datetime
    updated_at: datetime


class MatchDetails(BaseModel):
    """Per-part breakdown of a match score."""

    distance_score: int
    category_score: int
    support_score: int
    distance_in_km: str


class ResourceMatchData(BaseModel):
    """A resource with its match score."""

    resource: ResourceData
    match_score: int
    match_details: MatchDetails


class ConnectResourcesRequest(BaseModel):
    """Request body for attaching resources to a problem."""

    problem_id: str = Field(..., min_length=1)
    resource_ids: list[str] = Field(..., min_length=1)
