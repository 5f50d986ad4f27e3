"""
Resource match scoring and ranking.

A resource's match score is the sum of three independent parts:
distance (0-50), category overlap (0-30) and support overlap (0-20).
"""

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Sequence

from common.models import Problem, Resource

from .errors import ValidationError
from .geo import GeoPoint, expand, haversine_meters
from .locator import MAX_CANDIDATES, Locator

logger = logging.getLogger(__name__)

MAX_DISTANCE_SCORE = 50
MAX_CATEGORY_SCORE = 30
MAX_SUPPORT_SCORE = 20

# Search radius in km by problem priority; anything else gets the default.
RADIUS_KM_BY_PRIORITY = {3: 10, 2: 5}
DEFAULT_RADIUS_KM = 3


@dataclass(frozen=True)
class MatchScore:
    total: int
    distance_score: int
    category_score: int
    support_score: int
    distance_m: float

    @property
    def distance_km(self) -> str:
        return f"{self.distance_m / 1000:.2f}"


@dataclass(frozen=True)
class Match:
    resource: Resource
    score: MatchScore


@dataclass(frozen=True)
class MatchResult:
    matches: list[Match]
    search_radius_km: int

    @property
    def total_matches(self) -> int:
        return len(self.matches)


def distance_score(distance_m: float) -> int:
    """50 points at the problem location, minus one per 100 m, floor 0."""
    return max(0, MAX_DISTANCE_SCORE - math.floor(distance_m / 100))


def _overlap(values: Iterable[str], keywords: frozenset[str]) -> int:
    return sum(1 for value in values if value in keywords)


def score_against(
    origin: GeoPoint,
    keywords: frozenset[str],
    resource: Resource
) -> MatchScore:
    """
    Score a resource against a location and expanded keyword set.

    Args:
        origin: Problem location
        keywords: Expanded problem category
        resource: Candidate resource

    Returns:
        MatchScore: Total and per-part scores
    """
    distance_m = haversine_meters(
        origin,
        GeoPoint(resource.longitude, resource.latitude)
    )
    d_score = distance_score(distance_m)
    c_score = min(
        MAX_CATEGORY_SCORE,
        10 * _overlap(resource.category or [], keywords)
    )
    s_score = min(
        MAX_SUPPORT_SCORE,
        5 * _overlap(resource.available_support or [], keywords)
    )

    return MatchScore(
        total=d_score + c_score + s_score,
        distance_score=d_score,
        category_score=c_score,
        support_score=s_score,
        distance_m=distance_m
    )


def _problem_origin(problem: Problem) -> GeoPoint:
    coordinates = problem.coordinates
    if coordinates is None:
        raise ValidationError("Problem has no location")
    return GeoPoint(*coordinates)


def score(problem: Problem, resource: Resource) -> MatchScore:
    """
    Score how well a resource fits a problem.

    Raises:
        ValidationError: If the problem has no coordinates
    """
    return score_against(
        _problem_origin(problem),
        expand(problem.category),
        resource
    )


def search_radius_km(priority: int) -> int:
    """
    Pick the resource search radius for a problem priority.

    High priority problems search 10 km, medium 5 km, and everything
    else 3 km.
    """
    return RADIUS_KM_BY_PRIORITY.get(priority, DEFAULT_RADIUS_KM)


def rank(problem: Problem, resources: Sequence[Resource]) -> list[Match]:
    """
    Score resources and order them best first.

    Ties keep their retrieval order (sorted() is stable).
    """
    origin = _problem_origin(problem)
    keywords = expand(problem.category)
    matches = [
        Match(resource=resource, score=score_against(origin, keywords, resource))
        for resource in resources
    ]
    return sorted(matches, key=lambda m: m.score.total, reverse=True)


def match_resources(locator: Locator, problem: Problem) -> MatchResult:
    """
    Find and rank resources for a problem.

    Args:
        locator: Spatial lookup bound to the current session
        problem: Problem to match

    Returns:
        MatchResult: Ranked matches and the radius searched

    Raises:
        ValidationError: If the problem has no coordinates
    """
    origin = _problem_origin(problem)
    radius_km = search_radius_km(problem.priority)

    candidates = locator.find_nearby(
        origin,
        radius_km * 1000,
        expand(problem.category),
        limit=MAX_CANDIDATES
    )
    matches = rank(problem, candidates)

    logger.info(
        f"Matched {len(matches)} resources for problem "
        f"{problem.problem_id} within {radius_km}km"
    )
    return MatchResult(matches=matches, search_radius_km=radius_km)
