"""
Unit tests for resource match scoring and ranking.
"""

import random

import pytest

from common.models import Problem, Resource
from modules import matching
from modules.errors import ValidationError
from modules.geo import GeoPoint, expand, haversine_meters

ORIGIN = (126.9780, 37.5665)


def make_problem(category="환경", priority=2, coordinates=ORIGIN):
    longitude, latitude = coordinates if coordinates else (None, None)
    return Problem(
        problem_id="prb-test",
        title="Overflowing bins",
        description="Bins overflow every weekend",
        category=category,
        longitude=longitude,
        latitude=latitude,
        address="Seoul",
        priority=priority
    )


def make_resource(
    resource_id="res-test",
    coordinates=ORIGIN,
    category=None,
    support=None
):
    return Resource(
        resource_id=resource_id,
        name=resource_id,
        type="public",
        category=list(category or []),
        description="Helps",
        address="Seoul",
        longitude=coordinates[0],
        latitude=coordinates[1],
        available_support=list(support or []),
        owner_id="usr-owner"
    )


class TestDistanceScore:
    """Test cases for the distance part of the score."""

    @pytest.mark.parametrize(
        "meters,expected",
        [(0, 50), (99.9, 50), (100, 49), (250, 48), (4900, 1), (5000, 0),
         (12_000, 0)]
    )
    def test_distance_score(self, meters, expected):
        assert matching.distance_score(meters) == expected


class TestScore:
    """Test cases for combined match scores."""

    def test_colocated_full_overlap(self):
        """Test caps on category and support overlap."""
        problem = make_problem()
        resource = make_resource(
            category=["환경", "청소", "재활용"],
            support=["공원", "녹지", "청소", "재활용"]
        )
        score = matching.score(problem, resource)

        assert score.distance_score == 50
        assert score.category_score == 30
        assert score.support_score == 20
        assert score.total == 100
        assert score.distance_km == "0.00"

    def test_partial_overlap(self):
        problem = make_problem()
        resource = make_resource(category=["환경", "교통"], support=["공원"])
        score = matching.score(problem, resource)

        assert score.category_score == 10
        assert score.support_score == 5
        assert score.total == 65

    def test_no_overlap_scores_distance_only(self):
        problem = make_problem(category="교통")
        resource = make_resource(category=["복지"], support=["노인"])
        score = matching.score(problem, resource)

        assert score.category_score == 0
        assert score.support_score == 0
        assert score.total == score.distance_score

    def test_problem_without_location(self):
        """Test scoring a problem with no coordinates is rejected."""
        problem = make_problem(coordinates=None)
        with pytest.raises(ValidationError):
            matching.score(problem, make_resource())

    def test_random_points_stay_in_bounds(self):
        """Test totals stay within 0..100 and parts add up."""
        rng = random.Random(42)
        problem = make_problem()
        keywords = sorted(expand("환경")) + ["교통", "노인"]

        for i in range(100):
            resource = make_resource(
                resource_id=f"res-{i}",
                coordinates=(
                    ORIGIN[0] + rng.uniform(-0.05, 0.05),
                    ORIGIN[1] + rng.uniform(-0.05, 0.05)
                ),
                category=rng.sample(keywords, rng.randint(0, 5)),
                support=rng.sample(keywords, rng.randint(0, 6))
            )
            score = matching.score(problem, resource)

            assert 0 <= score.total <= 100
            assert 0 <= score.distance_score <= 50
            assert 0 <= score.category_score <= 30
            assert 0 <= score.support_score <= 20
            assert score.total == (
                score.distance_score
                + score.category_score
                + score.support_score
            )

    def test_closer_never_scores_lower_distance(self):
        problem = make_problem()
        near = make_resource(coordinates=(ORIGIN[0] + 0.001, ORIGIN[1]))
        far = make_resource(coordinates=(ORIGIN[0] + 0.02, ORIGIN[1]))

        assert (
            matching.score(problem, near).distance_score
            >= matching.score(problem, far).distance_score
        )


class TestSearchRadius:
    """Test cases for priority-dependent search radius."""

    @pytest.mark.parametrize(
        "priority,radius",
        [(3, 10), (2, 5), (1, 3), (0, 3), (7, 3)]
    )
    def test_radius_by_priority(self, priority, radius):
        assert matching.search_radius_km(priority) == radius


class TestRank:
    """Test cases for ranking and the full match flow."""

    def test_rank_orders_by_total_descending(self):
        problem = make_problem()
        weak = make_resource("res-weak", category=["교통"])
        strong = make_resource("res-strong", category=["환경", "청소"])

        ranked = matching.rank(problem, [weak, strong])

        assert [m.resource.resource_id for m in ranked] == [
            "res-strong",
            "res-weak",
        ]

    def test_rank_keeps_retrieval_order_for_ties(self):
        """Test equal totals keep the order the locator returned."""
        problem = make_problem()
        tied = [
            make_resource(f"res-{i}", category=["환경"]) for i in range(5)
        ]

        ranked = matching.rank(problem, tied)

        assert [m.resource.resource_id for m in ranked] == [
            f"res-{i}" for i in range(5)
        ]

    def test_match_resources_uses_priority_radius(self, locator):
        problem = make_problem(priority=3)
        inside = make_resource(
            "res-inside",
            coordinates=(ORIGIN[0], ORIGIN[1] + 0.08),
            category=["환경"]
        )
        outside = make_resource(
            "res-outside",
            coordinates=(ORIGIN[0], ORIGIN[1] + 0.2),
            category=["환경"]
        )
        unrelated = make_resource("res-unrelated", category=["복지"])
        locator.resources = [inside, outside, unrelated]

        result = matching.match_resources(locator, problem)

        assert result.search_radius_km == 10
        assert result.total_matches == 1
        assert result.matches[0].resource.resource_id == "res-inside"
        _, _, radius_m = locator.calls[0]
        assert radius_m == 10_000

    def test_match_resources_empty(self, locator):
        result = matching.match_resources(locator, make_problem(priority=1))

        assert result.matches == []
        assert result.total_matches == 0
        assert result.search_radius_km == 3

    def test_distance_reported_in_km(self):
        problem = make_problem()
        resource = make_resource(coordinates=(ORIGIN[0], ORIGIN[1] + 0.01))
        expected = haversine_meters(
            GeoPoint(*ORIGIN),
            GeoPoint(ORIGIN[0], ORIGIN[1] + 0.01)
        )

        score = matching.score(problem, resource)

        assert score.distance_km == f"{expected / 1000:.2f}"
