"""
Unit tests for the civic business logic against an in-memory database.
"""

from unittest.mock import patch

import pytest
from sqlalchemy import Update, select, update
from sqlalchemy.exc import OperationalError

from common.models import Like, Problem, Solution, User
from modules import civic_service
from modules.errors import (
    AuthorizationError,
    ConflictError,
    DependencyError,
    NotFoundError,
    ValidationError,
)

COORDS = [126.978, 37.5665]


@pytest.fixture
def problem(db, locator, alice):
    return civic_service.create_problem(
        db,
        locator,
        alice,
        title="Broken streetlight",
        description="The light on the corner has been out for a week",
        category="안전",
        coordinates=COORDS,
        address="Sejong-daero 110",
        tags=["night"]
    )


def propose(db, actor, problem_id, title="Replace the bulb"):
    return civic_service.submit_solution(
        db,
        actor,
        problem_id=problem_id,
        title=title,
        description="Ask the district office to replace it",
        budget=50000,
        timeline="1 week",
        resources=["electrician", "ladder"]
    )


class TestCreateProblem:
    """Test cases for reporting problems."""

    def test_initial_state(self, db, problem, alice):
        """Test a new problem starts pending with its author joined."""
        assert problem.problem_id.startswith("prb-")
        assert problem.status == "pending"
        assert problem.participants == [alice.user_id]
        assert problem.is_completed is False
        assert problem.selected_solution_id is None
        assert problem.coordinates == (126.978, 37.5665)
        assert problem.priority == 2
        assert problem.frequency == 1

    def test_registers_author(self, db, problem, alice):
        user = db.get(User, alice.user_id)
        assert user is not None
        assert user.email == alice.email

    def test_email_taken_by_another_user(self, db, problem, locator, alice):
        """Test a second identity cannot claim an existing email."""
        impostor = civic_service.Actor(
            user_id="usr-carol", name="Carol", email=alice.email
        )

        with pytest.raises(ConflictError):
            civic_service.create_problem(
                db, locator, impostor, "Noise", "Loud at night", "환경",
                COORDS, "Seoul"
            )

        assert db.get(User, "usr-carol") is None
        assert db.execute(select(Problem)).scalars().all() == [problem]

    def test_priority_from_similar_reports(self, db, locator, alice):
        locator.similar = 4

        problem = civic_service.create_problem(
            db, locator, alice, "Litter", "Litter everywhere", "환경",
            COORDS, "Seoul"
        )

        assert problem.frequency == 5
        assert problem.priority == 3

    def test_lookup_failure_still_creates(self, db, locator, alice):
        """Test creation proceeds when similar counting fails."""
        locator.fail = True

        problem = civic_service.create_problem(
            db, locator, alice, "Potholes", "Deep potholes", "교통",
            COORDS, "Seoul"
        )

        assert db.get(Problem, problem.problem_id) is not None
        assert problem.priority == 2

    @pytest.mark.parametrize(
        "field,value",
        [("title", ""), ("description", "   "), ("category", None)]
    )
    def test_missing_text(self, db, locator, alice, field, value):
        kwargs = dict(
            title="t",
            description="d",
            category="환경",
            coordinates=COORDS,
            address="Seoul"
        )
        kwargs[field] = value
        with pytest.raises(ValidationError):
            civic_service.create_problem(db, locator, alice, **kwargs)

    @pytest.mark.parametrize(
        "coordinates",
        [None, [126.9], [200, 37], ["x", "y"]]
    )
    def test_bad_coordinates(self, db, locator, alice, coordinates):
        with pytest.raises(ValidationError):
            civic_service.create_problem(
                db, locator, alice, "t", "d", "환경", coordinates, "Seoul"
            )


class TestListProblems:
    """Test cases for browsing problems."""

    def test_filters_and_pagination(self, db, locator, alice):
        for i in range(3):
            civic_service.create_problem(
                db, locator, alice, f"Trash {i}", "d", "환경",
                COORDS, "Gangnam-gu"
            )
        civic_service.create_problem(
            db, locator, alice, "Signal", "d", "교통", COORDS, "Mapo-gu"
        )

        page = civic_service.list_problems(db, category="환경", limit=2)
        assert page.total == 3
        assert len(page.items) == 2
        assert page.pages == 2

        by_address = civic_service.list_problems(db, address="mapo")
        assert [p.title for p in by_address.items] == ["Signal"]

    def test_invalid_page(self, db):
        with pytest.raises(ValidationError):
            civic_service.list_problems(db, page=0)


class TestUpdateProblem:
    """Test cases for editing problems."""

    def test_author_can_edit(self, db, problem, alice):
        updated = civic_service.update_problem(
            db,
            problem.problem_id,
            alice,
            {"title": "Two lights out", "coordinates": [127.0, 37.5]}
        )
        assert updated.title == "Two lights out"
        assert updated.coordinates == (127.0, 37.5)

    def test_admin_can_edit(self, db, problem, admin):
        updated = civic_service.update_problem(
            db, problem.problem_id, admin, {"status": "processing"}
        )
        assert updated.status == "processing"

    def test_other_user_cannot_edit(self, db, problem, bob):
        with pytest.raises(AuthorizationError):
            civic_service.update_problem(
                db, problem.problem_id, bob, {"title": "Mine now"}
            )

    def test_cannot_resolve_directly(self, db, problem, alice):
        """Test resolution only happens through completion."""
        with pytest.raises(ConflictError):
            civic_service.update_problem(
                db, problem.problem_id, alice, {"status": "resolved"}
            )

    def test_no_backward_transition(self, db, problem, alice):
        civic_service.update_problem(
            db, problem.problem_id, alice, {"status": "processing"}
        )
        with pytest.raises(ConflictError):
            civic_service.update_problem(
                db, problem.problem_id, alice, {"status": "pending"}
            )

    def test_unknown_field(self, db, problem, alice):
        with pytest.raises(ValidationError):
            civic_service.update_problem(
                db, problem.problem_id, alice, {"votes": 1000}
            )

    def test_missing_problem(self, db, alice):
        with pytest.raises(NotFoundError):
            civic_service.update_problem(db, "prb-missing", alice, {})


class TestSolutions:
    """Test cases for proposing and editing solutions."""

    def test_first_solution_starts_processing(self, db, problem, bob):
        solution = propose(db, bob, problem.problem_id)

        assert solution.status == "proposed"
        assert solution.resources == "electrician, ladder"
        assert solution.is_selected is False
        assert problem.status == "processing"

    def test_budget_optional(self, db, problem, bob):
        solution = civic_service.submit_solution(
            db, bob, problem.problem_id, "Ask around", "Talk to neighbours"
        )

        db.refresh(solution)
        assert solution.budget is None

    def test_unknown_problem(self, db, bob):
        with pytest.raises(NotFoundError):
            propose(db, bob, "prb-missing")

    def test_detail_lists_solutions(self, db, problem, bob):
        propose(db, bob, problem.problem_id, "A")
        propose(db, bob, problem.problem_id, "B")

        found, solutions = civic_service.get_problem_detail(
            db,
            problem.problem_id
        )

        assert found is problem
        assert {s.title for s in solutions} == {"A", "B"}

    def test_only_author_edits(self, db, problem, alice, bob):
        solution = propose(db, bob, problem.problem_id)

        with pytest.raises(AuthorizationError):
            civic_service.update_solution(
                db, solution.solution_id, alice, {"title": "Hijack"}
            )

        updated = civic_service.update_solution(
            db, solution.solution_id, bob, {"budget": 70000}
        )
        assert updated.budget == 70000


class TestCompleteProblem:
    """Test cases for selecting a winning solution."""

    def test_completion_updates_everything(self, db, problem, alice, bob):
        """Test winner, siblings and problem change together."""
        winner = propose(db, bob, problem.problem_id, "Winner")
        other = propose(db, bob, problem.problem_id, "Other")
        third = propose(db, alice, problem.problem_id, "Third")

        resolved, selected = civic_service.complete_problem(
            db,
            winner.solution_id,
            alice
        )

        assert resolved.status == "resolved"
        assert resolved.is_completed is True
        assert resolved.selected_solution_id == winner.solution_id
        assert selected.status == "implemented"
        assert selected.is_selected is True

        for sibling in (other, third):
            db.refresh(sibling)
            assert sibling.status == "approved"
            assert sibling.is_selected is False

        selected_count = db.execute(
            select(Solution).where(
                Solution.problem_id == problem.problem_id,
                Solution.is_selected.is_(True)
            )
        ).scalars().all()
        assert len(selected_count) == 1

    def test_complete_twice_conflicts(self, db, problem, alice, bob):
        """Test a second completion changes nothing the first one set."""
        first = propose(db, bob, problem.problem_id, "First")
        second = propose(db, bob, problem.problem_id, "Second")
        civic_service.complete_problem(db, first.solution_id, alice)

        with pytest.raises(ConflictError):
            civic_service.complete_problem(db, second.solution_id, alice)

        for row in (problem, first, second):
            db.refresh(row)
        assert problem.selected_solution_id == first.solution_id
        assert problem.status == "resolved"
        assert problem.is_completed is True
        assert first.status == "implemented"
        assert first.is_selected is True
        assert second.status == "approved"
        assert second.is_selected is False

    def test_failed_transaction_applies_nothing(self, db, problem, alice, bob):
        """Test a database failure mid-completion leaves rows as they were."""
        winner = propose(db, bob, problem.problem_id, "Winner")
        other = propose(db, bob, problem.problem_id, "Other")
        execute = db.execute

        def fail_on_update(statement, *args, **kwargs):
            if isinstance(statement, Update):
                raise OperationalError(
                    "UPDATE solutions", {}, Exception("database is locked")
                )
            return execute(statement, *args, **kwargs)

        with patch.object(db, "execute", side_effect=fail_on_update):
            with pytest.raises(DependencyError):
                civic_service.complete_problem(db, winner.solution_id, alice)

        for row in (problem, winner, other):
            db.refresh(row)
        assert problem.status == "processing"
        assert problem.is_completed is False
        assert problem.selected_solution_id is None
        for solution in (winner, other):
            assert solution.status == "proposed"
            assert solution.is_selected is False

    def test_rechecks_under_lock(self, db, problem, alice, bob):
        """Test a completion committed elsewhere is seen after locking."""
        solution = propose(db, bob, problem.problem_id)
        db.execute(
            update(Problem.__table__)
            .where(Problem.__table__.c.problem_id == problem.problem_id)
            .values(is_completed=True, status="resolved")
        )
        db.commit()
        assert problem.is_completed is False

        with pytest.raises(ConflictError):
            civic_service.complete_problem(db, solution.solution_id, alice)

        db.refresh(solution)
        assert solution.status == "proposed"
        assert solution.is_selected is False

    def test_only_problem_author(self, db, problem, bob, admin):
        solution = propose(db, bob, problem.problem_id)

        with pytest.raises(AuthorizationError):
            civic_service.complete_problem(db, solution.solution_id, bob)
        with pytest.raises(AuthorizationError):
            civic_service.complete_problem(db, solution.solution_id, admin)

    def test_missing_solution(self, db, alice):
        with pytest.raises(NotFoundError):
            civic_service.complete_problem(db, "sol-missing", alice)

    def test_no_new_solutions_after_completion(self, db, problem, alice, bob):
        solution = propose(db, bob, problem.problem_id)
        civic_service.complete_problem(db, solution.solution_id, alice)

        with pytest.raises(ConflictError):
            propose(db, bob, problem.problem_id, "Too late")

    def test_selected_solution_is_locked(self, db, problem, alice, bob):
        solution = propose(db, bob, problem.problem_id)
        civic_service.complete_problem(db, solution.solution_id, alice)

        with pytest.raises(ConflictError):
            civic_service.update_solution(
                db, solution.solution_id, bob, {"title": "Edited"}
            )
        with pytest.raises(ConflictError):
            civic_service.delete_solution(db, solution.solution_id, bob)


class TestLikes:
    """Test cases for like toggling."""

    def test_toggle_twice_restores_state(self, db, problem, alice, bob):
        solution = propose(db, bob, problem.problem_id)

        assert civic_service.toggle_like(
            db, solution.solution_id, alice
        ) == (1, True)
        assert civic_service.has_liked(db, solution.solution_id, alice.user_id)

        assert civic_service.toggle_like(
            db, solution.solution_id, alice
        ) == (0, False)
        assert not civic_service.has_liked(
            db,
            solution.solution_id,
            alice.user_id
        )

    def test_likes_from_different_users(self, db, problem, alice, bob):
        solution = propose(db, bob, problem.problem_id)
        civic_service.toggle_like(db, solution.solution_id, alice)
        likes, liked = civic_service.toggle_like(db, solution.solution_id, bob)

        assert likes == 2
        assert liked is True

    def test_count_comes_from_database(self, db, problem, alice, bob):
        """Test a toggle builds on the stored count, not a stale copy."""
        solution = propose(db, bob, problem.problem_id)
        db.execute(
            update(Solution.__table__)
            .where(Solution.__table__.c.solution_id == solution.solution_id)
            .values(likes=5)
        )
        db.commit()
        assert solution.likes == 0

        assert civic_service.toggle_like(
            db, solution.solution_id, alice
        ) == (6, True)
        assert civic_service.toggle_like(
            db, solution.solution_id, alice
        ) == (5, False)

    def test_like_missing_solution(self, db, alice):
        with pytest.raises(NotFoundError):
            civic_service.toggle_like(db, "sol-missing", alice)


class TestDeletion:
    """Test cases for deleting problems and solutions."""

    def test_delete_problem_cascades(self, db, problem, alice, bob):
        """Test solutions and their likes go with the problem."""
        solution = propose(db, bob, problem.problem_id)
        civic_service.toggle_like(db, solution.solution_id, alice)

        civic_service.delete_problem(db, problem.problem_id, alice)

        assert db.get(Problem, problem.problem_id) is None
        assert db.execute(select(Solution)).scalars().all() == []
        assert db.execute(select(Like)).scalars().all() == []

    def test_other_user_cannot_delete(self, db, problem, bob):
        with pytest.raises(AuthorizationError):
            civic_service.delete_problem(db, problem.problem_id, bob)

    def test_admin_deletes_solution(self, db, problem, bob, admin):
        solution = propose(db, bob, problem.problem_id)
        civic_service.delete_solution(db, solution.solution_id, admin)
        assert db.get(Solution, solution.solution_id) is None


class TestParticipantsAndResources:
    """Test cases for joining problems and attaching resources."""

    def test_join_is_idempotent(self, db, problem, alice, bob):
        civic_service.join_problem(db, problem.problem_id, bob)
        joined = civic_service.join_problem(db, problem.problem_id, bob)

        assert joined.participants == [alice.user_id, bob.user_id]

    def test_create_resource(self, db, bob):
        resource = civic_service.create_resource(
            db,
            bob,
            name="Mapo Cleanup Crew",
            type="ngo",
            category=["환경"],
            description="Weekend volunteers",
            address="Mapo-gu",
            coordinates=COORDS,
            available_support=["청소"]
        )

        assert resource.resource_id.startswith("res-")
        assert resource.owner_id == bob.user_id
        assert resource.is_verified is False

    @pytest.mark.parametrize(
        "overrides",
        [{"type": "company"}, {"category": []}, {"available_support": []},
         {"coordinates": [0, 100]}]
    )
    def test_invalid_resource(self, db, bob, overrides):
        kwargs = dict(
            name="Crew",
            type="ngo",
            category=["환경"],
            description="d",
            address="Seoul",
            coordinates=COORDS,
            available_support=["청소"]
        )
        kwargs.update(overrides)
        with pytest.raises(ValidationError):
            civic_service.create_resource(db, bob, **kwargs)

    def test_connect_skips_unknown_and_duplicates(self, db, problem, bob):
        resource = civic_service.create_resource(
            db, bob, "Crew", "public", ["안전"], "d", "Seoul", COORDS,
            ["가로등"]
        )

        added = civic_service.connect_resources(
            db,
            problem.problem_id,
            [resource.resource_id, "res-missing", resource.resource_id],
            bob
        )
        again = civic_service.connect_resources(
            db, problem.problem_id, [resource.resource_id], bob
        )

        assert [r.resource_id for r in added] == [resource.resource_id]
        assert again == []
        assert problem.connected_resources == [resource.resource_id]
