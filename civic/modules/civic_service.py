"""
Civic Business Logic Module.

This module contains pure business logic with NO framework dependencies.
Problems, solutions, resources and likes are created and mutated here;
the API layer only translates requests and errors.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Union

from sqlalchemy import case, func, select, type_coerce, update
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from common.db import unit_of_work
from common.models import Like, Problem, Resource, Solution, User, generate_id

from .errors import (
    AuthorizationError,
    CivicError,
    ConflictError,
    DependencyError,
    NotFoundError,
    ValidationError,
)
from .geo import GeoPoint, validate_point
from .locator import Locator, within_radius
from .priority import classify

logger = logging.getLogger(__name__)

PROBLEM_STATUSES = ("pending", "processing", "resolved")
SOLUTION_STATUSES = ("proposed", "approved", "implemented")
RESOURCE_TYPES = ("public", "private", "ngo")

# Allowed forward moves; resolved and implemented are terminal.
PROBLEM_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"processing", "resolved"}),
    "processing": frozenset({"resolved"}),
    "resolved": frozenset(),
}
SOLUTION_TRANSITIONS: dict[str, frozenset[str]] = {
    "proposed": frozenset({"approved", "implemented"}),
    "approved": frozenset({"implemented"}),
    "implemented": frozenset(),
}

PROBLEM_EDITABLE_FIELDS = frozenset(
    {"title", "description", "category", "address", "images", "tags"}
)
SOLUTION_EDITABLE_FIELDS = frozenset(
    {"title", "description", "budget", "timeline", "resources"}
)


@dataclass(frozen=True)
class Actor:
    """Identity carried by a verified session."""

    user_id: str
    role: str = "user"
    name: str = ""
    email: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


@dataclass(frozen=True)
class Page:
    items: list[Any]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return -(-self.total // self.limit) if self.limit else 0


def can_transition_problem(current: str, target: str) -> bool:
    """Whether a problem may move from current to target status."""
    return target in PROBLEM_TRANSITIONS.get(current, frozenset())


def can_transition_solution(current: str, target: str) -> bool:
    """Whether a solution may move from current to target status."""
    return target in SOLUTION_TRANSITIONS.get(current, frozenset())


def _require_text(value: Optional[str], field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required")
    return str(value).strip()


def _require_point(coordinates: Optional[Iterable[Any]]) -> GeoPoint:
    if coordinates is None:
        raise ValidationError("coordinates are required")
    values = list(coordinates)
    if len(values) != 2:
        raise ValidationError(
            "coordinates must be [longitude, latitude]"
        )
    try:
        return validate_point(values[0], values[1])
    except ValueError as e:
        raise ValidationError(str(e))


def _check_owner(actor: Actor, owner_id: str, what: str) -> None:
    if actor.user_id != owner_id and not actor.is_admin:
        raise AuthorizationError(f"Not allowed to modify this {what}")


def _paginate(db: Session, query, page: int, limit: int) -> Page:
    if page < 1 or limit < 1:
        raise ValidationError("page and limit must be positive")

    total = db.execute(
        select(func.count()).select_from(query.order_by(None).subquery())
    ).scalar_one()
    items = db.execute(
        query.offset((page - 1) * limit).limit(limit)
    ).scalars().all()
    return Page(items=list(items), total=int(total), page=page, limit=limit)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

def ensure_user(db: Session, actor: Actor) -> User:
    """
    Return the local row for an authenticated actor, creating it on
    first use.

    Args:
        db: Database session
        actor: Verified session identity

    Returns:
        User instance (added to the session, not committed)

    Raises:
        ConflictError: If the actor's email belongs to another user
    """
    user = db.get(User, actor.user_id)
    if user is None:
        if actor.email:
            owner = db.execute(
                select(User.user_id).where(User.email == actor.email)
            ).scalar_one_or_none()
            if owner is not None:
                raise ConflictError(
                    f"Email {actor.email} is already registered"
                )
        user = User(
            user_id=actor.user_id,
            name=actor.name,
            email=actor.email,
            role=actor.role
        )
        db.add(user)
        try:
            db.flush()
        except IntegrityError as e:
            raise ConflictError(
                f"User {actor.user_id} conflicts with an existing user"
            ) from e
        logger.info(f"Registered user {actor.user_id}")
    return user


# ---------------------------------------------------------------------------
# Problems
# ---------------------------------------------------------------------------

def get_problem(db: Session, problem_id: str) -> Problem:
    """
    Retrieve problem by ID.

    Raises:
        NotFoundError: If the problem doesn't exist
    """
    problem = db.get(Problem, problem_id)
    if problem is None:
        raise NotFoundError(f"Problem {problem_id} not found")
    return problem


def create_problem(
    db: Session,
    locator: Locator,
    actor: Actor,
    title: str,
    description: str,
    category: str,
    coordinates: Optional[Iterable[Any]],
    address: str,
    images: Optional[list[str]] = None,
    tags: Optional[list[str]] = None
) -> Problem:
    """
    Create a new problem and assign its priority.

    Args:
        db: Database session
        locator: Spatial lookup used for similar-problem counting
        actor: Reporting user
        title: Problem title
        description: Problem description
        category: Problem category
        coordinates: [longitude, latitude]
        address: Free-text address
        images: Image references
        tags: Free-text tags

    Returns:
        Created problem instance

    Raises:
        ValidationError: If a required field is missing or malformed
    """
    title = _require_text(title, "title")
    description = _require_text(description, "description")
    category = _require_text(category, "category")
    address = _require_text(address, "address")
    point = _require_point(coordinates)

    classification = classify(locator, point, category)

    with unit_of_work(db):
        ensure_user(db, actor)
        problem = Problem(
            problem_id=generate_id("prb"),
            title=title,
            description=description,
            category=category,
            longitude=point.longitude,
            latitude=point.latitude,
            address=address,
            images=list(images or []),
            tags=list(tags or []),
            author_id=actor.user_id,
            status="pending",
            votes=0,
            priority=classification.priority,
            frequency=classification.frequency,
            participants=[actor.user_id],
            connected_resources=[],
            last_analysis="",
            is_completed=False
        )
        db.add(problem)

    logger.info(
        f"Created problem {problem.problem_id} ({category}) with "
        f"priority {problem.priority}, frequency {problem.frequency}"
    )
    return problem


def list_problems(
    db: Session,
    category: Optional[str] = None,
    status: Optional[str] = None,
    address: Optional[str] = None,
    near: Optional[GeoPoint] = None,
    radius_km: float = 10,
    page: int = 1,
    limit: int = 10
) -> Page:
    """
    List problems, newest first, with optional filters.

    Args:
        db: Database session
        category: Exact category filter
        status: Exact status filter
        address: Case-insensitive address substring
        near: Only problems within radius_km of this point
        radius_km: Radius for the near filter
        page: 1-based page number
        limit: Page size

    Returns:
        Page of Problem instances
    """
    query = select(Problem)
    if category:
        query = query.where(Problem.category == category)
    if status:
        query = query.where(Problem.status == status)
    if address:
        query = query.where(Problem.address.ilike(f"%{address}%"))
    if near is not None:
        if radius_km <= 0:
            raise ValidationError("radius must be strictly positive")
        query = query.where(
            within_radius(
                Problem.longitude,
                Problem.latitude,
                near,
                radius_km * 1000
            )
        )
    query = query.order_by(Problem.created_at.desc())
    return _paginate(db, query, page, limit)


def get_problem_detail(
    db: Session,
    problem_id: str
) -> tuple[Problem, list[Solution]]:
    """
    Retrieve a problem together with its solutions.

    Returns:
        tuple: (problem, solutions ordered by votes then newest)
    """
    problem = get_problem(db, problem_id)
    solutions = db.execute(
        select(Solution)
        .where(Solution.problem_id == problem_id)
        .order_by(Solution.votes.desc(), Solution.created_at.desc())
    ).scalars().all()
    return problem, list(solutions)


def update_problem(
    db: Session,
    problem_id: str,
    actor: Actor,
    updates: dict[str, Any]
) -> Problem:
    """
    Edit a problem's descriptive fields, location or status.

    Args:
        db: Database session
        problem_id: Problem identifier
        actor: Editing user (author or admin)
        updates: Field values to change; None values are ignored

    Returns:
        Updated problem instance

    Raises:
        NotFoundError: If the problem doesn't exist
        AuthorizationError: If the actor is neither author nor admin
        ConflictError: If the status change is not a legal transition
    """
    problem = get_problem(db, problem_id)
    _check_owner(actor, problem.author_id, "problem")

    changes = {k: v for k, v in updates.items() if v is not None}

    status = changes.pop("status", None)
    if status is not None and status != problem.status:
        if status == "resolved":
            raise ConflictError(
                "Problems are resolved by completing a solution"
            )
        if not can_transition_problem(problem.status, status):
            raise ConflictError(
                f"Cannot move problem from {problem.status} to {status}"
            )

    point = None
    if "coordinates" in changes:
        point = _require_point(changes.pop("coordinates"))

    unknown = set(changes) - PROBLEM_EDITABLE_FIELDS
    if unknown:
        raise ValidationError(
            f"Unknown problem fields: {', '.join(sorted(unknown))}"
        )
    for field in ("title", "description", "category", "address"):
        if field in changes:
            changes[field] = _require_text(changes[field], field)

    with unit_of_work(db):
        for field, value in changes.items():
            setattr(problem, field, list(value) if isinstance(value, list) else value)
        if point is not None:
            problem.longitude = point.longitude
            problem.latitude = point.latitude
        if status is not None:
            problem.status = status

    logger.info(f"Updated problem {problem_id} by {actor.user_id}")
    return problem


def delete_problem(db: Session, problem_id: str, actor: Actor) -> None:
    """
    Delete a problem and, through the cascade, all of its solutions.

    Raises:
        NotFoundError: If the problem doesn't exist
        AuthorizationError: If the actor is neither author nor admin
    """
    problem = get_problem(db, problem_id)
    _check_owner(actor, problem.author_id, "problem")

    with unit_of_work(db):
        db.delete(problem)

    logger.info(f"Deleted problem {problem_id} and its solutions")


def join_problem(db: Session, problem_id: str, actor: Actor) -> Problem:
    """
    Add the actor to a problem's participants. Joining twice is a no-op.
    """
    problem = get_problem(db, problem_id)
    if actor.user_id in (problem.participants or []):
        return problem

    with unit_of_work(db):
        ensure_user(db, actor)
        # Reassign so the JSON column is flagged dirty
        problem.participants = [*(problem.participants or []), actor.user_id]

    logger.info(f"User {actor.user_id} joined problem {problem_id}")
    return problem


def save_analysis(db: Session, problem: Problem, analysis: str) -> Problem:
    """Store the latest AI analysis text on a problem."""
    with unit_of_work(db):
        problem.last_analysis = analysis
    return problem


# ---------------------------------------------------------------------------
# Solutions
# ---------------------------------------------------------------------------

def get_solution(db: Session, solution_id: str) -> Solution:
    """
    Retrieve solution by ID.

    Raises:
        NotFoundError: If the solution doesn't exist
    """
    solution = db.get(Solution, solution_id)
    if solution is None:
        raise NotFoundError(f"Solution {solution_id} not found")
    return solution


def _resources_text(resources: Union[str, list[str], None]) -> str:
    if isinstance(resources, list):
        return ", ".join(str(r) for r in resources)
    return resources or ""


def submit_solution(
    db: Session,
    actor: Actor,
    problem_id: str,
    title: str,
    description: str,
    budget: Optional[int] = None,
    timeline: Optional[str] = None,
    resources: Union[str, list[str], None] = None,
    ai_generated: bool = False
) -> Solution:
    """
    Propose a solution for a problem.

    The first solution moves a pending problem to processing in the
    same transaction.

    Raises:
        ValidationError: If title or description is missing
        NotFoundError: If the problem doesn't exist
        ConflictError: If the problem is already completed
    """
    title = _require_text(title, "title")
    description = _require_text(description, "description")
    problem = get_problem(db, problem_id)
    if problem.is_completed:
        raise ConflictError(f"Problem {problem_id} is already completed")

    with unit_of_work(db):
        ensure_user(db, actor)
        solution = Solution(
            solution_id=generate_id("sol"),
            problem_id=problem_id,
            author_id=actor.user_id,
            title=title,
            description=description,
            budget=budget,
            timeline=timeline or "",
            resources=_resources_text(resources),
            votes=0,
            likes=0,
            ai_generated=bool(ai_generated),
            status="proposed",
            is_selected=False
        )
        db.add(solution)

        if problem.status == "pending":
            problem.status = "processing"

    logger.info(
        f"Created solution {solution.solution_id} for {problem_id}"
    )
    return solution


def list_solutions(
    db: Session,
    problem_id: Optional[str] = None,
    page: int = 1,
    limit: int = 10
) -> Page:
    """List solutions ordered by votes then newest first."""
    query = select(Solution)
    if problem_id:
        query = query.where(Solution.problem_id == problem_id)
    query = query.order_by(Solution.votes.desc(), Solution.created_at.desc())
    return _paginate(db, query, page, limit)


def update_solution(
    db: Session,
    solution_id: str,
    actor: Actor,
    updates: dict[str, Any]
) -> Solution:
    """
    Edit a solution's content.

    Raises:
        NotFoundError: If the solution doesn't exist
        AuthorizationError: If the actor is neither author nor admin
        ConflictError: If the solution has been implemented
    """
    solution = get_solution(db, solution_id)
    _check_owner(actor, solution.author_id, "solution")
    if solution.status == "implemented":
        raise ConflictError("Implemented solutions cannot be edited")

    changes = {k: v for k, v in updates.items() if v is not None}
    unknown = set(changes) - SOLUTION_EDITABLE_FIELDS
    if unknown:
        raise ValidationError(
            f"Unknown solution fields: {', '.join(sorted(unknown))}"
        )
    for field in ("title", "description"):
        if field in changes:
            changes[field] = _require_text(changes[field], field)
    if "resources" in changes:
        changes["resources"] = _resources_text(changes["resources"])

    with unit_of_work(db):
        for field, value in changes.items():
            setattr(solution, field, value)

    logger.info(f"Updated solution {solution_id} by {actor.user_id}")
    return solution


def delete_solution(db: Session, solution_id: str, actor: Actor) -> None:
    """
    Delete a solution.

    Raises:
        NotFoundError: If the solution doesn't exist
        AuthorizationError: If the actor is neither author nor admin
        ConflictError: If it is the selected solution of its problem
    """
    solution = get_solution(db, solution_id)
    _check_owner(actor, solution.author_id, "solution")
    if solution.is_selected:
        raise ConflictError("The selected solution cannot be deleted")

    with unit_of_work(db):
        db.delete(solution)

    logger.info(f"Deleted solution {solution_id}")


def complete_problem(
    db: Session,
    solution_id: str,
    actor: Actor
) -> tuple[Problem, Solution]:
    """
    Resolve a problem by selecting its winning solution.

    In one transaction: the winner becomes implemented and selected,
    the problem becomes resolved and completed, and every other
    solution of the problem becomes approved.

    Args:
        db: Database session
        solution_id: Winning solution identifier
        actor: Caller; must be the problem's author

    Returns:
        tuple: (problem, winning solution) after the update

    Raises:
        NotFoundError: If the solution or its problem doesn't exist
        AuthorizationError: If the actor is not the problem's author
        ConflictError: If the problem is already completed
        DependencyError: If the transaction fails; nothing is applied
    """
    solution = get_solution(db, solution_id)
    problem = db.get(Problem, solution.problem_id)
    if problem is None:
        raise NotFoundError(
            f"Problem {solution.problem_id} for solution "
            f"{solution_id} not found"
        )
    if problem.author_id != actor.user_id:
        raise AuthorizationError(
            "Only the problem author can complete it"
        )
    if problem.is_completed:
        raise ConflictError(
            f"Problem {problem.problem_id} is already completed"
        )

    try:
        with unit_of_work(db):
            # Lock the row and re-read it; a concurrent completion
            # that committed first is seen here.
            locked = db.execute(
                select(Problem)
                .where(Problem.problem_id == problem.problem_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalar_one()
            if locked.is_completed or not can_transition_problem(
                locked.status, "resolved"
            ):
                raise ConflictError(
                    f"Problem {locked.problem_id} is already completed"
                )
            if not can_transition_solution(solution.status, "implemented"):
                raise ConflictError(
                    f"Solution {solution_id} cannot be implemented "
                    f"from {solution.status}"
                )

            solution.status = "implemented"
            solution.is_selected = True

            locked.is_completed = True
            locked.status = "resolved"
            locked.selected_solution_id = solution_id

            db.execute(
                update(Solution)
                .where(
                    Solution.problem_id == locked.problem_id,
                    Solution.solution_id != solution_id
                )
                .values(status="approved", is_selected=False)
            )
    except CivicError:
        raise
    except SQLAlchemyError as e:
        logger.error(
            f"Completion of problem {problem.problem_id} failed: {e}"
        )
        raise DependencyError("Failed to complete problem") from e

    logger.info(
        f"Problem {problem.problem_id} resolved with solution "
        f"{solution_id}"
    )
    return locked, solution


# ---------------------------------------------------------------------------
# Likes
# ---------------------------------------------------------------------------

def _find_like(db: Session, solution_id: str, user_id: str) -> Optional[Like]:
    return db.execute(
        select(Like).where(
            Like.solution_id == solution_id,
            Like.user_id == user_id
        )
    ).scalar_one_or_none()


def toggle_like(
    db: Session,
    solution_id: str,
    actor: Actor
) -> tuple[int, bool]:
    """
    Like a solution, or remove the like if it already exists.

    Returns:
        tuple: (like count after the toggle, whether it is now liked)

    Raises:
        NotFoundError: If the solution doesn't exist
        ConflictError: If a concurrent toggle created the same like
    """
    solution = get_solution(db, solution_id)
    existing = _find_like(db, solution_id, actor.user_id)
    if existing is not None:
        likes = case((Solution.likes > 0, Solution.likes - 1), else_=0)
    else:
        likes = Solution.likes + 1

    try:
        with unit_of_work(db):
            ensure_user(db, actor)
            if existing is not None:
                db.delete(existing)
            else:
                db.add(Like(
                    like_id=generate_id("lik"),
                    user_id=actor.user_id,
                    solution_id=solution_id
                ))
            # Counter is computed in SQL, never from the loaded value
            db.execute(
                update(Solution)
                .where(Solution.solution_id == solution_id)
                .values(likes=likes)
                .execution_options(synchronize_session=False)
            )
    except IntegrityError as e:
        raise ConflictError("Like was changed concurrently") from e

    db.refresh(solution)
    return solution.likes, existing is None


def has_liked(db: Session, solution_id: str, user_id: str) -> bool:
    """Whether the user currently likes the solution."""
    return _find_like(db, solution_id, user_id) is not None


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------

def get_resource(db: Session, resource_id: str) -> Resource:
    """
    Retrieve resource by ID.

    Raises:
        NotFoundError: If the resource doesn't exist
    """
    resource = db.get(Resource, resource_id)
    if resource is None:
        raise NotFoundError(f"Resource {resource_id} not found")
    return resource


def create_resource(
    db: Session,
    actor: Actor,
    name: str,
    type: str,
    category: list[str],
    description: str,
    address: str,
    coordinates: Optional[Iterable[Any]],
    available_support: list[str],
    contact_email: Optional[str] = None,
    contact_phone: Optional[str] = None,
    contact_website: Optional[str] = None
) -> Resource:
    """
    Register a resource owned by the actor.

    Raises:
        ValidationError: If a required field is missing or malformed
    """
    name = _require_text(name, "name")
    description = _require_text(description, "description")
    address = _require_text(address, "address")
    if type not in RESOURCE_TYPES:
        raise ValidationError(
            f"type must be one of {', '.join(RESOURCE_TYPES)}"
        )
    if not category:
        raise ValidationError("category is required")
    if not available_support:
        raise ValidationError("available_support is required")
    point = _require_point(coordinates)

    with unit_of_work(db):
        ensure_user(db, actor)
        resource = Resource(
            resource_id=generate_id("res"),
            name=name,
            type=type,
            category=list(category),
            description=description,
            address=address,
            longitude=point.longitude,
            latitude=point.latitude,
            available_support=list(available_support),
            contact_email=contact_email,
            contact_phone=contact_phone,
            contact_website=contact_website,
            owner_id=actor.user_id,
            is_verified=False
        )
        db.add(resource)

    logger.info(f"Registered resource {resource.resource_id} ({type})")
    return resource


def list_resources(
    db: Session,
    category: Optional[str] = None,
    type: Optional[str] = None,
    near: Optional[GeoPoint] = None,
    radius_km: float = 10,
    page: int = 1,
    limit: int = 10
) -> Page:
    """
    List resources, newest first.

    The category filter matches resources listing that category; it
    relies on jsonb containment and needs PostgreSQL.
    """
    query = select(Resource)
    if category:
        query = query.where(
            type_coerce(Resource.category, JSONB).contains([category])
        )
    if type:
        query = query.where(Resource.type == type)
    if near is not None:
        if radius_km <= 0:
            raise ValidationError("radius must be strictly positive")
        query = query.where(
            within_radius(
                Resource.longitude,
                Resource.latitude,
                near,
                radius_km * 1000
            )
        )
    query = query.order_by(Resource.created_at.desc())
    return _paginate(db, query, page, limit)


def connect_resources(
    db: Session,
    problem_id: str,
    resource_ids: list[str],
    actor: Actor
) -> list[Resource]:
    """
    Attach resources to a problem.

    Unknown ids and resources already attached are skipped.

    Returns:
        list: Resources newly attached by this call
    """
    if not resource_ids:
        raise ValidationError("resource_ids must not be empty")
    problem = get_problem(db, problem_id)

    connected = list(problem.connected_resources or [])
    added: list[Resource] = []
    for resource_id in resource_ids:
        resource = db.get(Resource, resource_id)
        if resource is None or resource_id in connected:
            continue
        connected.append(resource_id)
        added.append(resource)

    with unit_of_work(db):
        problem.connected_resources = connected

    logger.info(
        f"User {actor.user_id} connected {len(added)} resources to "
        f"problem {problem_id}"
    )
    return added
