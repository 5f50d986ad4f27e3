"""
Problem endpoints: reporting, browsing, editing and AI assistance.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from api.dependencies import (
    get_ai_service,
    get_current_actor,
    get_db,
    get_locator,
)
from api.errors import to_http_exception
from common.schemas import (
    APIResponse,
    Pagination,
    ProblemCreateRequest,
    ProblemData,
    ProblemUpdateRequest,
    SolutionData,
)
from modules import civic_service
from modules.ai_service import AIService
from modules.civic_service import Actor
from modules.errors import CivicError
from modules.geo import GeoPoint, validate_point
from modules.locator import Locator

logger = logging.getLogger(__name__)

router = APIRouter()


def near_point(
    lng: Optional[float],
    lat: Optional[float]
) -> Optional[GeoPoint]:
    """
    Build the optional near-filter origin from query parameters.

    Raises:
        HTTPException: 400 if only one coordinate is given or it is
            out of range
    """
    if lng is None and lat is None:
        return None
    if lng is None or lat is None:
        raise HTTPException(
            status_code=400,
            detail="lat and lng must be given together"
        )
    try:
        return validate_point(lng, lat)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def page_data(page: civic_service.Page, items: list[dict]) -> dict:
    return {
        "items": items,
        "pagination": Pagination(
            total=page.total,
            page=page.page,
            limit=page.limit,
            pages=page.pages
        ).model_dump()
    }


@router.get(
    "/problems",
    response_model=APIResponse,
    tags=["Problems"]
)
async def list_problems(
    category: Optional[str] = None,
    status: Optional[str] = None,
    address: Optional[str] = None,
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    radius_km: float = Query(default=10, gt=0),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """
    List problems, newest first.

    Returns:
        APIResponse: Problems and pagination metadata
    """
    try:
        result = civic_service.list_problems(
            db,
            category=category,
            status=status,
            address=address,
            near=near_point(lng, lat),
            radius_km=radius_km,
            page=page,
            limit=limit
        )
        items = [
            ProblemData.model_validate(p).model_dump() for p in result.items
        ]
        return APIResponse(success=True, data=page_data(result, items))
    except CivicError as e:
        raise to_http_exception(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to list problems: {e}")
        raise HTTPException(
            status_code=500,
            detail="Internal server error"
        )


@router.post(
    "/problems",
    response_model=APIResponse,
    status_code=201,
    tags=["Problems"]
)
async def create_problem(
    request: ProblemCreateRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
    locator: Locator = Depends(get_locator)
):
    """
    Report a new problem; its priority is derived from similar reports.

    Returns:
        APIResponse: Created problem
    """
    try:
        problem = civic_service.create_problem(
            db,
            locator,
            actor,
            title=request.title,
            description=request.description,
            category=request.category,
            coordinates=request.location.coordinates,
            address=request.location.address,
            images=request.images,
            tags=request.tags
        )
        return APIResponse(
            success=True,
            data=ProblemData.model_validate(problem).model_dump()
        )
    except CivicError as e:
        raise to_http_exception(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to create problem: {e}")
        raise HTTPException(
            status_code=500,
            detail="Internal server error"
        )


@router.get(
    "/problems/{problem_id}",
    response_model=APIResponse,
    tags=["Problems"]
)
async def get_problem(
    problem_id: str,
    db: Session = Depends(get_db)
):
    """
    Get a problem together with its solutions.

    Returns:
        APIResponse: Problem data with a solutions list
    """
    try:
        problem, solutions = civic_service.get_problem_detail(db, problem_id)
        data = ProblemData.model_validate(problem).model_dump()
        data["solutions"] = [
            SolutionData.model_validate(s).model_dump() for s in solutions
        ]
        return APIResponse(success=True, data=data)
    except CivicError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to get problem {problem_id}: {e}")
        raise HTTPException(
            status_code=500,
            detail="Internal server error"
        )


@router.put(
    "/problems/{problem_id}",
    response_model=APIResponse,
    tags=["Problems"]
)
async def update_problem(
    problem_id: str,
    request: ProblemUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """
    Edit a problem. Only the author or an admin may do so.

    Returns:
        APIResponse: Updated problem
    """
    updates = request.model_dump(exclude_none=True, exclude={"location"})
    if request.location is not None:
        updates["coordinates"] = request.location.coordinates
        updates["address"] = request.location.address

    try:
        problem = civic_service.update_problem(db, problem_id, actor, updates)
        return APIResponse(
            success=True,
            data=ProblemData.model_validate(problem).model_dump()
        )
    except CivicError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to update problem {problem_id}: {e}")
        raise HTTPException(
            status_code=500,
            detail="Internal server error"
        )


@router.delete(
    "/problems/{problem_id}",
    response_model=APIResponse,
    tags=["Problems"]
)
async def delete_problem(
    problem_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """
    Delete a problem and all of its solutions.

    Returns:
        APIResponse: Identifier of the deleted problem
    """
    try:
        civic_service.delete_problem(db, problem_id, actor)
        return APIResponse(success=True, data={"problem_id": problem_id})
    except CivicError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to delete problem {problem_id}: {e}")
        raise HTTPException(
            status_code=500,
            detail="Internal server error"
        )


@router.post(
    "/problems/{problem_id}/participants",
    response_model=APIResponse,
    tags=["Problems"]
)
async def join_problem(
    problem_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """
    Join a problem as a participant.

    Returns:
        APIResponse: Updated participant list
    """
    try:
        problem = civic_service.join_problem(db, problem_id, actor)
        return APIResponse(
            success=True,
            data={
                "problem_id": problem.problem_id,
                "participants": list(problem.participants)
            }
        )
    except CivicError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to join problem {problem_id}: {e}")
        raise HTTPException(
            status_code=500,
            detail="Internal server error"
        )


@router.post(
    "/problems/{problem_id}/analysis",
    response_model=APIResponse,
    tags=["AI"]
)
async def analyze_problem(
    problem_id: str,
    _actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
    ai_service: AIService = Depends(get_ai_service)
):
    """
    Run an AI analysis of a problem and store it as last_analysis.

    Returns:
        APIResponse: Analysis text
    """
    try:
        problem = civic_service.get_problem(db, problem_id)
        analysis = await run_in_threadpool(
            ai_service.analyze_problem,
            problem
        )
        civic_service.save_analysis(db, problem, analysis)
        return APIResponse(
            success=True,
            data={"problem_id": problem_id, "analysis": analysis}
        )
    except CivicError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to analyze problem {problem_id}: {e}")
        raise HTTPException(
            status_code=500,
            detail="Internal server error"
        )


@router.post(
    "/problems/{problem_id}/ai-solution",
    response_model=APIResponse,
    tags=["AI"]
)
async def draft_ai_solution(
    problem_id: str,
    _actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
    ai_service: AIService = Depends(get_ai_service)
):
    """
    Draft a solution with the AI provider. The draft is not saved;
    clients submit it through POST /solutions with ai_generated=true.

    Returns:
        APIResponse: Draft title, description, budget, timeline and
            resources
    """
    try:
        problem = civic_service.get_problem(db, problem_id)
        draft = await run_in_threadpool(
            ai_service.generate_solution,
            problem
        )
        data = draft.model_dump()
        data["problem_id"] = problem_id
        return APIResponse(success=True, data=data)
    except CivicError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to draft solution for {problem_id}: {e}")
        raise HTTPException(
            status_code=500,
            detail="Internal server error"
        )
