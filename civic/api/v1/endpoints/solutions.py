"""
Solution endpoints: proposals, completion and likes.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from api.dependencies import get_current_actor, get_db, get_optional_actor
from api.errors import to_http_exception
from common.schemas import (
    APIResponse,
    LikeData,
    ProblemData,
    SolutionCreateRequest,
    SolutionData,
    SolutionUpdateRequest,
)
from modules import civic_service
from modules.civic_service import Actor
from modules.errors import CivicError

from .problems import page_data

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/solutions",
    response_model=APIResponse,
    tags=["Solutions"]
)
async def list_solutions(
    problem_id: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """
    List solutions, most voted first.

    Returns:
        APIResponse: Solutions and pagination metadata
    """
    try:
        result = civic_service.list_solutions(
            db,
            problem_id=problem_id,
            page=page,
            limit=limit
        )
        items = [
            SolutionData.model_validate(s).model_dump() for s in result.items
        ]
        return APIResponse(success=True, data=page_data(result, items))
    except CivicError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to list solutions: {e}")
        raise HTTPException(
            status_code=500,
            detail="Internal server error"
        )


@router.post(
    "/solutions",
    response_model=APIResponse,
    status_code=201,
    tags=["Solutions"]
)
async def submit_solution(
    request: SolutionCreateRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """
    Propose a solution for a problem.

    Returns:
        APIResponse: Created solution
    """
    try:
        solution = civic_service.submit_solution(
            db,
            actor,
            problem_id=request.problem_id,
            title=request.title,
            description=request.description,
            budget=request.budget,
            timeline=request.timeline,
            resources=request.resources,
            ai_generated=request.ai_generated
        )
        return APIResponse(
            success=True,
            data=SolutionData.model_validate(solution).model_dump()
        )
    except CivicError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to submit solution: {e}")
        raise HTTPException(
            status_code=500,
            detail="Internal server error"
        )


@router.get(
    "/solutions/{solution_id}",
    response_model=APIResponse,
    tags=["Solutions"]
)
async def get_solution(
    solution_id: str,
    db: Session = Depends(get_db)
):
    """Get a single solution."""
    try:
        solution = civic_service.get_solution(db, solution_id)
        return APIResponse(
            success=True,
            data=SolutionData.model_validate(solution).model_dump()
        )
    except CivicError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to get solution {solution_id}: {e}")
        raise HTTPException(
            status_code=500,
            detail="Internal server error"
        )


@router.put(
    "/solutions/{solution_id}",
    response_model=APIResponse,
    tags=["Solutions"]
)
async def update_solution(
    solution_id: str,
    request: SolutionUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """
    Edit a solution. Only the author or an admin may do so.

    Returns:
        APIResponse: Updated solution
    """
    try:
        solution = civic_service.update_solution(
            db,
            solution_id,
            actor,
            request.model_dump(exclude_none=True)
        )
        return APIResponse(
            success=True,
            data=SolutionData.model_validate(solution).model_dump()
        )
    except CivicError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to update solution {solution_id}: {e}")
        raise HTTPException(
            status_code=500,
            detail="Internal server error"
        )


@router.delete(
    "/solutions/{solution_id}",
    response_model=APIResponse,
    tags=["Solutions"]
)
async def delete_solution(
    solution_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """
    Delete a solution.

    Only the solution author or an admin may delete it, and never once
    it has been selected.
    """
    try:
        civic_service.delete_solution(db, solution_id, actor)
        return APIResponse(success=True, data={"solution_id": solution_id})
    except CivicError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to delete solution {solution_id}: {e}")
        raise HTTPException(
            status_code=500,
            detail="Internal server error"
        )


@router.post(
    "/solutions/{solution_id}/complete",
    response_model=APIResponse,
    tags=["Solutions"]
)
async def complete_problem(
    solution_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """
    Select this solution as the winner and resolve its problem.

    Returns:
        APIResponse: The resolved problem and the winning solution
    """
    try:
        problem, solution = civic_service.complete_problem(
            db,
            solution_id,
            actor
        )
        return APIResponse(
            success=True,
            data={
                "problem": ProblemData.model_validate(problem).model_dump(),
                "solution": SolutionData.model_validate(
                    solution
                ).model_dump()
            }
        )
    except CivicError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to complete with solution {solution_id}: {e}")
        raise HTTPException(
            status_code=500,
            detail="Internal server error"
        )


@router.post(
    "/solutions/{solution_id}/likes",
    response_model=APIResponse,
    tags=["Likes"]
)
async def toggle_like(
    solution_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """
    Like a solution, or take the like back.

    Returns:
        APIResponse: Like count and whether the caller now likes it
    """
    try:
        likes, liked = civic_service.toggle_like(db, solution_id, actor)
        return APIResponse(
            success=True,
            data=LikeData(likes=likes, liked=liked).model_dump()
        )
    except CivicError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to toggle like on {solution_id}: {e}")
        raise HTTPException(
            status_code=500,
            detail="Internal server error"
        )


@router.get(
    "/solutions/{solution_id}/likes",
    response_model=APIResponse,
    tags=["Likes"]
)
async def get_like_status(
    solution_id: str,
    actor: Optional[Actor] = Depends(get_optional_actor),
    db: Session = Depends(get_db)
):
    """
    Whether the caller likes a solution. Anonymous callers get false.
    """
    try:
        solution = civic_service.get_solution(db, solution_id)
        liked = actor is not None and civic_service.has_liked(
            db,
            solution_id,
            actor.user_id
        )
        return APIResponse(
            success=True,
            data=LikeData(likes=solution.likes, liked=liked).model_dump()
        )
    except CivicError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to read like status for {solution_id}: {e}")
        raise HTTPException(
            status_code=500,
            detail="Internal server error"
        )
