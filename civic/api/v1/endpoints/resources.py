"""
Resource endpoints: registry, matching and connection to problems.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from api.dependencies import get_current_actor, get_db, get_locator
from api.errors import to_http_exception
from common.schemas import (
    APIResponse,
    ConnectResourcesRequest,
    MatchDetails,
    ResourceCreateRequest,
    ResourceData,
    ResourceMatchData,
)
from modules import civic_service, matching
from modules.civic_service import Actor
from modules.errors import CivicError
from modules.locator import Locator

from .problems import near_point, page_data

logger = logging.getLogger(__name__)

router = APIRouter()


def match_data(match: matching.Match) -> dict:
    return ResourceMatchData(
        resource=ResourceData.model_validate(match.resource),
        match_score=match.score.total,
        match_details=MatchDetails(
            distance_score=match.score.distance_score,
            category_score=match.score.category_score,
            support_score=match.score.support_score,
            distance_in_km=match.score.distance_km
        )
    ).model_dump()


@router.get(
    "/resources",
    response_model=APIResponse,
    tags=["Resources"]
)
async def list_resources(
    category: Optional[str] = None,
    type: Optional[str] = None,
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    radius_km: float = Query(default=10, gt=0),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """
    List registered resources, newest first.

    Returns:
        APIResponse: Resources and pagination metadata
    """
    try:
        result = civic_service.list_resources(
            db,
            category=category,
            type=type,
            near=near_point(lng, lat),
            radius_km=radius_km,
            page=page,
            limit=limit
        )
        items = [
            ResourceData.model_validate(r).model_dump() for r in result.items
        ]
        return APIResponse(success=True, data=page_data(result, items))
    except CivicError as e:
        raise to_http_exception(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to list resources: {e}")
        raise HTTPException(
            status_code=500,
            detail="Internal server error"
        )


@router.post(
    "/resources",
    response_model=APIResponse,
    status_code=201,
    tags=["Resources"]
)
async def create_resource(
    request: ResourceCreateRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """
    Register a resource owned by the caller.

    Returns:
        APIResponse: Created resource
    """
    try:
        resource = civic_service.create_resource(
            db,
            actor,
            name=request.name,
            type=request.type,
            category=request.category,
            description=request.description,
            address=request.address,
            coordinates=request.coordinates,
            available_support=request.available_support,
            contact_email=request.contact_email,
            contact_phone=request.contact_phone,
            contact_website=request.contact_website
        )
        return APIResponse(
            success=True,
            data=ResourceData.model_validate(resource).model_dump()
        )
    except CivicError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to create resource: {e}")
        raise HTTPException(
            status_code=500,
            detail="Internal server error"
        )


@router.get(
    "/resources/match",
    response_model=APIResponse,
    tags=["Resources"]
)
async def match_resources(
    problem_id: str = Query(..., min_length=1),
    _actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
    locator: Locator = Depends(get_locator)
):
    """
    Rank nearby resources for a problem, best match first.

    Returns:
        APIResponse: Matches, the radius searched and the match count
    """
    try:
        problem = civic_service.get_problem(db, problem_id)
        result = matching.match_resources(locator, problem)
        return APIResponse(
            success=True,
            data={
                "problem_id": problem_id,
                "matches": [match_data(m) for m in result.matches],
                "search_radius_km": result.search_radius_km,
                "total_matches": result.total_matches
            }
        )
    except CivicError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to match resources for {problem_id}: {e}")
        raise HTTPException(
            status_code=500,
            detail="Internal server error"
        )


@router.post(
    "/resources/connect",
    response_model=APIResponse,
    tags=["Resources"]
)
async def connect_resources(
    request: ConnectResourcesRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """
    Attach resources to a problem.

    Returns:
        APIResponse: Newly connected resources and the full id list
    """
    try:
        added = civic_service.connect_resources(
            db,
            request.problem_id,
            request.resource_ids,
            actor
        )
        problem = civic_service.get_problem(db, request.problem_id)
        return APIResponse(
            success=True,
            data={
                "problem_id": request.problem_id,
                "connected": [
                    ResourceData.model_validate(r).model_dump()
                    for r in added
                ],
                "connected_resources": list(problem.connected_resources)
            }
        )
    except CivicError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(
            f"Failed to connect resources to {request.problem_id}: {e}"
        )
        raise HTTPException(
            status_code=500,
            detail="Internal server error"
        )


@router.get(
    "/resources/{resource_id}",
    response_model=APIResponse,
    tags=["Resources"]
)
async def get_resource(
    resource_id: str,
    db: Session = Depends(get_db)
):
    """Get a single resource."""
    try:
        resource = civic_service.get_resource(db, resource_id)
        return APIResponse(
            success=True,
            data=ResourceData.model_validate(resource).model_dump()
        )
    except CivicError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to get resource {resource_id}: {e}")
        raise HTTPException(
            status_code=500,
            detail="Internal server error"
        )
