"""
Health check endpoint.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from api.dependencies import get_db
from common.schemas import APIResponse, HealthData

router = APIRouter()


@router.get(
    "/health",
    response_model=APIResponse,
    tags=["Health"]
)
async def health_check(db: Session = Depends(get_db)):
    """
    Health check endpoint.

    Returns:
        APIResponse: Health status of the service
    """
    try:
        # Check database connection
        db.execute(text("SELECT 1"))
        status = "healthy"
    except Exception:
        status = "unhealthy"

    return APIResponse(
        success=True,
        data=HealthData(status=status).model_dump()
    )
