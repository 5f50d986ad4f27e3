"""
API v1 router aggregation.
"""

from fastapi import APIRouter

from .endpoints import health, problems, resources, solutions

api_router = APIRouter(prefix="/api/v1")

# Include all endpoint routers
api_router.include_router(health.router, prefix="", tags=["Health"])
api_router.include_router(problems.router, prefix="", tags=["Problems"])
api_router.include_router(solutions.router, prefix="", tags=["Solutions"])
api_router.include_router(resources.router, prefix="", tags=["Resources"])
