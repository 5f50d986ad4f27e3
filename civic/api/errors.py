"""
Translation of business logic failures into HTTP errors.
"""

from fastapi import HTTPException

from modules.errors import CivicError


def to_http_exception(error: CivicError) -> HTTPException:
    """
    Map a typed failure to the HTTPException the API returns.

    Args:
        error: Failure raised by the business logic

    Returns:
        HTTPException: Exception carrying the mapped status code
    """
    headers = None
    if error.status_code == 401:
        headers = {"WWW-Authenticate": "Bearer"}
    return HTTPException(
        status_code=error.status_code,
        detail=str(error) or "Request failed",
        headers=headers
    )
