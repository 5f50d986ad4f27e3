"""
FastAPI dependency injection functions.
"""

from typing import Generator, Optional

from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session, sessionmaker

from common.config import Settings
from modules.ai_service import AIService
from modules.civic_service import Actor
from modules.errors import AuthenticationError
from modules.locator import Locator, PostgisLocator

from .errors import to_http_exception
from .security import decode_access_token

security = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    """
    Get application settings from request state.

    Args:
        request: FastAPI request object

    Returns:
        Settings: Application settings instance
    """
    return request.app.state.settings


def get_session_factory(request: Request) -> sessionmaker[Session]:
    """
    Get database session factory from request state.

    Args:
        request: FastAPI request object

    Returns:
        sessionmaker: Session factory
    """
    return request.app.state.session_factory


def get_db(
    session_factory: sessionmaker[Session] = Depends(
        get_session_factory
    )
) -> Generator[Session, None, None]:
    """
    Provide database session for request handlers.

    Args:
        session_factory: SQLAlchemy session factory

    Yields:
        Session: Database session
    """
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def get_locator(db: Session = Depends(get_db)) -> Locator:
    """
    Provide the spatial locator bound to the request's session.

    Args:
        db: Database session

    Returns:
        Locator: PostGIS-backed locator
    """
    return PostgisLocator(db)


def get_ai_service(request: Request) -> AIService:
    """
    Get the AI service from request state.

    Args:
        request: FastAPI request object

    Returns:
        AIService: Shared AI service instance
    """
    return request.app.state.ai_service


def get_optional_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    settings: Settings = Depends(get_settings)
) -> Optional[Actor]:
    """
    Resolve the session identity if a bearer token was sent.

    Returns:
        Actor or None for anonymous requests

    Raises:
        HTTPException: If a token was sent but is invalid
    """
    if credentials is None:
        return None
    try:
        return decode_access_token(settings, credentials.credentials)
    except AuthenticationError as e:
        raise to_http_exception(e)


def get_current_actor(
    actor: Optional[Actor] = Depends(get_optional_actor)
) -> Actor:
    """
    Require an authenticated session.

    Returns:
        Actor: Verified identity

    Raises:
        HTTPException: 401 if no valid session was presented
    """
    if actor is None:
        raise HTTPException(
            status_code=401,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"}
        )
    return actor
