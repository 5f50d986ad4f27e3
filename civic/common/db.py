"""
Database session and engine factory functions.

CRITICAL: This module does NOT create engine at import time.
Services must call create_engine_from_url() explicitly with
their configuration.
"""

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)


def create_engine_from_url(
    database_url: str,
    pool_pre_ping: bool = True,
    pool_size: int = 5,
    max_overflow: int = 10,
    echo: bool = False
) -> Engine:
    """
    Create SQLAlchemy engine from database URL.

    Args:
        database_url: PostgreSQL connection URL
        pool_pre_ping: Enable connection health checks
        pool_size: Number of connections to maintain
        max_overflow: Maximum overflow connections
        echo: Enable SQL query logging

    Returns:
        Engine: Configured SQLAlchemy engine
    """
    return create_engine(
        database_url,
        pool_pre_ping=pool_pre_ping,
        pool_size=pool_size,
        max_overflow=max_overflow,
        echo=echo
    )


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """
    Create session factory from engine.

    Args:
        engine: SQLAlchemy engine instance

    Returns:
        sessionmaker: Session factory for creating database sessions
    """
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine
    )


@contextmanager
def unit_of_work(db: Session) -> Generator[Session, None, None]:
    """
    Commit everything done inside the block, or nothing.

    Args:
        db: Database session

    Yields:
        Session: The same session, for use inside the block

    Note:
        Any exception raised inside the block rolls the session back
        and is re-raised unchanged.
    """
    try:
        yield db
        db.commit()
    except Exception:
        logger.warning("Rolling back unit of work", exc_info=True)
        db.rollback()
        raise
