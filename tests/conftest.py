"""
Pytest configuration and shared fixtures for Civic Match tests.

Tests run against in-memory SQLite. Spatial lookups go through
FakeLocator, which answers with plain haversine math instead of
PostGIS.
"""

import sys
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

# Service code imports from the civic/ source root
sys.path.insert(0, str(Path(__file__).parent.parent / "civic"))

from common.config import Settings  # noqa: E402
from common.db import create_session_factory  # noqa: E402
from common.models import Base  # noqa: E402
from modules.ai_service import AIService  # noqa: E402
from modules.civic_service import Actor  # noqa: E402
from modules.geo import GeoPoint, haversine_meters  # noqa: E402

SEOUL_CITY_HALL = (126.9780, 37.5665)


class FakeLocator:
    """In-memory stand-in for PostgisLocator."""

    def __init__(self, resources=None, similar=0, fail=False):
        self.resources = list(resources or [])
        self.similar = similar
        self.fail = fail
        self.calls = []

    def find_nearby(self, point, radius_meters, match_categories, limit=10):
        self.calls.append(("find_nearby", point, radius_meters))
        keywords = set(match_categories)
        nearby = [
            r for r in self.resources
            if haversine_meters(point, GeoPoint(r.longitude, r.latitude))
            <= radius_meters
            and keywords & (set(r.category) | set(r.available_support))
        ]
        nearby.sort(
            key=lambda r: haversine_meters(
                point,
                GeoPoint(r.longitude, r.latitude)
            )
        )
        return nearby[:limit]

    def count_similar(self, point, category, radius_meters=100.0):
        self.calls.append(
            ("count_similar", point, category, radius_meters)
        )
        if self.fail:
            raise RuntimeError("spatial index unavailable")
        return self.similar


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        jwt_secret="test-secret",
        openrouter_api_key="test-key"
    )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = create_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def locator():
    return FakeLocator()


@pytest.fixture
def alice():
    return Actor(user_id="usr-alice", name="Alice", email="alice@example.com")


@pytest.fixture
def bob():
    return Actor(user_id="usr-bob", name="Bob", email="bob@example.com")


@pytest.fixture
def admin():
    return Actor(user_id="usr-admin", role="admin", name="Admin")


@pytest.fixture
def llm():
    """Chat model double; set llm.invoke.return_value.content per test."""
    llm = MagicMock()
    llm.invoke.return_value = SimpleNamespace(content="")
    return llm


@pytest.fixture
def ai_service(llm):
    return AIService(llm=llm, model_name="test-model")
