"""Shared fixtures: an in-memory SQLite store and a cafe candidate factory."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cafe_directory.data.database import Base
from cafe_directory.data.store import DatabaseCafeStore
from cafe_directory.records import CafeCandidate
import cafe_directory.data.models  # noqa: F401


@pytest.fixture
def engine():
    """Create an in-memory SQLite engine for testing."""
    eng = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def store(session_factory):
    return DatabaseCafeStore(session_factory)


@pytest.fixture
def make_candidate():
    """Build a CafeCandidate with sensible Leigh-on-Sea defaults."""

    def _make(name: str = "Bean & Leaf", **overrides) -> CafeCandidate:
        data = {
            "slug": overrides.pop("slug", None) or name.lower().replace(" ", "-").replace("&", "and"),
            "name": name,
            "address": "12 Broadway, Leigh-on-Sea",
            "postcode": "SS9 1AA",
            "city": "Leigh-on-Sea",
            "latitude": 51.5411,
            "longitude": 0.6529,
        }
        data.update(overrides)
        return CafeCandidate(**data)

    return _make
