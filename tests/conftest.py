"""Pytest configuration and fixtures for record_components tests."""

from typing import Any, Dict, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from record_components.db.base import Base
from sample_models import Post, User


def create_test_engine():
    """Create an in-memory SQLite database engine with all tables."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return engine


class MemoryCacheAdapter:
    """Dict-backed cache adapter that records its traffic."""

    def __init__(self) -> None:
        self.store: Dict[str, Any] = {}
        self.reads = 0
        self.writes = 0

    def read(self, key: str) -> Any:
        self.reads += 1
        return self.store.get(key)

    def write(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        self.writes += 1
        self.store[key] = value
        return True

    def delete(self, key: str) -> bool:
        self.store.pop(key, None)
        return True

    def flush(self) -> None:
        self.store.clear()


@pytest.fixture
def db_engine():
    return create_test_engine()


@pytest.fixture
def db_session(db_engine):
    """Create a database session for testing."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def memory_cache():
    return MemoryCacheAdapter()


@pytest.fixture
def test_user(db_session):
    """Create a test user."""
    user = User(username="alice", email="alice@example.com", credits=100)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def posts(db_session, test_user):
    """Twenty-five posts owned by the test user."""
    created = [Post(name=f"Post {i}", user_id=test_user.id) for i in range(1, 26)]
    db_session.add_all(created)
    db_session.commit()
    return created
