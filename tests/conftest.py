"""
Pytest fixtures for testing
"""
import pytest
from sqlalchemy.orm import Session

from app.config import Settings
from app.infrastructure.db.session import Base, build_engine, make_session_factory
from factories import FakeGateway


@pytest.fixture
def db_engine(tmp_path):
    """File-backed SQLite engine: jobs open their own sessions, possibly on worker threads."""
    settings = Settings(DATABASE_URL=f"sqlite:///{tmp_path / 'test.db'}", _env_file=None)
    engine = build_engine(settings)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return make_session_factory(db_engine)


@pytest.fixture
def db_session(session_factory) -> Session:
    """Create database session for tests"""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def gateway():
    return FakeGateway()
