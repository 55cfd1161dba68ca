"""
Database session management (SQLAlchemy)

Jobs fan out over JOB_MAX_WORKERS threads, each holding one session, while the
API keeps serving requests, so the pool is sized from that setting.
"""
import psycopg
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session

from app.config import Settings, get_settings

# Connections kept for the API on top of the job workers
API_POOL_RESERVE = 5


class Base(DeclarativeBase):
    """
    SQLAlchemy declarative base for all ORM models
    """
    pass


def build_engine(settings: Settings) -> Engine:
    """Engine for the tenant store described by settings.DATABASE_URL."""
    url = settings.get_sqlalchemy_url()
    if url.startswith("sqlite"):
        # sessions are opened and used on job worker threads
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=settings.JOB_MAX_WORKERS + API_POOL_RESERVE,
        max_overflow=settings.JOB_MAX_WORKERS,
    )


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


# Process-wide engine and session factory, created on first use
_engine = None
_SessionLocal = None


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = build_engine(get_settings())
    return _engine


def get_session_factory() -> sessionmaker:
    """Session factory shared by the API and the scheduled jobs."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = make_session_factory(get_engine())
    return _SessionLocal


def get_db() -> Session:
    """FastAPI dependency: one session per request, closed afterwards."""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def check_db_connection() -> None:
    """
    Readiness probe against PostgreSQL (raw psycopg, bypasses the pool)

    Raises:
        psycopg.OperationalError: if the database is unreachable
    """
    settings = get_settings()
    with psycopg.connect(settings.DATABASE_URL, connect_timeout=3) as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT 1;")
            cur.fetchone()
