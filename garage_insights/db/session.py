"""Database engine/session setup for SQLAlchemy."""

from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from garage_insights.core.settings import get_settings

DATABASE_URL = get_settings().database_url

# check_same_thread is required for SQLite when the scheduler thread and FastAPI share the engine.
_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    DATABASE_URL,
    connect_args=_connect_args,
    pool_pre_ping=True,
)

# Session factory used by request-scoped dependencies and agent runs.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, class_=Session)

# Declarative base class for ORM models.
Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Provide a DB session per request and ensure it is closed."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
