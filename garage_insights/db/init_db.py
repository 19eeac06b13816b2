"""Database initialization utilities."""

import logging

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from garage_insights.db import models  # noqa: F401 - ensure model metadata is registered
from garage_insights.db.session import Base, engine as default_engine

logger = logging.getLogger(__name__)


def _table_exists(engine: Engine, table_name: str) -> bool:
    inspector = inspect(engine)
    return table_name in inspector.get_table_names()


def _ensure_index(engine: Engine, table_name: str, index_name: str, columns: list[str]) -> None:
    if not _table_exists(engine, table_name):
        return

    columns_sql = ", ".join(columns)
    with engine.begin() as connection:
        connection.execute(
            text(
                f"CREATE INDEX IF NOT EXISTS {index_name} "
                f"ON {table_name} ({columns_sql})"
            )
        )


def init_db(engine: Engine | None = None) -> None:
    """Create the schema and the lookup indexes used by listing queries."""
    engine = engine or default_engine
    try:
        Base.metadata.create_all(bind=engine)

        _ensure_index(
            engine,
            table_name="service_logs",
            index_name="idx_service_logs_vehicle_date",
            columns=["vehicle_id", "service_date"],
        )
        _ensure_index(
            engine,
            table_name="agent_runs",
            index_name="idx_agent_runs_started_at",
            columns=["started_at"],
        )
    except SQLAlchemyError:
        logger.exception("Database initialization failed.")
        raise
