"""Persistence helpers for AgentRun records."""

import json
import logging
from datetime import timedelta
from typing import Any

from sqlalchemy import case, delete, func, select
from sqlalchemy.orm import Session

from garage_insights.db.models import AgentRun, AgentRunStatus, utcnow

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset(
    {
        "status",
        "completed_at",
        "insights_created",
        "tokens_used",
        "cost_cents",
        "error_message",
        "metadata",
    }
)


def create_run(db: Session, agent_type: str) -> AgentRun:
    run = AgentRun(
        agent_type=agent_type,
        status=AgentRunStatus.RUNNING.value,
        insights_created=0,
    )
    db.add(run)
    db.commit()
    db.refresh(run)
    logger.info("Started agent run %s (%s)", run.id, agent_type)
    return run


def get_run(db: Session, run_id: str) -> AgentRun | None:
    return db.scalar(select(AgentRun).where(AgentRun.id == run_id))


def update_run(db: Session, run_id: str, **fields: Any) -> AgentRun | None:
    """Apply a partial patch. Unknown field names are rejected."""
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Unsupported agent run fields: {sorted(unknown)}")

    run = get_run(db, run_id)
    if run is None or not fields:
        return run

    for name, value in fields.items():
        if name == "metadata":
            run.run_metadata = json.dumps(value) if value is not None else None
        elif isinstance(value, AgentRunStatus):
            setattr(run, name, value.value)
        else:
            setattr(run, name, value)

    db.commit()
    db.refresh(run)
    return run


def complete_run(
    db: Session,
    run_id: str,
    insights_created: int,
    tokens_used: int | None = None,
    cost_cents: int | None = None,
    metadata: dict[str, Any] | None = None,
) -> AgentRun | None:
    fields: dict[str, Any] = {
        "status": AgentRunStatus.COMPLETED,
        "completed_at": utcnow(),
        "insights_created": insights_created,
        "tokens_used": tokens_used,
        "cost_cents": cost_cents,
    }
    if metadata is not None:
        fields["metadata"] = metadata
    return update_run(db, run_id, **fields)


def fail_run(
    db: Session,
    run_id: str,
    error_message: str,
    insights_created: int | None = None,
    tokens_used: int | None = None,
) -> AgentRun | None:
    fields: dict[str, Any] = {
        "status": AgentRunStatus.FAILED,
        "completed_at": utcnow(),
        "error_message": error_message,
    }
    if insights_created is not None:
        fields["insights_created"] = insights_created
    if tokens_used is not None:
        fields["tokens_used"] = tokens_used
    return update_run(db, run_id, **fields)


def list_runs(
    db: Session,
    *,
    agent_type: str | None = None,
    status: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[AgentRun]:
    stmt = select(AgentRun)
    if agent_type:
        stmt = stmt.where(AgentRun.agent_type == agent_type)
    if status:
        stmt = stmt.where(AgentRun.status == status)
    stmt = stmt.order_by(AgentRun.started_at.desc()).limit(limit).offset(offset)
    return list(db.scalars(stmt).all())


def find_latest_run(db: Session, agent_type: str) -> AgentRun | None:
    return db.scalar(
        select(AgentRun)
        .where(AgentRun.agent_type == agent_type)
        .order_by(AgentRun.started_at.desc())
        .limit(1)
    )


def find_running_runs(db: Session) -> list[AgentRun]:
    return list(
        db.scalars(
            select(AgentRun)
            .where(AgentRun.status == AgentRunStatus.RUNNING.value)
            .order_by(AgentRun.started_at.desc())
        ).all()
    )


def get_run_stats(db: Session, days: int = 7) -> dict[str, int]:
    """Aggregate run outcomes and accounting over a trailing window."""
    cutoff = utcnow() - timedelta(days=days)
    row = db.execute(
        select(
            func.count(AgentRun.id),
            func.sum(case((AgentRun.status == AgentRunStatus.COMPLETED.value, 1), else_=0)),
            func.sum(case((AgentRun.status == AgentRunStatus.FAILED.value, 1), else_=0)),
            func.sum(func.coalesce(AgentRun.insights_created, 0)),
            func.sum(func.coalesce(AgentRun.tokens_used, 0)),
            func.sum(func.coalesce(AgentRun.cost_cents, 0)),
        ).where(AgentRun.started_at >= cutoff)
    ).one()

    total_runs, successful, failed, insights, tokens, cost = row
    return {
        "total_runs": int(total_runs or 0),
        "successful_runs": int(successful or 0),
        "failed_runs": int(failed or 0),
        "total_insights": int(insights or 0),
        "total_tokens": int(tokens or 0),
        "total_cost_cents": int(cost or 0),
    }


def delete_runs_older_than(db: Session, days: int) -> int:
    cutoff = utcnow() - timedelta(days=days)
    result = db.execute(delete(AgentRun).where(AgentRun.started_at < cutoff))
    db.commit()
    return int(result.rowcount or 0)
