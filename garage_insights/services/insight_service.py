"""Business logic for Insight persistence and lifecycle."""

import json
import logging
from datetime import timedelta

from sqlalchemy import case, delete, func, or_, select
from sqlalchemy.orm import Session, selectinload

from garage_insights.db.models import Insight, InsightPriority, utcnow
from garage_insights.schemas.insight import InsightCreate

logger = logging.getLogger(__name__)

PRIORITY_RANK = case(
    (Insight.priority == InsightPriority.HIGH.value, 1),
    (Insight.priority == InsightPriority.MEDIUM.value, 2),
    else_=3,
)


def _not_expired(now):
    return or_(Insight.expires_at.is_(None), Insight.expires_at > now)


def create_insight(db: Session, data: InsightCreate) -> Insight:
    """Append a new insight. Insights are never updated except by lifecycle marks."""
    insight = Insight(
        type=data.type.value,
        priority=data.priority.value,
        title=data.title,
        body=data.body,
        customer_id=data.customer_id,
        vehicle_id=data.vehicle_id,
        action_type=data.action_type.value if data.action_type else None,
        action_url=data.action_url,
        insight_metadata=json.dumps(data.metadata) if data.metadata else None,
        expires_at=data.expires_at,
    )
    db.add(insight)
    db.commit()
    db.refresh(insight)

    logger.info(
        "Created %s insight %s (priority=%s vehicle_id=%s customer_id=%s)",
        insight.type,
        insight.id,
        insight.priority,
        insight.vehicle_id,
        insight.customer_id,
    )
    return insight


def list_insights(
    db: Session,
    *,
    insight_type: str | None = None,
    priority: str | None = None,
    unread_only: bool = False,
    include_expired: bool = False,
    with_relations: bool = False,
    limit: int = 50,
    offset: int = 0,
) -> list[Insight]:
    """Return active (non-dismissed) insights, high priority first, newest first."""
    stmt = select(Insight).where(Insight.dismissed_at.is_(None))

    if insight_type:
        stmt = stmt.where(Insight.type == insight_type)
    if priority:
        stmt = stmt.where(Insight.priority == priority)
    if unread_only:
        stmt = stmt.where(Insight.read_at.is_(None))
    if not include_expired:
        stmt = stmt.where(_not_expired(utcnow()))
    if with_relations:
        stmt = stmt.options(selectinload(Insight.customer), selectinload(Insight.vehicle))

    stmt = stmt.order_by(PRIORITY_RANK, Insight.created_at.desc()).limit(limit).offset(offset)
    return list(db.scalars(stmt).all())


def get_insight(db: Session, insight_id: str) -> Insight | None:
    return db.scalar(select(Insight).where(Insight.id == insight_id))


def mark_read(db: Session, insight_id: str) -> Insight | None:
    insight = get_insight(db, insight_id)
    if insight is None:
        return None

    if insight.read_at is None:
        insight.read_at = utcnow()
        db.commit()
        db.refresh(insight)
    return insight


def mark_actioned(db: Session, insight_id: str) -> Insight | None:
    """Mark an insight actioned. Also marks it read if it was unread."""
    insight = get_insight(db, insight_id)
    if insight is None:
        return None

    if insight.actioned_at is None:
        now = utcnow()
        insight.actioned_at = now
        if insight.read_at is None:
            insight.read_at = now
        db.commit()
        db.refresh(insight)
    return insight


def dismiss(db: Session, insight_id: str) -> Insight | None:
    insight = get_insight(db, insight_id)
    if insight is None:
        return None

    if insight.dismissed_at is None:
        insight.dismissed_at = utcnow()
        db.commit()
        db.refresh(insight)
    return insight


def count_unread(db: Session) -> int:
    return db.scalar(
        select(func.count(Insight.id))
        .where(Insight.read_at.is_(None))
        .where(Insight.dismissed_at.is_(None))
        .where(_not_expired(utcnow()))
    ) or 0


def count_by_priority(db: Session) -> dict[str, int]:
    rows = db.execute(
        select(Insight.priority, func.count(Insight.id))
        .where(Insight.dismissed_at.is_(None))
        .where(_not_expired(utcnow()))
        .group_by(Insight.priority)
    ).all()

    counts = {priority.value: 0 for priority in InsightPriority}
    for priority, count in rows:
        if priority in counts:
            counts[priority] = int(count)
    return counts


def find_recent_duplicate(
    db: Session,
    insight_type: str,
    vehicle_id: int | None,
    customer_id: int | None,
    within_days: int,
) -> Insight | None:
    """Return a live insight of the same type about the same vehicle (or customer)."""
    if within_days <= 0 or (vehicle_id is None and customer_id is None):
        return None

    cutoff = utcnow() - timedelta(days=within_days)
    stmt = (
        select(Insight)
        .where(Insight.type == insight_type)
        .where(Insight.dismissed_at.is_(None))
        .where(Insight.created_at >= cutoff)
    )
    if vehicle_id is not None:
        stmt = stmt.where(Insight.vehicle_id == vehicle_id)
    else:
        stmt = stmt.where(Insight.vehicle_id.is_(None)).where(Insight.customer_id == customer_id)

    return db.scalar(stmt.order_by(Insight.created_at.desc()).limit(1))


def delete_insights_older_than(db: Session, days: int) -> int:
    cutoff = utcnow() - timedelta(days=days)
    result = db.execute(delete(Insight).where(Insight.created_at < cutoff))
    db.commit()
    return int(result.rowcount or 0)
