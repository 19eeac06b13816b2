"""Insight dashboard API routes."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from garage_insights.db.models import InsightPriority, InsightType
from garage_insights.db.session import get_db
from garage_insights.schemas.insight import (
    AgentRunStats,
    InsightListMeta,
    InsightListResponse,
    InsightOut,
    InsightStatsResponse,
    PriorityCounts,
    to_insight_out,
)
from garage_insights.services.agent_run_service import get_run_stats
from garage_insights.services.insight_service import (
    count_by_priority,
    count_unread,
    dismiss,
    get_insight,
    list_insights,
    mark_actioned,
    mark_read,
)

router = APIRouter(prefix="/insights", tags=["Insights"])

STATS_WINDOW_DAYS = 7


def _not_found(insight_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Insight {insight_id} not found")


@router.get("", response_model=InsightListResponse)
def api_list_insights(
    type: InsightType | None = None,
    priority: InsightPriority | None = None,
    unread: bool = False,
    include_expired: bool = False,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    insights = list_insights(
        db,
        insight_type=type.value if type else None,
        priority=priority.value if priority else None,
        unread_only=unread,
        include_expired=include_expired,
        with_relations=True,
        limit=limit,
        offset=offset,
    )
    return InsightListResponse(
        insights=[to_insight_out(insight, with_relations=True) for insight in insights],
        meta=InsightListMeta(
            unread_count=count_unread(db),
            priority_counts=PriorityCounts(**count_by_priority(db)),
            total=len(insights),
        ),
    )


@router.get("/stats", response_model=InsightStatsResponse)
def api_insight_stats(db: Session = Depends(get_db)):
    return InsightStatsResponse(
        unread_count=count_unread(db),
        priority_counts=PriorityCounts(**count_by_priority(db)),
        agent_stats=AgentRunStats(**get_run_stats(db, days=STATS_WINDOW_DAYS)),
    )


@router.get("/{insight_id}", response_model=InsightOut)
def api_get_insight(insight_id: str, db: Session = Depends(get_db)):
    insight = get_insight(db, insight_id)
    if insight is None:
        raise _not_found(insight_id)
    return to_insight_out(insight, with_relations=True)


@router.put("/{insight_id}/read", response_model=InsightOut)
def api_mark_read(insight_id: str, db: Session = Depends(get_db)):
    insight = mark_read(db, insight_id)
    if insight is None:
        raise _not_found(insight_id)
    return to_insight_out(insight, with_relations=True)


@router.put("/{insight_id}/action", response_model=InsightOut)
def api_mark_actioned(insight_id: str, db: Session = Depends(get_db)):
    insight = mark_actioned(db, insight_id)
    if insight is None:
        raise _not_found(insight_id)
    return to_insight_out(insight, with_relations=True)


@router.put("/{insight_id}/dismiss", response_model=InsightOut)
def api_dismiss(insight_id: str, db: Session = Depends(get_db)):
    insight = dismiss(db, insight_id)
    if insight is None:
        raise _not_found(insight_id)
    return to_insight_out(insight, with_relations=True)
