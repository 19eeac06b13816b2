import json
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from garage_insights.db.models import InsightActionType, InsightPriority, InsightType


class InsightCreate(BaseModel):
    type: InsightType
    priority: InsightPriority
    title: str = Field(min_length=1, max_length=255)
    body: str = Field(min_length=1)
    customer_id: int | None = None
    vehicle_id: int | None = None
    action_type: InsightActionType | None = None
    action_url: str | None = None
    metadata: dict[str, Any] | None = None
    expires_at: datetime | None = None


class CustomerSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str | None = None
    phone: str | None = None


class VehicleSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    make: str
    model: str
    year: int | None = None
    mileage: int | None = None


class InsightOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    type: str
    priority: str
    title: str
    body: str
    customer_id: int | None = None
    vehicle_id: int | None = None
    action_type: str | None = None
    action_url: str | None = None
    metadata: dict[str, Any] | None = None
    read_at: datetime | None = None
    actioned_at: datetime | None = None
    dismissed_at: datetime | None = None
    created_at: datetime
    expires_at: datetime | None = None
    customer: CustomerSummary | None = None
    vehicle: VehicleSummary | None = None


class PriorityCounts(BaseModel):
    high: int = 0
    medium: int = 0
    low: int = 0


class InsightListMeta(BaseModel):
    unread_count: int
    priority_counts: PriorityCounts
    total: int


class InsightListResponse(BaseModel):
    insights: list[InsightOut]
    meta: InsightListMeta


class AgentRunOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    agent_type: str
    started_at: datetime
    completed_at: datetime | None = None
    status: str
    insights_created: int
    tokens_used: int | None = None
    cost_cents: int | None = None
    error_message: str | None = None


class AgentRunStats(BaseModel):
    total_runs: int = 0
    successful_runs: int = 0
    failed_runs: int = 0
    total_insights: int = 0
    total_tokens: int = 0
    total_cost_cents: int = 0


class InsightStatsResponse(BaseModel):
    unread_count: int
    priority_counts: PriorityCounts
    agent_stats: AgentRunStats


class AgentTriggerResponse(BaseModel):
    success: bool
    insights_created: int | None = None
    tokens_used: int | None = None


def to_insight_out(insight: Any, with_relations: bool = False) -> InsightOut:
    """Build the API shape of an Insight row, decoding its JSON metadata."""
    metadata = json.loads(insight.insight_metadata) if insight.insight_metadata else None
    return InsightOut(
        id=insight.id,
        type=insight.type,
        priority=insight.priority,
        title=insight.title,
        body=insight.body,
        customer_id=insight.customer_id,
        vehicle_id=insight.vehicle_id,
        action_type=insight.action_type,
        action_url=insight.action_url,
        metadata=metadata,
        read_at=insight.read_at,
        actioned_at=insight.actioned_at,
        dismissed_at=insight.dismissed_at,
        created_at=insight.created_at,
        expires_at=insight.expires_at,
        customer=(
            CustomerSummary.model_validate(insight.customer)
            if with_relations and insight.customer is not None
            else None
        ),
        vehicle=(
            VehicleSummary.model_validate(insight.vehicle)
            if with_relations and insight.vehicle is not None
            else None
        ),
    )
