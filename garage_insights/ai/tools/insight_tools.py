"""
Insight tools exposed to the AI layer.
"""

import logging

from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from garage_insights.core.domain_exceptions import RecordNotFoundError
from garage_insights.db.models import InsightActionType, InsightPriority, InsightType
from garage_insights.schemas.insight import InsightCreate
from garage_insights.services.fleet_service import get_customer, get_vehicle
from garage_insights.services.insight_service import create_insight, find_recent_duplicate

logger = logging.getLogger(__name__)


class CreateInsightArguments(BaseModel):
    type: InsightType = Field(description="The type of insight")
    priority: InsightPriority = Field(
        description=(
            "Priority level - high for urgent/safety issues, medium for due soon, "
            "low for informational"
        ),
    )
    title: str = Field(
        min_length=1,
        max_length=255,
        description="Short headline for the insight (under 60 characters)",
    )
    body: str = Field(
        min_length=1,
        description="Detailed explanation with specific numbers, dates, and context",
    )
    customer_id: int | None = Field(
        default=None,
        description="Optional customer ID if this insight is about a specific customer",
    )
    vehicle_id: int | None = Field(
        default=None,
        description="Optional vehicle ID if this insight is about a specific vehicle",
    )
    action_type: InsightActionType | None = Field(
        default=None,
        description="Suggested action type",
    )


def build_action_url(vehicle_id: int | None, customer_id: int | None) -> str | None:
    if vehicle_id is not None:
        return f"/dashboard/vehicles/{vehicle_id}"
    if customer_id is not None:
        return f"/dashboard/customers/{customer_id}"
    return None


def tool_create_insight(
    db: Session,
    args: CreateInsightArguments,
    suppression_days: int = 0,
) -> dict:
    if args.vehicle_id is not None and get_vehicle(db=db, vehicle_id=args.vehicle_id) is None:
        raise RecordNotFoundError(f"Vehicle {args.vehicle_id} not found.")
    if args.customer_id is not None and get_customer(db=db, customer_id=args.customer_id) is None:
        raise RecordNotFoundError(f"Customer {args.customer_id} not found.")

    duplicate = find_recent_duplicate(
        db=db,
        insight_type=args.type.value,
        vehicle_id=args.vehicle_id,
        customer_id=args.customer_id,
        within_days=suppression_days,
    )
    if duplicate is not None:
        logger.info(
            "Suppressed duplicate %s insight for vehicle_id=%s customer_id=%s (existing %s)",
            args.type.value,
            args.vehicle_id,
            args.customer_id,
            duplicate.id,
        )
        return {
            "success": False,
            "duplicate_of": duplicate.id,
            "error": (
                f"A {args.type.value} insight for this subject was already created "
                f"in the last {suppression_days} days."
            ),
        }

    insight = create_insight(
        db=db,
        data=InsightCreate(
            type=args.type,
            priority=args.priority,
            title=args.title,
            body=args.body,
            customer_id=args.customer_id,
            vehicle_id=args.vehicle_id,
            action_type=args.action_type,
            action_url=build_action_url(args.vehicle_id, args.customer_id),
        ),
    )
    return {"success": True, "insight_id": insight.id}
