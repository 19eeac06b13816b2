"""Agent trigger and run-history API routes."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from garage_insights.core.domain_exceptions import (
    AgentAlreadyRunningError,
    DomainException,
    UnknownAgentError,
)
from garage_insights.core.error_codes import ErrorCode
from garage_insights.db.models import AgentRunStatus
from garage_insights.db.session import get_db
from garage_insights.scheduler.agent_scheduler import AgentScheduler
from garage_insights.schemas.insight import AgentRunOut, AgentTriggerResponse
from garage_insights.services.agent_run_service import list_runs

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/agents", tags=["Agents"])


def get_agent_scheduler(request: Request) -> AgentScheduler:
    agent_scheduler = getattr(request.app.state, "agent_scheduler", None)
    if agent_scheduler is None:
        raise HTTPException(status_code=503, detail="Agent scheduler is not available")
    return agent_scheduler


@router.post("/run/{agent_type}", response_model=AgentTriggerResponse)
def api_run_agent(
    agent_type: str,
    agent_scheduler: AgentScheduler = Depends(get_agent_scheduler),
):
    logger.info("Triggering agent: %s", agent_type)
    result = agent_scheduler.trigger(agent_type)

    if result.code == ErrorCode.AGENT_ALREADY_RUNNING:
        raise AgentAlreadyRunningError(result.error)
    if result.code == ErrorCode.UNKNOWN_AGENT:
        raise UnknownAgentError(result.error)
    if not result.success:
        raise DomainException(result.error or "Agent run failed", code=result.code)

    return AgentTriggerResponse(
        success=True,
        insights_created=result.insights_created,
        tokens_used=result.tokens_used,
    )


@router.get("/runs", response_model=list[AgentRunOut])
def api_list_runs(
    type: str | None = None,
    status: AgentRunStatus | None = None,
    limit: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
):
    runs = list_runs(
        db,
        agent_type=type,
        status=status.value if status else None,
        limit=limit,
    )
    return [AgentRunOut.model_validate(run) for run in runs]
