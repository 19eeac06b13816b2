"""FastAPI entrypoint for the Garage Insights backend.

- `garage_insights/routes/` for the insight dashboard and agent endpoints
- `garage_insights/ai/` for the tool registry, reasoning client and orchestrator
- `garage_insights/db/` for SQLAlchemy models and session management
- `garage_insights/scheduler/` for the APScheduler daily agent job
"""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI
from fastapi.exceptions import HTTPException

from garage_insights.ai.orchestrator import AgentOrchestrator
from garage_insights.ai.reasoning import OpenAIReasoningClient
from garage_insights.core.domain_exceptions import DomainException
from garage_insights.core.exceptions import domain_exception_handler, http_exception_handler
from garage_insights.core.middleware import RequestContextMiddleware
from garage_insights.core.settings import get_settings
from garage_insights.db.init_db import init_db
from garage_insights.db.session import SessionLocal
from garage_insights.routes import agents, insights
from garage_insights.scheduler.agent_scheduler import AgentScheduler

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


def build_agent_scheduler() -> AgentScheduler:
    settings = get_settings()
    orchestrator = AgentOrchestrator(
        client=OpenAIReasoningClient(api_key=settings.openai_api_key),
        session_factory=SessionLocal,
        insight_suppression_days=settings.insight_suppression_days,
    )
    return AgentScheduler(orchestrator, settings=settings)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Initialize app resources before serving traffic."""
    init_db()
    logger.info("Database tables initialized.")

    agent_scheduler = build_agent_scheduler()
    app.state.agent_scheduler = agent_scheduler

    # Manual triggers keep working when the daily job is disabled or fails to start.
    if get_settings().agent_scheduler_enabled:
        try:
            agent_scheduler.start()
        except Exception:
            logger.exception("Failed to start agent scheduler.")
    else:
        logger.info("Agent scheduler disabled; manual triggers only.")

    yield

    agent_scheduler.shutdown()


app = FastAPI(
    title="Garage Insights API",
    version="0.1.0",
    description="Autonomous service-due insight engine for the shop dashboard.",
    lifespan=lifespan,
)

app.add_middleware(RequestContextMiddleware)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(DomainException, domain_exception_handler)

app.include_router(insights.router)
app.include_router(agents.router)


@app.get("/", tags=["health"])
def root() -> dict[str, str]:
    """Simple status endpoint for uptime checks."""
    return {"status": "Garage Insights Running"}
