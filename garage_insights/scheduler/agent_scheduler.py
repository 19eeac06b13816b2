"""Daily agent scheduler with a process-wide single-run guard.

Uses APScheduler BackgroundScheduler to run the service-due agent once a day
(06:00 by default). Manual triggers from the API share the same guard, so at
most one agent run is in flight at any time; a trigger that finds the guard
held is rejected immediately rather than queued.
"""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from apscheduler.schedulers.background import BackgroundScheduler

from garage_insights.ai.agents.service_due import AGENT_CONFIGS
from garage_insights.ai.orchestrator import AgentOrchestrator
from garage_insights.core.domain_exceptions import AgentAlreadyRunningError
from garage_insights.core.error_codes import ErrorCode
from garage_insights.core.settings import Settings, get_settings

logger = logging.getLogger(__name__)

DAILY_JOB_ID = "daily_service_due_agent"
DAILY_AGENT_TYPE = "service_due"


class RunGuard:
    """Non-blocking mutual exclusion over agent runs."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    @property
    def is_held(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def try_acquire(self) -> Iterator[bool]:
        acquired = self._lock.acquire(blocking=False)
        try:
            yield acquired
        finally:
            if acquired:
                self._lock.release()


@dataclass(frozen=True)
class TriggerResult:
    success: bool
    insights_created: int | None = None
    tokens_used: int | None = None
    error: str | None = None
    code: str | None = None
    run_id: str | None = None


class AgentScheduler:
    def __init__(
        self,
        orchestrator: AgentOrchestrator,
        settings: Settings | None = None,
        guard: RunGuard | None = None,
    ):
        self.orchestrator = orchestrator
        self.settings = settings or get_settings()
        self.guard = guard or RunGuard()
        self._scheduler: BackgroundScheduler | None = None

    def trigger(self, agent_type: str) -> TriggerResult:
        with self.guard.try_acquire() as acquired:
            if not acquired:
                logger.info("Agent already running, rejecting '%s' trigger", agent_type)
                return TriggerResult(
                    success=False,
                    error=AgentAlreadyRunningError().message,
                    code=ErrorCode.AGENT_ALREADY_RUNNING,
                )

            build_config = AGENT_CONFIGS.get(agent_type)
            if build_config is None:
                return TriggerResult(
                    success=False,
                    error=f"Unknown agent type: {agent_type}",
                    code=ErrorCode.UNKNOWN_AGENT,
                )

            logger.info("Running agent '%s'", agent_type)
            result = self.orchestrator.run(build_config(self.settings))

        if result.error is not None:
            return TriggerResult(
                success=False,
                insights_created=result.insights_created,
                tokens_used=result.tokens_used,
                error=result.error,
                code=ErrorCode.AGENT_RUN_FAILED,
                run_id=result.run_id,
            )
        return TriggerResult(
            success=True,
            insights_created=result.insights_created,
            tokens_used=result.tokens_used,
            run_id=result.run_id,
        )

    def _run_scheduled(self) -> None:
        logger.info("Running daily service-due analysis...")
        try:
            result = self.trigger(DAILY_AGENT_TYPE)
            if result.code == ErrorCode.AGENT_ALREADY_RUNNING:
                logger.warning("Skipped scheduled run: %s", result.error)
            elif not result.success:
                logger.error("Scheduled run failed: %s", result.error)
            else:
                logger.info(
                    "Scheduled run complete: %d insights, %d tokens",
                    result.insights_created,
                    result.tokens_used,
                )
        except Exception:
            logger.exception("Unexpected error in scheduled agent job.")

    def start(self) -> BackgroundScheduler:
        """Create, configure, and start the background scheduler."""
        scheduler = BackgroundScheduler(daemon=True)
        scheduler.add_job(
            self._run_scheduled,
            trigger="cron",
            hour=self.settings.agent_schedule_hour,
            minute=self.settings.agent_schedule_minute,
            id=DAILY_JOB_ID,
            name="Daily service-due analysis",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info(
            "Agent scheduler started. ServiceDueAgent daily at %02d:%02d.",
            self.settings.agent_schedule_hour,
            self.settings.agent_schedule_minute,
        )
        return scheduler

    def shutdown(self) -> None:
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.info("Agent scheduler shut down.")
