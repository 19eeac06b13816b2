"""
Agent Orchestrator - tool-use reasoning loop.

One run is one conversation: the model is called with the full conversation and
the tool schemas, every tool call it requests is executed in order, the results
go back as one batch, and the loop ends when the model answers without tools.
Each run is recorded as an AgentRun that only this module transitions.
"""

import json
import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from garage_insights.ai.reasoning import ReasoningClient
from garage_insights.ai.tools.registry import ToolName, ToolRegistry
from garage_insights.core.domain_exceptions import IterationBudgetExceeded
from garage_insights.db.session import SessionLocal
from garage_insights.services.agent_run_service import complete_run, create_run, fail_run

logger = logging.getLogger(__name__)

# Rough blended price, cents per token.
COST_CENTS_PER_TOKEN = 0.003
DEFAULT_MAX_ITERATIONS = 25


@dataclass(frozen=True)
class AgentConfig:
    name: str
    system_prompt: str
    user_prompt: str
    model: str
    max_tokens: int = 4096
    max_iterations: int = DEFAULT_MAX_ITERATIONS


@dataclass(frozen=True)
class AgentResult:
    insights_created: int
    tokens_used: int
    error: str | None = None
    run_id: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


def estimate_cost_cents(tokens_used: int) -> int:
    return math.ceil(tokens_used * COST_CENTS_PER_TOKEN)


def _is_successful_result(result: str) -> bool:
    try:
        payload = json.loads(result)
    except (TypeError, ValueError):
        return False
    return isinstance(payload, dict) and payload.get("success") is True


class AgentOrchestrator:
    def __init__(
        self,
        client: ReasoningClient,
        session_factory: Callable[[], Session] = SessionLocal,
        insight_suppression_days: int = 0,
    ):
        self.client = client
        self.session_factory = session_factory
        self.insight_suppression_days = insight_suppression_days

    def run(self, config: AgentConfig) -> AgentResult:
        """Execute one agent run to completion or failure. Never raises."""
        db = self.session_factory()
        try:
            return self._run(db, config)
        finally:
            db.close()

    def _run(self, db: Session, config: AgentConfig) -> AgentResult:
        run_id: str | None = None
        insights_created = 0
        total_tokens = 0
        iterations = 0

        try:
            run_id = create_run(db, agent_type=config.name).id
            registry = ToolRegistry(db, insight_suppression_days=self.insight_suppression_days)
            tools = registry.get_openai_tools()
            messages: list[dict[str, Any]] = [{"role": "user", "content": config.user_prompt}]

            while True:
                if iterations >= config.max_iterations:
                    raise IterationBudgetExceeded(
                        f"Iteration budget of {config.max_iterations} model turns exhausted"
                    )
                iterations += 1

                turn = self.client.complete(
                    system_prompt=config.system_prompt,
                    messages=messages,
                    tools=tools,
                    model=config.model,
                    max_tokens=config.max_tokens,
                )
                total_tokens += turn.total_tokens

                if not turn.wants_tools:
                    logger.info("[%s] Final response: %s", config.name, turn.text[:200])
                    break

                messages.append(turn.assistant_message)

                results: list[tuple[str, str]] = []
                for call in turn.tool_calls:
                    logger.info("[%s] Calling tool: %s", config.name, call.name)
                    result = registry.execute(call.name, call.arguments)
                    if call.name == ToolName.CREATE_INSIGHT.value and _is_successful_result(result):
                        insights_created += 1
                    results.append((call.id, result))

                messages.extend(self.client.tool_results_messages(results))

            complete_run(
                db,
                run_id,
                insights_created=insights_created,
                tokens_used=total_tokens,
                cost_cents=estimate_cost_cents(total_tokens),
                metadata={"iterations": iterations, "model": config.model},
            )
            logger.info(
                "[%s] Completed run %s: %d insights, %d tokens, %d model turns",
                config.name,
                run_id,
                insights_created,
                total_tokens,
                iterations,
            )
            return AgentResult(
                insights_created=insights_created,
                tokens_used=total_tokens,
                run_id=run_id,
            )
        except Exception as exc:
            error_message = str(exc) or exc.__class__.__name__
            logger.exception("[%s] Agent failed: %s", config.name, error_message)
            self._record_failure(db, run_id, error_message, insights_created, total_tokens)
            return AgentResult(
                insights_created=insights_created,
                tokens_used=total_tokens,
                error=error_message,
                run_id=run_id,
            )

    def _record_failure(
        self,
        db: Session,
        run_id: str | None,
        error_message: str,
        insights_created: int,
        tokens_used: int,
    ) -> None:
        if run_id is None:
            return
        try:
            db.rollback()
            fail_run(
                db,
                run_id,
                error_message=error_message,
                insights_created=insights_created,
                tokens_used=tokens_used,
            )
        except SQLAlchemyError:
            logger.exception("Could not record failure of agent run %s", run_id)
