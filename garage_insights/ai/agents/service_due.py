"""Service-due analyst agent: prompts and run configuration."""

import logging
from collections.abc import Callable

from garage_insights.ai.orchestrator import AgentConfig, AgentOrchestrator, AgentResult
from garage_insights.core.settings import Settings, get_settings

logger = logging.getLogger(__name__)

SERVICE_DUE_AGENT_NAME = "service_due_analyzer"

SYSTEM_PROMPT = """You are a vehicle service analyst for an auto repair shop. Your job is to analyze vehicles and their service history to identify services that are due or overdue.

Your goal is to create actionable insights for the shop owner/mechanic. These insights will appear on their dashboard.

Guidelines for creating insights:
1. PRIORITY LEVELS:
   - HIGH: Safety-critical services overdue (brakes, tires, steering), or services significantly overdue (>20% past due)
   - MEDIUM: Services due within 30 days or 500 miles
   - LOW: Informational patterns or upcoming services

2. TITLES: Keep under 60 characters, be specific
   - Good: "2019 Honda Accord - Oil change 1,500 mi overdue"
   - Bad: "Service needed"

3. BODY: Include specific details
   - Current mileage and last service mileage
   - How many miles/days overdue or until due
   - Why this matters (safety, warranty, etc.)

4. Focus on VALUE:
   - Don't create insights for minor issues
   - Prioritize safety-critical items
   - Look for patterns (multiple services due = bundle opportunity)
   - Identify customers with multiple vehicles needing service

5. AVOID DUPLICATES:
   - Don't create multiple insights for the same vehicle/service
   - Consolidate related issues into single insights
   - If create_insight reports a recent duplicate, move on

Use the tools provided to:
1. Get all vehicles
2. For each vehicle, get expected services
3. Create insights for significant findings"""

USER_PROMPT = """Analyze all vehicles in the system and create insights for any services that are due or overdue.

Steps:
1. First, get all vehicles using get_all_vehicles
2. For each vehicle, use get_expected_services to see what's due
3. Create insights using create_insight for any significant findings

Focus on:
- Overdue services (especially safety-critical like brakes, tires)
- Services due within the next 30 days or 500 miles
- Patterns across multiple vehicles or customers

Be selective - only create insights for things that truly need attention."""


def build_service_due_config(settings: Settings | None = None) -> AgentConfig:
    settings = settings or get_settings()
    return AgentConfig(
        name=SERVICE_DUE_AGENT_NAME,
        system_prompt=SYSTEM_PROMPT,
        user_prompt=USER_PROMPT,
        model=settings.openai_model,
        max_tokens=settings.agent_max_tokens,
        max_iterations=settings.agent_max_iterations,
    )


def run_service_due_agent(
    orchestrator: AgentOrchestrator,
    settings: Settings | None = None,
) -> AgentResult:
    logger.info("[ServiceDueAgent] Starting analysis...")
    result = orchestrator.run(build_service_due_config(settings))
    logger.info(
        "[ServiceDueAgent] Completed. Created %d insights, used %d tokens",
        result.insights_created,
        result.tokens_used,
    )
    return result


# Manual/timer trigger key -> config builder.
AGENT_CONFIGS: dict[str, Callable[..., AgentConfig]] = {
    "service_due": build_service_due_config,
}
