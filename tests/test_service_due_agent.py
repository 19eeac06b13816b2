from garage_insights.ai.agents.service_due import (
    AGENT_CONFIGS,
    SERVICE_DUE_AGENT_NAME,
    build_service_due_config,
    run_service_due_agent,
)
from garage_insights.ai.orchestrator import AgentOrchestrator
from garage_insights.db.models import AgentRun
from fakes import FakeReasoningClient, text_turn


def test_config_comes_from_settings(settings) -> None:
    config = build_service_due_config(settings)

    assert config.name == SERVICE_DUE_AGENT_NAME == "service_due_analyzer"
    assert config.model == "test-model"
    assert config.max_tokens == 1024
    assert config.max_iterations == 5
    assert "get_expected_services" in config.user_prompt
    assert "create_insight" in config.user_prompt
    assert AGENT_CONFIGS["service_due"] is build_service_due_config


def test_run_records_a_completed_run(db_session, session_factory, settings) -> None:
    client = FakeReasoningClient([text_turn("No vehicles need attention.", tokens=80)])

    result = run_service_due_agent(AgentOrchestrator(client, session_factory), settings)

    assert result.succeeded
    assert result.tokens_used == 80
    assert db_session.get(AgentRun, result.run_id).agent_type == "service_due_analyzer"
