from collections.abc import Generator
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from garage_insights.ai.orchestrator import AgentOrchestrator
from garage_insights.db.models import utcnow
from garage_insights.db.session import get_db
from garage_insights.scheduler.agent_scheduler import AgentScheduler
from garage_insights.schemas.insight import InsightCreate
from garage_insights.services.insight_service import create_insight
from main import app
from fakes import FakeReasoningClient, text_turn, tool_turn


@pytest.fixture
def agent_scheduler(session_factory, settings) -> AgentScheduler:
    orchestrator = AgentOrchestrator(FakeReasoningClient([text_turn(tokens=60)]), session_factory)
    return AgentScheduler(orchestrator, settings=settings)


@pytest.fixture
def client(db_session, agent_scheduler) -> Generator[TestClient, None, None]:
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.state.agent_scheduler = agent_scheduler
    # Not used as a context manager, so the lifespan (real DB, real scheduler) never runs.
    yield TestClient(app)
    app.dependency_overrides.clear()
    app.state.agent_scheduler = None


@pytest.fixture
def insight(db_session, make_vehicle):
    vehicle = make_vehicle(mileage=50000)
    return create_insight(
        db_session,
        InsightCreate(
            type="service_due",
            priority="high",
            title="2020 Honda Accord - Oil change overdue",
            body="Current mileage 50,000; last oil change at 40,000.",
            vehicle_id=vehicle.id,
            customer_id=vehicle.customer_id,
            action_url=f"/dashboard/vehicles/{vehicle.id}",
        ),
    )


class TestInsightRoutes:
    def test_list_with_relations_and_meta(self, client: TestClient, insight) -> None:
        resp = client.get("/insights")

        assert resp.status_code == 200
        data = resp.json()
        assert [item["id"] for item in data["insights"]] == [insight.id]
        assert data["insights"][0]["vehicle"]["make"] == "Honda"
        assert data["insights"][0]["customer"]["name"] == "Dana Reyes"
        assert data["meta"] == {
            "unread_count": 1,
            "priority_counts": {"high": 1, "medium": 0, "low": 0},
            "total": 1,
        }

    def test_list_filters(self, client: TestClient, insight) -> None:
        assert client.get("/insights", params={"priority": "low"}).json()["insights"] == []
        assert len(client.get("/insights", params={"type": "service_due"}).json()["insights"]) == 1

    def test_list_hides_expired_unless_requested(self, client: TestClient, db_session) -> None:
        create_insight(
            db_session,
            InsightCreate(
                type="service_due",
                priority="low",
                title="Stale reminder",
                body="Already past its expiry.",
                expires_at=utcnow() - timedelta(days=1),
            ),
        )

        assert client.get("/insights").json()["insights"] == []
        resp = client.get("/insights", params={"include_expired": "true"})
        assert [item["title"] for item in resp.json()["insights"]] == ["Stale reminder"]

    def test_list_rejects_unknown_priority(self, client: TestClient) -> None:
        assert client.get("/insights", params={"priority": "urgent"}).status_code == 422

    def test_stats(self, client: TestClient, insight) -> None:
        data = client.get("/insights/stats").json()

        assert data["unread_count"] == 1
        assert data["priority_counts"]["high"] == 1
        assert data["agent_stats"]["total_runs"] == 0

    def test_get_one(self, client: TestClient, insight) -> None:
        resp = client.get(f"/insights/{insight.id}")

        assert resp.status_code == 200
        assert resp.json()["title"] == insight.title

    def test_lifecycle(self, client: TestClient, insight) -> None:
        read = client.put(f"/insights/{insight.id}/read").json()
        actioned = client.put(f"/insights/{insight.id}/action").json()
        dismissed = client.put(f"/insights/{insight.id}/dismiss").json()

        assert read["read_at"] is not None
        assert actioned["read_at"] == read["read_at"]
        assert actioned["actioned_at"] is not None
        assert dismissed["dismissed_at"] is not None
        assert client.get("/insights").json()["insights"] == []

    @pytest.mark.parametrize(
        ("method", "path"),
        [
            ("get", "/insights/missing"),
            ("put", "/insights/missing/read"),
            ("put", "/insights/missing/action"),
            ("put", "/insights/missing/dismiss"),
        ],
    )
    def test_unknown_id_is_404_envelope(self, client: TestClient, method: str, path: str) -> None:
        resp = client.request(method.upper(), path, headers={"X-Request-ID": "req-123"})

        assert resp.status_code == 404
        body = resp.json()
        assert body["success"] is False
        assert body["error"]["code"] == "NOT_FOUND"
        assert body["error"]["request_id"] == "req-123"
        assert resp.headers["X-Request-ID"] == "req-123"


class TestAgentRoutes:
    def test_run_agent(self, client: TestClient) -> None:
        resp = client.post("/agents/run/service_due")

        assert resp.status_code == 200
        assert resp.json() == {"success": True, "insights_created": 0, "tokens_used": 60}

        runs = client.get("/agents/runs").json()
        assert len(runs) == 1
        assert runs[0]["agent_type"] == "service_due_analyzer"
        assert runs[0]["status"] == "completed"
        assert runs[0]["cost_cents"] == 1

    def test_unknown_agent_type(self, client: TestClient) -> None:
        resp = client.post("/agents/run/revenue_forecaster")

        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "UNKNOWN_AGENT"
        assert resp.json()["error"]["message"] == "Unknown agent type: revenue_forecaster"

    def test_rejected_while_running(self, client: TestClient, agent_scheduler: AgentScheduler) -> None:
        with agent_scheduler.guard.try_acquire():
            resp = client.post("/agents/run/service_due")

        assert resp.status_code == 409
        assert resp.json()["error"] == {
            "code": "AGENT_ALREADY_RUNNING",
            "message": "An agent is already running",
            "request_id": resp.headers["X-Request-ID"],
        }
        assert client.get("/agents/runs").json() == []

    def test_failed_run_is_400(self, client: TestClient, agent_scheduler: AgentScheduler) -> None:
        agent_scheduler.orchestrator.client = FakeReasoningClient(
            [tool_turn(("call_1", "get_all_vehicles", "{}")) for _ in range(6)]
        )

        resp = client.post("/agents/run/service_due")

        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "AGENT_RUN_FAILED"
        runs = client.get("/agents/runs", params={"status": "failed"}).json()
        assert len(runs) == 1
        assert "Iteration budget" in runs[0]["error_message"]

    def test_scheduler_unavailable(self, client: TestClient) -> None:
        app.state.agent_scheduler = None

        assert client.post("/agents/run/service_due").status_code == 503
