import json
from datetime import date

import pytest
from sqlalchemy import func, select

from garage_insights.ai.tools.registry import ToolName, ToolRegistry
from garage_insights.db.models import Insight


@pytest.fixture
def registry(db_session) -> ToolRegistry:
    return ToolRegistry(db_session, insight_suppression_days=7)


def _insight_args(**overrides) -> dict:
    args = {
        "type": "service_due",
        "priority": "high",
        "title": "2019 Honda Accord - Oil change 5,000 mi overdue",
        "body": "Current mileage 50,000; last oil change at 40,000.",
    }
    args.update(overrides)
    return args


def _count_insights(db_session) -> int:
    return db_session.scalar(select(func.count(Insight.id)))


class TestToolDefinitions:
    def test_lists_the_closed_tool_set(self, registry: ToolRegistry) -> None:
        assert registry.list_tools() == [tool.value for tool in ToolName]
        assert registry.has_tool("create_insight")
        assert not registry.has_tool("delete_everything")

    def test_openai_definitions_are_flat_json_schema(self, registry: ToolRegistry) -> None:
        tools = {tool["function"]["name"]: tool["function"] for tool in registry.get_openai_tools()}

        assert set(tools) == set(registry.list_tools())
        assert tools["get_all_vehicles"]["parameters"] == {
            "type": "object",
            "properties": {},
            "required": [],
        }

        vehicle_params = tools["get_expected_services"]["parameters"]
        assert vehicle_params["required"] == ["vehicle_id"]
        assert vehicle_params["properties"]["vehicle_id"]["type"] == "integer"

        insight_params = tools["create_insight"]["parameters"]
        assert set(insight_params["required"]) == {"type", "priority", "title", "body"}
        assert insight_params["properties"]["priority"]["enum"] == ["high", "medium", "low"]
        assert insight_params["properties"]["vehicle_id"]["type"] == "integer"
        assert "$defs" not in json.dumps(insight_params)
        assert "$ref" not in json.dumps(insight_params)

    def test_definitions_are_copies(self, registry: ToolRegistry) -> None:
        registry.get_openai_tools()[0]["function"]["name"] = "tampered"

        assert registry.get_openai_tools()[0]["function"]["name"] == "get_all_vehicles"


class TestExecuteReadTools:
    def test_get_all_vehicles_includes_customer(self, registry, make_vehicle) -> None:
        vehicle = make_vehicle(mileage=50000)

        result = json.loads(registry.execute("get_all_vehicles", "{}"))

        assert len(result) == 1
        assert result[0]["id"] == vehicle.id
        assert result[0]["mileage"] == 50000
        assert result[0]["customer"]["name"] == "Dana Reyes"

    def test_service_history_most_recent_first(self, registry, make_vehicle, make_service_log) -> None:
        vehicle = make_vehicle()
        make_service_log(vehicle, service_date=date(2023, 1, 1), mileage_at_service=30000)
        make_service_log(vehicle, service_date=date(2024, 1, 1), mileage_at_service=40000)

        result = json.loads(registry.execute("get_vehicle_service_history", {"vehicle_id": vehicle.id}))

        assert [entry["mileage_at_service"] for entry in result] == [40000, 30000]
        assert result[0]["service_date"] == "2024-01-01"

    def test_expected_services(self, registry, make_vehicle, make_service_log) -> None:
        vehicle = make_vehicle(mileage=50000)
        make_service_log(vehicle, service_type="Oil Change", mileage_at_service=40000)

        result = json.loads(registry.execute("get_expected_services", json.dumps({"vehicle_id": vehicle.id})))
        oil = next(item for item in result if item["service_name"] == "Oil Change")

        assert oil["status"] == "overdue"
        assert oil["miles_until_due"] == -5000
        assert result[0]["priority"] <= result[-1]["priority"]

    def test_customers_and_their_vehicles(self, registry, make_customer, make_vehicle) -> None:
        customer = make_customer(name="Sam Ortiz")
        make_vehicle(customer=customer)
        make_vehicle(model="Civic", customer=customer)

        customers = json.loads(registry.execute("get_all_customers"))
        vehicles = json.loads(registry.execute("get_customer_vehicles", {"customer_id": customer.id}))

        assert [c["name"] for c in customers] == ["Sam Ortiz"]
        assert [v["model"] for v in vehicles] == ["Accord", "Civic"]


class TestExecuteErrors:
    def test_unknown_tool(self, registry: ToolRegistry) -> None:
        result = json.loads(registry.execute("drop_tables", {}))

        assert result == {"error": "Unknown tool: drop_tables"}

    @pytest.mark.parametrize(
        "tool_name",
        ["get_expected_services", "get_vehicle_service_history"],
    )
    def test_unknown_vehicle_is_an_error_payload(self, registry: ToolRegistry, tool_name: str) -> None:
        result = json.loads(registry.execute(tool_name, {"vehicle_id": 999}))

        assert "999" in result["error"]
        assert result["code"] == "NOT_FOUND"

    def test_unknown_customer_is_an_error_payload(self, registry: ToolRegistry) -> None:
        result = json.loads(registry.execute("get_customer_vehicles", {"customer_id": 42}))

        assert result["code"] == "NOT_FOUND"

    def test_missing_argument(self, registry: ToolRegistry) -> None:
        result = json.loads(registry.execute("get_expected_services", {}))

        assert result["code"] == "VALIDATION_ERROR"
        assert "vehicle_id" in result["error"]

    def test_malformed_json_arguments(self, registry: ToolRegistry) -> None:
        result = json.loads(registry.execute("get_expected_services", "{not json"))

        assert result["code"] == "VALIDATION_ERROR"

    def test_non_object_arguments(self, registry: ToolRegistry) -> None:
        result = json.loads(registry.execute("get_expected_services", "[1, 2]"))

        assert result["code"] == "VALIDATION_ERROR"


class TestCreateInsight:
    def test_creates_with_derived_action_url(self, registry, db_session, make_vehicle) -> None:
        vehicle = make_vehicle()

        result = json.loads(
            registry.execute("create_insight", _insight_args(vehicle_id=vehicle.id, action_type="schedule_service"))
        )

        assert result["success"] is True
        insight = db_session.get(Insight, result["insight_id"])
        assert insight.action_url == f"/dashboard/vehicles/{vehicle.id}"
        assert insight.action_type == "schedule_service"
        assert insight.read_at is None
        assert insight.dismissed_at is None

    def test_customer_action_url_when_no_vehicle(self, registry, db_session, make_customer) -> None:
        customer = make_customer()

        result = json.loads(
            registry.execute("create_insight", _insight_args(type="customer_health", customer_id=customer.id))
        )

        insight = db_session.get(Insight, result["insight_id"])
        assert insight.action_url == f"/dashboard/customers/{customer.id}"

    def test_no_subject_means_no_action_url(self, registry, db_session) -> None:
        result = json.loads(registry.execute("create_insight", _insight_args(type="digest", priority="low")))

        assert db_session.get(Insight, result["insight_id"]).action_url is None

    @pytest.mark.parametrize(
        "overrides",
        [
            {"priority": "urgent"},
            {"type": "gossip"},
            {"title": ""},
            {"title": "x" * 256},
            {"body": ""},
            {"action_type": "call_the_police"},
        ],
    )
    def test_invalid_arguments_create_nothing(self, registry, db_session, overrides: dict) -> None:
        result = json.loads(registry.execute("create_insight", _insight_args(**overrides)))

        assert result["code"] == "VALIDATION_ERROR"
        assert _count_insights(db_session) == 0

    def test_missing_required_field(self, registry, db_session) -> None:
        args = _insight_args()
        del args["body"]

        result = json.loads(registry.execute("create_insight", args))

        assert "body" in result["error"]
        assert _count_insights(db_session) == 0

    def test_unknown_vehicle_creates_nothing(self, registry, db_session) -> None:
        result = json.loads(registry.execute("create_insight", _insight_args(vehicle_id=999)))

        assert result["code"] == "NOT_FOUND"
        assert _count_insights(db_session) == 0

    def test_recent_duplicate_is_suppressed(self, registry, db_session, make_vehicle) -> None:
        vehicle = make_vehicle()
        first = json.loads(registry.execute("create_insight", _insight_args(vehicle_id=vehicle.id)))

        second = json.loads(
            registry.execute("create_insight", _insight_args(vehicle_id=vehicle.id, title="Brakes due"))
        )

        assert first["success"] is True
        assert second["success"] is False
        assert second["duplicate_of"] == first["insight_id"]
        assert _count_insights(db_session) == 1

    def test_suppression_disabled(self, db_session, make_vehicle) -> None:
        registry = ToolRegistry(db_session, insight_suppression_days=0)
        vehicle = make_vehicle()

        registry.execute("create_insight", _insight_args(vehicle_id=vehicle.id))
        second = json.loads(registry.execute("create_insight", _insight_args(vehicle_id=vehicle.id)))

        assert second["success"] is True
        assert _count_insights(db_session) == 2
