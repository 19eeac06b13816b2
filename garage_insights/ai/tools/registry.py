"""
Central AI Tool Registry.

The tool set is closed: every `ToolName` maps to exactly one typed handler.
`ToolRegistry.execute` is the single entry point used by the orchestrator and
never raises; failures come back as JSON error payloads the model can read.
"""

import copy
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Any

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from garage_insights.ai.tools.fleet_tools import (
    CustomerLookup,
    NoArguments,
    VehicleLookup,
    tool_get_all_customers,
    tool_get_all_vehicles,
    tool_get_customer_vehicles,
    tool_get_expected_services,
    tool_get_vehicle_service_history,
)
from garage_insights.ai.tools.insight_tools import CreateInsightArguments, tool_create_insight
from garage_insights.ai.tools.serialization import make_json_safe
from garage_insights.core.domain_exceptions import DomainException, ToolValidationError

logger = logging.getLogger(__name__)


class ToolName(str, Enum):
    GET_ALL_VEHICLES = "get_all_vehicles"
    GET_VEHICLE_SERVICE_HISTORY = "get_vehicle_service_history"
    GET_EXPECTED_SERVICES = "get_expected_services"
    GET_ALL_CUSTOMERS = "get_all_customers"
    GET_CUSTOMER_VEHICLES = "get_customer_vehicles"
    CREATE_INSIGHT = "create_insight"


@dataclass(frozen=True)
class ToolSpec:
    description: str
    arguments_model: type[BaseModel]


TOOL_SPECS: dict[ToolName, ToolSpec] = {
    ToolName.GET_ALL_VEHICLES: ToolSpec(
        "Get all vehicles in the system with their customer information",
        NoArguments,
    ),
    ToolName.GET_VEHICLE_SERVICE_HISTORY: ToolSpec(
        "Get service history for a specific vehicle, most recent first",
        VehicleLookup,
    ),
    ToolName.GET_EXPECTED_SERVICES: ToolSpec(
        "Get expected/due services for a vehicle based on mileage and time intervals",
        VehicleLookup,
    ),
    ToolName.GET_ALL_CUSTOMERS: ToolSpec(
        "Get all customers in the system",
        NoArguments,
    ),
    ToolName.GET_CUSTOMER_VEHICLES: ToolSpec(
        "Get all vehicles for a specific customer",
        CustomerLookup,
    ),
    ToolName.CREATE_INSIGHT: ToolSpec(
        "Create an insight to display on the dashboard. Use this to surface valuable findings.",
        CreateInsightArguments,
    ),
}


def error_payload(message: str, **extra: Any) -> str:
    return json.dumps({"error": message, **extra}, ensure_ascii=False)


class ToolRegistry:
    def __init__(self, db: Session, insight_suppression_days: int = 0):
        self.db = db
        self._handlers: dict[ToolName, Callable[[BaseModel], Any]] = {
            ToolName.GET_ALL_VEHICLES: partial(tool_get_all_vehicles, db),
            ToolName.GET_VEHICLE_SERVICE_HISTORY: partial(tool_get_vehicle_service_history, db),
            ToolName.GET_EXPECTED_SERVICES: partial(tool_get_expected_services, db),
            ToolName.GET_ALL_CUSTOMERS: partial(tool_get_all_customers, db),
            ToolName.GET_CUSTOMER_VEHICLES: partial(tool_get_customer_vehicles, db),
            ToolName.CREATE_INSIGHT: partial(
                tool_create_insight,
                db,
                suppression_days=insight_suppression_days,
            ),
        }

        missing = set(ToolName) - set(self._handlers) | set(ToolName) - set(TOOL_SPECS)
        if missing:
            raise RuntimeError(f"Tools without handler or spec: {sorted(t.value for t in missing)}")

        self._openai_tools = self._build_openai_tools()

    def list_tools(self) -> list[str]:
        return [tool.value for tool in ToolName]

    def has_tool(self, tool_name: str) -> bool:
        return tool_name in self.list_tools()

    def get_openai_tools(self) -> list[dict]:
        return copy.deepcopy(self._openai_tools)

    def execute(self, tool_name: str, arguments: Any = None) -> str:
        """Run one tool call and return its JSON result. Never raises."""
        try:
            tool = ToolName(tool_name)
        except ValueError:
            logger.warning("Model requested unknown tool '%s'", tool_name)
            return error_payload(f"Unknown tool: {tool_name}")

        try:
            parsed_arguments = self._parse_tool_arguments(arguments)
            validated = self._validate(tool, parsed_arguments)
            result = self._handlers[tool](validated)
            return json.dumps(make_json_safe(result), ensure_ascii=False)
        except DomainException as exc:
            logger.warning("Tool '%s' failed: %s", tool.value, exc.message)
            self._rollback()
            return error_payload(exc.message, code=exc.code)
        except SQLAlchemyError as exc:
            logger.exception("Tool '%s' hit a database error", tool.value)
            self._rollback()
            return error_payload(f"Database error: {exc}")
        except Exception as exc:
            logger.exception("Tool '%s' execution failed", tool.value)
            self._rollback()
            return error_payload(str(exc) or exc.__class__.__name__)

    def _validate(self, tool: ToolName, arguments: dict[str, Any]) -> BaseModel:
        arguments_model = TOOL_SPECS[tool].arguments_model
        try:
            return arguments_model.model_validate(arguments)
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in error['loc']) or 'input'}: {error['msg']}"
                for error in exc.errors()
            )
            raise ToolValidationError(f"Invalid arguments for {tool.value}: {problems}") from exc

    def _parse_tool_arguments(self, raw_arguments: Any) -> dict:
        if isinstance(raw_arguments, dict):
            return raw_arguments
        if raw_arguments is None or raw_arguments == "":
            return {}
        if not isinstance(raw_arguments, str):
            raise ToolValidationError(
                f"Tool arguments must be an object or JSON string, got {type(raw_arguments).__name__}"
            )

        try:
            parsed = json.loads(raw_arguments)
        except json.JSONDecodeError as exc:
            raise ToolValidationError(f"Invalid JSON tool arguments: {raw_arguments}") from exc

        if not isinstance(parsed, dict):
            raise ToolValidationError(f"Tool arguments JSON is not an object: {parsed!r}")

        return parsed

    def _rollback(self) -> None:
        try:
            self.db.rollback()
        except SQLAlchemyError:
            logger.exception("Rollback after tool failure also failed")

    def _build_openai_tools(self) -> list[dict]:
        openai_tools: list[dict] = []
        for tool in ToolName:
            spec = TOOL_SPECS[tool]
            openai_tools.append(
                {
                    "type": "function",
                    "function": {
                        "name": tool.value,
                        "description": spec.description,
                        "parameters": self._parameters_schema(spec.arguments_model),
                    },
                }
            )

        logger.info("ToolRegistry generated %d OpenAI tool definitions", len(openai_tools))
        return openai_tools

    def _parameters_schema(self, arguments_model: type[BaseModel]) -> dict:
        schema = arguments_model.model_json_schema()
        definitions = schema.pop("$defs", {})
        flattened = self._inline_schema(schema, definitions)
        flattened.setdefault("properties", {})
        flattened.setdefault("required", [])
        return flattened

    def _inline_schema(self, node: Any, definitions: dict[str, Any]) -> Any:
        """Resolve $ref/allOf, collapse Optional anyOf and drop titles."""
        if isinstance(node, list):
            return [self._inline_schema(item, definitions) for item in node]
        if not isinstance(node, dict):
            return node

        node = dict(node)
        if "$ref" in node:
            target = definitions[node.pop("$ref").rsplit("/", 1)[-1]]
            node = {**target, **node}
        if "allOf" in node and len(node["allOf"]) == 1:
            node = {**node.pop("allOf")[0], **node}
            return self._inline_schema(node, definitions)
        if "anyOf" in node:
            options = [option for option in node["anyOf"] if option != {"type": "null"}]
            if len(options) == 1:
                node.pop("anyOf")
                node = {**options[0], **node}
                return self._inline_schema(node, definitions)

        cleaned: dict[str, Any] = {}
        for key, value in node.items():
            if key == "title":
                continue
            if key == "default" and value is None:
                continue
            if key == "properties":
                cleaned[key] = {
                    name: self._inline_schema(prop, definitions)
                    for name, prop in value.items()
                }
                continue
            cleaned[key] = self._inline_schema(value, definitions)
        return cleaned
