"""
Reasoning service boundary.

The orchestrator only sees `ModelTurn` objects; `OpenAIReasoningClient` turns
OpenAI chat-completion responses into them. Any failure to obtain a usable
turn is raised as `ModelInvocationError`.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from openai import OpenAI

from garage_insights.core.domain_exceptions import ModelInvocationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolCall:
    id: str
    name: str
    # Raw arguments as sent by the model: JSON text or an already-parsed object.
    arguments: Any


@dataclass(frozen=True)
class ModelTurn:
    tool_calls: list[ToolCall] = field(default_factory=list)
    text: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    # Assistant message to append to the conversation verbatim.
    assistant_message: dict[str, Any] = field(default_factory=dict)

    @property
    def wants_tools(self) -> bool:
        return bool(self.tool_calls)

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class ReasoningClient(ABC):
    """Abstract request/response boundary to the language model."""

    @abstractmethod
    def complete(
        self,
        system_prompt: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        model: str,
        max_tokens: int,
    ) -> ModelTurn:
        """Send the conversation and return the model's next turn."""
        raise NotImplementedError

    def tool_results_messages(self, results: list[tuple[str, str]]) -> list[dict[str, Any]]:
        """Format one turn's (call id, JSON result) pairs as conversation messages."""
        return [
            {"role": "tool", "tool_call_id": call_id, "content": content}
            for call_id, content in results
        ]


class OpenAIReasoningClient(ReasoningClient):
    def __init__(self, api_key: str | None = None, client: Any = None):
        if client is not None:
            self.client = client
        elif not api_key:
            logger.warning("OPENAI_API_KEY not set; agent runs will fail.")
            self.client = None
        else:
            self.client = OpenAI(api_key=api_key)

    def complete(
        self,
        system_prompt: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        model: str,
        max_tokens: int,
    ) -> ModelTurn:
        if self.client is None:
            raise ModelInvocationError("OpenAI client is not configured (OPENAI_API_KEY is not set)")

        try:
            completion = self.client.chat.completions.create(
                model=model,
                max_tokens=max_tokens,
                temperature=0,
                tool_choice="auto",
                tools=tools,
                messages=[{"role": "system", "content": system_prompt}, *messages],
            )
        except Exception as exc:
            raise ModelInvocationError(f"OpenAI completion failed: {exc}") from exc

        try:
            message_obj = completion.choices[0].message
        except (AttributeError, IndexError, TypeError) as exc:
            raise ModelInvocationError("OpenAI response malformed: no message choice") from exc

        usage = getattr(completion, "usage", None)
        input_tokens = int(getattr(usage, "prompt_tokens", 0) or 0)
        output_tokens = int(getattr(usage, "completion_tokens", 0) or 0)

        text = self._extract_message_text(message_obj)
        tool_calls = [
            ToolCall(
                id=tool_call.id,
                name=getattr(tool_call.function, "name", "") or "",
                arguments=getattr(tool_call.function, "arguments", None),
            )
            for tool_call in (getattr(message_obj, "tool_calls", None) or [])
        ]

        assistant_message: dict[str, Any] = {"role": "assistant", "content": text or None}
        if tool_calls:
            assistant_message["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": call.arguments or "{}"},
                }
                for call in tool_calls
            ]

        return ModelTurn(
            tool_calls=tool_calls,
            text=text,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            assistant_message=assistant_message,
        )

    def _extract_message_text(self, message_obj: Any) -> str:
        content = getattr(message_obj, "content", None)
        if isinstance(content, str):
            return content.strip()

        if isinstance(content, list):
            parts: list[str] = []
            for item in content:
                if isinstance(item, dict):
                    text_value = item.get("text")
                else:
                    text_value = getattr(item, "text", None)
                if isinstance(text_value, str) and text_value.strip():
                    parts.append(text_value.strip())
            return "\n".join(parts).strip()

        return ""
