from types import SimpleNamespace

import pytest

from garage_insights.ai.reasoning import OpenAIReasoningClient
from garage_insights.core.domain_exceptions import ModelInvocationError


class StubCompletions:
    def __init__(self, response=None, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.kwargs: dict = {}

    def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return self.response


def _client(completions: StubCompletions) -> OpenAIReasoningClient:
    return OpenAIReasoningClient(client=SimpleNamespace(chat=SimpleNamespace(completions=completions)))


def _response(content=None, tool_calls=None, prompt_tokens=120, completion_tokens=30):
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(
        choices=[SimpleNamespace(message=message)],
        usage=SimpleNamespace(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens),
    )


def _complete(client: OpenAIReasoningClient):
    return client.complete(
        system_prompt="system",
        messages=[{"role": "user", "content": "go"}],
        tools=[{"type": "function", "function": {"name": "get_all_vehicles"}}],
        model="test-model",
        max_tokens=256,
    )


class TestOpenAIReasoningClient:
    def test_tool_turn(self) -> None:
        call = SimpleNamespace(
            id="call_1",
            function=SimpleNamespace(name="get_expected_services", arguments='{"vehicle_id": 1}'),
        )
        completions = StubCompletions(_response(tool_calls=[call]))

        turn = _complete(_client(completions))

        assert turn.wants_tools
        assert turn.tool_calls[0].name == "get_expected_services"
        assert turn.tool_calls[0].arguments == '{"vehicle_id": 1}'
        assert turn.total_tokens == 150
        assert turn.assistant_message["tool_calls"][0]["id"] == "call_1"
        assert completions.kwargs["messages"][0] == {"role": "system", "content": "system"}
        assert completions.kwargs["tool_choice"] == "auto"

    def test_final_text_turn(self) -> None:
        turn = _complete(_client(StubCompletions(_response(content="  All done.  "))))

        assert not turn.wants_tools
        assert turn.text == "All done."
        assert turn.assistant_message == {"role": "assistant", "content": "All done."}

    def test_api_error_becomes_model_invocation_error(self) -> None:
        completions = StubCompletions(error=ConnectionError("network down"))

        with pytest.raises(ModelInvocationError, match="network down"):
            _complete(_client(completions))

    def test_malformed_response(self) -> None:
        with pytest.raises(ModelInvocationError):
            _complete(_client(StubCompletions(SimpleNamespace(choices=[], usage=None))))

    def test_unconfigured_client(self) -> None:
        with pytest.raises(ModelInvocationError, match="OPENAI_API_KEY"):
            _complete(OpenAIReasoningClient(api_key=None))

    def test_tool_results_are_one_message_per_call(self) -> None:
        messages = OpenAIReasoningClient(api_key=None).tool_results_messages([("a", "{}"), ("b", "[]")])

        assert messages == [
            {"role": "tool", "tool_call_id": "a", "content": "{}"},
            {"role": "tool", "tool_call_id": "b", "content": "[]"},
        ]
