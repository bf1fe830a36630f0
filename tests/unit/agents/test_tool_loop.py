"""
Unit tests for the tool-orchestration loop.

The OpenAI client is a MagicMock whose ``chat.completions.create`` returns
real ``ChatCompletion`` objects.

Tests:
- Terminal answer without tools
- Tool execution and transcript growth
- Forced final call and the round-trip bound
- Timeouts per round trip
- Upstream error classification
"""

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest
from openai.types.chat import ChatCompletion

from ticketfx.agents.tool_loop import LoopState, ToolOrchestrator
from ticketfx.errors import UpstreamModelError, UpstreamModelTimeoutError, ValidationError
from ticketfx.tools import TICKET_ANALYSIS_RESPONSE_FORMAT, TOOL_DEFINITIONS, ToolRegistry

OPENAI_URL = "https://api.openai.com/v1/chat/completions"


# ─────────────────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────────────────


def make_completion(
    content: str | None = None,
    tool_calls: list[tuple[str, str, dict]] | None = None,
    prompt_tokens: int = 100,
    completion_tokens: int = 20,
) -> ChatCompletion:
    message: dict = {"role": "assistant", "content": content}
    if tool_calls:
        message["tool_calls"] = [
            {
                "id": call_id,
                "type": "function",
                "function": {"name": name, "arguments": json.dumps(arguments)},
            }
            for call_id, name, arguments in tool_calls
        ]
    return ChatCompletion.model_validate({
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "created": 1767225600,
        "model": "gpt-4o-mini-2024-07-18",
        "choices": [
            {
                "index": 0,
                "message": message,
                "finish_reason": "tool_calls" if tool_calls else "stop",
            }
        ],
        "usage": {
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "total_tokens": prompt_tokens + completion_tokens,
        },
    })


def tool_round(n: int) -> ChatCompletion:
    return make_completion(tool_calls=[(f"call_{n}", "detect_currency", {"text": "S/ 10"})])


@pytest.fixture
def openai_client():
    client = MagicMock()
    client.chat.completions.create = AsyncMock()
    client.close = AsyncMock()
    return client


@pytest.fixture
def orchestrator(conversion, aggregator, openai_client):
    return ToolOrchestrator(
        ToolRegistry(conversion, aggregator),
        client_factory=lambda api_key: openai_client,
        max_iterations=5,
        initial_timeout=25,
        followup_timeout=15,
        final_timeout=15,
    )


@pytest.fixture
def scan_request():
    return {
        "model": "gpt-4o-mini",
        "messages": [{"role": "user", "content": "Analyze this receipt"}],
        "tools": TOOL_DEFINITIONS,
        "tool_choice": "auto",
        "response_format": TICKET_ANALYSIS_RESPONSE_FORMAT,
    }


def sent(openai_client, index: int) -> dict:
    return openai_client.chat.completions.create.await_args_list[index].kwargs


# ─────────────────────────────────────────────────────────────────────────────
# Terminal Without Tools
# ─────────────────────────────────────────────────────────────────────────────


class TestDirectAnswer:
    """Tests for a model answering without tools."""

    @pytest.mark.asyncio
    async def test_single_round_trip(self, orchestrator, openai_client, scan_request):
        openai_client.chat.completions.create.return_value = make_completion('{"total": 10}')

        result = await orchestrator.run("sk-test", scan_request)

        assert result.round_trips == 1
        assert result.turns == 0
        assert not result.forced_final
        assert result.content == '{"total": 10}'
        assert sent(openai_client, 0)["timeout"] == 25
        assert sent(openai_client, 0)["tools"] == TOOL_DEFINITIONS
        openai_client.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_response_carries_cost_and_model(self, orchestrator, openai_client, scan_request):
        openai_client.chat.completions.create.return_value = make_completion(
            "done", prompt_tokens=1_000_000, completion_tokens=1_000_000
        )

        data = (await orchestrator.run("sk-test", scan_request)).to_dict()

        assert data["model"] == "gpt-4o-mini"
        assert data["estimatedCost"] == 0.75
        assert data["choices"][0]["message"]["content"] == "done"
        assert data["id"] == "chatcmpl-test"

    @pytest.mark.asyncio
    async def test_unpriced_model_has_no_cost(self, orchestrator, openai_client, scan_request):
        openai_client.chat.completions.create.return_value = make_completion("done")

        result = await orchestrator.run("sk-test", {**scan_request, "model": "my-finetune"})

        assert result.estimated_cost is None


# ─────────────────────────────────────────────────────────────────────────────
# Tool Execution
# ─────────────────────────────────────────────────────────────────────────────


class TestToolExecution:
    """Tests for executing requested tools."""

    @pytest.mark.asyncio
    async def test_tool_results_are_sent_back(self, orchestrator, openai_client, scan_request):
        openai_client.chat.completions.create.side_effect = [
            make_completion(
                tool_calls=[
                    ("call_a", "detect_currency", {"text": "Total S/ 45.00 IGV"}),
                    ("call_b", "convert_currency", {"amount": 100, "fromCurrency": "USD"}),
                ]
            ),
            make_completion('{"total": 45}'),
        ]

        result = await orchestrator.run("sk-test", scan_request)

        assert result.round_trips == 2
        assert result.turns == 1
        messages = sent(openai_client, 1)["messages"]
        assert len(messages) == 4
        assert messages[1]["role"] == "assistant"
        assert [c["id"] for c in messages[1]["tool_calls"]] == ["call_a", "call_b"]
        assert messages[2]["tool_call_id"] == "call_a"
        assert json.loads(messages[2]["content"])["code"] == "PEN"
        assert messages[3]["tool_call_id"] == "call_b"
        assert json.loads(messages[3]["content"])["ARS_cripto"] == 130000.0
        assert sent(openai_client, 1)["timeout"] == 15

    @pytest.mark.asyncio
    async def test_unknown_tool_is_reported_to_model(self, orchestrator, openai_client, scan_request):
        openai_client.chat.completions.create.side_effect = [
            make_completion(tool_calls=[("call_x", "get_weather", {"city": "Lima"})]),
            make_completion("sorry"),
        ]

        await orchestrator.run("sk-test", scan_request)

        tool_message = sent(openai_client, 1)["messages"][-1]
        assert json.loads(tool_message["content"]) == {"error": "Unknown tool: get_weather"}

    @pytest.mark.asyncio
    async def test_callers_messages_are_not_mutated(self, orchestrator, openai_client, scan_request):
        openai_client.chat.completions.create.side_effect = [tool_round(1), make_completion("ok")]

        await orchestrator.run("sk-test", scan_request)

        assert len(scan_request["messages"]) == 1


# ─────────────────────────────────────────────────────────────────────────────
# Forced Final
# ─────────────────────────────────────────────────────────────────────────────


class TestForcedFinal:
    """Tests for the turn cap."""

    @pytest.mark.asyncio
    async def test_round_trips_bounded_by_cap_plus_one(
        self, orchestrator, openai_client, scan_request
    ):
        """A model that never stops asking for tools gets exactly 6 calls."""
        calls = iter(range(100))
        openai_client.chat.completions.create.side_effect = lambda **kwargs: tool_round(next(calls))

        result = await orchestrator.run("sk-test", scan_request)

        assert openai_client.chat.completions.create.await_count == 6
        assert result.round_trips == 6
        assert result.turns == 5
        assert result.forced_final

    @pytest.mark.asyncio
    async def test_final_call_drops_tools_and_demands_json(
        self, orchestrator, openai_client, scan_request
    ):
        openai_client.chat.completions.create.side_effect = [
            *(tool_round(n) for n in range(5)),
            make_completion('{"total": 45}'),
        ]

        result = await orchestrator.run("sk-test", scan_request)

        final = sent(openai_client, 5)
        assert "tools" not in final
        assert "tool_choice" not in final
        assert final["temperature"] == 0.1
        assert final["response_format"] == TICKET_ANALYSIS_RESPONSE_FORMAT
        assert final["timeout"] == 15
        assert final["messages"][-1]["role"] == "system"
        assert "ticket_analysis" in final["messages"][-1]["content"]
        # 1 user + 4 executed rounds of (assistant, tool); the 5th request is not executed
        assert len(final["messages"]) == 1 + 4 * 2 + 1
        assert result.content == '{"total": 45}'

    @pytest.mark.asyncio
    async def test_timeouts_per_round_trip(self, orchestrator, openai_client, scan_request):
        openai_client.chat.completions.create.side_effect = [
            *(tool_round(n) for n in range(5)),
            make_completion("{}"),
        ]

        await orchestrator.run("sk-test", scan_request)

        timeouts = [c.kwargs["timeout"] for c in openai_client.chat.completions.create.await_args_list]
        assert timeouts == [25, 15, 15, 15, 15, 15]

    @pytest.mark.asyncio
    async def test_usage_summed_over_all_round_trips(
        self, orchestrator, openai_client, scan_request
    ):
        openai_client.chat.completions.create.side_effect = [
            *(tool_round(n) for n in range(5)),
            make_completion("{}"),
        ]

        result = await orchestrator.run("sk-test", scan_request)

        # 6 x (100 in, 20 out) on gpt-4o-mini = (600*0.15 + 120*0.60) / 1e6
        assert result.estimated_cost == round(162 / 1_000_000, 4)


# ─────────────────────────────────────────────────────────────────────────────
# Validation & Passthrough
# ─────────────────────────────────────────────────────────────────────────────


class TestRequestHandling:
    """Tests for request validation and parameter passthrough."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "request_body",
        [
            {"model": "gpt-4o-mini", "messages": []},
            {"model": "gpt-4o-mini"},
            {"messages": [{"role": "user", "content": "hi"}]},
            {"model": "gpt-4o-mini", "messages": ["hi"]},
            ["not", "an", "object"],
        ],
    )
    async def test_invalid_requests(self, orchestrator, openai_client, request_body):
        with pytest.raises(ValidationError):
            await orchestrator.run("sk-test", request_body)

        openai_client.chat.completions.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_key(self, orchestrator, scan_request):
        with pytest.raises(ValidationError, match="API key is required"):
            await orchestrator.run("", scan_request)

    @pytest.mark.asyncio
    async def test_unknown_params_go_to_extra_body(self, orchestrator, openai_client, scan_request):
        openai_client.chat.completions.create.return_value = make_completion("ok")

        await orchestrator.run(
            "sk-test", {**scan_request, "stream": True, "temperature": 0.2, "store": True}
        )

        kwargs = sent(openai_client, 0)
        assert kwargs["temperature"] == 0.2
        assert kwargs["extra_body"] == {"store": True}
        assert "stream" not in kwargs


# ─────────────────────────────────────────────────────────────────────────────
# Upstream Errors
# ─────────────────────────────────────────────────────────────────────────────


class TestUpstreamErrors:
    """Tests for classifying OpenAI SDK errors."""

    @pytest.mark.asyncio
    async def test_timeout_aborts_without_retry(self, orchestrator, openai_client, scan_request):
        openai_client.chat.completions.create.side_effect = openai.APITimeoutError(
            request=httpx.Request("POST", OPENAI_URL)
        )

        with pytest.raises(UpstreamModelTimeoutError) as exc_info:
            await orchestrator.run("sk-test", scan_request)

        assert exc_info.value.status_code == 504
        assert exc_info.value.timeout == 25
        assert openai_client.chat.completions.create.await_count == 1
        openai_client.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_timeout_on_follow_up(self, orchestrator, openai_client, scan_request):
        openai_client.chat.completions.create.side_effect = [
            tool_round(1),
            openai.APITimeoutError(request=httpx.Request("POST", OPENAI_URL)),
        ]

        with pytest.raises(UpstreamModelTimeoutError) as exc_info:
            await orchestrator.run("sk-test", scan_request)

        assert exc_info.value.timeout == 15

    @pytest.mark.asyncio
    async def test_status_error_keeps_upstream_document(
        self, orchestrator, openai_client, scan_request
    ):
        document = {
            "error": {
                "message": "Incorrect API key provided",
                "type": "invalid_request_error",
                "param": None,
                "code": "invalid_api_key",
            }
        }
        request = httpx.Request("POST", OPENAI_URL)
        # The SDK stores only the inner error object on ``body``
        openai_client.chat.completions.create.side_effect = openai.AuthenticationError(
            "Incorrect API key provided",
            response=httpx.Response(401, request=request, json=document),
            body=document["error"],
        )

        with pytest.raises(UpstreamModelError) as exc_info:
            await orchestrator.run("sk-bad", scan_request)

        assert exc_info.value.status_code == 401
        assert exc_info.value.body == document

    @pytest.mark.asyncio
    async def test_status_error_without_json_response_rewraps_body(
        self, orchestrator, openai_client, scan_request
    ):
        request = httpx.Request("POST", OPENAI_URL)
        openai_client.chat.completions.create.side_effect = openai.InternalServerError(
            "Server error",
            response=httpx.Response(500, request=request, content=b"upstream down"),
            body={"message": "Server error"},
        )

        with pytest.raises(UpstreamModelError) as exc_info:
            await orchestrator.run("sk-test", scan_request)

        assert exc_info.value.status_code == 500
        assert exc_info.value.body == {"error": {"message": "Server error"}}

    @pytest.mark.asyncio
    async def test_connection_error_is_503(self, orchestrator, openai_client, scan_request):
        openai_client.chat.completions.create.side_effect = openai.APIConnectionError(
            request=httpx.Request("POST", OPENAI_URL)
        )

        with pytest.raises(UpstreamModelError) as exc_info:
            await orchestrator.run("sk-test", scan_request)

        assert exc_info.value.status_code == 503
        assert not isinstance(exc_info.value, UpstreamModelTimeoutError)


def test_loop_states_cover_the_machine():
    assert {state.value for state in LoopState} == {
        "awaiting_model",
        "executing_tools",
        "forcing_final",
        "terminal",
    }


class TestConfiguration:
    """Tests for ToolOrchestrator construction."""

    def test_explicit_values_are_kept(self, conversion, aggregator):
        orchestrator = ToolOrchestrator(
            ToolRegistry(conversion, aggregator),
            max_iterations=1,
            initial_timeout=3,
            followup_timeout=2,
            final_timeout=1,
        )

        assert orchestrator.max_iterations == 1
        assert (orchestrator.initial_timeout, orchestrator.followup_timeout) == (3, 2)
        assert orchestrator.final_timeout == 1

    def test_defaults_come_from_settings(self, conversion, aggregator):
        orchestrator = ToolOrchestrator(ToolRegistry(conversion, aggregator))

        assert orchestrator.max_iterations == 5
        assert orchestrator.initial_timeout == 25
        assert orchestrator.final_timeout == 15

    def test_zero_iterations_rejected(self, conversion, aggregator):
        with pytest.raises(ValueError, match="max_iterations"):
            ToolOrchestrator(ToolRegistry(conversion, aggregator), max_iterations=0)

    @pytest.mark.asyncio
    async def test_cap_of_one_forces_final_after_first_tool_turn(
        self, conversion, aggregator, openai_client, scan_request
    ):
        orchestrator = ToolOrchestrator(
            ToolRegistry(conversion, aggregator),
            client_factory=lambda api_key: openai_client,
            max_iterations=1,
        )
        openai_client.chat.completions.create.side_effect = [
            tool_round(1),
            make_completion('{"total": 10}'),
        ]

        result = await orchestrator.run("sk-test", scan_request)

        assert result.round_trips == 2
        assert result.forced_final
        assert "tools" not in sent(openai_client, 1)
