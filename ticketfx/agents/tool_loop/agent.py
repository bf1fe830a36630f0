"""
Tool-orchestration loop.

Forwards a chat-completions request to the model and, while the model asks
for tools, executes them locally and re-invokes it with the results. The
turn counter is capped; when the cap is reached one last call is made with
the tools removed and an instruction demanding the final answer, and its
result is returned whatever it contains.

Usage:
    orchestrator = ToolOrchestrator(registry)
    result = await orchestrator.run(api_key, {"model": "gpt-4o-mini", "messages": [...]})
    result.to_dict()  # completion JSON + estimatedCost + model
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx
import openai
from openai import AsyncOpenAI

from ticketfx.agents.tool_loop.pricing import estimate_cost
from ticketfx.agents.tool_loop.state import LoopRun, LoopState
from ticketfx.config import settings
from ticketfx.errors import UpstreamModelError, UpstreamModelTimeoutError, ValidationError
from ticketfx.logging_config import get_logger
from ticketfx.prompts.receipt_scan import force_final_instruction
from ticketfx.tools.registry import ToolCall, ToolRegistry

logger = get_logger(__name__)

ClientFactory = Callable[[str], AsyncOpenAI]

# Keyword arguments accepted by chat.completions.create; anything else in the
# incoming request is forwarded untouched through extra_body.
COMPLETION_PARAMS = frozenset({
    "model",
    "messages",
    "tools",
    "tool_choice",
    "parallel_tool_calls",
    "response_format",
    "temperature",
    "top_p",
    "n",
    "stop",
    "seed",
    "max_tokens",
    "max_completion_tokens",
    "presence_penalty",
    "frequency_penalty",
    "logit_bias",
    "logprobs",
    "top_logprobs",
    "user",
    "metadata",
})

# Never sent on the forced final call
TOOL_PARAMS = ("tools", "tool_choice", "parallel_tool_calls")

FINAL_TEMPERATURE = 0.1


def default_client_factory(api_key: str) -> AsyncOpenAI:
    """One client per request, keyed with the caller's own API key."""
    return AsyncOpenAI(
        api_key=api_key,
        base_url=settings.openai_base_url,
        max_retries=0,
    )


def _or_default(value: float | None, default: float) -> float:
    return default if value is None else value


def upstream_body(error: openai.APIStatusError) -> dict[str, Any] | None:
    """
    The error document exactly as the endpoint sent it.

    The SDK keeps only the inner ``error`` object on ``error.body``, so the
    raw response is preferred and the wrapper is rebuilt otherwise.
    """
    try:
        payload = error.response.json()
    except (ValueError, httpx.ResponseNotRead):
        payload = None
    if isinstance(payload, dict):
        return payload
    if isinstance(error.body, dict):
        return {"error": error.body}
    return None


@dataclass
class OrchestrationResult:
    """Final completion plus cost bookkeeping for one run."""

    response: dict[str, Any]
    model: str
    estimated_cost: float | None
    turns: int
    round_trips: int
    forced_final: bool = False

    @property
    def content(self) -> str | None:
        """Text of the first choice, if any."""
        choices = self.response.get("choices") or []
        if not choices:
            return None
        return (choices[0].get("message") or {}).get("content")

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.response,
            "estimatedCost": self.estimated_cost,
            "model": self.model,
        }


class ToolOrchestrator:
    """
    Bounded model <-> tools exchange as an explicit state machine.

    At most ``max_iterations + 1`` model round trips are made per run. Model
    calls are never retried; a timeout aborts the run with
    ``UpstreamModelTimeoutError``.
    """

    def __init__(
        self,
        tools: ToolRegistry,
        client_factory: ClientFactory = default_client_factory,
        max_iterations: int | None = None,
        initial_timeout: float | None = None,
        followup_timeout: float | None = None,
        final_timeout: float | None = None,
    ):
        self.tools = tools
        self.client_factory = client_factory
        if max_iterations is None:
            max_iterations = settings.max_tool_iterations
        if max_iterations < 1:
            raise ValueError(f"max_iterations must be at least 1, got {max_iterations}")
        self.max_iterations = max_iterations
        self.initial_timeout = _or_default(initial_timeout, settings.model_initial_timeout_seconds)
        self.followup_timeout = _or_default(followup_timeout, settings.model_followup_timeout_seconds)
        self.final_timeout = _or_default(final_timeout, settings.model_final_timeout_seconds)

    async def run(self, api_key: str, request: dict[str, Any]) -> OrchestrationResult:
        """
        Run the loop for one chat-completions request.

        Args:
            api_key: Caller's OpenAI API key
            request: Chat-completions body (``model``, ``messages``, ``tools``...)

        Returns:
            OrchestrationResult with the last completion the model produced

        Raises:
            ValidationError: If the request body is unusable
            UpstreamModelError: If the model endpoint fails
            UpstreamModelTimeoutError: If a model call exceeds its timeout
        """
        if not api_key:
            raise ValidationError("OpenAI API key is required")
        params = self._validate_request(request)
        model = params["model"]

        run = LoopRun(transcript=[dict(m) for m in params.pop("messages")])
        pending: list[ToolCall] = []
        pending_content: str | None = None
        completion = None

        logger.info(
            "tool_loop_started",
            model=model,
            max_iterations=self.max_iterations,
            tools_offered=len(params.get("tools") or []),
        )

        client = self.client_factory(api_key)
        try:
            while run.state is not LoopState.TERMINAL:
                if run.state is LoopState.AWAITING_MODEL:
                    timeout = self.initial_timeout if run.round_trips == 0 else self.followup_timeout
                    completion = await self._call_model(
                        client, run, {**params, "messages": list(run.transcript)}, timeout
                    )
                    message = completion.choices[0].message
                    tool_calls = message.tool_calls or []
                    if not tool_calls:
                        run.state = LoopState.TERMINAL
                        continue

                    run.turn += 1
                    pending = [ToolCall.from_openai(tc) for tc in tool_calls]
                    pending_content = message.content
                    if run.turn >= self.max_iterations:
                        run.state = LoopState.FORCING_FINAL
                    else:
                        run.state = LoopState.EXECUTING_TOOLS

                elif run.state is LoopState.EXECUTING_TOOLS:
                    await self._execute_tools(run, pending, pending_content)
                    pending, pending_content = [], None
                    run.state = LoopState.AWAITING_MODEL

                elif run.state is LoopState.FORCING_FINAL:
                    logger.warning(
                        "tool_loop_forcing_final",
                        model=model,
                        turn=run.turn,
                        unexecuted_tool_calls=len(pending),
                    )
                    run.forced_final = True
                    completion = await self._call_model(
                        client, run, self._final_request(params, run), self.final_timeout
                    )
                    run.state = LoopState.TERMINAL
        finally:
            await client.close()

        estimated_cost = estimate_cost(run.usage, model)
        logger.info(
            "tool_loop_completed",
            model=model,
            turns=run.turn,
            round_trips=run.round_trips,
            tool_calls_executed=run.tool_calls_executed,
            forced_final=run.forced_final,
            prompt_tokens=run.usage.prompt_tokens,
            completion_tokens=run.usage.completion_tokens,
            estimated_cost=estimated_cost,
        )

        return OrchestrationResult(
            response=completion.model_dump(mode="json", exclude_unset=True),
            model=model,
            estimated_cost=estimated_cost,
            turns=run.turn,
            round_trips=run.round_trips,
            forced_final=run.forced_final,
        )

    # ─────────────────────────────────────────────────────────────────────
    # Steps
    # ─────────────────────────────────────────────────────────────────────

    def _validate_request(self, request: Any) -> dict[str, Any]:
        if not isinstance(request, dict):
            raise ValidationError("Request body must be a JSON object")

        messages = request.get("messages")
        if not isinstance(messages, list) or not messages:
            raise ValidationError("messages must be a non-empty list")
        if not all(isinstance(m, dict) for m in messages):
            raise ValidationError("Each message must be a JSON object")

        model = request.get("model")
        if not isinstance(model, str) or not model.strip():
            raise ValidationError("model is required")

        # Streaming is not supported by the loop
        return {k: v for k, v in request.items() if k != "stream"}

    async def _execute_tools(
        self,
        run: LoopRun,
        calls: list[ToolCall],
        content: str | None,
    ) -> None:
        """Append the assistant turn and one tool message per call, in order."""
        run.transcript.append({
            "role": "assistant",
            "content": content,
            "tool_calls": [call.to_openai() for call in calls],
        })
        for call in calls:
            result = await self.tools.execute(call)
            run.transcript.append(result.to_message())
            run.tool_calls_executed += 1

    def _final_request(self, params: dict[str, Any], run: LoopRun) -> dict[str, Any]:
        final = {k: v for k, v in params.items() if k not in TOOL_PARAMS}

        schema_name = None
        response_format = params.get("response_format")
        if isinstance(response_format, dict):
            schema_name = (response_format.get("json_schema") or {}).get("name")

        final["messages"] = [
            *run.transcript,
            {"role": "system", "content": force_final_instruction(schema_name)},
        ]
        final["temperature"] = FINAL_TEMPERATURE
        return final

    async def _call_model(
        self,
        client: AsyncOpenAI,
        run: LoopRun,
        body: dict[str, Any],
        timeout: float,
    ):
        kwargs = {k: v for k, v in body.items() if k in COMPLETION_PARAMS}
        extra = {k: v for k, v in body.items() if k not in COMPLETION_PARAMS}
        if extra:
            kwargs["extra_body"] = extra

        run.round_trips += 1
        try:
            completion = await client.chat.completions.create(**kwargs, timeout=timeout)
        except openai.APITimeoutError:
            logger.error(
                "model_call_timeout",
                model=body.get("model"),
                round_trip=run.round_trips,
                timeout=timeout,
            )
            raise UpstreamModelTimeoutError(
                f"OpenAI request timed out after {timeout:g}s", timeout=timeout
            )
        except openai.APIStatusError as e:
            logger.error(
                "model_call_failed",
                model=body.get("model"),
                round_trip=run.round_trips,
                status_code=e.status_code,
                error=str(e),
            )
            raise UpstreamModelError(str(e), status_code=e.status_code, body=upstream_body(e))
        except openai.APIConnectionError as e:
            logger.error(
                "model_connection_failed",
                model=body.get("model"),
                round_trip=run.round_trips,
                error=str(e),
            )
            raise UpstreamModelError(f"Could not reach OpenAI: {e}", status_code=503)

        run.usage.add(getattr(completion, "usage", None))
        if not completion.choices:
            raise UpstreamModelError("OpenAI returned no choices", status_code=502)

        logger.debug(
            "model_round_trip",
            model=body.get("model"),
            round_trip=run.round_trips,
            tools_offered="tools" in kwargs,
        )
        return completion
