# Translation Helps Proxy — Tool-calling relay for LLM chat
# Copyright (C) 2025–2026 Neven Kordic <neven@broodlink.ai>
# SPDX-License-Identifier: AGPL-3.0-or-later

"""ChatOrchestrator — the tool-calling agent loop.

The loop is an explicit state machine with a bounded round counter::

    AWAITING_MODEL ─┬─> NO_TOOL_CALLS ──────────────────────────> DONE
                    └─> TOOL_CALLS_REQUESTED -> EXECUTING_TOOLS ─┬─> AWAITING_MODEL
                                                                 └─> ITERATION_LIMIT
    ITERATION_LIMIT -> FINAL_CALL_WITHOUT_TOOLS -> DONE
"""

from __future__ import annotations

import asyncio
import enum
import logging
from typing import Any, Mapping, Protocol

from pydantic import ValidationError

from .config import ProxyConfig
from .errors import ChatRequestError, TranslationHelpsError
from .formatter import format_error, join_blocks
from .models import (
    ChatCompletionRequest,
    TextContent,
    ToolCallRequest,
    ToolDescriptor,
    ToolInvocationResult,
)
from .translator import (
    apply_forced_arguments,
    callable_request_to_invocation,
    descriptors_to_callables,
    invocation_result_to_message,
    tool_call_requests,
)

logger = logging.getLogger(__name__)

# Request fields the orchestrator owns; everything else passes through.
OWNED_FIELDS = frozenset({"messages", "tools"})
# Dropped from the final no-tools call, where they would be invalid.
TOOL_ONLY_FIELDS = frozenset({"tool_choice", "parallel_tool_calls"})


class ToolProvider(Protocol):
    async def list_tools(self) -> list[ToolDescriptor]: ...

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> list[TextContent]: ...


class ChatModel(Protocol):
    async def create_chat_completion(
        self, params: dict[str, Any], api_key: str | None = None
    ) -> dict[str, Any]: ...


class LoopState(enum.Enum):
    AWAITING_MODEL = "awaiting_model"
    TOOL_CALLS_REQUESTED = "tool_calls_requested"
    NO_TOOL_CALLS = "no_tool_calls"
    EXECUTING_TOOLS = "executing_tools"
    ITERATION_LIMIT = "iteration_limit"
    FINAL_CALL_WITHOUT_TOOLS = "final_call_without_tools"
    DONE = "done"


def validate_chat_request(request: Any) -> ChatCompletionRequest:
    """Reject requests the loop cannot run. Raises ``ChatRequestError``."""
    try:
        parsed = ChatCompletionRequest.model_validate(request)
    except ValidationError as e:
        first = e.errors()[0]
        loc = first.get("loc") or ()
        param = str(loc[0]) if loc else None
        where = ".".join(str(part) for part in loc)
        detail = f"{where}: {first['msg']}" if where else first["msg"]
        raise ChatRequestError(f"Invalid request: {detail}", param=param) from e
    if not parsed.messages:
        raise ChatRequestError("Messages array cannot be empty", param="messages")
    if parsed.stream:
        raise ChatRequestError("Streaming is not supported", param="stream")
    return parsed


def _choice_index(pair: tuple[int, dict[str, Any]]) -> int:
    # Some providers send "index": null; fall back to list position.
    position, choice = pair
    index = choice.get("index")
    return index if isinstance(index, int) else position


def first_tool_call_choice(response: Mapping[str, Any]) -> dict[str, Any] | None:
    """Lowest-index choice whose message requests tools, if any."""
    choices = response.get("choices") or []
    ordered = sorted(enumerate(choices), key=_choice_index)
    for _, choice in ordered:
        message = choice.get("message") or {}
        if message.get("tool_calls"):
            return choice
    return None


class ChatOrchestrator:
    """Runs one chat completion end to end, executing requested tools.

    Holds no per-request state, so one instance can serve concurrent
    requests. ``forced_arguments`` are written into every tool call and win
    over whatever the model supplied.
    """

    def __init__(
        self,
        tools: ToolProvider,
        llm: ChatModel,
        max_tool_iterations: int = 5,
        forced_arguments: Mapping[str, Any] | None = None,
        enable_tool_execution: bool = True,
    ) -> None:
        self.tools = tools
        self.llm = llm
        self.max_tool_iterations = max_tool_iterations
        self.forced_arguments = dict(forced_arguments or {})
        self.enable_tool_execution = enable_tool_execution

    @classmethod
    def from_config(cls, config: ProxyConfig, tools: ToolProvider, llm: ChatModel) -> ChatOrchestrator:
        return cls(
            tools,
            llm,
            max_tool_iterations=config.max_tool_iterations,
            forced_arguments=config.forced_arguments,
            enable_tool_execution=config.enable_tool_execution,
        )

    async def complete(self, request: Mapping[str, Any], api_key: str | None = None) -> dict[str, Any]:
        """Run the agent loop and return the last model response unmodified.

        LLM failures propagate; the transcript built so far is discarded.
        """
        validate_chat_request(request)

        callables = descriptors_to_callables(await self.tools.list_tools())
        params = {k: v for k, v in request.items() if k not in OWNED_FIELDS}
        transcript: list[dict[str, Any]] = list(request["messages"])
        logger.info(
            "Starting tool loop with %d tools",
            len(callables),
            extra={"model": request.get("model"), "n": request.get("n", 1)},
        )

        rounds = 0
        response: dict[str, Any] = {}
        selected: dict[str, Any] | None = None
        state = LoopState.AWAITING_MODEL if self.max_tool_iterations > 0 else LoopState.ITERATION_LIMIT

        while state is not LoopState.DONE:
            if state is LoopState.AWAITING_MODEL:
                response = await self._ask_model(params, transcript, callables, api_key)
                selected = first_tool_call_choice(response)
                state = LoopState.NO_TOOL_CALLS if selected is None else LoopState.TOOL_CALLS_REQUESTED

            elif state is LoopState.NO_TOOL_CALLS:
                logger.info("No tool calls requested after %d rounds", rounds)
                state = LoopState.DONE

            elif state is LoopState.TOOL_CALLS_REQUESTED:
                if not self.enable_tool_execution:
                    logger.info("Tool execution disabled, returning tool calls to caller")
                    state = LoopState.DONE
                    continue
                message = selected["message"]
                transcript.append({
                    "role": "assistant",
                    "content": message.get("content"),
                    "tool_calls": message["tool_calls"],
                })
                state = LoopState.EXECUTING_TOOLS

            elif state is LoopState.EXECUTING_TOOLS:
                requests = tool_call_requests(selected["message"])
                logger.info(
                    "Executing %d tool calls from choice %s",
                    len(requests), selected.get("index", 0),
                )
                transcript.extend(await self._execute_tool_calls(requests))
                rounds += 1
                state = (
                    LoopState.ITERATION_LIMIT
                    if rounds >= self.max_tool_iterations
                    else LoopState.AWAITING_MODEL
                )

            elif state is LoopState.ITERATION_LIMIT:
                logger.warning("Reached maximum tool iterations (%d)", self.max_tool_iterations)
                state = LoopState.FINAL_CALL_WITHOUT_TOOLS

            elif state is LoopState.FINAL_CALL_WITHOUT_TOOLS:
                final_params = {k: v for k, v in params.items() if k not in TOOL_ONLY_FIELDS}
                response = await self._ask_model(final_params, transcript, None, api_key)
                state = LoopState.DONE

        return response

    async def _ask_model(
        self,
        params: dict[str, Any],
        transcript: list[dict[str, Any]],
        callables: list[dict[str, Any]] | None,
        api_key: str | None,
    ) -> dict[str, Any]:
        payload = {**params, "messages": list(transcript)}
        if callables:
            payload["tools"] = callables
        else:
            payload = {k: v for k, v in payload.items() if k not in TOOL_ONLY_FIELDS}
        return await self.llm.create_chat_completion(payload, api_key=api_key)

    async def _execute_tool_calls(self, requests: list[ToolCallRequest]) -> list[dict[str, Any]]:
        """Run calls concurrently; results come back in request order."""
        return list(await asyncio.gather(*(self._execute_tool_call(r) for r in requests)))

    async def _execute_tool_call(self, request: ToolCallRequest) -> dict[str, Any]:
        try:
            invocation = callable_request_to_invocation(request)
            arguments = apply_forced_arguments(invocation.arguments, self.forced_arguments)
            logger.debug("Executing tool %s", invocation.tool_name, extra={"arguments": arguments})
            blocks = await self.tools.call_tool(invocation.tool_name, arguments)
        except TranslationHelpsError as e:
            logger.warning("Tool call %s (%s) failed: %s", request.id, request.tool_name, e)
            return self._error_message(request, str(e))
        except Exception as e:
            logger.exception("Unexpected error executing tool %s", request.tool_name)
            return self._error_message(request, str(e) or type(e).__name__)
        return invocation_result_to_message(request.id, request.tool_name, blocks)

    @staticmethod
    def _error_message(request: ToolCallRequest, detail: str) -> dict[str, Any]:
        return ToolInvocationResult(
            tool_call_id=request.id,
            tool_name=request.tool_name,
            content=join_blocks(format_error(detail)),
            is_error=True,
        ).to_message()
