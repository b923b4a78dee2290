# Translation Helps Proxy — Tool-calling relay for LLM chat
# Copyright (C) 2025–2026 Neven Kordic <neven@broodlink.ai>
# SPDX-License-Identifier: AGPL-3.0-or-later
"""Mapping between upstream tool shapes and OpenAI function-calling shapes.

Everything here is pure: no I/O, no state.
"""

from __future__ import annotations

import json
from typing import Any, Iterable, Mapping

from .errors import MalformedToolCallError
from .formatter import join_blocks
from .models import (
    Invocation,
    TextContent,
    ToolCallRequest,
    ToolDescriptor,
    ToolInvocationResult,
)


def descriptor_to_callable(descriptor: ToolDescriptor) -> dict[str, Any]:
    """Upstream descriptor -> OpenAI ``tools`` entry; schema kept verbatim."""
    return {
        "type": "function",
        "function": {
            "name": descriptor.name,
            "description": descriptor.description,
            "parameters": descriptor.input_schema,
        },
    }


def descriptors_to_callables(catalog: Iterable[ToolDescriptor]) -> list[dict[str, Any]]:
    return [descriptor_to_callable(d) for d in catalog]


def tool_call_requests(message: Mapping[str, Any]) -> list[ToolCallRequest]:
    """Tool calls carried by an assistant message, in request order."""
    return [ToolCallRequest.from_openai(tc) for tc in message.get("tool_calls") or []]


def callable_request_to_invocation(request: ToolCallRequest) -> Invocation:
    """Parse the model's JSON argument string.

    Raises ``MalformedToolCallError`` when it is not a JSON object, so the
    caller can hand the problem back to the model instead of failing.
    """
    raw = request.raw_arguments.strip()
    if not raw:
        return Invocation(tool_name=request.tool_name)
    try:
        arguments = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedToolCallError(
            f"Invalid tool call arguments for '{request.tool_name}': {e}"
        ) from e
    if not isinstance(arguments, dict):
        raise MalformedToolCallError(
            f"Invalid tool call arguments for '{request.tool_name}': expected a JSON object"
        )
    return Invocation(tool_name=request.tool_name, arguments=arguments)


def invocation_result_to_message(
    call_id: str, tool_name: str, blocks: Iterable[TextContent]
) -> dict[str, Any]:
    """Tool-role message whose content is the blocks joined by blank lines."""
    return ToolInvocationResult(
        tool_call_id=call_id,
        tool_name=tool_name,
        content=join_blocks(blocks),
    ).to_message()


def apply_forced_arguments(
    arguments: Mapping[str, Any], forced: Mapping[str, Any] | None
) -> dict[str, Any]:
    """Copy of ``arguments`` with every ``forced`` field set, overriding the model."""
    merged = dict(arguments)
    if forced:
        merged.update(forced)
    return merged
