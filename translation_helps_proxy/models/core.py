# Translation Helps Proxy — Tool-calling relay for LLM chat
# Copyright (C) 2025–2026 Neven Kordic <neven@broodlink.ai>
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Core Pydantic models for tools, tool calls and their results.

All models use ``extra="allow"`` for forward compatibility with new fields.
"""

from __future__ import annotations

import json
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Base(BaseModel):
    model_config = ConfigDict(extra="allow")


# ── Tools ────────────────────────────────────────────────────────────

def _empty_schema() -> dict[str, Any]:
    return {"type": "object", "properties": {}}


class ToolDescriptor(_Base):
    """A tool as advertised by the upstream server."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: str
    description: str = ""
    input_schema: dict[str, Any] = Field(default_factory=_empty_schema, alias="inputSchema")

    @property
    def properties(self) -> dict[str, Any]:
        return self.input_schema.get("properties") or {}

    @property
    def required(self) -> list[str]:
        return list(self.input_schema.get("required") or [])

    def to_wire(self) -> dict[str, Any]:
        """Upstream (MCP) JSON shape."""
        return self.model_dump(by_alias=True)


class CacheStatus(_Base):
    has_cache: bool = False
    age_seconds: float = 0.0
    tool_count: int = 0


# ── Tool calls ───────────────────────────────────────────────────────

class ToolCallRequest(_Base):
    """One function call requested by the model; lives for one iteration."""

    id: str
    tool_name: str
    raw_arguments: str = ""

    @classmethod
    def from_openai(cls, tool_call: dict[str, Any]) -> ToolCallRequest:
        func = tool_call.get("function") or {}
        arguments = func.get("arguments")
        if arguments is None:
            arguments = ""
        elif not isinstance(arguments, str):
            # Some providers send already-decoded objects.
            arguments = json.dumps(arguments)
        return cls(
            id=tool_call.get("id", ""),
            tool_name=func.get("name", ""),
            raw_arguments=arguments,
        )


class Invocation(_Base):
    tool_name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class TextContent(_Base):
    type: Literal["text"] = "text"
    text: str


class ToolInvocationResult(_Base):
    tool_call_id: str
    tool_name: str
    content: str
    is_error: bool = False

    def to_message(self) -> dict[str, Any]:
        """Tool-role chat message for the transcript."""
        return {
            "role": "tool",
            "tool_call_id": self.tool_call_id,
            "name": self.tool_name,
            "content": self.content,
        }


# ── Models endpoint ──────────────────────────────────────────────────

class ModelCard(_Base):
    id: str
    object: str = "model"
    created: Optional[int] = None
    owned_by: str = "translation-helps"


# ── Chat completions ─────────────────────────────────────────────────

class ChatMessage(_Base):
    role: Literal["system", "user", "assistant", "tool"]
    content: Optional[Any] = None
    name: Optional[str] = None
    tool_calls: Optional[list[dict[str, Any]]] = None
    tool_call_id: Optional[str] = None


class ChatCompletionRequest(_Base):
    """Incoming OpenAI-style request. Unknown fields pass through to the LLM."""

    model: str = Field(min_length=1)
    messages: list[ChatMessage]
    stream: bool = False
    n: Optional[int] = None
