# Translation Helps Proxy — Tool-calling relay for LLM chat
# Copyright (C) 2025–2026 Neven Kordic <neven@broodlink.ai>
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Pydantic v2 models for tools, tool calls and upstream results."""

from .core import (
    ChatCompletionRequest,
    ChatMessage,
    CacheStatus,
    Invocation,
    ModelCard,
    TextContent,
    ToolCallRequest,
    ToolDescriptor,
    ToolInvocationResult,
)
from .results import (
    McpContentResult,
    NotesResult,
    QuestionsResult,
    RawResult,
    ScriptureResult,
    SingleWordResult,
    UpstreamResult,
    WordsResult,
    WrappedResult,
    classify_result,
)

__all__ = [
    # Chat
    "ChatCompletionRequest",
    "ChatMessage",
    # Tools and calls
    "CacheStatus",
    "Invocation",
    "ModelCard",
    "TextContent",
    "ToolCallRequest",
    "ToolDescriptor",
    "ToolInvocationResult",
    # Upstream result shapes
    "McpContentResult",
    "NotesResult",
    "QuestionsResult",
    "RawResult",
    "ScriptureResult",
    "SingleWordResult",
    "UpstreamResult",
    "WordsResult",
    "WrappedResult",
    "classify_result",
]
