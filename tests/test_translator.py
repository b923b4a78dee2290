# Translation Helps Proxy — Tool-calling relay for LLM chat
# Copyright (C) 2025–2026 Neven Kordic <neven@broodlink.ai>
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Tests for upstream <-> OpenAI function-calling translation."""

import pytest

from conftest import sample_descriptors

from translation_helps_proxy.errors import InvalidArgumentsError, MalformedToolCallError
from translation_helps_proxy.models import TextContent, ToolCallRequest
from translation_helps_proxy.translator import (
    apply_forced_arguments,
    callable_request_to_invocation,
    descriptor_to_callable,
    descriptors_to_callables,
    invocation_result_to_message,
    tool_call_requests,
)


def test_descriptor_becomes_function_declaration():
    scripture = sample_descriptors()[0]
    decl = descriptor_to_callable(scripture)
    assert decl == {
        "type": "function",
        "function": {
            "name": "fetch_scripture",
            "description": "Fetch scripture text for a reference",
            "parameters": scripture.input_schema,
        },
    }


def test_catalog_order_preserved():
    names = [d["function"]["name"] for d in descriptors_to_callables(sample_descriptors())]
    assert names == ["fetch_scripture", "fetch_translation_notes", "get_translation_word"]


def test_tool_call_requests_from_assistant_message():
    message = {
        "role": "assistant",
        "content": None,
        "tool_calls": [
            {"id": "call_1", "type": "function",
             "function": {"name": "fetch_scripture", "arguments": '{"reference": "John 3:16"}'}},
            {"id": "call_2", "type": "function",
             "function": {"name": "get_translation_word", "arguments": {"term": "love"}}},
        ],
    }
    requests = tool_call_requests(message)
    assert [r.id for r in requests] == ["call_1", "call_2"]
    assert requests[1].raw_arguments == '{"term": "love"}'
    assert tool_call_requests({"role": "assistant", "content": "hi"}) == []


def test_arguments_parsed_into_invocation():
    request = ToolCallRequest(id="c", tool_name="fetch_scripture", raw_arguments='{"reference": "John 3:16"}')
    invocation = callable_request_to_invocation(request)
    assert invocation.tool_name == "fetch_scripture"
    assert invocation.arguments == {"reference": "John 3:16"}


@pytest.mark.parametrize("raw", ["", "   "])
def test_empty_arguments_mean_no_arguments(raw):
    request = ToolCallRequest(id="c", tool_name="list_all", raw_arguments=raw)
    assert callable_request_to_invocation(request).arguments == {}


@pytest.mark.parametrize("raw", ['{"reference": ', "[1, 2]", '"text"'])
def test_malformed_arguments_raise(raw):
    request = ToolCallRequest(id="c", tool_name="fetch_scripture", raw_arguments=raw)
    with pytest.raises(MalformedToolCallError, match="Invalid tool call arguments for 'fetch_scripture'"):
        callable_request_to_invocation(request)


def test_malformed_is_an_invalid_arguments_error():
    assert issubclass(MalformedToolCallError, InvalidArgumentsError)


def test_result_message_joins_blocks():
    blocks = [TextContent(text="first"), TextContent(text="second")]
    message = invocation_result_to_message("call_1", "fetch_scripture", blocks)
    assert message == {
        "role": "tool",
        "tool_call_id": "call_1",
        "name": "fetch_scripture",
        "content": "first\n\nsecond",
    }


def test_forced_arguments_override_without_mutating():
    args = {"reference": "John 3:16", "language": "fr"}
    forced = apply_forced_arguments(args, {"language": "en", "organization": "unfoldingWord"})
    assert forced == {"reference": "John 3:16", "language": "en", "organization": "unfoldingWord"}
    assert args["language"] == "fr"
    assert apply_forced_arguments(args, None) == args
