# Translation Helps Proxy — Tool-calling relay for LLM chat
# Copyright (C) 2025–2026 Neven Kordic <neven@broodlink.ai>
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Shared test fixtures: config, tool catalog samples, stub upstream and LLM servers."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from translation_helps_proxy.client import TranslationHelpsClient
from translation_helps_proxy.config import ProxyConfig, RetryPolicy
from translation_helps_proxy.models import CacheStatus, ToolDescriptor

SAMPLE_TOOLS: list[dict[str, Any]] = [
    {
        "name": "fetch_scripture",
        "description": "Fetch scripture text for a reference",
        "inputSchema": {
            "type": "object",
            "properties": {
                "reference": {"type": "string"},
                "language": {"type": "string"},
                "organization": {"type": "string"},
            },
            "required": ["reference", "language"],
        },
    },
    {
        "name": "fetch_translation_notes",
        "description": "Translation notes for a reference",
        "inputSchema": {
            "type": "object",
            "properties": {
                "reference": {"type": "string"},
                "language": {"type": "string"},
            },
            "required": ["reference"],
        },
    },
    {
        "name": "get_translation_word",
        "description": "Look up a translation word",
        "inputSchema": {
            "type": "object",
            "properties": {"term": {"type": "string"}},
            "required": ["term"],
        },
    },
]

JOHN_3_16 = (
    "For God so loved the world, that he gave his only Son, that whoever "
    "believes in him should not perish but have eternal life."
)


def sample_descriptors() -> list[ToolDescriptor]:
    return [ToolDescriptor.model_validate(t) for t in SAMPLE_TOOLS]


@pytest.fixture
def config() -> ProxyConfig:
    """Test config with fast retries and no real network endpoints."""
    return ProxyConfig(
        upstream_url="http://127.0.0.1:9/api/mcp",
        retry=RetryPolicy(max_retries=2, base_delay_ms=5, backoff_factor=2, timeout_ms=2000),
        max_tool_iterations=5,
        llm_base_url="http://127.0.0.1:9",
        llm_api_key="sk-config",
        llm_model="test-model",
        llm_timeout=10,
    )


@pytest.fixture
def mock_catalog() -> MagicMock:
    """ToolCatalogClient stand-in with the sample catalog."""
    catalog = MagicMock()
    catalog.get_tools = AsyncMock(return_value=sample_descriptors())
    catalog.invoke_tool = AsyncMock(return_value={"scripture": [{"text": JOHN_3_16, "translation": "ULT"}]})
    catalog.close = AsyncMock()
    catalog.clear_cache = MagicMock()
    catalog.cache_status = MagicMock(return_value=CacheStatus(has_cache=True, tool_count=3))
    return catalog


@pytest.fixture
def helps_client(config: ProxyConfig, mock_catalog: MagicMock) -> TranslationHelpsClient:
    return TranslationHelpsClient(config, catalog=mock_catalog)


# ── Stub servers ────────────────────────────────────────────────────

class StubUpstream:
    """Minimal JSON-RPC tool server.

    ``statuses`` is consumed one entry per request before normal handling,
    which makes cold starts easy to script.
    """

    def __init__(self, tools: list[dict[str, Any]] | None = None) -> None:
        self.tools = list(SAMPLE_TOOLS if tools is None else tools)
        self.results: dict[str, Any] = {}
        self.statuses: list[int] = []
        self.delay = 0.0
        self.envelopes: list[dict[str, Any]] = []
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.url = ""

    @property
    def request_count(self) -> int:
        return len(self.envelopes)

    def methods(self) -> list[str]:
        return [e.get("method") for e in self.envelopes]

    async def handle(self, request: web.Request) -> web.Response:
        envelope = await request.json()
        self.envelopes.append(envelope)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.statuses:
            status = self.statuses.pop(0)
            return web.json_response({"error": {"message": f"stub status {status}"}}, status=status)

        method = envelope.get("method")
        if method == "tools/list":
            return web.json_response({"jsonrpc": "2.0", "id": envelope["id"], "result": {"tools": self.tools}})
        if method == "tools/call":
            params = envelope.get("params") or {}
            name, arguments = params.get("name"), params.get("arguments") or {}
            self.calls.append((name, arguments))
            result = self.results.get(name, {"content": [{"type": "text", "text": f"{name} ok"}]})
            if callable(result):
                result = result(arguments)
            return web.json_response({"jsonrpc": "2.0", "id": envelope["id"], "result": result})
        return web.json_response(
            {"jsonrpc": "2.0", "id": envelope.get("id"), "error": {"code": -32601, "message": "Method not found"}}
        )

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/api/mcp", self.handle)
        return app


class StubLLM:
    """OpenAI-style chat completions endpoint driven by a ``responder(body)``."""

    def __init__(self, responder: Callable[[dict[str, Any]], dict[str, Any]]) -> None:
        self.responder = responder
        self.status = 200
        self.requests: list[dict[str, Any]] = []
        self.auth_headers: list[str | None] = []
        self.base_url = ""

    async def handle(self, request: web.Request) -> web.Response:
        body = await request.json()
        self.requests.append(body)
        self.auth_headers.append(request.headers.get("Authorization"))
        return web.json_response(self.responder(body), status=self.status)

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/v1/chat/completions", self.handle)
        return app


@pytest_asyncio.fixture
async def serve():
    """Start aiohttp apps on local ports; all are closed after the test."""
    servers: list[TestServer] = []

    async def _serve(app: web.Application) -> TestServer:
        server = TestServer(app)
        await server.start_server()
        servers.append(server)
        return server

    yield _serve
    for server in servers:
        await server.close()


@pytest_asyncio.fixture
async def upstream(serve) -> StubUpstream:
    stub = StubUpstream()
    server = await serve(stub.app())
    stub.url = str(server.make_url("/api/mcp"))
    return stub


@pytest.fixture
def upstream_config(config: ProxyConfig, upstream: StubUpstream) -> ProxyConfig:
    return replace(config, upstream_url=upstream.url)
