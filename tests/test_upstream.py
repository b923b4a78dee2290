# Translation Helps Proxy — Tool-calling relay for LLM chat
# Copyright (C) 2025–2026 Neven Kordic <neven@broodlink.ai>
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Tests for ToolCatalogClient JSON-RPC calls and the catalog cache."""

import pytest
from aiohttp import web

from translation_helps_proxy.errors import UpstreamResponseError
from translation_helps_proxy.models import ToolDescriptor
from translation_helps_proxy.upstream import ToolCatalogCache, ToolCatalogClient


@pytest.mark.asyncio
async def test_list_tools_sends_jsonrpc_envelope(upstream, upstream_config):
    async with ToolCatalogClient(upstream_config) as catalog:
        tools = await catalog.list_tools()

    assert [t.name for t in tools] == ["fetch_scripture", "fetch_translation_notes", "get_translation_word"]
    assert tools[0].required == ["reference", "language"]
    envelope = upstream.envelopes[0]
    assert envelope["jsonrpc"] == "2.0"
    assert envelope["method"] == "tools/list"
    assert envelope["id"]
    assert "params" not in envelope


@pytest.mark.asyncio
async def test_invoke_tool_returns_result_payload(upstream, upstream_config):
    upstream.results["fetch_scripture"] = {"scripture": [{"text": "In the beginning"}]}
    async with ToolCatalogClient(upstream_config) as catalog:
        result = await catalog.invoke_tool("fetch_scripture", {"reference": "Gen 1:1"})

    assert result == {"scripture": [{"text": "In the beginning"}]}
    assert upstream.envelopes[0]["params"] == {"name": "fetch_scripture", "arguments": {"reference": "Gen 1:1"}}


@pytest.mark.asyncio
async def test_every_tool_uses_the_same_endpoint(upstream, upstream_config):
    async with ToolCatalogClient(upstream_config) as catalog:
        for name in ("fetch_scripture", "get_translation_word", "anything_else"):
            await catalog.invoke_tool(name, {})
    assert [name for name, _ in upstream.calls] == ["fetch_scripture", "get_translation_word", "anything_else"]


@pytest.mark.asyncio
async def test_cold_start_statuses_are_retried(upstream, upstream_config):
    upstream.statuses = [503, 503]
    async with ToolCatalogClient(upstream_config) as catalog:
        tools = await catalog.list_tools()
    assert len(tools) == 3
    assert upstream.request_count == 3


@pytest.mark.asyncio
async def test_non_retryable_status_raises_with_upstream_message(upstream, upstream_config):
    upstream.statuses = [400]
    async with ToolCatalogClient(upstream_config) as catalog:
        with pytest.raises(UpstreamResponseError, match="stub status 400") as exc_info:
            await catalog.list_tools()
    assert exc_info.value.status_code == 400
    assert upstream.request_count == 1


@pytest.mark.asyncio
async def test_error_member_raises(upstream, upstream_config):
    async with ToolCatalogClient(upstream_config) as catalog:
        with pytest.raises(UpstreamResponseError, match="Method not found"):
            await catalog._rpc("resources/list")


@pytest.mark.asyncio
async def test_bare_tools_body_is_accepted(serve, upstream_config):
    async def handler(request):
        return web.json_response({"tools": [{"name": "only_tool"}]})

    app = web.Application()
    app.router.add_post("/", handler)
    server = await serve(app)
    upstream_config.upstream_url = str(server.make_url("/"))

    async with ToolCatalogClient(upstream_config) as catalog:
        tools = await catalog.list_tools()
    assert tools == [ToolDescriptor(name="only_tool")]


@pytest.mark.asyncio
async def test_missing_tools_array_raises(serve, upstream_config):
    async def handler(request):
        return web.json_response({"jsonrpc": "2.0", "id": "1", "result": {"items": []}})

    app = web.Application()
    app.router.add_post("/", handler)
    server = await serve(app)
    upstream_config.upstream_url = str(server.make_url("/"))

    async with ToolCatalogClient(upstream_config) as catalog:
        with pytest.raises(UpstreamResponseError, match="Invalid tools response"):
            await catalog.list_tools()


@pytest.mark.asyncio
async def test_non_json_body_raises(serve, upstream_config):
    async def handler(request):
        return web.Response(text="<html>gateway</html>", content_type="text/html")

    app = web.Application()
    app.router.add_post("/", handler)
    server = await serve(app)
    upstream_config.upstream_url = str(server.make_url("/"))

    async with ToolCatalogClient(upstream_config) as catalog:
        with pytest.raises(UpstreamResponseError, match="Invalid JSON"):
            await catalog.list_tools()


# ── Cache ───────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_get_tools_is_cached_until_cleared(upstream, upstream_config):
    async with ToolCatalogClient(upstream_config) as catalog:
        first = await catalog.get_tools()
        second = await catalog.get_tools()
        assert first == second
        assert upstream.methods() == ["tools/list"]

        catalog.clear_cache()
        assert not catalog.cache_status().has_cache
        await catalog.get_tools()
        assert upstream.methods() == ["tools/list", "tools/list"]


@pytest.mark.asyncio
async def test_refresh_bypasses_cache(upstream, upstream_config):
    async with ToolCatalogClient(upstream_config) as catalog:
        await catalog.get_tools()
        upstream.tools = upstream.tools[:1]
        tools = await catalog.get_tools(refresh=True)
    assert [t.name for t in tools] == ["fetch_scripture"]
    assert upstream.request_count == 2


@pytest.mark.asyncio
async def test_failed_refresh_serves_stale_catalog(upstream, upstream_config):
    async with ToolCatalogClient(upstream_config) as catalog:
        await catalog.get_tools()
        upstream.statuses = [400]
        tools = await catalog.get_tools(refresh=True)
    assert len(tools) == 3


@pytest.mark.asyncio
async def test_failed_first_fetch_propagates(upstream, upstream_config):
    upstream.statuses = [400]
    async with ToolCatalogClient(upstream_config) as catalog:
        with pytest.raises(UpstreamResponseError):
            await catalog.get_tools()
        assert not catalog.cache_status().has_cache


@pytest.mark.asyncio
async def test_cache_status_reports_count(upstream, upstream_config):
    async with ToolCatalogClient(upstream_config) as catalog:
        await catalog.get_tools()
        status = catalog.cache_status()
    assert status.has_cache
    assert status.tool_count == 3
    assert status.age_seconds >= 0


def test_cache_ttl_expires():
    cache = ToolCatalogCache(ttl=0)
    cache.populate([ToolDescriptor(name="a")])
    assert cache.get() is None
    assert cache.stale() == [ToolDescriptor(name="a")]


def test_cache_population_replaces_value():
    cache = ToolCatalogCache()
    cache.populate([ToolDescriptor(name="a")])
    cache.populate([ToolDescriptor(name="b")])
    assert [t.name for t in cache.get()] == ["b"]


def test_two_clients_do_not_share_a_cache(config):
    assert ToolCatalogClient(config).cache is not ToolCatalogClient(config).cache
