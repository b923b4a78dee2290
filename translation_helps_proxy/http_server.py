# Translation Helps Proxy — Tool-calling relay for LLM chat
# Copyright (C) 2025–2026 Neven Kordic <neven@broodlink.ai>
# SPDX-License-Identifier: AGPL-3.0-or-later

"""OpenAI-compatible HTTP surface built on aiohttp.web.

Routes::

    POST /v1/chat/completions   chat with automatic tool execution
    GET  /v1/models             the proxy's model card
    GET  /v1/tools              filtered tools as OpenAI function declarations
    GET  /v1/info               name, capabilities, active configuration
    GET  /health                upstream reachability

    POST /mcp/message           tools/list and tools/call over plain HTTP
    GET  /mcp/health            upstream reachability for MCP callers
    GET  /mcp/info              MCP surface description

The ``/mcp`` routes take ``enabledTools``, ``hiddenParams`` and
``filterBookChapterNotes`` query parameters that narrow the policy for one
request. Both surfaces share one upstream catalog.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any

from aiohttp import web

from . import __version__
from .client import TranslationHelpsClient
from .config import ProxyConfig, _split_csv
from .errors import (
    ChatRequestError,
    InvalidArgumentsError,
    LLMProviderError,
    ToolDisabledError,
    ToolNotFoundError,
    TranslationHelpsError,
)
from .filters import CapabilityPolicy, filter_arguments, is_book_or_chapter_note
from .llm import LLMClient
from .models import ModelCard
from .orchestrator import ChatOrchestrator
from .translator import descriptors_to_callables

logger = logging.getLogger(__name__)

PROXY_MODEL_ID = "translation-helps-proxy"
SERVICE_NAME = "translation-helps-openai-bridge"

CONFIG_KEY = web.AppKey("config", ProxyConfig)
CLIENT_KEY = web.AppKey("client", TranslationHelpsClient)
MCP_CLIENT_KEY = web.AppKey("mcp_client", TranslationHelpsClient)
LLM_KEY = web.AppKey("llm", LLMClient)
ORCHESTRATOR_KEY = web.AppKey("orchestrator", ChatOrchestrator)

POLICY_ERRORS = (ToolNotFoundError, ToolDisabledError, InvalidArgumentsError)


def _error_body(message: str, error_type: str, code: str | None = None) -> dict[str, Any]:
    return {"error": {"message": message, "type": error_type, "param": None, "code": code}}


@web.middleware
async def error_middleware(request: web.Request, handler: Any) -> web.StreamResponse:
    """Render every failure as an OpenAI-shaped error body."""
    try:
        return await handler(request)
    except web.HTTPException as e:
        if e.status < 400:
            raise
        return web.json_response(_error_body(e.reason, "invalid_request_error"), status=e.status)
    except LLMProviderError as e:
        if e.status_code >= 500:
            logger.error("LLM request failed (%d): %s", e.status_code, e.message)
        return web.json_response(e.to_dict(), status=e.status_code)
    except Exception as e:
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return web.json_response(
            _error_body(str(e) or "Internal server error", "internal_error", "internal_error"),
            status=500,
        )


def _bearer_token(request: web.Request) -> str | None:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    return None


def _public_config(config: ProxyConfig, client: TranslationHelpsClient) -> dict[str, Any]:
    return {
        "upstreamUrl": config.upstream_url,
        "maxToolIterations": config.max_tool_iterations,
        "enableToolExecution": config.enable_tool_execution,
        "language": config.language,
        "organization": config.organization,
        **client.policy.describe(),
    }


# ── Handlers ─────────────────────────────────────────────────────────

async def chat_completions(request: web.Request) -> web.Response:
    try:
        body = await request.json()
    except ValueError as e:
        raise ChatRequestError("Request body must be valid JSON") from e

    # Clients that pick the advertised model id get the configured LLM model.
    if isinstance(body, dict) and body.get("model") == PROXY_MODEL_ID:
        body = {**body, "model": request.app[CONFIG_KEY].llm_model}

    orchestrator = request.app[ORCHESTRATOR_KEY]
    response = await orchestrator.complete(body, api_key=_bearer_token(request))
    return web.json_response(response)


async def list_models(request: web.Request) -> web.Response:
    card = ModelCard(id=PROXY_MODEL_ID, created=int(time.time()))
    return web.json_response({"object": "list", "data": [card.model_dump()]})


async def list_tools(request: web.Request) -> web.Response:
    tools = await request.app[CLIENT_KEY].list_tools()
    return web.json_response({"object": "list", "data": descriptors_to_callables(tools)})


async def health(request: web.Request) -> web.Response:
    client = request.app[CLIENT_KEY]
    connected = await client.test_connection()
    return web.json_response({
        "status": "healthy" if connected else "degraded",
        "upstreamConnected": connected,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "config": _public_config(request.app[CONFIG_KEY], client),
    })


async def info(request: web.Request) -> web.Response:
    config = request.app[CONFIG_KEY]
    client = request.app[CLIENT_KEY]
    return web.json_response({
        "name": SERVICE_NAME,
        "version": __version__,
        "model": PROXY_MODEL_ID,
        "capabilities": {
            "toolCalling": True,
            "toolExecution": config.enable_tool_execution,
            "streaming": False,
        },
        "config": _public_config(config, client),
        "cache": client.cache_status().model_dump(),
    })


# ── MCP over HTTP ────────────────────────────────────────────────────

def _query_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _request_policy(request: web.Request, base: CapabilityPolicy) -> CapabilityPolicy:
    """``base`` with any policy query parameters applied."""
    query = request.query
    changes: dict[str, Any] = {}
    if "enabledTools" in query:
        enabled = _split_csv(query["enabledTools"])
        changes["allowed_tool_names"] = frozenset(enabled) if enabled else None
    if "hiddenParams" in query:
        changes["hidden_parameter_names"] = frozenset(_split_csv(query["hiddenParams"]) or ())
    if "filterBookChapterNotes" in query:
        flag = _query_flag(query["filterBookChapterNotes"])
        changes["suppressed_annotation_predicate"] = is_book_or_chapter_note if flag else None
    return base.updated(**changes) if changes else base


def _mcp_client(request: web.Request) -> TranslationHelpsClient:
    base = request.app[MCP_CLIENT_KEY]
    policy = _request_policy(request, base.policy)
    if policy is base.policy:
        return base
    return TranslationHelpsClient(base.config, policy=policy, catalog=base.catalog)


async def mcp_message(request: web.Request) -> web.Response:
    try:
        body = await request.json()
    except ValueError as e:
        raise web.HTTPBadRequest(reason="Request body must be valid JSON") from e
    if not isinstance(body, dict) or not body.get("method"):
        raise web.HTTPBadRequest(reason="Missing method field")

    method = body["method"]
    params = body.get("params") or {}
    if not isinstance(params, dict):
        raise web.HTTPBadRequest(reason="params must be an object")
    client = _mcp_client(request)
    logger.debug("MCP message %s", method, extra={"policy": client.policy.describe()})

    if method == "tools/list":
        try:
            tools = await client.list_tools()
        except TranslationHelpsError as e:
            logger.warning("MCP tools/list failed: %s", e)
            return web.json_response(_error_body(e.message, "upstream_error", e.code), status=502)
        return web.json_response({"tools": [t.to_wire() for t in tools]})

    if method == "tools/call":
        name = params.get("name")
        arguments = params.get("arguments") or {}
        if not name:
            raise web.HTTPBadRequest(reason="Missing tool name")
        if not isinstance(arguments, dict):
            raise web.HTTPBadRequest(reason="arguments must be an object")
        try:
            blocks = await client.call_tool(name, filter_arguments(arguments, client.policy))
        except POLICY_ERRORS as e:
            return web.json_response(_error_body(e.message, "invalid_request_error", e.code), status=400)
        except TranslationHelpsError as e:
            logger.warning("MCP tool %s failed: %s", name, e)
            return web.json_response(_error_body(e.message, "upstream_error", e.code), status=502)
        return web.json_response({"content": [block.model_dump() for block in blocks]})

    raise web.HTTPBadRequest(reason=f"Unknown method: {method}")


async def mcp_health(request: web.Request) -> web.Response:
    connected = await request.app[MCP_CLIENT_KEY].test_connection()
    return web.json_response({
        "status": "healthy" if connected else "degraded",
        "upstreamConnected": connected,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    })


async def mcp_info(request: web.Request) -> web.Response:
    return web.json_response({
        "name": "translation-helps-proxy",
        "version": __version__,
        "protocol": "mcp",
        "transport": "http",
        "capabilities": {"tools": True},
        "config": request.app[MCP_CLIENT_KEY].policy.describe(),
    })


# ── App factory ──────────────────────────────────────────────────────

async def _close_clients(app: web.Application) -> None:
    # The MCP client shares this client's catalog.
    await app[CLIENT_KEY].close()
    await app[LLM_KEY].close()


def create_app(
    config: ProxyConfig | None = None,
    client: TranslationHelpsClient | None = None,
    llm: LLMClient | None = None,
) -> web.Application:
    """Build the application; collaborators are created from ``config`` unless given.

    ``client`` serves the chat surface. Without one, its policy comes from
    ``CapabilityPolicy.for_chat``, which drops intro notes by default.
    """
    config = config or ProxyConfig.from_env()
    client = client or TranslationHelpsClient(config, policy=CapabilityPolicy.for_chat(config))
    llm = llm or LLMClient(config)

    app = web.Application(middlewares=[error_middleware])
    app[CONFIG_KEY] = config
    app[CLIENT_KEY] = client
    app[MCP_CLIENT_KEY] = TranslationHelpsClient(
        config, policy=CapabilityPolicy.from_config(config), catalog=client.catalog
    )
    app[LLM_KEY] = llm
    app[ORCHESTRATOR_KEY] = ChatOrchestrator.from_config(config, client, llm)

    app.router.add_post("/v1/chat/completions", chat_completions)
    app.router.add_get("/v1/models", list_models)
    app.router.add_get("/v1/tools", list_tools)
    app.router.add_get("/v1/info", info)
    app.router.add_get("/health", health)
    app.router.add_post("/mcp/message", mcp_message)
    app.router.add_get("/mcp/health", mcp_health)
    app.router.add_get("/mcp/info", mcp_info)
    app.on_cleanup.append(_close_clients)
    return app


def run_server(config: ProxyConfig) -> None:
    """Serve until interrupted."""
    logger.info("Starting %s on http://%s:%d", SERVICE_NAME, config.host, config.port)
    web.run_app(create_app(config), host=config.host, port=config.port, print=logger.info)
