# Translation Helps Proxy — Tool-calling relay for LLM chat
# Copyright (C) 2025–2026 Neven Kordic <neven@broodlink.ai>
# SPDX-License-Identifier: AGPL-3.0-or-later
"""JSON-RPC client for the upstream tool server, with a tool catalog cache."""

from __future__ import annotations

import json
import logging
import time
import uuid
from typing import Any

import aiohttp
from pydantic import ValidationError

from ._transport import FetchResponse, ResilientFetcher
from .config import ProxyConfig
from .errors import TranslationHelpsError, UpstreamResponseError
from .models import CacheStatus, ToolDescriptor

logger = logging.getLogger(__name__)


class ToolCatalogCache:
    """In-memory tool catalog. Populate replaces, invalidate clears.

    Owned by one ``ToolCatalogClient``; two clients never share a cache.
    """

    def __init__(self, ttl: float | None = None) -> None:
        self.ttl = ttl
        self._tools: list[ToolDescriptor] | None = None
        self._fetched_at = 0.0

    def populate(self, tools: list[ToolDescriptor]) -> None:
        self._tools = list(tools)
        self._fetched_at = time.monotonic()

    def invalidate(self) -> None:
        self._tools = None
        self._fetched_at = 0.0
        logger.debug("Tool catalog cache cleared")

    def get(self) -> list[ToolDescriptor] | None:
        """Cached catalog, or None when empty or past its TTL."""
        if self._tools is None:
            return None
        if self.ttl is not None and time.monotonic() - self._fetched_at >= self.ttl:
            return None
        return list(self._tools)

    def stale(self) -> list[ToolDescriptor] | None:
        """Cached catalog regardless of TTL."""
        return list(self._tools) if self._tools is not None else None

    def status(self) -> CacheStatus:
        if self._tools is None:
            return CacheStatus()
        return CacheStatus(
            has_cache=True,
            age_seconds=time.monotonic() - self._fetched_at,
            tool_count=len(self._tools),
        )


class ToolCatalogClient:
    """Lists and invokes upstream tools. Every tool goes through one path."""

    def __init__(
        self,
        config: ProxyConfig | None = None,
        session: aiohttp.ClientSession | None = None,
        fetcher: ResilientFetcher | None = None,
    ) -> None:
        self.config = config or ProxyConfig.from_env()
        self.fetcher = fetcher or ResilientFetcher(self.config.retry, session=session)
        self.cache = ToolCatalogCache(ttl=self.config.catalog_ttl)

    async def __aenter__(self) -> "ToolCatalogClient":
        await self.fetcher.__aenter__()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self.fetcher.close()

    # ── Upstream operations ─────────────────────────────────────────

    async def list_tools(self) -> list[ToolDescriptor]:
        """Fetch the current catalog from upstream (no cache)."""
        result = await self._rpc("tools/list")
        tools = result.get("tools") if isinstance(result, dict) else None
        if not isinstance(tools, list):
            raise UpstreamResponseError("Invalid tools response from upstream")
        try:
            catalog = [ToolDescriptor.model_validate(t) for t in tools]
        except ValidationError as e:
            raise UpstreamResponseError(f"Invalid tool descriptor from upstream: {e}") from e
        logger.info("Retrieved %d tools from upstream", len(catalog))
        return catalog

    async def invoke_tool(self, name: str, arguments: dict[str, Any] | None = None) -> Any:
        """Call a tool by name. Returns the raw ``result`` payload."""
        logger.debug("Calling upstream tool %s", name, extra={"tool": name})
        return await self._rpc("tools/call", {"name": name, "arguments": arguments or {}})

    # ── Cached catalog ──────────────────────────────────────────────

    async def get_tools(self, refresh: bool = False) -> list[ToolDescriptor]:
        """Catalog through the cache; fetched lazily on first need.

        If a refresh fails while an older catalog is cached, the older one is
        served instead of failing.
        """
        if not refresh:
            cached = self.cache.get()
            if cached is not None:
                return cached
        try:
            tools = await self.list_tools()
        except TranslationHelpsError:
            stale = self.cache.stale()
            if stale is None:
                raise
            logger.warning("Tool catalog refresh failed, serving %d cached tools", len(stale))
            return stale
        self.cache.populate(tools)
        return list(tools)

    def clear_cache(self) -> None:
        self.cache.invalidate()

    def cache_status(self) -> CacheStatus:
        return self.cache.status()

    # ── Internals ───────────────────────────────────────────────────

    async def _rpc(self, method: str, params: dict[str, Any] | None = None) -> Any:
        envelope: dict[str, Any] = {"jsonrpc": "2.0", "id": str(uuid.uuid4()), "method": method}
        if params is not None:
            envelope["params"] = params

        resp = await self.fetcher.fetch(
            "POST",
            self.config.upstream_url,
            json=envelope,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )
        body = self._decode(resp, method)

        if not resp.ok:
            raise UpstreamResponseError(
                self._error_message(body) or f"Upstream server returned {resp.status}: {resp.reason}",
                resp.status,
            )
        if isinstance(body, dict) and body.get("error"):
            raise UpstreamResponseError(
                self._error_message(body) or "Upstream returned an error", resp.status
            )
        if isinstance(body, dict) and "result" in body:
            return body["result"]
        return body

    @staticmethod
    def _decode(resp: FetchResponse, method: str) -> Any:
        if not resp.body:
            return None
        try:
            return resp.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            if not resp.ok:
                return None
            raise UpstreamResponseError(
                f"Invalid JSON from upstream for {method}: {e}", resp.status
            ) from e

    @staticmethod
    def _error_message(body: Any) -> str | None:
        if not isinstance(body, dict):
            return None
        error = body.get("error")
        if isinstance(error, dict):
            return error.get("message")
        if isinstance(error, str):
            return error
        return None
