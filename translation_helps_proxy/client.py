# Translation Helps Proxy — Tool-calling relay for LLM chat
# Copyright (C) 2025–2026 Neven Kordic <neven@broodlink.ai>
# SPDX-License-Identifier: AGPL-3.0-or-later

"""High-level Translation Helps client: policy-filtered tools, formatted results.

Usage::

    async with TranslationHelpsClient(config) as client:
        tools = await client.list_tools()
        blocks = await client.call_tool("fetch_scripture", {"reference": "John 3:16"})
"""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from .config import ProxyConfig
from .errors import (
    InvalidArgumentsError,
    ToolDisabledError,
    ToolNotFoundError,
    TranslationHelpsError,
)
from .filters import CapabilityPolicy, is_allowed, restrict, suppress_annotations
from .formatter import format_response
from .models import CacheStatus, TextContent, ToolDescriptor
from .upstream import ToolCatalogClient

logger = logging.getLogger(__name__)


class TranslationHelpsClient:
    """Tool access for one caller, restricted by its ``CapabilityPolicy``."""

    def __init__(
        self,
        config: ProxyConfig | None = None,
        policy: CapabilityPolicy | None = None,
        session: aiohttp.ClientSession | None = None,
        catalog: ToolCatalogClient | None = None,
    ) -> None:
        self.config = config or ProxyConfig.from_env()
        self.policy = policy or CapabilityPolicy.from_config(self.config)
        self.catalog = catalog or ToolCatalogClient(self.config, session=session)
        logger.info(
            "TranslationHelpsClient initialized for %s",
            self.config.upstream_url,
            extra={"policy": self.policy.describe()},
        )

    async def __aenter__(self) -> "TranslationHelpsClient":
        await self.catalog.__aenter__()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self.catalog.close()

    # ── Tools ───────────────────────────────────────────────────────

    async def list_tools(self) -> list[ToolDescriptor]:
        """Tools this caller may see, with hidden parameters removed."""
        tools = restrict(await self.catalog.get_tools(), self.policy)
        logger.debug("Listed %d filtered tools", len(tools))
        return tools

    async def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> list[TextContent]:
        """Check policy and arguments, invoke upstream, filter and format the result."""
        arguments = arguments or {}
        if not is_allowed(name, self.policy):
            raise ToolDisabledError(name)

        descriptor = await self._find_tool(name)
        missing = [field for field in descriptor.required if field not in arguments]
        if missing:
            raise InvalidArgumentsError(
                f"Invalid arguments for tool '{name}': missing required {', '.join(missing)}"
            )

        raw = await self.catalog.invoke_tool(name, arguments)
        # Suppression needs the structured payload, so it runs before formatting.
        filtered = suppress_annotations(raw, self.policy.suppressed_annotation_predicate)
        return format_response(filtered)

    async def _find_tool(self, name: str) -> ToolDescriptor:
        for tool in await self.list_tools():
            if tool.name == name:
                return tool
        # The upstream may have added the tool since the catalog was cached.
        tools = restrict(await self.catalog.get_tools(refresh=True), self.policy)
        for tool in tools:
            if tool.name == name:
                return tool
        raise ToolNotFoundError(name)

    # ── Configuration and utility ───────────────────────────────────

    def update_policy(self, **changes: Any) -> CapabilityPolicy:
        """Swap in a new policy, e.g. ``update_policy(hidden_parameter_names=frozenset())``."""
        self.policy = self.policy.updated(**changes)
        logger.info("Capability policy updated", extra={"policy": self.policy.describe()})
        return self.policy

    async def test_connection(self) -> bool:
        try:
            await self.list_tools()
        except TranslationHelpsError as e:
            logger.error("Connection test failed: %s", e)
            return False
        return True

    def clear_cache(self) -> None:
        self.catalog.clear_cache()

    def cache_status(self) -> CacheStatus:
        return self.catalog.cache_status()
