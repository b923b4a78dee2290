# Translation Helps Proxy — Tool-calling relay for LLM chat
# Copyright (C) 2025–2026 Neven Kordic <neven@broodlink.ai>
# SPDX-License-Identifier: AGPL-3.0-or-later

"""MCP server over stdin/stdout exposing the filtered tools directly.

No agent loop here: the connected MCP client is the one deciding which tools
to call. stdout carries protocol frames only, so all logging goes to stderr.
"""

from __future__ import annotations

import logging
from typing import Any

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from . import __version__
from .client import TranslationHelpsClient
from .errors import TranslationHelpsError
from .filters import filter_arguments

logger = logging.getLogger(__name__)


class StdioProxyServer:
    """Registers ``tools/list`` and ``tools/call`` handlers on an MCP ``Server``."""

    def __init__(self, client: TranslationHelpsClient, name: str = "translation-helps-proxy") -> None:
        self.client = client
        self.server = Server(name, version=__version__)
        self.server.list_tools()(self.list_tools)
        self.server.call_tool()(self.call_tool)

    async def list_tools(self) -> list[types.Tool]:
        tools = await self.client.list_tools()
        logger.debug("Advertising %d tools", len(tools))
        return [
            types.Tool(name=t.name, description=t.description, inputSchema=t.input_schema)
            for t in tools
        ]

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> list[types.TextContent]:
        """Run one tool. Errors propagate and the MCP server reports them as error results."""
        arguments = filter_arguments(arguments or {}, self.client.policy)
        try:
            blocks = await self.client.call_tool(name, arguments)
        except TranslationHelpsError as e:
            logger.warning("Tool %s failed: %s", name, e)
            raise
        return [types.TextContent(type="text", text=block.text) for block in blocks]

    async def run(self) -> None:
        logger.info("Serving MCP over stdio")
        async with self.client:
            async with stdio_server() as (read_stream, write_stream):
                await self.server.run(
                    read_stream, write_stream, self.server.create_initialization_options()
                )
