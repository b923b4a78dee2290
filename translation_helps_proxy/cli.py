# Translation Helps Proxy — Tool-calling relay for LLM chat
# Copyright (C) 2025–2026 Neven Kordic <neven@broodlink.ai>
# SPDX-License-Identifier: AGPL-3.0-or-later

"""CLI entry point — Click-based commands for both surfaces and one-shot tool calls."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any

import click

from .config import ProxyConfig, _split_csv

LOG_LEVELS = ("debug", "info", "warning", "error")


def _configure_logging(level: str) -> None:
    # stderr only: stdout is the MCP channel in stdio mode.
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        force=True,
    )


@click.group()
@click.option("--enabled-tools", default=None, help="Comma-separated tool names to expose (default: all)")
@click.option("--hide-params", default=None, help="Comma-separated parameter names to hide from tool schemas")
@click.option("--filter-book-chapter-notes", is_flag=True, default=None,
              help="Drop book and chapter introduction notes from results")
@click.option("--upstream-url", default=None, help="Translation Helps MCP endpoint")
@click.option("--log-level", type=click.Choice(LOG_LEVELS, case_sensitive=False), default=None,
              help="Logging verbosity (default: LOG_LEVEL or info)")
@click.pass_context
def cli(
    ctx: click.Context,
    enabled_tools: str | None,
    hide_params: str | None,
    filter_book_chapter_notes: bool | None,
    upstream_url: str | None,
    log_level: str | None,
) -> None:
    """Translation Helps proxy — tool-calling relay for LLM chat."""
    ctx.ensure_object(dict)
    config = ProxyConfig.from_env()

    # Flags override the environment.
    if enabled_tools is not None:
        config.enabled_tools = _split_csv(enabled_tools)
    if hide_params is not None:
        config.hidden_params = _split_csv(hide_params)
    if filter_book_chapter_notes:
        config.filter_book_chapter_notes = True
    if upstream_url:
        config.upstream_url = upstream_url
    if log_level:
        config.log_level = log_level.lower()

    _configure_logging(config.log_level)
    ctx.obj["config"] = config


# ── Surfaces ────────────────────────────────────────────────────────

@cli.command()
@click.option("--host", default=None, help="Bind address (default: HOST or 127.0.0.1)")
@click.option("--port", type=int, default=None, help="Bind port (default: PORT or 8787)")
@click.option("--max-iterations", type=int, default=None, help="Tool-executing rounds per request")
@click.option("--no-tool-execution", is_flag=True, help="Return tool calls to the caller instead of running them")
@click.option("--no-chat-notes-filter", is_flag=True, help="Keep book and chapter intro notes in chat tool results")
@click.pass_context
def serve(
    ctx: click.Context,
    host: str | None,
    port: int | None,
    max_iterations: int | None,
    no_tool_execution: bool,
    no_chat_notes_filter: bool,
) -> None:
    """Run the OpenAI-compatible HTTP server."""
    from .http_server import run_server

    config: ProxyConfig = ctx.obj["config"]
    if host:
        config.host = host
    if port is not None:
        config.port = port
    if max_iterations is not None:
        config.max_tool_iterations = max_iterations
    if no_tool_execution:
        config.enable_tool_execution = False
    if no_chat_notes_filter:
        config.chat_filter_book_chapter_notes = False
    run_server(config)


@cli.command()
@click.pass_context
def stdio(ctx: click.Context) -> None:
    """Run the MCP server on stdin/stdout."""
    from .client import TranslationHelpsClient
    from .stdio_server import StdioProxyServer

    server = StdioProxyServer(TranslationHelpsClient(ctx.obj["config"]))
    asyncio.run(server.run())


# ── Tool subcommands ────────────────────────────────────────────────

@cli.group()
def tools() -> None:
    """Inspect and call upstream tools directly."""


async def _list_tools(config: ProxyConfig) -> list[Any]:
    from .client import TranslationHelpsClient

    async with TranslationHelpsClient(config) as client:
        return await client.list_tools()


async def _call_tool(config: ProxyConfig, name: str, arguments: dict[str, Any]) -> list[Any]:
    from .client import TranslationHelpsClient

    async with TranslationHelpsClient(config) as client:
        return await client.call_tool(name, arguments)


@tools.command("list")
@click.option("--json", "as_json", is_flag=True, help="Print the filtered catalog as JSON")
@click.pass_context
def tools_list(ctx: click.Context, as_json: bool) -> None:
    """List tools after applying the capability policy."""
    from .errors import TranslationHelpsError

    try:
        catalog = asyncio.run(_list_tools(ctx.obj["config"]))
    except TranslationHelpsError as e:
        click.echo(f"ERROR: {e}", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps([t.to_wire() for t in catalog], indent=2))
        return
    if not catalog:
        click.echo("No tools available.")
        return
    for t in catalog:
        params = ", ".join(t.properties) or "-"
        click.echo(f"  {t.name:32s}  {t.description[:60]}")
        click.echo(f"  {'':32s}  params: {params}")


@tools.command("call")
@click.argument("name")
@click.argument("params", required=False, default=None)
@click.pass_context
def tools_call(ctx: click.Context, name: str, params: str | None) -> None:
    """Call a tool by name. PARAMS is a JSON object string."""
    from .errors import TranslationHelpsError
    from .formatter import join_blocks

    parsed: dict[str, Any] = {}
    if params:
        try:
            parsed = json.loads(params)
        except json.JSONDecodeError:
            click.echo(f"ERROR: Invalid JSON params: {params}", err=True)
            sys.exit(1)
        if not isinstance(parsed, dict):
            click.echo("ERROR: PARAMS must be a JSON object", err=True)
            sys.exit(1)

    try:
        blocks = asyncio.run(_call_tool(ctx.obj["config"], name, parsed))
    except TranslationHelpsError as e:
        click.echo(f"ERROR: {e}", err=True)
        sys.exit(1)
    click.echo(join_blocks(blocks))


def main() -> None:
    """Entry point for `helps-proxy` and `python -m translation_helps_proxy`."""
    cli(standalone_mode=True)
