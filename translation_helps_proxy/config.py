# Translation Helps Proxy — Tool-calling relay for LLM chat
# Copyright (C) 2025–2026 Neven Kordic <neven@broodlink.ai>
# SPDX-License-Identifier: AGPL-3.0-or-later
"""Proxy configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

DEFAULT_UPSTREAM_URL = "https://translation-helps-mcp.pages.dev/api/mcp"
DEFAULT_RETRYABLE_STATUSES = frozenset({408, 429, 500, 502, 503, 504})


def _split_csv(value: str | None) -> list[str] | None:
    """Parse a comma-separated list; empty input means "not set"."""
    if not value:
        return None
    items = [part.strip() for part in value.split(",")]
    return [item for item in items if item] or None


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class RetryPolicy:
    """Retry and timeout settings for calls to the upstream tool server.

    Defaults are tuned for a cold-starting serverless backend: the first call
    after an idle period often fails, and a retry 1-7 s later usually lands.
    """

    max_retries: int = 3
    base_delay_ms: float = 1000.0
    backoff_factor: float = 2.0
    timeout_ms: float = 30000.0
    retryable_statuses: frozenset[int] = DEFAULT_RETRYABLE_STATUSES

    def delay_ms(self, attempt_number: int) -> float:
        """Backoff delay after the given (1-based) failed attempt."""
        return self.base_delay_ms * self.backoff_factor ** (attempt_number - 1)


@dataclass
class ProxyConfig:
    """All configuration for the proxy, its core, and its surfaces."""

    upstream_url: str = DEFAULT_UPSTREAM_URL
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    catalog_ttl: float | None = None

    # Capability policy
    enabled_tools: list[str] | None = None
    hidden_params: list[str] | None = None
    filter_book_chapter_notes: bool = False
    # The chat surface drops intro notes unless opted out.
    chat_filter_book_chapter_notes: bool = True

    # Agent loop
    max_tool_iterations: int = 5
    enable_tool_execution: bool = True
    language: str = "en"
    organization: str = "unfoldingWord"

    # LLM endpoint
    llm_base_url: str = "https://api.openai.com"
    llm_api_key: str = ""
    llm_model: str = "gpt-4o-mini"
    llm_timeout: int = 120

    # HTTP surface
    host: str = "127.0.0.1"
    port: int = 8787
    log_level: str = "info"

    @property
    def forced_arguments(self) -> dict[str, str]:
        """Argument values the agent loop sets on every tool call."""
        forced: dict[str, str] = {}
        if self.language:
            forced["language"] = self.language
        if self.organization:
            forced["organization"] = self.organization
        return forced

    @classmethod
    def from_env(cls) -> ProxyConfig:
        """Load configuration from environment variables."""
        statuses = _split_csv(os.environ.get("UPSTREAM_RETRYABLE_STATUSES"))
        retry = RetryPolicy(
            max_retries=int(os.environ.get("UPSTREAM_MAX_RETRIES", "3")),
            base_delay_ms=float(os.environ.get("UPSTREAM_RETRY_DELAY_MS", "1000")),
            backoff_factor=float(os.environ.get("UPSTREAM_RETRY_BACKOFF", "2")),
            timeout_ms=float(os.environ.get("UPSTREAM_TIMEOUT_MS", "30000")),
            retryable_statuses=(
                frozenset(int(s) for s in statuses) if statuses else DEFAULT_RETRYABLE_STATUSES
            ),
        )
        ttl = os.environ.get("CATALOG_TTL_SECONDS")
        return cls(
            upstream_url=os.environ.get("TRANSLATION_HELPS_UPSTREAM_URL", DEFAULT_UPSTREAM_URL),
            retry=retry,
            catalog_ttl=float(ttl) if ttl else None,
            enabled_tools=_split_csv(os.environ.get("ENABLED_TOOLS")),
            hidden_params=_split_csv(os.environ.get("HIDDEN_PARAMS")),
            filter_book_chapter_notes=_env_bool("FILTER_BOOK_CHAPTER_NOTES", False),
            chat_filter_book_chapter_notes=_env_bool("CHAT_FILTER_BOOK_CHAPTER_NOTES", True),
            max_tool_iterations=int(os.environ.get("MAX_TOOL_ITERATIONS", "5")),
            enable_tool_execution=_env_bool("ENABLE_TOOL_EXECUTION", True),
            language=os.environ.get("PROXY_LANGUAGE", "en"),
            organization=os.environ.get("PROXY_ORGANIZATION", "unfoldingWord"),
            llm_base_url=os.environ.get("LLM_BASE_URL", "https://api.openai.com"),
            llm_api_key=os.environ.get("LLM_API_KEY", os.environ.get("OPENAI_API_KEY", "")),
            llm_model=os.environ.get("LLM_MODEL", "gpt-4o-mini"),
            llm_timeout=int(os.environ.get("LLM_TIMEOUT", "120")),
            host=os.environ.get("HOST", "127.0.0.1"),
            port=int(os.environ.get("PORT", "8787")),
            log_level=os.environ.get("LOG_LEVEL", "info"),
        )
