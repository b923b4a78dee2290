# Translation Helps Proxy — Tool-calling relay for LLM chat
# Copyright (C) 2025–2026 Neven Kordic <neven@broodlink.ai>
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Tests for ProxyConfig environment loading."""

from translation_helps_proxy.config import DEFAULT_UPSTREAM_URL, ProxyConfig

ENV_VARS = [
    "TRANSLATION_HELPS_UPSTREAM_URL", "UPSTREAM_MAX_RETRIES", "UPSTREAM_RETRY_DELAY_MS",
    "UPSTREAM_RETRY_BACKOFF", "UPSTREAM_TIMEOUT_MS", "UPSTREAM_RETRYABLE_STATUSES",
    "CATALOG_TTL_SECONDS", "ENABLED_TOOLS", "HIDDEN_PARAMS", "FILTER_BOOK_CHAPTER_NOTES",
    "CHAT_FILTER_BOOK_CHAPTER_NOTES", "MAX_TOOL_ITERATIONS", "ENABLE_TOOL_EXECUTION", "PROXY_LANGUAGE",
    "PROXY_ORGANIZATION",
    "LLM_BASE_URL", "LLM_API_KEY", "OPENAI_API_KEY", "LLM_MODEL", "LLM_TIMEOUT",
    "HOST", "PORT", "LOG_LEVEL",
]


def clear_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch):
    clear_env(monkeypatch)
    config = ProxyConfig.from_env()
    assert config.upstream_url == DEFAULT_UPSTREAM_URL
    assert config.retry.max_retries == 3
    assert config.retry.base_delay_ms == 1000
    assert config.retry.backoff_factor == 2
    assert config.retry.timeout_ms == 30000
    assert config.max_tool_iterations == 5
    assert config.enabled_tools is None
    assert config.catalog_ttl is None
    assert config.filter_book_chapter_notes is False
    assert config.chat_filter_book_chapter_notes is True
    assert config.forced_arguments == {"language": "en", "organization": "unfoldingWord"}


def test_env_overrides(monkeypatch):
    clear_env(monkeypatch)
    monkeypatch.setenv("TRANSLATION_HELPS_UPSTREAM_URL", "http://localhost:8788/api/mcp")
    monkeypatch.setenv("UPSTREAM_MAX_RETRIES", "5")
    monkeypatch.setenv("UPSTREAM_RETRYABLE_STATUSES", "503, 504")
    monkeypatch.setenv("ENABLED_TOOLS", "fetch_scripture,,get_translation_word")
    monkeypatch.setenv("HIDDEN_PARAMS", "language")
    monkeypatch.setenv("FILTER_BOOK_CHAPTER_NOTES", "true")
    monkeypatch.setenv("ENABLE_TOOL_EXECUTION", "false")
    monkeypatch.setenv("CATALOG_TTL_SECONDS", "300")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-openai")
    monkeypatch.setenv("PORT", "9000")

    config = ProxyConfig.from_env()
    assert config.upstream_url == "http://localhost:8788/api/mcp"
    assert config.retry.max_retries == 5
    assert config.retry.retryable_statuses == {503, 504}
    assert config.enabled_tools == ["fetch_scripture", "get_translation_word"]
    assert config.hidden_params == ["language"]
    assert config.filter_book_chapter_notes is True
    assert config.enable_tool_execution is False
    assert config.catalog_ttl == 300
    assert config.llm_api_key == "sk-openai"
    assert config.port == 9000


def test_empty_locale_is_not_forced(monkeypatch):
    clear_env(monkeypatch)
    monkeypatch.setenv("PROXY_ORGANIZATION", "")
    assert ProxyConfig.from_env().forced_arguments == {"language": "en"}


def test_chat_notes_filter_opt_out(monkeypatch):
    clear_env(monkeypatch)
    monkeypatch.setenv("CHAT_FILTER_BOOK_CHAPTER_NOTES", "false")
    config = ProxyConfig.from_env()
    assert config.chat_filter_book_chapter_notes is False
    assert config.filter_book_chapter_notes is False
