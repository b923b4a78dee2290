# Translation Helps Proxy — Tool-calling relay for LLM chat
# Copyright (C) 2025–2026 Neven Kordic <neven@broodlink.ai>
# SPDX-License-Identifier: AGPL-3.0-or-later
"""LLM client for OpenAI-compatible chat completions."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import aiohttp

from .config import ProxyConfig
from .errors import LLMProviderError

logger = logging.getLogger(__name__)


class LLMClient:
    """Sends chat completion requests. Errors are never retried here."""

    def __init__(
        self,
        config: ProxyConfig | None = None,
        session: aiohttp.ClientSession | None = None,
        api_key: str | None = None,
    ) -> None:
        self.config = config or ProxyConfig.from_env()
        self.session = session
        self._owns_session = session is None
        self.api_key = api_key if api_key is not None else self.config.llm_api_key

    @property
    def completions_url(self) -> str:
        base = self.config.llm_base_url.rstrip("/")
        if base.endswith("/v1"):
            return f"{base}/chat/completions"
        return f"{base}/v1/chat/completions"

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession()
            self._owns_session = True
        return self.session

    async def close(self) -> None:
        if self.session and self._owns_session:
            await self.session.close()
        self.session = None

    async def create_chat_completion(
        self, params: dict[str, Any], api_key: str | None = None
    ) -> dict[str, Any]:
        """POST ``params`` as-is and return the decoded completion."""
        session = await self._ensure_session()
        key = api_key or self.api_key
        headers = {"Content-Type": "application/json"}
        if key:
            headers["Authorization"] = f"Bearer {key}"

        logger.debug(
            "Sending chat completion request",
            extra={
                "model": params.get("model"),
                "message_count": len(params.get("messages") or []),
                "tool_count": len(params.get("tools") or []),
            },
        )
        try:
            async with session.post(
                self.completions_url,
                json=params,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.config.llm_timeout),
            ) as resp:
                text = await resp.text()
                status = resp.status
        except asyncio.TimeoutError as e:
            raise LLMProviderError(
                f"LLM request timed out after {self.config.llm_timeout}s", 504, "timeout"
            ) from e
        except aiohttp.ClientError as e:
            raise LLMProviderError(
                f"Cannot connect to LLM at {self.config.llm_base_url}: {e}", 502, "api_connection_error"
            ) from e

        try:
            data = json.loads(text) if text else {}
        except json.JSONDecodeError:
            data = None

        if status != 200:
            raise self._provider_error(status, data, text)
        if not isinstance(data, dict) or not isinstance(data.get("choices"), list) or not data["choices"]:
            raise LLMProviderError("LLM returned no choices", 502, "api_error")
        return data

    @staticmethod
    def _provider_error(status: int, data: Any, text: str) -> LLMProviderError:
        error = data.get("error") if isinstance(data, dict) else None
        if isinstance(error, dict):
            return LLMProviderError(
                error.get("message") or f"LLM returned {status}",
                status,
                error.get("type") or "api_error",
                param=error.get("param"),
                provider_code=error.get("code"),
            )
        if isinstance(error, str):
            return LLMProviderError(error, status)
        return LLMProviderError(f"LLM returned {status}: {text[:200]}", status)
