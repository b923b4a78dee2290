# Translation Helps Proxy — Tool-calling relay for LLM chat
# Copyright (C) 2025–2026 Neven Kordic <neven@broodlink.ai>
# SPDX-License-Identifier: AGPL-3.0-or-later
"""Exception hierarchy shared by the core and its surfaces."""

from __future__ import annotations

from typing import Any


class TranslationHelpsError(Exception):
    """Base class for all proxy errors. ``code`` is a stable machine tag."""

    code = "TRANSLATION_HELPS_ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class UpstreamConnectionError(TranslationHelpsError, ConnectionError):
    """The upstream tool server could not be reached, even after retries."""

    code = "UPSTREAM_CONNECTION_ERROR"


class UpstreamResponseError(TranslationHelpsError):
    """The upstream tool server answered with an error."""

    code = "UPSTREAM_RESPONSE_ERROR"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ToolNotFoundError(TranslationHelpsError):
    code = "TOOL_NOT_FOUND"

    def __init__(self, tool_name: str) -> None:
        super().__init__(f"Tool '{tool_name}' not found")
        self.tool_name = tool_name


class ToolDisabledError(TranslationHelpsError):
    code = "TOOL_DISABLED"

    def __init__(self, tool_name: str) -> None:
        super().__init__(f"Tool '{tool_name}' is disabled")
        self.tool_name = tool_name


class InvalidArgumentsError(TranslationHelpsError):
    code = "INVALID_ARGUMENTS"


class MalformedToolCallError(InvalidArgumentsError):
    """The model produced tool-call arguments that are not a JSON object."""

    code = "MALFORMED_TOOL_CALL"


class LLMProviderError(TranslationHelpsError):
    """The LLM endpoint rejected a request. Never retried by the proxy."""

    code = "LLM_PROVIDER_ERROR"

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_type: str = "api_error",
        param: str | None = None,
        provider_code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_type = error_type
        self.param = param
        self.provider_code = provider_code

    def to_dict(self) -> dict[str, Any]:
        """OpenAI-shaped error body."""
        return {
            "error": {
                "message": self.message,
                "type": self.error_type,
                "param": self.param,
                "code": self.provider_code,
            }
        }


class ChatRequestError(LLMProviderError):
    """The caller's chat-completion request is malformed."""

    code = "INVALID_REQUEST"

    def __init__(self, message: str, param: str | None = None) -> None:
        super().__init__(message, status_code=400, error_type="invalid_request_error", param=param)
