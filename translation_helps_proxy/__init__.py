# Translation Helps Proxy — Tool-calling relay for LLM chat
# Copyright (C) 2025–2026 Neven Kordic <neven@broodlink.ai>
# SPDX-License-Identifier: AGPL-3.0-or-later
"""Translation Helps proxy — tool discovery, filtering, and the tool-calling agent loop."""

__version__ = "0.1.0"

from .config import ProxyConfig, RetryPolicy
from .errors import (
    ChatRequestError,
    InvalidArgumentsError,
    LLMProviderError,
    MalformedToolCallError,
    ToolDisabledError,
    ToolNotFoundError,
    TranslationHelpsError,
    UpstreamConnectionError,
    UpstreamResponseError,
)
from ._transport import ResilientFetcher
from .upstream import ToolCatalogCache, ToolCatalogClient
from .filters import CapabilityPolicy
from .client import TranslationHelpsClient
from .llm import LLMClient
from .orchestrator import ChatOrchestrator
from .models import (
    TextContent,
    ToolCallRequest,
    ToolDescriptor,
    ToolInvocationResult,
)

__all__ = [
    # Core
    "ChatOrchestrator",
    "TranslationHelpsClient",
    "ToolCatalogClient",
    "ToolCatalogCache",
    "ResilientFetcher",
    "LLMClient",
    "CapabilityPolicy",
    # Config
    "ProxyConfig",
    "RetryPolicy",
    # Errors
    "TranslationHelpsError",
    "UpstreamConnectionError",
    "UpstreamResponseError",
    "ToolNotFoundError",
    "ToolDisabledError",
    "InvalidArgumentsError",
    "MalformedToolCallError",
    "LLMProviderError",
    "ChatRequestError",
    # Models
    "TextContent",
    "ToolCallRequest",
    "ToolDescriptor",
    "ToolInvocationResult",
]
