# Translation Helps Proxy — Tool-calling relay for LLM chat
# Copyright (C) 2025–2026 Neven Kordic <neven@broodlink.ai>
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Capability policy: which tools and parameters a caller may see and use."""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Iterable

from .config import ProxyConfig
from .models import ToolDescriptor

logger = logging.getLogger(__name__)

AnnotationPredicate = Callable[[dict[str, Any]], bool]


def is_book_or_chapter_note(item: dict[str, Any]) -> bool:
    """True for book intros (``front:intro``) and chapter intros (``3:intro``)."""
    reference = item.get("Reference") or ""
    return isinstance(reference, str) and reference.endswith(":intro")


@dataclass(frozen=True)
class CapabilityPolicy:
    """Allow-list, hidden parameters and annotation suppression.

    ``allowed_tool_names=None`` allows every tool.
    """

    allowed_tool_names: frozenset[str] | None = None
    hidden_parameter_names: frozenset[str] = frozenset()
    suppressed_annotation_predicate: AnnotationPredicate | None = None

    @classmethod
    def build(
        cls,
        enabled_tools: Iterable[str] | None = None,
        hidden_params: Iterable[str] | None = None,
        filter_book_chapter_notes: bool = False,
    ) -> CapabilityPolicy:
        enabled = frozenset(enabled_tools or ())
        return cls(
            allowed_tool_names=enabled or None,
            hidden_parameter_names=frozenset(hidden_params or ()),
            suppressed_annotation_predicate=(
                is_book_or_chapter_note if filter_book_chapter_notes else None
            ),
        )

    @classmethod
    def from_config(cls, config: ProxyConfig) -> CapabilityPolicy:
        return cls.build(config.enabled_tools, config.hidden_params, config.filter_book_chapter_notes)

    @classmethod
    def for_chat(cls, config: ProxyConfig) -> CapabilityPolicy:
        """Policy for the agent loop, where intro notes are dropped by default."""
        return cls.build(
            config.enabled_tools,
            config.hidden_params,
            config.filter_book_chapter_notes or config.chat_filter_book_chapter_notes,
        )

    def updated(self, **changes: Any) -> CapabilityPolicy:
        return replace(self, **changes)

    def describe(self) -> dict[str, Any]:
        return {
            "enabled_tools": sorted(self.allowed_tool_names) if self.allowed_tool_names else "all",
            "hidden_params": sorted(self.hidden_parameter_names) or "none",
            "filter_book_chapter_notes": self.suppressed_annotation_predicate is not None,
        }


def is_allowed(name: str, policy: CapabilityPolicy) -> bool:
    if policy.allowed_tool_names is None:
        return True
    return name in policy.allowed_tool_names


def hide_parameters(descriptor: ToolDescriptor, hidden: frozenset[str]) -> ToolDescriptor:
    """Copy of ``descriptor`` without ``hidden`` in properties or required."""
    if not hidden:
        return descriptor
    schema = copy.deepcopy(descriptor.input_schema)
    properties = schema.get("properties")
    if isinstance(properties, dict):
        schema["properties"] = {k: v for k, v in properties.items() if k not in hidden}
    required = schema.get("required")
    if isinstance(required, list):
        schema["required"] = [p for p in required if p not in hidden]
    return descriptor.model_copy(update={"input_schema": schema})


def restrict(catalog: list[ToolDescriptor], policy: CapabilityPolicy) -> list[ToolDescriptor]:
    """Allowed descriptors, in catalog order, with hidden parameters removed."""
    restricted = [
        hide_parameters(tool, policy.hidden_parameter_names)
        for tool in catalog
        if is_allowed(tool.name, policy)
    ]
    if len(restricted) != len(catalog):
        logger.debug(
            "Restricted catalog to %d tools: %s",
            len(restricted), ", ".join(t.name for t in restricted),
        )
    return restricted


def filter_arguments(arguments: dict[str, Any], policy: CapabilityPolicy) -> dict[str, Any]:
    """Drop hidden parameters a caller supplied anyway."""
    if not policy.hidden_parameter_names:
        return dict(arguments)
    kept = {k: v for k, v in arguments.items() if k not in policy.hidden_parameter_names}
    if len(kept) != len(arguments):
        removed = sorted(set(arguments) - set(kept))
        logger.debug("Removed hidden arguments: %s", ", ".join(removed))
    return kept


def suppress_annotations(raw_result: Any, predicate: AnnotationPredicate | None) -> Any:
    """Drop ``items`` entries matching ``predicate`` and fix ``metadata.totalCount``.

    Works on the structured payload, either directly or inside an MCP
    ``content`` wrapper whose first block is JSON text. Anything without an
    ``items`` list is returned unchanged.
    """
    if predicate is None or not isinstance(raw_result, dict):
        return raw_result

    content = raw_result.get("content")
    if isinstance(content, list) and content:
        first = content[0]
        if isinstance(first, dict) and first.get("type") == "text" and isinstance(first.get("text"), str):
            try:
                inner = json.loads(first["text"])
            except json.JSONDecodeError:
                logger.warning("Could not parse wrapped content for annotation filtering")
                return raw_result
            filtered = _suppress_items(inner, predicate)
            if filtered is inner:
                return raw_result
            rewritten = {**first, "text": json.dumps(filtered, ensure_ascii=False)}
            return {**raw_result, "content": [rewritten, *content[1:]]}

    return _suppress_items(raw_result, predicate)


def _suppress_items(data: Any, predicate: AnnotationPredicate) -> Any:
    if not isinstance(data, dict) or not isinstance(data.get("items"), list):
        return data

    items = data["items"]
    kept = [item for item in items if not (isinstance(item, dict) and predicate(item))]
    if len(kept) == len(items):
        return data
    result = {**data, "items": kept}

    metadata = data.get("metadata")
    if isinstance(metadata, dict) and isinstance(metadata.get("totalCount"), (int, float)):
        result["metadata"] = {**metadata, "totalCount": len(kept)}

    logger.debug("Suppressed annotations: %d -> %d items", len(items), len(kept))
    return result
