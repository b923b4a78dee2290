# Translation Helps Proxy — Tool-calling relay for LLM chat
# Copyright (C) 2025–2026 Neven Kordic <neven@broodlink.ai>
# SPDX-License-Identifier: AGPL-3.0-or-later
"""Render structured upstream results as text blocks."""

from __future__ import annotations

import json
from typing import Any, Callable

from .models import (
    McpContentResult,
    NotesResult,
    QuestionsResult,
    RawResult,
    ScriptureResult,
    SingleWordResult,
    TextContent,
    UpstreamResult,
    WordsResult,
    WrappedResult,
    classify_result,
)


def _block(text: str) -> list[TextContent]:
    return [TextContent(text=text)]


def _render_mcp_content(result: McpContentResult) -> list[TextContent]:
    blocks = []
    for item in result.content:
        if item.get("type") == "text" and isinstance(item.get("text"), str):
            blocks.append(TextContent(text=item["text"]))
        else:
            blocks.append(TextContent(text=json.dumps(item, ensure_ascii=False)))
    return blocks


def _render_scripture(result: ScriptureResult) -> list[TextContent]:
    if not result.scripture:
        return _block("No scripture text found")
    verses = [
        f"{verse.text} ({verse.translation})" if verse.translation else verse.text
        for verse in result.scripture
    ]
    return _block("\n\n".join(verses))


def _render_notes(result: NotesResult) -> list[TextContent]:
    if not result.notes:
        return _block("No translation notes found for this reference.")
    text = f"Translation Notes for {result.reference or 'Reference'}:\n\n"
    for i, note in enumerate(result.notes, start=1):
        body = note.body if note.body is not None else json.dumps(note.model_dump(), ensure_ascii=False)
        text += f"{i}. {body}\n\n"
    return _block(text)


def _render_words(result: WordsResult) -> list[TextContent]:
    if not result.words:
        return _block("No translation words found for this reference.")
    text = f"Translation Words for {result.reference or 'Reference'}:\n\n"
    for word in result.words:
        term = word.term or "Unknown Term"
        definition = word.definition or "No definition available"
        text += f"**{term}**\n{definition}\n\n"
    return _block(text)


def _render_single_word(result: SingleWordResult) -> list[TextContent]:
    return _block(f"**{result.term}**\n{result.definition}")


def _render_questions(result: QuestionsResult) -> list[TextContent]:
    if not result.questions:
        return _block("No translation questions found for this reference.")
    text = f"Translation Questions for {result.reference or 'Reference'}:\n\n"
    for i, q in enumerate(result.questions, start=1):
        text += f"Q{i}: {q.question or 'No question'}\nA: {q.answer or 'No answer'}\n\n"
    return _block(text)


def _render_wrapped(result: WrappedResult) -> list[TextContent]:
    if isinstance(result.result, str):
        return _block(result.result)
    return _block(json.dumps(result.result, indent=2, ensure_ascii=False))


def _render_raw(result: RawResult) -> list[TextContent]:
    return _block(json.dumps(result.payload, indent=2, ensure_ascii=False, default=str))


RENDERERS: dict[str, Callable[[Any], list[TextContent]]] = {
    "mcp_content": _render_mcp_content,
    "scripture": _render_scripture,
    "notes": _render_notes,
    "words": _render_words,
    "single_word": _render_single_word,
    "questions": _render_questions,
    "wrapped": _render_wrapped,
    "raw": _render_raw,
}


def render(result: UpstreamResult) -> list[TextContent]:
    return RENDERERS[result.kind](result)


def format_response(payload: Any) -> list[TextContent]:
    """Turn a raw upstream payload into text blocks."""
    if payload is None:
        return _block("No response from upstream server")
    return render(classify_result(payload))


def format_error(error: BaseException | str) -> list[TextContent]:
    message = error if isinstance(error, str) else str(error)
    return _block(f"Error: {message}")


def join_blocks(blocks: list[TextContent]) -> str:
    """Flatten text blocks into one string, blank-line separated."""
    return "\n\n".join(block.text for block in blocks)
