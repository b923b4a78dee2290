# Translation Helps Proxy — Tool-calling relay for LLM chat
# Copyright (C) 2025–2026 Neven Kordic <neven@broodlink.ai>
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Known upstream result shapes, as a tagged union with a raw fallback.

The upstream server has no fixed result contract, so each known shape is a
model with the fields that identify it. ``classify_result`` tries them in
``RESULT_SHAPES`` order and falls back to ``RawResult``. Supporting a new shape
means adding one model here and one renderer in ``formatter``.
"""

from __future__ import annotations

from typing import Any, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError


class _Shape(BaseModel):
    model_config = ConfigDict(extra="allow")


# ── Item models ──────────────────────────────────────────────────────

class Verse(_Shape):
    text: str = ""
    translation: Optional[str] = None


class NoteItem(_Shape):
    reference: Optional[str] = Field(None, validation_alias=AliasChoices("Reference", "reference"))
    body: Optional[str] = Field(
        None, validation_alias=AliasChoices("Note", "note", "text", "content")
    )


class WordItem(_Shape):
    term: Optional[str] = Field(None, validation_alias=AliasChoices("term", "name"))
    definition: Optional[str] = Field(None, validation_alias=AliasChoices("definition", "content"))


class QuestionItem(_Shape):
    question: Optional[str] = Field(None, validation_alias=AliasChoices("question", "Question"))
    answer: Optional[str] = Field(None, validation_alias=AliasChoices("answer", "Answer"))


# ── Result shapes ────────────────────────────────────────────────────

class McpContentResult(_Shape):
    """Already MCP-formatted: ``{"content": [{"type": "text", "text": ...}]}``."""

    kind: Literal["mcp_content"] = "mcp_content"
    content: list[dict[str, Any]]


class ScriptureResult(_Shape):
    kind: Literal["scripture"] = "scripture"
    scripture: list[Verse]


class NotesResult(_Shape):
    kind: Literal["notes"] = "notes"
    reference: Optional[str] = None
    notes: list[NoteItem] = Field(validation_alias=AliasChoices("notes", "verseNotes", "items"))


class WordsResult(_Shape):
    kind: Literal["words"] = "words"
    reference: Optional[str] = None
    words: list[WordItem]


class SingleWordResult(_Shape):
    kind: Literal["single_word"] = "single_word"
    term: str
    definition: str


class QuestionsResult(_Shape):
    kind: Literal["questions"] = "questions"
    reference: Optional[str] = None
    questions: list[QuestionItem]


class WrappedResult(_Shape):
    kind: Literal["wrapped"] = "wrapped"
    result: Any


class RawResult(_Shape):
    kind: Literal["raw"] = "raw"
    payload: Any = None


UpstreamResult = Union[
    McpContentResult,
    ScriptureResult,
    NotesResult,
    WordsResult,
    SingleWordResult,
    QuestionsResult,
    WrappedResult,
    RawResult,
]

RESULT_SHAPES: tuple[type[_Shape], ...] = (
    McpContentResult,
    ScriptureResult,
    NotesResult,
    WordsResult,
    SingleWordResult,
    QuestionsResult,
    WrappedResult,
)


def classify_result(payload: Any) -> UpstreamResult:
    """Return the first known shape ``payload`` satisfies, else ``RawResult``."""
    if isinstance(payload, dict):
        # ``kind`` is our tag, not upstream data.
        data = {key: value for key, value in payload.items() if key != "kind"}
        for shape in RESULT_SHAPES:
            try:
                return shape.model_validate(data)
            except ValidationError:
                continue
    return RawResult(payload=payload)
