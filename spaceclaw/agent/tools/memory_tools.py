"""Memory tools for the agent to save and recall notes."""

from __future__ import annotations

from typing import Any

from loguru import logger

from spaceclaw.agent.tools.base import Tool
from spaceclaw.memory.notes import NoteStore
from spaceclaw.memory.semantic import SemanticMemory

RECALL_LIMIT = 5


class RememberTool(Tool):
    """
    Save a named note.

    Notes with the same title (case-insensitive) are overwritten. When
    semantic memory is available the note is also embedded in the background.
    """

    def __init__(self, notes: NoteStore, semantic: SemanticMemory | None = None) -> None:
        self.notes = notes
        self.semantic = semantic

    @property
    def name(self) -> str:
        return "remember"

    @property
    def description(self) -> str:
        return (
            "Save a named note to persistent memory. "
            "Use this whenever the owner asks you to remember something. "
            "If a note with the same title already exists it is overwritten."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "title": {
                    "type": "string",
                    "description": "A short, descriptive title for the note (e.g. 'favorite color').",
                },
                "body": {
                    "type": "string",
                    "description": "The content to remember.",
                },
            },
            "required": ["title", "body"],
            "additionalProperties": False,
        }

    async def execute(self, **kwargs: Any) -> str:
        title = str(kwargs.get("title") or "").strip()
        body = str(kwargs.get("body") or "").strip()
        if not title or not body:
            return "Error: both title and body are required."

        self.notes.save_note(title, body)
        if self.semantic is not None:
            self.semantic.schedule_upsert(title, body)
        logger.info(f"Remembered note: {title}")
        return f"✅ Remembered: **{title}**"


class RecallTool(Tool):
    """
    Search saved notes.

    Semantic search runs first; full-text search is the fallback when it
    finds nothing. Results are de-duplicated by title.
    """

    def __init__(self, notes: NoteStore, semantic: SemanticMemory | None = None) -> None:
        self.notes = notes
        self.semantic = semantic

    @property
    def name(self) -> str:
        return "recall"

    @property
    def description(self) -> str:
        return (
            "Search persistent memory for notes that match the meaning of a query, "
            "not just exact keywords. Use this when the owner asks about anything they "
            "may have told you before. Returns up to 5 matching notes."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": (
                        "A natural-language description of what you are looking for. "
                        "Full sentences work best."
                    ),
                },
            },
            "required": ["query"],
            "additionalProperties": False,
        }

    @property
    def _semantic_ready(self) -> bool:
        return self.semantic is not None and self.semantic.is_configured

    async def execute(self, **kwargs: Any) -> str:
        query = str(kwargs.get("query") or "").strip()
        if not query:
            return "Error: query is required."

        found: list[tuple[str, str]] = []
        if self._semantic_ready:
            found = [(r.title, r.body) for r in await self.semantic.search(query, RECALL_LIMIT)]
        if not found:
            found = [(n.title, n.body) for n in self.notes.search_notes(query, RECALL_LIMIT)]

        seen: set[str] = set()
        merged: list[tuple[str, str]] = []
        for title, body in found:
            if title.lower() not in seen:
                seen.add(title.lower())
                merged.append((title, body))

        method = "semantic" if self._semantic_ready else "keyword"
        if not merged:
            return f'No notes found matching "{query}" (searched via {method}).'

        lines = [f"{i}. **{title}**: {body}" for i, (title, body) in enumerate(merged[:RECALL_LIMIT], 1)]
        return f"Found {len(merged)} note(s) [{method} search]:\n" + "\n".join(lines)
