"""Background fact extraction from finished turns."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from spaceclaw.memory.notes import NoteStore
from spaceclaw.memory.semantic import SemanticMemory
from spaceclaw.providers.base import LLMProvider

logger = logging.getLogger(__name__)

MAX_FACTS = 5

EXTRACTION_PROMPT = """You are a memory extraction assistant. Given the exchange below, extract up to 5 specific, memorable facts, preferences, goals, decisions, or personal details that were shared.

Output ONLY a JSON array like: [{{"title": "short label", "body": "concise fact"}}]
If there is nothing worth saving (small talk, questions with no new info), output: []

User: {user}
Assistant: {reply}

Remember: only save concrete, reusable information. Do NOT save conversational filler."""

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")


def parse_facts(raw: str | None) -> list[dict[str, str]]:
    """
    Parse the extraction model's output.

    Accepts a bare array or an object with a ``facts`` array, optionally
    wrapped in a Markdown code fence. Entries without both a title and a body
    are dropped; at most ``MAX_FACTS`` are returned.

    Raises:
        json.JSONDecodeError: If the output is not JSON.
    """
    text = _FENCE_RE.sub("", (raw or "").strip())
    parsed: Any = json.loads(text or "[]")
    if isinstance(parsed, dict):
        parsed = parsed.get("facts", [])
    if not isinstance(parsed, list):
        return []

    facts = []
    for item in parsed[:MAX_FACTS]:
        if not isinstance(item, dict):
            continue
        title = str(item.get("title") or "").strip()
        body = str(item.get("body") or "").strip()
        if title and body:
            facts.append({"title": title, "body": body})
    return facts


class FactExtractor:
    """Asks a cheap model for memorable facts and saves them as notes."""

    def __init__(
        self,
        provider: LLMProvider,
        notes: NoteStore,
        semantic: SemanticMemory | None = None,
    ) -> None:
        self.provider = provider
        self.notes = notes
        self.semantic = semantic

    async def extract_and_save(self, user_text: str, reply: str) -> list[dict[str, str]]:
        """
        Extract facts from one exchange and save each as a note.

        Returns:
            The saved facts.

        Raises:
            TransportError: If the extraction model call fails.
            json.JSONDecodeError: If the model output is not JSON.
        """
        prompt = EXTRACTION_PROMPT.format(user=user_text, reply=reply)
        response = await self.provider.complete([{"role": "user", "content": prompt}])
        facts = parse_facts(response.content)

        for fact in facts:
            self.notes.save_note(fact["title"], fact["body"])
            if self.semantic is not None:
                await self.semantic.upsert(fact["title"], fact["body"])
            logger.debug("Auto-extracted fact saved: %s", fact["title"])
        return facts
