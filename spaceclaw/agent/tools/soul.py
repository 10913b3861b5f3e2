"""Personality tools: let the agent read and edit its own instructions file."""

from pathlib import Path
from typing import Any

from loguru import logger

from spaceclaw.agent.tools.base import Tool

MAX_SOUL_BYTES = 16_384


class SoulReadTool(Tool):
    """Return the current personality file."""

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()

    @property
    def name(self) -> str:
        return "soul_read"

    @property
    def description(self) -> str:
        return (
            "Read the current personality and behaviour instructions that shape "
            "how you respond. Call this before making any edits."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {"type": "object", "properties": {}, "additionalProperties": False}

    async def execute(self, **kwargs: Any) -> str:
        if not self.path.is_file():
            return f"{self.path.name} does not exist yet. Use soul_update to create it."
        content = self.path.read_text(encoding="utf-8").strip()
        return f"📖 {self.path.name} ({len(content)} chars):\n\n{content}"


class SoulUpdateTool(Tool):
    """
    Append to or replace the personality file.

    Writes go to the configured file only and are capped at
    ``MAX_SOUL_BYTES``. The prompt re-reads the file every turn, so changes
    apply from the next model call.
    """

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()

    @property
    def name(self) -> str:
        return "soul_update"

    @property
    def description(self) -> str:
        return (
            "Update your personality file. Use mode='append' to add a rule or "
            "preference, or mode='replace' to rewrite the whole file. "
            "Always call soul_read first before replacing."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "mode": {
                    "type": "string",
                    "enum": ["append", "replace"],
                    "description": "'append' adds to the end; 'replace' overwrites the file.",
                },
                "content": {
                    "type": "string",
                    "description": "The rule to add, or the full new file for 'replace'.",
                },
                "reason": {
                    "type": "string",
                    "description": "Short explanation shown to the owner.",
                },
            },
            "required": ["mode", "content"],
            "additionalProperties": False,
        }

    async def execute(self, **kwargs: Any) -> str:
        mode = str(kwargs.get("mode") or "append").strip()
        content = str(kwargs.get("content") or "").strip()
        reason = str(kwargs.get("reason") or "").strip()

        if not content:
            return "Error: 'content' cannot be empty."
        if mode not in ("append", "replace"):
            return f"Error: 'mode' must be 'append' or 'replace', got \"{mode}\"."

        current = ""
        if self.path.is_file():
            current = self.path.read_text(encoding="utf-8").strip()

        if mode == "replace" or not current:
            updated = content
        else:
            updated = f"{current}\n\n{content}"

        size = len(updated.encode("utf-8"))
        if size > MAX_SOUL_BYTES:
            return (
                f"❌ {self.path.name} would exceed the {MAX_SOUL_BYTES // 1024} KB limit "
                f"({size} bytes). Consider replacing instead of appending, "
                "or trimming older rules first."
            )

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(updated, encoding="utf-8")
        verb = "replaced" if mode == "replace" else "updated"
        logger.info(f"Personality file {verb} ({size} bytes): {reason or 'no reason given'}")

        note = f"\n_Reason: {reason}_" if reason else ""
        return f"✅ {self.path.name} {verb} ({size} bytes). The new personality is active immediately.{note}"
