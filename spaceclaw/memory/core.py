"""Core memories: always-on profile facts about the owner.

Unlike notes, core memories are keyed by a stable slug (e.g. ``owner_name``)
and injected into every system prompt. A separate ``settings`` table holds
internal key/value state such as the active LLM, which must never reach the
prompt.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from spaceclaw.utils.helpers import ensure_dir, sqlite_connection

_SCHEMA = """
CREATE TABLE IF NOT EXISTS core_memories (
    key   TEXT    PRIMARY KEY,
    label TEXT    NOT NULL,
    value TEXT    NOT NULL,
    ts    INTEGER NOT NULL DEFAULT (CAST(strftime('%s', 'now') AS INTEGER))
);

CREATE TABLE IF NOT EXISTS settings (
    key   TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


@dataclass
class CoreMemory:
    """A single profile fact."""

    key: str
    label: str
    value: str


class CoreMemoryStore:
    """SQLite-backed profile facts and internal settings."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        ensure_dir(self.db_path.parent)
        with sqlite_connection(self.db_path) as conn:
            conn.executescript(_SCHEMA)

    def set(self, key: str, label: str, value: str) -> None:
        """Insert or update a profile fact."""
        with sqlite_connection(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO core_memories (key, label, value) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    label = excluded.label,
                    value = excluded.value,
                    ts = CAST(strftime('%s', 'now') AS INTEGER)
                """,
                (key, label, value),
            )

    def get_all(self) -> list[CoreMemory]:
        """Return all profile facts in insertion order."""
        with sqlite_connection(self.db_path) as conn:
            rows = conn.execute(
                "SELECT key, label, value FROM core_memories ORDER BY rowid ASC"
            ).fetchall()
        return [CoreMemory(key=r["key"], label=r["label"], value=r["value"]) for r in rows]

    def delete(self, key: str) -> None:
        """Delete a profile fact by key."""
        with sqlite_connection(self.db_path) as conn:
            conn.execute("DELETE FROM core_memories WHERE key = ?", (key,))

    def get_setting(self, key: str) -> str | None:
        """Read an internal setting."""
        with sqlite_connection(self.db_path) as conn:
            row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
        return row["value"] if row else None

    def set_setting(self, key: str, value: str) -> None:
        """Write an internal setting."""
        with sqlite_connection(self.db_path) as conn:
            conn.execute(
                "INSERT INTO settings (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )


@dataclass
class SetupStep:
    """One onboarding question and where its answer is stored."""

    key: str
    label: str
    question: str


SETUP_STEPS: list[SetupStep] = [
    SetupStep("owner_name", "Owner's name", "What's your name?"),
    SetupStep("owner_work", "What they do", "What do you do? (job, projects, what keeps you busy)"),
    SetupStep("owner_location", "Where they're based", "Where are you based?"),
    SetupStep(
        "owner_goals",
        "Current goals and projects",
        "What are your main goals or active projects right now?",
    ),
    SetupStep(
        "owner_interests",
        "Topics they're into",
        "What topics are you into? (tech, markets, hobbies, whatever)",
    ),
    SetupStep(
        "owner_comms",
        "Communication style preference",
        "How do you like to communicate? (brief, detailed, casual, blunt...)",
    ),
    SetupStep("owner_callme", "What you want to be called", "What do you want to call me?"),
    SetupStep(
        "owner_people",
        "Important people to know about",
        "Any important people I should know about? (teammates, family, advisors)",
    ),
]

SKIP_ANSWER = "skip"


def save_setup_answer(store: CoreMemoryStore, step: SetupStep, answer: str) -> bool:
    """Store an answer as a profile fact; ``skip`` or a blank answer stores nothing."""
    answer = answer.strip()
    if not answer or answer.lower() == SKIP_ANSWER:
        return False
    store.set(step.key, step.label, answer)
    return True
