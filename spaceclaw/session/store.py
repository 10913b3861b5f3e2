"""SQLite-backed conversation history."""

import json
import sqlite3
from pathlib import Path
from typing import Any

from loguru import logger

from spaceclaw.utils.helpers import ensure_dir, sqlite_connection


class PersistenceError(Exception):
    """Raised when conversation history cannot be read or written."""


class ConversationStore:
    """
    Stores each chat's canonical message list.

    Every message is kept whole in ``raw_json`` so ``tool_calls`` and
    ``tool_call_id`` survive a reload; ``role`` and ``content`` are
    convenience columns for inspection. Rows written before ``raw_json``
    existed are rebuilt from those two columns.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        ensure_dir(self.db_path.parent)
        try:
            self._init_db()
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot open conversation store at {self.db_path}: {e}") from e

    def _init_db(self) -> None:
        with sqlite_connection(self.db_path) as conn:
            conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("""
                CREATE TABLE IF NOT EXISTS messages (
                    id      INTEGER PRIMARY KEY AUTOINCREMENT,
                    chat_id TEXT    NOT NULL,
                    role    TEXT    NOT NULL,
                    content TEXT    NOT NULL,
                    ts      INTEGER NOT NULL DEFAULT (CAST(strftime('%s', 'now') AS INTEGER))
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_messages_chat ON messages(chat_id, id)"
            )
            columns = {row["name"] for row in conn.execute("PRAGMA table_info(messages)")}
            if "raw_json" not in columns:
                conn.execute("ALTER TABLE messages ADD COLUMN raw_json TEXT")
                logger.debug("Added raw_json column to messages table")

    def load(self, chat_id: str) -> list[dict[str, Any]]:
        """
        Load a chat's history, oldest first.

        Returns:
            The stored messages; empty for an unknown chat.

        Raises:
            PersistenceError: If the database cannot be read.
        """
        try:
            with sqlite_connection(self.db_path) as conn:
                rows = conn.execute(
                    "SELECT role, content, raw_json FROM messages WHERE chat_id = ? ORDER BY id ASC",
                    (str(chat_id),),
                ).fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to load history for {chat_id}: {e}") from e

        messages = []
        for row in rows:
            if row["raw_json"]:
                messages.append(json.loads(row["raw_json"]))
            else:
                messages.append({"role": row["role"], "content": row["content"]})
        return messages

    def save(self, chat_id: str, messages: list[dict[str, Any]]) -> None:
        """
        Replace a chat's history with ``messages`` in one transaction.

        Raises:
            PersistenceError: If the write fails; the previous history is kept.
        """
        rows = []
        for msg in messages:
            content = msg.get("content")
            if not isinstance(content, str):
                content = json.dumps(content if content is not None else "")
            rows.append((str(chat_id), msg["role"], content, json.dumps(msg, ensure_ascii=False)))

        try:
            with sqlite_connection(self.db_path) as conn:
                conn.execute("DELETE FROM messages WHERE chat_id = ?", (str(chat_id),))
                conn.executemany(
                    "INSERT INTO messages (chat_id, role, content, raw_json) VALUES (?, ?, ?, ?)",
                    rows,
                )
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to save history for {chat_id}: {e}") from e

        logger.debug(f"Saved {len(rows)} messages for chat {chat_id}")

    def clear(self, chat_id: str) -> int:
        """
        Delete a chat's history. Notes and profile facts are untouched.

        Returns:
            Number of messages removed.
        """
        try:
            with sqlite_connection(self.db_path) as conn:
                cursor = conn.execute("DELETE FROM messages WHERE chat_id = ?", (str(chat_id),))
                removed = cursor.rowcount
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to clear history for {chat_id}: {e}") from e

        logger.info(f"Cleared {removed} messages for chat {chat_id}")
        return removed

    def list_chats(self) -> list[dict[str, Any]]:
        """List chats with their message counts, most recently active first."""
        try:
            with sqlite_connection(self.db_path) as conn:
                rows = conn.execute(
                    "SELECT chat_id, COUNT(*) AS messages, MAX(ts) AS updated_at "
                    "FROM messages GROUP BY chat_id ORDER BY MAX(id) DESC"
                ).fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to list chats: {e}") from e
        return [dict(row) for row in rows]
