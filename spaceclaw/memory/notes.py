"""Named notes: free-text facts the agent can save and search.

Notes live in a ``notes`` table mirrored into an FTS5 index by triggers.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path

from spaceclaw.utils.helpers import ensure_dir, sqlite_connection

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS notes (
    id    INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT    NOT NULL,
    body  TEXT    NOT NULL,
    ts    INTEGER NOT NULL DEFAULT (CAST(strftime('%s', 'now') AS INTEGER))
);

CREATE VIRTUAL TABLE IF NOT EXISTS notes_fts USING fts5(
    title,
    body,
    content='notes',
    content_rowid='id'
);

CREATE TRIGGER IF NOT EXISTS notes_ai AFTER INSERT ON notes BEGIN
    INSERT INTO notes_fts(rowid, title, body) VALUES (new.id, new.title, new.body);
END;

CREATE TRIGGER IF NOT EXISTS notes_ad AFTER DELETE ON notes BEGIN
    INSERT INTO notes_fts(notes_fts, rowid, title, body)
    VALUES ('delete', old.id, old.title, old.body);
END;

CREATE TRIGGER IF NOT EXISTS notes_au AFTER UPDATE ON notes BEGIN
    INSERT INTO notes_fts(notes_fts, rowid, title, body)
    VALUES ('delete', old.id, old.title, old.body);
    INSERT INTO notes_fts(rowid, title, body) VALUES (new.id, new.title, new.body);
END;
"""


@dataclass
class Note:
    """A saved note."""

    title: str
    body: str
    ts: int


class NoteStore:
    """SQLite-backed note storage with full-text search."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        ensure_dir(self.db_path.parent)
        with sqlite_connection(self.db_path) as conn:
            conn.executescript(_SCHEMA)

    def save_note(self, title: str, body: str) -> bool:
        """
        Save a note, overwriting any note with the same title (case-insensitive).

        Returns:
            True if an existing note was updated, False if a new one was added.
        """
        with sqlite_connection(self.db_path) as conn:
            existing = conn.execute(
                "SELECT id FROM notes WHERE lower(title) = lower(?) LIMIT 1", (title,)
            ).fetchone()
            if existing:
                conn.execute(
                    "UPDATE notes SET body = ?, ts = CAST(strftime('%s', 'now') AS INTEGER) "
                    "WHERE id = ?",
                    (body, existing["id"]),
                )
            else:
                conn.execute("INSERT INTO notes (title, body) VALUES (?, ?)", (title, body))

        logger.debug("Saved note %r (updated=%s)", title, bool(existing))
        return bool(existing)

    def search_notes(self, query: str, limit: int = 5) -> list[Note]:
        """Full-text search across notes; FTS5 query syntax errors yield ``[]``."""
        try:
            with sqlite_connection(self.db_path) as conn:
                rows = conn.execute(
                    "SELECT n.title, n.body, n.ts FROM notes_fts f "
                    "JOIN notes n ON n.id = f.rowid "
                    "WHERE notes_fts MATCH ? ORDER BY rank LIMIT ?",
                    (query, limit),
                ).fetchall()
        except sqlite3.OperationalError as e:
            logger.debug("Note search failed for %r: %s", query, e)
            return []
        return [Note(title=r["title"], body=r["body"], ts=r["ts"]) for r in rows]

    def all_notes(self) -> list[Note]:
        """Return all notes, newest first."""
        with sqlite_connection(self.db_path) as conn:
            rows = conn.execute(
                "SELECT title, body, ts FROM notes ORDER BY ts DESC, id DESC"
            ).fetchall()
        return [Note(title=r["title"], body=r["body"], ts=r["ts"]) for r in rows]
