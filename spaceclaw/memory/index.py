"""Vector index for semantic memory.

Stores one embedding per memory, keyed by lower-cased title, in SQLite and
ranks them by cosine similarity computed in Python.
"""

from __future__ import annotations

import logging
import math
import sqlite3
import struct
from dataclasses import dataclass
from pathlib import Path

from spaceclaw.utils.helpers import ensure_dir, sqlite_connection

logger = logging.getLogger(__name__)


@dataclass
class SearchResult:
    """Result from a vector search query."""

    title: str
    body: str
    score: float


class VectorIndex:
    """Vector index over ``(title, body)`` memories.

    Re-saving a memory with the same title (case-insensitive) refreshes its
    body and embedding instead of adding a duplicate.

    Attributes:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        ensure_dir(self.db_path.parent)
        self._init_db()

    def _init_db(self) -> None:
        """Initialize the database schema."""
        with sqlite_connection(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS memory_vectors (
                    id INTEGER PRIMARY KEY,
                    title_key TEXT NOT NULL UNIQUE,
                    title TEXT NOT NULL,
                    body TEXT NOT NULL,
                    embedding BLOB NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

    def _serialize_embedding(self, embedding: list[float]) -> bytes:
        """Serialize embedding to binary format."""
        return struct.pack(f"{len(embedding)}f", *embedding)

    def _deserialize_embedding(self, data: bytes) -> list[float]:
        """Deserialize embedding from binary format."""
        count = len(data) // 4  # 4 bytes per float
        return list(struct.unpack(f"{count}f", data))

    @staticmethod
    def cosine_similarity(vec_a: list[float], vec_b: list[float]) -> float:
        """Compute cosine similarity between two vectors.

        Raises:
            ValueError: If the vectors have different dimensions.
        """
        if len(vec_a) != len(vec_b):
            raise ValueError(
                f"Vector dimensions don't match: {len(vec_a)} vs {len(vec_b)}"
            )

        dot_product = sum(a * b for a, b in zip(vec_a, vec_b))
        norm_a = math.sqrt(sum(a * a for a in vec_a))
        norm_b = math.sqrt(sum(b * b for b in vec_b))

        if norm_a == 0 or norm_b == 0:
            return 0.0

        return dot_product / (norm_a * norm_b)

    def upsert(self, title: str, body: str, embedding: list[float]) -> None:
        """Insert or refresh the memory stored under ``title``."""
        if not embedding:
            raise ValueError("Cannot index an empty embedding")

        with sqlite_connection(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO memory_vectors (title_key, title, body, embedding)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(title_key) DO UPDATE SET
                    title = excluded.title,
                    body = excluded.body,
                    embedding = excluded.embedding,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (title.lower(), title, body, self._serialize_embedding(embedding)),
            )
        logger.debug("Indexed memory %r", title)

    def search(
        self,
        query_embedding: list[float],
        limit: int = 5,
        min_score: float = 0.0,
    ) -> list[SearchResult]:
        """Find the memories most similar to ``query_embedding``.

        Rows whose dimension differs from the query (e.g. written by another
        embedding provider) are skipped.

        Returns:
            Up to ``limit`` results, best first.
        """
        results: list[SearchResult] = []
        with sqlite_connection(self.db_path) as conn:
            rows = conn.execute(
                "SELECT title, body, embedding FROM memory_vectors"
            ).fetchall()

        for row in rows:
            embedding = self._deserialize_embedding(row["embedding"])
            if len(embedding) != len(query_embedding):
                continue
            score = self.cosine_similarity(query_embedding, embedding)
            if score >= min_score:
                results.append(SearchResult(title=row["title"], body=row["body"], score=score))

        results.sort(key=lambda r: r.score, reverse=True)
        return results[:limit]

    def delete(self, title: str) -> bool:
        """Delete the memory stored under ``title``; returns True if one existed."""
        with sqlite_connection(self.db_path) as conn:
            cursor = conn.execute(
                "DELETE FROM memory_vectors WHERE title_key = ?", (title.lower(),)
            )
            return cursor.rowcount > 0

    def count(self) -> int:
        """Get the number of indexed memories."""
        try:
            with sqlite_connection(self.db_path) as conn:
                return conn.execute("SELECT COUNT(*) FROM memory_vectors").fetchone()[0]
        except sqlite3.OperationalError:
            return 0
