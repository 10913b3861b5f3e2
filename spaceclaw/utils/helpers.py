"""Small shared helpers: directories and SQLite connections."""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator


def ensure_dir(path: Path) -> Path:
    """Create a directory (and parents) if missing and return it."""
    path = Path(path).expanduser()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_path() -> Path:
    """Get the spaceclaw data directory (~/.spaceclaw)."""
    return ensure_dir(Path.home() / ".spaceclaw")


@contextmanager
def sqlite_connection(db_path: Path) -> Generator[sqlite3.Connection, None, None]:
    """
    Open a SQLite connection that commits on success and rolls back on error.

    Everything executed inside the ``with`` block is one transaction.

    Yields:
        SQLite connection with row factory enabled.
    """
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")

    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
