"""Utility helpers for spaceclaw."""

from spaceclaw.utils.helpers import ensure_dir, sqlite_connection

__all__ = ["ensure_dir", "sqlite_connection"]
