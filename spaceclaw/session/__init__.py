"""Conversation history storage."""

from spaceclaw.session.store import ConversationStore, PersistenceError

__all__ = ["ConversationStore", "PersistenceError"]
