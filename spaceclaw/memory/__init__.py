"""Long-term memory: notes, profile facts, vector index and retrieval."""

from spaceclaw.memory.core import SETUP_STEPS, CoreMemory, CoreMemoryStore, SetupStep, save_setup_answer
from spaceclaw.memory.extraction import FactExtractor
from spaceclaw.memory.index import SearchResult, VectorIndex
from spaceclaw.memory.notes import Note, NoteStore
from spaceclaw.memory.semantic import MemorySnippet, SemanticMemory

__all__ = [
    "CoreMemory",
    "CoreMemoryStore",
    "SETUP_STEPS",
    "SetupStep",
    "save_setup_answer",
    "FactExtractor",
    "SearchResult",
    "VectorIndex",
    "Note",
    "NoteStore",
    "MemorySnippet",
    "SemanticMemory",
]
