"""Tests for the memory system.

Tests cover:
- NoteStore (notes.py): named notes with full-text search
- CoreMemoryStore (core.py): profile facts and internal settings
- VectorIndex (index.py): vector storage and search
- EmbeddingProvider (embeddings.py): HTTP embedding backends
- SemanticMemory (semantic.py): retrieval that degrades to empty
- FactExtractor (extraction.py): background fact extraction
"""

import asyncio
import json
import struct
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from conftest import StubProvider
from spaceclaw.memory.core import SETUP_STEPS, CoreMemoryStore, save_setup_answer
from spaceclaw.memory.embeddings import (
    EmbeddingProvider,
    GeminiEmbedding,
    OllamaEmbedding,
    OpenAIEmbedding,
    get_embedding_provider,
)
from spaceclaw.memory.extraction import FactExtractor, parse_facts
from spaceclaw.memory.index import SearchResult, VectorIndex
from spaceclaw.memory.notes import NoteStore
from spaceclaw.memory.semantic import MemorySnippet, SemanticMemory
from spaceclaw.providers.base import LLMResponse, TransportError

VOCABULARY = ("cat", "gym", "code")


class KeywordEmbedding(EmbeddingProvider):
    """Deterministic embedding: one dimension per known keyword."""

    def __init__(self, delay: float = 0.0, fail: bool = False) -> None:
        self.delay = delay
        self.fail = fail
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("embedding backend down")
        lowered = text.lower()
        return [float(lowered.count(word)) for word in VOCABULARY] + [0.1]

    @property
    def dimension(self) -> int:
        return len(VOCABULARY) + 1


def semantic_memory(tmp_path: Path, embedder: EmbeddingProvider | None, **kwargs) -> SemanticMemory:
    factory = None
    if embedder is not None:
        async def factory() -> EmbeddingProvider:
            return embedder
    return SemanticMemory(VectorIndex(tmp_path / "vectors.db"), factory, **kwargs)


# =============================================================================
# NoteStore Tests
# =============================================================================


class TestNoteStore:
    """Tests for NoteStore class."""

    def test_init_creates_parent_directory(self, tmp_path: Path) -> None:
        """The database directory is created on first use."""
        NoteStore(tmp_path / "deep" / "dir" / "m.db")
        assert (tmp_path / "deep" / "dir" / "m.db").exists()

    def test_save_overwrites_case_insensitively(self, tmp_path: Path) -> None:
        """Saving under an existing title (any case) replaces the body."""
        store = NoteStore(tmp_path / "m.db")

        assert store.save_note("Gym", "Mondays") is False
        assert store.save_note("gym", "Tuesdays") is True

        notes = store.all_notes()
        assert len(notes) == 1
        assert (notes[0].title, notes[0].body) == ("Gym", "Tuesdays")

    def test_search_finds_title_and_body(self, tmp_path: Path) -> None:
        """Full-text search matches both columns."""
        store = NoteStore(tmp_path / "m.db")
        store.save_note("favourite colour", "teal")
        store.save_note("pet", "a cat called Tom")

        assert [n.title for n in store.search_notes("teal")] == ["favourite colour"]
        assert [n.title for n in store.search_notes("pet")] == ["pet"]

    def test_search_sees_updates(self, tmp_path: Path) -> None:
        """The FTS mirror follows updates."""
        store = NoteStore(tmp_path / "m.db")
        store.save_note("pet", "a cat")
        store.save_note("pet", "a dog")

        assert store.search_notes("cat") == []
        assert [n.body for n in store.search_notes("dog")] == ["a dog"]

    def test_search_syntax_error_returns_empty(self, tmp_path: Path) -> None:
        """Malformed FTS5 queries degrade to no results."""
        store = NoteStore(tmp_path / "m.db")
        store.save_note("pet", "a cat")

        assert store.search_notes('"unbalanced') == []

    def test_search_limit(self, tmp_path: Path) -> None:
        """At most ``limit`` notes are returned."""
        store = NoteStore(tmp_path / "m.db")
        for i in range(8):
            store.save_note(f"note {i}", "shared keyword")

        assert len(store.search_notes("keyword", limit=5)) == 5


# =============================================================================
# CoreMemoryStore Tests
# =============================================================================


class TestCoreMemoryStore:
    """Tests for CoreMemoryStore class."""

    def test_set_get_delete(self, tmp_path: Path) -> None:
        """Facts upsert by key and keep insertion order."""
        store = CoreMemoryStore(tmp_path / "m.db")
        store.set("owner_name", "Name", "Ada")
        store.set("city", "City", "London")
        store.set("owner_name", "Name", "Ada Lovelace")

        facts = store.get_all()
        assert [(f.key, f.value) for f in facts] == [("owner_name", "Ada Lovelace"), ("city", "London")]

        store.delete("city")
        assert [f.key for f in store.get_all()] == ["owner_name"]

    def test_settings_are_separate(self, tmp_path: Path) -> None:
        """Settings never appear among profile facts."""
        store = CoreMemoryStore(tmp_path / "m.db")
        assert store.get_setting("active_llm") is None

        store.set_setting("active_llm", "openai:gpt-4o")
        store.set_setting("active_llm", "google:gemini-2.5-flash")

        assert store.get_setting("active_llm") == "google:gemini-2.5-flash"
        assert store.get_all() == []

    def test_setup_answers(self, tmp_path: Path) -> None:
        """Setup answers become facts; skip and blanks are ignored."""
        store = CoreMemoryStore(tmp_path / "m.db")
        name, work, location = SETUP_STEPS[:3]

        assert save_setup_answer(store, name, "  Ada  ") is True
        assert save_setup_answer(store, work, "SKIP") is False
        assert save_setup_answer(store, location, "   ") is False

        [fact] = store.get_all()
        assert (fact.key, fact.label, fact.value) == ("owner_name", "Owner's name", "Ada")

    def test_shares_database_with_notes(self, tmp_path: Path) -> None:
        """Both stores can live in the same SQLite file."""
        db = tmp_path / "m.db"
        core = CoreMemoryStore(db)
        notes = NoteStore(db)
        core.set("k", "Label", "v")
        notes.save_note("t", "b")

        assert len(core.get_all()) == 1
        assert len(notes.all_notes()) == 1


# =============================================================================
# VectorIndex Tests
# =============================================================================


class TestVectorIndex:
    """Tests for VectorIndex class."""

    def test_serialization_round_trip(self, tmp_path: Path) -> None:
        """Embeddings are packed as 32-bit floats."""
        index = VectorIndex(tmp_path / "v.db")
        data = index._serialize_embedding([0.5, -1.0, 2.0])

        assert len(data) == 3 * 4
        assert data == struct.pack("3f", 0.5, -1.0, 2.0)
        assert index._deserialize_embedding(data) == [0.5, -1.0, 2.0]

    def test_cosine_similarity(self) -> None:
        """Identical vectors score 1, orthogonal ones 0."""
        assert VectorIndex.cosine_similarity([1.0, 0.0], [2.0, 0.0]) == pytest.approx(1.0)
        assert VectorIndex.cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
        assert VectorIndex.cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0
        with pytest.raises(ValueError):
            VectorIndex.cosine_similarity([1.0], [1.0, 2.0])

    def test_search_ranks_by_similarity(self, tmp_path: Path) -> None:
        """The closest memory comes first."""
        index = VectorIndex(tmp_path / "v.db")
        index.upsert("cat", "Tom", [1.0, 0.0, 0.0])
        index.upsert("gym", "Mondays", [0.0, 1.0, 0.0])
        index.upsert("both", "cat gym", [0.7, 0.7, 0.0])

        results = index.search([1.0, 0.1, 0.0], limit=2)

        assert [r.title for r in results] == ["cat", "both"]
        assert all(isinstance(r, SearchResult) for r in results)
        assert results[0].score > results[1].score

    def test_upsert_by_title(self, tmp_path: Path) -> None:
        """Re-indexing a title (any case) replaces it."""
        index = VectorIndex(tmp_path / "v.db")
        index.upsert("Cat", "Tom", [1.0, 0.0])
        index.upsert("cat", "Felix", [1.0, 0.0])

        assert index.count() == 1
        [result] = index.search([1.0, 0.0])
        assert (result.title, result.body) == ("cat", "Felix")

    def test_mismatched_dimensions_skipped(self, tmp_path: Path) -> None:
        """Rows from a different embedding model are ignored."""
        index = VectorIndex(tmp_path / "v.db")
        index.upsert("old", "x", [1.0, 0.0, 0.0])
        index.upsert("new", "y", [1.0, 0.0])

        assert [r.title for r in index.search([1.0, 0.0])] == ["new"]

    def test_delete(self, tmp_path: Path) -> None:
        """Deleting reports whether anything was removed."""
        index = VectorIndex(tmp_path / "v.db")
        index.upsert("cat", "Tom", [1.0])

        assert index.delete("CAT") is True
        assert index.delete("cat") is False
        assert index.count() == 0

    def test_empty_embedding_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError):
            VectorIndex(tmp_path / "v.db").upsert("t", "b", [])


# =============================================================================
# EmbeddingProvider Tests
# =============================================================================


def _mock_http_client(payload: dict) -> AsyncMock:
    response = MagicMock()
    response.json.return_value = payload
    response.raise_for_status = MagicMock()
    client = AsyncMock()
    client.is_closed = False
    client.post.return_value = response
    return client


class TestEmbeddings:
    """Tests for embedding providers."""

    @pytest.mark.asyncio
    async def test_openai_embed(self) -> None:
        """OpenAI embeddings post to the embeddings endpoint."""
        with patch("httpx.AsyncClient") as MockClient:
            client = _mock_http_client({"data": [{"index": 0, "embedding": [0.1, 0.2]}]})
            MockClient.return_value = client

            provider = OpenAIEmbedding("sk-test")
            assert await provider.embed("hello") == [0.1, 0.2]

            url = client.post.call_args.args[0]
            assert url == "https://api.openai.com/v1/embeddings"
            assert client.post.call_args.kwargs["json"]["model"] == OpenAIEmbedding.MODEL

    @pytest.mark.asyncio
    async def test_openai_batch_keeps_order(self) -> None:
        """Batch results are re-sorted by index."""
        with patch("httpx.AsyncClient") as MockClient:
            MockClient.return_value = _mock_http_client({"data": [
                {"index": 1, "embedding": [2.0]},
                {"index": 0, "embedding": [1.0]},
            ]})

            provider = OpenAIEmbedding("sk-test")
            assert await provider.embed_batch(["a", "b"]) == [[1.0], [2.0]]
            assert await provider.embed_batch([]) == []

    @pytest.mark.asyncio
    async def test_gemini_embed(self) -> None:
        """Gemini embeddings pass the key as a query parameter."""
        with patch("httpx.AsyncClient") as MockClient:
            client = _mock_http_client({"embedding": {"values": [0.3]}})
            MockClient.return_value = client

            assert await GeminiEmbedding("g-key").embed("hello") == [0.3]
            assert client.post.call_args.kwargs["params"] == {"key": "g-key"}

    @pytest.mark.asyncio
    async def test_ollama_dimension_learned(self) -> None:
        """Ollama reports the dimension of the model it actually ran."""
        with patch("httpx.AsyncClient") as MockClient:
            MockClient.return_value = _mock_http_client({"embedding": [0.0] * 384})

            provider = OllamaEmbedding(host="http://ollama:11434")
            assert provider.dimension == OllamaEmbedding.DIMENSION
            await provider.embed("hello")
            assert provider.dimension == 384

    @pytest.mark.asyncio
    async def test_factory_explicit(self) -> None:
        assert isinstance(await get_embedding_provider("openai", openai_api_key="sk"), OpenAIEmbedding)
        assert isinstance(await get_embedding_provider("gemini", gemini_api_key="g"), GeminiEmbedding)
        assert isinstance(await get_embedding_provider("ollama"), OllamaEmbedding)

    @pytest.mark.asyncio
    async def test_factory_auto_prefers_openai(self) -> None:
        provider = await get_embedding_provider("auto", openai_api_key="sk", gemini_api_key="g")
        assert isinstance(provider, OpenAIEmbedding)

    @pytest.mark.asyncio
    async def test_factory_auto_nothing_available(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for var in ("OPENAI_API_KEY", "GEMINI_API_KEY", "GOOGLE_API_KEY"):
            monkeypatch.delenv(var, raising=False)
        with patch.object(OllamaEmbedding, "is_available", AsyncMock(return_value=False)):
            with pytest.raises(ValueError):
                await get_embedding_provider("auto")

    @pytest.mark.asyncio
    async def test_factory_unknown(self) -> None:
        with pytest.raises(ValueError):
            await get_embedding_provider("word2vec")


# =============================================================================
# SemanticMemory Tests
# =============================================================================


class TestSemanticMemory:
    """Tests for SemanticMemory class."""

    @pytest.mark.asyncio
    async def test_upsert_then_retrieve(self, tmp_path: Path) -> None:
        """Stored memories come back ranked for a related query."""
        memory = semantic_memory(tmp_path, KeywordEmbedding())
        assert await memory.upsert("pet", "a cat called Tom")
        assert await memory.upsert("training", "gym on Mondays")

        snippets = await memory.retrieve("what is my cat called?", k=1)

        assert snippets == [MemorySnippet(label="pet", text="a cat called Tom", score=snippets[0].score)]

    @pytest.mark.asyncio
    async def test_disabled_returns_empty(self, tmp_path: Path) -> None:
        embedder = KeywordEmbedding()
        memory = semantic_memory(tmp_path, embedder, enabled=False)

        assert not memory.is_configured
        assert await memory.retrieve("cat") == []
        assert await memory.upsert("pet", "cat") is False
        assert embedder.calls == []

    @pytest.mark.asyncio
    async def test_unconfigured_returns_empty(self, tmp_path: Path) -> None:
        memory = semantic_memory(tmp_path, None)
        assert not memory.is_configured
        assert await memory.retrieve("cat") == []

    @pytest.mark.asyncio
    async def test_unavailable_embedder_disables(self, tmp_path: Path) -> None:
        """A factory that finds no provider switches retrieval off."""
        async def no_provider() -> EmbeddingProvider:
            raise ValueError("no keys")

        memory = SemanticMemory(VectorIndex(tmp_path / "v.db"), no_provider)

        assert await memory.retrieve("cat") == []
        assert not memory.is_configured

    @pytest.mark.asyncio
    async def test_failure_returns_empty(self, tmp_path: Path) -> None:
        memory = semantic_memory(tmp_path, KeywordEmbedding(fail=True))
        assert await memory.retrieve("cat") == []
        assert await memory.upsert("pet", "cat") is False

    @pytest.mark.asyncio
    async def test_timeout_returns_empty(self, tmp_path: Path) -> None:
        memory = semantic_memory(tmp_path, KeywordEmbedding(delay=1.0), timeout=0.05)
        assert await memory.retrieve("cat") == []

    @pytest.mark.asyncio
    async def test_schedule_upsert_runs_in_background(self, tmp_path: Path) -> None:
        memory = semantic_memory(tmp_path, KeywordEmbedding())

        memory.schedule_upsert("pet", "cat")
        await asyncio.gather(*memory._pending)

        assert memory.index.count() == 1


# =============================================================================
# FactExtractor Tests
# =============================================================================


class TestFactExtraction:
    """Tests for fact parsing and extraction."""

    def test_parse_array(self) -> None:
        raw = json.dumps([{"title": " cat ", "body": " Tom "}, {"title": "", "body": "x"}])
        assert parse_facts(raw) == [{"title": "cat", "body": "Tom"}]

    def test_parse_object(self) -> None:
        raw = json.dumps({"facts": [{"title": "gym", "body": "Mondays"}]})
        assert parse_facts(raw) == [{"title": "gym", "body": "Mondays"}]

    def test_parse_fenced(self) -> None:
        raw = '```json\n[{"title": "gym", "body": "Mondays"}]\n```'
        assert parse_facts(raw) == [{"title": "gym", "body": "Mondays"}]

    def test_parse_caps_at_five(self) -> None:
        raw = json.dumps([{"title": f"t{i}", "body": "b"} for i in range(8)])
        assert len(parse_facts(raw)) == 5

    def test_parse_nothing(self) -> None:
        assert parse_facts("[]") == []
        assert parse_facts("{}") == []
        assert parse_facts('{"facts": "none"}') == []

    def test_parse_invalid(self) -> None:
        with pytest.raises(json.JSONDecodeError):
            parse_facts("not json")

    @pytest.mark.asyncio
    async def test_extract_and_save(self, tmp_path: Path) -> None:
        """Extracted facts become notes and are embedded."""
        provider = StubProvider([LLMResponse.text(json.dumps({"facts": [
            {"title": "pet", "body": "a cat called Tom"},
        ]}))])
        notes = NoteStore(tmp_path / "m.db")
        semantic = semantic_memory(tmp_path, KeywordEmbedding())

        saved = await FactExtractor(provider, notes, semantic).extract_and_save("my cat is Tom", "Nice!")

        assert saved == [{"title": "pet", "body": "a cat called Tom"}]
        assert [n.title for n in notes.all_notes()] == ["pet"]
        assert semantic.index.count() == 1
        prompt = provider.calls[0]["messages"][0]["content"]
        assert "User: my cat is Tom" in prompt
        assert "Assistant: Nice!" in prompt

    @pytest.mark.asyncio
    async def test_extract_propagates_provider_errors(self, tmp_path: Path) -> None:
        provider = StubProvider([TransportError("openai", "down")])
        with pytest.raises(TransportError):
            await FactExtractor(provider, NoteStore(tmp_path / "m.db")).extract_and_save("a", "b")
