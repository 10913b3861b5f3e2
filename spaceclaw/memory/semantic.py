"""Semantic memory: embed notes and retrieve the most relevant ones.

Every public coroutine here degrades instead of raising: when memory is
disabled, no embedding provider is available, the call times out or anything
else fails, callers get an empty result (or ``False``) and a log line.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from spaceclaw.config.schema import Config
from spaceclaw.memory.embeddings import EmbeddingProvider, get_embedding_provider
from spaceclaw.memory.index import SearchResult, VectorIndex

logger = logging.getLogger(__name__)

EmbedderFactory = Callable[[], Awaitable[EmbeddingProvider]]


@dataclass
class MemorySnippet:
    """A retrieved memory ready for prompt injection."""

    label: str
    text: str
    score: float


class SemanticMemory:
    """Vector-backed long-term memory.

    Args:
        index: Local vector index.
        embedder_factory: Coroutine function returning an embedding provider;
            called once, on first use.
        enabled: Master switch (``memory.enabled``).
        timeout: Upper bound in seconds for a single retrieval.
    """

    def __init__(
        self,
        index: VectorIndex,
        embedder_factory: EmbedderFactory | None,
        *,
        enabled: bool = True,
        timeout: float = 5.0,
    ) -> None:
        self.index = index
        self.enabled = enabled
        self.timeout = timeout
        self._embedder_factory = embedder_factory
        self._embedder: EmbeddingProvider | None = None
        self._unavailable = embedder_factory is None
        self._pending: set[asyncio.Task] = set()

    @classmethod
    def from_config(cls, config: Config) -> "SemanticMemory":
        """Build semantic memory from the memory and provider sections."""
        memory = config.memory

        async def factory() -> EmbeddingProvider:
            openai = config.get_provider_config("openai")
            return await get_embedding_provider(
                memory.embedding_provider,
                openai_api_key=config.get_api_key("openai"),
                openai_api_base=openai.api_base if openai else None,
                gemini_api_key=config.get_api_key("google"),
            )

        return cls(
            VectorIndex(config.db_path),
            factory,
            enabled=memory.enabled,
            timeout=memory.retrieval_timeout,
        )

    @property
    def is_configured(self) -> bool:
        """True while memory is enabled and an embedder is (or may be) available."""
        return self.enabled and not self._unavailable

    async def _get_embedder(self) -> EmbeddingProvider | None:
        if self._embedder is None and not self._unavailable:
            try:
                self._embedder = await self._embedder_factory()
            except ValueError as e:
                logger.warning("Semantic memory disabled: %s", e)
                self._unavailable = True
        return self._embedder

    async def upsert(self, title: str, body: str) -> bool:
        """Embed a memory and store it in the index; returns False on any failure."""
        if not self.is_configured:
            return False
        try:
            embedder = await self._get_embedder()
            if embedder is None:
                return False
            embedding = await embedder.embed(f"{title}: {body}")
            self.index.upsert(title, body, embedding)
            return True
        except Exception as e:
            logger.warning("Memory upsert failed for %r: %s", title, e)
            return False

    def schedule_upsert(self, title: str, body: str) -> None:
        """Run :meth:`upsert` in the background without awaiting it."""
        if not self.is_configured:
            return
        task = asyncio.create_task(self.upsert(title, body))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _search(self, query: str, limit: int) -> list[SearchResult]:
        embedder = await self._get_embedder()
        if embedder is None:
            return []
        embedding = await embedder.embed(query)
        return self.index.search(embedding, limit=limit)

    async def search(self, query: str, limit: int = 5) -> list[SearchResult]:
        """Rank stored memories by similarity to ``query``; ``[]`` on any failure."""
        if not self.is_configured or not query.strip():
            return []
        try:
            return await asyncio.wait_for(self._search(query, limit), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Memory search timed out after %ss", self.timeout)
        except Exception as e:
            logger.warning("Memory search failed: %s", e)
        return []

    async def retrieve(self, query: str, k: int = 3) -> list[MemorySnippet]:
        """Return up to ``k`` snippets relevant to ``query``, best first."""
        results = await self.search(query, limit=k)
        return [MemorySnippet(label=r.title, text=r.body, score=r.score) for r in results]

    async def drain(self) -> None:
        """Wait for scheduled upserts to finish."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def close(self) -> None:
        """Close the embedding provider's network client."""
        if self._embedder is not None:
            await self._embedder.close()
