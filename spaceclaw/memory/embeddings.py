"""Embedding providers for semantic memory.

Each provider turns text into a vector over plain HTTP (httpx). Requests are
not retried; callers treat any failure as "no embedding".
"""

from __future__ import annotations

import asyncio
import os
from abc import ABC, abstractmethod
from typing import Any

import httpx

# Inputs longer than this are trimmed before embedding
MAX_INPUT_CHARS = 8192


class EmbeddingProvider(ABC):
    """Abstract base class for embedding providers."""

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Embed a single text.

        Args:
            text: The text to embed.

        Returns:
            Embedding vector as list of floats.
        """
        ...

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed multiple texts; one request per text unless overridden."""
        return list(await asyncio.gather(*(self.embed(text) for text in texts)))

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Return the embedding dimension."""
        ...

    async def close(self) -> None:
        """Release any network resources."""


class _HTTPEmbedding(EmbeddingProvider):
    """Shared lazily-created ``httpx.AsyncClient`` handling."""

    def __init__(self, *, timeout: float, headers: dict[str, str] | None = None) -> None:
        self._timeout = timeout
        self._headers = {"Content-Type": "application/json", **(headers or {})}
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                headers=self._headers,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()


class OpenAIEmbedding(_HTTPEmbedding):
    """OpenAI embedding provider using text-embedding-3-small."""

    MODEL = "text-embedding-3-small"
    DIMENSION = 1536
    DEFAULT_API_BASE = "https://api.openai.com/v1"

    def __init__(self, api_key: str, *, api_base: str | None = None, timeout: float = 30.0) -> None:
        super().__init__(timeout=timeout, headers={"Authorization": f"Bearer {api_key}"})
        self._url = f"{(api_base or self.DEFAULT_API_BASE).rstrip('/')}/embeddings"

    async def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        client = await self._get_client()
        response = await client.post(self._url, json=payload)
        response.raise_for_status()
        return response.json()

    async def embed(self, text: str) -> list[float]:
        """Embed a single text using the OpenAI API."""
        result = await self._post({"input": text[:MAX_INPUT_CHARS], "model": self.MODEL})
        return result["data"][0]["embedding"]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed multiple texts in a single API call."""
        if not texts:
            return []
        result = await self._post({
            "input": [text[:MAX_INPUT_CHARS] for text in texts],
            "model": self.MODEL,
        })
        # Sort by index to maintain order
        embeddings_data = sorted(result["data"], key=lambda x: x["index"])
        return [item["embedding"] for item in embeddings_data]

    @property
    def dimension(self) -> int:
        return self.DIMENSION


class GeminiEmbedding(_HTTPEmbedding):
    """Google Gemini embedding provider using text-embedding-004."""

    MODEL = "text-embedding-004"
    DIMENSION = 768
    API_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:embedContent"

    def __init__(self, api_key: str, *, timeout: float = 30.0) -> None:
        super().__init__(timeout=timeout)
        self._api_key = api_key

    async def embed(self, text: str) -> list[float]:
        """Embed a single text using the Gemini API."""
        client = await self._get_client()
        payload = {
            "model": f"models/{self.MODEL}",
            "content": {"parts": [{"text": text[:MAX_INPUT_CHARS]}]},
        }
        response = await client.post(
            self.API_URL.format(model=self.MODEL),
            json=payload,
            params={"key": self._api_key},
        )
        response.raise_for_status()
        return response.json()["embedding"]["values"]

    @property
    def dimension(self) -> int:
        return self.DIMENSION


class OllamaEmbedding(_HTTPEmbedding):
    """Ollama local embedding provider using nomic-embed-text."""

    MODEL = "nomic-embed-text"
    DIMENSION = 768  # nomic-embed-text dimension
    DEFAULT_HOST = "http://localhost:11434"

    def __init__(
        self,
        model: str | None = None,
        host: str | None = None,
        *,
        timeout: float = 60.0,
    ) -> None:
        super().__init__(timeout=timeout)
        self._model = model or self.MODEL
        self._host = (host or os.getenv("OLLAMA_HOST") or self.DEFAULT_HOST).rstrip("/")
        self._dimension: int | None = None

    async def embed(self, text: str) -> list[float]:
        """Embed a single text using the Ollama API."""
        client = await self._get_client()
        response = await client.post(
            f"{self._host}/api/embeddings",
            json={"model": self._model, "prompt": text[:MAX_INPUT_CHARS]},
        )
        response.raise_for_status()
        embedding = response.json()["embedding"]

        # Cache dimension from first response
        if self._dimension is None:
            self._dimension = len(embedding)
        return embedding

    @property
    def dimension(self) -> int:
        """Actual dimension depends on the model used."""
        return self._dimension or self.DIMENSION

    @staticmethod
    async def is_available(host: str | None = None) -> bool:
        """Check if an Ollama server is reachable."""
        host = (host or os.getenv("OLLAMA_HOST") or OllamaEmbedding.DEFAULT_HOST).rstrip("/")
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(5.0)) as client:
                response = await client.get(f"{host}/api/tags")
                return response.status_code == 200
        except (httpx.RequestError, httpx.TimeoutException):
            return False


async def get_embedding_provider(
    provider: str = "auto",
    *,
    openai_api_key: str | None = None,
    openai_api_base: str | None = None,
    gemini_api_key: str | None = None,
    ollama_host: str | None = None,
) -> EmbeddingProvider:
    """Pick an embedding provider.

    Auto-detection priority: OpenAI, then Gemini (when a key is available),
    then a reachable Ollama server.

    Raises:
        ValueError: If no suitable provider is available.
    """
    provider = (provider or "auto").lower()
    openai_api_key = openai_api_key or os.getenv("OPENAI_API_KEY")
    gemini_api_key = gemini_api_key or os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")

    if provider == "openai":
        if not openai_api_key:
            raise ValueError("OpenAI API key required for OpenAI embeddings")
        return OpenAIEmbedding(openai_api_key, api_base=openai_api_base)

    if provider == "gemini":
        if not gemini_api_key:
            raise ValueError("Gemini API key required for Gemini embeddings")
        return GeminiEmbedding(gemini_api_key)

    if provider == "ollama":
        return OllamaEmbedding(host=ollama_host)

    if provider == "auto":
        if openai_api_key:
            return OpenAIEmbedding(openai_api_key, api_base=openai_api_base)
        if gemini_api_key:
            return GeminiEmbedding(gemini_api_key)
        if await OllamaEmbedding.is_available(ollama_host):
            return OllamaEmbedding(host=ollama_host)
        raise ValueError(
            "No embedding provider available. Set an OpenAI or Google API key, "
            "or start Ollama."
        )

    raise ValueError(f"Unknown embedding provider: {provider}")


__all__ = [
    "EmbeddingProvider",
    "OpenAIEmbedding",
    "GeminiEmbedding",
    "OllamaEmbedding",
    "get_embedding_provider",
]
