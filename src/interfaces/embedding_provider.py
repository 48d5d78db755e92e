"""Abstract base class for text-embedding service providers.

Defines the contract for turning a piece of text into an embedding vector
with a caller-chosen model.  The model id is a per-call argument because
each project fixes its own embedding model at creation time.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations:
#   OllamaEmbeddingProvider -- any embedding-capable model served by Ollama
# Located in: src/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for the embedding client used by ingestion and query."""

    @abstractmethod
    async def embed(self, text: str, model: str) -> list[float]:
        """Generate an embedding vector for *text*.

        Parameters
        ----------
        text:
            The text to embed.
        model:
            Identifier of the embedding model, e.g. ``"nomic-embed-text"``.

        Returns
        -------
        list[float]
            The embedding vector.  Never empty.

        Raises
        ------
        src.utils.errors.EmbeddingError
            If the service is unreachable, rejects the request, or returns
            no vector.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this embedding provider."""
