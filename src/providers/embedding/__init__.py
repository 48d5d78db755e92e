"""Embedding provider implementations.

Embeddings convert text into numeric vectors that capture semantic meaning.
Vectors are stored alongside each chunk in SQLite and compared by cosine
similarity at query time.

    - OllamaEmbeddingProvider -- any embedding model served by Ollama,
      selected per project.
"""

from src.providers.embedding.ollama_embedding_provider import OllamaEmbeddingProvider

__all__ = ["OllamaEmbeddingProvider"]
