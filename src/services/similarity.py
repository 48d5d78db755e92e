"""Cosine similarity and linear-scan ranking of stored chunks.

The corpus of a single project is small enough that a full scan over
every chunk is the retrieval strategy; there is no vector index.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from src.models.project import Chunk
from src.models.rag import RankedChunk


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Return dot(a, b) / (|a| * |b|).

    A zero-magnitude vector scores ``0.0`` against anything.

    Raises
    ------
    ValueError
        If the vectors differ in length.
    """
    if len(a) != len(b):
        msg = f"Vector length mismatch: {len(a)} != {len(b)}"
        raise ValueError(msg)

    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (norm_a * norm_b)


def rank(query_vector: Sequence[float], chunks: Sequence[Chunk], top_k: int) -> list[RankedChunk]:
    """Score every chunk against *query_vector* and keep the best *top_k*.

    The sort is stable, so chunks with equal scores keep their input order.
    """
    if top_k <= 0:
        return []
    scored = [
        RankedChunk(chunk=chunk, similarity=cosine_similarity(query_vector, chunk.embedding_vector))
        for chunk in chunks
    ]
    scored.sort(key=lambda item: item.similarity, reverse=True)
    return scored[:top_k]
