"""Retrieval result models.

Produced by the similarity engine (src/services/similarity.py) and the
query service (src/services/query_service.py).
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from src.models.project import Chunk


# ---------------------------------------------------------------------------
# RankedChunk -- a chunk paired with its similarity to the query.
# ---------------------------------------------------------------------------
class RankedChunk(BaseModel):
    """A stored chunk scored against a query vector."""

    model_config = ConfigDict(frozen=True)

    chunk: Chunk
    similarity: float = Field(description="Cosine similarity in [-1, 1].")


# ---------------------------------------------------------------------------
# QueryResult -- the answer plus the sources it was grounded on.
# ---------------------------------------------------------------------------
class QueryResult(BaseModel):
    """Generated answer and the ranked sources used as its context."""

    model_config = ConfigDict(frozen=True)

    answer: str
    sources: list[RankedChunk] = Field(default_factory=list)
