"""Pydantic request/response schemas for the local RAG API.

Defines the public contract for every REST endpoint: projects, file
uploads, ingestion progress, queries, health and the debug snapshot.

Domain models (``Project``, ``ProjectFile``, ``ProcessingStatus``,
``ProjectStatus``) are frozen Pydantic models already and are returned
as-is; the schemas here cover request bodies and the responses whose
shape differs from a domain model.

Convention: Request schemas end with "Request", response schemas end with
"Response".  Project fields and the query's ``query`` and ``topK`` are
typed ``Any`` and checked in the service layer, so a wrong value or type
(``"chunkSize": "abc"``) gets a 400 with a readable message instead of a
422 validation dump.  A body that is not a JSON object is still rejected
by FastAPI with 422.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.models.progress import ProcessingStatus
from src.models.rag import QueryResult


class CreateProjectRequest(BaseModel):
    """Body of ``POST /projects``.  camelCase keys are accepted as well."""

    model_config = ConfigDict(populate_by_name=True)

    name: Any = None
    embedding_model: Any = Field(default=None, alias="embeddingModel")
    chunk_size: Any = Field(default=None, alias="chunkSize")
    embedding_type: Any = Field(default=None, alias="embeddingType")


class QueryRequest(BaseModel):
    """Body of ``POST /projects/{id}/query``."""

    model_config = ConfigDict(populate_by_name=True)

    query: Any = None
    top_k: Any = Field(
        default=None, alias="topK", description="Chunks to use; DEFAULT_TOP_K when omitted."
    )
    model: str | None = Field(default=None, description="Chat model for the answer.")


class SourceChunkResponse(BaseModel):
    """One ranked source chunk of a query answer."""

    id: str
    file_id: str
    chunk_text: str
    short_description: str | None = None
    similarity: float


class QueryResponse(BaseModel):
    """Generated answer plus its ranked sources, best first."""

    answer: str
    sources: list[SourceChunkResponse] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: QueryResult) -> QueryResponse:
        return cls(
            answer=result.answer,
            sources=[
                SourceChunkResponse(
                    id=ranked.chunk.id,
                    file_id=ranked.chunk.file_id,
                    chunk_text=ranked.chunk.chunk_text,
                    short_description=ranked.chunk.short_description,
                    similarity=ranked.similarity,
                )
                for ranked in result.sources
            ],
        )


class DeleteResponse(BaseModel):
    """Acknowledgement of a delete."""

    success: bool = True


class ProcessingSnapshotResponse(BaseModel):
    """Debug view of every live progress entry keyed by file id."""

    files: dict[str, ProcessingStatus] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
