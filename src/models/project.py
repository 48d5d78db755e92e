"""Project, file and chunk models for the local RAG service.

Defines the three durable records of the system.  All models are frozen
Pydantic v2 models; the only "mutation" anywhere is a status transition on
:class:`ProjectFile`, which the store performs by updating the row and the
service layer observes by re-reading it.

Architecture note:
    A Project owns its embedding configuration (model, chunk size, embedding
    type).  Those three values are fixed at creation so every chunk in the
    project is embedded the same way and remains comparable at query time.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# EmbeddingType -- what text a chunk's vector is computed from.
# ---------------------------------------------------------------------------
class EmbeddingType(str, Enum):  # noqa: UP042
    """Source text for chunk embeddings.

    SUMMARY embeds a 1-2 sentence model-written description of the chunk;
    DIRECT embeds the raw chunk text.
    """

    SUMMARY = "summary"
    DIRECT = "direct"


# ---------------------------------------------------------------------------
# FileStatus -- lifecycle of an uploaded file.
# ---------------------------------------------------------------------------
class FileStatus(str, Enum):  # noqa: UP042
    """Lifecycle states of an uploaded file.

    processing → completed, or processing → error.  Terminal states are
    never left.
    """

    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


def _utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


class Project(BaseModel):
    """A named collection of documents sharing one embedding configuration."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="UUID4 identifier.")
    name: str = Field(description="Human-readable project name.")
    created_at: datetime = Field(default_factory=_utc_now)
    embedding_model: str = Field(description="Model id used for every embedding in the project.")
    chunk_size: int = Field(gt=0, description="Maximum chunk length in characters.")
    embedding_type: EmbeddingType = Field(default=EmbeddingType.SUMMARY)


class ProjectFile(BaseModel):
    """An uploaded document belonging to a project."""

    model_config = ConfigDict(frozen=True)

    id: str
    project_id: str
    filename: str = Field(description="Original client-side filename.")
    created_at: datetime = Field(default_factory=_utc_now)
    status: FileStatus = Field(default=FileStatus.PROCESSING)
    # Unknown until the text has been chunked.
    chunk_count: int | None = Field(default=None, ge=0)
    error_message: str | None = None


class Chunk(BaseModel):
    """One embedded span of a file's text.

    ``short_description`` is only populated for SUMMARY projects.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    file_id: str
    project_id: str
    chunk_text: str
    short_description: str | None = None
    embedding_vector: list[float] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utc_now)
