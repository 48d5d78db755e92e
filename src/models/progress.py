"""Transient ingestion progress model.

A :class:`ProcessingStatus` is the live counterpart of a
:class:`~src.models.project.ProjectFile` row: it carries chunk-level
progress that is not worth persisting.  Entries live in the progress store
while a file is processing and for a short retention window afterwards.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from src.models.project import FileStatus, ProjectFile


class ProcessingStatus(BaseModel):
    """Chunk-level progress for one file."""

    model_config = ConfigDict(frozen=True)

    file_id: str
    current_chunk: int = Field(default=0, ge=0)
    total_chunks: int = Field(default=0, ge=0)
    status: FileStatus = Field(default=FileStatus.PROCESSING)
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        """``True`` once the file has completed or failed."""
        return self.status != FileStatus.PROCESSING


class ProjectStatus(BaseModel):
    """Aggregate ingestion state of a project."""

    model_config = ConfigDict(frozen=True)

    project_id: str
    files: list[ProjectFile] = Field(default_factory=list)
    total_chunks: int = Field(default=0, ge=0)
    is_processing: bool = False
