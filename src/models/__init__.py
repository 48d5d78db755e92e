"""Local RAG domain models -- re-exports all public model classes.

Other parts of the codebase import from ``src.models`` rather than the
individual submodules:
    - project.py   -- Project, ProjectFile, Chunk and their enums
    - progress.py  -- transient ProcessingStatus and the ProjectStatus view
    - rag.py       -- RankedChunk and QueryResult
"""

from __future__ import annotations

from src.models.progress import ProcessingStatus, ProjectStatus
from src.models.project import Chunk, EmbeddingType, FileStatus, Project, ProjectFile
from src.models.rag import QueryResult, RankedChunk

__all__ = [
    "Chunk",
    "EmbeddingType",
    "FileStatus",
    "ProcessingStatus",
    "Project",
    "ProjectFile",
    "ProjectStatus",
    "QueryResult",
    "RankedChunk",
]
