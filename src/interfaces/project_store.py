"""Abstract base class for project/file/chunk persistence.

Defines the contract for the durable store behind the RAG service.
Implementations may use SQLite (local) or any other relational backend;
every multi-row mutation must be atomic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.project import Chunk, Project, ProjectFile


class IProjectStore(ABC):
    """Contract for project, file and chunk persistence.

    All operations are async to support network-backed stores.  Lookups of
    unknown ids return ``None`` rather than raising; deciding whether that
    is an error belongs to the service layer.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Create or upgrade the schema.  Safe to call repeatedly."""

    # -- Projects ----------------------------------------------------------

    @abstractmethod
    async def create_project(self, project: Project) -> Project:
        """Insert *project* and return it unchanged."""

    @abstractmethod
    async def list_projects(self) -> list[Project]:
        """Return every project, newest first."""

    @abstractmethod
    async def get_project(self, project_id: str) -> Project | None:
        """Return the project, or ``None`` if it does not exist."""

    @abstractmethod
    async def delete_project(self, project_id: str) -> bool:
        """Delete the project with its files and chunks in one transaction.

        Returns
        -------
        bool
            ``True`` if a project row was removed.
        """

    # -- Files -------------------------------------------------------------

    @abstractmethod
    async def create_file(self, file: ProjectFile) -> ProjectFile:
        """Insert *file* and return it unchanged."""

    @abstractmethod
    async def list_files(self, project_id: str) -> list[ProjectFile]:
        """Return the project's files, newest first."""

    @abstractmethod
    async def get_file(self, project_id: str, file_id: str) -> ProjectFile | None:
        """Return the file if it exists and belongs to *project_id*."""

    @abstractmethod
    async def set_file_chunk_count(self, file_id: str, chunk_count: int) -> None:
        """Record how many chunks the file's text was split into."""

    @abstractmethod
    async def mark_file_completed(self, file_id: str) -> bool:
        """Move the file from ``processing`` to ``completed``.

        Returns
        -------
        bool
            ``False`` if the file was missing or no longer processing.
        """

    @abstractmethod
    async def mark_file_error(self, file_id: str, message: str) -> bool:
        """Move the file from ``processing`` to ``error`` with *message*.

        Returns
        -------
        bool
            ``False`` if the file was missing or no longer processing.
        """

    @abstractmethod
    async def delete_file(self, project_id: str, file_id: str) -> bool:
        """Delete the file and its chunks in one transaction.

        Returns
        -------
        bool
            ``True`` if a file row was removed.
        """

    @abstractmethod
    async def count_processing_files(self, project_id: str) -> int:
        """Return how many of the project's files are still processing."""

    @abstractmethod
    async def fail_processing_files(self, message: str) -> list[str]:
        """Move every ``processing`` file to ``error``.

        Returns
        -------
        list[str]
            Ids of the files that were changed.
        """

    # -- Chunks ------------------------------------------------------------

    @abstractmethod
    async def add_chunk(self, chunk: Chunk) -> Chunk:
        """Insert *chunk* and return it unchanged."""

    @abstractmethod
    async def list_chunks(self, project_id: str) -> list[Chunk]:
        """Return every chunk of the project in insertion order."""

    @abstractmethod
    async def list_file_chunks(self, file_id: str) -> list[Chunk]:
        """Return the file's chunks in insertion order."""

    @abstractmethod
    async def delete_file_chunks(self, file_id: str) -> int:
        """Delete every chunk of the file and return how many were removed."""
