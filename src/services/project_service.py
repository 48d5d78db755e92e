"""Project and file management for the RAG service.

Owns the request-path operations around the index: creating and deleting
projects, accepting uploads (and handing them to the ingestion pipeline),
deleting files, and the status views clients poll while ingestion runs.

Uploads are staged as ``<upload_dir>/<file_id>`` until the ingestion job
finishes with them; deleting a file or project removes any staged
artifact along with the rows and the progress entry.
"""

from __future__ import annotations

import asyncio
import uuid
from pathlib import Path
from typing import Any

import structlog

from src.interfaces.progress_store import IProgressStore
from src.interfaces.project_store import IProjectStore
from src.models.progress import ProcessingStatus, ProjectStatus
from src.models.project import EmbeddingType, FileStatus, Project, ProjectFile
from src.services.ingestion.ingestion_service import IngestionService, remove_upload_artifact
from src.utils.errors import LocalRagError, NotFoundError, ValidationError

logger = structlog.get_logger(logger_name=__name__)


class ProjectService:
    """CRUD and status views for projects and their files.

    Parameters
    ----------
    store:
        Durable project/file/chunk persistence.
    progress:
        Transient per-file progress table.
    ingestion:
        Pipeline that processes uploads in the background.
    upload_dir:
        Staging directory for upload artifacts.
    default_model:
        Chat model used for chunk descriptions when an upload names none.
    """

    def __init__(
        self,
        store: IProjectStore,
        progress: IProgressStore,
        ingestion: IngestionService,
        upload_dir: str | Path,
        default_model: str = "llama2",
    ) -> None:
        self._store = store
        self._progress = progress
        self._ingestion = ingestion
        self._upload_dir = Path(upload_dir)
        self._default_model = default_model

    def artifact_path(self, file_id: str) -> Path:
        return self._upload_dir / file_id

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def create_project(
        self,
        name: Any,
        embedding_model: Any,
        chunk_size: Any,
        embedding_type: Any,
    ) -> Project:
        """Validate the settings and persist a new project.

        Raises
        ------
        ValidationError
            If any value is missing or out of range.
        """
        name = name.strip() if isinstance(name, str) else ""
        embedding_model = embedding_model.strip() if isinstance(embedding_model, str) else ""
        if not name:
            raise ValidationError(message="Project name is required")
        if not embedding_model:
            raise ValidationError(message="Embedding model is required")
        if isinstance(chunk_size, bool) or not isinstance(chunk_size, int) or chunk_size <= 0:
            raise ValidationError(message="Chunk size must be a positive integer")
        try:
            resolved_type = EmbeddingType(embedding_type)
        except (TypeError, ValueError) as exc:
            allowed = ", ".join(t.value for t in EmbeddingType)
            raise ValidationError(message=f"Embedding type must be one of: {allowed}") from exc

        project = Project(
            id=str(uuid.uuid4()),
            name=name,
            embedding_model=embedding_model,
            chunk_size=chunk_size,
            embedding_type=resolved_type,
        )
        return await self._store.create_project(project)

    async def list_projects(self) -> list[Project]:
        return await self._store.list_projects()

    async def get_project(self, project_id: str) -> Project:
        project = await self._store.get_project(project_id)
        if project is None:
            raise NotFoundError(message="Project not found")
        return project

    async def delete_project(self, project_id: str) -> None:
        """Delete a project with its files, chunks, artifacts and progress."""
        await self.get_project(project_id)
        files = await self._store.list_files(project_id)
        for file in files:
            if file.status is FileStatus.PROCESSING:
                self._ingestion.request_stop(file.id)

        await self._store.delete_project(project_id)
        for file in files:
            await remove_upload_artifact(self.artifact_path(file.id))
            self._progress.delete(file.id)
        logger.info("project_removed", project_id=project_id, files=len(files))

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    async def list_files(self, project_id: str) -> list[ProjectFile]:
        await self.get_project(project_id)
        return await self._store.list_files(project_id)

    async def upload_file(
        self,
        project_id: str,
        filename: str | None,
        data: bytes,
        model: str | None = None,
        content_type: str | None = None,
    ) -> ProjectFile:
        """Register an upload and start ingesting it in the background.

        ``content_type`` is the declared MIME type; it decides the document
        type when the filename has no known extension.

        Returns
        -------
        ProjectFile
            The new file, still ``processing``.
        """
        project = await self.get_project(project_id)
        if not filename:
            raise ValidationError(message="No file uploaded")

        file = await self._store.create_file(
            ProjectFile(id=str(uuid.uuid4()), project_id=project_id, filename=filename)
        )
        path = self.artifact_path(file.id)
        try:
            await asyncio.to_thread(self._write_artifact, path, data)
        except OSError as exc:
            await self._store.mark_file_error(file.id, f"Could not store upload: {exc}")
            raise LocalRagError(message=f"Could not store upload: {exc}") from exc

        self._ingestion.start(
            project, file, path, model or self._default_model, content_type=content_type
        )
        logger.info(
            "file_uploaded",
            project_id=project_id,
            file_id=file.id,
            filename=filename,
            content_type=content_type,
            size_bytes=len(data),
        )
        return file

    @staticmethod
    def _write_artifact(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def delete_file(self, project_id: str, file_id: str) -> None:
        """Delete a file with its chunks, artifact and progress entry."""
        file = await self._store.get_file(project_id, file_id)
        if file is None:
            raise NotFoundError(message="File not found")

        self._ingestion.request_stop(file_id)
        await self._store.delete_file(project_id, file_id)
        await remove_upload_artifact(self.artifact_path(file_id))
        self._progress.delete(file_id)

    async def cancel_file(self, project_id: str, file_id: str) -> ProjectFile:
        return await self._ingestion.cancel(project_id, file_id)

    # ------------------------------------------------------------------
    # Status views
    # ------------------------------------------------------------------

    async def file_status(self, project_id: str, file_id: str) -> ProcessingStatus:
        """Live progress if tracked, otherwise derived from the file row."""
        file = await self._store.get_file(project_id, file_id)
        if file is None:
            raise NotFoundError(message="File not found")

        status = self._progress.get(file_id)
        if status is not None:
            return status

        # Failed files keep no chunks.
        done = (file.chunk_count or 0) if file.status is FileStatus.COMPLETED else 0
        return ProcessingStatus(
            file_id=file.id,
            current_chunk=done,
            total_chunks=file.chunk_count or 0,
            status=file.status,
            error=file.error_message,
        )

    async def project_status(self, project_id: str) -> ProjectStatus:
        files = await self.list_files(project_id)
        return ProjectStatus(
            project_id=project_id,
            files=files,
            total_chunks=sum(f.chunk_count or 0 for f in files),
            is_processing=any(f.status is FileStatus.PROCESSING for f in files),
        )

    def processing_snapshot(self) -> dict[str, ProcessingStatus]:
        return self._progress.snapshot()
