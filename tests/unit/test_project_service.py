"""Unit tests for ProjectService: validation, uploads, deletes, status views."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.models.progress import ProcessingStatus
from src.models.project import EmbeddingType, FileStatus
from src.services.ingestion.ingestion_service import IngestionService
from src.services.project_service import ProjectService
from src.utils.errors import NotFoundError, ValidationError
from tests.conftest import make_chunk, make_file, make_project


@pytest.fixture()
def ingestion() -> MagicMock:
    mock = MagicMock(spec=IngestionService)
    mock.cancel = AsyncMock()
    return mock


@pytest.fixture()
def service(store, progress, ingestion, tmp_path: Path) -> ProjectService:
    return ProjectService(
        store=store,
        progress=progress,
        ingestion=ingestion,
        upload_dir=tmp_path / "uploads",
        default_model="llama2",
    )


# ======================================================================
# Projects
# ======================================================================


class TestCreateProject:
    @pytest.mark.asyncio
    async def test_valid_project_persisted(self, service: ProjectService, store) -> None:
        project = await service.create_project("  Docs  ", "nomic-embed-text", 500, "direct")

        assert project.name == "Docs"
        assert project.embedding_type is EmbeddingType.DIRECT
        assert await store.get_project(project.id) == project

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("name", "model", "chunk_size", "embedding_type", "message"),
        [
            (None, "m", 500, "summary", "name"),
            ("  ", "m", 500, "summary", "name"),
            ("Docs", "", 500, "summary", "Embedding model"),
            ("Docs", "m", 0, "summary", "Chunk size"),
            ("Docs", "m", -10, "summary", "Chunk size"),
            ("Docs", "m", None, "summary", "Chunk size"),
            ("Docs", "m", True, "summary", "Chunk size"),
            ("Docs", "m", 500, "semantic", "Embedding type"),
            ("Docs", "m", 500, None, "Embedding type"),
        ],
    )
    async def test_invalid_values_rejected(
        self,
        service: ProjectService,
        store,
        name,
        model,
        chunk_size,
        embedding_type,
        message: str,
    ) -> None:
        with pytest.raises(ValidationError, match=message):
            await service.create_project(name, model, chunk_size, embedding_type)
        assert await store.list_projects() == []

    @pytest.mark.asyncio
    async def test_get_unknown_project(self, service: ProjectService) -> None:
        with pytest.raises(NotFoundError):
            await service.get_project("missing")


class TestDeleteProject:
    @pytest.mark.asyncio
    async def test_removes_everything(
        self, service: ProjectService, store, progress, ingestion, tmp_path: Path
    ) -> None:
        project = await store.create_project(make_project())
        running = await store.create_file(make_file(project.id))
        done = await store.create_file(make_file(project.id))
        await store.mark_file_completed(done.id)
        await store.add_chunk(make_chunk(done.id, project.id, [1.0]))
        artifact = service.artifact_path(running.id)
        artifact.parent.mkdir(parents=True)
        artifact.write_bytes(b"pending")
        progress.put(ProcessingStatus(file_id=running.id, total_chunks=3))

        await service.delete_project(project.id)

        ingestion.request_stop.assert_called_once_with(running.id)
        assert await store.get_project(project.id) is None
        assert await store.list_chunks(project.id) == []
        assert not artifact.exists()
        assert progress.get(running.id) is None

    @pytest.mark.asyncio
    async def test_unknown_project(self, service: ProjectService) -> None:
        with pytest.raises(NotFoundError):
            await service.delete_project("missing")


# ======================================================================
# Files
# ======================================================================


class TestUploadFile:
    @pytest.mark.asyncio
    async def test_artifact_written_and_ingestion_started(
        self, service: ProjectService, store, ingestion
    ) -> None:
        project = await store.create_project(make_project())

        file = await service.upload_file(project.id, "notes.txt", b"Hello there.")

        assert file.status is FileStatus.PROCESSING
        assert file.filename == "notes.txt"
        assert service.artifact_path(file.id).read_bytes() == b"Hello there."
        assert (await store.get_file(project.id, file.id)) is not None

        args = ingestion.start.call_args.args
        assert args[0] == project
        assert args[1] == file
        assert args[2] == service.artifact_path(file.id)
        assert args[3] == "llama2"

    @pytest.mark.asyncio
    async def test_explicit_generation_model(
        self, service: ProjectService, store, ingestion
    ) -> None:
        project = await store.create_project(make_project())
        await service.upload_file(project.id, "a.txt", b"x.", model="mistral")
        assert ingestion.start.call_args.args[3] == "mistral"

    @pytest.mark.asyncio
    async def test_declared_content_type_forwarded(
        self, service: ProjectService, store, ingestion
    ) -> None:
        project = await store.create_project(make_project())
        await service.upload_file(
            project.id, "report", b"%PDF-1.7", content_type="application/pdf"
        )
        assert ingestion.start.call_args.kwargs["content_type"] == "application/pdf"

    @pytest.mark.asyncio
    async def test_missing_filename_rejected(
        self, service: ProjectService, store, ingestion
    ) -> None:
        project = await store.create_project(make_project())
        with pytest.raises(ValidationError, match="No file uploaded"):
            await service.upload_file(project.id, "", b"data")
        ingestion.start.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_project(self, service: ProjectService) -> None:
        with pytest.raises(NotFoundError):
            await service.upload_file("missing", "a.txt", b"data")


class TestDeleteFile:
    @pytest.mark.asyncio
    async def test_file_chunks_artifact_and_progress_removed(
        self, service: ProjectService, store, progress, ingestion
    ) -> None:
        project = await store.create_project(make_project())
        file = await store.create_file(make_file(project.id))
        await store.add_chunk(make_chunk(file.id, project.id, [1.0]))
        artifact = service.artifact_path(file.id)
        artifact.parent.mkdir(parents=True)
        artifact.write_bytes(b"x")
        progress.put(ProcessingStatus(file_id=file.id))

        await service.delete_file(project.id, file.id)

        ingestion.request_stop.assert_called_once_with(file.id)
        assert await store.get_file(project.id, file.id) is None
        assert await store.list_chunks(project.id) == []
        assert not artifact.exists()
        assert progress.get(file.id) is None

    @pytest.mark.asyncio
    async def test_unknown_file(self, service: ProjectService, store) -> None:
        project = await store.create_project(make_project())
        with pytest.raises(NotFoundError):
            await service.delete_file(project.id, "missing")

    @pytest.mark.asyncio
    async def test_cancel_delegates(self, service: ProjectService, ingestion) -> None:
        await service.cancel_file("p", "f")
        ingestion.cancel.assert_awaited_once_with("p", "f")


# ======================================================================
# Status views
# ======================================================================


class TestStatusViews:
    @pytest.mark.asyncio
    async def test_live_progress_preferred(self, service: ProjectService, store, progress) -> None:
        project = await store.create_project(make_project())
        file = await store.create_file(make_file(project.id))
        progress.put(ProcessingStatus(file_id=file.id, current_chunk=2, total_chunks=5))

        status = await service.file_status(project.id, file.id)

        assert (status.current_chunk, status.total_chunks) == (2, 5)
        assert status.status is FileStatus.PROCESSING

    @pytest.mark.asyncio
    async def test_completed_file_derived_from_row(self, service: ProjectService, store) -> None:
        project = await store.create_project(make_project())
        file = await store.create_file(make_file(project.id))
        await store.set_file_chunk_count(file.id, 4)
        await store.mark_file_completed(file.id)

        status = await service.file_status(project.id, file.id)

        assert status.status is FileStatus.COMPLETED
        assert (status.current_chunk, status.total_chunks) == (4, 4)

    @pytest.mark.asyncio
    async def test_failed_file_derived_from_row(self, service: ProjectService, store) -> None:
        project = await store.create_project(make_project())
        file = await store.create_file(make_file(project.id))
        await store.set_file_chunk_count(file.id, 4)
        await store.mark_file_error(file.id, "boom")

        status = await service.file_status(project.id, file.id)

        assert status.status is FileStatus.ERROR
        assert status.current_chunk == 0
        assert status.error == "boom"

    @pytest.mark.asyncio
    async def test_file_status_unknown_file(self, service: ProjectService, store) -> None:
        project = await store.create_project(make_project())
        with pytest.raises(NotFoundError):
            await service.file_status(project.id, "missing")

    @pytest.mark.asyncio
    async def test_project_status_aggregates(self, service: ProjectService, store) -> None:
        project = await store.create_project(make_project())
        done = await store.create_file(make_file(project.id))
        await store.set_file_chunk_count(done.id, 3)
        await store.mark_file_completed(done.id)
        await store.create_file(make_file(project.id))

        status = await service.project_status(project.id)

        assert status.project_id == project.id
        assert len(status.files) == 2
        assert status.total_chunks == 3
        assert status.is_processing is True

    @pytest.mark.asyncio
    async def test_processing_snapshot(self, service: ProjectService, progress) -> None:
        progress.put(ProcessingStatus(file_id="a"))
        assert set(service.processing_snapshot()) == {"a"}
