"""Orchestrator for background document ingestion.

Pipeline stages: **extract -> chunk -> (summarise) -> embed -> store**.

The :class:`IngestionService` coordinates its collaborators (text
extractor, chunker, chat model, embedding provider, project store and
progress store) without any of them knowing about each other.  For every
uploaded file:

    1. TextExtractor -- reads the upload artifact into plain text
    2. SentenceChunker -- splits the text by the project's chunk size
    3. ILLMProvider -- writes a 1-2 sentence description (summary projects)
    4. IEmbeddingProvider -- embeds the description or the raw chunk
    5. IProjectStore -- persists the chunk; IProgressStore tracks progress

Each file runs as its own task in the :class:`IngestionQueue`.  Processing
stops at the first failing chunk and removes what was already written, so
a file is either fully indexed or not queryable at all.  Cancellation is
cooperative: the job checks its cancel flag and the file row before and
after the model calls of every chunk and never writes once cancelled.
"""

from __future__ import annotations

import asyncio
import uuid
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from src.models.progress import ProcessingStatus
from src.models.project import Chunk, EmbeddingType, FileStatus, Project, ProjectFile
from src.services.ingestion.chunker import SentenceChunker
from src.services.ingestion.text_extractor import TextExtractor
from src.utils.errors import InvalidStateError, LocalRagError, NotFoundError

if TYPE_CHECKING:
    from src.interfaces.embedding_provider import IEmbeddingProvider
    from src.interfaces.llm_provider import ILLMProvider
    from src.interfaces.progress_store import IProgressStore
    from src.interfaces.project_store import IProjectStore
    from src.pipeline.ingestion_queue import IngestionQueue

logger = structlog.get_logger(logger_name=__name__)

CANCELLED_MESSAGE = "Processing cancelled by user"
INTERRUPTED_MESSAGE = "Processing interrupted by server restart"
SHUTDOWN_MESSAGE = "Processing interrupted by server shutdown"

_SUMMARY_PROMPT = "Summarize the following text in 1-2 sentences:\n{chunk}"


async def remove_upload_artifact(path: Path) -> None:
    """Delete an upload artifact; a missing file is not an error."""
    try:
        await asyncio.to_thread(path.unlink, missing_ok=True)
    except OSError as exc:
        logger.warning("upload_artifact_remove_failed", path=str(path), error=str(exc))


class IngestionService:
    """Runs the ingestion pipeline for uploaded files.

    Parameters
    ----------
    store:
        Durable project/file/chunk persistence.
    progress:
        Transient per-file progress table.
    llm_provider:
        Chat model used for chunk descriptions in summary projects.
    embedding_provider:
        Embeds descriptions or raw chunks.
    queue:
        Runs one background task per file.
    extractor:
        Text extractor; a default instance when omitted.
    chunker:
        Sentence chunker; a default instance when omitted.
    summary_temperature:
        Sampling temperature for chunk descriptions.
    summary_max_tokens:
        Token cap for chunk descriptions.
    """

    def __init__(
        self,
        store: IProjectStore,
        progress: IProgressStore,
        llm_provider: ILLMProvider,
        embedding_provider: IEmbeddingProvider,
        queue: IngestionQueue,
        extractor: TextExtractor | None = None,
        chunker: SentenceChunker | None = None,
        summary_temperature: float = 0.2,
        summary_max_tokens: int = 200,
    ) -> None:
        self._store = store
        self._progress = progress
        self._llm = llm_provider
        self._embedder = embedding_provider
        self._queue = queue
        self._extractor = extractor or TextExtractor()
        self._chunker = chunker or SentenceChunker()
        self._summary_temperature = summary_temperature
        self._summary_max_tokens = summary_max_tokens

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def start(
        self,
        project: Project,
        file: ProjectFile,
        upload_path: Path,
        generation_model: str,
        content_type: str | None = None,
    ) -> asyncio.Task[None]:
        """Queue *file* for background processing and return immediately."""

        async def _job(cancel_event: asyncio.Event) -> None:
            await self.process(
                project,
                file,
                upload_path,
                generation_model,
                cancel_event,
                content_type=content_type,
            )

        return self._queue.submit(file.id, _job)

    async def process(
        self,
        project: Project,
        file: ProjectFile,
        upload_path: Path,
        generation_model: str,
        cancel_event: asyncio.Event | None = None,
        content_type: str | None = None,
    ) -> None:
        """Ingest one file end to end.

        Never raises for pipeline failures: they are recorded on the file
        row and in the progress store.  Task cancellation (server shutdown)
        is recorded the same way and then re-raised.
        """
        cancel_event = cancel_event or asyncio.Event()
        log = logger.bind(project_id=project.id, file_id=file.id)
        self._progress.put(ProcessingStatus(file_id=file.id))
        log.info(
            "ingestion_started",
            filename=file.filename,
            embedding_type=project.embedding_type.value,
        )

        try:
            try:
                data = await asyncio.to_thread(Path(upload_path).read_bytes)
                text = await self._extractor.extract(data, file.filename, content_type)
            except OSError as exc:
                await self._fail(file.id, f"Could not read uploaded file: {exc}")
                return
            except LocalRagError as exc:
                await self._fail(file.id, exc.message)
                return

            pieces = self._chunker.chunk(text, project.chunk_size)
            total = len(pieces)
            await self._store.set_file_chunk_count(file.id, total)
            self._report(cancel_event, ProcessingStatus(file_id=file.id, total_chunks=total))
            log.info("file_chunked", total_chunks=total)

            for index, chunk_text in enumerate(pieces):
                if not await self._should_continue(project.id, file.id, cancel_event):
                    await self._abandon(project.id, file.id, index)
                    return

                description = None
                if project.embedding_type is EmbeddingType.SUMMARY:
                    description = await self._llm.complete(
                        None,
                        _SUMMARY_PROMPT.format(chunk=chunk_text),
                        model=generation_model,
                        temperature=self._summary_temperature,
                        max_tokens=self._summary_max_tokens,
                    )
                    vector = await self._embedder.embed(description, project.embedding_model)
                else:
                    vector = await self._embedder.embed(chunk_text, project.embedding_model)

                if not await self._should_continue(project.id, file.id, cancel_event):
                    await self._abandon(project.id, file.id, index)
                    return

                await self._store.add_chunk(
                    Chunk(
                        id=str(uuid.uuid4()),
                        file_id=file.id,
                        project_id=project.id,
                        chunk_text=chunk_text,
                        short_description=description,
                        embedding_vector=vector,
                    )
                )
                self._report(
                    cancel_event,
                    ProcessingStatus(file_id=file.id, current_chunk=index + 1, total_chunks=total),
                )
                log.debug("chunk_stored", chunk_index=index, total_chunks=total)

            if await self._store.mark_file_completed(file.id):
                self._progress.put(
                    ProcessingStatus(
                        file_id=file.id,
                        current_chunk=total,
                        total_chunks=total,
                        status=FileStatus.COMPLETED,
                    )
                )
                log.info("ingestion_completed", total_chunks=total)
            else:
                # Cancelled or deleted after the last checkpoint.
                await self._abandon(project.id, file.id, total)

        except asyncio.CancelledError:
            await self._fail(file.id, SHUTDOWN_MESSAGE)
            raise
        except LocalRagError as exc:
            await self._fail(file.id, exc.message)
        except Exception as exc:
            log.exception("ingestion_unexpected_error")
            await self._fail(file.id, str(exc) or type(exc).__name__)
        finally:
            await remove_upload_artifact(Path(upload_path))

    async def cancel(self, project_id: str, file_id: str) -> ProjectFile:
        """Stop a file that is still processing.

        Raises
        ------
        NotFoundError
            If the file does not exist in the project.
        InvalidStateError
            If the file is not processing.
        """
        file = await self._store.get_file(project_id, file_id)
        if file is None:
            raise NotFoundError(message="File not found")
        if file.status is not FileStatus.PROCESSING:
            raise InvalidStateError(message="File is not being processed")

        if not await self._store.mark_file_error(file_id, CANCELLED_MESSAGE):
            raise InvalidStateError(message="File is not being processed")

        current = self._progress.get(file_id)
        self._progress.put(
            ProcessingStatus(
                file_id=file_id,
                current_chunk=current.current_chunk if current else 0,
                total_chunks=current.total_chunks if current else (file.chunk_count or 0),
                status=FileStatus.ERROR,
                error=CANCELLED_MESSAGE,
            )
        )
        self._queue.request_cancel(file_id)
        logger.info("ingestion_cancelled", project_id=project_id, file_id=file_id)
        return file.model_copy(
            update={"status": FileStatus.ERROR, "error_message": CANCELLED_MESSAGE}
        )

    def request_stop(self, file_id: str) -> bool:
        """Signal a running job to stop without touching the file row."""
        return self._queue.request_cancel(file_id)

    async def recover_interrupted(self, upload_dir: Path | None = None) -> list[str]:
        """Fail every file left ``processing`` by a previous run.

        Their upload artifacts, if any remain in *upload_dir*, are removed.
        """
        file_ids = await self._store.fail_processing_files(INTERRUPTED_MESSAGE)
        if upload_dir is not None:
            for file_id in file_ids:
                await remove_upload_artifact(Path(upload_dir) / file_id)
        if file_ids:
            logger.warning("interrupted_files_recovered", count=len(file_ids), file_ids=file_ids)
        return file_ids

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _should_continue(
        self, project_id: str, file_id: str, cancel_event: asyncio.Event
    ) -> bool:
        if cancel_event.is_set():
            return False
        file = await self._store.get_file(project_id, file_id)
        return file is not None and file.status is FileStatus.PROCESSING

    def _report(self, cancel_event: asyncio.Event, status: ProcessingStatus) -> None:
        # A cancel may land while the job awaits; its terminal entry stays.
        if not cancel_event.is_set():
            self._progress.put(status)

    async def _abandon(self, project_id: str, file_id: str, chunk_index: int) -> None:
        """Drop partial output of a job that was cancelled or deleted.

        The progress entry is rebuilt from the file row, or dropped when the
        row is gone or about to be, so a stale ``processing`` entry written
        while the job was awaiting cannot outlive it.
        """
        removed = await self._store.delete_file_chunks(file_id)
        row = await self._store.get_file(project_id, file_id)
        if row is None or row.status is FileStatus.PROCESSING:
            # Gone, or stopped ahead of a delete that is still in flight.
            self._progress.delete(file_id)
        else:
            previous = self._progress.get(file_id)
            self._progress.put(
                ProcessingStatus(
                    file_id=file_id,
                    current_chunk=previous.current_chunk if previous else 0,
                    total_chunks=previous.total_chunks if previous else (row.chunk_count or 0),
                    status=row.status,
                    error=row.error_message,
                )
            )
        logger.info(
            "ingestion_stopped",
            file_id=file_id,
            chunk_index=chunk_index,
            chunks_removed=removed,
        )

    async def _fail(self, file_id: str, message: str) -> None:
        """Record a failure and purge the chunks written so far.

        The progress entry is only touched if the row actually moved to
        ``error``: a cancelled file already carries its own terminal
        entry, and a deleted file must not reappear.
        """
        try:
            await self._store.delete_file_chunks(file_id)
            changed = await self._store.mark_file_error(file_id, message)
        except Exception:
            logger.exception("ingestion_failure_not_recorded", file_id=file_id)
            return

        if changed:
            previous = self._progress.get(file_id)
            self._progress.put(
                ProcessingStatus(
                    file_id=file_id,
                    current_chunk=previous.current_chunk if previous else 0,
                    total_chunks=previous.total_chunks if previous else 0,
                    status=FileStatus.ERROR,
                    error=message,
                )
            )
        logger.warning("ingestion_failed", file_id=file_id, error=message, recorded=changed)
