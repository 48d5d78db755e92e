"""Background task registry for per-file ingestion jobs.

# ─── DESIGN ────────────────────────────────────────────────────────────
#
# IngestionQueue runs one asyncio task per uploaded file:
#   - Each job gets its own cancel Event that the job polls at its
#     checkpoints (cooperative cancellation)
#   - Jobs are tracked in an in-memory dict keyed by file id and removed
#     when their task finishes
#   - shutdown() cancels whatever is still running and waits for it
#
# Files are independent: there is no ordering between jobs, while each
# job processes its own chunks strictly in sequence.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import structlog

logger = structlog.get_logger(logger_name=__name__)

# A job receives its cancel Event and runs to completion.
JobFn = Callable[[asyncio.Event], Awaitable[None]]


class _Job:
    """Internal state of one running ingestion job."""

    def __init__(self, file_id: str) -> None:
        self._file_id = file_id
        self._cancel_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def file_id(self) -> str:
        return self._file_id

    @property
    def cancel_event(self) -> asyncio.Event:
        return self._cancel_event


class IngestionQueue:
    """Tracks running ingestion tasks and their cancel signals."""

    def __init__(self) -> None:
        self._jobs: dict[str, _Job] = {}

    # ─── Job lifecycle ─────────────────────────────────────────────────

    def submit(self, file_id: str, job_fn: JobFn) -> asyncio.Task[None]:
        """Start *job_fn* as a background task for *file_id*.

        Must be called from within the running event loop.
        """
        if file_id in self._jobs:
            msg = f"Ingestion already running for file {file_id}"
            raise ValueError(msg)

        job = _Job(file_id)
        job._task = asyncio.create_task(self._run(job, job_fn), name=f"ingest-{file_id}")
        self._jobs[file_id] = job
        job._task.add_done_callback(lambda _task: self._forget(job))
        logger.info("ingestion_job_submitted", file_id=file_id, active_jobs=len(self._jobs))
        return job._task

    async def _run(self, job: _Job, job_fn: JobFn) -> None:
        with structlog.contextvars.bound_contextvars(file_id=job.file_id):
            try:
                await job_fn(job.cancel_event)
            except asyncio.CancelledError:
                logger.info("ingestion_job_cancelled")
                raise
            except Exception:
                # Jobs record their own failures; anything reaching here is a bug.
                logger.exception("ingestion_job_crashed")

    def _forget(self, job: _Job) -> None:
        if self._jobs.get(job.file_id) is job:
            del self._jobs[job.file_id]

    # ─── Job control ───────────────────────────────────────────────────

    def request_cancel(self, file_id: str) -> bool:
        """Signal the job to stop at its next checkpoint.

        Returns ``True`` if a running job was found.
        """
        job = self._jobs.get(file_id)
        if job is None:
            return False
        job.cancel_event.set()
        logger.info("ingestion_cancel_requested", file_id=file_id)
        return True

    def is_active(self, file_id: str) -> bool:
        return file_id in self._jobs

    @property
    def active_file_ids(self) -> list[str]:
        return list(self._jobs)

    async def wait_all(self) -> None:
        """Wait until every job submitted so far has finished."""
        tasks = [job._task for job in self._jobs.values() if job._task is not None]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel every running job and wait for them to unwind."""
        tasks = [job._task for job in self._jobs.values() if job._task is not None]
        for job in self._jobs.values():
            job.cancel_event.set()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("ingestion_queue_shutdown", cancelled_jobs=len(tasks))
