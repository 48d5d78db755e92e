"""Unit tests for IngestionQueue: per-file background tasks."""

from __future__ import annotations

import asyncio

import pytest

from src.pipeline.ingestion_queue import IngestionQueue


class TestSubmit:
    @pytest.mark.asyncio
    async def test_job_runs_and_is_forgotten(self) -> None:
        queue = IngestionQueue()
        ran: list[str] = []

        async def job(cancel_event: asyncio.Event) -> None:
            ran.append("done")

        task = queue.submit("f1", job)
        assert queue.is_active("f1")
        await task
        await asyncio.sleep(0)

        assert ran == ["done"]
        assert not queue.is_active("f1")
        assert queue.active_file_ids == []

    @pytest.mark.asyncio
    async def test_duplicate_submit_rejected(self) -> None:
        queue = IngestionQueue()
        release = asyncio.Event()

        async def job(cancel_event: asyncio.Event) -> None:
            await release.wait()

        queue.submit("f1", job)
        with pytest.raises(ValueError, match="already running"):
            queue.submit("f1", job)
        release.set()
        await queue.wait_all()

    @pytest.mark.asyncio
    async def test_crashing_job_is_contained(self) -> None:
        queue = IngestionQueue()

        async def job(cancel_event: asyncio.Event) -> None:
            raise RuntimeError("bug")

        task = queue.submit("f1", job)
        await task
        assert task.exception() is None


class TestCancellation:
    @pytest.mark.asyncio
    async def test_request_cancel_sets_event(self) -> None:
        queue = IngestionQueue()
        seen: list[bool] = []

        async def job(cancel_event: asyncio.Event) -> None:
            await cancel_event.wait()
            seen.append(cancel_event.is_set())

        queue.submit("f1", job)
        await asyncio.sleep(0)
        assert queue.request_cancel("f1") is True
        await queue.wait_all()

        assert seen == [True]

    def test_request_cancel_unknown_file(self) -> None:
        assert IngestionQueue().request_cancel("missing") is False

    @pytest.mark.asyncio
    async def test_shutdown_cancels_running_tasks(self) -> None:
        queue = IngestionQueue()
        cleaned_up: list[str] = []

        async def job(cancel_event: asyncio.Event) -> None:
            try:
                await asyncio.sleep(3600)
            except asyncio.CancelledError:
                cleaned_up.append("f1")
                raise

        task = queue.submit("f1", job)
        await asyncio.sleep(0)
        await queue.shutdown()

        assert task.cancelled()
        assert cleaned_up == ["f1"]
        assert queue.active_file_ids == []

    @pytest.mark.asyncio
    async def test_wait_all_with_no_jobs(self) -> None:
        await IngestionQueue().wait_all()
