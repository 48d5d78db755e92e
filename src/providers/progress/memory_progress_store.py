"""In-memory progress store using cachetools.TTLCache.

Active entries live in a plain dict and never expire; once an entry turns
terminal it moves to a ``TTLCache`` so polling clients can still read the
outcome for the retention window before it is purged.
"""

from __future__ import annotations

import time
from collections.abc import Callable

import structlog
from cachetools import TTLCache

from src.interfaces.progress_store import IProgressStore
from src.models.progress import ProcessingStatus

logger = structlog.get_logger(logger_name=__name__)


class MemoryProgressStore(IProgressStore):
    """Process-wide progress table.

    Parameters
    ----------
    retention_seconds:
        How long a terminal entry stays readable.
    max_size:
        Upper bound on retained terminal entries; the oldest is evicted first.
    timer:
        Clock used by the TTL cache.  Tests inject a fake clock.
    """

    def __init__(
        self,
        retention_seconds: float = 300,
        max_size: int = 10_000,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._active: dict[str, ProcessingStatus] = {}
        self._finished: TTLCache[str, ProcessingStatus] = TTLCache(
            maxsize=max_size, ttl=retention_seconds, timer=timer
        )

    # ------------------------------------------------------------------
    # IProgressStore implementation
    # ------------------------------------------------------------------

    def put(self, status: ProcessingStatus) -> None:
        file_id = status.file_id
        if status.is_terminal:
            self._active.pop(file_id, None)
            self._finished[file_id] = status
            logger.debug("progress_finished", file_id=file_id, status=status.status.value)
        else:
            self._finished.pop(file_id, None)
            self._active[file_id] = status

    def get(self, file_id: str) -> ProcessingStatus | None:
        status = self._active.get(file_id)
        if status is None:
            status = self._finished.get(file_id)
        return status

    def delete(self, file_id: str) -> None:
        self._active.pop(file_id, None)
        self._finished.pop(file_id, None)

    def snapshot(self) -> dict[str, ProcessingStatus]:
        """Return active entries plus unexpired terminal ones."""
        self._finished.expire()
        merged = dict(self._finished.items())
        merged.update(self._active)
        return merged
