"""Abstract base class for transient ingestion-progress storage.

Holds one :class:`~src.models.progress.ProcessingStatus` per file.  Active
entries stay until they turn terminal; terminal entries are purged after a
retention window.  Nothing here is durable: the file row in the project
store is the source of truth once an entry is gone.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.progress import ProcessingStatus


class IProgressStore(ABC):
    """Contract for the process-wide progress table."""

    @abstractmethod
    def put(self, status: ProcessingStatus) -> None:
        """Insert or replace the entry for ``status.file_id``.

        A terminal status starts the retention countdown.
        """

    @abstractmethod
    def get(self, file_id: str) -> ProcessingStatus | None:
        """Return the entry, or ``None`` if absent or already purged."""

    @abstractmethod
    def delete(self, file_id: str) -> None:
        """Drop the entry (no-op if absent)."""

    @abstractmethod
    def snapshot(self) -> dict[str, ProcessingStatus]:
        """Return a copy of every live entry keyed by file id."""
