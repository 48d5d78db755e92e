"""Append-only JSON-lines log of outbound model requests.

Each line records one request sent to the inference service::

    {"type": "embed", "model": "nomic-embed-text", "prompt": "...", "timestamp": "..."}

The file is opened lazily in append mode and shared by every provider.
Uses a dedicated structlog pipeline (not the global one) so the file
always receives JSON regardless of the console renderer.
"""

from __future__ import annotations

from pathlib import Path
from typing import TextIO

import structlog

from src.interfaces.request_log import IRequestLog

logger = structlog.get_logger(logger_name=__name__)


class FileRequestLog(IRequestLog):
    """Writes one JSON object per model request to *path*.

    Parameters
    ----------
    path:
        Destination file.  Parent directories are created on first write.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._file: TextIO | None = None
        self._writer: structlog.BoundLogger | None = None

    def _get_writer(self) -> structlog.BoundLogger:
        if self._writer is None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self._path, "a", encoding="utf-8")  # noqa: SIM115
            self._writer = structlog.wrap_logger(
                structlog.WriteLogger(self._file),
                wrapper_class=structlog.BoundLogger,
                processors=[
                    structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
                    structlog.processors.EventRenamer("type"),
                    structlog.processors.JSONRenderer(),
                ],
            )
        return self._writer

    def record(self, request_type: str, prompt: str, model: str) -> None:
        """Append one entry.  Any failure is logged, never raised."""
        try:
            self._get_writer().msg(request_type, model=model, prompt=prompt)
        except Exception as exc:
            logger.warning(
                "request_log_write_failed",
                path=str(self._path),
                error=str(exc),
            )

    def close(self) -> None:
        """Close the underlying file (a later ``record`` reopens it)."""
        if self._file is not None:
            self._file.close()
        self._file = None
        self._writer = None

    @property
    def path(self) -> Path:
        return self._path
