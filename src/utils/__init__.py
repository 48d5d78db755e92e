"""Shared helpers: the ``LocalRagError`` hierarchy and structlog setup."""

from src.utils.errors import (
    ConfigurationError,
    EmbeddingError,
    ExtractionError,
    InvalidStateError,
    LLMError,
    LocalRagError,
    NotFoundError,
    ProjectBusyError,
    ValidationError,
)
from src.utils.logging import configure_logging, get_logger

__all__ = [
    "ConfigurationError",
    "EmbeddingError",
    "ExtractionError",
    "InvalidStateError",
    "LLMError",
    "LocalRagError",
    "NotFoundError",
    "ProjectBusyError",
    "ValidationError",
    "configure_logging",
    "get_logger",
]
