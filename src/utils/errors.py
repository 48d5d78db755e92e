"""Exception hierarchy for the local RAG service.

    LocalRagError
    +-- ExtractionError       uploaded document could not be read as text
    +-- EmbeddingError        no vector from the inference service
    +-- LLMError              chat completion failed or came back empty
    +-- ProjectBusyError      query while files are processing
    +-- NotFoundError         unknown project or file id
    +-- ValidationError       missing or invalid request values
    +-- InvalidStateError     operation not allowed in the current state
    +-- ConfigurationError    bad or missing startup configuration

Ingestion failures end up as the file row's error message and are not
re-raised.  Request-path failures become HTTP status codes in ``src/api``.
"""

from __future__ import annotations


class LocalRagError(Exception):
    """Base class for application errors.

    Subclasses only override ``default_message``.  ``provider_name`` names
    the backing service ("ollama", "sqlite", "pymupdf") when one is to
    blame and shows up in ``str(exc)`` as ``[ollama] Connection refused``.
    """

    default_message = "An unexpected error occurred"

    def __init__(self, message: str | None = None, provider_name: str | None = None) -> None:
        self._message = message or self.default_message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name is None:
            return self._message
        return f"[{self._provider_name}] {self._message}"


class ExtractionError(LocalRagError):
    default_message = "Text extraction failed"


class EmbeddingError(LocalRagError):
    default_message = "Embedding request failed"


class LLMError(LocalRagError):
    default_message = "LLM API call failed"


class ProjectBusyError(LocalRagError):
    """A project was queried while one of its files was still processing."""

    default_message = "Cannot query while files are still being processed"


class NotFoundError(LocalRagError):
    default_message = "Resource not found"


class ValidationError(LocalRagError):
    default_message = "Invalid request"


class InvalidStateError(LocalRagError):
    """E.g. cancelling a file whose ingestion already finished."""

    default_message = "Operation not allowed in the current state"


class ConfigurationError(LocalRagError):
    default_message = "Invalid or missing configuration"
