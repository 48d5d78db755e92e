"""Public interface definitions for every external service and store.

Business logic talks to the inference service, the database and the
progress table only through the abstract base classes in this package.
Concrete adapters live in ``src/providers/`` and are wired together in
``src/main.py`` at startup, so unit tests can inject mocks instead.

CONCRETE PROVIDER MAP:
    Interface           →  Concrete implementation (in src/providers/)
    ─────────────────────────────────────────────────────────────────
    IEmbeddingProvider  →  OllamaEmbeddingProvider
    ILLMProvider        →  OllamaLLMProvider
    IProjectStore       →  SQLiteProjectStore
    IProgressStore      →  MemoryProgressStore
    IRequestLog         →  FileRequestLog
"""

from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.llm_provider import ILLMProvider
from src.interfaces.progress_store import IProgressStore
from src.interfaces.project_store import IProjectStore
from src.interfaces.request_log import IRequestLog

__all__ = [
    "IEmbeddingProvider",
    "ILLMProvider",
    "IProgressStore",
    "IProjectStore",
    "IRequestLog",
]
