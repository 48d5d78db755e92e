"""Shared pytest fixtures for the local RAG test suite."""

from __future__ import annotations

import uuid
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from src.config.settings import Settings
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.llm_provider import ILLMProvider
from src.models.project import Chunk, EmbeddingType, Project, ProjectFile
from src.providers.progress.memory_progress_store import MemoryProgressStore
from src.providers.store.sqlite_project_store import SQLiteProjectStore

# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

VOCABULARY = ("cat", "dog", "piano", "rain", "summary")


class KeywordEmbeddingProvider(IEmbeddingProvider):
    """Deterministic embedder: one dimension per vocabulary word.

    Texts that share words point in similar directions, which is enough
    to make ranking assertions meaningful without a model server.
    """

    def __init__(self, vocabulary: tuple[str, ...] = VOCABULARY) -> None:
        self.vocabulary = vocabulary
        self.calls: list[tuple[str, str]] = []

    async def embed(self, text: str, model: str) -> list[float]:
        self.calls.append((text, model))
        lowered = text.lower()
        return [float(lowered.count(word)) for word in self.vocabulary]

    def get_provider_name(self) -> str:
        return "keyword"


def make_project(**overrides) -> Project:
    defaults = {
        "id": str(uuid.uuid4()),
        "name": "Test Project",
        "embedding_model": "nomic-embed-text",
        "chunk_size": 1000,
        "embedding_type": EmbeddingType.DIRECT,
    }
    defaults.update(overrides)
    return Project(**defaults)


def make_file(project_id: str, **overrides) -> ProjectFile:
    defaults = {
        "id": str(uuid.uuid4()),
        "project_id": project_id,
        "filename": "notes.txt",
    }
    defaults.update(overrides)
    return ProjectFile(**defaults)


def make_chunk(file_id: str, project_id: str, vector: list[float], **overrides) -> Chunk:
    defaults = {
        "id": str(uuid.uuid4()),
        "file_id": file_id,
        "project_id": project_id,
        "chunk_text": "Some text.",
        "embedding_vector": vector,
    }
    defaults.update(overrides)
    return Chunk(**defaults)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing every writable path into a temp directory."""
    return Settings(
        ollama_base_url="http://localhost:11434",
        default_chat_model="llama2",
        database_path=str(tmp_path / "rag.db"),
        upload_dir=str(tmp_path / "uploads"),
        request_log_path=str(tmp_path / "logs" / "llm-requests.log"),
        max_upload_mb=1,
        app_env="test",
    )


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def store(tmp_path: Path) -> SQLiteProjectStore:
    project_store = SQLiteProjectStore(db_path=tmp_path / "rag.db")
    await project_store.initialize()
    return project_store


@pytest.fixture
def progress() -> MemoryProgressStore:
    return MemoryProgressStore(retention_seconds=300)


# ---------------------------------------------------------------------------
# Model clients
# ---------------------------------------------------------------------------


@pytest.fixture
def embedder() -> KeywordEmbeddingProvider:
    return KeywordEmbeddingProvider()


@pytest.fixture
def mock_llm() -> MagicMock:
    """ILLMProvider mock whose completions are a fixed summary sentence."""
    llm = MagicMock(spec=ILLMProvider)
    llm.complete = AsyncMock(return_value="A short summary.")
    llm.get_provider_name.return_value = "mock-llm"
    llm.is_available.return_value = True
    llm.validate_credentials = AsyncMock(return_value=True)
    return llm
