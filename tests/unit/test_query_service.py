"""Unit tests for QueryService: guard, embed, rank, answer."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.models.project import EmbeddingType
from src.services.query_service import QueryService
from src.utils.errors import (
    EmbeddingError,
    NotFoundError,
    ProjectBusyError,
    ValidationError,
)
from tests.conftest import make_chunk, make_file, make_project


async def _indexed_project(store, embedder, texts: list[str], **overrides):
    project = await store.create_project(make_project(**overrides))
    file = await store.create_file(make_file(project.id))
    for text in texts:
        vector = await embedder.embed(text, project.embedding_model)
        await store.add_chunk(make_chunk(file.id, project.id, vector, chunk_text=text))
    await store.set_file_chunk_count(file.id, len(texts))
    await store.mark_file_completed(file.id)
    embedder.calls.clear()
    return project


class TestQuery:
    @pytest.mark.asyncio
    async def test_answer_built_from_top_chunks(self, store, embedder, mock_llm) -> None:
        project = await _indexed_project(
            store,
            embedder,
            ["The dog barked.", "The cat purred.", "Rain fell all day."],
        )
        mock_llm.complete.return_value = "Cats purr."
        service = QueryService(store, embedder, mock_llm, default_model="llama2")

        result = await service.query(project.id, "What does the cat do?", top_k=2)

        assert result.answer == "Cats purr."
        assert [s.chunk.chunk_text for s in result.sources] == [
            "The cat purred.",
            "The dog barked.",
        ]
        assert result.sources[0].similarity == pytest.approx(1.0)
        assert embedder.calls == [("What does the cat do?", project.embedding_model)]

        kwargs = mock_llm.complete.await_args.kwargs
        assert kwargs["user_prompt"] == "What does the cat do?"
        assert kwargs["model"] == "llama2"
        assert kwargs["temperature"] == 0.3
        assert kwargs["max_tokens"] == 1024
        assert kwargs["system_prompt"].endswith(
            "Context:\nThe cat purred.\n\nThe dog barked."
        )
        assert "I don't have enough information" in kwargs["system_prompt"]

    @pytest.mark.asyncio
    async def test_explicit_model_overrides_default(self, store, embedder, mock_llm) -> None:
        project = await _indexed_project(store, embedder, ["The cat purred."])
        service = QueryService(store, embedder, mock_llm, default_model="llama2")

        await service.query(project.id, "cat?", model="mistral")

        assert mock_llm.complete.await_args.kwargs["model"] == "mistral"

    @pytest.mark.asyncio
    async def test_empty_project_still_answers(self, store, embedder, mock_llm) -> None:
        project = await store.create_project(make_project(embedding_type=EmbeddingType.SUMMARY))
        service = QueryService(store, embedder, mock_llm)

        result = await service.query(project.id, "Anything about piano?")

        assert result.sources == []
        assert mock_llm.complete.await_args.kwargs["system_prompt"].endswith("Context:\n")


class TestQueryGuards:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   "])
    async def test_blank_query_rejected(self, store, embedder, mock_llm, text: str) -> None:
        project = await store.create_project(make_project())
        service = QueryService(store, embedder, mock_llm)
        with pytest.raises(ValidationError):
            await service.query(project.id, text)

    @pytest.mark.asyncio
    async def test_top_k_must_be_positive(self, store, embedder, mock_llm) -> None:
        project = await store.create_project(make_project())
        service = QueryService(store, embedder, mock_llm)
        with pytest.raises(ValidationError):
            await service.query(project.id, "cat?", top_k=0)

    @pytest.mark.asyncio
    async def test_unknown_project(self, store, embedder, mock_llm) -> None:
        service = QueryService(store, embedder, mock_llm)
        with pytest.raises(NotFoundError):
            await service.query("missing", "cat?")

    @pytest.mark.asyncio
    async def test_busy_project_rejected(self, store, embedder, mock_llm) -> None:
        project = await store.create_project(make_project())
        await store.create_file(make_file(project.id))
        service = QueryService(store, embedder, mock_llm)

        with pytest.raises(ProjectBusyError):
            await service.query(project.id, "cat?")
        assert embedder.calls == []
        mock_llm.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_embedding_failure_propagates(self, store, mock_llm) -> None:
        project = await store.create_project(make_project())
        failing = MagicMock()
        failing.embed = AsyncMock(side_effect=EmbeddingError(message="refused"))
        service = QueryService(store, failing, mock_llm)

        with pytest.raises(EmbeddingError):
            await service.query(project.id, "cat?")
        mock_llm.complete.assert_not_awaited()
