"""Retrieval-augmented question answering over one project.

Data flow for a query:
  1. GUARD     -- the project must exist and have no file still processing.
  2. EMBED     -- the question is embedded with the project's embedding
                  model so it lands in the same vector space as its chunks.
  3. RETRIEVE  -- every chunk of the project is scored by cosine similarity
                  and the top ``top_k`` are kept (linear scan).
  4. SYNTHESIS -- the chunk texts, joined by blank lines in rank order,
                  become the context of a single chat call whose system
                  prompt confines the model to that context.
"""

from __future__ import annotations

import structlog

from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.llm_provider import ILLMProvider
from src.interfaces.project_store import IProjectStore
from src.models.rag import QueryResult
from src.services.similarity import rank
from src.utils.errors import NotFoundError, ProjectBusyError, ValidationError
from src.utils.logging import get_logger

logger: structlog.BoundLogger = get_logger(__name__)


class QueryService:
    """Answers questions about a project's documents.

    Parameters
    ----------
    store:
        Project store holding the chunks and their vectors.
    embedding_provider:
        Embeds the question.
    llm:
        Chat model that writes the answer.
    default_model:
        Chat model used when a query names none.
    answer_temperature:
        Sampling temperature for answers.
    answer_max_tokens:
        Token cap for answers.
    """

    _SYSTEM_PROMPT = (
        "You are a helpful assistant. Use the following context to answer the user's question.\n"
        "If the answer is not in the context, say "
        "\"I don't have enough information to answer that question.\"\n\n"
        "Context:\n{context}"
    )

    def __init__(
        self,
        store: IProjectStore,
        embedding_provider: IEmbeddingProvider,
        llm: ILLMProvider,
        default_model: str = "llama2",
        answer_temperature: float = 0.3,
        answer_max_tokens: int = 1024,
    ) -> None:
        self._store = store
        self._embedder = embedding_provider
        self._llm = llm
        self._default_model = default_model
        self._answer_temperature = answer_temperature
        self._answer_max_tokens = answer_max_tokens

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def query(
        self,
        project_id: str,
        text: str,
        top_k: int = 5,
        model: str | None = None,
    ) -> QueryResult:
        """Answer *text* from the project's most similar chunks.

        Parameters
        ----------
        project_id:
            Project to search.
        text:
            The user's question.
        top_k:
            Number of chunks to use as context.
        model:
            Chat model for the answer; the service default when ``None``.

        Returns
        -------
        QueryResult
            The answer and the ranked sources, best first.

        Raises
        ------
        NotFoundError
            Unknown project.
        ValidationError
            Blank or non-string question, or ``top_k`` not a positive integer.
        ProjectBusyError
            A file of the project is still processing.
        """
        if not isinstance(text, str) or not text.strip():
            raise ValidationError(message="Query text is required")
        if isinstance(top_k, bool) or not isinstance(top_k, int) or top_k < 1:
            raise ValidationError(message="top_k must be a positive integer")

        project = await self._store.get_project(project_id)
        if project is None:
            raise NotFoundError(message="Project not found")
        if await self._store.count_processing_files(project_id) > 0:
            raise ProjectBusyError()

        query_vector = await self._embedder.embed(text, project.embedding_model)
        chunks = await self._store.list_chunks(project_id)
        sources = rank(query_vector, chunks, top_k)

        context = "\n\n".join(source.chunk.chunk_text for source in sources)
        answer = await self._llm.complete(
            system_prompt=self._SYSTEM_PROMPT.format(context=context),
            user_prompt=text,
            model=model or self._default_model,
            temperature=self._answer_temperature,
            max_tokens=self._answer_max_tokens,
        )

        logger.info(
            "query_answered",
            project_id=project_id,
            chunks_searched=len(chunks),
            sources=len(sources),
            top_similarity=round(sources[0].similarity, 4) if sources else None,
        )
        return QueryResult(answer=answer, sources=sources)
