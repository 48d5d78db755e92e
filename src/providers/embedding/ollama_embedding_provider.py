"""Ollama embedding provider adapter (local/free).

Wraps the Ollama OpenAI-compatible ``/v1/embeddings`` endpoint to implement
:class:`IEmbeddingProvider`.  The embedding model is chosen per call, so
projects configured with different models share one client.
"""

from __future__ import annotations

import openai
import structlog

from src.config.settings import Settings
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.request_log import IRequestLog
from src.utils.errors import EmbeddingError

logger = structlog.get_logger(logger_name=__name__)


class OllamaEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by any embedding model served via Ollama.

    Communicates through the OpenAI-compatible ``/v1`` endpoint.  One text
    per request; no batching and no retry.
    """

    def __init__(self, settings: Settings, request_log: IRequestLog | None = None) -> None:
        self._settings = settings
        self._base_url = settings.ollama_base_url
        self._request_log = request_log
        self._client = openai.AsyncOpenAI(
            base_url=f"{self._base_url.rstrip('/')}/v1",
            api_key="ollama",  # Ollama doesn't require a real key
            timeout=settings.model_timeout_seconds,
            max_retries=0,
        )

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(self, text: str, model: str) -> list[float]:
        """Generate an embedding vector for *text* with *model*."""
        if self._request_log is not None:
            self._request_log.record("embed", text, model)

        try:
            response = await self._client.embeddings.create(input=text, model=model)
        except openai.APIError as exc:
            raise EmbeddingError(
                message=f"Ollama embedding API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        vector = list(response.data[0].embedding) if response.data else []
        if not vector:
            raise EmbeddingError(
                message=f"Ollama returned no embedding for model '{model}'",
                provider_name=self.get_provider_name(),
            )
        logger.debug("ollama_embedding", model=model, dimension=len(vector))
        return vector

    def get_provider_name(self) -> str:
        return "ollama_embedding"
