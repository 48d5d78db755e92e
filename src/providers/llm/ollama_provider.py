"""Chat completions from a local Ollama server.

Ollama serves an OpenAI-compatible API under ``/v1``, so completions go
through ``openai.AsyncOpenAI``.  The reachability probe uses Ollama's own
``/api/version`` endpoint over httpx.
"""

from __future__ import annotations

import httpx
import openai
import structlog

from src.config.settings import Settings
from src.interfaces.llm_provider import ILLMProvider
from src.interfaces.request_log import IRequestLog
from src.utils.errors import LLMError

logger = structlog.get_logger(logger_name=__name__)

_PROBE_TIMEOUT_SECONDS = 5.0


class OllamaLLMProvider(ILLMProvider):
    """``ILLMProvider`` over Ollama; records every prompt to the request log."""

    def __init__(self, settings: Settings, request_log: IRequestLog | None = None) -> None:
        self._base_url = settings.ollama_base_url.rstrip("/")
        self._request_log = request_log
        self._client = openai.AsyncOpenAI(
            base_url=f"{self._base_url}/v1",
            api_key="ollama",  # unused by Ollama, required by the SDK
            timeout=settings.model_timeout_seconds,
            max_retries=0,
        )

    async def complete(
        self,
        system_prompt: str | None,
        user_prompt: str,
        model: str,
        temperature: float = 0.3,
        max_tokens: int = 1024,
    ) -> str:
        messages = [{"role": "user", "content": user_prompt}]
        if system_prompt:
            messages.insert(0, {"role": "system", "content": system_prompt})

        if self._request_log is not None:
            prompt_text = "\n\n".join(m["content"] for m in messages)
            self._request_log.record("generate", prompt_text, model)

        try:
            response = await self._client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.APIError as exc:
            raise LLMError(
                message=f"Ollama chat request failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        text = (response.choices[0].message.content or "").strip() if response.choices else ""
        if not text:
            raise LLMError(
                message=f"Ollama returned an empty response for model {model}",
                provider_name=self.get_provider_name(),
            )
        logger.info("ollama_completion", model=model, chars=len(text))
        return text

    def is_available(self) -> bool:
        return bool(self._base_url)

    async def validate_credentials(self) -> bool:
        # Ollama has no credentials; a version response means it is up.
        if not self.is_available():
            return False
        try:
            async with httpx.AsyncClient(timeout=_PROBE_TIMEOUT_SECONDS) as client:
                response = await client.get(f"{self._base_url}/api/version")
        except httpx.HTTPError:
            return False
        return response.status_code == 200

    def get_provider_name(self) -> str:
        return "ollama"
