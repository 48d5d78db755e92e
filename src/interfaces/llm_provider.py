"""Chat-model contract shared by chunk summarisation and answer synthesis."""

from __future__ import annotations

from abc import ABC, abstractmethod


class ILLMProvider(ABC):
    """A chat-completion backend addressed by model name on every call.

    Implementations: ``OllamaLLMProvider`` in ``src/providers/llm/``.
    """

    @abstractmethod
    async def complete(
        self,
        system_prompt: str | None,
        user_prompt: str,
        model: str,
        temperature: float = 0.3,
        max_tokens: int = 1024,
    ) -> str:
        """Run one chat completion and return the stripped reply text.

        Parameters
        ----------
        system_prompt:
            Instruction message, or ``None`` to send the user turn alone.
        user_prompt:
            The user turn.
        model:
            Chat model name as the inference service knows it, e.g. ``"llama2"``.
        temperature, max_tokens:
            Sampling controls passed through unchanged.

        Raises
        ------
        src.utils.errors.LLMError
            The call failed or the reply was blank.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Short backend name, reported by the health endpoint."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the provider has what it needs to make calls (no I/O)."""

    @abstractmethod
    async def validate_credentials(self) -> bool:
        """Probe the backend over the network; ``False`` when it does not answer."""
