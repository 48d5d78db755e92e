"""LLM provider adapters.

One concrete implementation of ILLMProvider (src/interfaces/llm_provider.py):
    - OllamaLLMProvider -- local chat models via an Ollama server

main.py creates the provider at startup and injects it into the ingestion
and query services.
"""

from src.providers.llm.ollama_provider import OllamaLLMProvider

__all__ = ["OllamaLLMProvider"]
