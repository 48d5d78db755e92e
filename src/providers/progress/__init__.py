"""Progress store implementations."""

from src.providers.progress.memory_progress_store import MemoryProgressStore

__all__ = ["MemoryProgressStore"]
