"""Project store implementations."""

from src.providers.store.sqlite_project_store import SQLiteProjectStore

__all__ = ["SQLiteProjectStore"]
