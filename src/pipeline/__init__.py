"""Background execution components for the ingestion pipeline."""

from src.pipeline.ingestion_queue import IngestionQueue

__all__ = [
    "IngestionQueue",
]
