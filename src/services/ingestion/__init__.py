"""Document ingestion pipeline for per-project RAG indexes.

Pipeline stages overview:

1. **Extract** (text_extractor.py / TextExtractor) -- PDF, EPUB or UTF-8
   text upload into one plain-text string.

2. **Chunk** (chunker.py / SentenceChunker) -- greedy sentence packing up
   to the project's chunk size.

3. **Summarise + embed + store** (ingestion_service.py / IngestionService)
   -- per chunk, an optional model-written description, an embedding
   vector and a row in the project store, with progress reported to the
   progress store.
"""

from src.services.ingestion.chunker import SentenceChunker
from src.services.ingestion.ingestion_service import IngestionService
from src.services.ingestion.text_extractor import DocumentType, TextExtractor

__all__ = [
    "DocumentType",
    "IngestionService",
    "SentenceChunker",
    "TextExtractor",
]
