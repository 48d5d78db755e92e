"""Sentence-boundary text chunking.

Splits text into chunks no longer than a character budget without ever
cutting a sentence.  A sentence ends at ``.``, ``!`` or ``?`` followed by
whitespace; the whitespace run is the separator and is not kept.

Sentences are packed greedily: each one joins the current chunk (with a
single space) unless that would exceed the budget, in which case the chunk
is closed and the sentence opens the next one.  A sentence longer than the
budget becomes a chunk of its own, so the budget is a soft bound only for
single oversized sentences.
"""

from __future__ import annotations

import re

import structlog

logger = structlog.get_logger(logger_name=__name__)

_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


class SentenceChunker:
    """Greedy sentence packer.

    Joining the returned chunks with a single space reproduces the
    sentence sequence of the input.
    """

    def chunk(self, text: str, max_chunk_chars: int) -> list[str]:
        """Split *text* into sentence-aligned chunks.

        Parameters
        ----------
        text:
            Source text.  Leading/trailing whitespace is ignored.
        max_chunk_chars:
            Character budget per chunk.  Must be positive.

        Returns
        -------
        list[str]
            Non-empty chunks in document order; ``[]`` for blank input.
        """
        if max_chunk_chars <= 0:
            msg = f"max_chunk_chars must be positive, got {max_chunk_chars}"
            raise ValueError(msg)

        sentences = [s for s in _SENTENCE_BOUNDARY.split(text.strip()) if s]
        chunks: list[str] = []
        current = ""

        for sentence in sentences:
            if not current:
                current = sentence
            elif len(current) + 1 + len(sentence) <= max_chunk_chars:
                current = f"{current} {sentence}"
            else:
                chunks.append(current)
                current = sentence

        if current:
            chunks.append(current)

        logger.debug(
            "text_chunked",
            sentences=len(sentences),
            chunks=len(chunks),
            max_chunk_chars=max_chunk_chars,
        )
        return chunks
