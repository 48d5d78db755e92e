"""Plain-text extraction for uploaded documents.

Turns the raw bytes of an upload into a single string:

- **PDF** -- PyMuPDF (``fitz``) reads the text layer page by page; pages
  are joined in order with a blank line.  Images and other non-text
  objects are ignored.
- **EPUB** -- ebooklib walks the XHTML document items in spine order and
  BeautifulSoup strips the markup.
- **Everything else** -- decoded as UTF-8.

Parsing is CPU-bound and synchronous, so :meth:`TextExtractor.extract`
runs it in a worker thread to keep the event loop responsive.
"""

from __future__ import annotations

import asyncio
import re
import tempfile
from enum import Enum
from pathlib import Path, PurePath

import ebooklib
import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import structlog
from bs4 import BeautifulSoup
from ebooklib import epub

from src.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)

_MULTI_NEWLINE = re.compile(r"\n{3,}")
_MULTI_SPACE = re.compile(r"[ \t]+")


class DocumentType(str, Enum):  # noqa: UP042
    """Supported document families."""

    PDF = "pdf"
    EPUB = "epub"
    TEXT = "text"


_CONTENT_TYPES = {
    "application/pdf": DocumentType.PDF,
    "application/epub+zip": DocumentType.EPUB,
}


def detect_document_type(filename: str, content_type: str | None = None) -> DocumentType:
    """Classify a document by extension first, then by declared content type.

    Unknown extensions and content types fall back to plain text.
    """
    suffix = PurePath(filename or "").suffix.lower()
    if suffix == ".pdf":
        return DocumentType.PDF
    if suffix == ".epub":
        return DocumentType.EPUB
    if content_type:
        return _CONTENT_TYPES.get(content_type.split(";")[0].strip().lower(), DocumentType.TEXT)
    return DocumentType.TEXT


class TextExtractor:
    """Extracts plain text from PDF, EPUB and UTF-8 text uploads."""

    async def extract(self, data: bytes, filename: str, content_type: str | None = None) -> str:
        """Return the document's text.

        Parameters
        ----------
        data:
            Raw upload bytes.
        filename:
            Original filename, used for type detection.
        content_type:
            Declared MIME type, consulted when the extension is unknown.

        Returns
        -------
        str
            Extracted text.  May be empty; an empty document is not an error.

        Raises
        ------
        ExtractionError
            If the document is malformed or not valid UTF-8 text.
        """
        doc_type = detect_document_type(filename, content_type)
        text = await asyncio.to_thread(self.extract_sync, data, doc_type)
        logger.info(
            "text_extracted",
            filename=filename,
            document_type=doc_type.value,
            characters=len(text),
        )
        return text

    def extract_sync(self, data: bytes, doc_type: DocumentType) -> str:
        if doc_type is DocumentType.PDF:
            return self._extract_pdf(data)
        if doc_type is DocumentType.EPUB:
            return self._extract_epub(data)
        return self._decode_text(data)

    # ------------------------------------------------------------------
    # Format handlers
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_pdf(data: bytes) -> str:
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as exc:  # PyMuPDF raises several unrelated types
            raise ExtractionError(
                message=f"Could not open PDF: {exc}", provider_name="pymupdf"
            ) from exc

        pages: list[str] = []
        try:
            for page in doc:
                text = page.get_text("text").strip()
                if text:
                    pages.append(text)
        except Exception as exc:
            raise ExtractionError(
                message=f"Could not read PDF text: {exc}", provider_name="pymupdf"
            ) from exc
        finally:
            doc.close()

        return "\n\n".join(pages).strip()

    @staticmethod
    def _extract_epub(data: bytes) -> str:
        # read_epub wants a filesystem path.
        with tempfile.TemporaryDirectory() as tmp_dir:
            epub_path = Path(tmp_dir) / "upload.epub"
            epub_path.write_bytes(data)
            try:
                book = epub.read_epub(str(epub_path), options={"ignore_ncx": True})
            except Exception as exc:
                raise ExtractionError(
                    message=f"Could not open EPUB: {exc}", provider_name="ebooklib"
                ) from exc

        sections: list[str] = []
        for item in book.get_items_of_type(ebooklib.ITEM_DOCUMENT):
            html_content = item.get_content().decode("utf-8", errors="replace")
            soup = BeautifulSoup(html_content, "html.parser")
            text = soup.get_text(separator="\n")
            text = _MULTI_SPACE.sub(" ", text)
            text = _MULTI_NEWLINE.sub("\n\n", text).strip()
            if text:
                sections.append(text)

        return "\n\n".join(sections)

    @staticmethod
    def _decode_text(data: bytes) -> str:
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise ExtractionError(
                message=f"File is not valid UTF-8 text (byte {exc.start})"
            ) from exc
        if "\x00" in text:
            raise ExtractionError(message="File appears to be binary, not text")
        return text
