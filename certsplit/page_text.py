"""
Page Text Extractor
===================
Reads the plain text of every page of a PDF using PyMuPDF (fitz).
Page index in the returned list is the zero-based page number.
"""

from __future__ import annotations

import logging
from typing import Optional

import fitz  # PyMuPDF

from .errors import DocumentParseError

logger = logging.getLogger(__name__)

PDF_SIGNATURE = b"%PDF"


def check_pdf_signature(data: bytes, path: Optional[str] = None) -> None:
    """Raise DocumentParseError unless `data` starts with the PDF header."""
    if not data or not bytes(data[:5]).startswith(PDF_SIGNATURE):
        header = bytes(data[:5]) if data else b""
        raise DocumentParseError(
            f"Not a valid PDF, header found: {header!r}", path=path
        )


def open_document(data: bytes, path: Optional[str] = None) -> fitz.Document:
    """Open PDF bytes with PyMuPDF, translating its errors."""
    check_pdf_signature(data, path)
    try:
        return fitz.open(stream=data, filetype="pdf")
    except (RuntimeError, ValueError) as e:
        raise DocumentParseError(f"Cannot open PDF: {e}", path=path) from e


class PageTextExtractor:
    """
    Extracts one text string per page.

    Line breaks inside a page are flattened to single spaces, so the
    downstream patterns always see running text regardless of how the
    PDF laid out its text objects.
    """

    def extract(
        self,
        data: bytes,
        path: Optional[str] = None,
        progress_callback: Optional[callable] = None,
    ) -> list[str]:
        """
        Extract the text of every page, in order.

        Args:
            data: Raw PDF bytes.
            path: Source path, only used in error messages.
            progress_callback: Optional callable(current, total).

        Returns:
            List of page texts; index = zero-based page number.

        Raises:
            DocumentParseError: If the bytes are not a readable PDF.
        """
        texts: list[str] = []

        with open_document(data, path) as doc:
            total_pages = doc.page_count
            logger.info(f"Extracting text from {total_pages} pages")

            for page_idx in range(total_pages):
                page = doc[page_idx]
                raw = page.get_text("text")
                texts.append(self._flatten(raw))

                if progress_callback:
                    progress_callback(page_idx + 1, total_pages)

        return texts

    def _flatten(self, text: str) -> str:
        """Join the page's lines with single spaces."""
        lines = (line.strip() for line in text.splitlines())
        return " ".join(line for line in lines if line)


def extract_pages(data: bytes, path: Optional[str] = None) -> list[str]:
    """Plain text of every page of `data`, in order."""
    return PageTextExtractor().extract(data, path=path)
