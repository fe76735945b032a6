"""
Document Slicer
===============
Copies an inclusive page range of a PDF into a new standalone PDF using
PyMuPDF's insert_pdf. Pages keep their original order and content.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

import fitz  # PyMuPDF

from .errors import SliceFailure
from .page_text import open_document

logger = logging.getLogger(__name__)


def copy_page_range(
    data: bytes,
    start: int,
    end: int,
    path: Optional[str] = None,
) -> bytes:
    """
    Build a new PDF holding pages `start..end` (zero-based, inclusive).

    `end` is clamped to the last page of the source and `start` to 0, so
    an overshooting range never fails.

    Raises:
        DocumentParseError: If `data` is not a PDF.
        SliceFailure: If the range holds no page or the copy fails.
    """
    with open_document(data, path) as src:
        total_pages = src.page_count
        start = max(0, start)
        end = min(end, total_pages - 1)

        if start > end:
            raise SliceFailure(
                f"Page range is empty for a {total_pages}-page document",
                start=start,
                end=end,
            )

        logger.debug(
            f"Copying pages {start + 1}-{end + 1} of {total_pages}"
        )
        try:
            with fitz.open() as out:
                out.insert_pdf(src, from_page=start, to_page=end)
                return out.tobytes()
        except (RuntimeError, ValueError) as e:
            raise SliceFailure(
                f"Cannot copy pages: {e}", start=start, end=end
            ) from e


def write_bytes_atomic(data: bytes, out_path: str | Path) -> Path:
    """Write through a temporary file in the target directory, then rename."""
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(
        dir=out_path.parent, prefix=f".{out_path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_name, out_path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
    return out_path


def slice_pages_to_pdf(
    data: bytes,
    start: int,
    end: int,
    out_path: str | Path,
) -> Path:
    """
    Write pages `start..end` of `data` to `out_path` as a new PDF.

    Raises:
        DocumentParseError: If `data` is not a PDF.
        SliceFailure: If the pages cannot be copied or written.
    """
    try:
        pdf_bytes = copy_page_range(data, start, end)
    except SliceFailure as e:
        e.out_path = str(out_path)
        raise

    try:
        written = write_bytes_atomic(pdf_bytes, out_path)
    except OSError as e:
        raise SliceFailure(
            f"Cannot write PDF: {e}",
            out_path=str(out_path),
            start=start,
            end=end,
        ) from e

    logger.info(f"PDF saved: {written}")
    return written
