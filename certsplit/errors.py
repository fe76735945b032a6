"""
Errors
======
Fatal error types raised by the splitter.

Non-fatal problems (no blocks found, fields left empty) are not exceptions;
they are collected as ParseWarning records (see models.py).
"""

from __future__ import annotations

from typing import Optional


class CertSplitError(Exception):
    """Base class for all splitter errors."""


class InputError(CertSplitError):
    """The source file is missing, unreadable or not a PDF."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path

    def __str__(self) -> str:
        base = super().__str__()
        if self.path:
            return f"{base} ({self.path})"
        return base


class DocumentParseError(InputError):
    """The bytes could not be parsed as a PDF document."""


class SliceFailure(CertSplitError):
    """A page range could not be copied into a standalone document."""

    def __init__(
        self,
        message: str,
        out_path: Optional[str] = None,
        start: Optional[int] = None,
        end: Optional[int] = None,
    ):
        super().__init__(message)
        self.out_path = out_path
        self.start = start
        self.end = end

    def __str__(self) -> str:
        base = super().__str__()
        parts = []
        if self.start is not None and self.end is not None:
            parts.append(f"pages {self.start + 1}-{self.end + 1}")
        if self.out_path:
            parts.append(f"target {self.out_path}")
        if parts:
            return f"{base} ({', '.join(parts)})"
        return base
