"""
Plate Filter
============
Keeps or rejects a certificate block by vehicle plate.

A block is kept when its extracted plate equals the target, or when the
target appears anywhere in the block text (spaced-out renderings such as
"A G 5 5 2 F A" included).
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from .models import CertificateRecord

logger = logging.getLogger(__name__)

# Two letters, three digits, two letters ("AG552FA")
PLATE_FORMAT = re.compile(r"^[A-Z]{2}\d{3}[A-Z]{2}$")


def normalize_plate(value: Optional[str]) -> str:
    """Upper-case and drop every non-alphanumeric character."""
    return re.sub(r"[^A-Z0-9]+", "", (value or "").upper())


def plate_flex_pattern(plate: str) -> re.Pattern:
    """
    Pattern that finds `plate` in running text.

    Plates in the AA999AA format tolerate whitespace between every
    character; anything else is searched as a case-insensitive literal.
    """
    normalized = normalize_plate(plate)
    if not PLATE_FORMAT.match(normalized):
        return re.compile(re.escape(plate), re.IGNORECASE)
    return re.compile(r"\s*".join(normalized), re.IGNORECASE)


class PlateFilter:
    """
    Filter for a single target plate. With no target every block passes.
    """

    def __init__(self, target: Optional[str] = None):
        self.target = target or None
        self.normalized = normalize_plate(target) if target else ""
        self._pattern = plate_flex_pattern(target) if self.normalized else None

    @property
    def active(self) -> bool:
        return self._pattern is not None

    def matches(
        self,
        record: CertificateRecord,
        block_text: str,
        first_page_text: str,
    ) -> bool:
        """True if the block should be kept."""
        if not self.active:
            return True

        if record.patente and normalize_plate(record.patente) == self.normalized:
            return True
        if self._pattern.search(block_text or ""):
            return True
        return bool(self._pattern.search(first_page_text or ""))

    def apply(
        self,
        record: CertificateRecord,
        block_text: str,
        first_page_text: str,
    ) -> Optional[CertificateRecord]:
        """
        Filter one block.

        Returns:
            None if the block is rejected; otherwise the record, with the
            target plate filled in when no plate was extracted.
        """
        if not self.matches(record, block_text, first_page_text):
            logger.debug(
                f"Plate {self.normalized} not found "
                f"(extracted: {record.patente or 'none'})"
            )
            return None

        if self.active and not record.patente:
            logger.info(
                f"No plate extracted, using filter plate {self.normalized}"
            )
            return record.model_copy(update={"patente": self.normalized})
        return record
