"""
Block Segmenter
===============
Partitions the ordered page texts of a PDF into certificate blocks.

A certificate starts on a header page (both header phrases present). Its
span comes from the printed "X de Y" pagination marker when one is found;
otherwise it extends over the following pages that repeat the header banner.
"""

from __future__ import annotations

import logging
import re
from typing import NamedTuple, Optional

from .models import Block

logger = logging.getLogger(__name__)

# ─── Patterns / Defaults ──────────────────────────────────────────────────────

HEADER_PHRASES: tuple[str, ...] = (
    "SEGURO DE AUTOMOTORES",
    "CERTIFICADO DE COBERTURA",
)

# Matches "1 de 3", "2 of 4", "1/2", "1 / 2", but not the "01/02" of "01/02/2025"
PAGINATION_PATTERN = re.compile(
    r"\b(\d{1,3})\s*(?:de|of|/)\s*(\d{1,3})\b(?![/\-]\d)", re.IGNORECASE
)

# Pagination totals above this are treated as noise, not page counts
DEFAULT_MAX_PAGINATION = 20

# Pages inspected after a header page when no pagination marker exists
DEFAULT_LOOKAHEAD = 10


class Pagination(NamedTuple):
    """A "current of total" reading taken from a page."""
    current: int
    total: int


def is_header_page(
    text: Optional[str],
    phrases: tuple[str, ...] = HEADER_PHRASES,
) -> bool:
    """True if the upper-cased page text contains every header phrase."""
    upper = (text or "").upper()
    return all(phrase in upper for phrase in phrases)


def find_pagination_candidates(
    text: Optional[str],
    max_total: int = DEFAULT_MAX_PAGINATION,
) -> list[Pagination]:
    """Every plausible "X de Y" reading in `text`, in order of appearance."""
    candidates = []
    for match in PAGINATION_PATTERN.finditer(text or ""):
        current, total = int(match.group(1)), int(match.group(2))
        if 1 <= current <= total <= max_total:
            candidates.append(Pagination(current, total))
    return candidates


def choose_pagination(candidates: list[Pagination]) -> Optional[Pagination]:
    """
    Pick the most trustworthy reading: a "1 de N" first, then the
    largest total among ties.
    """
    if not candidates:
        return None
    return min(
        candidates,
        key=lambda c: (0 if c.current == 1 else 1, -c.total),
    )


class BlockSegmenter:
    """
    Scans pages left to right and claims contiguous page ranges, one per
    detected certificate. A page is claimed by at most one block.
    """

    def __init__(
        self,
        max_pagination: int = DEFAULT_MAX_PAGINATION,
        lookahead: int = DEFAULT_LOOKAHEAD,
        header_phrases: tuple[str, ...] = HEADER_PHRASES,
    ):
        self.max_pagination = max_pagination
        self.lookahead = lookahead
        self.header_phrases = tuple(p.upper() for p in header_phrases)

    def segment(self, pages: list[str]) -> list[Block]:
        """Split `pages` into non-overlapping certificate blocks."""
        blocks: list[Block] = []
        claimed: set[int] = set()
        page_count = len(pages)

        for i in range(page_count):
            if i in claimed:
                continue
            if not is_header_page(pages[i], self.header_phrases):
                continue

            start, end = self._span_for_header(pages, i)

            # A mid-certificate anchor must not reach into a previous block
            if blocks and start <= blocks[-1].end:
                logger.debug(
                    f"Page {i + 1}: start {start + 1} overlaps previous block, "
                    f"moved to {blocks[-1].end + 2}"
                )
                start = blocks[-1].end + 1

            start = max(0, start)
            end = min(page_count - 1, end)

            claimed.update(range(start, end + 1))
            block = Block(start=start, end=end)
            blocks.append(block)
            logger.debug(
                f"Block {len(blocks)}: pages {block.page_range_1based}"
            )

        logger.info(f"Detected {len(blocks)} certificate block(s)")
        return blocks

    def _span_for_header(self, pages: list[str], i: int) -> tuple[int, int]:
        """Unclamped (start, end) for the header page at index `i`."""
        candidates = find_pagination_candidates(pages[i], self.max_pagination)
        best = choose_pagination(candidates)

        if best is not None:
            start = i - (best.current - 1)
            end = start + best.total - 1
            logger.debug(
                f"Page {i + 1}: pagination {best.current} de {best.total} "
                f"(from {len(candidates)} candidate(s))"
            )
            return start, end

        end = i
        for j in range(i + 1, min(len(pages), i + 1 + self.lookahead)):
            if is_header_page(pages[j], self.header_phrases):
                end = j
            else:
                break
        logger.debug(
            f"Page {i + 1}: no pagination, banner repeats through page {end + 1}"
        )
        return i, end


def find_certificate_blocks(
    pages: list[str],
    max_pagination: int = DEFAULT_MAX_PAGINATION,
    lookahead: int = DEFAULT_LOOKAHEAD,
) -> list[Block]:
    """Convenience wrapper around BlockSegmenter.segment()."""
    return BlockSegmenter(max_pagination, lookahead).segment(pages)
