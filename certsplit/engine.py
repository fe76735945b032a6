"""
Certificate Splitter Engine
===========================
Main orchestrator that combines page text extraction, block segmentation,
field extraction, plate filtering and PDF slicing into one pipeline.

Usage:
    splitter = CertificateSplitter(SplitterConfig(plate="AG552FA"))
    result = splitter.run("path/to/certificados.pdf")
    # result is a SplitResult with one OutputArtifact per certificate

Architecture:
    PDF → PageTextExtractor → page texts → BlockSegmenter → Blocks →
    (per block) FieldExtractor → PlateFilter → Slicer + JSON → SplitResult
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import InputError, SliceFailure
from .fields import extract_certificate
from .models import (
    Block,
    CertificateRecord,
    OutputArtifact,
    ParseWarning,
    SplitResult,
    WarningType,
)
from .page_text import PageTextExtractor, check_pdf_signature
from .plate_filter import PlateFilter, normalize_plate
from .segmenter import (
    DEFAULT_LOOKAHEAD,
    DEFAULT_MAX_PAGINATION,
    HEADER_PHRASES,
    BlockSegmenter,
)
from .slicer import slice_pages_to_pdf
from .storage import (
    build_metadata,
    certificate_dir,
    output_paths,
    unique_dir,
    write_record,
)
from .validator import ValidationEngine

logger = logging.getLogger(__name__)

COLLISION_MODES = ("overwrite", "suffix")
SUMMARY_FILENAME = "_resumen.json"


@dataclass
class SplitterConfig:
    """Configuration for the splitter engine."""

    # Output settings
    output_dir: str = "./salidas"
    # "overwrite": identical derived paths share a directory, last write wins
    # "suffix": later certificates go to <dir>_2, <dir>_3, ...
    on_collision: str = "overwrite"
    save_summary: bool = True

    # Filtering
    plate: Optional[str] = None

    # Segmentation
    max_pagination: int = DEFAULT_MAX_PAGINATION
    lookahead: int = DEFAULT_LOOKAHEAD
    header_phrases: tuple[str, ...] = HEADER_PHRASES

    # Failure handling: False aborts the run on the first slicing failure
    keep_going: bool = False

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None


class CertificateSplitter:
    """
    Main splitting engine.

    Orchestrates the full pipeline, strictly one block at a time:
        1. Input validation
        2. Page text extraction
        3. Block segmentation
        4. Field extraction (block text, then first page)
        5. Plate filtering
        6. PDF slicing + metadata JSON
        7. Validation report
    """

    def __init__(self, config: Optional[SplitterConfig] = None):
        self.config = config or SplitterConfig()
        if self.config.on_collision not in COLLISION_MODES:
            raise ValueError(
                f"on_collision must be one of {COLLISION_MODES}, "
                f"got {self.config.on_collision!r}"
            )
        self._setup_logging()

    def _setup_logging(self):
        """Configure logging based on config."""
        log_level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        # Configure root logger for the package
        pkg_logger = logging.getLogger("certsplit")
        pkg_logger.setLevel(log_level)

        formatter = logging.Formatter(
            "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        # Console handler, shared by every splitter in the process
        console = next(
            (h for h in pkg_logger.handlers if type(h) is logging.StreamHandler),
            None,
        )
        if console is None:
            console = logging.StreamHandler()
            console.setFormatter(formatter)
            pkg_logger.addHandler(console)
        console.setLevel(log_level)

        # File handler, at most one per log file
        if self.config.log_file:
            log_path = os.path.abspath(self.config.log_file)
            file_handler = next(
                (
                    h for h in pkg_logger.handlers
                    if isinstance(h, logging.FileHandler)
                    and h.baseFilename == log_path
                ),
                None,
            )
            if file_handler is None:
                Path(log_path).parent.mkdir(parents=True, exist_ok=True)
                file_handler = logging.FileHandler(log_path, encoding="utf-8")
                file_handler.setFormatter(formatter)
                pkg_logger.addHandler(file_handler)
            file_handler.setLevel(log_level)

    # ─── Input ────────────────────────────────────────────────────────────────

    def read_input(self, pdf_path: str) -> bytes:
        """
        Read the source PDF.

        Raises:
            InputError: If the file is missing, unreadable or not a PDF.
        """
        if not os.path.isfile(pdf_path):
            raise InputError("PDF not found", path=pdf_path)

        try:
            with open(pdf_path, "rb") as f:
                data = f.read()
        except OSError as e:
            raise InputError(f"Cannot read PDF: {e}", path=pdf_path) from e

        logger.info(f"Read {len(data)} bytes from {pdf_path}")
        check_pdf_signature(data, path=pdf_path)
        return data

    def detect(self, pdf_path: str) -> tuple[list[str], list[Block]]:
        """Page texts and detected blocks, without writing anything."""
        data = self.read_input(pdf_path)
        pages = PageTextExtractor().extract(data, path=pdf_path)
        return pages, self._segmenter().segment(pages)

    def _segmenter(self) -> BlockSegmenter:
        return BlockSegmenter(
            max_pagination=self.config.max_pagination,
            lookahead=self.config.lookahead,
            header_phrases=self.config.header_phrases,
        )

    # ─── Pipeline ─────────────────────────────────────────────────────────────

    def run(
        self,
        pdf_path: str,
        progress_callback: Optional[callable] = None,
    ) -> SplitResult:
        """
        Split a PDF into one PDF + JSON pair per certificate.

        Args:
            pdf_path: Path to the source PDF.
            progress_callback: Callback(block_num, total_blocks) per block.

        Returns:
            SplitResult with every written artifact and the run report.

        Raises:
            InputError: If the source cannot be read as a PDF.
            SliceFailure: If a block cannot be written and keep_going is off.
        """
        start_time = time.time()
        logger.info(f"Starting split of: {pdf_path}")

        # ── Step 1: Read + extract page text ──────────────────────────
        data = self.read_input(pdf_path)
        pages = PageTextExtractor().extract(data, path=pdf_path)

        # ── Step 2: Segment ───────────────────────────────────────────
        blocks = self._segmenter().segment(pages)
        warnings: list[ParseWarning] = []
        if not blocks:
            message = "No coverage certificates found in the PDF"
            logger.warning(message)
            warnings.append(ParseWarning(
                type=WarningType.NO_BLOCKS, message=message
            ))

        # ── Step 3: Per block ─────────────────────────────────────────
        plate_filter = PlateFilter(self.config.plate)
        plate_hint = plate_filter.normalized or None
        used_dirs: set[Path] = set()
        artifacts: list[OutputArtifact] = []
        failed: list[Block] = []
        filtered_out = 0

        for num, block in enumerate(blocks, start=1):
            block_text = "\n".join(pages[block.start:block.end + 1])
            first_page = pages[block.start]

            record = extract_certificate(block_text, first_page, plate_hint)
            record = plate_filter.apply(record, block_text, first_page)

            if record is None:
                filtered_out += 1
            else:
                try:
                    artifacts.append(self._export(
                        data, block, record, used_dirs, warnings
                    ))
                except SliceFailure as e:
                    if not self.config.keep_going:
                        raise
                    logger.error(f"Skipping block {block.page_range_1based}: {e}")
                    failed.append(block)
                    warnings.append(ParseWarning(
                        type=WarningType.SLICE_FAILED,
                        message=str(e),
                        block=block,
                    ))

            if progress_callback:
                progress_callback(num, len(blocks))

        # ── Step 4: Validation ────────────────────────────────────────
        report = ValidationEngine().validate(
            artifacts,
            blocks_detected=len(blocks),
            filtered_out=filtered_out,
            failed_blocks=len(failed),
            warnings=warnings,
            source_pdf=os.path.basename(pdf_path),
            total_pages=len(pages),
        )

        if self.config.save_summary:
            summary_path = Path(self.config.output_dir) / SUMMARY_FILENAME
            write_record(summary_path, report.model_dump())

        elapsed = time.time() - start_time
        logger.info(
            f"Split complete in {elapsed:.2f}s, "
            f"{len(artifacts)} certificate(s) exported"
        )

        return SplitResult(
            source_pdf=pdf_path,
            total_pages=len(pages),
            blocks=blocks,
            artifacts=artifacts,
            filtered_out=filtered_out,
            failed=failed,
            report=report,
        )

    def _export(
        self,
        data: bytes,
        block: Block,
        record: CertificateRecord,
        used_dirs: set[Path],
        warnings: list[ParseWarning],
    ) -> OutputArtifact:
        """Write the PDF slice and the metadata JSON for one block."""
        directory = certificate_dir(self.config.output_dir, record)

        if directory in used_dirs:
            if self.config.on_collision == "suffix":
                directory = unique_dir(directory, used_dirs)
            else:
                message = (
                    f"Pages {block.page_range_1based} overwrite an earlier "
                    f"certificate in {directory}"
                )
                logger.warning(message)
                warnings.append(ParseWarning(
                    type=WarningType.DIRECTORY_COLLISION,
                    message=message,
                    block=block,
                    context={"directory": str(directory)},
                ))
        used_dirs.add(directory)

        pdf_path, json_path = output_paths(directory, record)
        slice_pages_to_pdf(data, block.start, block.end, pdf_path)

        metadata = build_metadata(record, block, pdf_path)
        write_record(json_path, metadata.model_dump())

        return OutputArtifact(
            directory=str(directory),
            pdf_path=str(pdf_path),
            json_path=str(json_path),
            block=block,
            record=record,
            metadata=metadata,
        )


def split_certificates(
    pdf_path: str,
    output_dir: str = "./salidas",
    plate: Optional[str] = None,
) -> SplitResult:
    """One-call convenience wrapper with default settings."""
    config = SplitterConfig(
        output_dir=output_dir,
        plate=normalize_plate(plate) if plate else None,
    )
    return CertificateSplitter(config).run(pdf_path)
