"""
Validation Engine
=================
Post-run validation and reporting.

After splitting a PDF, generates a report:
    - Blocks Detected
    - Certificates Exported
    - Filtered Out (plate filter)
    - Failed Blocks
    - Missing required fields, per field
    - Warnings (no blocks, missing fields, collisions)

Missing fields are reported, never filled in.
"""

from __future__ import annotations

import logging
from typing import Optional

from .models import (
    REQUIRED_FIELDS,
    OutputArtifact,
    ParseWarning,
    ValidationReport,
    WarningType,
)

logger = logging.getLogger(__name__)


class ValidationEngine:
    """
    Checks exported certificates for missing fields and builds the run report.
    """

    def validate(
        self,
        artifacts: list[OutputArtifact],
        blocks_detected: int,
        filtered_out: int = 0,
        failed_blocks: int = 0,
        warnings: Optional[list[ParseWarning]] = None,
        source_pdf: str = "",
        total_pages: int = 0,
    ) -> ValidationReport:
        """
        Run validation over the exported certificates.

        Args:
            artifacts: Everything written during the run.
            blocks_detected: Number of blocks the segmenter found.
            filtered_out: Blocks rejected by the plate filter.
            failed_blocks: Blocks skipped after a slicing failure.
            warnings: Warnings already raised during the run.

        Returns:
            ValidationReport with per-field missing counts and all warnings.
        """
        report = ValidationReport(
            source_pdf=source_pdf,
            total_pages=total_pages,
            blocks_detected=blocks_detected,
            certificates_exported=len(artifacts),
            filtered_out=filtered_out,
            failed_blocks=failed_blocks,
            warnings=list(warnings or []),
        )

        if blocks_detected == 0 and not any(
            w.type == WarningType.NO_BLOCKS for w in report.warnings
        ):
            report.warnings.append(ParseWarning(
                type=WarningType.NO_BLOCKS,
                message="No coverage certificates found in the PDF",
            ))

        missing_counts: dict[str, int] = {}

        for artifact in artifacts:
            missing = artifact.record.missing(REQUIRED_FIELDS)
            if not missing:
                continue

            for name in missing:
                missing_counts[name] = missing_counts.get(name, 0) + 1

            warning = ParseWarning(
                type=WarningType.MISSING_FIELD,
                message=(
                    f"Pages {artifact.block.page_range_1based}: "
                    f"missing {', '.join(missing)}"
                ),
                block=artifact.block,
                context={"fields": missing, "json": artifact.json_path},
            )
            logger.warning(warning.message)
            report.warnings.append(warning)

        report.missing_fields = missing_counts

        # Log summary
        logger.info("=" * 60)
        logger.info("SPLIT REPORT")
        logger.info("=" * 60)
        logger.info(f"Total Pages: {report.total_pages}")
        logger.info(f"Blocks Detected: {report.blocks_detected}")
        logger.info(f"Certificates Exported: {report.certificates_exported}")
        logger.info(f"Filtered Out: {report.filtered_out}")
        logger.info(f"Failed Blocks: {report.failed_blocks}")
        logger.info(f"Field Completeness: {report.completeness_rate}%")

        if report.missing_fields:
            logger.info("Missing Fields:")
            for name, count in sorted(report.missing_fields.items()):
                logger.info(f"  • {name}: {count}")

        logger.info("=" * 60)

        return report
