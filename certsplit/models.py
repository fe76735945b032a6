"""
Data Models
===========
Pydantic models for blocks, extracted certificate records and run output.
All models are serializable to JSON.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator


# ─── Enums ────────────────────────────────────────────────────────────────────


class WarningType(str, Enum):
    """Non-fatal problems found while splitting."""
    NO_BLOCKS = "no_blocks"
    MISSING_FIELD = "missing_field"
    DIRECTORY_COLLISION = "directory_collision"
    SLICE_FAILED = "slice_failed"


# ─── Block Model ──────────────────────────────────────────────────────────────


class Block(BaseModel):
    """
    An inclusive, zero-based page range believed to hold one certificate.
    Immutable once created by the segmenter.
    """
    model_config = ConfigDict(frozen=True)

    start: int = Field(ge=0)
    end: int = Field(ge=0)

    @model_validator(mode="after")
    def _check_order(self) -> "Block":
        if self.start > self.end:
            raise ValueError(
                f"Block start ({self.start}) is after end ({self.end})"
            )
        return self

    @property
    def page_count(self) -> int:
        return self.end - self.start + 1

    @property
    def pages(self) -> range:
        return range(self.start, self.end + 1)

    @property
    def page_range_1based(self) -> str:
        return f"{self.start + 1}-{self.end + 1}"


# ─── Certificate Record ───────────────────────────────────────────────────────


class CertificateRecord(BaseModel):
    """
    Structured fields extracted from one certificate.
    A field is None when no rule matched it.
    """
    tomador: Optional[str] = None
    marca: Optional[str] = None
    tipo: Optional[str] = None
    anio: Optional[str] = None
    patente: Optional[str] = None
    vigencia_desde: Optional[str] = None
    vigencia_hasta: Optional[str] = None
    vigencia_desde_iso: Optional[str] = None
    vigencia_hasta_iso: Optional[str] = None
    poliza_numero: Optional[str] = None
    poliza_numero_sin_guiones: Optional[str] = None
    motor: Optional[str] = None
    chasis: Optional[str] = None

    def missing(self, names: tuple[str, ...]) -> list[str]:
        """Names from `names` whose value is still None."""
        return [name for name in names if getattr(self, name) is None]


# Fields that trigger the first-page extraction pass when still empty.
REQUIRED_FIELDS: tuple[str, ...] = (
    "tomador",
    "tipo",
    "anio",
    "patente",
    "poliza_numero",
    "vigencia_desde",
    "motor",
    "chasis",
)


class CertificateMetadata(BaseModel):
    """
    The metadata document persisted next to each certificate PDF.
    Key order is the on-disk order.
    """
    tomador: Optional[str] = None
    marca: Optional[str] = None
    tipo: Optional[str] = None
    anio_fabricacion: Optional[str] = None
    patente: str
    vigencia_desde: Optional[str] = None
    vigencia_hasta: Optional[str] = None
    vigencia_desde_iso: Optional[str] = None
    vigencia_hasta_iso: Optional[str] = None
    poliza_numero: Optional[str] = None
    poliza_numero_sin_guiones: Optional[str] = None
    motor: Optional[str] = None
    chasis: Optional[str] = None
    archivo_pdf: str
    paginas: str
    rango_paginas_1based: str


# ─── Warnings / Report ────────────────────────────────────────────────────────


class ParseWarning(BaseModel):
    """A non-fatal problem, logged and reported but never fatal."""
    type: WarningType
    message: str
    block: Optional[Block] = None
    context: Optional[dict] = None


class OutputArtifact(BaseModel):
    """Everything written for one kept block."""
    directory: str
    pdf_path: str
    json_path: str
    block: Block
    record: CertificateRecord
    metadata: CertificateMetadata


class ValidationReport(BaseModel):
    """Post-run report over all exported certificates."""
    source_pdf: str = ""
    total_pages: int = 0
    blocks_detected: int = 0
    certificates_exported: int = 0
    filtered_out: int = 0
    failed_blocks: int = 0
    missing_fields: dict[str, int] = Field(default_factory=dict)
    warnings: list[ParseWarning] = Field(default_factory=list)
    run_timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    @computed_field
    @property
    def completeness_rate(self) -> float:
        """Share of required fields found across exported certificates."""
        expected = self.certificates_exported * len(REQUIRED_FIELDS)
        if expected == 0:
            return 0.0
        missing = sum(self.missing_fields.values())
        return round((expected - missing) / expected * 100, 2)


class SplitResult(BaseModel):
    """Complete output of a split run."""
    source_pdf: str
    total_pages: int = 0
    blocks: list[Block] = Field(default_factory=list)
    artifacts: list[OutputArtifact] = Field(default_factory=list)
    filtered_out: int = 0
    failed: list[Block] = Field(default_factory=list)
    report: ValidationReport = Field(default_factory=ValidationReport)
