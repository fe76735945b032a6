"""
Output Storage
==============
Derives the output location of each certificate and persists its
metadata document.

Directory Layout:
    <out>/
    └── {tomador}/
        └── {marca}/
            └── {tipo} {anio}/
                └── {PATENTE}/
                    ├── poliza_{PATENTE}.pdf
                    └── poliza_{PATENTE}.json
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Optional

from .fields import normalize_text, strip_policy_separators, to_iso
from .models import Block, CertificateMetadata, CertificateRecord

logger = logging.getLogger(__name__)

UNKNOWN_TOMADOR = "Tomador_Desconocido"
UNKNOWN_MARCA = "Marca_Desconocida"
UNKNOWN_TIPO = "Tipo"
UNKNOWN_ANIO = "Año"
UNKNOWN_PATENTE = "PATENTE_DESC"


# ─── Paths ────────────────────────────────────────────────────────────────────


def sanitize(name: Optional[str]) -> str:
    """Collapse whitespace and replace characters not allowed in paths."""
    return re.sub(r'[/\\:*?"<>|]+', "-", normalize_text(name))


def plate_label(record: CertificateRecord) -> str:
    return (record.patente or UNKNOWN_PATENTE).upper()


def certificate_dir(out_dir: str | Path, record: CertificateRecord) -> Path:
    """
    Directory for a certificate. Two records with the same derived
    names share a directory.
    """
    tipo_anio = f"{record.tipo or UNKNOWN_TIPO} {record.anio or UNKNOWN_ANIO}"
    return (
        Path(out_dir)
        / sanitize(record.tomador or UNKNOWN_TOMADOR)
        / sanitize(record.marca or UNKNOWN_MARCA)
        / sanitize(tipo_anio)
        / sanitize(plate_label(record))
    )


def unique_dir(directory: Path, used: set[Path]) -> Path:
    """`directory`, or `directory_2`, `directory_3`... if already used."""
    if directory not in used:
        return directory
    n = 2
    while True:
        candidate = directory.with_name(f"{directory.name}_{n}")
        if candidate not in used:
            return candidate
        n += 1


def output_paths(directory: Path, record: CertificateRecord) -> tuple[Path, Path]:
    """(pdf_path, json_path) inside `directory`."""
    stem = f"poliza_{sanitize(plate_label(record))}"
    return directory / f"{stem}.pdf", directory / f"{stem}.json"


# ─── Metadata ─────────────────────────────────────────────────────────────────


def build_metadata(
    record: CertificateRecord,
    block: Block,
    pdf_path: str | Path,
) -> CertificateMetadata:
    """The persisted document for one certificate."""
    numero = record.poliza_numero
    return CertificateMetadata(
        tomador=record.tomador,
        marca=record.marca,
        tipo=record.tipo,
        anio_fabricacion=record.anio,
        patente=plate_label(record),
        vigencia_desde=record.vigencia_desde,
        vigencia_hasta=record.vigencia_hasta,
        vigencia_desde_iso=record.vigencia_desde_iso or to_iso(record.vigencia_desde),
        vigencia_hasta_iso=record.vigencia_hasta_iso or to_iso(record.vigencia_hasta),
        poliza_numero=numero,
        poliza_numero_sin_guiones=(
            strip_policy_separators(numero) if numero is not None else None
        ),
        motor=record.motor,
        chasis=record.chasis,
        archivo_pdf=str(pdf_path),
        paginas=f"{block.page_count} páginas",
        rango_paginas_1based=block.page_range_1based,
    )


def write_record(path: str | Path, data: dict) -> Path:
    """Write `data` as indented UTF-8 JSON, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False, default=str)
    logger.info(f"Saved JSON: {path}")
    return path
