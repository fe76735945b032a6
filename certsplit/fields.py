"""
Field Extractor
===============
Extracts the certificate fields from noisy running text.

Each field has an ordered chain of independent rules (pure functions
``text -> value or None``); the first rule that returns a value wins.
Before the rules run, a line break is inserted in front of every known
label so that run-on text becomes label-anchored pseudo-lines.

Two passes are combined with a left-biased merge: the full block text is
tried first, then the block's first page alone fills whatever is still
missing.
"""

from __future__ import annotations

import logging
import re
from functools import partial
from typing import Callable, Optional

from .models import REQUIRED_FIELDS, CertificateRecord
from .plate_filter import normalize_plate

logger = logging.getLogger(__name__)

FieldRule = Callable[[str], Optional[str]]

# ─── Building blocks ──────────────────────────────────────────────────────────

# Label keywords that get their own line before matching
LABEL_PATTERN = re.compile(
    r"(TOMADOR|P[ÓO]LIZA|MARCA|TIPO|AÑO|PATENTE|MOTOR|CHASIS|VIGENCIA|DESDE|HASTA)",
    re.IGNORECASE,
)

_DATE = r"[0-3]?\d[\-/][01]?\d[\-/]\d{4}"
# Optional "12 hs. del " before a date
_TIME_PREFIX = r"(?:\d+\s*hs?\.\s*del\s+)?"
_NAME_CHARS = r"A-ZÁÉÍÓÚÜÑ0-9 .,&\-/"

ISO_SOURCE_PATTERN = re.compile(r"([0-3]?\d)[\-/]([01]?\d)[\-/](\d{4})")

# Names that the generic policyholder rule picks up by mistake
TOMADOR_EXCLUSIONS: tuple[str, ...] = ("CAJA", "SEGUROS", "HASTA")


def normalize_text(value: Optional[str]) -> str:
    """Collapse whitespace runs and trim."""
    return re.sub(r"\s+", " ", value or "").strip()


def to_iso(ddmmyyyy: Optional[str]) -> Optional[str]:
    """'5-3-2025' or '05/03/2025' -> '2025-03-05'; None for anything else."""
    m = ISO_SOURCE_PATTERN.fullmatch(ddmmyyyy or "")
    if not m:
        return None
    day, month, year = m.groups()
    return f"{year}-{month.zfill(2)}-{day.zfill(2)}"


def prepare_text(text: Optional[str]) -> str:
    """Put every label keyword at the start of its own line."""
    return LABEL_PATTERN.sub(r"\n\1", text or "")


def first_match(rules: tuple[FieldRule, ...], text: str) -> Optional[str]:
    """Value of the first rule in `rules` that finds one."""
    for rule in rules:
        value = rule(text)
        if value is not None:
            return value
    return None


def _capture(
    pattern: re.Pattern,
    transform: Callable[[str], str] = normalize_text,
) -> FieldRule:
    """Rule returning group 1 of the first match of `pattern`."""
    def rule(text: str) -> Optional[str]:
        m = pattern.search(text)
        if not m:
            return None
        return transform(m.group(1)) or None

    return rule


def _upper(value: str) -> str:
    return normalize_text(value).upper()


# ─── Policyholder (tomador) ───────────────────────────────────────────────────

# Name between the coverage-end date and the address / tax-id block
TOMADOR_AFTER_DATE_PATTERN = re.compile(
    rf"hasta\s+{_TIME_PREFIX}{_DATE}\s+(?:TOMADOR\s*[:\-]?\s*)?"
    rf"([A-ZÁÉÍÓÚÜÑ][{_NAME_CHARS}]{{2,60}}?)\s+(?:RUTA|DOMICILIO|CUIT|CT\s)",
    re.IGNORECASE,
)

# Company name with a legal-entity suffix right before the address
TOMADOR_COMPANY_PATTERN = re.compile(
    rf"\d{{4}}\s+([A-ZÁÉÍÓÚÜÑ][{_NAME_CHARS}]{{2,60}}?\s+"
    rf"(?:SRL|S\.?R\.?L\.?|SA|S\.?A\.?))\s+RUTA",
    re.IGNORECASE,
)

TOMADOR_GENERIC_PATTERN = re.compile(
    r"([A-Z][A-Z0-9 .,&\-/]{3,50}?)\s+RUTA\s+NAC",
    re.IGNORECASE,
)


def tomador_before_route(text: str) -> Optional[str]:
    """Generic capture before "RUTA NAC", skipping known false positives."""
    for m in TOMADOR_GENERIC_PATTERN.finditer(text):
        candidate = normalize_text(m.group(1))
        if not any(word in candidate.upper() for word in TOMADOR_EXCLUSIONS):
            return candidate
    return None


TOMADOR_RULES: tuple[FieldRule, ...] = (
    _capture(TOMADOR_AFTER_DATE_PATTERN),
    _capture(TOMADOR_COMPANY_PATTERN),
    tomador_before_route,
)


# ─── Vehicle ──────────────────────────────────────────────────────────────────

MARCA_PATTERN = re.compile(
    rf"MARCA\s*[:\-]?\s*([{_NAME_CHARS}]+?)(?=\s+(?:TIPO|AÑO|PATENTE)\b)",
    re.IGNORECASE,
)

TIPO_PATTERN = re.compile(
    rf"TIPO\s*[:\-]?\s*([{_NAME_CHARS}]+?)(?=\s+(?:AÑO|PATENTE)\b)",
    re.IGNORECASE,
)

ANIO_PATTERN = re.compile(
    r"AÑO\s*(?:DE\s*)?FABRICACI[ÓO]N\s*[:\-]?\s*(\d{4})",
    re.IGNORECASE,
)

MOTOR_PATTERN = re.compile(
    r"MOTOR\s*[:\-]?\s*([A-Z0-9\-]+)(?=\s+(?:CHASIS|USO|SUMA)\b|\s*$)",
    re.IGNORECASE,
)

CHASIS_PATTERN = re.compile(
    r"CHASIS\s*[:\-]?\s*([A-Z0-9\-]+)",
    re.IGNORECASE,
)


# ─── Plate (patente) ──────────────────────────────────────────────────────────

PATENTE_LABEL_PATTERN = re.compile(
    r"PATENTE\s*[:\-]?\s*([A-Z0-9\-\s]{5,15}?)(?=\s+(?:MOTOR|CHASIS|USO)\b)",
    re.IGNORECASE,
)

# "AG552FA", "AG 552 FA", "AG-552-FA"
PLATE_SHAPE_PATTERN = re.compile(
    r"([A-Z]{2})[\s\-]*([0-9]{3})[\s\-]*([A-Z]{2})",
    re.IGNORECASE,
)


def plate_by_shape(text: str, plate_hint: Optional[str] = None) -> Optional[str]:
    """
    Scan for every plate-shaped substring. The candidate equal to the
    normalized hint wins; otherwise the first candidate found.
    """
    hint = normalize_plate(plate_hint) if plate_hint else None
    first = None
    for m in PLATE_SHAPE_PATTERN.finditer(text):
        candidate = "".join(m.groups()).upper()
        if hint and candidate == hint:
            return candidate
        if first is None:
            first = candidate
    return first


def plate_rules(plate_hint: Optional[str] = None) -> tuple[FieldRule, ...]:
    return (
        _capture(PATENTE_LABEL_PATTERN, normalize_plate),
        partial(plate_by_shape, plate_hint=plate_hint),
    )


# ─── Policy number ────────────────────────────────────────────────────────────

POLIZA_LABEL_PATTERN = re.compile(
    r"P[ÓO]LIZA\s*(?:N[º°]|NRO\.?|NUM|NUMERO|#)?\s*[:\-]?\s*([0-9\-]{7,})",
    re.IGNORECASE,
)

# "0001-000123456-01" anywhere in the text
POLIZA_SHAPE_PATTERN = re.compile(r"\b(\d{4,}-\d{6,}-\d{2,})\b")

POLIZA_RULES: tuple[FieldRule, ...] = (
    _capture(POLIZA_LABEL_PATTERN),
    _capture(POLIZA_SHAPE_PATTERN),
)


def strip_policy_separators(numero: str) -> str:
    return re.sub(r"[\s\-]", "", numero)


# ─── Coverage dates (vigencia) ────────────────────────────────────────────────

VIGENCIA_PATTERN = re.compile(
    rf"desde\s+{_TIME_PREFIX}({_DATE})[\s\S]{{0,100}}?"
    rf"hasta\s+{_TIME_PREFIX}({_DATE})",
    re.IGNORECASE | re.DOTALL,
)


def extract_coverage(text: str) -> tuple[Optional[str], Optional[str]]:
    """Start and end dates from one combined match, hyphen-separated."""
    m = VIGENCIA_PATTERN.search(text)
    if not m:
        return None, None
    return m.group(1).replace("/", "-"), m.group(2).replace("/", "-")


# ─── Rule table ───────────────────────────────────────────────────────────────

FIELD_RULES: dict[str, tuple[FieldRule, ...]] = {
    "tomador": TOMADOR_RULES,
    "marca": (_capture(MARCA_PATTERN),),
    "tipo": (_capture(TIPO_PATTERN),),
    "anio": (_capture(ANIO_PATTERN),),
    "poliza_numero": POLIZA_RULES,
    "motor": (_capture(MOTOR_PATTERN, _upper),),
    "chasis": (_capture(CHASIS_PATTERN, _upper),),
}


def extract_fields(
    text: Optional[str],
    plate_hint: Optional[str] = None,
) -> CertificateRecord:
    """
    Run every field's rule chain over `text`.

    Args:
        text: A block's full text or a single page's text.
        plate_hint: Plate the caller is looking for; disambiguates
            between several plate-shaped substrings.

    Returns:
        CertificateRecord, with None for every field no rule matched.
    """
    prepared = prepare_text(text)

    values: dict[str, Optional[str]] = {
        name: first_match(rules, prepared)
        for name, rules in FIELD_RULES.items()
    }
    values["patente"] = first_match(plate_rules(plate_hint), prepared)

    desde, hasta = extract_coverage(prepared)
    values["vigencia_desde"] = desde
    values["vigencia_hasta"] = hasta
    values["vigencia_desde_iso"] = to_iso(desde)
    values["vigencia_hasta_iso"] = to_iso(hasta)

    numero = values["poliza_numero"]
    values["poliza_numero_sin_guiones"] = (
        strip_policy_separators(numero) if numero is not None else None
    )

    return CertificateRecord(**values)


def merge_records(
    first: CertificateRecord,
    second: CertificateRecord,
) -> CertificateRecord:
    """
    Left-biased merge: values of `first` are kept; `second` only fills
    fields that are None in `first`. Neither input is modified.
    """
    merged = first.model_dump()
    for name, value in second.model_dump().items():
        if merged.get(name) is None and value is not None:
            merged[name] = value
    return CertificateRecord(**merged)


def extract_certificate(
    block_text: str,
    first_page_text: str,
    plate_hint: Optional[str] = None,
) -> CertificateRecord:
    """Full-block pass, then a first-page pass if required fields are missing."""
    record = extract_fields(block_text, plate_hint)
    missing = record.missing(REQUIRED_FIELDS)
    if not missing:
        return record

    logger.debug(f"Retrying on first page for: {', '.join(missing)}")
    return merge_records(record, extract_fields(first_page_text, plate_hint))
