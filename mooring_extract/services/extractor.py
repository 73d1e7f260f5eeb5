from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from ..models.component import ComponentType, Specifications
from ..models.config_models import DEFAULT_MANUFACTURERS
from ..models.row_data import NormalizedRow

"""Deterministic field extraction.

Pattern rules only, no external calls:
- component type via an ordered synonym table (first match wins)
- weight / length / diameter / capacity via regex over the description
- identifier classified as tracking number vs. catalog part number
- manufacturer matched against an allow-list, unknown names kept verbatim

Tokens such as "12T" or "20MIN" are neither tracking nor part numbers at this
layer; they look like a capacity or a duration written into the id column.
"""

__all__ = [
    "COMPONENT_SYNONYMS",
    "Extraction",
    "FieldExtractor",
    "classify_component_type",
    "classify_identifier",
    "extract_specifications",
]

# Ordered: more specific nouns first so "bøyesjakkel" is a shackle and
# "ankerkjetting" is a chain.
COMPONENT_SYNONYMS: tuple[tuple[str, ComponentType], ...] = (
    ("lodd", ComponentType.SINKER),
    ("søkk", ComponentType.SINKER),
    ("sinker", ComponentType.SINKER),
    ("svivel", ComponentType.SWIVEL),
    ("svirvel", ComponentType.SWIVEL),
    ("swivel", ComponentType.SWIVEL),
    ("kause", ComponentType.THIMBLE),
    ("thimble", ComponentType.THIMBLE),
    ("koblingsskive", ComponentType.CONNECTOR),
    ("koblingsplate", ComponentType.CONNECTOR),
    ("master link", ComponentType.CONNECTOR),
    ("masterlink", ComponentType.CONNECTOR),
    ("t-bolt", ComponentType.CONNECTOR),
    ("forankringsbolt", ComponentType.CONNECTOR),
    ("connector", ComponentType.CONNECTOR),
    ("plate", ComponentType.CONNECTOR),
    ("sjakkel", ComponentType.SHACKLE),
    ("sjakel", ComponentType.SHACKLE),
    ("shackle", ComponentType.SHACKLE),
    ("kjetting", ComponentType.CHAIN),
    ("kjede", ComponentType.CHAIN),
    ("chain", ComponentType.CHAIN),
    ("anker", ComponentType.ANCHOR),
    ("anchor", ComponentType.ANCHOR),
    ("trosse", ComponentType.ROPE),
    ("tau", ComponentType.ROPE),
    ("rope", ComponentType.ROPE),
    ("wire", ComponentType.ROPE),
    ("bøye", ComponentType.BUOY),
    ("buoy", ComponentType.BUOY),
)

_NUM = r"(\d+(?:[.,]\d+)?)"
WEIGHT_RE = re.compile(_NUM + r"\s*kg", re.IGNORECASE)
LENGTH_RE = re.compile(_NUM + r"\s*m(?!m)", re.IGNORECASE)
DIAMETER_RE = re.compile(r"(\d+)\s*mm", re.IGNORECASE)
CAPACITY_RE = re.compile(_NUM + r"\s*t(?!a)", re.IGNORECASE)

PART_NUMBER_RE = re.compile(r"^\d{4,}(?:-\d+)?$")
_DIGITS_RE = re.compile(r"^\d+$")
_DIGITS_DASH_DIGITS_RE = re.compile(r"^\d+-\d+$")
_TRACKING_TOKEN_RE = re.compile(r"^[0-9A-Za-zÆØÅæøå][0-9A-Za-zÆØÅæøå/.-]*$")
_HAS_LETTER_RE = re.compile(r"[A-Za-zÆØÅæøå]")


def classify_component_type(text: str | None) -> ComponentType:
    """First synonym contained in ``text`` decides the type."""
    lowered = (text or "").lower()
    if not lowered:
        return ComponentType.UNKNOWN
    for synonym, ctype in COMPONENT_SYNONYMS:
        if synonym in lowered:
            return ctype
    return ComponentType.UNKNOWN


def _to_float(token: str) -> float | None:
    try:
        return float(token.replace(",", "."))
    except ValueError:
        return None


def _first(pattern: re.Pattern[str], text: str) -> float | None:
    m = pattern.search(text)
    return _to_float(m.group(1)) if m else None


def extract_specifications(text: str | None) -> Specifications:
    """Parse weight/length/diameter/capacity from free text.

    >>> extract_specifications("Kjetting 30mm - 27,5m")
    Specifications(weight_kg=None, length_m=27.5, diameter_mm=30.0, capacity_t=None)
    """
    if not text:
        return Specifications()
    return Specifications(
        weight_kg=_first(WEIGHT_RE, text),
        length_m=_first(LENGTH_RE, text),
        diameter_mm=_first(DIAMETER_RE, text),
        capacity_t=_first(CAPACITY_RE, text),
    )


def has_spec_token(text: str | None) -> bool:
    return not extract_specifications(text).is_empty


def classify_identifier(token: str | None) -> tuple[str | None, str | None]:
    """Return ``(tracking_number, part_number)`` for an identifier cell.

    - ``606616`` / ``606616-2`` -> part number
    - ``GAP-GBA`` / ``G1463`` -> tracking number
    - ``12T`` / ``20MIN`` / ``123`` -> neither
    """
    ident = (token or "").strip()
    if not ident:
        return None, None
    if PART_NUMBER_RE.match(ident):
        return None, ident
    if _DIGITS_RE.match(ident) or _DIGITS_DASH_DIGITS_RE.match(ident):
        return None, None
    if (
        _TRACKING_TOKEN_RE.match(ident)
        and _HAS_LETTER_RE.search(ident)
        and ("-" in ident or ident[0].isalpha())
    ):
        return ident, None
    return None, None


@dataclass(frozen=True)
class Extraction:
    """Deterministic partial record for one normalized row."""
    component_type: ComponentType
    specifications: Specifications
    manufacturer: str | None
    tracking_number: str | None
    part_number: str | None
    raw_text: str
    raw_type: str = ""
    manufacturer_field: str = ""


class FieldExtractor:
    """Pattern-rule extractor, parameterised by the manufacturer allow-list."""

    def __init__(self, manufacturers: Iterable[str] = DEFAULT_MANUFACTURERS) -> None:
        self.manufacturers = tuple(manufacturers)
        self._by_lower = {m.lower(): m for m in self.manufacturers}
        # longest first so "Aqua Supporter" is tried before a shorter overlapping name
        self._patterns = [
            (re.compile(rf"(?<!\w){re.escape(m)}(?!\w)", re.IGNORECASE), m)
            for m in sorted(self.manufacturers, key=len, reverse=True)
        ]

    def match_manufacturer(self, installer: str | None, description: str | None = None) -> str | None:
        """Canonical allow-list name, the installer text verbatim, or None."""
        name = (installer or "").strip()
        if name:
            return self._by_lower.get(name.lower(), name)
        text = description or ""
        for pattern, canonical in self._patterns:
            if pattern.search(text):
                return canonical
        return None

    def extract(self, row: NormalizedRow) -> Extraction:
        raw_text = row.combined_text
        component_type = classify_component_type(row.type)
        if component_type is ComponentType.UNKNOWN:
            component_type = classify_component_type(raw_text)

        tracking, part = classify_identifier(row.identifier)
        if row.tracking:
            tracking = row.tracking

        return Extraction(
            component_type=component_type,
            specifications=extract_specifications(raw_text),
            manufacturer=self.match_manufacturer(row.installer, raw_text),
            tracking_number=tracking,
            part_number=part,
            raw_text=raw_text,
            raw_type=row.type or "",
            manufacturer_field=row.installer or "",
        )
