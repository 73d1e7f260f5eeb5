from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

import pandas as pd

from ..models.row_data import NormalizedRow

"""Row normalizer: spreadsheet headers -> fixed semantic fields.

Column headers vary by source file, language and casing. Each semantic field
has an ordered tuple of recognised header synonyms. Resolution runs two passes
over the header set, both in table order:

1. whole-header equality (case-insensitive, trimmed)
2. substring containment, over columns not claimed in pass 1 or earlier in
   pass 2

The first match wins and a column is claimed by at most one field, so the same
header set always resolves to the same columns. Short synonyms ("id", "nr")
and the few listed in ``EXACT_ONLY_SYNONYMS`` only take part in pass 1.

Precedence is deliberately exact-before-substring across all fields, not a
single per-field synonym scan: with headers ``["Posisjon nr", "Navn"]`` the
position field takes "Navn" (exact) over "Posisjon nr" (substring).
"""

__all__ = [
    "EXACT_ONLY_SYNONYMS",
    "FIELD_SYNONYMS",
    "cell_text",
    "normalize",
    "parse_number",
    "resolve_columns",
]

FIELD_SYNONYMS: dict[str, tuple[str, ...]] = {
    "position": ("navn / nummer", "navn/nummer", "posisjon", "position", "positioner", "navn", "nummer"),
    "sequence": ("rekkefølge", "rekkefolge", "sekvens", "sequence", "sekv", "pos", "seq", "nr"),
    "type": ("komponenttype", "type", "komponent", "component"),
    "subtype": ("komponenttype i bruk", "subtype", "beskrivelse", "description", "spesifikasjon"),
    "identifier": (
        "identifikasjonsnummer",
        "identifikasjon",
        "id",
        "artikkelnummer",
        "varenummer",
        "part number",
    ),
    "tracking": ("sporingsnummer", "serienummer", "sporing", "tracking", "serial"),
    "installer": (
        "montert av",
        "montertav",
        "leverandør",
        "leverandor",
        "produsent",
        "manufacturer",
        "supplier",
        "installer",
    ),
    "install_date": ("montert dato", "identifisert tid", "dato", "date"),
    "quantity": ("antall", "quantity", "qty", "mengde"),
}

# Too generic to be trusted as substrings ("nummer" is inside every *nummer column)
EXACT_ONLY_SYNONYMS = frozenset({"nummer", "pos"})
_MIN_SUBSTRING_LEN = 4


def _header_key(header: Any) -> str:
    return str(header).strip().lower()


def resolve_columns(headers: Iterable[Any]) -> dict[str, str]:
    """Map semantic field name -> original column header.

    Unmatched fields are absent from the result.
    """
    columns = [h for h in headers if h is not None]
    keys = [_header_key(h) for h in columns]
    resolved: dict[str, str] = {}
    claimed: set[int] = set()

    # pass 1: whole-header equality
    for field_name, synonyms in FIELD_SYNONYMS.items():
        for syn in synonyms:
            idx = next((i for i, k in enumerate(keys) if k == syn and i not in claimed), None)
            if idx is not None:
                resolved[field_name] = columns[idx]
                claimed.add(idx)
                break

    # pass 2: substring containment over remaining columns
    for field_name, synonyms in FIELD_SYNONYMS.items():
        if field_name in resolved:
            continue
        for syn in synonyms:
            if len(syn) < _MIN_SUBSTRING_LEN or syn in EXACT_ONLY_SYNONYMS:
                continue
            idx = next((i for i, k in enumerate(keys) if syn in k and i not in claimed), None)
            if idx is not None:
                resolved[field_name] = columns[idx]
                claimed.add(idx)
                break

    return resolved


def cell_text(value: Any) -> str | None:
    """Convert a cell value to trimmed text; blanks become None.

    Integral floats (Excel stores ``606616`` as ``606616.0``) lose the
    fraction, timestamps become ISO dates.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        try:
            if pd.isna(value):
                return None
        except (TypeError, ValueError):
            pass
        if isinstance(value, bool):
            return str(value)
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        if hasattr(value, "isoformat"):
            if hasattr(value, "hour") and (value.hour, value.minute, value.second) == (0, 0, 0):
                return value.date().isoformat()
            return value.isoformat()
    text = str(value).strip()
    return text or None


def parse_number(value: Any) -> float | None:
    """Parse a number with either decimal separator; None when unparsable."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return None if pd.isna(value) else float(value)
    text = cell_text(value)
    if text is None:
        return None
    try:
        return float(text.replace(" ", "").replace(",", "."))
    except ValueError:
        return None


def normalize(
    raw_row: Mapping[str, Any],
    columns: Mapping[str, str] | None = None,
    row_number: int | None = None,
) -> NormalizedRow:
    """Build a NormalizedRow from one raw row.

    ``columns`` is the result of ``resolve_columns`` for the sheet's header
    set; it is computed from the row's own keys when omitted.
    """
    if columns is None:
        columns = resolve_columns(raw_row.keys())

    def get(field_name: str) -> Any:
        col = columns.get(field_name)
        return raw_row.get(col) if col is not None else None

    return NormalizedRow(
        position=cell_text(get("position")),
        sequence=cell_text(get("sequence")),
        type=cell_text(get("type")),
        subtype=cell_text(get("subtype")),
        identifier=cell_text(get("identifier")),
        tracking=cell_text(get("tracking")),
        installer=cell_text(get("installer")),
        install_date=cell_text(get("install_date")),
        quantity=parse_number(get("quantity")),
        row_number=row_number,
    )
