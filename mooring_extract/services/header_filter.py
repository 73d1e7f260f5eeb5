from __future__ import annotations

import re

from ..models.row_data import NormalizedRow
from .extractor import has_spec_token

"""Header / noise row filter.

Mooring documents interleave category rows ("1.2 Ploganker", "Fortøyningsline
type 1.2") with installed components. Both use the same component nouns, so a
row is only trusted as a component when it carries a measurable or identifying
fact: a spec token, an identifier or a positive quantity.
"""

__all__ = [
    "BARE_CATEGORY_NOUNS",
    "CATEGORY_RE",
    "HEADER_KEYWORDS",
    "is_header_row",
]

# Leading bare (optionally dotted) number, whitespace, then a word. Units are
# two letters at most, so "30 mm kjetting" is not a category.
CATEGORY_RE = re.compile(r"^\d+(?:\.\d+)*\.?\s+[a-zæøå]{3,}", re.IGNORECASE)

HEADER_KEYWORDS: tuple[str, ...] = (
    "type",
    "posisjon",
    "position",
    "antall",
    "quantity",
    "kommentar",
    "merknad",
    "comment",
    "fortøyningsline",
    "mooring line",
    "anchor",
    "bunnfortøyning",
    "bottom mooring",
)

# A type cell holding only one of these nouns is a section label unless the
# row also carries a spec token or an identifier.
BARE_CATEGORY_NOUNS = frozenset({"kjetting", "sjakkel", "tau", "bøye", "anker", "line"})


def is_header_row(row: NormalizedRow) -> bool:
    """True when ``row`` describes a category or structure, not a component."""
    if not row.type and not row.subtype:
        return True

    combined = row.combined_text
    lowered = combined.lower()
    if CATEGORY_RE.match(combined):
        return True
    if any(lowered.startswith(k) for k in HEADER_KEYWORDS):
        return True

    has_specs = has_spec_token(combined)
    has_identifier = bool(row.identifier or row.tracking)
    has_quantity = row.quantity is not None and row.quantity > 0
    if not (has_specs or has_identifier or has_quantity):
        return True
    if (row.type or "").strip().lower() in BARE_CATEGORY_NOUNS and not (has_specs or has_identifier):
        return True
    return False
