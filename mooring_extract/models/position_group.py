from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .component import ComponentRecord

"""PositionGroup and PositionMapping models.

A PositionGroup owns the ordered components for one document position reference
(e.g. "H01A") within one sheet. PositionMapping is supplied by the host to tie a
document reference to an internal database position.
"""

__all__ = [
    "PositionGroup",
    "PositionMapping",
    "PositionType",
    "classify_position_type",
]


class PositionType(Enum):
    """Position kind derived from the document reference prefix."""
    MOORING_LINE = "mooring_line"
    CONNECTION_POINT = "connection_point"
    SIDE_LINE = "side_line"
    FRAME_LINE = "frame_line"
    ANCHOR_POINT = "anchor_point"
    BUOY = "buoy"
    CAGE = "cage"
    UNKNOWN = "unknown"


_PREFIX_TYPES: tuple[tuple[re.Pattern[str], PositionType], ...] = (
    (re.compile(r"^H\d", re.IGNORECASE), PositionType.MOORING_LINE),
    (re.compile(r"^K\d", re.IGNORECASE), PositionType.CONNECTION_POINT),
    (re.compile(r"^S\d", re.IGNORECASE), PositionType.SIDE_LINE),
    (re.compile(r"^R\d", re.IGNORECASE), PositionType.FRAME_LINE),
    (re.compile(r"^A\d", re.IGNORECASE), PositionType.ANCHOR_POINT),
    (re.compile(r"^B\d", re.IGNORECASE), PositionType.BUOY),
    (re.compile(r"bur", re.IGNORECASE), PositionType.CAGE),
)


def classify_position_type(reference: str | None) -> PositionType:
    """Classify a document reference such as ``H01A`` by its prefix."""
    text = (reference or "").strip()
    for pattern, ptype in _PREFIX_TYPES:
        if pattern.search(text):
            return ptype
    return PositionType.UNKNOWN


@dataclass(frozen=True)
class PositionMapping:
    """Document reference -> internal position id (external input)."""
    document_reference: str
    internal_position_id: int
    position_name: str | None = None
    position_type: str | None = None


@dataclass(frozen=True)
class PositionGroup:
    """Ordered components for one position reference.

    ``components`` is sorted ascending by sequence with missing sequences last.
    Only the position-mapping and catalog stages add annotation afterwards, and
    they do so by replacing the group.
    """
    document_reference: str
    position_type: PositionType
    source_sheet: str
    components: list[ComponentRecord] = field(default_factory=list)
    internal_position_id: int | None = None
    position_name: str | None = None
    mapping_found: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "document_reference": self.document_reference,
            "position_type": self.position_type.value,
            "source_sheet": self.source_sheet,
            "internal_position_id": self.internal_position_id,
            "position_name": self.position_name,
            "mapping_found": self.mapping_found,
            "components": [c.to_dict() for c in self.components],
        }
