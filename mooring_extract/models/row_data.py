from __future__ import annotations

from dataclasses import dataclass
from typing import Any

"""Row models for the extraction pipeline.

RawRow is the spreadsheet reader's output (column name -> cell value).
NormalizedRow is the fixed-shape record produced from it by header matching.
"""

__all__ = [
    "NormalizedRow",
    "RawRow",
]

RawRow = dict[str, Any]


@dataclass(frozen=True)
class NormalizedRow:
    """Logical representation of one spreadsheet row after header matching.

    Every field is independently optional. Absence is ``None``, never an empty
    or sentinel string.
    """
    position: str | None = None
    sequence: str | None = None
    type: str | None = None
    subtype: str | None = None
    identifier: str | None = None
    tracking: str | None = None  # explicit tracking / serial column
    installer: str | None = None
    install_date: str | None = None
    quantity: float | None = None
    row_number: int | None = None  # 1-based Excel row

    @property
    def combined_text(self) -> str:
        """``type subtype`` joined and trimmed; used by filter and extractor."""
        return " ".join(p for p in (self.type, self.subtype) if p).strip()
