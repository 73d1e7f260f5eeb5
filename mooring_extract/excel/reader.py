from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pandas as pd

from ..services.normalizer import resolve_columns

"""Excel reader.

Workbooks are read raw (``header=None``). Mooring documents carry title rows
above the table, so the header row is detected: the first row within
``HEADER_SCAN_ROWS`` whose cells resolve to both a position and a type column.
Rows below it become RawRow dicts; entirely empty rows are skipped.
"""

__all__ = [
    "HEADER_SCAN_ROWS",
    "SheetData",
    "SheetHeaderError",
    "find_header_row",
    "normalize_sheet",
    "read_excel_file",
]

HEADER_SCAN_ROWS = 10


class SheetHeaderError(Exception):
    """Raised when no header row with position and type columns is found."""


@dataclass
class SheetData:
    sheet_name: str
    columns: list[str]
    rows: list[dict[str, Any]]  # column name -> cell value
    row_numbers: list[int] = field(default_factory=list)  # 1-based Excel row per entry of rows
    header_row: int = 1


def read_excel_file(path: Path, target_sheets: Iterable[str] | None = None) -> dict[str, pd.DataFrame]:
    """Read an Excel file returning raw DataFrames keyed by sheet name.

    ``target_sheets`` limits which sheets are parsed (None = all sheets).
    """
    wanted = set(target_sheets) if target_sheets is not None else None
    dfs: dict[str, pd.DataFrame] = {}
    with pd.ExcelFile(path) as xls:
        for name in xls.sheet_names:
            if wanted is not None and str(name) not in wanted:
                continue
            dfs[str(name)] = xls.parse(name, header=None)
    return dfs


def _header_labels(values: list[Any]) -> list[str]:
    labels: list[str] = []
    seen: dict[str, int] = {}
    for idx, value in enumerate(values):
        label = "" if value is None or (not isinstance(value, str) and pd.isna(value)) else str(value).strip()
        if not label:
            label = f"column_{idx + 1}"
        count = seen.get(label, 0)
        seen[label] = count + 1
        if count:
            label = f"{label}_{count + 1}"
        labels.append(label)
    return labels


def find_header_row(df: pd.DataFrame, scan_rows: int = HEADER_SCAN_ROWS) -> int | None:
    """Index of the first row resolving to position + type columns, else None."""
    for idx in range(min(scan_rows, df.shape[0])):
        resolved = resolve_columns(_header_labels(df.iloc[idx].tolist()))
        if "position" in resolved and "type" in resolved:
            return idx
    return None


def normalize_sheet(df: pd.DataFrame, sheet_name: str) -> SheetData:
    """Detect the header row and turn the rows below it into RawRow dicts.

    Raises:
        SheetHeaderError: no header row within the scanned range.
    """
    header_idx = find_header_row(df)
    if header_idx is None:
        raise SheetHeaderError(
            f"sheet '{sheet_name}' has no header row with position and type columns "
            f"in the first {HEADER_SCAN_ROWS} rows"
        )
    columns = _header_labels(df.iloc[header_idx].tolist())

    rows: list[dict[str, Any]] = []
    row_numbers: list[int] = []
    for offset, (_, raw) in enumerate(df.iloc[header_idx + 1:].iterrows()):
        if raw.isna().all():
            continue
        values = [None if pd.isna(v) else v for v in raw.tolist()]
        rows.append(dict(zip(columns, values, strict=False)))
        row_numbers.append(header_idx + offset + 2)

    return SheetData(
        sheet_name=sheet_name,
        columns=columns,
        rows=rows,
        row_numbers=row_numbers,
        header_row=header_idx + 1,
    )
