from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import replace

from ..models.component import ComponentRecord
from ..models.position_group import PositionGroup, classify_position_type
from ..models.row_data import NormalizedRow
from .extractor import Extraction, FieldExtractor
from .header_filter import is_header_row
from .normalizer import parse_number

"""Position grouper & sequencer.

Rows are bucketed by trimmed position reference in first-appearance order,
header/noise rows and rows without a reference are dropped, and each bucket is
sorted by numeric sequence (missing or unparsable last, ties keep input order).

Manufacturer inheritance runs once per finalized group: documents record the
manufacturer on the first component of a line and leave it implied below.
"""

__all__ = [
    "build_component",
    "finalize_group",
    "group",
    "group_rows",
    "has_preceding_manufacturer",
    "inherit_manufacturers",
    "sequence_sort_key",
]

logger = logging.getLogger(__name__)


def sequence_sort_key(value: str | float | None) -> float:
    """Numeric sort key for a sequence cell; anything unparsable is +inf."""
    number = parse_number(value)
    if number is None or not math.isfinite(number):
        return math.inf
    return number


def _sequence_int(value: str | None) -> int | None:
    key = sequence_sort_key(value)
    return None if math.isinf(key) else int(key)


def group_rows(rows: Iterable[NormalizedRow]) -> dict[str, list[NormalizedRow]]:
    """Bucket component rows by position reference, each bucket sorted by sequence.

    Header rows and rows without a position reference are dropped (debug log
    only, never an error).
    """
    buckets: dict[str, list[NormalizedRow]] = {}
    for row in rows:
        reference = (row.position or "").strip()
        if not reference:
            logger.debug("row=%s dropped: no position reference", row.row_number)
            continue
        if is_header_row(row):
            logger.debug("row=%s dropped: header/noise text=%r", row.row_number, row.combined_text)
            continue
        buckets.setdefault(reference, []).append(row)

    # sorted() is stable, so ties keep their input order
    return {ref: sorted(bucket, key=lambda r: sequence_sort_key(r.sequence)) for ref, bucket in buckets.items()}


def has_preceding_manufacturer(manufacturers: Sequence[str | None]) -> list[bool]:
    """For each position, whether an earlier entry carries a manufacturer."""
    flags: list[bool] = []
    seen = False
    for name in manufacturers:
        flags.append(seen)
        if name:
            seen = True
    return flags


def inherit_manufacturers(components: Sequence[ComponentRecord]) -> list[ComponentRecord]:
    """Copy the nearest preceding non-empty manufacturer into empty slots.

    ``components`` must already be in sequence order. Inherited records are
    flagged with ``manufacturer_inherited``.
    """
    result: list[ComponentRecord] = []
    carried: str | None = None
    for component in components:
        if component.manufacturer:
            carried = component.manufacturer
            result.append(component)
        elif carried is not None:
            result.append(replace(component, manufacturer=carried, manufacturer_inherited=True))
        else:
            result.append(component)
    return result


def build_component(row: NormalizedRow, extraction: Extraction) -> ComponentRecord:
    """Deterministic ComponentRecord for one row (confidence 1.0)."""
    quantity = row.quantity if row.quantity is not None and row.quantity > 0 else 1
    return ComponentRecord(
        sequence=_sequence_int(row.sequence),
        component_type=extraction.component_type,
        raw_description=extraction.raw_text,
        raw_type=extraction.raw_type,
        subtype=row.subtype,
        manufacturer=extraction.manufacturer,
        tracking_number=extraction.tracking_number,
        part_number=extraction.part_number,
        specifications=extraction.specifications,
        install_date=row.install_date,
        quantity=quantity,
        source_row=row.row_number,
    )


def finalize_group(reference: str, sheet: str, components: Sequence[ComponentRecord]) -> PositionGroup:
    """Apply manufacturer inheritance and build the immutable PositionGroup."""
    finalized = inherit_manufacturers(components)
    inherited = sum(1 for c in finalized if c.manufacturer_inherited)
    if inherited:
        logger.debug("position=%s inherited manufacturer on %d component(s)", reference, inherited)
    return PositionGroup(
        document_reference=reference,
        position_type=classify_position_type(reference),
        source_sheet=sheet,
        components=finalized,
    )


def group(
    rows: Iterable[NormalizedRow],
    sheet: str = "",
    extractor: FieldExtractor | None = None,
) -> dict[str, PositionGroup]:
    """Deterministic grouping without ambiguity resolution.

    Used directly when no resolver is configured; the async pipeline uses
    ``group_rows`` and ``finalize_group`` with resolution in between.
    """
    extractor = extractor or FieldExtractor()
    groups: dict[str, PositionGroup] = {}
    for reference, bucket in group_rows(rows).items():
        components = [build_component(row, extractor.extract(row)) for row in bucket]
        groups[reference] = finalize_group(reference, sheet, components)
    return groups
