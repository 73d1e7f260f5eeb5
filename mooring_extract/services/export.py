from __future__ import annotations

import json
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import pandas as pd

from ..models.component import ComponentRecord
from ..models.position_group import PositionGroup
from ..models.processing_result import ProcessingResult

"""Result export: JSON document and flat CSV (one row per component)."""

__all__ = [
    "CSV_COLUMNS",
    "component_row",
    "iter_component_rows",
    "result_document",
    "write_csv",
    "write_json",
]

CSV_COLUMNS: tuple[str, ...] = (
    "source_file",
    "source_sheet",
    "document_reference",
    "position_type",
    "internal_position_id",
    "mapping_found",
    "sequence",
    "component_type",
    "raw_type",
    "subtype",
    "raw_description",
    "manufacturer",
    "manufacturer_inherited",
    "tracking_number",
    "part_number",
    "weight_kg",
    "length_m",
    "diameter_mm",
    "capacity_t",
    "install_date",
    "quantity",
    "confidence",
    "resolution",
    "matched_product_id",
    "match_confidence",
    "source_row",
)


def component_row(group: PositionGroup, component: ComponentRecord, source_file: str = "") -> dict[str, Any]:
    """Flatten one component with its group context (CSV and DB rows)."""
    specs = component.specifications
    match = component.catalog_match
    return {
        "source_file": source_file,
        "source_sheet": group.source_sheet,
        "document_reference": group.document_reference,
        "position_type": group.position_type.value,
        "internal_position_id": group.internal_position_id,
        "mapping_found": group.mapping_found,
        "sequence": component.sequence,
        "component_type": component.component_type.value,
        "raw_type": component.raw_type,
        "subtype": component.subtype,
        "raw_description": component.raw_description,
        "manufacturer": component.manufacturer,
        "manufacturer_inherited": component.manufacturer_inherited,
        "tracking_number": component.tracking_number,
        "part_number": component.part_number,
        "weight_kg": specs.weight_kg,
        "length_m": specs.length_m,
        "diameter_mm": specs.diameter_mm,
        "capacity_t": specs.capacity_t,
        "install_date": component.install_date,
        "quantity": component.quantity,
        "confidence": component.confidence,
        "resolution": component.resolution.value,
        "matched_product_id": match.matched_product_id if match else None,
        "match_confidence": match.confidence if match else None,
        "source_row": component.source_row,
    }


def iter_component_rows(result: ProcessingResult) -> Iterable[dict[str, Any]]:
    for file in result.files:
        for group in file.groups:
            for component in group.components:
                yield component_row(group, component, file.name)


def result_document(result: ProcessingResult) -> dict[str, Any]:
    return {
        "files": [
            {
                "name": f.name,
                "status": f.status.value,
                "error": f.error,
                "sheets": [s.sheet_name for s in f.sheets],
                "skipped_sheets": list(f.skipped_sheets),
                "positions": len(f.groups),
                "components": f.component_count,
            }
            for f in result.files
        ],
        "position_groups": [
            {"source_file": f.name, **g.to_dict()} for f in result.files for g in f.groups
        ],
        "errors": list(result.errors),
    }


def write_json(result: ProcessingResult, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(result_document(result), ensure_ascii=False, indent=2), encoding="utf-8")
    return path


def write_csv(result: ProcessingResult, path: Path) -> Path:
    """One row per component; header is written even for an empty result."""
    path.parent.mkdir(parents=True, exist_ok=True)
    df = pd.DataFrame(list(iter_component_rows(result)), columns=list(CSV_COLUMNS))
    df.to_csv(path, index=False, encoding="utf-8")
    return path
