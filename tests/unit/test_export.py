from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

import pandas as pd

from mooring_extract.models.component import CatalogMatch, ComponentRecord, ComponentType, Specifications
from mooring_extract.models.position_group import PositionGroup, PositionType
from mooring_extract.models.processing_result import FileResult, FileStatus, ProcessingResult, SheetResult
from mooring_extract.services.export import CSV_COLUMNS, component_row, result_document, write_csv, write_json


def _group() -> PositionGroup:
    anchor = ComponentRecord(
        sequence=1,
        component_type=ComponentType.ANCHOR,
        raw_description="Ploganker Softanker 1700 kg",
        raw_type="Ploganker",
        subtype="Softanker 1700 kg",
        manufacturer="AQS TOR",
        part_number="606616",
        specifications=Specifications(weight_kg=1700.0),
        catalog_match=CatalogMatch("P-1700", 0.95, "exact"),
        source_row=3,
    )
    return PositionGroup(
        "H01A", PositionType.MOORING_LINE, "Fortøyning", [anchor], internal_position_id=101, mapping_found=True
    )


def _result(groups) -> ProcessingResult:
    now = datetime.now(UTC)
    ok = FileResult(Path("anlegg.xlsx"), "anlegg.xlsx", FileStatus.SUCCESS, sheets=[SheetResult("Fortøyning", groups)])
    bad = FileResult(Path("notat.pdf"), "notat.pdf", FileStatus.FAILED, error="unsupported file type: .pdf")
    return ProcessingResult(files=[ok, bad], start_time=now, end_time=now, errors=["notat.pdf: unsupported file type: .pdf"])


def test_component_row_flattens_group_context():
    group = _group()
    row = component_row(group, group.components[0], "anlegg.xlsx")
    assert tuple(row) == CSV_COLUMNS
    assert row["source_file"] == "anlegg.xlsx"
    assert row["document_reference"] == "H01A"
    assert row["position_type"] == "mooring_line"
    assert row["internal_position_id"] == 101
    assert row["component_type"] == "anchor"
    assert row["weight_kg"] == 1700.0
    assert row["length_m"] is None
    assert row["resolution"] == "deterministic"
    assert row["matched_product_id"] == "P-1700"
    assert row["match_confidence"] == 0.95


def test_result_document():
    doc = result_document(_result([_group()]))
    assert [f["name"] for f in doc["files"]] == ["anlegg.xlsx", "notat.pdf"]
    assert doc["files"][0]["positions"] == 1
    assert doc["files"][1]["status"] == "failed"
    [group] = doc["position_groups"]
    assert group["source_file"] == "anlegg.xlsx"
    assert group["components"][0]["specifications"]["weight_kg"] == 1700.0
    assert group["components"][0]["catalog_match"]["matched_product_id"] == "P-1700"
    assert doc["errors"] == ["notat.pdf: unsupported file type: .pdf"]


def test_write_json(tmp_path: Path):
    path = write_json(_result([_group()]), tmp_path / "out" / "result.json")
    doc = json.loads(path.read_text(encoding="utf-8"))
    assert doc["position_groups"][0]["source_sheet"] == "Fortøyning"


def test_write_csv(tmp_path: Path):
    path = write_csv(_result([_group()]), tmp_path / "components.csv")
    df = pd.read_csv(path, dtype=str)
    assert list(df.columns) == list(CSV_COLUMNS)
    assert len(df) == 1
    assert df.loc[0, "part_number"] == "606616"


def test_write_csv_empty_has_header(tmp_path: Path):
    path = write_csv(_result([]), tmp_path / "components.csv")
    assert path.read_text(encoding="utf-8").strip() == ",".join(CSV_COLUMNS)
