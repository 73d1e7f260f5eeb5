from __future__ import annotations

import pytest

from mooring_extract.models.row_data import NormalizedRow
from mooring_extract.services.header_filter import is_header_row


@pytest.mark.parametrize(
    "row",
    [
        NormalizedRow(position="H01A", type="1.2 Ploganker"),
        NormalizedRow(position="H01A", type="2. Kjetting", identifier="G1"),
        NormalizedRow(position="H01A", type="Fortøyningsline type 1.2", quantity=1),
        NormalizedRow(position="H01A", type="Bunnfortøyning", subtype="Ramme 80 m"),
        NormalizedRow(position="H01A", type="Type", subtype="Beskrivelse"),
        NormalizedRow(position="H01A", type="Anchor point A1", identifier="A1"),
        NormalizedRow(position="H01A"),
        NormalizedRow(position="H01A", type="Softanker"),
        NormalizedRow(position="H01A", type="Kjetting", quantity=2),
    ],
    ids=[
        "category-number",
        "category-number-dot",
        "section-keyword",
        "bottom-mooring",
        "column-labels",
        "english-anchor",
        "empty",
        "no-facts",
        "bare-noun-with-quantity",
    ],
)
def test_header_rows_are_detected(row):
    assert is_header_row(row) is True


@pytest.mark.parametrize(
    "row",
    [
        NormalizedRow(position="H01A", type="Sjakkel", subtype="Sjakkel 90T", identifier="GAP-GBA"),
        NormalizedRow(position="H01A", type="Ploganker", subtype="Softanker 1700 kg", identifier="606616"),
        NormalizedRow(position="H01A", type="30 mm kjetting", identifier="G1463"),
        NormalizedRow(position="B1", type="Bøye", identifier="B-77"),
        NormalizedRow(position="S1", type="Tau 40mm"),
        NormalizedRow(position="S1", type="Trosse", subtype="Polysteel", quantity=3),
    ],
    ids=["spec-and-tracking", "anchor-with-part", "unit-is-not-category", "bare-noun-with-id", "spec-only", "quantity-only"],
)
def test_component_rows_are_kept(row):
    assert is_header_row(row) is False


def test_category_pattern_needs_a_word():
    """A leading measurement is not a section number."""
    row = NormalizedRow(position="H01A", type="40 t sjakkel")
    assert is_header_row(row) is False


def test_mooring_line_label_without_facts_is_header():
    row = NormalizedRow(position="H01A", type="Fortøyningsline type 1.2", quantity=0)
    assert is_header_row(row) is True


def test_row_without_measurable_fact_is_header():
    """No keyword or category number: only the missing facts make it a header."""
    row = NormalizedRow(position="H01A", type="Ramme type 1.2", quantity=0)
    assert is_header_row(row) is True
    assert is_header_row(NormalizedRow(position="H01A", type="Ramme type 1.2", quantity=1)) is False


def test_capacity_alone_keeps_shackle():
    row = NormalizedRow(position="H01A", type="Sjakkel", subtype="Sjakkel 90T")
    assert is_header_row(row) is False
