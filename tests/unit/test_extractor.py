from __future__ import annotations

import pytest

from mooring_extract.models.component import ComponentType, Specifications
from mooring_extract.models.row_data import NormalizedRow
from mooring_extract.services.extractor import (
    FieldExtractor,
    classify_component_type,
    classify_identifier,
    extract_specifications,
    has_spec_token,
)


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Ploganker", ComponentType.ANCHOR),
        ("Bøyesjakkel", ComponentType.SHACKLE),
        ("Ankerkjetting", ComponentType.CHAIN),
        ("Koblingsplate", ComponentType.CONNECTOR),
        ("Tau 40mm", ComponentType.ROPE),
        ("Svivel", ComponentType.SWIVEL),
        ("Lodd 500 kg", ComponentType.SINKER),
        ("Kause", ComponentType.THIMBLE),
        ("Flyteelement", ComponentType.UNKNOWN),
        ("", ComponentType.UNKNOWN),
        (None, ComponentType.UNKNOWN),
    ],
)
def test_classify_component_type(text, expected):
    assert classify_component_type(text) is expected


def test_extract_specifications_weight():
    assert extract_specifications("Softanker 1700 kg") == Specifications(weight_kg=1700.0)


def test_extract_specifications_capacity():
    assert extract_specifications("Sjakkel 90T") == Specifications(capacity_t=90.0)


def test_extract_specifications_chain_with_decimal_comma():
    specs = extract_specifications("Kjetting 30mm - 27,5m")
    assert specs.diameter_mm == 30.0
    assert specs.length_m == 27.5
    assert specs.weight_kg is None
    assert specs.capacity_t is None


def test_extract_specifications_rope():
    specs = extract_specifications("Tau 40mm 220 m")
    assert specs == Specifications(length_m=220.0, diameter_mm=40.0)


def test_extract_specifications_empty():
    assert extract_specifications(None).is_empty
    assert extract_specifications("Flyteelement").is_empty
    assert has_spec_token("Flyteelement") is False
    assert has_spec_token("Bøye 2,5 t") is True


@pytest.mark.parametrize(
    "token,expected",
    [
        ("606616", (None, "606616")),
        ("606616-2", (None, "606616-2")),
        ("GAP-GBA", ("GAP-GBA", None)),
        ("G1463", ("G1463", None)),
        ("12T", (None, None)),
        ("20MIN", (None, None)),
        ("123", (None, None)),
        ("12-3", (None, None)),
        ("  ", (None, None)),
        (None, (None, None)),
    ],
)
def test_classify_identifier(token, expected):
    assert classify_identifier(token) == expected


class TestFieldExtractor:
    """Manufacturer matching and full row extraction."""

    def test_installer_is_canonicalised(self):
        extractor = FieldExtractor()
        assert extractor.match_manufacturer("aqs tor") == "AQS TOR"

    def test_unknown_installer_is_kept_verbatim(self):
        extractor = FieldExtractor()
        assert extractor.match_manufacturer(" Ukjent Leverandør AS ") == "Ukjent Leverandør AS"

    def test_manufacturer_found_in_description(self):
        extractor = FieldExtractor()
        assert extractor.match_manufacturer(None, "Bøye fra Sabik 500 kg") == "Sabik"
        assert extractor.match_manufacturer(None, "Aqua Supporter flyter") == "Aqua Supporter"

    def test_description_match_respects_word_boundaries(self):
        extractor = FieldExtractor()
        assert extractor.match_manufacturer(None, "Sabikbøye") is None
        assert extractor.match_manufacturer(None, None) is None

    def test_custom_allow_list(self):
        extractor = FieldExtractor(["Egen Leverandør"])
        assert extractor.match_manufacturer(None, "sjakkel egen leverandør 17t") == "Egen Leverandør"
        assert extractor.match_manufacturer(None, "Sabik bøye") is None

    def test_extract_anchor_row(self):
        row = NormalizedRow(
            position="H01A",
            sequence="1",
            type="Ploganker",
            subtype="Softanker 1700 kg",
            identifier="606616",
            tracking="12T",
            installer="AQS TOR",
        )
        extraction = FieldExtractor().extract(row)
        assert extraction.component_type is ComponentType.ANCHOR
        assert extraction.part_number == "606616"
        assert extraction.tracking_number == "12T"
        assert extraction.manufacturer == "AQS TOR"
        assert extraction.specifications.weight_kg == 1700.0
        assert extraction.raw_text == "Ploganker Softanker 1700 kg"
        assert extraction.raw_type == "Ploganker"
        assert extraction.manufacturer_field == "AQS TOR"

    def test_extract_shackle_row_with_tracking_identifier(self):
        row = NormalizedRow(position="H01A", sequence="2", type="Sjakkel", subtype="Sjakkel 90T", identifier="GAP-GBA")
        extraction = FieldExtractor().extract(row)
        assert extraction.component_type is ComponentType.SHACKLE
        assert extraction.tracking_number == "GAP-GBA"
        assert extraction.part_number is None
        assert extraction.manufacturer is None
        assert extraction.specifications.capacity_t == 90.0

    def test_type_falls_back_to_combined_text(self):
        row = NormalizedRow(position="K1", type="Komponent X", subtype="Svivel 20t")
        assert FieldExtractor().extract(row).component_type is ComponentType.SWIVEL
