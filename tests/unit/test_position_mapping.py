from __future__ import annotations

import logging

from mooring_extract.models.position_group import (
    PositionGroup,
    PositionMapping,
    PositionType,
    classify_position_type,
)
from mooring_extract.services.position_mapping import annotate_groups


def _group(reference):
    return PositionGroup(
        document_reference=reference,
        position_type=classify_position_type(reference),
        source_sheet="Fortøyning",
    )


def test_mapped_group_is_annotated():
    mappings = [PositionMapping("H01A", 101, position_name="Mooring Line 1")]
    [group] = annotate_groups([_group("H01A")], mappings)
    assert group.internal_position_id == 101
    assert group.position_name == "Mooring Line 1"
    assert group.mapping_found is True


def test_match_is_case_insensitive_and_trimmed():
    [group] = annotate_groups([_group("h01a")], [PositionMapping(" H01A ", 101)])
    assert group.mapping_found is True
    assert group.document_reference == "h01a"


def test_unmapped_group_is_flagged():
    groups = annotate_groups([_group("H01A"), _group("K3")], [PositionMapping("H01A", 101)])
    assert [g.mapping_found for g in groups] == [True, False]
    assert groups[1].internal_position_id is None


def test_no_mappings():
    [group] = annotate_groups([_group("H01A")], None)
    assert group.mapping_found is False


def test_duplicate_mapping_keeps_first(caplog):
    mappings = [PositionMapping("H01A", 101), PositionMapping("h01a", 202)]
    with caplog.at_level(logging.WARNING, logger="mooring_extract"):
        [group] = annotate_groups([_group("H01A")], mappings)
    assert group.internal_position_id == 101
    assert "duplicate position mapping" in caplog.text


def test_classify_position_type():
    assert classify_position_type("H01A") is PositionType.MOORING_LINE
    assert classify_position_type("k12") is PositionType.CONNECTION_POINT
    assert classify_position_type("S3") is PositionType.SIDE_LINE
    assert classify_position_type("R2") is PositionType.FRAME_LINE
    assert classify_position_type("A7") is PositionType.ANCHOR_POINT
    assert classify_position_type("B1") is PositionType.BUOY
    assert classify_position_type("Bur 4") is PositionType.CAGE
    assert classify_position_type("X") is PositionType.UNKNOWN
    assert classify_position_type(None) is PositionType.UNKNOWN
