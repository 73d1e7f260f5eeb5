from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace

from ..models.position_group import PositionGroup, PositionMapping

"""Annotate position groups with host-supplied internal position ids.

Mappings never alter extraction: they only set ``internal_position_id``,
``position_name`` and ``mapping_found`` on a replaced group.
"""

__all__ = ["annotate_groups"]

logger = logging.getLogger(__name__)


def annotate_groups(
    groups: Iterable[PositionGroup],
    mappings: Iterable[PositionMapping] | None,
) -> list[PositionGroup]:
    """Match groups to mappings by document reference (case-insensitive, trimmed)."""
    lookup: dict[str, PositionMapping] = {}
    for mapping in mappings or []:
        key = mapping.document_reference.strip().lower()
        if key in lookup:
            logger.warning("duplicate position mapping for %s; keeping the first", mapping.document_reference)
            continue
        lookup[key] = mapping

    annotated: list[PositionGroup] = []
    for group in groups:
        mapping = lookup.get(group.document_reference.strip().lower())
        if mapping is None:
            annotated.append(replace(group, internal_position_id=None, position_name=None, mapping_found=False))
            continue
        annotated.append(
            replace(
                group,
                internal_position_id=mapping.internal_position_id,
                position_name=mapping.position_name,
                mapping_found=True,
            )
        )
    return annotated
