from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from ..logging.error_log import ErrorLogBuffer
from ..models.component import ComponentRecord, ResolutionStatus
from ..models.config_models import DEFAULT_MANUFACTURERS, ExtractConfig
from ..models.processing_result import ResolutionStats, SheetResult
from ..models.row_data import NormalizedRow, RawRow
from .catalog import CatalogIndex, match_groups
from .extractor import FieldExtractor
from .grouper import build_component, finalize_group, group_rows, has_preceding_manufacturer
from .normalizer import normalize, resolve_columns
from .resolver import (
    AmbiguityResolver,
    ComponentResolver,
    ResolutionCache,
    ResolutionOutcome,
    ResolutionRequest,
    fallback_result,
    merge_resolution,
    needs_resolution,
)

"""Per-sheet extraction pipeline.

Raw → Normalized → Deterministically-Extracted →
{cache hit | external call | fallback} → Finalized (manufacturer inheritance)

Normalization, filtering and extraction are synchronous. The only await point
is the resolver batch for the sheet, which completes before any group is
finalized. Catalog matching, when a catalog is configured, annotates the
finalized groups.
"""

__all__ = [
    "ExtractionPipeline",
    "RESOLUTION_FALLBACK",
]

logger = logging.getLogger(__name__)

RESOLUTION_FALLBACK = "RESOLUTION_FALLBACK"


class ExtractionPipeline:
    """Turns the raw rows of one sheet into finalized position groups.

    Without a resolver, rows needing resolution keep their deterministic
    fields and are marked as fallbacks (confidence 0.5) without error records.
    """

    def __init__(
        self,
        resolver: ComponentResolver | None = None,
        *,
        catalog: CatalogIndex | None = None,
        manufacturers: Iterable[str] = DEFAULT_MANUFACTURERS,
        max_concurrency: int = 10,
        timeout_seconds: float | None = 30.0,
        cache: ResolutionCache | None = None,
        error_log: ErrorLogBuffer | None = None,
    ) -> None:
        self.extractor = FieldExtractor(manufacturers)
        self.catalog = catalog
        self.error_log = error_log
        self.cache = cache if cache is not None else ResolutionCache()
        self.resolver = (
            AmbiguityResolver(
                resolver,
                self.cache,
                max_concurrency=max_concurrency,
                timeout_seconds=timeout_seconds,
            )
            if resolver is not None
            else None
        )

    @classmethod
    def from_config(
        cls,
        config: ExtractConfig,
        resolver: ComponentResolver | None = None,
        catalog: CatalogIndex | None = None,
        error_log: ErrorLogBuffer | None = None,
    ) -> ExtractionPipeline:
        return cls(
            resolver if config.resolver.enabled else None,
            catalog=catalog,
            manufacturers=config.manufacturers,
            max_concurrency=config.resolver.max_concurrency,
            timeout_seconds=config.resolver.timeout_seconds,
            error_log=error_log,
        )

    def reset(self) -> None:
        """Start a new run (clears the resolution cache and call counter)."""
        if self.resolver is not None:
            self.resolver.reset()
        else:
            self.cache.reset()

    def normalize_rows(
        self,
        rows: Sequence[RawRow],
        row_numbers: Sequence[int] | None = None,
        columns: Mapping[str, str] | None = None,
    ) -> list[NormalizedRow]:
        if columns is None:
            headers: dict[Any, None] = {}
            for row in rows:
                headers.update(dict.fromkeys(row))
            columns = resolve_columns(headers)
        numbers: Sequence[int | None] = row_numbers if row_numbers is not None else [None] * len(rows)
        return [normalize(row, columns, num) for row, num in zip(rows, numbers, strict=True)]

    async def process_sheet(
        self,
        rows: Sequence[RawRow],
        sheet_name: str,
        *,
        file_name: str = "",
        row_numbers: Sequence[int] | None = None,
        columns: Mapping[str, str] | None = None,
    ) -> SheetResult:
        """Process one sheet's rows; never raises for resolver failures."""
        normalized = self.normalize_rows(rows, row_numbers, columns)
        buckets = group_rows(normalized)
        kept = sum(len(b) for b in buckets.values())

        components: dict[str, list[ComponentRecord]] = {}
        pending: list[tuple[str, int, bool]] = []
        requests: list[ResolutionRequest] = []
        for reference, bucket in buckets.items():
            extractions = [self.extractor.extract(row) for row in bucket]
            components[reference] = [build_component(r, e) for r, e in zip(bucket, extractions)]
            inheritable = has_preceding_manufacturer([e.manufacturer for e in extractions])
            for idx, (extraction, can_inherit) in enumerate(zip(extractions, inheritable)):
                if needs_resolution(extraction, can_inherit):
                    pending.append((reference, idx, can_inherit))
                    requests.append(ResolutionRequest.from_extraction(extraction))

        stats = await self._resolve(sheet_name, file_name, components, pending, requests)

        groups = [finalize_group(ref, sheet_name, comps) for ref, comps in components.items()]
        if self.catalog is not None:
            groups = match_groups(groups, self.catalog)

        logger.debug(
            "sheet=%s rows=%d kept=%d positions=%d resolution=%s",
            sheet_name,
            len(rows),
            kept,
            len(groups),
            stats,
        )
        return SheetResult(
            sheet_name=sheet_name,
            groups=groups,
            total_rows=len(rows),
            dropped_rows=len(rows) - kept,
            resolution=stats,
        )

    async def _resolve(
        self,
        sheet_name: str,
        file_name: str,
        components: dict[str, list[ComponentRecord]],
        pending: list[tuple[str, int, bool]],
        requests: list[ResolutionRequest],
    ) -> ResolutionStats:
        if not requests:
            return ResolutionStats()

        if self.resolver is None:
            outcomes = [
                ResolutionOutcome(result=fallback_result(r), status=ResolutionStatus.FALLBACK)
                for r in requests
            ]
            calls = 0
        else:
            before = self.resolver.external_calls
            outcomes = await self.resolver.resolve_batch(requests)
            calls = self.resolver.external_calls - before

        # write back by original index, not completion order
        for (reference, idx, can_inherit), outcome in zip(pending, outcomes, strict=True):
            merged = merge_resolution(components[reference][idx], outcome, inheritable=can_inherit)
            components[reference][idx] = merged
            if outcome.error is not None and self.error_log is not None:
                self.error_log.add(
                    file=file_name,
                    sheet=sheet_name,
                    row=merged.source_row if merged.source_row is not None else -1,
                    error_type=RESOLUTION_FALLBACK,
                    message=f"{outcome.error} (text={merged.raw_description!r})",
                )

        return ResolutionStats(
            requested=len(requests),
            external_calls=calls,
            cache_hits=sum(1 for o in outcomes if o.status is ResolutionStatus.CACHE_HIT),
            fallbacks=sum(1 for o in outcomes if o.status is ResolutionStatus.FALLBACK),
        )
