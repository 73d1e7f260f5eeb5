from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path

from .position_group import PositionGroup

"""Processing result models.

SheetResult is produced by the pipeline for one sheet, FileResult by the
orchestrator for one workbook, ProcessingResult aggregates a whole run.
"""

__all__ = [
    "FileResult",
    "FileStatus",
    "ProcessingResult",
    "ResolutionStats",
    "SheetResult",
]


class FileStatus(Enum):
    """Status for one input file.

    State transitions: pending → processing → (success | failed)
    """
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class ResolutionStats:
    """Counters for ambiguity resolution within one sheet or run."""
    requested: int = 0  # rows that needed resolution
    external_calls: int = 0  # calls actually made to the resolver capability
    cache_hits: int = 0
    fallbacks: int = 0

    def __add__(self, other: ResolutionStats) -> ResolutionStats:
        return ResolutionStats(
            requested=self.requested + other.requested,
            external_calls=self.external_calls + other.external_calls,
            cache_hits=self.cache_hits + other.cache_hits,
            fallbacks=self.fallbacks + other.fallbacks,
        )


@dataclass(frozen=True)
class SheetResult:
    """Pipeline output for one sheet."""
    sheet_name: str
    groups: list[PositionGroup]
    total_rows: int = 0  # raw rows seen
    dropped_rows: int = 0  # header / noise / position-less rows
    resolution: ResolutionStats = field(default_factory=ResolutionStats)

    @property
    def component_count(self) -> int:
        return sum(len(g.components) for g in self.groups)


@dataclass(frozen=True)
class FileResult:
    """Processing context and outcome for one input file."""
    path: Path
    name: str
    status: FileStatus = FileStatus.PENDING
    sheets: list[SheetResult] = field(default_factory=list)
    skipped_sheets: list[str] = field(default_factory=list)
    start_time: datetime | None = None
    end_time: datetime | None = None
    error: str | None = None  # failure reason summary

    @property
    def groups(self) -> list[PositionGroup]:
        return [g for s in self.sheets for g in s.groups]

    @property
    def component_count(self) -> int:
        return sum(s.component_count for s in self.sheets)

    @property
    def elapsed_seconds(self) -> float:
        if self.start_time is None or self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()


@dataclass(frozen=True)
class ProcessingResult:
    """Aggregated result of one run. ``errors`` is the user-visible summary list."""
    files: list[FileResult]
    start_time: datetime
    end_time: datetime
    resolution: ResolutionStats = field(default_factory=ResolutionStats)
    errors: list[str] = field(default_factory=list)

    @property
    def success_files(self) -> int:
        return sum(1 for f in self.files if f.status == FileStatus.SUCCESS)

    @property
    def failed_files(self) -> int:
        return sum(1 for f in self.files if f.status == FileStatus.FAILED)

    @property
    def groups(self) -> list[PositionGroup]:
        return [g for f in self.files for g in f.groups]

    @property
    def total_positions(self) -> int:
        return len(self.groups)

    @property
    def total_components(self) -> int:
        return sum(f.component_count for f in self.files)

    @property
    def catalog_matches(self) -> int:
        return sum(
            1
            for g in self.groups
            for c in g.components
            if c.catalog_match is not None and c.catalog_match.matched
        )

    @property
    def elapsed_seconds(self) -> float:
        return (self.end_time - self.start_time).total_seconds()
