"""Domain models for the mooring extraction tool.

This package contains the row, component, position and result models used
throughout the pipeline, plus the typed configuration objects.
"""

from .component import CatalogMatch, ComponentRecord, ComponentType, ResolutionStatus, Specifications
from .config_models import ComponentTableConfig, DatabaseConfig, ExtractConfig, ResolverConfig
from .position_group import PositionGroup, PositionMapping, PositionType, classify_position_type
from .processing_result import FileResult, FileStatus, ProcessingResult, ResolutionStats, SheetResult
from .row_data import NormalizedRow, RawRow

__all__ = [
    # Configuration models
    "ComponentTableConfig",
    "DatabaseConfig",
    "ExtractConfig",
    "ResolverConfig",
    # Row / component models
    "CatalogMatch",
    "ComponentRecord",
    "ComponentType",
    "NormalizedRow",
    "RawRow",
    "ResolutionStatus",
    "Specifications",
    # Position models
    "PositionGroup",
    "PositionMapping",
    "PositionType",
    "classify_position_type",
    # Results
    "FileResult",
    "FileStatus",
    "ProcessingResult",
    "ResolutionStats",
    "SheetResult",
]
