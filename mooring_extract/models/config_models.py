from __future__ import annotations

from dataclasses import dataclass, field

from .position_group import PositionMapping

"""Config dataclasses for the mooring extraction tool.

The YAML loader in ``config.loader`` validates the raw document and builds
these objects; everything downstream only sees the typed form.
"""

DEFAULT_SKIP_SHEET_PATTERNS: tuple[str, ...] = (
    "not_flytekrage",
    "flytekrage",
    "bunnringsoppheng",
    "ekstra",
)

DEFAULT_MANUFACTURERS: tuple[str, ...] = (
    "AQS TOR",
    "Aqualine",
    "Aqua Supporter",
    "Sabik",
    "Scale AQ",
    "Mørenot",
    "Løvold",
    "FSV Group",
    "Frøy",
)


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection fallback; environment variables take precedence."""
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ResolverConfig:
    """Settings for the ambiguity resolver."""
    enabled: bool = True
    model: str = "gpt-4o-mini"
    max_concurrency: int = 10  # fan-out limit per batch
    timeout_seconds: float = 30.0  # per call; timeout degrades one row to fallback


@dataclass(frozen=True)
class ComponentTableConfig:
    """Target table for optional component persistence.

    ``columns`` maps output field name -> table column name. Field names are the
    keys produced by ``services.export.component_row``.
    """
    table: str
    columns: dict[str, str]


@dataclass(frozen=True)
class ExtractConfig:
    """Root configuration for one extraction run."""
    source_directory: str
    skip_sheet_patterns: tuple[str, ...] = DEFAULT_SKIP_SHEET_PATTERNS
    manufacturers: tuple[str, ...] = DEFAULT_MANUFACTURERS
    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    catalog_path: str | None = None
    position_mappings: list[PositionMapping] = field(default_factory=list)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    component_table: ComponentTableConfig | None = None

    def should_skip_sheet(self, sheet_name: str) -> bool:
        name = (sheet_name or "").lower()
        return any(p in name for p in self.skip_sheet_patterns)
