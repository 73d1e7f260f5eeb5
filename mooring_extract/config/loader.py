from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    DEFAULT_MANUFACTURERS,
    DEFAULT_SKIP_SHEET_PATTERNS,
    ComponentTableConfig,
    DatabaseConfig,
    ExtractConfig,
    ResolverConfig,
)
from ..models.position_group import PositionMapping

"""Config loader.

Responsibilities:
- Load the YAML config (default ``config/extract.yml``)
- Validate it against ``config_schema.json`` shipped with the package
- Apply defaults and build the typed ``ExtractConfig``
"""

__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "load_config",
    "parse_position_mappings",
]

DEFAULT_CONFIG_PATH = Path("config/extract.yml")
SCHEMA_PATH = Path(__file__).with_name("config_schema.json")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: If the schema file is missing or invalid, or the config
            data fails validation (missing required keys, wrong types,
            unknown keys).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def parse_position_mappings(entries: list[dict[str, Any]] | None) -> list[PositionMapping]:
    """Build PositionMapping objects from raw dicts (config or host supplied)."""
    mappings: list[PositionMapping] = []
    for entry in entries or []:
        mappings.append(
            PositionMapping(
                document_reference=str(entry["document_reference"]).strip(),
                internal_position_id=int(entry["internal_position_id"]),
                position_name=entry.get("position_name"),
                position_type=entry.get("position_type"),
            )
        )
    return mappings


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> ExtractConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config root must be a mapping")

    _validate_config_schema(data)

    resolver_raw = data.get("resolver", {})
    defaults = ResolverConfig()
    resolver = ResolverConfig(
        enabled=resolver_raw.get("enabled", defaults.enabled),
        model=resolver_raw.get("model", defaults.model),
        max_concurrency=resolver_raw.get("max_concurrency", defaults.max_concurrency),
        timeout_seconds=float(resolver_raw.get("timeout_seconds", defaults.timeout_seconds)),
    )

    db_raw = data.get("database", {})
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )

    table_raw = data.get("component_table")
    component_table = (
        ComponentTableConfig(table=table_raw["table"], columns=dict(table_raw["columns"]))
        if table_raw
        else None
    )

    catalog_raw = data.get("catalog")
    return ExtractConfig(
        source_directory=data["source_directory"],
        skip_sheet_patterns=tuple(
            p.lower() for p in data.get("skip_sheet_patterns", DEFAULT_SKIP_SHEET_PATTERNS)
        ),
        manufacturers=tuple(data.get("manufacturers", DEFAULT_MANUFACTURERS)),
        resolver=resolver,
        catalog_path=catalog_raw["path"] if catalog_raw else None,
        position_mappings=parse_position_mappings(data.get("position_mappings")),
        database=db,
        component_table=component_table,
    )
