from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

import psycopg2
from psycopg2.extras import execute_values

from ..models.config_models import ComponentTableConfig, DatabaseConfig
from ..models.processing_result import ProcessingResult
from ..services.export import CSV_COLUMNS, component_row

"""Optional component persistence.

Finalized components of mapped position groups are inserted with
``psycopg2.extras.execute_values`` into the table and columns named in the
``component_table`` config section. Groups without an internal position id are
skipped with a warning. The whole run is one transaction.

Connection precedence: ``DATABASE_URL`` / ``PGDSN``, then ``PG*`` variables,
then the ``database`` config section.
"""

__all__ = [
    "ComponentWriteError",
    "WriteResult",
    "build_dsn",
    "db_connection",
    "write_components",
]

logger = logging.getLogger(__name__)


class ComponentWriteError(Exception):
    pass


@dataclass(frozen=True)
class WriteResult:
    inserted_rows: int
    skipped_groups: list[str]


def build_dsn(db_cfg: DatabaseConfig) -> str:
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def db_connection(db_cfg: DatabaseConfig) -> Iterator[Any]:  # pragma: no cover (thin wrapper)
    """Yield a cursor; commit on clean exit, roll back on error."""
    conn = psycopg2.connect(build_dsn(db_cfg))
    try:
        with conn:
            with conn.cursor() as cur:
                yield cur
    finally:
        conn.close()


def write_components(
    cursor: Any,
    table_cfg: ComponentTableConfig,
    result: ProcessingResult,
    page_size: int = 1000,
) -> WriteResult:
    """Insert components of mapped groups; returns inserted count and skipped references.

    Raises:
        ComponentWriteError: unknown field names in the column mapping, or the
            insert itself failed.
    """
    fields = list(table_cfg.columns)
    unknown = [f for f in fields if f not in CSV_COLUMNS]
    if unknown:
        raise ComponentWriteError(f"unknown component fields in column mapping: {unknown}")
    columns = [table_cfg.columns[f] for f in fields]

    rows: list[list[Any]] = []
    skipped: list[str] = []
    for file in result.files:
        for group in file.groups:
            if not group.mapping_found:
                skipped.append(group.document_reference)
                continue
            for component in group.components:
                flat = component_row(group, component, file.name)
                rows.append([flat[f] for f in fields])

    for reference in skipped:
        logger.warning("position=%s has no internal position mapping; not written", reference)

    if not rows:
        return WriteResult(inserted_rows=0, skipped_groups=skipped)

    cols_sql = ",".join(f'"{c}"' for c in columns)
    sql = f"INSERT INTO {table_cfg.table} ({cols_sql}) VALUES %s"
    try:
        execute_values(cursor, sql, rows, page_size=page_size)
    except psycopg2.Error as e:
        raise ComponentWriteError(str(e)) from e

    logger.info("table=%s inserted_rows=%d skipped_groups=%d", table_cfg.table, len(rows), len(skipped))
    return WriteResult(inserted_rows=len(rows), skipped_groups=skipped)
