from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

import psycopg2
from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from ..db.component_writer import ComponentWriteError, db_connection, write_components
from ..excel.reader import SheetHeaderError, normalize_sheet, read_excel_file
from ..logging.init import log_summary, setup_logging
from ..models.config_models import ExtractConfig
from ..services.catalog import CatalogError, CatalogIndex, load_catalog
from ..services.export import write_csv, write_json
from ..services.openai_resolver import OpenAIComponentResolver
from ..services.orchestrator import ProcessingError, process_all, scan_source_files
from ..services.resolver import ComponentResolver
from ..services.summary import render_summary_line

"""CLI entrypoint.

Flow:
- Load ``.env`` and the YAML config
- Build the optional resolver (OpenAI) and catalog
- Process every workbook in the source directory
- Write JSON / CSV output, optionally insert components into PostgreSQL
- Print the SUMMARY line

Exit codes: 0 all files succeeded (or none found), 2 at least one file failed
or the database write failed, 1 fatal (config, directory, catalog).
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env with python-dotenv; its values win over the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="mooring-extract",
        description="Extract mooring components from aquaculture documentation workbooks",
    )
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config path")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--no-ai", action="store_true", help="Disable the ambiguity resolver")
    p.add_argument("--output", type=Path, help="Write position groups as JSON")
    p.add_argument("--csv", type=Path, help="Write one CSV row per component")
    p.add_argument("--write-db", action="store_true", help="Insert components of mapped positions")
    p.add_argument("--inspect-data", action="store_true", help="Print detected headers & first rows then exit")
    return p.parse_args(argv)


def _inspect_data(cfg: ExtractConfig) -> int:
    directory = Path(cfg.source_directory)
    files = [p for p in scan_source_files(directory) if p.suffix.lower() in (".xlsx", ".xlsm")]
    if not files:
        print("inspect: no workbooks")
        return EXIT_SUCCESS_ALL
    for f in files:
        print(f"FILE: {f.name}")
        try:
            raw = read_excel_file(f)
        except Exception as e:  # pragma: no cover
            print(f"  read_error: {e}")
            continue
        for sname, df in raw.items():
            if cfg.should_skip_sheet(sname):
                print(f"  SHEET: {sname} skipped")
                continue
            try:
                sd = normalize_sheet(df, sname)
            except SheetHeaderError as e:
                print(f"  SHEET: {sname} error={e}")
                continue
            print(f"  SHEET: {sname} header_row={sd.header_row} cols={sd.columns}")
            for r in sd.rows[:3]:
                print("    ", {k: (v.isoformat() if hasattr(v, "isoformat") else v) for k, v in r.items()})
    return EXIT_SUCCESS_ALL


def _build_resolver(cfg: ExtractConfig, no_ai: bool, logger: logging.Logger) -> ComponentResolver | None:
    if no_ai or not cfg.resolver.enabled:
        logger.info("ambiguity resolver disabled")
        return None
    if not os.getenv("OPENAI_API_KEY"):
        logger.warning("OPENAI_API_KEY not set; ambiguity resolver disabled")
        return None
    model = os.getenv("OPENAI_MODEL") or cfg.resolver.model
    logger.info(f"ambiguity resolver: openai model={model}")
    return OpenAIComponentResolver(model=model)


def _load_catalog(cfg: ExtractConfig) -> CatalogIndex | None:
    if not cfg.catalog_path:
        return None
    return load_catalog(Path(cfg.catalog_path))


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging(debug=args.debug)
    if args.debug:
        logger.debug("debug mode enabled")

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    directory = Path(cfg.source_directory)
    if not directory.exists():
        logger.error(f"directory not found: {directory}")
        return EXIT_FATAL

    if args.inspect_data:
        return _inspect_data(cfg)

    if args.write_db and cfg.component_table is None:
        logger.error("config: --write-db requires a component_table section")
        return EXIT_FATAL

    try:
        catalog = _load_catalog(cfg)
    except CatalogError as e:
        logger.error(f"catalog: {e}")
        return EXIT_FATAL

    logger.info(f"Processing files from: {directory}")
    resolver = _build_resolver(cfg, args.no_ai, logger)
    try:
        result = process_all(cfg, resolver=resolver, catalog=catalog)
    except ProcessingError as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL

    for message in result.errors:
        logger.warning(message)

    if args.output:
        logger.info(f"json written: {write_json(result, args.output)}")
    if args.csv:
        logger.info(f"csv written: {write_csv(result, args.csv)}")

    db_failed = False
    if args.write_db:
        try:
            with db_connection(cfg.database) as cur:
                written = write_components(cur, cfg.component_table, result)
            logger.info(f"db: inserted_rows={written.inserted_rows} skipped_positions={len(written.skipped_groups)}")
        except (ComponentWriteError, psycopg2.Error) as e:
            logger.error(f"db: {e}")
            db_failed = True

    total_files = len(result.files)
    summary_line = render_summary_line(total_files, result)
    # log_summary adds the "SUMMARY " prefix
    log_summary(summary_line[len("SUMMARY "):])

    if result.failed_files > 0 or db_failed:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL
