from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import replace
from datetime import UTC, datetime
from pathlib import Path

from ..excel.reader import SheetHeaderError, normalize_sheet, read_excel_file
from ..logging.error_log import FILE_LEVEL, ErrorLogBuffer
from ..models.config_models import ExtractConfig
from ..models.position_group import PositionMapping
from ..models.processing_result import FileResult, FileStatus, ProcessingResult, ResolutionStats, SheetResult
from .catalog import CatalogIndex
from .pipeline import ExtractionPipeline
from .position_mapping import annotate_groups
from .progress import ProgressTracker, SheetProgressIndicator
from .resolver import ComponentResolver

"""Run orchestration: source directory -> workbooks -> sheets -> pipeline.

- Files and sheets are processed sequentially, in sorted file order and
  workbook sheet order
- Sheets matching a skip pattern are not processed
- A sheet without a recognisable header fails its file; the remaining
  sheets and files are still processed
- Files that look like inputs but cannot be handled (``.xls``, ``.pdf``) are
  reported as failed with ``UNSUPPORTED_FILE_TYPE``
- The error log is flushed once at the end of the run
"""

__all__ = [
    "ProcessingError",
    "REPORTED_UNSUPPORTED_SUFFIXES",
    "SUPPORTED_SUFFIXES",
    "process_all",
    "process_files",
    "scan_source_files",
]

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = frozenset({".xlsx", ".xlsm"})
REPORTED_UNSUPPORTED_SUFFIXES = frozenset({".xls", ".pdf"})


class ProcessingError(Exception):
    """Fatal run error (source directory missing or unreadable)."""


def scan_source_files(directory: Path) -> list[Path]:
    """Input candidates in ``directory`` (non-recursive, sorted by name).

    Excel lock files (``~$name.xlsx``) are ignored.

    Raises:
        ProcessingError: If the directory doesn't exist or can't be read
    """
    if not directory.exists():
        raise ProcessingError(f"Directory not found: {directory}")
    if not directory.is_dir():
        raise ProcessingError(f"Path is not a directory: {directory}")
    wanted = SUPPORTED_SUFFIXES | REPORTED_UNSUPPORTED_SUFFIXES
    try:
        return sorted(
            (
                p
                for p in directory.iterdir()
                if p.is_file() and p.suffix.lower() in wanted and not p.name.startswith("~$")
            ),
            key=lambda p: p.name,
        )
    except OSError as e:
        raise ProcessingError(f"Error reading directory {directory}: {e}") from e


def _failed(
    file_path: Path,
    start_time: datetime,
    error: str,
    sheets: list[SheetResult] | None = None,
    skipped: list[str] | None = None,
) -> FileResult:
    return FileResult(
        path=file_path,
        name=file_path.name,
        status=FileStatus.FAILED,
        sheets=sheets or [],
        skipped_sheets=skipped or [],
        start_time=start_time,
        end_time=datetime.now(UTC),
        error=error,
    )


async def _process_single_file(
    file_path: Path,
    config: ExtractConfig,
    pipeline: ExtractionPipeline,
    error_log: ErrorLogBuffer,
) -> FileResult:
    """Process one workbook; failures are recorded, never raised."""
    start_time = datetime.now(UTC)

    if file_path.suffix.lower() not in SUPPORTED_SUFFIXES:
        message = f"unsupported file type: {file_path.suffix.lower()}"
        error_log.add(file_path.name, FILE_LEVEL, -1, "UNSUPPORTED_FILE_TYPE", message)
        logger.warning("file=%s %s", file_path.name, message)
        return _failed(file_path, start_time, message)

    try:
        raw_sheets = read_excel_file(file_path)
    except Exception as e:  # corrupt workbook, permission error, engine error
        error_log.add(file_path.name, FILE_LEVEL, -1, "FILE_READ_ERROR", str(e))
        logger.error("file=%s read failed: %s", file_path.name, e)
        return _failed(file_path, start_time, f"read failed: {e}")

    skipped = [name for name in raw_sheets if config.should_skip_sheet(name)]
    for name in skipped:
        logger.debug("file=%s sheet=%s skipped by pattern", file_path.name, name)
    targets = [name for name in raw_sheets if name not in skipped]

    sheet_results: list[SheetResult] = []
    sheet_errors: list[str] = []
    sheet_progress = SheetProgressIndicator(file_name=file_path.name, total_sheets=len(targets))
    for sheet_name in targets:
        sheet_progress.start_sheet(sheet_name)
        try:
            sheet_data = normalize_sheet(raw_sheets[sheet_name], sheet_name)
        except SheetHeaderError as e:
            error_log.add(file_path.name, sheet_name, -1, "SHEET_READ_ERROR", str(e))
            logger.error("file=%s sheet=%s %s", file_path.name, sheet_name, e)
            sheet_progress.finish_sheet(success=False)
            sheet_errors.append(str(e))
            continue

        result = await pipeline.process_sheet(
            sheet_data.rows,
            sheet_name,
            file_name=file_path.name,
            row_numbers=sheet_data.row_numbers,
        )
        sheet_results.append(result)
        sheet_progress.finish_sheet(success=True, positions=len(result.groups), components=result.component_count)

    if sheet_errors:
        return _failed(file_path, start_time, "; ".join(sheet_errors), sheet_results, skipped)

    return FileResult(
        path=file_path,
        name=file_path.name,
        status=FileStatus.SUCCESS,
        sheets=sheet_results,
        skipped_sheets=skipped,
        start_time=start_time,
        end_time=datetime.now(UTC),
    )


def _annotate(result: FileResult, mappings: list[PositionMapping]) -> FileResult:
    sheets = [replace(s, groups=annotate_groups(s.groups, mappings)) for s in result.sheets]
    return replace(result, sheets=sheets)


async def process_files(
    file_paths: Iterable[Path],
    config: ExtractConfig,
    pipeline: ExtractionPipeline,
    error_log: ErrorLogBuffer,
    mappings: list[PositionMapping] | None = None,
) -> ProcessingResult:
    """Process ``file_paths`` sequentially with one pipeline (one cache per run)."""
    start_time = datetime.now(UTC)
    paths = list(file_paths)
    pipeline.reset()
    mappings = mappings if mappings is not None else config.position_mappings

    files: list[FileResult] = []
    errors: list[str] = []
    resolution = ResolutionStats()
    success_count = failed_count = components = 0

    with ProgressTracker(len(paths), description="Processing files") as progress:
        for file_path in paths:
            progress.start_file(file_path)
            result = _annotate(await _process_single_file(file_path, config, pipeline, error_log), mappings)
            files.append(result)
            for sheet in result.sheets:
                resolution = resolution + sheet.resolution

            if result.status == FileStatus.SUCCESS:
                success_count += 1
                components += result.component_count
            else:
                failed_count += 1
                errors.append(f"{result.name}: {result.error}")

            progress.set_postfix(success=success_count, failed=failed_count, components=components)
            progress.finish_file(success=(result.status == FileStatus.SUCCESS))

    if resolution.fallbacks:
        errors.append(f"{resolution.fallbacks} component(s) resolved by fallback (confidence <= 0.5)")

    return ProcessingResult(
        files=files,
        start_time=start_time,
        end_time=datetime.now(UTC),
        resolution=resolution,
        errors=errors,
    )


def process_all(
    config: ExtractConfig,
    resolver: ComponentResolver | None = None,
    catalog: CatalogIndex | None = None,
    mappings: list[PositionMapping] | None = None,
    error_log: ErrorLogBuffer | None = None,
) -> ProcessingResult:
    """Process every input file in ``config.source_directory``.

    Raises:
        ProcessingError: For fatal errors that prevent processing
    """
    file_paths = scan_source_files(Path(config.source_directory))
    error_log = error_log if error_log is not None else ErrorLogBuffer()
    pipeline = ExtractionPipeline.from_config(config, resolver=resolver, catalog=catalog, error_log=error_log)

    result = asyncio.run(process_files(file_paths, config, pipeline, error_log, mappings))

    try:
        log_path = error_log.flush()
    except OSError as e:
        logger.error("failed to write error log: %s", e)
        log_path = None
    if log_path is not None:
        logger.info("error log written: %s", log_path)
    return result
