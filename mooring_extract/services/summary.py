from __future__ import annotations

from ..models.processing_result import ProcessingResult

"""SUMMARY line rendering.

Format:
SUMMARY files={total}/{total} success={s} failed={f} positions={p}
components={c} resolver_calls={r} cache_hits={h} fallbacks={b}
catalog_matches={m} elapsed_sec={e}
"""

__all__ = ["render_summary_line"]


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # avoid scientific notation for very small numbers
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(total_files: int, result: ProcessingResult) -> str:
    """Render the SUMMARY line for a finished run.

    Examples:
        >>> from datetime import datetime, timezone
        >>> start = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2024, 1, 1, 10, 0, 2, tzinfo=timezone.utc)
        >>> render_summary_line(0, ProcessingResult(files=[], start_time=start, end_time=end))
        'SUMMARY files=0/0 success=0 failed=0 positions=0 components=0 resolver_calls=0 cache_hits=0 fallbacks=0 catalog_matches=0 elapsed_sec=2'
    """
    return (
        f"SUMMARY files={total_files}/{total_files} "
        f"success={result.success_files} "
        f"failed={result.failed_files} "
        f"positions={result.total_positions} "
        f"components={result.total_components} "
        f"resolver_calls={result.resolution.external_calls} "
        f"cache_hits={result.resolution.cache_hits} "
        f"fallbacks={result.resolution.fallbacks} "
        f"catalog_matches={result.catalog_matches} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
