# Shared pytest fixtures
from __future__ import annotations

import asyncio
import logging
import tempfile
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from mooring_extract.logging.init import APP_LOGGER_NAME, reset_logging
from mooring_extract.models.component import ComponentType
from mooring_extract.services.resolver import ResolutionRequest, ResolutionResult

COMPONENT_HEADERS = [
    "Navn / nummer",
    "Rekkefølge",
    "Komponenttype",
    "Komponenttype i bruk",
    "Montert dato",
    "Identifikasjonsnummer",
    "Montert av",
    "Sporingsnummer",
]

H01A_ROWS = [
    ["H01A", 1, "Ploganker", "Softanker 1700 kg", "", "606616", "AQS TOR", "12T"],
    ["H01A", 2, "Sjakkel", "Sjakkel 90T", "", "GAP-GBA", "", ""],
]


class CountingResolver:
    """Canned resolver that records every request it receives."""

    def __init__(self, result: ResolutionResult | None = None, delay: float = 0.0) -> None:
        self.result = result or ResolutionResult(
            confidence=0.8,
            component_type=ComponentType.BUOY,
            manufacturer="Sabik",
        )
        self.delay = delay
        self.calls: list[ResolutionRequest] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def resolve(self, request: ResolutionRequest) -> ResolutionResult:
        self.calls.append(request)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1
        return self.result


class FailingResolver:
    """Resolver that always raises."""

    def __init__(self) -> None:
        self.calls = 0

    async def resolve(self, request: ResolutionRequest) -> ResolutionResult:
        self.calls += 1
        raise RuntimeError("resolver unavailable")


def _reset_app_logger() -> None:
    reset_logging()
    logger = logging.getLogger(APP_LOGGER_NAME)
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture(autouse=True)
def _clean_logging():
    _reset_app_logger()
    yield
    _reset_app_logger()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """source_directory: ./data
skip_sheet_patterns: [flytekrage, ekstra]
resolver:
  enabled: false
position_mappings:
  - document_reference: H01A
    internal_position_id: 101
    position_name: Mooring Line 1
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "extract.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def make_workbook():
    """Factory writing a real .xlsx with one grid (list of rows) per sheet."""

    def _make(path: Path, sheets: dict[str, list[list[Any]]]) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            for sheet_name, rows in sheets.items():
                pd.DataFrame(rows).to_excel(writer, sheet_name=sheet_name, header=False, index=False)
        return path

    return _make


@pytest.fixture()
def component_headers() -> list[str]:
    return list(COMPONENT_HEADERS)


@pytest.fixture()
def h01a_raw_rows() -> list[dict[str, Any]]:
    return [dict(zip(COMPONENT_HEADERS, row)) for row in H01A_ROWS]


@pytest.fixture()
def mooring_sheet_grid() -> list[list[Any]]:
    """Title row, header row, category row, H01A components, one H02 component."""
    return [
        ["Fortøyningsanalyse lokalitet 12345", None, None, None, None, None, None, None],
        list(COMPONENT_HEADERS),
        ["H01A", None, "1.2 Ploganker", None, None, None, None, None],
        *[list(r) for r in H01A_ROWS],
        ["H01A", 3, "Kjetting", "Kjetting 30mm - 27,5m", None, "G1463", None, None],
        ["H02", 1, "Ploganker", "Softanker 1200 kg", None, "606617", "Mørenot", None],
    ]


@pytest.fixture()
def counting_resolver() -> CountingResolver:
    return CountingResolver()


@pytest.fixture()
def failing_resolver() -> FailingResolver:
    return FailingResolver()


@pytest.fixture()
def make_counting_resolver():
    """Factory for CountingResolver with a custom answer or delay."""
    return CountingResolver
