from __future__ import annotations

from pathlib import Path

from mooring_extract.cli import main as cli_main

"""Exit codes: 0 all files succeeded, 2 at least one file failed, 1 fatal."""


def test_exit_0_when_all_files_succeed(write_config: Path, temp_workdir: Path, make_workbook, mooring_sheet_grid):
    make_workbook(temp_workdir / "data" / "anlegg.xlsx", {"Fortøyning": mooring_sheet_grid})
    assert cli_main([]) == 0


def test_exit_0_when_no_files(write_config: Path):
    assert cli_main([]) == 0


def test_exit_2_on_partial_failure(write_config: Path, temp_workdir: Path, make_workbook, mooring_sheet_grid):
    make_workbook(temp_workdir / "data" / "anlegg.xlsx", {"Fortøyning": mooring_sheet_grid})
    make_workbook(temp_workdir / "data" / "uten_tabell.xlsx", {"Forside": [["Dokumentasjon"]]})
    assert cli_main([]) == 2


def test_exit_2_when_every_file_fails(write_config: Path, temp_workdir: Path):
    (temp_workdir / "data" / "scan.pdf").write_bytes(b"%PDF")
    assert cli_main([]) == 2


def test_exit_1_on_invalid_config(temp_workdir: Path):
    (temp_workdir / "config" / "extract.yml").write_text("resolver: {}\n", encoding="utf-8")
    assert cli_main([]) == 1


def test_exit_1_on_missing_directory(temp_workdir: Path):
    (temp_workdir / "config" / "extract.yml").write_text("source_directory: ./nowhere\n", encoding="utf-8")
    assert cli_main([]) == 1
