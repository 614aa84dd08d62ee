from __future__ import annotations

from pathlib import Path

import pytest

from sales_ingest.cli.__main__ import EXIT_FATAL, EXIT_PARTIAL_FAILURE, EXIT_SUCCESS_ALL, main

"""Exit code contract: 0 all rows in, 2 partial failure, 1 fatal."""

pytestmark = pytest.mark.contract


def test_exit_code_values():
    assert (EXIT_SUCCESS_ALL, EXIT_PARTIAL_FAILURE, EXIT_FATAL) == (0, 2, 1)


def test_exit_code_fatal_startup(temp_workdir: Path, capsys):
    # config/import.yml 無し → exit 1
    assert main([]) == EXIT_FATAL
    assert "ERROR config:" in capsys.readouterr().out


def test_exit_code_all_success_with_no_workbooks(write_config, monkeypatch, capsys):
    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")
    assert main([]) == EXIT_SUCCESS_ALL
    out = capsys.readouterr().out
    assert "WARN no workbooks found" in out


def test_duplicates_are_not_failures(write_config, monkeypatch, make_workbook, online_rows, temp_workdir):
    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")
    make_workbook(temp_workdir / "data" / "online.xlsx", {"Online": online_rows + online_rows})
    assert main(["import"]) == EXIT_SUCCESS_ALL
