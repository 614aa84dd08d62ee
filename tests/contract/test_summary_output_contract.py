from __future__ import annotations

import re

import pytest

from sales_ingest.cli.__main__ import main

"""SUMMARY 行フォーマット契約テスト."""

pytestmark = pytest.mark.contract

SUMMARY_PATTERN = re.compile(
    r"^SUMMARY\s+sheets=([0-9]+)\s+rows=([0-9]+)\s+inserted=([0-9]+)\s+"
    r"skipped=([0-9]+)\s+failed=([0-9]+)\s+elapsed_sec=([0-9]+\.?[0-9]*)\s+"
    r"throughput_rps=([0-9]+\.?[0-9]*)\s+error_report=(\S+)$"
)


def test_summary_pattern_example_line():
    line = (
        "SUMMARY sheets=2 rows=10 inserted=8 skipped=1 failed=1 "
        "elapsed_sec=0.84 throughput_rps=11.90 error_report=logs/import-errors-20240101-000000-000000.json"
    )
    assert SUMMARY_PATTERN.match(line)


def test_cli_summary_line_matches(write_config, monkeypatch, make_workbook, online_rows, temp_workdir, capsys):
    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")
    make_workbook(temp_workdir / "data" / "online.xlsx", {"Online": online_rows + [online_rows[0]]})
    main([])
    lines = [line for line in capsys.readouterr().out.splitlines() if line.startswith("SUMMARY")]
    assert len(lines) == 1
    m = SUMMARY_PATTERN.match(lines[0])
    assert m, lines[0]
    sheets, rows, inserted, skipped, failed = (int(m.group(i)) for i in range(1, 6))
    assert (sheets, rows, inserted, skipped, failed) == (1, 6, 5, 1, 0)
    assert m.group(8) == "-"
