from __future__ import annotations

import json

import pytest

import sales_ingest.cli.__main__ as cli
from sales_ingest.cli.__main__ import EXIT_FATAL, EXIT_PARTIAL_FAILURE, EXIT_SUCCESS_ALL, main
from sales_ingest.db.schema import ensure_schema, table_ddl
from sales_ingest.db.store import InMemorySaleStore
from sales_ingest.models.sale_record import SaleCategory


class FailingStore(InMemorySaleStore):
    def insert_chunk(self, category, records):
        raise RuntimeError("disk full")


@pytest.fixture()
def mock_db(monkeypatch):
    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")


def _summary_line(out: str) -> str:
    return next(line for line in out.splitlines() if line.startswith("SUMMARY "))


def test_import_default_command_success(write_config, mock_db, make_workbook, online_rows, temp_workdir, capsys):
    make_workbook(temp_workdir / "data" / "online.xlsx", {"Online": online_rows})
    assert main([]) == EXIT_SUCCESS_ALL
    line = _summary_line(capsys.readouterr().out)
    assert "rows=5 inserted=5" in line
    assert line.endswith("error_report=-")


def test_import_partial_failure_exit_code(write_config, mock_db, make_workbook, online_rows, temp_workdir, monkeypatch, capsys):
    make_workbook(temp_workdir / "data" / "online.xlsx", {"Online": online_rows})
    monkeypatch.setattr(cli, "InMemorySaleStore", FailingStore)
    assert main(["import"]) == EXIT_PARTIAL_FAILURE
    line = _summary_line(capsys.readouterr().out)
    assert "failed=5" in line
    reports = list((temp_workdir / "logs").glob("import-errors-*.json"))
    assert len(reports) == 1


def test_dry_run_flag_uses_memory_store(write_config, make_workbook, online_rows, temp_workdir):
    make_workbook(temp_workdir / "data" / "online.xlsx", {"Online": online_rows})
    assert main(["--dry-run", "import", "--only", "online"]) == EXIT_SUCCESS_ALL


def test_explicit_file_and_target(write_config, mock_db, make_workbook, online_rows, temp_workdir, capsys):
    path = make_workbook(temp_workdir / "elsewhere" / "x.xlsx", {"Sheet1": online_rows})
    assert main(["import", "--file", str(path), "--target", "lok"]) == EXIT_SUCCESS_ALL
    assert "sheet start file=x.xlsx sheet=Sheet1 category=lok" in capsys.readouterr().out


def test_missing_config_is_fatal(temp_workdir, mock_db):
    assert main(["import"]) == EXIT_FATAL


def test_missing_source_directory_is_fatal(write_config, mock_db, temp_workdir):
    (temp_workdir / "data").rmdir()
    assert main(["import"]) == EXIT_FATAL


def test_missing_file_is_fatal(write_config, mock_db, temp_workdir):
    assert main(["import", "--file", str(temp_workdir / "nope.xlsx")]) == EXIT_FATAL


def test_env_file_enables_mock_mode(write_config, make_workbook, online_rows, temp_workdir, monkeypatch):
    monkeypatch.setenv("DISABLE_DB_CONNECT", "0")
    (temp_workdir / ".env").write_text("DISABLE_DB_CONNECT=1\n", encoding="utf-8")
    make_workbook(temp_workdir / "data" / "online.xlsx", {"Online": online_rows})
    assert main(["import"]) == EXIT_SUCCESS_ALL


def test_live_mode_without_database_is_fatal(write_config, temp_workdir):
    assert main(["import"]) == EXIT_FATAL


def test_sheets_lists_names_without_config(temp_workdir, make_workbook, capsys):
    path = make_workbook(temp_workdir / "w.xlsx", {"Online": [{"a": 1}], "Lok Event": [{"b": 2}]})
    assert main(["sheets", str(path)]) == EXIT_SUCCESS_ALL
    out = capsys.readouterr().out
    assert json.loads(out[out.index("{"):]) == {"file": "w.xlsx", "sheets": ["Online", "Lok Event"]}
    assert main(["sheets", str(temp_workdir / "missing.xlsx")]) == EXIT_FATAL


def test_preview_reports_duplicates(write_config, temp_workdir, make_workbook, online_rows, capsys):
    path = make_workbook(temp_workdir / "w.xlsx", {"Online": online_rows + [online_rows[0]]})
    assert main(["preview", str(path)]) == EXIT_SUCCESS_ALL
    out = capsys.readouterr().out
    data = json.loads(out[out.index("{"):])
    (sheet,) = data["sheets"]
    assert sheet["category"] == "online"
    assert sheet["totalRows"] == 6
    assert sheet["distinctHashes"] == 5


def test_summary_and_counts_commands(write_config, mock_db, capsys):
    assert main(["summary", "online", "--days", "30"]) == EXIT_SUCCESS_ALL
    out = capsys.readouterr().out
    assert json.loads(out[out.index("{"):]) == {"timeSeries": [], "topItems": [], "paymentModes": []}
    assert main(["counts", "raj"]) == EXIT_SUCCESS_ALL
    out = capsys.readouterr().out
    assert json.loads(out[out.index("{"):])["totalCount"] == 0


def test_invalid_window_is_fatal(write_config, mock_db):
    assert main(["counts", "online", "--start", "2024-02-01", "--end", "2024-01-01"]) == EXIT_FATAL


def test_unknown_category_is_usage_error(write_config, mock_db):
    with pytest.raises(SystemExit) as exc:
        main(["summary", "retail"])
    assert exc.value.code == 2


def test_verify_reports_every_category(write_config, mock_db, capsys):
    assert main(["verify"]) == EXIT_SUCCESS_ALL
    out = capsys.readouterr().out
    checks = json.loads(out[out.index("["):])
    assert [c["category"] for c in checks] == ["online", "offline", "raj", "lok"]


def test_init_db_without_database_is_fatal(write_config):
    assert main(["init-db"]) == EXIT_FATAL


def test_ensure_schema_creates_unique_row_hash_tables():
    class Cur:
        def __init__(self):
            self.sql = []

        def execute(self, sql):
            self.sql.append(sql)

    cur = Cur()
    assert ensure_schema(cur, [SaleCategory.ONLINE]) == ["online_sale"]
    assert "CREATE TABLE IF NOT EXISTS online_sale" in cur.sql[0]
    assert "UNIQUE (row_hash)" in table_ddl(SaleCategory.LOK_EVENT)
    assert "raw_payload     JSON NOT NULL" in table_ddl(SaleCategory.LOK_EVENT)
    assert "JSONB" not in table_ddl(SaleCategory.ONLINE)
