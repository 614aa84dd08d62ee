from __future__ import annotations

import json

from sales_ingest.models.error_record import MAPPING_FAILED, ErrorRecord
from sales_ingest.services.error_report import ErrorReport


def test_error_record_create():
    assert ErrorRecord.create("S", 1, ValueError("bad date")).error == "bad date"
    assert ErrorRecord.create("S", 1, KeyError()).error == "KeyError"
    assert ErrorRecord.create("S", 1, None).error == MAPPING_FAILED
    assert ErrorRecord("S", 2, "x").to_dict() == {"sheet": "S", "index": 2, "error": "x"}


def test_flush_without_records_writes_nothing(tmp_path):
    report = ErrorReport(tmp_path / "logs")
    assert report.flush() is None
    assert not (tmp_path / "logs").exists()


def test_flush_writes_one_file(tmp_path):
    report = ErrorReport(tmp_path / "logs")
    report.append(ErrorRecord("Online", 3, "insert_failed: timeout"))
    report.extend([ErrorRecord("Online", 4, "insert_failed: timeout")])
    path = report.flush()
    assert path is not None
    assert path.name.startswith("import-errors-") and path.suffix == ".json"
    data = json.loads(path.read_text(encoding="utf-8"))
    assert [e["index"] for e in data["errors"]] == [3, 4]

    report.append(ErrorRecord("Lok Event", 0, "bad row"))
    assert report.flush() == path
    assert len(json.loads(path.read_text(encoding="utf-8"))["errors"]) == 3
    assert len(report) == 3
    assert report.file_path == path


def test_default_directory_is_logs():
    assert str(ErrorReport().directory) == "logs"
