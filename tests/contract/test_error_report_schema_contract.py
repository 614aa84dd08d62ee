from __future__ import annotations

import json
import pathlib

import jsonschema
import pytest
from jsonschema.exceptions import ValidationError

from sales_ingest.db.store import InMemorySaleStore
from sales_ingest.models.sale_record import SaleCategory
from sales_ingest.services.importer import import_batch

"""Error report JSON contract (contracts/error_report_schema.json)."""

pytestmark = pytest.mark.contract

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[2]
SCHEMA_PATH = PROJECT_ROOT / "contracts" / "error_report_schema.json"


@pytest.fixture(scope="module")
def schema():
    return json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))


def test_valid_example(schema):
    jsonschema.validate({"errors": [{"sheet": "Online", "index": 0, "error": "insert_failed: timeout"}]}, schema)
    jsonschema.validate({"errors": []}, schema)


@pytest.mark.parametrize(
    "entry",
    [
        {"sheet": "Online", "index": -1, "error": "x"},
        {"sheet": "Online", "index": 0, "error": ""},
        {"sheet": "Online", "index": 0},
        {"sheet": "Online", "index": 0, "error": "x", "row": 2},
    ],
)
def test_rejects_invalid_entries(schema, entry):
    with pytest.raises(ValidationError):
        jsonschema.validate({"errors": [entry]}, schema)


def test_written_report_matches_schema(schema, tmp_path, online_rows):
    rows = online_rows + [None, "garbage"]
    outcome = import_batch(rows, SaleCategory.ONLINE, InMemorySaleStore(), report_dir=tmp_path, sheet="Online")
    assert outcome.error_report_path is not None
    data = json.loads(outcome.error_report_path.read_text(encoding="utf-8"))
    jsonschema.validate(data, schema)
    assert [e["index"] for e in data["errors"]] == [5, 6]
