# Shared pytest fixtures
from __future__ import annotations

import itertools
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from sales_ingest.db.store import InMemorySaleStore
from sales_ingest.logging.init import reset_logging
from sales_ingest.models.sale_record import NormalizedSaleRecord, SaleCategory

_ENV_KEYS = (
    "DATABASE_URL",
    "PGDSN",
    "PGHOST",
    "PGPORT",
    "PGUSER",
    "PGPASSWORD",
    "PGDATABASE",
    "IMPORT_CHUNK_SIZE",
    "DISABLE_DB_CONNECT",
)


@pytest.fixture(autouse=True)
def _clean_state(monkeypatch):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch, tmp_path: Path) -> Path:
    for name in ("config", "data", "logs"):
        (tmp_path / name).mkdir()
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture()
def sample_config_yaml() -> str:
    return """source_directory: ./data
chunk_size: 2
header_row: 1
error_report_dir: ./logs
sheet_categories:
  "Cash UPI CC": offline
null_sentinels: ["NA", "-"]
serial_dates:
  min_serial: 1
  max_serial: 73051
aggregation:
  row_cap: 1000
  default_days: 90
  top_n: 5
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def make_workbook() -> Callable[[Path, dict[str, list[dict[str, Any]]]], Path]:
    """Write ``{sheet: [row dicts]}`` as an .xlsx with the header on line 1."""
    def _make(path: Path, sheets: dict[str, list[dict[str, Any]]]) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            for name, rows in sheets.items():
                pd.DataFrame(rows).to_excel(writer, sheet_name=name, index=False)
        return path
    return _make


@pytest.fixture()
def memory_store() -> InMemorySaleStore:
    return InMemorySaleStore()


@pytest.fixture()
def online_rows() -> list[dict[str, Any]]:
    return [
        {
            "Order No": f"ON-{i}",
            "Date": f"2024-01-0{i + 1}T10:00:00",
            "Title": "Bhagavad Gita",
            "Qty": 1,
            "Selling Price": 100 + i,
            "Customer Name": "Asha",
        }
        for i in range(5)
    ]


@pytest.fixture()
def make_record() -> Callable[..., NormalizedSaleRecord]:
    """Factory for NormalizedSaleRecord with test defaults (unique row_hash)."""
    seq = itertools.count(1)

    def _make(**kwargs: Any) -> NormalizedSaleRecord:
        kwargs.setdefault("category", SaleCategory.OFFLINE)
        kwargs.setdefault("row_hash", f"h-{next(seq)}")
        kwargs.setdefault("raw_payload", {})
        return NormalizedSaleRecord(**kwargs)
    return _make
