from __future__ import annotations

import pytest

import importlib

bi = importlib.import_module("sales_ingest.db.batch_insert")
from sales_ingest.db.batch_insert import BatchInsertError, InsertResult, batch_insert


class DummyCursor:
    def __init__(self, returned=None) -> None:
        self.queries: list[str] = []
        self.rows: list[list] = []
        self.page_size: int | None = None
        self.returned = returned


@pytest.fixture(autouse=True)
def patch_execute_values(monkeypatch):
    # driver なしでロジックのみ検証
    def fake_execute_values(cursor, sql, rows, page_size=100, fetch=False):
        cursor.queries.append(sql)
        cursor.rows.extend(rows)
        cursor.page_size = page_size
        if cursor.returned is not None:
            return cursor.returned
        return [(r[-1],) for r in rows] if fetch else None
    monkeypatch.setattr(bi, "execute_values", fake_execute_values)
    return fake_execute_values


def test_batch_insert_builds_skip_on_conflict_statement():
    cur = DummyCursor()
    res = batch_insert(cur, table="online_sale", columns=["title", "row_hash"], rows=[["a", "h1"], ["b", "h2"]])
    assert isinstance(res, InsertResult)
    assert res.inserted_rows == 2
    assert res.skipped_rows == 0
    sql = cur.queries[0]
    assert sql.startswith('INSERT INTO online_sale ("title","row_hash") VALUES %s')
    assert 'ON CONFLICT ("row_hash") DO NOTHING' in sql
    assert sql.endswith('RETURNING "row_hash"')


def test_conflicting_rows_are_counted_as_skipped():
    cur = DummyCursor(returned=[("h1",)])
    res = batch_insert(cur, table="t", columns=["row_hash"], rows=[["h1"], ["h2"], ["h3"]])
    assert res.inserted_rows == 1
    assert res.skipped_rows == 2


def test_empty_rows_issue_no_statement():
    cur = DummyCursor()
    res = batch_insert(cur, table="t", columns=["row_hash"], rows=[])
    assert res == InsertResult(inserted_rows=0)
    assert cur.queries == []


def test_page_size_is_passed_through():
    cur = DummyCursor()
    batch_insert(cur, table="t", columns=["row_hash"], rows=[["h"]], page_size=500)
    assert cur.page_size == 500


def test_driver_error_is_wrapped(monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("connection reset")
    monkeypatch.setattr(bi, "execute_values", boom)
    with pytest.raises(BatchInsertError, match="connection reset") as exc:
        batch_insert(DummyCursor(), table="t", columns=["row_hash"], rows=[["h"]])
    assert isinstance(exc.value.__cause__, RuntimeError)


def test_metrics_callback_runs_on_success_and_failure(monkeypatch):
    captured = []
    batch_insert(DummyCursor(), table="t", columns=["row_hash"], rows=[["a"], ["b"]], metrics_callback=captured.append)
    assert len(captured) == 1
    m = captured[0]
    assert m.batch_size == 2
    assert m.elapsed_seconds >= 0
    assert m.end_time >= m.start_time

    def boom(*args, **kwargs):
        raise RuntimeError("x")
    monkeypatch.setattr(bi, "execute_values", boom)
    with pytest.raises(BatchInsertError):
        batch_insert(DummyCursor(), table="t", columns=["row_hash"], rows=[["a"]], metrics_callback=captured.append)
    assert len(captured) == 2
