from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from psycopg2.extras import execute_values

"""DB batch insert with skip-on-conflict.

One call == one chunk == one failure domain. Rows whose conflict column
collides with an existing row are skipped by PostgreSQL
(``ON CONFLICT ... DO NOTHING``); the inserted count comes from the
``RETURNING`` rows, so skipped duplicates are not counted and are not errors.
"""


class BatchInsertError(Exception):
    pass


@dataclass(frozen=True)
class BatchMetrics:
    """Timing data for a single bulk insert."""
    batch_size: int  # rows sent
    elapsed_seconds: float  # time spent in execute_values
    start_time: float  # time.time() before the call
    end_time: float  # time.time() after the call


@dataclass(frozen=True)
class InsertResult:
    inserted_rows: int
    skipped_rows: int = 0


def batch_insert(
    cursor: Any,
    table: str,
    columns: Sequence[str],
    rows: Iterable[Sequence[Any]],
    conflict_column: str = "row_hash",
    page_size: int = 1000,
    metrics_callback: Callable[[BatchMetrics], None] | None = None,
) -> InsertResult:
    """Insert rows with psycopg2.extras.execute_values, skipping conflicts.

    Parameters
    ----------
    cursor: psycopg2 cursor
    table: target table (trusted name from SaleCategory.table_name)
    columns: insert column order, matching each row sequence
    rows: row value sequences
    conflict_column: unique column used as the ON CONFLICT target
    page_size: execute_values page size; keep >= chunk size for one round trip
    metrics_callback: receives BatchMetrics after the statement ran (also on
        failure). Not invoked for an empty ``rows``.

    Raises
    ------
    BatchInsertError wrapping any driver error.
    """
    rows_list = list(rows)
    if not rows_list:
        return InsertResult(inserted_rows=0)

    cols_sql = ",".join(f'"{c}"' for c in columns)
    sql = (
        f"INSERT INTO {table} ({cols_sql}) VALUES %s "
        f'ON CONFLICT ("{conflict_column}") DO NOTHING '
        f'RETURNING "{conflict_column}"'
    )

    start_time = time.time()
    try:
        returned = execute_values(cursor, sql, rows_list, page_size=page_size, fetch=True)
    except Exception as e:
        raise BatchInsertError(str(e)) from e
    finally:
        end_time = time.time()
        if metrics_callback is not None:
            metrics_callback(
                BatchMetrics(
                    batch_size=len(rows_list),
                    elapsed_seconds=end_time - start_time,
                    start_time=start_time,
                    end_time=end_time,
                )
            )

    inserted = len(returned or [])
    return InsertResult(inserted_rows=inserted, skipped_rows=len(rows_list) - inserted)
