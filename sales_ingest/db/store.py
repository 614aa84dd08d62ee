from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Sequence
from typing import Any, Protocol

from psycopg2.extras import Json

from ..models.sale_record import RECORD_COLUMNS, NormalizedSaleRecord, SaleCategory
from .batch_insert import BatchMetrics, batch_insert

"""Sale stores: the persistence collaborator seen by importer and queries.

PostgresSaleStore runs each chunk in its own explicit transaction so that
committed chunks survive a later failure. InMemorySaleStore keeps the same
skip-on-conflict contract in process memory (dry runs and tests).
"""

logger = logging.getLogger(__name__)

__all__ = [
    "SaleStore",
    "PostgresSaleStore",
    "InMemorySaleStore",
]


class SaleStore(Protocol):
    def insert_chunk(self, category: SaleCategory, records: Sequence[NormalizedSaleRecord]) -> int:
        """Insert records, skipping row_hash conflicts; return rows written."""
        ...

    def fetch_recent(self, category: SaleCategory, limit: int) -> list[NormalizedSaleRecord]:
        """Newest-first window of at most ``limit`` records."""
        ...

    def page(
        self,
        category: SaleCategory,
        limit: int,
        cursor_id: int | None = None,
        q: str | None = None,
    ) -> list[NormalizedSaleRecord]:
        """Newest-first page of records with id < cursor_id.

        ``q`` keeps records whose title or customer name contains it (case-insensitive).
        """
        ...

    def count(self, category: SaleCategory) -> int:
        ...

    def duplicate_hashes(self, category: SaleCategory) -> list[tuple[str, int]]:
        ...


_SELECT_COLUMNS = ("id",) + RECORD_COLUMNS


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class PostgresSaleStore:
    """Store backed by a psycopg2 cursor on an autocommit connection."""

    def __init__(
        self,
        cursor: Any,
        page_size: int = 1000,
        metrics_callback: Callable[[BatchMetrics], None] | None = None,
    ) -> None:
        self.cursor = cursor
        self.page_size = page_size
        self.metrics_callback = metrics_callback

    def insert_chunk(self, category: SaleCategory, records: Sequence[NormalizedSaleRecord]) -> int:
        rows = []
        for rec in records:
            values = rec.column_values()
            values[RECORD_COLUMNS.index("raw_payload")] = Json(rec.raw_payload)
            rows.append(values)

        self.cursor.execute("BEGIN")
        try:
            result = batch_insert(
                self.cursor,
                table=category.table_name,
                columns=RECORD_COLUMNS,
                rows=rows,
                page_size=max(self.page_size, len(rows)),
                metrics_callback=self.metrics_callback,
            )
        except Exception:
            try:
                self.cursor.execute("ROLLBACK")
            except Exception as rollback_e:
                logger.warning("rollback failed table=%s: %s", category.table_name, rollback_e)
            raise
        self.cursor.execute("COMMIT")
        return result.inserted_rows

    def _select(self, sql: str, params: tuple[Any, ...], category: SaleCategory) -> list[NormalizedSaleRecord]:
        self.cursor.execute(sql, params)
        names = [d[0] for d in self.cursor.description]
        return [
            NormalizedSaleRecord.from_row(category, dict(zip(names, r, strict=False)))
            for r in self.cursor.fetchall()
        ]

    def fetch_recent(self, category: SaleCategory, limit: int) -> list[NormalizedSaleRecord]:
        cols = ",".join(f'"{c}"' for c in _SELECT_COLUMNS)
        sql = f"SELECT {cols} FROM {category.table_name} ORDER BY id DESC LIMIT %s"
        return self._select(sql, (limit,), category)

    def page(
        self,
        category: SaleCategory,
        limit: int,
        cursor_id: int | None = None,
        q: str | None = None,
    ) -> list[NormalizedSaleRecord]:
        cols = ",".join(f'"{c}"' for c in _SELECT_COLUMNS)
        where: list[str] = []
        params: list[Any] = []
        if cursor_id is not None:
            where.append("id < %s")
            params.append(cursor_id)
        if q:
            pattern = f"%{_escape_like(q)}%"
            where.append("(title ILIKE %s OR customer_name ILIKE %s)")
            params.extend([pattern, pattern])
        clause = f" WHERE {' AND '.join(where)}" if where else ""
        sql = f"SELECT {cols} FROM {category.table_name}{clause} ORDER BY id DESC LIMIT %s"
        return self._select(sql, (*params, limit), category)

    def count(self, category: SaleCategory) -> int:
        self.cursor.execute(f"SELECT count(*) FROM {category.table_name}")
        return int(self.cursor.fetchone()[0])

    def duplicate_hashes(self, category: SaleCategory) -> list[tuple[str, int]]:
        self.cursor.execute(
            f"SELECT row_hash, count(*) FROM {category.table_name} "
            "GROUP BY row_hash HAVING count(*) > 1"
        )
        return [(str(h), int(n)) for h, n in self.cursor.fetchall()]


class InMemorySaleStore:
    """Process-local store with the same skip-on-conflict semantics."""

    def __init__(self) -> None:
        self._records: dict[SaleCategory, list[NormalizedSaleRecord]] = {c: [] for c in SaleCategory}
        self._hashes: dict[SaleCategory, set[str]] = {c: set() for c in SaleCategory}
        self._next_id = 1

    def insert_chunk(self, category: SaleCategory, records: Sequence[NormalizedSaleRecord]) -> int:
        inserted = 0
        for rec in records:
            if rec.row_hash in self._hashes[category]:
                continue
            self._hashes[category].add(rec.row_hash)
            self._records[category].append(dataclasses.replace(rec, id=self._next_id))
            self._next_id += 1
            inserted += 1
        return inserted

    def fetch_recent(self, category: SaleCategory, limit: int) -> list[NormalizedSaleRecord]:
        return list(reversed(self._records[category]))[:limit]

    def page(
        self,
        category: SaleCategory,
        limit: int,
        cursor_id: int | None = None,
        q: str | None = None,
    ) -> list[NormalizedSaleRecord]:
        newest_first = reversed(self._records[category])
        if cursor_id is not None:
            newest_first = (r for r in newest_first if r.id is not None and r.id < cursor_id)
        if q:
            needle = q.casefold()
            newest_first = (
                r for r in newest_first
                if needle in (r.title or "").casefold() or needle in (r.customer_name or "").casefold()
            )
        return list(newest_first)[:limit]

    def count(self, category: SaleCategory) -> int:
        return len(self._records[category])

    def duplicate_hashes(self, category: SaleCategory) -> list[tuple[str, int]]:
        # row_hash uniqueness is enforced on insert
        return []
