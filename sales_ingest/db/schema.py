from __future__ import annotations

from typing import Any

from ..models.sale_record import SaleCategory

"""DDL for the four category tables.

Every table carries ``UNIQUE (row_hash)``, the conflict target that makes
re-imports idempotent. ``raw_payload`` is JSON, not JSONB: the source column
order is kept for the alias fallbacks that scan it.
"""

_TABLE_DDL = """
CREATE TABLE IF NOT EXISTS {table} (
    id              BIGSERIAL PRIMARY KEY,
    order_no        TEXT,
    order_status    TEXT,
    month           TEXT,
    year            INTEGER,
    date            TIMESTAMPTZ,
    isbn            TEXT,
    item_code       TEXT,
    title           TEXT,
    author          TEXT,
    publisher       TEXT,
    category_label  TEXT,
    description     TEXT,
    publisher_code  TEXT,
    qty             INTEGER,
    rate            NUMERIC(14, 2),
    amount          NUMERIC(14, 2),
    discount        NUMERIC(14, 2),
    tax             NUMERIC(14, 2),
    shipping        NUMERIC(14, 2),
    payment_mode    TEXT,
    customer_name   TEXT,
    mobile          TEXT,
    email           TEXT,
    row_hash        CHAR(64) NOT NULL,
    raw_payload     JSON NOT NULL DEFAULT '{{}}'::json,
    created_at      TIMESTAMPTZ NOT NULL DEFAULT now(),
    CONSTRAINT {table}_row_hash_key UNIQUE (row_hash)
);
CREATE INDEX IF NOT EXISTS {table}_date_idx ON {table} (date);
"""


def table_ddl(category: SaleCategory) -> str:
    return _TABLE_DDL.format(table=category.table_name)


def ensure_schema(cursor: Any, categories: list[SaleCategory] | None = None) -> list[str]:
    """Create missing category tables; returns the table names touched."""
    touched = []
    for category in categories or list(SaleCategory):
        cursor.execute(table_ddl(category))
        touched.append(category.table_name)
    return touched
