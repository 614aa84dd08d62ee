"""PostgreSQL persistence: skip-on-conflict bulk insert, stores, schema."""

from .batch_insert import BatchInsertError, BatchMetrics, InsertResult, batch_insert
from .connection import DatabaseConfigurationError, db_cursor, resolve_dsn
from .store import InMemorySaleStore, PostgresSaleStore, SaleStore

__all__ = [
    "BatchInsertError",
    "BatchMetrics",
    "DatabaseConfigurationError",
    "InMemorySaleStore",
    "InsertResult",
    "PostgresSaleStore",
    "SaleStore",
    "batch_insert",
    "db_cursor",
    "resolve_dsn",
]
