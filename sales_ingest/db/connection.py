from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import psycopg2

from ..models.config_models import DatabaseConfig

"""PostgreSQL connection resolution.

Resolution order (first hit wins):
    1. DATABASE_URL / PGDSN environment variables (after .env is loaded)
    2. ``database.dsn`` in config/import.yml
    3. PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE, each falling back
       to the matching ``database`` config key

A database name is the one identifier without a default; when none of the
above supplies it the call fails with DatabaseConfigurationError.
"""


class DatabaseConfigurationError(Exception):
    """No usable database identifiers are configured (fatal, not retried)."""


def resolve_dsn(db_cfg: DatabaseConfig) -> str:
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn

    database = os.getenv("PGDATABASE") or db_cfg.database
    if not database:
        raise DatabaseConfigurationError(
            "database not configured: set DATABASE_URL, PGDATABASE or database.dsn/database in config"
        )
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def db_cursor(db_cfg: DatabaseConfig) -> Iterator[Any]:  # pragma: no cover (thin wrapper)
    """Yield a cursor on an autocommit connection.

    Autocommit lets PostgresSaleStore issue explicit BEGIN/COMMIT per chunk.
    """
    dsn = resolve_dsn(db_cfg)
    conn = psycopg2.connect(dsn)
    try:
        conn.autocommit = True
        with conn.cursor() as cur:
            yield cur
    finally:
        conn.close()
