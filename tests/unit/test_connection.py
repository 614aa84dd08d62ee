from __future__ import annotations

import pytest

from sales_ingest.db.connection import DatabaseConfigurationError, resolve_dsn
from sales_ingest.models.config_models import DatabaseConfig


def test_database_url_wins(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://u@h/db")
    monkeypatch.setenv("PGDSN", "ignored")
    assert resolve_dsn(DatabaseConfig(dsn="also ignored")) == "postgresql://u@h/db"


def test_config_dsn_used_without_env():
    assert resolve_dsn(DatabaseConfig(dsn="host=db dbname=sales")) == "host=db dbname=sales"


def test_parts_from_config_with_env_override(monkeypatch):
    monkeypatch.setenv("PGHOST", "pg.internal")
    cfg = DatabaseConfig(host="localhost", port=6543, user="app", password="s3cret", database="sales")
    assert resolve_dsn(cfg) == "host=pg.internal port=6543 user=app dbname=sales password=s3cret"


def test_defaults_without_password(monkeypatch):
    monkeypatch.setenv("PGDATABASE", "sales")
    assert resolve_dsn(DatabaseConfig()) == "host=localhost port=5432 user=postgres dbname=sales"


def test_missing_database_name_is_fatal():
    with pytest.raises(DatabaseConfigurationError):
        resolve_dsn(DatabaseConfig(host="localhost"))
