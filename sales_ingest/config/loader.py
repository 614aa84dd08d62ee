from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_DAYS,
    DEFAULT_ROW_CAP,
    DEFAULT_TOP_N,
    AggregationConfig,
    DatabaseConfig,
    ImportConfig,
    SerialDateBounds,
)
from ..models.sale_record import SaleCategory

"""Config loader.

Responsibilities:
- Load YAML (config/import.yml by default)
- Validate against the bundled config_schema.json (unknown keys rejected)
- Apply defaults and the IMPORT_CHUNK_SIZE environment override
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/import.yml")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing/invalid, or the data violates it.
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _chunk_size(data: dict[str, Any]) -> int:
    env = os.getenv("IMPORT_CHUNK_SIZE")
    if env:
        try:
            value = int(env)
        except ValueError as e:
            raise ConfigError(f"IMPORT_CHUNK_SIZE must be an integer (got {env!r})") from e
        if value < 1:
            raise ConfigError(f"IMPORT_CHUNK_SIZE must be >= 1 (got {value})")
        return value
    return int(data.get("chunk_size", DEFAULT_CHUNK_SIZE))


def config_from_dict(data: dict[str, Any]) -> ImportConfig:
    """Validate and materialize an already-parsed config mapping."""
    _validate_config_schema(data)

    db_raw = data.get("database") or {}
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )
    serial_raw = data.get("serial_dates") or {}
    agg_raw = data.get("aggregation") or {}
    sentinels = data.get("null_sentinels")
    return ImportConfig(
        source_directory=data["source_directory"],
        chunk_size=_chunk_size(data),
        header_row=int(data.get("header_row", 1)),
        error_report_dir=data.get("error_report_dir", "./logs"),
        sheet_categories={
            sheet: SaleCategory(value)
            for sheet, value in (data.get("sheet_categories") or {}).items()
        },
        null_sentinels={s.strip().upper() for s in sentinels} if sentinels else None,
        serial_dates=SerialDateBounds(
            min_serial=serial_raw.get("min_serial"),
            max_serial=serial_raw.get("max_serial"),
        ),
        aggregation=AggregationConfig(
            row_cap=int(agg_raw.get("row_cap", DEFAULT_ROW_CAP)),
            default_days=int(agg_raw.get("default_days", DEFAULT_DAYS)),
            top_n=int(agg_raw.get("top_n", DEFAULT_TOP_N)),
        ),
        database=db,
    )


def load_config(path: Path) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping: {path}")
    return config_from_dict(data)
