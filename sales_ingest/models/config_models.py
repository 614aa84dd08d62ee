from __future__ import annotations

from dataclasses import dataclass, field

from .sale_record import SaleCategory

"""Config dataclasses for the sales importer.

Built by sales_ingest.config.loader from the validated YAML document.
Environment variables take precedence over DatabaseConfig values at
connection time (see sales_ingest.db.connection).
"""

DEFAULT_CHUNK_SIZE = 500
DEFAULT_ROW_CAP = 100_000
DEFAULT_DAYS = 90
DEFAULT_TOP_N = 10


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection fallback values."""
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class SerialDateBounds:
    """Accepted range for spreadsheet serial-day dates.

    None on either side means no bound. Serial values outside the range
    coerce to null instead of producing an implausible date.
    """
    min_serial: float | None = None
    max_serial: float | None = None

    def accepts(self, serial: float) -> bool:
        if self.min_serial is not None and serial < self.min_serial:
            return False
        if self.max_serial is not None and serial > self.max_serial:
            return False
        return True


@dataclass(frozen=True)
class AggregationConfig:
    row_cap: int = DEFAULT_ROW_CAP  # single-fetch window per query
    default_days: int = DEFAULT_DAYS
    top_n: int = DEFAULT_TOP_N


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object."""
    source_directory: str  # scanned for .xlsx (non-recursive)
    chunk_size: int = DEFAULT_CHUNK_SIZE
    header_row: int = 1  # 1-based header line inside each sheet
    error_report_dir: str = "./logs"
    sheet_categories: dict[str, SaleCategory] = field(default_factory=dict)
    null_sentinels: set[str] | None = None  # 大文字化済
    serial_dates: SerialDateBounds = field(default_factory=SerialDateBounds)
    aggregation: AggregationConfig = field(default_factory=AggregationConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
