from __future__ import annotations

import statistics
from dataclasses import dataclass, field
from pathlib import Path

from .error_record import ErrorRecord
from .sale_record import SaleCategory

"""Import result models.

SheetOutcome covers one batch of rows (usually one workbook sheet) and
ImportOutcome the whole invocation. Neither is persisted; ImportOutcome is
returned to the caller and its failures are optionally written to the error
report side file.
"""


@dataclass(frozen=True)
class SheetOutcome:
    """Per-sheet import statistics, including chunk timing."""
    sheet: str
    category: SaleCategory
    total_rows: int  # rows seen
    mapped_rows: int  # rows that produced a record
    inserted_rows: int  # rows actually written (conflicts skipped)
    failed_rows: int  # mapping failures + rows of failed chunks
    elapsed_seconds: float = 0.0
    total_chunks: int = 0
    avg_chunk_seconds: float = 0.0
    p95_chunk_seconds: float = 0.0

    @property
    def skipped_duplicates(self) -> int:
        """Mapped rows that reached the store but collided on row_hash."""
        return max(self.mapped_rows - self.failed_rows_in_chunks - self.inserted_rows, 0)

    @property
    def failed_rows_in_chunks(self) -> int:
        return self.failed_rows - (self.total_rows - self.mapped_rows)


@dataclass(frozen=True)
class ImportOutcome:
    """Result of one import invocation (ImportOutcome).

    ``error_report_path`` is set only when at least one failure was recorded
    and the report was written.
    """
    total_rows: int
    inserted: int
    errors: list[ErrorRecord] = field(default_factory=list)
    error_report_path: Path | None = None
    elapsed_seconds: float = 0.0
    sheets: list[SheetOutcome] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def skipped_duplicates(self) -> int:
        return sum(s.skipped_duplicates for s in self.sheets)

    @property
    def throughput_rows_per_sec(self) -> float:
        if self.elapsed_seconds <= 0:
            return 0.0
        return self.total_rows / self.elapsed_seconds

    def to_dict(self) -> dict[str, object]:
        """Caller-facing shape: totalRows, inserted, errors, errorReportPath."""
        return {
            "totalRows": self.total_rows,
            "inserted": self.inserted,
            "errors": self.error_count,
            "errorReportPath": str(self.error_report_path) if self.error_report_path else None,
        }


class BatchStatsAccumulator:
    """Accumulates chunk insert timings for SheetOutcome."""

    def __init__(self) -> None:
        self.batch_times: list[float] = []

    def add_batch_time(self, elapsed_seconds: float) -> None:
        self.batch_times.append(elapsed_seconds)

    def get_stats(self) -> tuple[int, float, float]:
        """Return (total_batches, avg_batch_seconds, p95_batch_seconds)."""
        if not self.batch_times:
            return (0, 0.0, 0.0)

        total_batches = len(self.batch_times)
        avg_batch_seconds = statistics.mean(self.batch_times)

        if total_batches == 1:
            p95_batch_seconds = self.batch_times[0]
        else:
            # 19th of 20 inclusive quantiles
            p95_batch_seconds = statistics.quantiles(
                self.batch_times, n=20, method='inclusive'
            )[18]

        return (total_batches, avg_batch_seconds, p95_batch_seconds)
