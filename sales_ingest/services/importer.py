from __future__ import annotations

import logging
import re
import time
from collections import Counter
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..db.store import SaleStore
from ..excel.reader import SheetHeaderError, normalize_sheet, read_excel_file
from ..mapping.canonical import canonical_key_for, canonicalize
from ..models.config_models import DEFAULT_CHUNK_SIZE, ImportConfig, SerialDateBounds
from ..models.error_record import INSERT_FAILED, ErrorRecord
from ..models.processing_result import BatchStatsAccumulator, ImportOutcome, SheetOutcome
from ..models.sale_record import NormalizedSaleRecord, SaleCategory
from .error_report import ErrorReport
from .progress import ChunkProgress

"""Batch importer: RawRow lists -> chunked skip-on-conflict inserts.

Flow per batch (usually one workbook sheet):
1. Map every row (resolve + coerce + canonicalize). A row that cannot be
   assembled is recorded by index and left out; the batch continues.
2. Split the mapped records into fixed-size chunks (default 500).
3. Insert chunks strictly one after another. A failing chunk records each of
   its rows as failed and the next chunk still runs.
4. Flush the collected failures to one error report per invocation.

Because every chunk commits on its own and conflicts on row_hash are skipped,
an interrupted import can simply be re-run from the start.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "ImportProcessingError",
    "SheetPreview",
    "import_batch",
    "import_rows",
    "import_directory",
    "import_workbook",
    "map_rows",
    "preview_sheet",
    "resolve_category",
    "scan_excel_files",
    "sheet_matches",
]


class ImportProcessingError(Exception):
    """Fatal import error (missing source directory, unreadable workbook)."""


def _normalize_name(text: str | None) -> str:
    return re.sub(r"[^a-z0-9]+", "", str(text or "").lower())


def _chunks(items: Sequence[Any], size: int) -> Iterator[Sequence[Any]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


def map_rows(
    rows: Iterable[Any],
    category: SaleCategory,
    sheet: str,
    bounds: SerialDateBounds | None = None,
) -> tuple[list[tuple[int, NormalizedSaleRecord]], list[ErrorRecord]]:
    """Map rows to records, returning (index, record) pairs and per-row errors."""
    mapped: list[tuple[int, NormalizedSaleRecord]] = []
    errors: list[ErrorRecord] = []
    for index, row in enumerate(rows):
        try:
            mapped.append((index, canonicalize(row, category, bounds)))
        except Exception as e:
            logger.debug("row mapping failed sheet=%s index=%d error=%s", sheet, index, e)
            errors.append(ErrorRecord.create(sheet, index, e))
    return mapped, errors


def import_rows(
    rows: Sequence[Any],
    category: SaleCategory,
    store: SaleStore,
    report: ErrorReport,
    *,
    sheet: str | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    bounds: SerialDateBounds | None = None,
) -> SheetOutcome:
    """Import one batch into ``store``, appending its failures to ``report``."""
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1 (got {chunk_size})")
    sheet_name = sheet or category.label
    start = time.perf_counter()

    mapped, errors = map_rows(rows, category, sheet_name, bounds)
    report.extend(errors)
    failed = len(errors)
    inserted = 0
    stats = BatchStatsAccumulator()
    chunks = list(_chunks(mapped, chunk_size))

    with ChunkProgress(len(chunks), description=f"{sheet_name}") as progress:
        for chunk_no, chunk in enumerate(chunks, start=1):
            records = [rec for _, rec in chunk]
            chunk_start = time.perf_counter()
            try:
                written = store.insert_chunk(category, records)
            except Exception as e:
                stats.add_batch_time(time.perf_counter() - chunk_start)
                logger.error(
                    "chunk failed sheet=%s chunk=%d/%d rows=%d error=%s",
                    sheet_name, chunk_no, len(chunks), len(records), e,
                )
                for index, _ in chunk:
                    report.append(ErrorRecord.create(sheet_name, index, f"{INSERT_FAILED}: {e}"))
                failed += len(chunk)
                progress.advance(inserted=inserted, failed=failed)
                continue
            stats.add_batch_time(time.perf_counter() - chunk_start)
            inserted += written
            logger.info(
                "chunk ok sheet=%s table=%s chunk=%d/%d rows=%d inserted=%d skipped=%d",
                sheet_name, category.table_name, chunk_no, len(chunks),
                len(records), written, len(records) - written,
            )
            progress.advance(inserted=inserted, failed=failed)

    total_chunks, avg_chunk, p95_chunk = stats.get_stats()
    return SheetOutcome(
        sheet=sheet_name,
        category=category,
        total_rows=len(rows),
        mapped_rows=len(mapped),
        inserted_rows=inserted,
        failed_rows=failed,
        elapsed_seconds=time.perf_counter() - start,
        total_chunks=total_chunks,
        avg_chunk_seconds=avg_chunk,
        p95_chunk_seconds=p95_chunk,
    )


def _outcome(sheets: list[SheetOutcome], report: ErrorReport, started: float) -> ImportOutcome:
    try:
        path = report.flush()
    except OSError as e:
        # 書き込み済みのチャンクは確定済みなので、結果は返す
        logger.error(
            "error report write failed dir=%s errors=%d error=%s",
            report.directory, len(report), e,
        )
        path = None
    if path is not None:
        logger.warning("error report written path=%s errors=%d", path, len(report))
    return ImportOutcome(
        total_rows=sum(s.total_rows for s in sheets),
        inserted=sum(s.inserted_rows for s in sheets),
        errors=report.records,
        error_report_path=path,
        elapsed_seconds=time.perf_counter() - started,
        sheets=sheets,
    )


def import_batch(
    rows: Sequence[Any],
    category: SaleCategory,
    store: SaleStore,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    *,
    sheet: str | None = None,
    report_dir: Path | str | None = None,
    bounds: SerialDateBounds | None = None,
) -> ImportOutcome:
    """Import ``rows`` of one category and return the ImportOutcome.

    Partial failure is a normal result: the outcome carries the failures and
    the path of the written error report instead of raising.
    """
    started = time.perf_counter()
    report = ErrorReport(report_dir)
    outcome = import_rows(
        rows, category, store, report, sheet=sheet, chunk_size=chunk_size, bounds=bounds
    )
    return _outcome([outcome], report, started)


# ---------------------------------------------------------------------------
# Workbook level
# ---------------------------------------------------------------------------

def scan_excel_files(directory: Path) -> list[Path]:
    """Return the .xlsx files of ``directory`` (non-recursive, sorted by name)."""
    if not directory.exists():
        raise ImportProcessingError(f"Directory not found: {directory}")
    if not directory.is_dir():
        raise ImportProcessingError(f"Path is not a directory: {directory}")
    try:
        return sorted(
            p for p in directory.iterdir()
            if p.is_file() and p.suffix.lower() == ".xlsx" and not p.name.startswith("~$")
        )
    except OSError as e:
        raise ImportProcessingError(f"Error reading directory {directory}: {e}") from e


def resolve_category(
    sheet_name: str,
    file_name: str | None = None,
    target: SaleCategory | None = None,
    overrides: dict[str, SaleCategory] | None = None,
) -> SaleCategory:
    """Pick the category for a sheet.

    Order: explicit target, config override, sheet name, workbook file name,
    then OFFLINE.
    """
    if target is not None:
        return target
    if overrides and sheet_name in overrides:
        return overrides[sheet_name]
    return (
        SaleCategory.from_name(sheet_name)
        or SaleCategory.from_name(Path(file_name).stem if file_name else None)
        or SaleCategory.OFFLINE
    )


def sheet_matches(sheet_name: str, only: str | None) -> bool:
    """``--only`` filter: same category keyword, or the sheet name contains it."""
    if not only:
        return True
    wanted = SaleCategory.from_name(only)
    if wanted is not None and SaleCategory.from_name(sheet_name) is wanted:
        return True
    needle = _normalize_name(only)
    return bool(needle) and needle in _normalize_name(sheet_name)


def _read_sheets(path: Path, config: ImportConfig) -> Iterator[tuple[str, list[dict[str, Any]]]]:
    try:
        frames = read_excel_file(path, null_sentinels=config.null_sentinels)
    except Exception as e:
        raise ImportProcessingError(f"cannot read workbook {path.name}: {e}") from e
    for name, df in frames.items():
        try:
            data = normalize_sheet(df, name, config.header_row, config.null_sentinels)
        except SheetHeaderError as e:
            logger.warning("sheet skipped file=%s sheet=%s reason=%s", path.name, name, e)
            continue
        yield name, data.rows


def import_workbook(
    path: Path,
    store: SaleStore,
    config: ImportConfig,
    report: ErrorReport,
    *,
    target: SaleCategory | None = None,
    only: str | None = None,
) -> list[SheetOutcome]:
    """Import every (matching) sheet of one workbook."""
    outcomes: list[SheetOutcome] = []
    for sheet_name, rows in _read_sheets(path, config):
        if not sheet_matches(sheet_name, only):
            logger.debug("sheet filtered file=%s sheet=%s only=%s", path.name, sheet_name, only)
            continue
        if not rows:
            logger.info("sheet empty file=%s sheet=%s", path.name, sheet_name)
            continue
        category = resolve_category(sheet_name, path.name, target, config.sheet_categories)
        logger.info(
            "sheet start file=%s sheet=%s category=%s rows=%d",
            path.name, sheet_name, category.value, len(rows),
        )
        outcomes.append(
            import_rows(
                rows,
                category,
                store,
                report,
                sheet=sheet_name,
                chunk_size=config.chunk_size,
                bounds=config.serial_dates,
            )
        )
    return outcomes


def import_directory(
    config: ImportConfig,
    store: SaleStore,
    *,
    files: Sequence[Path] | None = None,
    target: SaleCategory | None = None,
    only: str | None = None,
) -> ImportOutcome:
    """Import every workbook of the configured source directory (or ``files``)."""
    started = time.perf_counter()
    paths = list(files) if files is not None else scan_excel_files(Path(config.source_directory))
    for p in paths:
        if not p.exists():
            raise ImportProcessingError(f"File not found: {p}")
    if not paths:
        logger.warning("no workbooks found directory=%s", config.source_directory)

    report = ErrorReport(config.error_report_dir)
    sheets: list[SheetOutcome] = []
    for path in paths:
        logger.info("file start file=%s", path.name)
        sheets.extend(import_workbook(path, store, config, report, target=target, only=only))
    return _outcome(sheets, report, started)


# ---------------------------------------------------------------------------
# Preview (no insert)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SheetPreview:
    """Dry mapping statistics for one sheet.

    ``top_duplicate_keys`` lists canonical keys shared by more than one row,
    which explains imports that insert fewer rows than the sheet holds.
    """
    sheet: str
    category: SaleCategory
    total_rows: int
    mapped_rows: int
    failed_rows: int
    distinct_hashes: int
    top_duplicate_keys: list[tuple[str, int]] = field(default_factory=list)
    sample: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "sheet": self.sheet,
            "category": self.category.value,
            "totalRows": self.total_rows,
            "mapped": self.mapped_rows,
            "failed": self.failed_rows,
            "distinctHashes": self.distinct_hashes,
            "topDuplicateKeys": [{"key": k, "count": n} for k, n in self.top_duplicate_keys],
            "sample": self.sample,
        }


def preview_sheet(
    rows: Sequence[Any],
    category: SaleCategory,
    *,
    sheet: str | None = None,
    bounds: SerialDateBounds | None = None,
    top: int = 10,
    sample_size: int = 3,
) -> SheetPreview:
    sheet_name = sheet or category.label
    mapped, errors = map_rows(rows, category, sheet_name, bounds)
    keys = Counter(canonical_key_for(rec) for _, rec in mapped)
    duplicates = [(k, n) for k, n in keys.most_common() if n > 1][:top]
    sample = [
        {
            "index": index,
            "rowHash": rec.row_hash,
            "key": canonical_key_for(rec),
            "date": rec.date.date().isoformat() if rec.date else None,
            "title": rec.title,
            "amount": str(rec.amount) if rec.amount is not None else None,
        }
        for index, rec in mapped[:sample_size]
    ]
    return SheetPreview(
        sheet=sheet_name,
        category=category,
        total_rows=len(rows),
        mapped_rows=len(mapped),
        failed_rows=len(errors),
        distinct_hashes=len({rec.row_hash for _, rec in mapped}),
        top_duplicate_keys=duplicates,
        sample=sample,
    )
