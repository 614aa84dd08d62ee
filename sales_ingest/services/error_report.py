from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import ErrorRecord

"""Import error report: buffered ErrorRecords flushed to one JSON side file.

- One file per import invocation, written only when failures exist
- Name: ``import-errors-YYYYMMDD-HHMMSS-ffffff.json`` (UTC)
- Shape fixed by contracts/error_report_schema.json: {"errors": [...]}
"""

__all__ = [
    "ErrorReport",
    "DEFAULT_REPORT_DIR",
]

DEFAULT_REPORT_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S-%f"


class ErrorReport:
    """In-memory buffer of per-row failures. ``flush`` writes the side file.

    The path is decided on first flush; later flushes of the same buffer
    rewrite the same file with the full failure list.
    """

    def __init__(self, directory: Path | str | None = None) -> None:
        self.directory = Path(directory) if directory is not None else DEFAULT_REPORT_DIR
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None

    @property
    def records(self) -> list[ErrorRecord]:
        return list(self._records)

    @property
    def file_path(self) -> Path | None:
        return self._file_path

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def extend(self, records: list[ErrorRecord]) -> None:
        self._records.extend(records)

    def __len__(self) -> int:
        return len(self._records)

    def to_dict(self) -> dict[str, object]:
        return {"errors": [r.to_dict() for r in self._records]}

    def flush(self) -> Path | None:
        """Write the report and return its path, or None when nothing failed."""
        if not self._records:
            return None
        if self._file_path is None:
            self.directory.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self.directory / f"import-errors-{stamp}.json"
        self._file_path.write_text(
            json.dumps(self.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8"
        )
        return self._file_path
