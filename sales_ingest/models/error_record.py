from __future__ import annotations

from dataclasses import asdict, dataclass

"""ErrorRecord model for the import error report.

One ErrorRecord describes one source row that did not reach the store, either
because it could not be mapped or because the bulk insert of its chunk failed.
The serialized shape is fixed by contracts/error_report_schema.json:

    {"sheet": str, "index": int, "error": str}
"""

__all__ = [
    "ErrorRecord",
    "MAPPING_FAILED",
    "INSERT_FAILED",
]

# Reason prefix recorded for rows whose chunk could not be inserted.
INSERT_FAILED = "insert_failed"
# Fallback reason when a mapping exception carries no message.
MAPPING_FAILED = "map_failed"


@dataclass(frozen=True)
class ErrorRecord:
    """Per-row failure entry.

    Attributes:
        sheet: Source sheet name (or category label for non-workbook batches)
        index: 0-based position of the row within its sheet
        error: Human readable reason
    """
    sheet: str
    index: int
    error: str

    @staticmethod
    def create(sheet: str, index: int, error: BaseException | str | None) -> ErrorRecord:
        """Build a record from an exception or message, never leaving ``error`` empty."""
        if isinstance(error, BaseException):
            message = str(error) or type(error).__name__
        else:
            message = error or MAPPING_FAILED
        return ErrorRecord(sheet=sheet, index=index, error=message)

    def to_dict(self) -> dict[str, object]:
        # 追加キー阻止: dataclass -> dict only
        return asdict(self)
