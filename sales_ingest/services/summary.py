from __future__ import annotations

from ..models.processing_result import ImportOutcome

"""SUMMARY line rendering for an import run.

Format:
SUMMARY sheets={n} rows={total} inserted={inserted} skipped={dup} failed={errors}
elapsed_sec={elapsed} throughput_rps={throughput} error_report={path|-}

The leading ``SUMMARY`` label is added by the logging formatter.
"""


def _format_number(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # 指数表記を避ける
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.2f}"


def render_summary_line(outcome: ImportOutcome) -> str:
    """Render the key=value summary for an ImportOutcome.

    >>> render_summary_line(ImportOutcome(total_rows=10, inserted=8, elapsed_seconds=2.0))
    'sheets=0 rows=10 inserted=8 skipped=0 failed=0 elapsed_sec=2 throughput_rps=5 error_report=-'
    """
    report = str(outcome.error_report_path) if outcome.error_report_path else "-"
    return (
        f"sheets={len(outcome.sheets)} "
        f"rows={outcome.total_rows} "
        f"inserted={outcome.inserted} "
        f"skipped={outcome.skipped_duplicates} "
        f"failed={outcome.error_count} "
        f"elapsed_sec={_format_number(outcome.elapsed_seconds)} "
        f"throughput_rps={_format_number(outcome.throughput_rows_per_sec)} "
        f"error_report={report}"
    )
