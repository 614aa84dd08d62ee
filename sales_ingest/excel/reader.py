from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd

"""Workbook reader: .xlsx sheets -> lists of RawRow dicts.

Sheets are read without a header so that the header line can be chosen per
config (``header_row``, 1-based). Entirely empty lines are dropped. Cell
values are passed through untouched apart from null handling: typing is the
coercer's job.
"""

__all__ = [
    "SheetHeaderError",
    "SheetData",
    "list_sheet_names",
    "read_excel_file",
    "normalize_sheet",
]


class SheetHeaderError(Exception):
    """Raised when the configured header line is missing."""


@dataclass
class SheetData:
    sheet_name: str
    columns: list[str]
    rows: list[dict[str, Any]]  # RawRow (列名→値)


def list_sheet_names(path: Path) -> list[str]:
    with pd.ExcelFile(path) as xls:
        return [str(n) for n in xls.sheet_names]


def read_excel_file(
    path: Path,
    target_sheets: Iterable[str] | None = None,
    null_sentinels: Iterable[str] | None = None,
) -> dict[str, pd.DataFrame]:
    """Read a workbook returning raw (headerless) DataFrames keyed by sheet name.

    With ``null_sentinels`` only those strings (plus empty cells) become NaN;
    pandas' default NA strings such as "NA" or "null" are then kept as text.
    """
    wanted = set(target_sheets) if target_sheets is not None else None
    if null_sentinels:
        na_values: list[str] | None = ["", *null_sentinels]
        keep_default_na = False
    else:
        na_values = None
        keep_default_na = True
    dfs: dict[str, pd.DataFrame] = {}
    with pd.ExcelFile(path) as xls:
        for name in xls.sheet_names:
            if wanted is not None and str(name) not in wanted:
                continue
            dfs[str(name)] = xls.parse(
                name, header=None, keep_default_na=keep_default_na, na_values=na_values
            )
    return dfs


def _column_names(header: list[Any]) -> list[str]:
    names: list[str] = []
    for i, raw in enumerate(header):
        if raw is None or (isinstance(raw, float) and pd.isna(raw)):
            names.append(f"Unnamed: {i}")
        else:
            names.append(str(raw).strip())
    return names


def normalize_sheet(
    df: pd.DataFrame,
    sheet_name: str,
    header_row: int = 1,
    null_sentinels: set[str] | None = None,
) -> SheetData:
    """Turn a headerless sheet into RawRow dicts.

    Steps:
    1. Take line ``header_row`` (1-based) as column names
    2. Every later line becomes one row; fully empty lines are skipped
    3. NaN / NaT and strings in ``null_sentinels`` (compared upper-cased) -> None
    4. Duplicate column names keep their first occurrence
    """
    if df.shape[0] < header_row:
        raise SheetHeaderError(f"sheet '{sheet_name}' lacks header row {header_row}")
    columns = _column_names(df.iloc[header_row - 1].tolist())
    data_part = df.iloc[header_row:]
    rows: list[dict[str, Any]] = []
    for _, raw in data_part.iterrows():
        if raw.isna().all():
            continue
        row_dict: dict[str, Any] = {}
        for col, val in zip(columns, raw.tolist(), strict=False):
            if col in row_dict:
                continue
            if pd.api.types.is_scalar(val) and pd.isna(val):
                row_dict[col] = None
                continue
            if isinstance(val, str) and null_sentinels and val.strip().upper() in null_sentinels:
                row_dict[col] = None
                continue
            row_dict[col] = val
        rows.append(row_dict)

    return SheetData(sheet_name=sheet_name, columns=columns, rows=rows)
