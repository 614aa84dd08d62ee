#!/usr/bin/env python3
"""Synthetic sales workbook generator.

Writes one workbook with a sheet per source format so that the importer and
the aggregates can be exercised without real exports:

- Online:               order numbers, ISO date strings, Selling Price
- Offline-CashUPICC:    Trnsdocdate serial days, BookCode/BookName, OUT, BOOKRATE
- RajRadha Event:       Month + Year only, Rate and Amount
- Lok Event:            native dates, Price and Total
- Offline Legacy:       serial Date, Qty and Rate only (no title, no amount)

Every sheet carries its header on the first line (header_row: 1).
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

EXCEL_EPOCH = pd.Timestamp("1899-12-30")
TITLES = [
    "Bhagavad Gita As It Is", "Srimad Bhagavatam Vol 1", "Science of Self Realization",
    "Nectar of Devotion", "Krishna Book", "Perfect Questions Perfect Answers",
]
MODES = ["Cash", "UPI", "CC", "cash/upi", "NEFT", "Paytm"]
STATUSES = ["Delivered", "Processing", "Cancelled", "Refunded"]
NAMES = ["Asha", "Ravi", "Meera", "Arjun", "Kavya", "Dev"]


def _dates(rng: np.random.Generator, rows: int, start: str, end: str) -> pd.Series:
    span = pd.date_range(start, end, freq="D")
    return pd.Series(rng.choice(span, rows))


def _online(rng: np.random.Generator, rows: int) -> pd.DataFrame:
    dates = _dates(rng, rows, "2024-01-01", "2024-06-30")
    qty = rng.integers(1, 5, rows)
    price = rng.choice([150, 250, 350, 1500], rows)
    return pd.DataFrame({
        "Order No": [f"ON-{100000 + i}" for i in range(rows)],
        "Date": dates.dt.strftime("%Y-%m-%dT%H:%M:%S"),
        "ISBN": rng.integers(9_780_000_000_000, 9_789_999_999_999, rows),
        "Title": rng.choice(TITLES, rows),
        "Qty": qty,
        "Selling Price": (qty * price).astype(float),
        "Payment Mode": rng.choice(MODES, rows),
        "Order Status": rng.choice(STATUSES, rows),
        "Customer Name": rng.choice(NAMES, rows),
        "Email": [f"{n.lower()}@example.com" for n in rng.choice(NAMES, rows)],
    })


def _offline(rng: np.random.Generator, rows: int) -> pd.DataFrame:
    dates = _dates(rng, rows, "2024-01-01", "2024-06-30")
    return pd.DataFrame({
        "Trnsdocdate": (dates - EXCEL_EPOCH).dt.days,
        "BookCode": [f"BK{1000 + int(i)}" for i in rng.integers(0, 500, rows)],
        "BookName": rng.choice(TITLES, rows),
        "OUT": rng.integers(1, 10, rows),
        "BOOKRATE": [f"{v:,.2f}" for v in rng.choice([150, 250, 1500], rows)],
        "Mode": rng.choice(MODES, rows),
    })


def _rajradha(rng: np.random.Generator, rows: int) -> pd.DataFrame:
    qty = rng.integers(1, 6, rows)
    rate = rng.choice([100, 200, 300], rows)
    return pd.DataFrame({
        "Month": rng.choice(["Jan", "Feb", "March", "4", "Sept"], rows),
        "Year": 2024,
        "Item Code": [f"RR-{i}" for i in range(rows)],
        "Book Title": rng.choice(TITLES + [""], rows),
        "Quantity": qty,
        "Rate": rate,
        "Amount": qty * rate,
    })


def _lok(rng: np.random.Generator, rows: int) -> pd.DataFrame:
    qty = rng.integers(1, 4, rows)
    price = rng.choice([99.5, 199.0, 499.99], rows)
    return pd.DataFrame({
        "Txn Date": _dates(rng, rows, "2024-03-01", "2024-03-31"),
        "Title": rng.choice(TITLES, rows),
        "Qty": qty,
        "Price": price,
        "Total": np.round(qty * price, 2),
        "Customer": rng.choice(NAMES, rows),
        "Mobile": [f"98{int(n):08d}" for n in rng.integers(0, 10**8, rows)],
    })


def _legacy(rng: np.random.Generator, rows: int) -> pd.DataFrame:
    dates = _dates(rng, rows, "2024-01-01", "2024-02-28")
    return pd.DataFrame({
        "Date": (dates - EXCEL_EPOCH).dt.days,
        "Qty": [str(v) for v in rng.integers(1, 4, rows)],
        "Rate": [f"{v:,.2f}" for v in rng.choice([500, 1500], rows)],
    })


SHEETS: dict[str, Any] = {
    "Online": _online,
    "Offline-CashUPICC Sales": _offline,
    "RajRadha Event": _rajradha,
    "Lok Event": _lok,
    "Offline Legacy": _legacy,
}


def create_workbook(output_path: Path, rows: int, seed: int = 42, duplicate_ratio: float = 0.0) -> None:
    """Write all five sheets; ``duplicate_ratio`` re-appends that share of rows."""
    rng = np.random.default_rng(seed)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
        for sheet_name, build in SHEETS.items():
            df = build(rng, rows)
            dup = int(rows * duplicate_ratio)
            if dup:
                df = pd.concat([df, df.head(dup)], ignore_index=True)
            df.to_excel(writer, sheet_name=sheet_name, index=False)
    print(f"Created Excel file: {output_path}")
    print(f"  Sheets: {len(SHEETS)} ({', '.join(SHEETS)})")
    print(f"  Rows per sheet: {rows} (+ {int(rows * duplicate_ratio)} duplicates)")


def main() -> int:
    parser = argparse.ArgumentParser(description="Generate a synthetic multi-format sales workbook")
    parser.add_argument("output", type=Path, help="Output .xlsx path")
    parser.add_argument("--rows", type=int, default=1_000, help="Rows per sheet (default: 1,000)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    parser.add_argument(
        "--duplicate-ratio", type=float, default=0.0,
        help="Share of rows appended again to exercise skip-on-conflict (0-1)",
    )
    args = parser.parse_args()

    if args.rows <= 0:
        print("Error: --rows must be positive", file=sys.stderr)
        return 1
    if not 0 <= args.duplicate_ratio <= 1:
        print("Error: --duplicate-ratio must be within 0..1", file=sys.stderr)
        return 1

    create_workbook(args.output, args.rows, args.seed, args.duplicate_ratio)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
