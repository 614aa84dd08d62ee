from __future__ import annotations

import math
import numbers
import re
import warnings
from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

import pandas as pd

from ..models.config_models import SerialDateBounds
from ..models.sale_record import OrderStatus, PaymentMode
from .resolver import MISSING

"""Total coercion functions.

Every function here returns None instead of raising: one row's unreadable
cell must become a null field, never a failed batch. Aggregation later
decides what to do with the nulls.
"""

__all__ = [
    "EXCEL_EPOCH",
    "ISO_DATETIME_PATTERN",
    "to_number",
    "to_int",
    "to_decimal",
    "to_date",
    "to_trimmed_str_or_none",
    "month_index",
    "map_payment_mode",
    "map_order_status",
]

# Day zero of spreadsheet serial dates (serial 1 == 1899-12-31).
EXCEL_EPOCH = datetime(1899, 12, 30, tzinfo=timezone.utc)
ISO_DATETIME_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}")

_CENT = Decimal("0.01")
_SEPARATORS = re.compile(r"[\s,]")


def _is_null(value: Any) -> bool:
    if value is None or value is MISSING:
        return True
    if not pd.api.types.is_scalar(value):
        return False
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def to_number(value: Any) -> float | None:
    """Parse a number, tolerating ``"1,500.00"`` and stray whitespace."""
    if _is_null(value) or isinstance(value, bool):
        return None
    if isinstance(value, str):
        s = _SEPARATORS.sub("", value)
        if not s:
            return None
        try:
            n = float(s)
        except ValueError:
            return None
    elif isinstance(value, (numbers.Number, Decimal)):
        try:
            n = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError, OverflowError):
            return None
    else:
        return None
    return n if math.isfinite(n) else None


def to_int(value: Any) -> int | None:
    n = to_number(value)
    return None if n is None else math.trunc(n)


def to_decimal(value: Any) -> Decimal | None:
    """Fixed-point (two places) money value."""
    n = to_number(value)
    if n is None:
        return None
    try:
        return Decimal(str(n)).quantize(_CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return None


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_date(value: Any, bounds: SerialDateBounds | None = None) -> datetime | None:
    """Coerce a cell to a timezone-aware UTC datetime.

    Accepts datetime/date objects, spreadsheet serial numbers (days since
    EXCEL_EPOCH, fractional part = time of day) and date strings. Serial
    values outside ``bounds`` are rejected; without bounds they pass through
    unchecked.
    """
    if _is_null(value) or isinstance(value, bool):
        return None
    if isinstance(value, pd.Timestamp):
        return _as_utc(value.to_pydatetime())
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, (numbers.Number, Decimal)):
        serial = to_number(value)
        if serial is None:
            return None
        if bounds is not None and not bounds.accepts(serial):
            return None
        try:
            return EXCEL_EPOCH + timedelta(days=serial)
        except OverflowError:
            return None
    if isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            try:
                parsed = pd.to_datetime(s, utc=True, errors="coerce")
            except (ValueError, TypeError, OverflowError):
                return None
        if parsed is None or pd.isna(parsed):
            return None
        return _as_utc(parsed.to_pydatetime())
    return None


def to_trimmed_str_or_none(value: Any) -> str | None:
    """Trimmed text, or None for absent / blank cells.

    Integral floats (an ISBN read back as ``9781234567897.0``) render without
    the trailing ``.0``.
    """
    if _is_null(value):
        return None
    if isinstance(value, float) and value.is_integer():
        s = str(int(value))
    elif isinstance(value, (datetime, date)):
        s = value.isoformat()
    else:
        s = str(value)
    s = s.strip()
    return s or None


_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "sept": 9, "oct": 10, "nov": 11, "dec": 12,
}


def month_index(month: Any) -> int | None:
    """1-12 from ``"Jan"``, ``"january"``, ``"Sept"`` or ``"3"``."""
    s = to_trimmed_str_or_none(month)
    if s is None:
        return None
    if s.isdigit():
        n = int(s)
        return n if 1 <= n <= 12 else None
    s = s.lower()
    if s in _MONTHS:
        return _MONTHS[s]
    return _MONTHS.get(s[:3]) if len(s) > 3 else None


_PAYMENT_EXACT = {
    "cash": PaymentMode.CASH,
    "upi": PaymentMode.UPI,
    "card": PaymentMode.CARD,
    "cc": PaymentMode.CARD,
    "creditcard": PaymentMode.CARD,
    "credit card": PaymentMode.CARD,
    "debitcard": PaymentMode.CARD,
    "debit card": PaymentMode.CARD,
    "netbanking": PaymentMode.NET_BANKING,
    "net banking": PaymentMode.NET_BANKING,
    "wallet": PaymentMode.WALLET,
    "cheque": PaymentMode.CHEQUE,
    "banktransfer": PaymentMode.BANK_TRANSFER,
    "bank transfer": PaymentMode.BANK_TRANSFER,
    "cash/upi": PaymentMode.UPI,
    "upi/cash": PaymentMode.UPI,
    "cashupi": PaymentMode.UPI,
}

# Checked in order after the exact table misses.
_PAYMENT_CONTAINS: list[tuple[tuple[str, ...], PaymentMode]] = [
    (("upi",), PaymentMode.UPI),
    (("cash",), PaymentMode.CASH),
    (("card", "credit", "debit"), PaymentMode.CARD),
    (("netbanking", "net banking"), PaymentMode.NET_BANKING),
    (("wallet", "paytm"), PaymentMode.WALLET),
    (("cheque", "check"), PaymentMode.CHEQUE),
    (("bank", "transfer", "neft", "rtgs", "imps"), PaymentMode.BANK_TRANSFER),
]


def map_payment_mode(value: Any) -> PaymentMode | None:
    s = to_trimmed_str_or_none(value)
    if s is None:
        return None
    s = s.lower()
    if s in _PAYMENT_EXACT:
        return _PAYMENT_EXACT[s]
    for needles, mode in _PAYMENT_CONTAINS:
        if any(n in s for n in needles):
            return mode
    return PaymentMode.OTHER


_STATUS_EXACT = {
    "complete": OrderStatus.COMPLETE,
    "completed": OrderStatus.COMPLETE,
    "delivered": OrderStatus.COMPLETE,
    "pending": OrderStatus.PENDING,
    "processing": OrderStatus.PENDING,
    "cancelled": OrderStatus.CANCELLED,
    "canceled": OrderStatus.CANCELLED,
    "refunded": OrderStatus.REFUNDED,
    "refund": OrderStatus.REFUNDED,
    "unknown": OrderStatus.UNKNOWN,
}


# Checked in order after the exact table misses.
_STATUS_CONTAINS: list[tuple[tuple[str, ...], OrderStatus]] = [
    (("refund",), OrderStatus.REFUNDED),
    (("cancel",), OrderStatus.CANCELLED),
    (("deliver",), OrderStatus.COMPLETE),
    (("pending", "processing"), OrderStatus.PENDING),
]


def map_order_status(value: Any) -> OrderStatus | None:
    s = to_trimmed_str_or_none(value)
    if s is None:
        return None
    s = s.lower()
    if s in _STATUS_EXACT:
        return _STATUS_EXACT[s]
    for needles, status in _STATUS_CONTAINS:
        if any(n in s for n in needles):
            return status
    return OrderStatus.UNKNOWN
