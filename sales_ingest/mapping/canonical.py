from __future__ import annotations

import hashlib
import math
import numbers
from collections.abc import Mapping
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any

import numpy as np
import pandas as pd

from ..models.config_models import SerialDateBounds
from ..models.sale_record import NormalizedSaleRecord, SaleCategory
from .aliases import FIELD_ALIASES
from .coerce import (
    map_order_status,
    map_payment_mode,
    to_date,
    to_decimal,
    to_int,
    to_trimmed_str_or_none,
)
from .resolver import resolve_fields

"""Canonicalizer: RawRow -> NormalizedSaleRecord with a content hash.

The canonical key is a pipe-joined string over a small, fixed field subset:

    category | order-or-item id | isbn | day (YYYY-MM-DD) | amount (0.00) | customer

Components are whitespace-collapsed and lower-cased. Only these fields feed the
hash, so column order, incidental whitespace and unrelated extra columns do not
change ``row_hash`` for the same logical transaction.
"""

__all__ = [
    "RowMappingError",
    "canonical_key",
    "canonical_key_for",
    "row_hash",
    "canonicalize",
    "to_json_safe",
]


class RowMappingError(Exception):
    """Raised when a single row cannot be assembled into a record."""


def _norm(value: Any) -> str:
    if value is None:
        return ""
    return " ".join(str(value).split()).lower()


def canonical_key(
    category: SaleCategory,
    order_ref: str | None,
    isbn: str | None,
    when: datetime | None,
    amount: Decimal | None,
    customer_name: str | None,
) -> str:
    day = when.astimezone(timezone.utc).date().isoformat() if when is not None else ""
    amount_text = f"{amount:.2f}" if amount is not None else ""
    parts = [
        category.value,
        _norm(order_ref),
        _norm(isbn),
        day,
        amount_text,
        _norm(customer_name),
    ]
    return "|".join(parts)


def canonical_key_for(record: NormalizedSaleRecord) -> str:
    return canonical_key(
        record.category,
        record.order_no or record.item_code,
        record.isbn,
        record.date,
        record.amount,
        record.customer_name,
    )


def row_hash(key: str) -> str:
    """SHA-256 hex digest (64 chars) of a canonical key."""
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def to_json_safe(value: Any) -> Any:
    """Convert a spreadsheet cell (or nested structure) to plain JSON types.

    Dates become ISO-8601 strings, NaN/NaT become None and numpy scalars
    become Python numbers. Raises RowMappingError for anything else that
    JSON cannot carry.
    """
    if isinstance(value, np.generic):
        value = value.item()
    if value is pd.NaT:
        return None
    if value is None or isinstance(value, (str, bool)):
        return value
    if isinstance(value, (pd.Timestamp, datetime, date, time)):
        return value.isoformat()
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, (numbers.Real, Decimal)):
        f = float(value)
        return f if math.isfinite(f) else None
    if isinstance(value, Mapping):
        return {str(k): to_json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_safe(v) for v in value]
    raise RowMappingError(f"unsupported cell value of type {type(value).__name__}")


def canonicalize(
    row: Any,
    category: SaleCategory,
    bounds: SerialDateBounds | None = None,
) -> NormalizedSaleRecord:
    """Resolve, coerce and hash one source row.

    Coercion never fails; a RowMappingError means the row itself is not
    usable (not a mapping, or carrying values that cannot be preserved in
    the raw payload).
    """
    if not isinstance(row, Mapping):
        raise RowMappingError(f"row is not a mapping (got {type(row).__name__})")

    raw_payload = to_json_safe(row)
    f = resolve_fields(row, FIELD_ALIASES)

    order_no = to_trimmed_str_or_none(f["order_no"])
    item_code = to_trimmed_str_or_none(f["item_code"])
    isbn = to_trimmed_str_or_none(f["isbn"])
    when = to_date(f["date"], bounds)
    amount = to_decimal(f["amount"])
    customer_name = to_trimmed_str_or_none(f["customer_name"])

    key = canonical_key(category, order_no or item_code, isbn, when, amount, customer_name)

    return NormalizedSaleRecord(
        category=category,
        row_hash=row_hash(key),
        raw_payload=raw_payload,
        order_no=order_no,
        order_status=map_order_status(f["order_status"]),
        month=to_trimmed_str_or_none(f["month"]),
        year=to_int(f["year"]),
        date=when,
        isbn=isbn,
        item_code=item_code,
        title=to_trimmed_str_or_none(f["title"]),
        author=to_trimmed_str_or_none(f["author"]),
        publisher=to_trimmed_str_or_none(f["publisher"]),
        category_label=to_trimmed_str_or_none(f["category_label"]),
        description=to_trimmed_str_or_none(f["description"]),
        publisher_code=to_trimmed_str_or_none(f["publisher_code"]),
        qty=to_int(f["qty"]),
        rate=to_decimal(f["rate"]),
        amount=amount,
        discount=to_decimal(f["discount"]),
        tax=to_decimal(f["tax"]),
        shipping=to_decimal(f["shipping"]),
        payment_mode=map_payment_mode(f["payment_mode"]),
        customer_name=customer_name,
        mobile=to_trimmed_str_or_none(f["mobile"]),
        email=to_trimmed_str_or_none(f["email"]),
    )
