from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Any

from ..aggregate.aggregator import count, summarize
from ..aggregate.strategies import DATE_CHAIN, build_date_chain, resolve_date
from ..db.store import SaleStore
from ..models.aggregate_view import AggregateWindow, CountsView, SummaryView, round_money
from ..models.config_models import AggregationConfig, SerialDateBounds
from ..models.sale_record import NormalizedSaleRecord, SaleCategory

"""Query surface behind the read endpoints and CLI reports.

Each query fetches a bounded newest-first window (``row_cap`` records) in a
single call and aggregates it in memory.

Window rules:
- summary: start = startDate, else now - days (default 90); end = endDate
- counts: a window only when parameters are given; ``days`` alone means
  [now - days, now]
- a date-only endDate covers that whole day
"""

logger = logging.getLogger(__name__)

__all__ = [
    "InvalidWindowError",
    "DEFAULT_PAGE_LIMIT",
    "MAX_PAGE_LIMIT",
    "FILTER_SCAN_FACTOR",
    "MAX_FILTER_SCAN",
    "parse_days",
    "parse_timestamp",
    "summary_window",
    "counts_window",
    "sales_summary",
    "sales_counts",
    "list_sales",
    "record_to_dict",
]

DEFAULT_PAGE_LIMIT = 200
MAX_PAGE_LIMIT = 1000
FILTER_SCAN_FACTOR = 10
MAX_FILTER_SCAN = 5000

_DIGITS = re.compile(r"^\d+$")
_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class InvalidWindowError(ValueError):
    """Malformed query parameters (request-level failure)."""


def parse_days(value: Any) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise InvalidWindowError(f"days must be a non-negative integer (got {value!r})")
    if isinstance(value, int):
        if value < 0:
            raise InvalidWindowError(f"days must be a non-negative integer (got {value})")
        return value
    if isinstance(value, str) and _DIGITS.match(value.strip()):
        return int(value.strip())
    raise InvalidWindowError(f"days must be a non-negative integer (got {value!r})")


def parse_timestamp(value: Any, *, end_of_day: bool = False) -> datetime | None:
    """ISO-8601 date-time (``Z`` accepted); naive values are read as UTC.

    A bare ``YYYY-MM-DD`` means midnight, or the last instant of that day when
    ``end_of_day`` is set (used for inclusive ``endDate`` bounds).
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            raise InvalidWindowError(f"invalid timestamp {value!r}") from e
        if end_of_day and _DATE_ONLY.match(text):
            parsed += timedelta(days=1, microseconds=-1)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _check_order(start: datetime | None, end: datetime | None) -> None:
    if start is not None and end is not None and start > end:
        raise InvalidWindowError("startDate must not be after endDate")


def summary_window(
    days: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    default_days: int = 90,
    now: datetime | None = None,
) -> AggregateWindow:
    now = now or datetime.now(timezone.utc)
    _check_order(start, end)
    since = start or now - timedelta(days=days if days is not None else default_days)
    return AggregateWindow(start=since, end=end)


def counts_window(
    days: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    now: datetime | None = None,
) -> AggregateWindow:
    if days and start is None and end is None:
        now = now or datetime.now(timezone.utc)
        return AggregateWindow(start=now - timedelta(days=days), end=now)
    _check_order(start, end)
    return AggregateWindow(start=start, end=end)


def sales_summary(
    store: SaleStore,
    category: SaleCategory,
    *,
    days: Any = None,
    start: Any = None,
    end: Any = None,
    config: AggregationConfig | None = None,
    bounds: SerialDateBounds | None = None,
    now: datetime | None = None,
) -> SummaryView:
    config = config or AggregationConfig()
    window = summary_window(
        parse_days(days),
        parse_timestamp(start),
        parse_timestamp(end, end_of_day=True),
        config.default_days,
        now,
    )
    records = store.fetch_recent(category, config.row_cap)
    logger.debug(
        "summary category=%s fetched=%d start=%s end=%s",
        category.value, len(records), window.start, window.end,
    )
    return summarize(records, window, config.top_n, bounds)


def sales_counts(
    store: SaleStore,
    category: SaleCategory,
    *,
    days: Any = None,
    start: Any = None,
    end: Any = None,
    config: AggregationConfig | None = None,
    bounds: SerialDateBounds | None = None,
    now: datetime | None = None,
) -> CountsView:
    config = config or AggregationConfig()
    window = counts_window(
        parse_days(days), parse_timestamp(start), parse_timestamp(end, end_of_day=True), now
    )
    records = store.fetch_recent(category, config.row_cap)
    logger.debug("counts category=%s fetched=%d", category.value, len(records))
    return count(records, window, bounds)


def record_to_dict(record: NormalizedSaleRecord) -> dict[str, Any]:
    """API shape of a stored record: id as string, money as 2-dp numbers."""
    out: dict[str, Any] = {"id": str(record.id) if record.id is not None else None}
    out["category"] = record.category.value
    for name in (
        "order_no", "order_status", "month", "year", "date", "isbn", "item_code",
        "title", "author", "publisher", "category_label", "description",
        "publisher_code", "qty", "rate", "amount", "discount", "tax", "shipping",
        "payment_mode", "customer_name", "mobile", "email", "row_hash",
    ):
        value = getattr(record, name)
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, Decimal):
            value = round_money(value)
        elif isinstance(value, datetime):
            value = value.isoformat()
        out[_camel(name)] = value
    out["rawPayload"] = record.raw_payload
    return out


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(p.capitalize() for p in rest)


def _parse_limit(value: Any) -> int:
    if value is None or value == "":
        return DEFAULT_PAGE_LIMIT
    text = str(value).strip()
    if not _DIGITS.match(text):
        raise InvalidWindowError(f"limit must be an integer (got {value!r})")
    limit = int(text)
    if not 1 <= limit <= MAX_PAGE_LIMIT:
        raise InvalidWindowError(f"limit must be between 1 and {MAX_PAGE_LIMIT}")
    return limit


def _parse_cursor(value: Any) -> int | None:
    if value in (None, ""):
        return None
    text = str(value).strip()
    if not _DIGITS.match(text):
        raise InvalidWindowError(f"cursorId must be an integer (got {value!r})")
    return int(text)


def list_sales(
    store: SaleStore,
    category: SaleCategory,
    *,
    limit: Any = None,
    cursor_id: Any = None,
    q: str | None = None,
    start: Any = None,
    end: Any = None,
    bounds: SerialDateBounds | None = None,
) -> dict[str, Any]:
    """Newest-first page; ``nextCursorId`` is set while more rows may follow.

    ``q`` is a case-insensitive substring match on title or customer name.
    With ``start``/``end`` the store is scanned for up to ``FILTER_SCAN_FACTOR``
    times ``limit`` rows (at most ``MAX_FILTER_SCAN``) and only rows whose
    resolved date falls in the window are returned; undated rows are dropped.
    """
    size = _parse_limit(limit)
    cursor = _parse_cursor(cursor_id)
    needle = q.strip() if q else None
    since = parse_timestamp(start)
    until = parse_timestamp(end, end_of_day=True)
    _check_order(since, until)

    if since is None and until is None:
        records = store.page(category, size, cursor, needle or None)
        last_id = records[-1].id if len(records) == size else None
    else:
        scan = min(size * FILTER_SCAN_FACTOR, MAX_FILTER_SCAN)
        scanned = store.page(category, scan, cursor, needle or None)
        window = AggregateWindow(start=since, end=until)
        chain = build_date_chain(bounds) if bounds is not None else DATE_CHAIN
        records = []
        for rec in scanned:
            when = resolve_date(rec, chain)
            if when is None or not window.contains(when):
                continue
            records.append(rec)
            if len(records) == size:
                break
        if len(records) == size:
            last_id = records[-1].id
        elif len(scanned) == scan:
            # 走査上限に達した: 次ページは走査済みの末尾から
            last_id = scanned[-1].id
        else:
            last_id = None
        logger.debug(
            "list filtered category=%s scanned=%d kept=%d", category.value, len(scanned), len(records)
        )

    next_cursor = str(last_id) if last_id is not None else None
    return {"items": [record_to_dict(r) for r in records], "nextCursorId": next_cursor}
