from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from decimal import Decimal

from ..models.aggregate_view import (
    AggregateWindow,
    CountsView,
    PaymentModeTotal,
    SummaryView,
    TimeSeriesPoint,
    TopItem,
)
from ..models.config_models import DEFAULT_TOP_N, SerialDateBounds
from ..models.sale_record import NormalizedSaleRecord, OrderStatus
from .strategies import (
    DATE_CHAIN,
    Strategy,
    build_date_chain,
    resolve_amount,
    resolve_date,
    resolve_qty,
    resolve_status,
    resolve_title,
)

"""Resilient aggregation over stored records.

All accumulators are built fresh per call. Amounts are summed as exact
Decimals; rounding to two places happens when a view is serialized.
"""

__all__ = [
    "summarize",
    "count",
    "customer_key",
]

UNKNOWN_PAYMENT_MODE = "Unknown"


def _date_chain(bounds: SerialDateBounds | None) -> Sequence[Strategy[datetime]]:
    return build_date_chain(bounds) if bounds is not None else DATE_CHAIN


def summarize(
    records: Iterable[NormalizedSaleRecord],
    window: AggregateWindow | None = None,
    top_n: int = DEFAULT_TOP_N,
    bounds: SerialDateBounds | None = None,
) -> SummaryView:
    """Time series per UTC day, top-N titles and payment-mode totals.

    Records whose date cannot be resolved are kept in the rankings but left
    out of the time series. Top items are ordered by total descending, then
    title ascending; items with neither amount nor quantity are dropped.
    """
    window = window or AggregateWindow()
    chain = _date_chain(bounds)
    series: dict[str, Decimal] = defaultdict(Decimal)
    items: dict[str, list] = {}  # title -> [total, qty]
    modes: dict[str, Decimal] = defaultdict(Decimal)

    for rec in records:
        when = resolve_date(rec, chain)
        if not window.contains(when):
            continue
        amount = resolve_amount(rec)
        if when is not None:
            series[when.astimezone(timezone.utc).date().isoformat()] += amount

        entry = items.setdefault(resolve_title(rec), [Decimal(0), 0])
        entry[0] += amount
        entry[1] += resolve_qty(rec)

        mode = rec.payment_mode.value if rec.payment_mode is not None else UNKNOWN_PAYMENT_MODE
        modes[mode] += amount

    ranked = sorted(
        (
            TopItem(title=title, total=total, qty=qty)
            for title, (total, qty) in items.items()
            if total > 0 or qty > 0
        ),
        key=lambda t: (-t.total, t.title),
    )
    return SummaryView(
        time_series=[TimeSeriesPoint(date=d, total=series[d]) for d in sorted(series)],
        top_items=ranked[:top_n],
        payment_modes=[
            PaymentModeTotal(payment_mode=m, total=t)
            for m, t in sorted(modes.items(), key=lambda kv: (-kv[1], kv[0]))
        ],
    )


def customer_key(record: NormalizedSaleRecord) -> str | None:
    """email|mobile|name over the non-empty parts, or None when all are empty."""
    email = (record.email or "").strip().lower()
    mobile = (record.mobile or "").strip()
    name = (record.customer_name or "").strip().lower()
    key = "|".join(p for p in (email, mobile, name) if p)
    return key or None


def count(
    records: Iterable[NormalizedSaleRecord],
    window: AggregateWindow | None = None,
    bounds: SerialDateBounds | None = None,
) -> CountsView:
    """Scalar totals over the window; undated records are always counted."""
    window = window or AggregateWindow()
    chain = _date_chain(bounds)
    total_count = 0
    total_amount = Decimal(0)
    customers: set[str] = set()
    refunds = 0

    for rec in records:
        if not window.contains(resolve_date(rec, chain)):
            continue
        total_count += 1
        total_amount += resolve_amount(rec)
        if resolve_status(rec) is OrderStatus.REFUNDED:
            refunds += 1
        key = customer_key(rec)
        if key is not None:
            customers.add(key)

    return CountsView(
        total_count=total_count,
        total_amount=total_amount,
        unique_customers=len(customers),
        refund_count=refunds,
    )
