from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal

"""AggregateView models.

Views are computed fresh per query and never persisted. Totals are kept as
exact ``Decimal`` sums; rounding to two places happens only in ``to_dict``.
"""

__all__ = [
    "AggregateWindow",
    "TimeSeriesPoint",
    "TopItem",
    "PaymentModeTotal",
    "SummaryView",
    "CountsView",
    "round_money",
]

_CENT = Decimal("0.01")


def round_money(value: Decimal) -> float:
    """Presentation rounding: two places, half up, as a plain number."""
    return float(value.quantize(_CENT, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class AggregateWindow:
    """Inclusive [start, end] bound on the resolved sale date.

    Either side may be open. Records whose date cannot be resolved are never
    excluded by the window.
    """
    start: datetime | None = None
    end: datetime | None = None

    @classmethod
    def last_days(cls, days: int, now: datetime | None = None) -> AggregateWindow:
        now = now or datetime.now(timezone.utc)
        return cls(start=now - timedelta(days=days), end=None)

    def contains(self, when: datetime | None) -> bool:
        if when is None:
            return True
        if self.start is not None and when < self.start:
            return False
        if self.end is not None and when > self.end:
            return False
        return True


@dataclass(frozen=True)
class TimeSeriesPoint:
    date: str  # YYYY-MM-DD (UTC day)
    total: Decimal

    def to_dict(self) -> dict[str, object]:
        return {"date": self.date, "total": round_money(self.total)}


@dataclass(frozen=True)
class TopItem:
    title: str
    total: Decimal
    qty: int

    def to_dict(self) -> dict[str, object]:
        return {"title": self.title, "total": round_money(self.total), "qty": self.qty}


@dataclass(frozen=True)
class PaymentModeTotal:
    payment_mode: str
    total: Decimal

    def to_dict(self) -> dict[str, object]:
        return {"paymentMode": self.payment_mode, "total": round_money(self.total)}


@dataclass(frozen=True)
class SummaryView:
    time_series: list[TimeSeriesPoint] = field(default_factory=list)
    top_items: list[TopItem] = field(default_factory=list)
    payment_modes: list[PaymentModeTotal] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "timeSeries": [p.to_dict() for p in self.time_series],
            "topItems": [t.to_dict() for t in self.top_items],
            "paymentModes": [m.to_dict() for m in self.payment_modes],
        }


@dataclass(frozen=True)
class CountsView:
    total_count: int
    total_amount: Decimal
    unique_customers: int
    refund_count: int

    def to_dict(self) -> dict[str, object]:
        return {
            "totalCount": self.total_count,
            "totalAmount": round_money(self.total_amount),
            "uniqueCustomers": self.unique_customers,
            "refundCount": self.refund_count,
        }
