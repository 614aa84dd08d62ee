from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Generic, TypeVar

from ..mapping.aliases import (
    AMOUNT_FALLBACK_ALIASES,
    DATE_ALIASES,
    QTY_ALIASES,
    RATE_ALIASES,
    STATUS_ALIASES,
    TITLE_ALIASES,
)
from ..mapping.coerce import (
    ISO_DATETIME_PATTERN,
    map_order_status,
    month_index,
    to_date,
    to_decimal,
    to_int,
    to_trimmed_str_or_none,
)
from ..mapping.resolver import resolve
from ..models.config_models import SerialDateBounds
from ..models.sale_record import NormalizedSaleRecord, OrderStatus

"""Fallback strategies for the aggregator.

Each logical value (date, amount, title, quantity) is resolved by an ordered
chain of named strategies. A strategy is a pure function of one stored
record returning a value or None; the first non-None result wins. Chains are
plain tuples so that their order is data and every strategy can be tested on
its own.
"""

__all__ = [
    "UNTITLED",
    "Strategy",
    "resolve_first",
    "build_date_chain",
    "DATE_CHAIN",
    "AMOUNT_CHAIN",
    "TITLE_CHAIN",
    "QTY_CHAIN",
    "resolve_date",
    "resolve_amount",
    "resolve_title",
    "resolve_qty",
    "resolve_status",
]

T = TypeVar("T")

UNTITLED = "Untitled Item"
_ZERO = Decimal("0")


@dataclass(frozen=True)
class Strategy(Generic[T]):
    name: str
    func: Callable[[NormalizedSaleRecord], T | None]

    def __call__(self, record: NormalizedSaleRecord) -> T | None:
        return self.func(record)


def resolve_first(chain: Sequence[Strategy[T]], record: NormalizedSaleRecord) -> tuple[T | None, str | None]:
    """Run ``chain`` in order; return (value, strategy name) of the first hit."""
    for strategy in chain:
        value = strategy(record)
        if value is not None:
            return value, strategy.name
    return None, None


def _raw(record: NormalizedSaleRecord, aliases: Sequence[str]) -> Any:
    return resolve(record.raw_payload, aliases)


# --- date ------------------------------------------------------------------

def normalized_date(record: NormalizedSaleRecord) -> datetime | None:
    return record.date


def _raw_date_alias(bounds: SerialDateBounds | None) -> Callable[[NormalizedSaleRecord], datetime | None]:
    def raw_date_alias(record: NormalizedSaleRecord) -> datetime | None:
        return to_date(_raw(record, DATE_ALIASES), bounds)
    return raw_date_alias


def raw_iso_scan(record: NormalizedSaleRecord) -> datetime | None:
    """Any string anywhere in the payload that embeds an ISO date-time."""
    for value in (record.raw_payload or {}).values():
        if not isinstance(value, str):
            continue
        m = ISO_DATETIME_PATTERN.search(value)
        if m is None:
            continue
        when = to_date(m.group(0))
        if when is not None:
            return when
    return None


def month_year(record: NormalizedSaleRecord) -> datetime | None:
    """First day of (month, year) when both are known and year > 0."""
    m = month_index(record.month)
    if m is None or record.year is None or record.year <= 0:
        return None
    try:
        return datetime(record.year, m, 1, tzinfo=timezone.utc)
    except ValueError:
        return None


def build_date_chain(bounds: SerialDateBounds | None = None) -> tuple[Strategy[datetime], ...]:
    return (
        Strategy("normalized_date", normalized_date),
        Strategy("raw_date_alias", _raw_date_alias(bounds)),
        Strategy("raw_iso_scan", raw_iso_scan),
        Strategy("month_year", month_year),
    )


DATE_CHAIN = build_date_chain()


# --- amount ----------------------------------------------------------------

def normalized_amount(record: NormalizedSaleRecord) -> Decimal | None:
    if record.amount is None or record.amount == 0:
        return None
    return record.amount


def raw_amount(record: NormalizedSaleRecord) -> Decimal | None:
    return to_decimal(_raw(record, AMOUNT_FALLBACK_ALIASES))


def _rate(record: NormalizedSaleRecord) -> Decimal | None:
    if record.rate:
        return record.rate
    return to_decimal(_raw(record, RATE_ALIASES)) or None


def rate_times_qty(record: NormalizedSaleRecord) -> Decimal | None:
    """rate x quantity, a missing side counting as zero.

    None only when neither side can be resolved at all.
    """
    rate = _rate(record)
    qty = record.qty or raw_qty(record)
    if rate is None and qty is None:
        return None
    return (rate or _ZERO) * (qty or 0)


def zero_amount(record: NormalizedSaleRecord) -> Decimal:
    return _ZERO


AMOUNT_CHAIN: tuple[Strategy[Decimal], ...] = (
    Strategy("normalized_amount", normalized_amount),
    Strategy("raw_amount", raw_amount),
    Strategy("rate_times_qty", rate_times_qty),
    Strategy("zero", zero_amount),
)


# --- title -----------------------------------------------------------------

def normalized_title(record: NormalizedSaleRecord) -> str | None:
    return to_trimmed_str_or_none(record.title)


def raw_title(record: NormalizedSaleRecord) -> str | None:
    value = _raw(record, TITLE_ALIASES)
    return to_trimmed_str_or_none(value) if isinstance(value, str) else None


def placeholder_title(record: NormalizedSaleRecord) -> str:
    return UNTITLED


TITLE_CHAIN: tuple[Strategy[str], ...] = (
    Strategy("normalized_title", normalized_title),
    Strategy("raw_title", raw_title),
    Strategy("placeholder", placeholder_title),
)


# --- quantity --------------------------------------------------------------

def normalized_qty(record: NormalizedSaleRecord) -> int | None:
    return record.qty or None


def raw_qty(record: NormalizedSaleRecord) -> int | None:
    return to_int(_raw(record, QTY_ALIASES)) or None


def zero_qty(record: NormalizedSaleRecord) -> int:
    return 0


QTY_CHAIN: tuple[Strategy[int], ...] = (
    Strategy("normalized_qty", normalized_qty),
    Strategy("raw_qty", raw_qty),
    Strategy("zero", zero_qty),
)


# --- convenience -----------------------------------------------------------

def resolve_date(
    record: NormalizedSaleRecord, chain: Sequence[Strategy[datetime]] = DATE_CHAIN
) -> datetime | None:
    return resolve_first(chain, record)[0]


def resolve_amount(record: NormalizedSaleRecord) -> Decimal:
    value, _ = resolve_first(AMOUNT_CHAIN, record)
    return value if value is not None else _ZERO


def resolve_title(record: NormalizedSaleRecord) -> str:
    value, _ = resolve_first(TITLE_CHAIN, record)
    return value or UNTITLED


def resolve_qty(record: NormalizedSaleRecord) -> int:
    value, _ = resolve_first(QTY_CHAIN, record)
    return value or 0


def resolve_status(record: NormalizedSaleRecord) -> OrderStatus | None:
    """Normalized order status, else the raw status text mapped again."""
    if record.order_status is not None:
        return record.order_status
    return map_order_status(_raw(record, STATUS_ALIASES))
