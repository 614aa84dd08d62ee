"""Resilient aggregation: fallback strategies and the summary/counts views."""

from .aggregator import count, customer_key, summarize
from .strategies import (
    AMOUNT_CHAIN,
    DATE_CHAIN,
    QTY_CHAIN,
    TITLE_CHAIN,
    UNTITLED,
    resolve_amount,
    resolve_date,
    resolve_qty,
    resolve_title,
)

__all__ = [
    "AMOUNT_CHAIN",
    "DATE_CHAIN",
    "QTY_CHAIN",
    "TITLE_CHAIN",
    "UNTITLED",
    "count",
    "customer_key",
    "resolve_amount",
    "resolve_date",
    "resolve_qty",
    "resolve_title",
    "summarize",
]
