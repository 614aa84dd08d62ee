from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

"""NormalizedSaleRecord and the closed enumerations it carries.

A NormalizedSaleRecord is created exactly once per import run and is never
updated afterwards. The verbatim source row travels with it as ``raw_payload``
so that aggregation can recover fields the import could not normalize.
"""

__all__ = [
    "SaleCategory",
    "PaymentMode",
    "OrderStatus",
    "NormalizedSaleRecord",
]


class SaleCategory(Enum):
    """The four independently ingested sale types.

    Each category owns one table; records of different categories are never
    mixed in a single insert or aggregation.
    """
    ONLINE = "online"
    OFFLINE = "offline"
    RAJRADHA_EVENT = "raj"
    LOK_EVENT = "lok"

    @property
    def table_name(self) -> str:
        return _TABLES[self]

    @property
    def label(self) -> str:
        return _LABELS[self]

    @classmethod
    def from_name(cls, text: str | None) -> SaleCategory | None:
        """Derive a category from a sheet name, file name or CLI target.

        Matching ignores case, spaces and punctuation, so ``"RajRadha Event"``,
        ``"raj-radha"`` and ``"raj"`` all resolve to RAJRADHA_EVENT.
        Returns None when nothing matches.
        """
        if not text:
            return None
        s = re.sub(r"[^a-z0-9]+", "", str(text).lower())
        if not s:
            return None
        if s == "online" or s.startswith("online") or s.endswith("onlinesale"):
            return cls.ONLINE
        if s == "offline" or "offline" in s:
            return cls.OFFLINE
        if s == "raj" or "rajradha" in s:
            return cls.RAJRADHA_EVENT
        if s == "lok" or "lokevent" in s or s.startswith("lok"):
            return cls.LOK_EVENT
        return None


_TABLES = {
    SaleCategory.ONLINE: "online_sale",
    SaleCategory.OFFLINE: "offline_cash_upi_cc_sale",
    SaleCategory.RAJRADHA_EVENT: "rajradha_event_sale",
    SaleCategory.LOK_EVENT: "lok_event_sale",
}

_LABELS = {
    SaleCategory.ONLINE: "Online",
    SaleCategory.OFFLINE: "Offline-CashUPICC Sales",
    SaleCategory.RAJRADHA_EVENT: "RajRadha Event",
    SaleCategory.LOK_EVENT: "Lok Event",
}


class PaymentMode(Enum):
    CASH = "Cash"
    UPI = "UPI"
    CARD = "Card"
    NET_BANKING = "NetBanking"
    WALLET = "Wallet"
    CHEQUE = "Cheque"
    BANK_TRANSFER = "BankTransfer"
    OTHER = "Other"


class OrderStatus(Enum):
    COMPLETE = "complete"
    PENDING = "pending"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    UNKNOWN = "unknown"


# Column order used by the persistence layer (insert and select).
RECORD_COLUMNS: tuple[str, ...] = (
    "order_no",
    "order_status",
    "month",
    "year",
    "date",
    "isbn",
    "item_code",
    "title",
    "author",
    "publisher",
    "category_label",
    "description",
    "publisher_code",
    "qty",
    "rate",
    "amount",
    "discount",
    "tax",
    "shipping",
    "payment_mode",
    "customer_name",
    "mobile",
    "email",
    "row_hash",
    "raw_payload",
)


@dataclass(frozen=True)
class NormalizedSaleRecord:
    """Canonical persisted sale.

    Attributes mirror the table columns. Monetary values are fixed-point
    ``Decimal`` (two places) or None; ``date`` is timezone-aware UTC.
    ``row_hash`` is the idempotency key and ``raw_payload`` the JSON-safe copy
    of the source row. ``id`` is only populated for records read back from a
    store.
    """
    category: SaleCategory
    row_hash: str
    raw_payload: dict[str, Any] = field(default_factory=dict)
    order_no: str | None = None
    order_status: OrderStatus | None = None
    month: str | None = None
    year: int | None = None
    date: datetime | None = None
    isbn: str | None = None
    item_code: str | None = None
    title: str | None = None
    author: str | None = None
    publisher: str | None = None
    category_label: str | None = None
    description: str | None = None
    publisher_code: str | None = None
    qty: int | None = None
    rate: Decimal | None = None
    amount: Decimal | None = None
    discount: Decimal | None = None
    tax: Decimal | None = None
    shipping: Decimal | None = None
    payment_mode: PaymentMode | None = None
    customer_name: str | None = None
    mobile: str | None = None
    email: str | None = None
    id: int | None = None

    def column_values(self) -> list[Any]:
        """Values in RECORD_COLUMNS order, enums flattened to their text."""
        values: list[Any] = []
        for col in RECORD_COLUMNS:
            v = getattr(self, col)
            if isinstance(v, Enum):
                v = v.value
            values.append(v)
        return values

    @classmethod
    def from_row(cls, category: SaleCategory, row: dict[str, Any]) -> NormalizedSaleRecord:
        """Rebuild a record from a stored row keyed by column name."""
        status = row.get("order_status")
        mode = row.get("payment_mode")
        return cls(
            category=category,
            id=row.get("id"),
            row_hash=row.get("row_hash") or "",
            raw_payload=row.get("raw_payload") or {},
            order_no=row.get("order_no"),
            order_status=OrderStatus(status) if status else None,
            month=row.get("month"),
            year=row.get("year"),
            date=row.get("date"),
            isbn=row.get("isbn"),
            item_code=row.get("item_code"),
            title=row.get("title"),
            author=row.get("author"),
            publisher=row.get("publisher"),
            category_label=row.get("category_label"),
            description=row.get("description"),
            publisher_code=row.get("publisher_code"),
            qty=row.get("qty"),
            rate=row.get("rate"),
            amount=row.get("amount"),
            discount=row.get("discount"),
            tax=row.get("tax"),
            shipping=row.get("shipping"),
            payment_mode=PaymentMode(mode) if mode else None,
            customer_name=row.get("customer_name"),
            mobile=row.get("mobile"),
            email=row.get("email"),
        )
