from __future__ import annotations

"""Static column alias tables, one list per logical field.

Matching is case-insensitive and whitespace-trimmed (see resolver.resolve).
Order inside a list does not express priority: the first source column that
matches any alias wins. To support a new export format, add its column names
here rather than teaching the importer to guess.
"""

__all__ = [
    "FIELD_ALIASES",
    "AMOUNT_FALLBACK_ALIASES",
    "DATE_ALIASES",
    "TITLE_ALIASES",
    "QTY_ALIASES",
    "RATE_ALIASES",
    "STATUS_ALIASES",
]

ORDER_NO_ALIASES = ["Order No", "Order", "OrderNo", "Order Number", "TrnsdocNo"]
ORDER_STATUS_ALIASES = ["Status", "Order Status", "order_status"]
MONTH_ALIASES = ["Month"]
YEAR_ALIASES = ["Year"]
DATE_ALIASES = ["Date", "Txn Date", "Transaction Date", "Trnsdocdate", "Sale Date"]
ISBN_ALIASES = ["ISBN", "BookCode"]
ITEM_CODE_ALIASES = ["Item Code", "ItemCode", "item_code", "Code"]
TITLE_ALIASES = [
    "Title",
    "Book Title",
    "BookName",
    "Book Name",
    "Book",
    "Product",
    "Item",
    "Description",
]
AUTHOR_ALIASES = ["Author"]
PUBLISHER_ALIASES = ["Publisher", "Publishername"]
CATEGORY_ALIASES = ["Category"]
DESCRIPTION_ALIASES = ["Description", "Desc"]
PUBLISHER_CODE_ALIASES = ["Publisher Code", "publisher_code", "Pub Code"]
QTY_ALIASES = ["Qty", "Quantity", "OUT"]
# BOOKRATE is a unit price in the legacy offline exports, never a line total.
RATE_ALIASES = ["Rate", "Price", "Unit Price", "MRP", "BOOKRATE"]
AMOUNT_ALIASES = ["Selling Price", "Amount", "Total", "Net Amount", "Total Amount"]
DISCOUNT_ALIASES = ["Discount"]
TAX_ALIASES = ["Tax", "GST"]
SHIPPING_ALIASES = ["Shipping", "Freight", "Delivery"]
PAYMENT_MODE_ALIASES = ["Payment Mode", "Mode", "Payment", "paymentmode"]
CUSTOMER_NAME_ALIASES = ["Customer Name", "Customer", "Name", "customername"]
MOBILE_ALIASES = ["Mobile", "Phone", "Contact"]
EMAIL_ALIASES = ["Email", "E-mail"]

STATUS_ALIASES = ORDER_STATUS_ALIASES
# Raw-payload amount recovery at aggregation time uses the same table.
AMOUNT_FALLBACK_ALIASES = AMOUNT_ALIASES

FIELD_ALIASES: dict[str, list[str]] = {
    "order_no": ORDER_NO_ALIASES,
    "order_status": ORDER_STATUS_ALIASES,
    "month": MONTH_ALIASES,
    "year": YEAR_ALIASES,
    "date": DATE_ALIASES,
    "isbn": ISBN_ALIASES,
    "item_code": ITEM_CODE_ALIASES,
    "title": TITLE_ALIASES,
    "author": AUTHOR_ALIASES,
    "publisher": PUBLISHER_ALIASES,
    "category_label": CATEGORY_ALIASES,
    "description": DESCRIPTION_ALIASES,
    "publisher_code": PUBLISHER_CODE_ALIASES,
    "qty": QTY_ALIASES,
    "rate": RATE_ALIASES,
    "amount": AMOUNT_ALIASES,
    "discount": DISCOUNT_ALIASES,
    "tax": TAX_ALIASES,
    "shipping": SHIPPING_ALIASES,
    "payment_mode": PAYMENT_MODE_ALIASES,
    "customer_name": CUSTOMER_NAME_ALIASES,
    "mobile": MOBILE_ALIASES,
    "email": EMAIL_ALIASES,
}
