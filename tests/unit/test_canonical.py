from __future__ import annotations

import re
from datetime import datetime, timezone
from decimal import Decimal

import numpy as np
import pytest

from sales_ingest.mapping.canonical import (
    RowMappingError,
    canonical_key,
    canonical_key_for,
    canonicalize,
    row_hash,
    to_json_safe,
)
from sales_ingest.models.config_models import SerialDateBounds
from sales_ingest.models.sale_record import OrderStatus, PaymentMode, SaleCategory

UTC = timezone.utc

BASE_ROW = {
    "Order No": "ON-1001",
    "ISBN": "9780000000001",
    "Date": "2024-02-10T09:30:00",
    "Selling Price": "1,500.00",
    "Customer Name": "Asha K",
    "Title": "Bhagavad Gita",
}


def _hash(row, category=SaleCategory.ONLINE):
    return canonicalize(row, category).row_hash


def test_canonical_key_layout():
    key = canonical_key(
        SaleCategory.ONLINE, " ON-1 ", "978", datetime(2024, 1, 1, 15, tzinfo=UTC),
        Decimal("10"), " Asha   K ",
    )
    assert key == "online|on-1|978|2024-01-01|10.00|asha k"


def test_row_hash_is_sha256_hex():
    h = row_hash("online|x")
    assert re.fullmatch(r"[0-9a-f]{64}", h)
    assert h == row_hash("online|x")


def test_hash_stable_under_column_permutation_and_extra_columns():
    permuted = dict(reversed(list(BASE_ROW.items())))
    extra = {**BASE_ROW, "Remarks": "gift wrap", "Branch": "Pune"}
    assert _hash(permuted) == _hash(BASE_ROW)
    assert _hash(extra) == _hash(BASE_ROW)


def test_hash_ignores_incidental_whitespace_and_case():
    noisy = {**BASE_ROW, "Order No": "  on-1001 ", "Customer Name": "ASHA   k"}
    assert _hash(noisy) == _hash(BASE_ROW)


def test_hash_ignores_time_of_day_and_amount_formatting():
    same_day = {**BASE_ROW, "Date": "2024-02-10T18:00:00"}
    plain_amount = {**BASE_ROW, "Selling Price": 1500}
    float_amount = {**BASE_ROW, "Selling Price": 1500.0}
    assert _hash(same_day) == _hash(BASE_ROW)
    assert _hash(plain_amount) == _hash(BASE_ROW)
    assert _hash(float_amount) == _hash(BASE_ROW)


@pytest.mark.parametrize(
    "column,value",
    [
        ("Order No", "ON-1002"),
        ("ISBN", "9780000000002"),
        ("Date", "2024-02-11T09:30:00"),
        ("Selling Price", "1,500.01"),
        ("Customer Name", "Ravi"),
    ],
)
def test_hash_sensitive_to_identifying_fields(column, value):
    assert _hash({**BASE_ROW, column: value}) != _hash(BASE_ROW)


def test_hash_depends_on_category():
    assert _hash(BASE_ROW, SaleCategory.ONLINE) != _hash(BASE_ROW, SaleCategory.LOK_EVENT)


def test_item_code_used_when_order_number_missing():
    a = {"Item Code": "RR-1", "Amount": 10}
    b = {"Item Code": "RR-2", "Amount": 10}
    assert _hash(a, SaleCategory.RAJRADHA_EVENT) != _hash(b, SaleCategory.RAJRADHA_EVENT)


def test_serial_date_example_row():
    rec = canonicalize({"Date": 45292, "Qty": "2", "Rate": "1,500.00"}, SaleCategory.OFFLINE)
    assert rec.date == datetime(2024, 1, 1, tzinfo=UTC)
    assert rec.qty == 2
    assert rec.rate == Decimal("1500.00")
    assert rec.amount is None
    assert rec.title is None
    assert rec.raw_payload == {"Date": 45292, "Qty": "2", "Rate": "1,500.00"}


def test_canonicalize_normalizes_enums_and_keeps_raw_payload():
    row = {
        **BASE_ROW,
        "Payment Mode": "cash/upi",
        "Order Status": "Delivered",
        "Qty": np.int64(3),
    }
    rec = canonicalize(row, SaleCategory.ONLINE)
    assert rec.payment_mode is PaymentMode.UPI
    assert rec.order_status is OrderStatus.COMPLETE
    assert rec.qty == 3
    assert rec.amount == Decimal("1500.00")
    assert rec.raw_payload["Qty"] == 3
    assert rec.row_hash == row_hash(canonical_key_for(rec))


def test_canonicalize_applies_serial_bounds():
    rec = canonicalize({"Date": 99999999}, SaleCategory.OFFLINE, SerialDateBounds(1, 73051))
    assert rec.date is None


def test_non_mapping_row_is_a_mapping_error():
    with pytest.raises(RowMappingError):
        canonicalize(["ON-1", 10], SaleCategory.ONLINE)


def test_unserializable_cell_is_a_mapping_error():
    with pytest.raises(RowMappingError):
        canonicalize({"Title": object()}, SaleCategory.ONLINE)


def test_to_json_safe_converts_spreadsheet_values():
    out = to_json_safe(
        {"d": datetime(2024, 1, 1), "n": np.float64(1.5), "nan": float("nan"), "i": np.int64(2)}
    )
    assert out == {"d": "2024-01-01T00:00:00", "n": 1.5, "nan": None, "i": 2}
