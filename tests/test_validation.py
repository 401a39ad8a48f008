from datetime import date
from decimal import Decimal

import pytest

from utils.validation import (
    ValidationError,
    clean_payment_entry,
    clean_payment_updates,
    parse_period,
    summarize_entries,
    validate_bulk_request,
)


def _entry(**overrides):
    entry = {
        "student_id": "s1",
        "amount_received": "1500.50",
        "payment_date": "2025-06-05",
        "payment_method": "upi",
        "payment_status": "partial",
    }
    entry.update(overrides)
    return entry


def test_clean_entry_defaults_balance():
    cleaned, errors = clean_payment_entry(_entry())
    assert errors == {}
    assert cleaned["amount_received"] == Decimal("1500.50")
    assert cleaned["balance_remaining"] == Decimal("0")


@pytest.mark.parametrize(
    "overrides, field, message",
    [
        ({"amount_received": 0}, "amount_received", "Amount must be a positive number"),
        ({"amount_received": "abc"}, "amount_received", "Amount must be a positive number"),
        ({"balance_remaining": -1}, "balance_remaining", "Balance cannot be negative"),
        ({"payment_method": "crypto"}, "payment_method", "Invalid payment method"),
        ({"payment_status": "lost"}, "payment_status", "Invalid payment status"),
        ({"payment_date": "05/06/2025"}, "payment_date", "Invalid date format"),
        ({"fee_month": 13}, "fee_month", "Month must be between 1 and 12"),
        ({"fee_year": 2019}, "fee_year", "Year must be between 2020 and 2030"),
        ({"fee_year": 2026}, "fee_year", "fee_year must match the year of payment_date"),
    ],
)
def test_clean_entry_errors(overrides, field, message):
    _, errors = clean_payment_entry(_entry(**overrides))
    assert errors[field] == message


def test_matching_period_is_accepted():
    _, errors = clean_payment_entry(_entry(fee_month=6, fee_year="2025"))
    assert errors == {}


def test_non_object_entry():
    _, errors = clean_payment_entry(["nope"])
    assert errors == {"entry": "Entry must be an object"}


def test_updates_skip_period_fields():
    cleaned = clean_payment_updates({"fee_month": 1, "notes": "", "amount_received": "10"})
    assert cleaned == {"notes": None, "amount_received": Decimal("10")}


def test_updates_check_period_against_effective_date():
    stored = date(2025, 6, 5)
    assert clean_payment_updates({"fee_month": 6, "fee_year": 2025}, stored) == {}
    with pytest.raises(ValidationError) as info:
        clean_payment_updates({"fee_month": 3}, stored)
    assert set(info.value.errors) == {"fee_month"}
    cleaned = clean_payment_updates({"payment_date": "2025-03-01", "fee_month": 3}, stored)
    assert cleaned == {"payment_date": date(2025, 3, 1)}
    with pytest.raises(ValidationError) as info:
        clean_payment_updates({"fee_year": 2031}, stored)
    assert info.value.errors == {"fee_year": "Year must be between 2020 and 2030"}


def test_updates_reject_unknown_fields():
    with pytest.raises(ValidationError) as info:
        clean_payment_updates({"receipt_url": "/receipt/x"})
    assert info.value.errors == {"receipt_url": "receipt_url cannot be updated"}


def test_parse_period():
    assert parse_period("6", "2025") == (6, 2025)
    with pytest.raises(ValidationError):
        parse_period("13", "2025")
    with pytest.raises(ValidationError):
        parse_period("june", "2025")


def test_bulk_request_limits():
    assert validate_bulk_request({"entries": [{}]}) == [{}]
    for body in (None, {}, {"entries": "x"}, {"entries": []}, {"entries": [{}] * 101}):
        with pytest.raises(ValidationError):
            validate_bulk_request(body)


def test_summarize_entries():
    summary = summarize_entries(
        [
            _entry(amount_received=100, payment_method="cash", payment_status="completed"),
            _entry(amount_received=50, payment_method="cash", payment_status="partial"),
            _entry(amount_received=999, isValid=False),
        ]
    )
    assert summary["totalEntries"] == 3
    assert summary["validEntries"] == 2
    assert summary["invalidEntries"] == 1
    assert summary["totalAmount"] == 150.0
    assert summary["paymentMethodBreakdown"] == {"cash": {"count": 2, "amount": 150.0}}
    assert summary["paymentStatusBreakdown"]["partial"] == {"count": 1, "amount": 50.0}
