from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

from models import PAYMENT_METHODS, PAYMENT_STATUSES

REQUIRED_PAYMENT_FIELDS = ("student_id", "amount_received", "payment_date", "payment_method", "payment_status")


class ValidationError(ValueError):
    """Raised for user input that cannot be accepted.

    ``errors`` maps field names to messages when the failure is field-level.
    """

    def __init__(self, message: str, errors: Optional[Dict[str, str]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors = errors or {}


def parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def parse_decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not result.is_finite():
        return None
    return result


def parse_int(value: Any) -> Optional[int]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def parse_period(month: Any, year: Any) -> Tuple[int, int]:
    """Validate a month/year pair coming from a query string."""
    m = parse_int(month)
    y = parse_int(year)
    if m is None or y is None:
        raise ValidationError("month and year must be numbers")
    if not 1 <= m <= 12:
        raise ValidationError("month must be between 1 and 12")
    if y < 1:
        raise ValidationError("year must be a positive number")
    return m, y


def _check_period(entry: Dict[str, Any], paid_on: Optional[date], errors: Dict[str, str], year_range) -> None:
    # fee_month/fee_year are derived from payment_date; a supplied value may
    # only restate it.
    if entry.get("fee_month") not in (None, ""):
        month = parse_int(entry.get("fee_month"))
        if month is None or not 1 <= month <= 12:
            errors["fee_month"] = "Month must be between 1 and 12"
        elif paid_on and month != paid_on.month:
            errors["fee_month"] = "fee_month must match the month of payment_date"
    if entry.get("fee_year") not in (None, ""):
        year = parse_int(entry.get("fee_year"))
        low, high = year_range
        if year is None or not low <= year <= high:
            errors["fee_year"] = f"Year must be between {low} and {high}"
        elif paid_on and year != paid_on.year:
            errors["fee_year"] = "fee_year must match the year of payment_date"


def clean_payment_entry(entry: Dict[str, Any], year_range=(2020, 2030)) -> Tuple[Dict[str, Any], Dict[str, str]]:
    """Validate one new payment.

    Returns the cleaned values and a field -> message map of problems; the
    cleaned values are only meaningful when the map is empty.
    """
    errors: Dict[str, str] = {}
    if not isinstance(entry, dict):
        return {}, {"entry": "Entry must be an object"}

    for name in REQUIRED_PAYMENT_FIELDS:
        if entry.get(name) in (None, ""):
            errors[name] = f"{name} is required"

    amount = parse_decimal(entry.get("amount_received"))
    if "amount_received" not in errors and (amount is None or amount <= 0):
        errors["amount_received"] = "Amount must be a positive number"

    balance = Decimal("0")
    if entry.get("balance_remaining") not in (None, ""):
        parsed = parse_decimal(entry.get("balance_remaining"))
        if parsed is None or parsed < 0:
            errors["balance_remaining"] = "Balance cannot be negative"
        else:
            balance = parsed

    method = entry.get("payment_method")
    if method and method not in PAYMENT_METHODS:
        errors["payment_method"] = "Invalid payment method"

    status = entry.get("payment_status")
    if status and status not in PAYMENT_STATUSES:
        errors["payment_status"] = "Invalid payment status"

    paid_on = None
    if entry.get("payment_date") not in (None, ""):
        paid_on = parse_date(entry.get("payment_date"))
        if paid_on is None:
            errors["payment_date"] = "Invalid date format"

    _check_period(entry, paid_on, errors, year_range)

    cleaned = {
        "student_id": str(entry.get("student_id") or "").strip(),
        "amount_received": amount,
        "payment_date": paid_on,
        "payment_method": method,
        "balance_remaining": balance,
        "payment_status": status,
        "notes": (entry.get("notes") or None),
    }
    return cleaned, errors


def clean_payment_updates(
    updates: Dict[str, Any],
    stored_date: Optional[date] = None,
    year_range=(2020, 2030),
) -> Dict[str, Any]:
    """Validate a partial update to an existing payment; raises ValidationError.

    fee_month/fee_year are never written, but a supplied value must agree
    with the new payment_date, or with ``stored_date`` when none is sent.
    """
    cleaned: Dict[str, Any] = {}
    errors: Dict[str, str] = {}
    for name, value in updates.items():
        if name == "amount_received":
            amount = parse_decimal(value)
            if amount is None or amount <= 0:
                errors[name] = "Amount must be a positive number"
            cleaned[name] = amount
        elif name == "balance_remaining":
            balance = parse_decimal(value)
            if balance is None or balance < 0:
                errors[name] = "Balance cannot be negative"
            cleaned[name] = balance
        elif name == "payment_date":
            paid_on = parse_date(value)
            if paid_on is None:
                errors[name] = "Invalid date format"
            cleaned[name] = paid_on
        elif name == "payment_method":
            if value not in PAYMENT_METHODS:
                errors[name] = "Invalid payment method"
            cleaned[name] = value
        elif name == "payment_status":
            if value not in PAYMENT_STATUSES:
                errors[name] = "Invalid payment status"
            cleaned[name] = value
        elif name == "notes":
            cleaned[name] = value or None
        elif name in ("fee_month", "fee_year"):
            continue
        else:
            errors[name] = f"{name} cannot be updated"
    paid_on = None if "payment_date" in errors else cleaned.get("payment_date", stored_date)
    _check_period(updates, paid_on, errors, year_range)
    if errors:
        raise ValidationError("Invalid payment update", errors)
    return cleaned


def validate_bulk_request(body: Any, max_entries: int = 100) -> List[Any]:
    if not isinstance(body, dict) or not isinstance(body.get("entries"), list):
        raise ValidationError("Invalid request format", {"entries": "entries must be a list"})
    entries = body["entries"]
    if not entries:
        raise ValidationError("Invalid request format", {"entries": "At least one fee entry is required"})
    if len(entries) > max_entries:
        raise ValidationError(
            "Invalid request format", {"entries": f"Maximum {max_entries} entries allowed per batch"}
        )
    return entries


def summarize_entries(entries: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Totals and method/status breakdowns over entries not marked invalid."""
    summary: Dict[str, Any] = {
        "totalEntries": len(entries),
        "totalAmount": 0.0,
        "validEntries": 0,
        "invalidEntries": 0,
        "paymentMethodBreakdown": {},
        "paymentStatusBreakdown": {},
    }
    for entry in entries:
        if entry.get("isValid") is False:
            summary["invalidEntries"] += 1
            continue
        summary["validEntries"] += 1
        amount = float(parse_decimal(entry.get("amount_received")) or 0)
        summary["totalAmount"] += amount
        for key, bucket in (("payment_method", "paymentMethodBreakdown"), ("payment_status", "paymentStatusBreakdown")):
            label = entry.get(key)
            if not label:
                continue
            slot = summary[bucket].setdefault(label, {"count": 0, "amount": 0.0})
            slot["count"] += 1
            slot["amount"] += amount
    return summary
