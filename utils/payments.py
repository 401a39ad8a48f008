from __future__ import annotations

import math
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload

from extensions import db
from models import FeePayment, SchoolClass, Student
from utils.audit import diff_fields, record_payment_changes
from utils.validation import ValidationError, clean_payment_entry, clean_payment_updates, summarize_entries

SORTABLE_COLUMNS = {
    "payment_date": FeePayment.payment_date,
    "amount_received": FeePayment.amount_received,
    "balance_remaining": FeePayment.balance_remaining,
    "payment_status": FeePayment.payment_status,
    "payment_method": FeePayment.payment_method,
    "created_at": FeePayment.created_at,
}


class PaymentNotFound(LookupError):
    pass


def new_receipt_url() -> str:
    return f"/receipt/{uuid.uuid4()}"


def _year_range():
    cfg = current_app.config
    return cfg.get("FEE_YEAR_MIN", 2020), cfg.get("FEE_YEAR_MAX", 2030)


def _build_payment(cleaned: Dict[str, Any]) -> FeePayment:
    return FeePayment(
        student_id=cleaned["student_id"],
        amount_received=cleaned["amount_received"],
        payment_date=cleaned["payment_date"],
        payment_method=cleaned["payment_method"],
        balance_remaining=cleaned["balance_remaining"],
        payment_status=cleaned["payment_status"],
        notes=cleaned["notes"],
        receipt_url=new_receipt_url(),
    )


def create_payment(data: Dict[str, Any]) -> FeePayment:
    cleaned, errors = clean_payment_entry(data, _year_range())
    if errors:
        first = next(iter(errors.values()))
        raise ValidationError(first, errors)
    if db.session.get(Student, cleaned["student_id"]) is None:
        raise ValidationError("Student not found", {"student_id": "Student not found"})
    payment = _build_payment(cleaned)
    db.session.add(payment)
    db.session.commit()
    return payment


def update_payment(
    payment_id: str,
    updates: Dict[str, Any],
    updated_by: str = "system",
    update_reason: Optional[str] = None,
) -> FeePayment:
    """Apply a partial update and log one history entry per changed field."""
    payment = db.session.get(FeePayment, payment_id)
    if payment is None:
        raise PaymentNotFound(payment_id)
    cleaned = clean_payment_updates(updates, payment.payment_date, _year_range())

    before = {name: getattr(payment, name) for name in cleaned}
    changes = diff_fields(before, cleaned)
    for name, value in cleaned.items():
        setattr(payment, name, value)
    if changes:
        payment.has_updates = True
    db.session.commit()

    record_payment_changes(payment.id, changes, updated_by, update_reason)
    return payment


def delete_payment(payment_id: str) -> Dict[str, Any]:
    payment = db.session.get(FeePayment, payment_id)
    if payment is None:
        raise PaymentNotFound(payment_id)
    snapshot = payment.to_dict()
    db.session.delete(payment)
    db.session.commit()
    return snapshot


def validate_bulk_entries(entries: List[Any]) -> List[Dict[str, Any]]:
    """Return per-entry validation failures as ``[{index, errors}]``."""
    failures = []
    year_range = _year_range()
    for index, entry in enumerate(entries):
        _, errors = clean_payment_entry(entry, year_range)
        if errors:
            failures.append({"index": index, "errors": errors})
    return failures


def bulk_create_payments(entries: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Insert already-validated entries one by one.

    An entry that fails to insert is reported in ``errors`` and does not
    stop the rest of the batch.
    """
    year_range = _year_range()
    created: List[FeePayment] = []
    saved_entries: List[Dict[str, Any]] = []
    errors: List[Dict[str, Any]] = []
    total_amount = Decimal("0")

    for index, entry in enumerate(entries):
        cleaned, _ = clean_payment_entry(entry, year_range)
        if db.session.get(Student, cleaned["student_id"]) is None:
            errors.append({"index": index, "error": "Student not found", "entry": entry})
            continue
        try:
            payment = _build_payment(cleaned)
            db.session.add(payment)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.warning("Bulk fee entry %s failed: %s", index, exc)
            errors.append({"index": index, "error": "Failed to save entry", "entry": entry})
            continue
        created.append(payment)
        saved_entries.append(entry)
        total_amount += cleaned["amount_received"]

    return {
        "success": not errors,
        "created": [p.to_dict() for p in created],
        "errors": errors,
        "summary": {
            "totalEntries": len(entries),
            "successfulEntries": len(created),
            "failedEntries": len(errors),
            "totalAmount": float(total_amount),
        },
        "breakdown": summarize_entries(saved_entries),
    }


def list_payments(
    page: int = 1,
    limit: int = 10,
    sort_by: str = "payment_date",
    sort_order: str = "desc",
    status: Optional[str] = None,
    method: Optional[str] = None,
    student_name: Optional[str] = None,
    class_name: Optional[str] = None,
    start_date=None,
    end_date=None,
) -> Dict[str, Any]:
    page = max(page, 1)
    limit = min(max(limit, 1), 500)
    query = FeePayment.query.options(
        joinedload(FeePayment.student).joinedload(Student.school_class)
    )
    if status:
        query = query.filter(FeePayment.payment_status == status)
    if method:
        query = query.filter(FeePayment.payment_method == method)
    if start_date:
        query = query.filter(FeePayment.payment_date >= start_date)
    if end_date:
        query = query.filter(FeePayment.payment_date <= end_date)
    if student_name or class_name:
        query = query.join(FeePayment.student)
        if student_name:
            query = query.filter(Student.student_name.ilike(f"%{student_name}%"))
        if class_name:
            query = query.join(Student.school_class).filter(SchoolClass.name.ilike(f"%{class_name}%"))

    column = SORTABLE_COLUMNS.get(sort_by, FeePayment.payment_date)
    query = query.order_by(column.asc() if sort_order == "asc" else column.desc(), FeePayment.id)

    total = query.count()
    rows = query.offset((page - 1) * limit).limit(limit).all()
    return {
        "data": [p.to_dict(with_student=True) for p in rows],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit) if total else 0,
        },
    }


def find_by_receipt(receipt_id: str) -> Optional[FeePayment]:
    return (
        FeePayment.query.options(joinedload(FeePayment.student).joinedload(Student.school_class))
        .filter(FeePayment.receipt_url == f"/receipt/{receipt_id}")
        .first()
    )
