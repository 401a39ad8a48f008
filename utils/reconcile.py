"""Monthly fee reconciliation.

Joins the student roster against the full payment ledger and derives, for
one (month, year), which students still owe fees and how much. The result
is a view recomputed on every call; nothing here writes to the database.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence

from flask import current_app
from sqlalchemy.orm import joinedload

from extensions import db
from models import FeePayment, Student

DEFAULT_MONTHLY_FEE = Decimal("1000")
_CENTS = Decimal("0.01")


@dataclass(frozen=True)
class PendingFeeView:
    student: Dict[str, Any]
    total_paid: Decimal
    total_pending: Decimal
    last_payment_date: Optional[date]
    last_payment_amount: Optional[Decimal]
    pending_month: int
    pending_year: int
    pending_reason: str
    student_id: str = field(default="")

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.student)
        data.update(
            {
                "totalPaid": float(self.total_paid),
                "totalPending": float(self.total_pending),
                "lastPaymentDate": self.last_payment_date.isoformat() if self.last_payment_date else None,
                "lastPaymentAmount": (
                    float(self.last_payment_amount) if self.last_payment_amount is not None else None
                ),
                "pendingMonth": self.pending_month,
                "pendingYear": self.pending_year,
                "pendingReason": self.pending_reason,
            }
        )
        return data


def _amount(value) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def format_amount(value) -> str:
    return str(_amount(value).quantize(_CENTS))


def _in_period(payment, month: int, year: int) -> bool:
    paid_on = payment.payment_date
    return paid_on is not None and paid_on.month == month and paid_on.year == year


def is_settling(payment, month: int, year: int) -> bool:
    return (
        _in_period(payment, month, year)
        and payment.payment_status == "completed"
        and _amount(payment.balance_remaining) == 0
    )


def monthly_fee_for(student, default_fee: Decimal) -> Decimal:
    own = getattr(student, "fees_amount", None)
    if own is not None and _amount(own) > 0:
        return _amount(own)
    return default_fee


def _student_payload(student) -> Dict[str, Any]:
    to_dict = getattr(student, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return {"id": student.id}


def _most_recent(payments: Sequence[Any]):
    # max() keeps the first of equal dates, i.e. ledger order on ties
    dated = [p for p in payments if p.payment_date is not None]
    if not dated:
        return None
    return max(dated, key=lambda p: p.payment_date)


def reconcile(
    students: Iterable[Any],
    payments: Iterable[Any],
    month: int,
    year: int,
    default_fee: Decimal = DEFAULT_MONTHLY_FEE,
) -> List[PendingFeeView]:
    """Return one PendingFeeView per student who is not settled for month/year.

    A student is settled when at least one of their payments dated in the
    period is completed with zero balance; settled students are left out.
    ``total_paid`` is the all-time sum of ``amount_received``;
    ``total_pending`` is the balance of the period payment, or the monthly
    fee when the period has no payment at all. ``pending_reason`` is
    "No payment record for {month}/{year}" or "Outstanding balance: {B}"
    with B rendered to two decimals, e.g. "Outstanding balance: 200.00".
    Output keeps roster order.
    """
    payments = list(payments)
    settled = {p.student_id for p in payments if is_settling(p, month, year)}

    by_student: Dict[Any, List[Any]] = defaultdict(list)
    for payment in payments:
        by_student[payment.student_id].append(payment)

    views: List[PendingFeeView] = []
    for student in students:
        if student.id in settled:
            continue
        own = by_student.get(student.id, [])
        period_payment = _most_recent([p for p in own if _in_period(p, month, year)])
        last_payment = _most_recent(own)
        total_paid = sum((_amount(p.amount_received) for p in own), Decimal("0"))

        if period_payment is None:
            total_pending = monthly_fee_for(student, default_fee)
            reason = f"No payment record for {month}/{year}"
        else:
            total_pending = _amount(period_payment.balance_remaining)
            reason = f"Outstanding balance: {format_amount(period_payment.balance_remaining)}"

        views.append(
            PendingFeeView(
                student=_student_payload(student),
                total_paid=total_paid,
                total_pending=total_pending,
                last_payment_date=last_payment.payment_date if last_payment else None,
                last_payment_amount=_amount(last_payment.amount_received) if last_payment else None,
                pending_month=month,
                pending_year=year,
                pending_reason=reason,
                student_id=student.id,
            )
        )
    return views


def load_roster(class_filter: Optional[str] = None) -> List[Student]:
    query = Student.query.options(joinedload(Student.school_class))
    if class_filter and class_filter != "all":
        query = query.filter(Student.class_id == class_filter)
    return query.all()


def load_ledger() -> List[FeePayment]:
    return FeePayment.query.all()


def configured_default_fee() -> Decimal:
    return _amount(current_app.config.get("DEFAULT_MONTHLY_FEE", DEFAULT_MONTHLY_FEE))


def pending_fees(month: int, year: int, class_filter: Optional[str] = None) -> List[PendingFeeView]:
    students = load_roster(class_filter)
    payments = load_ledger()
    return reconcile(students, payments, month, year, configured_default_fee())


def payment_summary(month: int, year: int) -> Dict[str, Any]:
    collected, pending = db.session.query(
        db.func.coalesce(db.func.sum(FeePayment.amount_received), 0),
        db.func.coalesce(db.func.sum(FeePayment.balance_remaining), 0),
    ).one()
    total_students = db.session.query(db.func.count(Student.id)).scalar() or 0
    return {
        "totalCollected": float(collected or 0),
        "totalPending": float(pending or 0),
        "totalStudents": int(total_students),
        "studentsWithPending": len(pending_fees(month, year)),
    }

