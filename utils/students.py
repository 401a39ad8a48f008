from __future__ import annotations

import math
from typing import Any, Dict, List, Optional

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.orm import joinedload, selectinload

from extensions import db
from models import SchoolClass, Student
from utils.cache import (
    CLASSES,
    CLASSES_WITH_NAMES,
    get_cache,
    invalidate_student_data,
    students_by_class_key,
)
from utils.validation import ValidationError, parse_date, parse_decimal


def _ttl(key: str) -> Optional[float]:
    return current_app.config.get(key)


SORTABLE_COLUMNS = ("student_name", "father_name", "mother_name", "class_id", "created_at")
REQUIRED_FIELDS = ("student_name", "father_name", "class_id")

TEXT_FIELDS = (
    "student_name",
    "father_name",
    "mother_name",
    "father_mobile",
    "mother_mobile",
    "student_photo_url",
    "father_photo_url",
    "mother_photo_url",
    "address",
    "gender",
    "email",
    "blood_group",
    "emergency_contact",
    "previous_school",
    "medical_conditions",
    "class_id",
)
DATE_FIELDS = ("date_of_birth", "admission_date")


class StudentNotFound(LookupError):
    pass


def _payment_brief(payment) -> Dict[str, Any]:
    return {
        "id": payment.id,
        "amount_received": float(payment.amount_received or 0),
        "payment_date": payment.payment_date.isoformat() if payment.payment_date else None,
        "payment_method": payment.payment_method,
        "payment_status": payment.payment_status,
        "balance_remaining": float(payment.balance_remaining or 0),
    }


def search_students(
    page: int = 1,
    limit: int = 20,
    search: str = "",
    class_filter: str = "",
    sort_by: str = "student_name",
    sort_order: str = "asc",
) -> Dict[str, Any]:
    page = max(page, 1)
    limit = min(max(limit, 1), 500)
    query = Student.query.options(joinedload(Student.school_class), selectinload(Student.payments))
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(
                Student.student_name.ilike(pattern),
                Student.father_name.ilike(pattern),
                Student.mother_name.ilike(pattern),
            )
        )
    if class_filter and class_filter != "all":
        query = query.filter(Student.class_id == class_filter)

    column = getattr(Student, sort_by if sort_by in SORTABLE_COLUMNS else "student_name")
    query = query.order_by(column.asc() if sort_order == "asc" else column.desc(), Student.id)

    total = query.order_by(None).count()
    rows = query.offset((page - 1) * limit).limit(limit).all()
    students = []
    for student in rows:
        data = student.to_dict()
        data["fee_payments"] = [_payment_brief(p) for p in student.payments]
        students.append(data)
    return {
        "students": students,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit) if total else 0,
        },
    }


def _apply_fields(student: Student, data: Dict[str, Any]) -> None:
    for name in TEXT_FIELDS:
        if name in data:
            value = data[name]
            setattr(student, name, value.strip() if isinstance(value, str) else value)
    for name in DATE_FIELDS:
        if name in data:
            raw = data[name]
            parsed = parse_date(raw)
            if raw not in (None, "") and parsed is None:
                raise ValidationError(f"Invalid {name}", {name: "Invalid date format"})
            setattr(student, name, parsed)
    if "fees_amount" in data:
        raw = data["fees_amount"]
        fee = parse_decimal(raw)
        if raw not in (None, "") and (fee is None or fee < 0):
            raise ValidationError("Invalid fees_amount", {"fees_amount": "Fee cannot be negative"})
        student.fees_amount = fee
    if "transport_required" in data:
        student.transport_required = bool(data["transport_required"])


def create_student(data: Dict[str, Any]) -> Student:
    missing = [name for name in REQUIRED_FIELDS if not str(data.get(name) or "").strip()]
    if missing:
        raise ValidationError("Missing required fields: " + ", ".join(REQUIRED_FIELDS))
    student = Student()
    _apply_fields(student, data)
    db.session.add(student)
    db.session.commit()
    invalidate_student_data()
    return student


def update_student(student_id: str, data: Dict[str, Any]) -> Student:
    student = db.session.get(Student, student_id)
    if student is None:
        raise StudentNotFound(student_id)
    for name in REQUIRED_FIELDS:
        if name in data and not str(data.get(name) or "").strip():
            raise ValidationError(f"{name} cannot be empty", {name: "Required"})
    _apply_fields(student, data)
    db.session.commit()
    invalidate_student_data()
    return student


def delete_student(student_id: str, deleted_by: str, reason: str) -> Dict[str, Any]:
    """Delete a student and everything hanging off them; returns the removed record."""
    student = db.session.get(Student, student_id)
    if student is None:
        raise StudentNotFound(student_id)
    snapshot = student.to_dict()
    db.session.delete(student)
    db.session.commit()
    invalidate_student_data()
    current_app.logger.info("Student %s deleted by %s: %s", student_id, deleted_by, reason)
    return snapshot


def students_in_class(class_id: str) -> List[Dict[str, Any]]:
    def load():
        rows = (
            Student.query.options(joinedload(Student.school_class))
            .filter(Student.class_id == class_id)
            .order_by(Student.student_name)
            .all()
        )
        return [s.to_dict() for s in rows]

    return get_cache().get_or_load(students_by_class_key(class_id), load, _ttl("CACHE_TTL_MEDIUM"))


def class_ids_in_use() -> List[str]:
    def load():
        rows = (
            db.session.query(Student.class_id)
            .filter(Student.class_id.isnot(None))
            .distinct()
            .order_by(Student.class_id)
            .all()
        )
        return [row[0] for row in rows]

    return get_cache().get_or_load(CLASSES, load, _ttl("CACHE_TTL_LONG"))


def classes_with_names() -> List[Dict[str, Any]]:
    def load():
        rows = SchoolClass.query.order_by(SchoolClass.name, SchoolClass.section).all()
        return [c.to_dict() for c in rows]

    return get_cache().get_or_load(CLASSES_WITH_NAMES, load, _ttl("CACHE_TTL_LONG"))
