from __future__ import annotations

from collections import OrderedDict
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import joinedload

from extensions import db
from models import ATTENDANCE_STATUSES, DELIVERY_STATUSES, RECIPIENT_TYPES, Attendance, AttendanceMessage, Student
from utils.timezone_helpers import school_today
from utils.validation import ValidationError, parse_date, parse_int


def _pick(record: Dict[str, Any], *names: str) -> Any:
    for name in names:
        value = record.get(name)
        if value not in (None, ""):
            return value
    return None


def normalize_status(value: Any) -> str:
    status = str(value or "").strip().upper()
    if status not in ATTENDANCE_STATUSES:
        allowed = ", ".join(s.lower() for s in ATTENDANCE_STATUSES)
        raise ValidationError(f"Status must be one of: {allowed}", {"status": "Invalid status"})
    return status


def clean_attendance(record: Dict[str, Any]) -> Dict[str, Any]:
    """Accepts both the API's and the older client's field names."""
    if not isinstance(record, dict):
        raise ValidationError("Attendance record must be an object")
    student_id = _pick(record, "student_id", "studentId")
    raw_date = _pick(record, "date", "attendance_date")
    status = _pick(record, "status")
    if not student_id or not raw_date or not status:
        raise ValidationError("Each attendance record must have student_id, date, and status")
    on = parse_date(raw_date)
    if on is None:
        raise ValidationError("Invalid date format", {"date": "Invalid date format"})
    return {
        "student_id": str(student_id),
        "date": on,
        "status": normalize_status(status),
        "class_id": _pick(record, "class_id", "classId"),
        "description": _pick(record, "description", "notes"),
        "marked_by": _pick(record, "created_by", "marked_by", "createdBy") or "admin",
    }


def _upsert(cleaned: Dict[str, Any]) -> Attendance:
    row = Attendance.query.filter_by(student_id=cleaned["student_id"], date=cleaned["date"]).first()
    if row is None:
        row = Attendance(
            student_id=cleaned["student_id"],
            date=cleaned["date"],
            created_by=cleaned["marked_by"],
        )
        db.session.add(row)
    row.status = cleaned["status"]
    row.description = cleaned["description"]
    row.last_modified_by = cleaned["marked_by"]
    if cleaned["class_id"]:
        row.class_id = cleaned["class_id"]
    elif row.class_id is None:
        student = db.session.get(Student, cleaned["student_id"])
        row.class_id = student.class_id if student else None
    return row


def _ensure_students_exist(student_ids) -> None:
    wanted = set(student_ids)
    found = {sid for (sid,) in db.session.query(Student.id).filter(Student.id.in_(wanted)).all()}
    missing = sorted(wanted - found)
    if missing:
        raise ValidationError("Unknown student: " + ", ".join(missing))


def mark_attendance(record: Dict[str, Any]) -> Attendance:
    cleaned = clean_attendance(record)
    _ensure_students_exist([cleaned["student_id"]])
    row = _upsert(cleaned)
    db.session.commit()
    return row


def bulk_mark_attendance(records: List[Dict[str, Any]]) -> List[Attendance]:
    """Upsert a whole register in one transaction; any bad record rejects all."""
    if not isinstance(records, list) or not records:
        raise ValidationError("attendanceList must be a non-empty array")
    cleaned = [clean_attendance(r) for r in records]
    _ensure_students_exist(c["student_id"] for c in cleaned)
    rows = [_upsert(c) for c in cleaned]
    db.session.commit()
    return rows


def attendance_for_date(on: date) -> List[Dict[str, Any]]:
    rows = (
        Attendance.query.options(joinedload(Attendance.student))
        .filter(Attendance.date == on)
        .order_by(Attendance.created_at.desc())
        .all()
    )
    return [r.to_dict(with_student=True) for r in rows]


def _roster(class_id: Optional[str]):
    query = Student.query.options(joinedload(Student.school_class)).order_by(Student.student_name)
    if class_id and class_id != "all":
        query = query.filter(Student.class_id == class_id)
    return query.all()


def students_with_attendance(on: date, class_id: Optional[str] = None) -> List[Dict[str, Any]]:
    students = _roster(class_id)
    marks = {a.student_id: a for a in Attendance.query.filter(Attendance.date == on).all()}
    result = []
    for student in students:
        data = student.to_dict()
        mark = marks.get(student.id)
        data["attendance"] = mark.to_dict() if mark else None
        result.append(data)
    return result


def _percentage(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


def attendance_statistics(on: date, class_id: Optional[str] = None) -> Dict[str, Any]:
    ids = [s.id for s in _roster(class_id)]
    counts = {status: 0 for status in ATTENDANCE_STATUSES}
    if ids:
        rows = (
            db.session.query(Attendance.status, db.func.count(Attendance.id))
            .filter(Attendance.date == on, Attendance.student_id.in_(ids))
            .group_by(Attendance.status)
            .all()
        )
        for status, count in rows:
            counts[status] = counts.get(status, 0) + count
    total = len(ids)
    return {
        "totalStudents": total,
        "presentCount": counts["PRESENT"],
        "absentCount": counts["ABSENT"],
        "lateCount": counts["LATE"],
        "halfDayCount": counts["HALF_DAY"],
        "attendancePercentage": _percentage(counts["PRESENT"], total),
    }


def attendance_trends(days: int = 30, today: Optional[date] = None) -> List[Dict[str, Any]]:
    """Per-day present/absent counts for the last ``days`` days, oldest first.

    Only days with at least one mark appear; anything not PRESENT counts
    as absent.
    """
    if days <= 0:
        raise ValidationError("days must be a positive number")
    end = today or school_today()
    start = end - timedelta(days=days)
    rows = (
        db.session.query(Attendance.date, Attendance.status)
        .filter(Attendance.date >= start, Attendance.date <= end)
        .order_by(Attendance.date)
        .all()
    )
    total = db.session.query(db.func.count(Student.id)).scalar() or 0

    by_day: "OrderedDict[date, Dict[str, int]]" = OrderedDict()
    for on, status in rows:
        slot = by_day.setdefault(on, {"present": 0, "absent": 0})
        slot["present" if status == "PRESENT" else "absent"] += 1
    return [
        {
            "date": on.isoformat(),
            "presentCount": counts["present"],
            "absentCount": counts["absent"],
            "attendancePercentage": _percentage(counts["present"], total),
        }
        for on, counts in by_day.items()
    ]


def parse_days(value: Any, default: int = 30) -> int:
    if value in (None, ""):
        return default
    days = parse_int(value)
    if days is None or days <= 0:
        raise ValidationError("days must be a positive number")
    return days


def save_attendance_message(data: Dict[str, Any]) -> AttendanceMessage:
    student_id = _pick(data, "student_id", "studentId")
    on = parse_date(_pick(data, "date"))
    content = _pick(data, "message_content", "messageContent")
    recipient_type = _pick(data, "recipient_type", "recipientType")
    number = _pick(data, "recipient_number", "recipientNumber")
    if not (student_id and on and content and recipient_type and number):
        raise ValidationError(
            "student_id, date, message_content, recipient_type and recipient_number are required"
        )
    if recipient_type not in RECIPIENT_TYPES:
        raise ValidationError("Invalid recipient type", {"recipient_type": "Invalid recipient type"})
    status = _pick(data, "delivery_status", "deliveryStatus") or "pending"
    if status not in DELIVERY_STATUSES:
        raise ValidationError("Invalid delivery status", {"delivery_status": "Invalid delivery status"})
    _ensure_students_exist([str(student_id)])
    message = AttendanceMessage(
        student_id=str(student_id),
        date=on,
        message_content=content,
        recipient_type=recipient_type,
        recipient_number=str(number),
        delivery_status=status,
    )
    db.session.add(message)
    db.session.commit()
    return message


def attendance_messages(on: Optional[date] = None) -> List[Dict[str, Any]]:
    query = AttendanceMessage.query.options(joinedload(AttendanceMessage.student)).order_by(
        AttendanceMessage.created_at.desc()
    )
    if on is not None:
        query = query.filter(AttendanceMessage.date == on)
    return [m.to_dict(with_student=True) for m in query.all()]
