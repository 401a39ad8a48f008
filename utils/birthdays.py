from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from dateutil.relativedelta import relativedelta
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models import BirthdayMessage, Student
from utils.cache import BIRTHDAY_STUDENTS, get_cache
from utils.storage import to_public_url
from utils.timezone_helpers import school_today
from utils.validation import parse_date

FILTERS = ("today", "week", "month", "upcoming", "all")
UPCOMING_DAYS = 30
PHOTO_FIELDS = ("student_photo_url", "father_photo_url", "mother_photo_url")


def birthday_in_year(born: date, year: int) -> date:
    # relativedelta clamps 29 Feb to 28 Feb in common years
    return born + relativedelta(years=year - born.year)


def annotate(student: Dict[str, Any], today: date) -> Optional[Dict[str, Any]]:
    born = parse_date(student.get("date_of_birth"))
    if born is None:
        return None
    this_year = birthday_in_year(born, today.year)
    upcoming = this_year if this_year >= today else birthday_in_year(born, today.year + 1)
    week_start = today - timedelta(days=today.weekday())

    data = dict(student)
    for name in PHOTO_FIELDS:
        data[name] = to_public_url(data.get(name))
    data.update(
        {
            "age": relativedelta(today, born).years,
            "daysUntilBirthday": (upcoming - today).days,
            "isToday": this_year == today,
            "isThisWeek": week_start <= this_year < week_start + timedelta(days=7),
            "isThisMonth": this_year.month == today.month,
            "nextBirthday": upcoming.isoformat(),
            "birthdayThisYear": this_year.isoformat(),
        }
    )
    return data


def _load_roster() -> List[Dict[str, Any]]:
    rows = (
        Student.query.filter(Student.date_of_birth.isnot(None))
        .order_by(Student.date_of_birth.asc())
        .all()
    )
    return [s.to_dict() for s in rows]


def birthday_roster() -> List[Dict[str, Any]]:
    ttl = current_app.config.get("CACHE_TTL_LONG")
    return get_cache().get_or_load(BIRTHDAY_STUDENTS, _load_roster, ttl)


def birthdays(filter_name: str = "all", today: Optional[date] = None) -> List[Dict[str, Any]]:
    """Students with a date of birth, annotated and filtered.

    ``all`` (and any unknown filter) lists today's birthdays first, then by
    days until the next birthday.
    """
    today = today or school_today()
    annotated = [a for a in (annotate(s, today) for s in birthday_roster()) if a is not None]
    if filter_name == "today":
        return [s for s in annotated if s["isToday"]]
    if filter_name == "week":
        return [s for s in annotated if s["isThisWeek"]]
    if filter_name == "month":
        return [s for s in annotated if s["isThisMonth"]]
    if filter_name == "upcoming":
        return [s for s in annotated if s["daysUntilBirthday"] <= UPCOMING_DAYS]
    return sorted(annotated, key=lambda s: (not s["isToday"], s["daysUntilBirthday"]))


def log_birthday_message(student_id: str, message: str, sent_to: str, phone_number: Optional[str] = None) -> bool:
    """Record that a greeting went out. Failures are logged, never raised."""
    try:
        db.session.add(
            BirthdayMessage(
                student_id=student_id,
                message_content=message,
                sent_to=sent_to,
                phone_number=phone_number,
            )
        )
        db.session.commit()
        return True
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error logging birthday message for %s", student_id)
        return False
