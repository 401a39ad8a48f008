from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from flask import current_app, has_app_context

DEFAULT_TZ = "Asia/Kolkata"


def school_tz() -> ZoneInfo:
    """The configured school timezone, UTC if the name is unknown."""
    name = current_app.config.get("SCHOOL_TIMEZONE", DEFAULT_TZ) if has_app_context() else DEFAULT_TZ
    try:
        return ZoneInfo(name)
    except ZoneInfoNotFoundError:
        return ZoneInfo("UTC")


def to_school_time(value: Any) -> datetime | None:
    """Convert the provided value to a school-timezone-aware datetime."""
    if not value:
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(school_tz())


def school_now() -> datetime:
    return datetime.now(school_tz())


def school_today() -> date:
    return school_now().date()
