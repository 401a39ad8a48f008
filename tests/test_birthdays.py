from datetime import date
from unittest.mock import patch

from sqlalchemy.exc import SQLAlchemyError

from models import BirthdayMessage
from utils.birthdays import annotate, birthday_in_year, birthdays
from utils.storage import extract_object_path, to_public_url

PUBLIC = "https://demo.supabase.co/storage/v1/object/public"


def test_annotate_counts_age_and_days():
    today = date(2025, 6, 11)  # a Wednesday
    data = annotate({"id": "s", "date_of_birth": "2015-06-14"}, today)
    assert data["age"] == 9
    assert data["daysUntilBirthday"] == 3
    assert data["isToday"] is False
    assert data["isThisWeek"] is True
    assert data["isThisMonth"] is True
    assert data["nextBirthday"] == "2025-06-14"


def test_week_starts_on_monday():
    today = date(2025, 6, 15)  # Sunday
    assert annotate({"date_of_birth": "2016-06-09"}, today)["isThisWeek"] is True
    assert annotate({"date_of_birth": "2016-06-16"}, today)["isThisWeek"] is False


def test_passed_birthday_rolls_to_next_year():
    data = annotate({"date_of_birth": "2014-01-02"}, date(2025, 6, 11))
    assert data["nextBirthday"] == "2026-01-02"
    assert data["birthdayThisYear"] == "2025-01-02"
    assert data["age"] == 11


def test_leap_day_birthday():
    assert birthday_in_year(date(2016, 2, 29), 2025) == date(2025, 2, 28)


def test_filters(app, make_student):
    make_student("Today Kid", date_of_birth=date(2018, 6, 11))
    make_student("Soon Kid", date_of_birth=date(2017, 6, 30))
    make_student("Later Kid", date_of_birth=date(2016, 12, 1))
    make_student("No Date")
    today = date(2025, 6, 11)

    names = lambda rows: [r["student_name"] for r in rows]  # noqa: E731
    assert names(birthdays("today", today)) == ["Today Kid"]
    assert names(birthdays("upcoming", today)) == ["Soon Kid", "Today Kid"]
    assert set(names(birthdays("month", today))) == {"Today Kid", "Soon Kid"}
    assert names(birthdays("all", today)) == ["Today Kid", "Soon Kid", "Later Kid"]


def test_photo_urls_become_public(app, make_student):
    make_student(
        "Photo Kid",
        date_of_birth=date(2018, 6, 11),
        student_photo_url="https://demo.supabase.co/storage/v1/object/sign/File/id-cards/p.jpg?token=abc",
    )
    (row,) = birthdays("all", date(2025, 6, 11))
    assert row["student_photo_url"] == f"{PUBLIC}/File/id-cards/p.jpg"


def test_storage_url_forms(app):
    assert extract_object_path(f"{PUBLIC}/File/File/id-cards/a.png") == "id-cards/a.png"
    assert extract_object_path("https://x.supabase.co/storage/v1/object/sign/File/b.png?token=t") == "b.png"
    assert extract_object_path("https://example.com/c.png") is None
    assert to_public_url("https://example.com/c.png") == "https://example.com/c.png"
    assert to_public_url(None) is None


def test_birthday_endpoint(auth_client, make_student):
    s = make_student("Kid", date_of_birth=date(2018, 1, 1))
    rows = auth_client.get("/api/birthdays?filter=bogus").get_json()
    assert [r["id"] for r in rows] == [s.id]

    resp = auth_client.post(
        "/api/birthdays", json={"student_id": s.id, "birthday_message": "Happy birthday!", "sent_to": "father"}
    )
    assert resp.get_json() == {"success": True, "logged": True}
    assert BirthdayMessage.query.count() == 1


def test_birthday_log_failure_does_not_fail_request(auth_client, make_student):
    s = make_student("Kid")
    with patch("utils.birthdays.BirthdayMessage", side_effect=SQLAlchemyError("down")):
        resp = auth_client.post(
            "/api/birthdays", json={"student_id": s.id, "birthday_message": "Hi", "sent_to": "mother"}
        )
    assert resp.status_code == 200
    assert resp.get_json() == {"success": True, "logged": False}
