from datetime import date, timedelta

from models import Attendance
from utils.attendance import attendance_trends


def test_mark_attendance_upserts(auth_client, make_student):
    s = make_student()
    resp = auth_client.post("/api/attendance", json={"student_id": s.id, "date": "2025-06-10", "status": "present"})
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "PRESENT"
    assert resp.get_json()["class_id"] == s.class_id

    resp = auth_client.post(
        "/api/attendance",
        json={"student_id": s.id, "attendance_date": "2025-06-10", "status": "late", "notes": "bus"},
    )
    assert resp.status_code == 200
    assert Attendance.query.count() == 1
    assert Attendance.query.one().status == "LATE"
    assert Attendance.query.one().description == "bus"


def test_mark_attendance_validation(auth_client, make_student):
    s = make_student()
    resp = auth_client.post("/api/attendance", json={"student_id": s.id, "date": "2025-06-10", "status": "asleep"})
    assert resp.status_code == 400
    resp = auth_client.post("/api/attendance", json={"student_id": s.id, "status": "present"})
    assert resp.status_code == 400
    resp = auth_client.post("/api/attendance", json={"student_id": "ghost", "date": "2025-06-10", "status": "present"})
    assert resp.status_code == 400


def test_bulk_is_all_or_nothing(auth_client, make_student):
    a = make_student("A")
    b = make_student("B")
    resp = auth_client.post(
        "/api/attendance/bulk",
        json={
            "attendanceList": [
                {"student_id": a.id, "date": "2025-06-10", "status": "present"},
                {"student_id": b.id, "date": "2025-06-10", "status": "nope"},
            ]
        },
    )
    assert resp.status_code == 400
    assert Attendance.query.count() == 0

    resp = auth_client.post(
        "/api/attendance/bulk",
        json={
            "attendanceList": [
                {"student_id": a.id, "date": "2025-06-10", "status": "present"},
                {"student_id": b.id, "date": "2025-06-10", "status": "half_day"},
            ]
        },
    )
    assert resp.status_code == 200
    assert sorted(r["status"] for r in resp.get_json()) == ["HALF_DAY", "PRESENT"]
    assert auth_client.post("/api/attendance/bulk", json={"attendanceList": []}).status_code == 400


def test_roster_and_statistics(auth_client, make_student):
    a = make_student("A")
    b = make_student("B")
    make_student("C")
    make_student("Elsewhere", class_id=None)
    auth_client.post("/api/attendance", json={"student_id": a.id, "date": "2025-06-10", "status": "present"})
    auth_client.post("/api/attendance", json={"student_id": b.id, "date": "2025-06-10", "status": "absent"})

    rows = auth_client.get(f"/api/attendance/students?date=2025-06-10&class={a.class_id}").get_json()
    assert [r["student_name"] for r in rows] == ["A", "B", "C"]
    assert rows[0]["attendance"]["status"] == "PRESENT"
    assert rows[2]["attendance"] is None

    stats = auth_client.get(f"/api/attendance/statistics?date=2025-06-10&class={a.class_id}").get_json()
    assert stats["totalStudents"] == 3
    assert stats["presentCount"] == 1
    assert stats["absentCount"] == 1
    assert stats["attendancePercentage"] == 33.33

    stats = auth_client.get("/api/attendance/statistics?date=2025-06-10&class=all").get_json()
    assert stats["totalStudents"] == 4
    assert stats["attendancePercentage"] == 25.0

    assert auth_client.get("/api/attendance/statistics").status_code == 400
    by_date = auth_client.get("/api/attendance?date=2025-06-10").get_json()
    assert {r["student"]["student_name"] for r in by_date} == {"A", "B"}


def test_trends(app, auth_client, make_student):
    a = make_student("A")
    b = make_student("B")
    today = date(2025, 6, 30)
    for offset, status in ((1, "present"), (1, "absent"), (3, "present")):
        student = a if status == "present" and offset == 1 else b
        auth_client.post(
            "/api/attendance",
            json={"student_id": student.id, "date": (today - timedelta(days=offset)).isoformat(), "status": status},
        )
    trends = attendance_trends(7, today=today)
    assert [t["date"] for t in trends] == ["2025-06-27", "2025-06-29"]
    assert trends[1] == {"date": "2025-06-29", "presentCount": 1, "absentCount": 1, "attendancePercentage": 50.0}
    assert auth_client.get("/api/attendance/trends?days=0").status_code == 400


def test_attendance_messages(auth_client, make_student):
    s = make_student()
    resp = auth_client.post(
        "/api/attendance/messages",
        json={
            "student_id": s.id,
            "date": "2025-06-10",
            "message_content": "Absent today",
            "recipient_type": "father",
            "recipient_number": "9876543210",
        },
    )
    assert resp.status_code == 201
    assert resp.get_json()["delivery_status"] == "pending"
    listed = auth_client.get("/api/attendance/messages?date=2025-06-10").get_json()
    assert listed[0]["student"]["id"] == s.id
    assert auth_client.get("/api/attendance/messages?date=2025-06-11").get_json() == []
    bad = auth_client.post("/api/attendance/messages", json={"student_id": s.id})
    assert bad.status_code == 400
