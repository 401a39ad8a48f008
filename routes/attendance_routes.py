from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from utils import admin_required
from utils.attendance import (
    attendance_for_date,
    attendance_messages,
    attendance_statistics,
    attendance_trends,
    bulk_mark_attendance,
    mark_attendance,
    parse_days,
    save_attendance_message,
    students_with_attendance,
)
from utils.validation import ValidationError, parse_date

attendance_bp = Blueprint("attendance", __name__, url_prefix="/api/attendance")


def _required_date():
    raw = request.args.get("date")
    if not raw:
        raise ValidationError("Date parameter is required")
    on = parse_date(raw)
    if on is None:
        raise ValidationError("Invalid date format")
    return on


@attendance_bp.route("", methods=["GET"])
@admin_required
def get_attendance():
    try:
        on = _required_date()
        return jsonify(attendance_for_date(on))
    except ValidationError as exc:
        return jsonify({"error": exc.message}), 400
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error fetching attendance")
        return jsonify({"error": "Failed to fetch attendance"}), 500


@attendance_bp.route("", methods=["POST"])
@admin_required
def post_attendance():
    try:
        row = mark_attendance(request.get_json(silent=True) or {})
        return jsonify(row.to_dict())
    except ValidationError as exc:
        return jsonify({"error": exc.message}), 400
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error marking attendance")
        return jsonify({"error": "Failed to mark attendance"}), 500


@attendance_bp.route("/bulk", methods=["POST"])
@admin_required
def post_bulk_attendance():
    body = request.get_json(silent=True)
    records = body.get("attendanceList") if isinstance(body, dict) else None
    try:
        rows = bulk_mark_attendance(records)
        return jsonify([r.to_dict() for r in rows])
    except ValidationError as exc:
        db.session.rollback()
        return jsonify({"error": exc.message}), 400
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error marking bulk attendance")
        return jsonify({"error": "Failed to mark bulk attendance"}), 500


@attendance_bp.route("/students", methods=["GET"])
@admin_required
def get_students_with_attendance():
    try:
        on = _required_date()
        return jsonify(students_with_attendance(on, request.args.get("class")))
    except ValidationError as exc:
        return jsonify({"error": exc.message}), 400
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error fetching students with attendance")
        return jsonify({"error": "Failed to fetch students with attendance"}), 500


@attendance_bp.route("/statistics", methods=["GET"])
@admin_required
def get_statistics():
    try:
        on = _required_date()
        return jsonify(attendance_statistics(on, request.args.get("class")))
    except ValidationError as exc:
        return jsonify({"error": exc.message}), 400
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error fetching attendance statistics")
        return jsonify({"error": "Failed to fetch attendance statistics"}), 500


@attendance_bp.route("/trends", methods=["GET"])
@admin_required
def get_trends():
    try:
        days = parse_days(request.args.get("days"))
        return jsonify(attendance_trends(days))
    except ValidationError as exc:
        return jsonify({"error": exc.message}), 400
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error fetching attendance trends")
        return jsonify({"error": "Failed to fetch attendance trends"}), 500


@attendance_bp.route("/messages", methods=["GET"])
@admin_required
def get_messages():
    raw = request.args.get("date")
    on = parse_date(raw) if raw else None
    if raw and on is None:
        return jsonify({"error": "Invalid date format"}), 400
    try:
        return jsonify(attendance_messages(on))
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error fetching attendance messages")
        return jsonify({"error": "Failed to fetch attendance messages"}), 500


@attendance_bp.route("/messages", methods=["POST"])
@admin_required
def post_message():
    try:
        message = save_attendance_message(request.get_json(silent=True) or {})
        return jsonify(message.to_dict()), 201
    except ValidationError as exc:
        return jsonify({"error": exc.message}), 400
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error saving attendance message")
        return jsonify({"error": "Failed to save attendance message"}), 500
