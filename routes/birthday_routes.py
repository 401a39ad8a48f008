from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from utils import admin_required
from utils.birthdays import FILTERS, birthdays, log_birthday_message

birthday_bp = Blueprint("birthdays", __name__, url_prefix="/api")


@birthday_bp.route("/birthdays", methods=["GET"])
@admin_required
def get_birthdays():
    filter_name = request.args.get("filter") or "all"
    if filter_name not in FILTERS:
        filter_name = "all"
    try:
        return jsonify(birthdays(filter_name))
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error fetching birthday data")
        return jsonify({"error": "Failed to fetch birthday data"}), 500


@birthday_bp.route("/birthdays", methods=["POST"])
@admin_required
def post_birthday_message():
    data = request.get_json(silent=True) or {}
    student_id = data.get("student_id")
    message = data.get("birthday_message")
    sent_to = data.get("sent_to")
    if not (student_id and message and sent_to):
        return jsonify({"error": "student_id, birthday_message and sent_to are required"}), 400
    # a failed log write does not fail the greeting
    logged = log_birthday_message(student_id, message, sent_to, data.get("phone_number"))
    return jsonify({"success": True, "logged": logged})
