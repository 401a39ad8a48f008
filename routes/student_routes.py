from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from utils import admin_required
from utils.students import (
    StudentNotFound,
    class_ids_in_use,
    classes_with_names,
    create_student,
    delete_student,
    search_students,
    students_in_class,
    update_student,
)
from utils.validation import ValidationError, parse_int

student_bp = Blueprint("students", __name__, url_prefix="/api")


@student_bp.route("/students", methods=["GET"])
@admin_required
def get_students_by_class():
    class_id = request.args.get("class")
    if not class_id:
        return jsonify({"error": "Class name is required"}), 400
    try:
        return jsonify(students_in_class(class_id))
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error fetching students for class %s", class_id)
        return jsonify({"error": "Failed to fetch students"}), 500


@student_bp.route("/classes", methods=["GET"])
@admin_required
def get_classes():
    try:
        return jsonify(class_ids_in_use())
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error fetching classes")
        return jsonify({"error": "Failed to fetch classes"}), 500


@student_bp.route("/classes-with-names", methods=["GET"])
@admin_required
def get_classes_with_names():
    try:
        return jsonify(classes_with_names())
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error fetching classes with names")
        return jsonify({"error": "Failed to fetch classes"}), 500


@student_bp.route("/students-management", methods=["GET"])
@admin_required
def list_students():
    args = request.args
    try:
        result = search_students(
            page=parse_int(args.get("page")) or 1,
            limit=parse_int(args.get("limit")) or 20,
            search=(args.get("search") or "").strip(),
            class_filter=args.get("class") or "",
            sort_by=args.get("sortBy") or "student_name",
            sort_order=args.get("sortOrder") or "asc",
        )
        return jsonify(result)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error fetching students")
        return jsonify({"error": "Failed to fetch students"}), 500


@student_bp.route("/students-management", methods=["POST"])
@admin_required
def add_student():
    data = request.get_json(silent=True) or {}
    try:
        student = create_student(data)
    except ValidationError as exc:
        return jsonify({"error": exc.message}), 400
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error creating student")
        return jsonify({"error": "Failed to create student"}), 500
    return jsonify({"message": "Student created successfully", "student": student.to_dict()}), 201


@student_bp.route("/students-management", methods=["PUT"])
@admin_required
def edit_student():
    data = dict(request.get_json(silent=True) or {})
    student_id = data.pop("id", None)
    if not student_id:
        return jsonify({"error": "Student ID is required"}), 400
    try:
        student = update_student(student_id, data)
    except StudentNotFound:
        return jsonify({"error": "Student not found"}), 404
    except ValidationError as exc:
        return jsonify({"error": exc.message}), 400
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error updating student %s", student_id)
        return jsonify({"error": "Failed to update student"}), 500
    return jsonify({"message": "Student updated successfully", "student": student.to_dict()})


@student_bp.route("/students-management", methods=["DELETE"])
@admin_required
def remove_student():
    student_id = request.args.get("id")
    deleted_by = request.args.get("deleted_by") or "admin"
    reason = (request.args.get("delete_reason") or "").strip()
    if not student_id:
        return jsonify({"error": "Student ID is required"}), 400
    if not reason:
        return jsonify({"error": "Delete reason is required"}), 400
    try:
        removed = delete_student(student_id, deleted_by, reason)
    except StudentNotFound:
        return jsonify({"error": "Student not found"}), 404
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error deleting student %s", student_id)
        return jsonify({"error": "Failed to delete student"}), 500
    return jsonify({"message": "Student deleted successfully", "deleted_student": removed})
