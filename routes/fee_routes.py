from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from utils import admin_required
from utils.audit import fetch_payment_history
from utils.payments import (
    PaymentNotFound,
    bulk_create_payments,
    create_payment,
    delete_payment,
    find_by_receipt,
    list_payments,
    update_payment,
    validate_bulk_entries,
)
from utils.reconcile import payment_summary, pending_fees
from utils.timezone_helpers import school_today
from utils.validation import ValidationError, parse_date, parse_int, parse_period, validate_bulk_request

fee_bp = Blueprint("fees", __name__, url_prefix="/api")


def _bad_request(exc: ValidationError):
    body = {"error": exc.message}
    if exc.errors:
        body["details"] = exc.errors
    return jsonify(body), 400


def _current_period():
    today = school_today()
    month = request.args.get("month") or today.month
    year = request.args.get("year") or today.year
    return parse_period(month, year)


@fee_bp.route("/pending-fees", methods=["GET"])
@admin_required
def get_pending_fees():
    """Students who still owe fees for a month, or ledger totals with ``summary=true``."""
    try:
        month, year = _current_period()
    except ValidationError as exc:
        return _bad_request(exc)
    try:
        if request.args.get("summary") == "true":
            return jsonify(payment_summary(month, year))
        views = pending_fees(month, year, request.args.get("class"))
        return jsonify([v.to_dict() for v in views])
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error fetching pending fees")
        return jsonify({"error": "Failed to fetch pending fees"}), 500


@fee_bp.route("/payments", methods=["GET"])
@admin_required
def get_payments():
    args = request.args
    try:
        result = list_payments(
            page=parse_int(args.get("page")) or 1,
            limit=parse_int(args.get("limit")) or 10,
            sort_by=args.get("sortBy") or "payment_date",
            sort_order=args.get("sortOrder") or "desc",
            status=args.get("status"),
            method=args.get("method"),
            student_name=args.get("studentName"),
            class_name=args.get("className"),
            start_date=parse_date(args.get("startDate")),
            end_date=parse_date(args.get("endDate")),
        )
        return jsonify(result)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error fetching payments")
        return jsonify({"error": "Failed to fetch payments"}), 500


@fee_bp.route("/payments", methods=["POST"])
@admin_required
def post_payment():
    data = request.get_json(silent=True) or {}
    try:
        payment = create_payment(data)
    except ValidationError as exc:
        return _bad_request(exc)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error creating payment")
        return jsonify({"error": "Failed to create payment"}), 500
    current_app.logger.info("Payment %s recorded for student %s", payment.id, payment.student_id)
    return jsonify(payment.to_dict()), 201


@fee_bp.route("/payments", methods=["PUT"])
@admin_required
def put_payment():
    data = dict(request.get_json(silent=True) or {})
    payment_id = data.pop("id", None)
    if not payment_id:
        return jsonify({"error": "Payment ID is required"}), 400
    updated_by = data.pop("updated_by", None) or "system"
    update_reason = data.pop("update_reason", None)
    try:
        payment = update_payment(payment_id, data, updated_by, update_reason)
    except PaymentNotFound:
        return jsonify({"error": "Payment record not found"}), 404
    except ValidationError as exc:
        return _bad_request(exc)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error updating payment %s", payment_id)
        return jsonify({"error": "Failed to update payment"}), 500
    return jsonify(payment.to_dict())


@fee_bp.route("/payments", methods=["DELETE"])
@admin_required
def remove_payment():
    payment_id = request.args.get("id")
    if not payment_id:
        return jsonify({"error": "Payment ID is required"}), 400
    try:
        removed = delete_payment(payment_id)
    except PaymentNotFound:
        return jsonify({"error": "Payment record not found"}), 404
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error deleting payment %s", payment_id)
        return jsonify({"error": "Failed to delete payment"}), 500
    current_app.logger.info("Payment %s deleted", payment_id)
    return jsonify({"message": "Payment deleted successfully", "deleted_payment": removed})


@fee_bp.route("/payments/bulk", methods=["POST"])
@admin_required
def post_bulk_payments():
    body = request.get_json(silent=True)
    try:
        entries = validate_bulk_request(body, current_app.config.get("BULK_MAX_ENTRIES", 100))
    except ValidationError as exc:
        return jsonify({"error": exc.message, "details": exc.errors}), 400

    failures = validate_bulk_entries(entries)
    if failures:
        return jsonify({"error": "Validation failed for some entries", "validationErrors": failures}), 400

    try:
        result = bulk_create_payments(entries)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error processing bulk fee entries")
        return jsonify({"error": "Failed to process bulk fee entries"}), 500
    summary = result["summary"]
    current_app.logger.info(
        "Bulk fee entry: %s of %s saved", summary["successfulEntries"], summary["totalEntries"]
    )
    return jsonify(result)


@fee_bp.route("/fee-history", methods=["GET"])
@admin_required
def get_fee_history():
    payment_id = request.args.get("fee_payment_id")
    if not payment_id:
        return jsonify({"error": "fee_payment_id is required"}), 400
    try:
        return jsonify(fetch_payment_history(payment_id))
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error fetching fee history")
        return jsonify({"error": "Failed to fetch fee history"}), 500


@fee_bp.route("/receipts/<receipt_id>", methods=["GET"])
@admin_required
def get_receipt(receipt_id):
    try:
        payment = find_by_receipt(receipt_id)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error fetching receipt %s", receipt_id)
        return jsonify({"error": "Failed to fetch receipt"}), 500
    if payment is None:
        return jsonify({"error": "Receipt not found"}), 404
    return jsonify(payment.to_dict(with_student=True))
