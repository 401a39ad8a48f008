from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models import FeeHistoryUpdate


def _stringify(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return str(value.quantize(Decimal("0.01")))
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def diff_fields(current: Dict[str, Any], updates: Dict[str, Any]) -> List[Tuple[str, Optional[str], Optional[str]]]:
    """(field, old, new) for each update whose stringified value changed."""
    changes = []
    for field, new_value in updates.items():
        old = _stringify(current.get(field))
        new = _stringify(new_value)
        if old != new:
            changes.append((field, old, new))
    return changes


def record_payment_changes(
    payment_id: str,
    changes: List[Tuple[str, Optional[str], Optional[str]]],
    updated_by: str = "system",
    reason: Optional[str] = None,
) -> bool:
    """Append one history row per changed field.

    Best effort: the payment update has already been committed, so a
    failure here is logged and reported as False instead of raised.
    """
    if not changes:
        return True
    try:
        for field, old, new in changes:
            db.session.add(
                FeeHistoryUpdate(
                    fee_payment_id=payment_id,
                    field_name=field,
                    old_value=old,
                    new_value=new,
                    updated_by=updated_by or "system",
                    update_reason=reason,
                )
            )
        db.session.commit()
        return True
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error creating history entries for payment %s", payment_id)
        return False


def fetch_payment_history(payment_id: str) -> List[Dict[str, Any]]:
    rows = (
        FeeHistoryUpdate.query.filter_by(fee_payment_id=payment_id)
        .order_by(FeeHistoryUpdate.created_at.desc())
        .all()
    )
    return [row.to_dict() for row in rows]
