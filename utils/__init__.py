from __future__ import annotations

from functools import wraps
from typing import Callable, TypeVar, Any, cast
from flask import session, jsonify

F = TypeVar("F", bound=Callable[..., Any])


def admin_required(func: F) -> F:
    """Decorator that requires an admin session.

    - If ``session['admin_logged_in']`` is truthy, proceeds to the view.
    - Otherwise, answers ``401 {"error": "Unauthorized"}``.
    """

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        if not session.get("admin_logged_in"):
            return jsonify({"error": "Unauthorized"}), 401
        return func(*args, **kwargs)

    return cast(F, wrapper)
