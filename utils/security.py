from __future__ import annotations

import hmac
from typing import Optional


def check_access_key(configured: Optional[str], candidate: Optional[str]) -> bool:
    """Constant-time comparison of the submitted key against the configured one.

    An unset or blank configured key never matches.
    """
    configured = (configured or "").strip()
    if not configured:
        return False
    return hmac.compare_digest(configured.encode("utf-8"), (candidate or "").strip().encode("utf-8"))
