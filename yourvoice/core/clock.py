# yourvoice/core/clock.py
from __future__ import annotations

from datetime import datetime, timezone


def get_now() -> datetime:
    """Request-time clock; tests override it through dependency_overrides."""
    return datetime.now(timezone.utc)
