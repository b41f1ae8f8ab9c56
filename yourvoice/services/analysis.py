# yourvoice/services/analysis.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List

from yourvoice.schemas.feedback import FeedbackRecord, FeedbackStatus


def status_counts(records: Iterable[FeedbackRecord]) -> Dict[str, int]:
    counts = {s.value: 0 for s in FeedbackStatus}
    for r in records:
        counts[r.status.value] += 1
    return counts


def _month_start(now: datetime, months_back: int) -> datetime:
    year, month = now.year, now.month - months_back
    while month <= 0:
        month += 12
        year -= 1
    return datetime(year, month, 1, tzinfo=timezone.utc)


def monthly_resolution(
    records: Iterable[FeedbackRecord],
    now: datetime,
    months: int = 12,
) -> List[Dict[str, Any]]:
    """
    Resolved vs total feedback per calendar month (YYYY-MM), for items created
    on or after the first day of the month `months` months ago. Months with
    no feedback are omitted.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    cutoff = _month_start(now.astimezone(timezone.utc), months)

    stats: Dict[str, Dict[str, int]] = {}
    for r in records:
        created = r.created_at if r.created_at.tzinfo else r.created_at.replace(tzinfo=timezone.utc)
        created = created.astimezone(timezone.utc)
        if created < cutoff:
            continue
        key = f"{created.year}-{created.month:02d}"
        bucket = stats.setdefault(key, {"resolved": 0, "total": 0})
        bucket["total"] += 1
        if r.status == FeedbackStatus.RESOLVED:
            bucket["resolved"] += 1

    return [{"month": k, **v} for k, v in sorted(stats.items())]
