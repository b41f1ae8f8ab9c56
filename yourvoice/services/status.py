# yourvoice/services/status.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterable, List

from yourvoice.schemas.feedback import FeedbackRecord, FeedbackStatus, as_utc

logger = logging.getLogger(__name__)

PersistStatus = Callable[[str, FeedbackStatus], None]


def derive_status(record: FeedbackRecord, now: datetime) -> FeedbackStatus:
    """
    Overdue once `now` is past the validity end, unless already Resolved.
    Records without a validity window keep their stored status.
    """
    if record.status == FeedbackStatus.RESOLVED:
        return record.status
    if record.validity is None:
        return record.status
    if as_utc(now) > as_utc(record.validity.end_date):
        return FeedbackStatus.OVERDUE
    return record.status


def refresh_statuses(
    records: Iterable[FeedbackRecord],
    now: datetime,
    persist: PersistStatus,
) -> List[FeedbackRecord]:
    """
    Run derive_status over a listing. `persist(record_id, status)` is called
    once for every record whose status changed; its errors propagate.
    """
    out: List[FeedbackRecord] = []
    for record in records:
        derived = derive_status(record, now)
        if derived != record.status:
            persist(record.id, derived)
            logger.info("feedback %s: %s -> %s", record.id, record.status.value, derived.value)
            record = record.model_copy(update={"status": derived})
        out.append(record)
    return out
