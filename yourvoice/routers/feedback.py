# yourvoice/routers/feedback.py
from __future__ import annotations

import hashlib
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import JSONResponse

from yourvoice.core.clock import get_now
from yourvoice.core.config import Settings, get_settings
from yourvoice.core.errors import NotFound, ValidationFailure
from yourvoice.core.logging import audit_logger, json_log
from yourvoice.core.session import get_session, require_admin
from yourvoice.schemas.feedback import (
    AssignOp,
    FeedbackCreateIn,
    FeedbackList,
    FeedbackRecord,
    FeedbackStatus,
    FeedbackUpdateIn,
)
from yourvoice.schemas.session import SessionData
from yourvoice.services import store
from yourvoice.services.analysis import monthly_resolution, status_counts
from yourvoice.services.directory import Directory, get_directory
from yourvoice.services.feedback_ops import apply_update
from yourvoice.services.status import refresh_statuses

router = APIRouter(tags=["feedback"])

# server-managed fields never written back from a record copy
_READ_ONLY = {"id", "object", "created_at", "updated_at"}


def _status_writer(sqlite_path: Path, now: datetime):
    def persist(record_id: str, status: FeedbackStatus) -> None:
        store.update_by_id(sqlite_path, store.FEEDBACK, record_id, {"status": status.value}, now=now)

    return persist


def _load_all(settings: Settings, now: datetime) -> List[FeedbackRecord]:
    sqlite_path = settings.abs_sqlite_path()
    docs = store.find_all(sqlite_path, store.FEEDBACK, newest_first=True)
    records = [FeedbackRecord.model_validate(d) for d in docs]
    return refresh_statuses(records, now, _status_writer(sqlite_path, now))


def _load_one(settings: Settings, feedback_id: str, now: datetime) -> FeedbackRecord:
    sqlite_path = settings.abs_sqlite_path()
    doc = store.find_by_id(sqlite_path, store.FEEDBACK, feedback_id)
    if not doc:
        raise NotFound("Feedback not found.", param="feedback_id")
    record = FeedbackRecord.model_validate(doc)
    return refresh_statuses([record], now, _status_writer(sqlite_path, now))[0]


def _matches(record: FeedbackRecord, status: Optional[FeedbackStatus], q: Optional[str]) -> bool:
    if status is not None and record.status != status:
        return False
    if q:
        needle = q.strip().lower()
        return needle in record.title.lower() or needle in record.concern.lower()
    return True


def _etag(payload: Dict[str, Any]) -> str:
    raw = json.dumps(payload, sort_keys=True, ensure_ascii=False, default=str)
    return '"' + hashlib.sha256(raw.encode("utf-8")).hexdigest()[:32] + '"'


def _etag_matches(if_none_match: Optional[str], etag: str) -> bool:
    """Weak comparison against a comma-separated If-None-Match list."""
    if not if_none_match:
        return False
    for tag in if_none_match.split(","):
        tag = tag.strip()
        if tag == "*":
            return True
        if tag.startswith("W/"):
            tag = tag[2:]
        if tag == etag:
            return True
    return False


@router.post("/feedback", response_model=FeedbackRecord)
def feedback_create(
    request: Request,
    body: FeedbackCreateIn,
    settings: Settings = Depends(get_settings),
    session: SessionData = Depends(get_session),
    now: datetime = Depends(get_now),
):
    # anonymous submissions never record the submitter
    submitted_by = session.id if (session.is_logged_in and not body.anonymous) else None

    doc = body.model_dump(mode="json", exclude={"anonymous"})
    doc.update(
        {
            "submitted_by": submitted_by,
            "assigned_to": None,
            "status": FeedbackStatus.OPEN.value,
            "likes": [],
            "dislikes": [],
            "comments": [],
            "approved": False,
        }
    )
    created = store.create_document(settings.abs_sqlite_path(), store.FEEDBACK, doc, now=now)

    json_log(
        audit_logger(),
        {
            "ts": now.isoformat(),
            "request_id": getattr(request.state, "request_id", None),
            "object": "feedback",
            "event": "created",
            "id": created["id"],
            "department": created["department"],
            "anonymous": submitted_by is None,
        },
    )
    return FeedbackRecord.model_validate(created)


@router.get("/feedback")
def feedback_list(
    request: Request,
    status: Optional[FeedbackStatus] = Query(default=None),
    q: Optional[str] = Query(default=None),
    settings: Settings = Depends(get_settings),
    now: datetime = Depends(get_now),
):
    records = [r for r in _load_all(settings, now) if _matches(r, status, q)]
    payload = FeedbackList(items=records, count=len(records)).model_dump(mode="json")

    etag = _etag(payload)
    if _etag_matches(request.headers.get("If-None-Match"), etag):
        return Response(status_code=304, headers={"ETag": etag})
    return JSONResponse(content=payload, headers={"ETag": etag})


@router.get("/feedback/analysis")
def feedback_analysis(
    settings: Settings = Depends(get_settings),
    now: datetime = Depends(get_now),
):
    records = _load_all(settings, now)
    return {
        "status_counts": status_counts(records),
        "monthly": monthly_resolution(records, now, months=settings.analysis_months),
        "total": len(records),
    }


@router.get("/feedback/{feedback_id}", response_model=FeedbackRecord)
def feedback_get(
    feedback_id: str,
    settings: Settings = Depends(get_settings),
    now: datetime = Depends(get_now),
):
    return _load_one(settings, feedback_id, now)


@router.put("/feedback/{feedback_id}", response_model=FeedbackRecord)
def feedback_update(
    request: Request,
    feedback_id: str,
    body: FeedbackUpdateIn,
    settings: Settings = Depends(get_settings),
    session: SessionData = Depends(get_session),
    directory: Directory = Depends(get_directory),
    now: datetime = Depends(get_now),
):
    record = _load_one(settings, feedback_id, now)

    if isinstance(body.op, AssignOp) and session.is_admin:
        if directory.get_actor(body.op.assigned_to) is None:
            raise ValidationFailure("Assignee not found in directory.", param="assigned_to")

    updated = apply_update(record, body.op, session, now)
    changes = updated.model_dump(mode="json", exclude=_READ_ONLY)
    saved = store.update_by_id(settings.abs_sqlite_path(), store.FEEDBACK, feedback_id, changes, now=now)
    if saved is None:
        # deleted between read and write
        raise NotFound("Feedback not found.", param="feedback_id")

    json_log(
        audit_logger(),
        {
            "ts": now.isoformat(),
            "request_id": getattr(request.state, "request_id", None),
            "object": "feedback",
            "event": "updated",
            "id": feedback_id,
            "action": body.op.action,
            "actor": session.id,
            "status": updated.status.value,
        },
    )
    return FeedbackRecord.model_validate(saved)


@router.delete("/feedback/{feedback_id}")
def feedback_delete(
    request: Request,
    feedback_id: str,
    settings: Settings = Depends(get_settings),
    session: SessionData = Depends(require_admin),
    now: datetime = Depends(get_now),
):
    if not store.delete_by_id(settings.abs_sqlite_path(), store.FEEDBACK, feedback_id):
        raise NotFound("Feedback not found.", param="feedback_id")

    json_log(
        audit_logger(),
        {
            "ts": now.isoformat(),
            "request_id": getattr(request.state, "request_id", None),
            "object": "feedback",
            "event": "deleted",
            "id": feedback_id,
            "actor": session.id,
        },
    )
    return {"status": "ok", "message": "Feedback deleted successfully", "id": feedback_id}
