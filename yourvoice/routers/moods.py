# yourvoice/routers/moods.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from yourvoice.core.clock import get_now
from yourvoice.core.config import Settings, get_settings
from yourvoice.core.errors import NotFound, Unauthorized, ValidationFailure
from yourvoice.core.logging import audit_logger, json_log
from yourvoice.core.session import require_admin, require_login
from yourvoice.schemas.mood import MoodEntry, MoodIn, MoodSummary, MoodUpdateIn
from yourvoice.schemas.session import SessionData
from yourvoice.services import store
from yourvoice.services.directory import Directory, get_directory
from yourvoice.services.moods import aggregate_moods, rank_departments

router = APIRouter(tags=["mood"])


def start_of_day(now: datetime) -> datetime:
    """Midnight UTC of the day containing `now`."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)


def _owned_mood(settings: Settings, mood_id: str, session: SessionData) -> MoodEntry:
    doc = store.find_by_id(settings.abs_sqlite_path(), store.MOODS, mood_id)
    if not doc:
        raise NotFound("Mood not found.", param="mood_id")
    entry = MoodEntry.model_validate(doc)
    if entry.user_id != session.id and not session.is_admin:
        raise Unauthorized("Not allowed to access this mood entry.", forbidden=True)
    return entry


@router.post("/mood")
def mood_submit(
    request: Request,
    body: MoodIn,
    settings: Settings = Depends(get_settings),
    session: SessionData = Depends(require_login),
    directory: Directory = Depends(get_directory),
    now: datetime = Depends(get_now),
):
    department = body.department or session.department
    if not department:
        actor = directory.get_actor(session.id)
        department = actor.department if actor else None
    if not department:
        raise ValidationFailure("department is required", param="department")

    sqlite_path = settings.abs_sqlite_path()
    existing = store.find_one(
        sqlite_path, store.MOODS, since=start_of_day(now), where={"user_id": session.id}
    )

    # one mood per person per day: a second submission replaces the first
    if existing:
        doc = store.update_by_id(
            sqlite_path,
            store.MOODS,
            existing["id"],
            {"mood": body.mood.value, "department": department},
            now=now,
        )
        event = "replaced"
    else:
        doc = store.create_document(
            sqlite_path,
            store.MOODS,
            {"mood": body.mood.value, "user_id": session.id, "department": department},
            now=now,
        )
        event = "created"

    json_log(
        audit_logger(),
        {
            "ts": now.isoformat(),
            "request_id": getattr(request.state, "request_id", None),
            "object": "mood",
            "event": event,
            "id": doc["id"],
            "department": department,
        },
    )
    return {"message": "Mood saved successfully", "mood": MoodEntry.model_validate(doc)}


@router.get("/mood/today")
def mood_today(
    settings: Settings = Depends(get_settings),
    session: SessionData = Depends(require_login),
    now: datetime = Depends(get_now),
):
    doc = store.find_one(
        settings.abs_sqlite_path(), store.MOODS, since=start_of_day(now), where={"user_id": session.id}
    )
    return {"mood": MoodEntry.model_validate(doc) if doc else None}


@router.get("/mood/{mood_id}")
def mood_get(
    mood_id: str,
    settings: Settings = Depends(get_settings),
    session: SessionData = Depends(require_login),
):
    return {"mood": _owned_mood(settings, mood_id, session)}


@router.put("/mood/{mood_id}")
def mood_update(
    mood_id: str,
    body: MoodUpdateIn,
    settings: Settings = Depends(get_settings),
    session: SessionData = Depends(require_login),
    now: datetime = Depends(get_now),
):
    _owned_mood(settings, mood_id, session)
    doc = store.update_by_id(
        settings.abs_sqlite_path(), store.MOODS, mood_id, {"mood": body.mood.value}, now=now
    )
    if doc is None:
        raise NotFound("Mood not found.", param="mood_id")
    return {"message": "Mood updated successfully", "mood": MoodEntry.model_validate(doc)}


@router.delete("/mood/{mood_id}")
def mood_delete(
    mood_id: str,
    settings: Settings = Depends(get_settings),
    session: SessionData = Depends(require_login),
):
    _owned_mood(settings, mood_id, session)
    if not store.delete_by_id(settings.abs_sqlite_path(), store.MOODS, mood_id):
        raise NotFound("Mood not found.", param="mood_id")
    return {"message": "Mood deleted successfully"}


@router.get("/moods")
def moods_today(
    settings: Settings = Depends(get_settings),
    session: SessionData = Depends(require_admin),
    now: datetime = Depends(get_now),
):
    docs = store.find_all(settings.abs_sqlite_path(), store.MOODS, since=start_of_day(now))
    items = [MoodEntry.model_validate(d) for d in docs]
    return {"items": items, "count": len(items)}


@router.get("/moods/summary", response_model=MoodSummary)
def moods_summary(
    since: Optional[datetime] = Query(default=None),
    settings: Settings = Depends(get_settings),
    session: SessionData = Depends(require_admin),
    now: datetime = Depends(get_now),
):
    since = since or start_of_day(now)
    # oldest first so departments rank in first-seen order on ties
    docs = store.find_all(settings.abs_sqlite_path(), store.MOODS, newest_first=False, since=since)
    agg = aggregate_moods(MoodEntry.model_validate(d) for d in docs)
    ranking = rank_departments(agg.per_department)

    return MoodSummary(
        per_department=agg.per_department,
        overall=agg.overall,
        ranking=ranking,
        highest=ranking[0] if ranking else None,
        lowest=ranking[-1] if ranking else None,
        since=since,
    )
