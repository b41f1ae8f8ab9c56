# yourvoice/routers/health.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from yourvoice.core.config import Settings, get_settings
from yourvoice.services.store import FEEDBACK, MOODS, count_documents, init_db

router = APIRouter(tags=["health"])


@router.get("/health")
def health_root(settings: Settings = Depends(get_settings)):
    # simple liveness + DB init (safe)
    init_db(settings.abs_sqlite_path())
    return {"status": "ok"}


@router.get("/health/store")
def health_store(settings: Settings = Depends(get_settings)):
    path = settings.abs_sqlite_path()
    return {
        "status": "ok",
        "feedback": count_documents(path, FEEDBACK),
        "moods": count_documents(path, MOODS),
    }
