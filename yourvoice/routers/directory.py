# yourvoice/routers/directory.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from yourvoice.core.config import Settings, get_settings
from yourvoice.core.errors import NotFound
from yourvoice.core.session import require_admin, require_login
from yourvoice.schemas.session import Actor, ActorPage, SessionData
from yourvoice.services.directory import Directory, get_directory

router = APIRouter(tags=["directory"])


@router.get("/directory/users", response_model=ActorPage)
def directory_list(
    q: Optional[str] = Query(default=None),
    cursor: Optional[str] = Query(default=None),
    page_size: Optional[int] = Query(default=None, ge=1, le=200),
    settings: Settings = Depends(get_settings),
    directory: Directory = Depends(get_directory),
    session: SessionData = Depends(require_admin),
):
    # assignment picker
    return directory.list_actors(
        page_size=page_size or settings.directory_page_size,
        cursor=cursor,
        search=q,
    )


@router.get("/directory/users/{actor_id}", response_model=Actor)
def directory_get(
    actor_id: str,
    directory: Directory = Depends(get_directory),
    session: SessionData = Depends(require_login),
):
    actor = directory.get_actor(actor_id)
    if actor is None:
        raise NotFound("User not found.", param="actor_id")
    return actor
