# yourvoice/routers/auth.py
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from yourvoice.core.clock import get_now
from yourvoice.core.config import Settings, get_settings
from yourvoice.core.errors import Unauthorized
from yourvoice.core.logging import audit_logger, json_log
from yourvoice.core.session import destroy_session, get_session, save_session, session_for_actor
from yourvoice.schemas.session import LoginIn, SessionData
from yourvoice.services.directory import Directory, get_directory

router = APIRouter(tags=["session"])


def _public(session: SessionData) -> dict:
    out = session.model_dump()
    out["is_admin"] = session.is_admin
    return out


@router.get("/session")
def session_get(session: SessionData = Depends(get_session)):
    return _public(session)


@router.post("/login")
def login(
    request: Request,
    body: LoginIn,
    settings: Settings = Depends(get_settings),
    directory: Directory = Depends(get_directory),
    now: datetime = Depends(get_now),
):
    """
    Password login for local accounts held in the directory. Staff sign in
    through the identity provider, which is handled outside this service.
    """
    actor = directory.find_by_username(body.username)
    if actor is None or not directory.verify_password(actor.id, body.password):
        json_log(
            audit_logger(),
            {
                "ts": now.isoformat(),
                "request_id": getattr(request.state, "request_id", None),
                "object": "session",
                "event": "login_failed",
            },
        )
        raise Unauthorized("Invalid credentials. Staff should use SSO login.")

    session = session_for_actor(actor, settings, now)
    response = JSONResponse(content=_public(session))
    save_session(response, session, settings)

    json_log(
        audit_logger(),
        {
            "ts": now.isoformat(),
            "request_id": getattr(request.state, "request_id", None),
            "object": "session",
            "event": "login",
            "actor": actor.id,
            "personnel_type": session.personnel_type,
        },
    )
    return response


@router.post("/logout")
def logout(
    request: Request,
    settings: Settings = Depends(get_settings),
    session: SessionData = Depends(get_session),
    now: datetime = Depends(get_now),
):
    response = JSONResponse(content={"status": "ok"})
    destroy_session(response, settings)
    if session.is_logged_in:
        json_log(
            audit_logger(),
            {
                "ts": now.isoformat(),
                "request_id": getattr(request.state, "request_id", None),
                "object": "session",
                "event": "logout",
                "actor": session.id,
            },
        )
    return response
