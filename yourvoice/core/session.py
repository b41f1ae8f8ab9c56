# yourvoice/core/session.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

import jwt
from fastapi import Depends, Request, Response

from yourvoice.core.clock import get_now
from yourvoice.core.config import Settings, get_settings
from yourvoice.core.errors import Unauthorized
from yourvoice.schemas.session import Actor, SessionData

logger = logging.getLogger(__name__)

ANONYMOUS = SessionData()


def session_for_actor(actor: Actor, settings: Settings, now: datetime) -> SessionData:
    """Build a logged-in session for a directory actor, applying the admin e-mail list."""
    personnel_type = "Admin" if (actor.personnel_type == "Admin" or settings.is_admin_email(actor.email)) else "User"
    return SessionData(
        id=actor.id,
        is_logged_in=True,
        username=actor.username,
        email=actor.email,
        personnel_type=personnel_type,
        department=actor.department,
        expires_at=int(now.timestamp()) + int(settings.session_max_age_seconds),
    )


def encode_session(session: SessionData, settings: Settings) -> str:
    payload = {
        "sub": session.id,
        "username": session.username,
        "email": session.email,
        "personnel_type": session.personnel_type,
        "department": session.department,
        "exp": session.expires_at,
    }
    return jwt.encode(payload, settings.session_secret, algorithm=settings.session_algorithm)


def decode_session(token: Optional[str], settings: Settings, now: datetime) -> SessionData:
    """
    Anonymous session for a missing, tampered or expired cookie. Expiry is
    checked against `now` rather than the wall clock.
    """
    if not token:
        return ANONYMOUS
    try:
        payload = jwt.decode(
            token,
            settings.session_secret,
            algorithms=[settings.session_algorithm],
            options={"verify_exp": False},
        )
    except jwt.PyJWTError as e:
        logger.info("Rejected session cookie: %s", type(e).__name__)
        return ANONYMOUS

    expires_at = payload.get("exp")
    if expires_at is None or int(now.timestamp()) > int(expires_at):
        logger.info("Session expired for %s", payload.get("sub"))
        return ANONYMOUS
    if not payload.get("sub"):
        return ANONYMOUS

    return SessionData(
        id=payload["sub"],
        is_logged_in=True,
        username=payload.get("username"),
        email=payload.get("email"),
        personnel_type=payload.get("personnel_type") or "User",
        department=payload.get("department"),
        expires_at=int(expires_at),
    )


def save_session(response: Response, session: SessionData, settings: Settings) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=encode_session(session, settings),
        max_age=settings.session_max_age_seconds,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
        path="/",
    )


def destroy_session(response: Response, settings: Settings) -> None:
    response.delete_cookie(key=settings.session_cookie_name, path="/")


# -------------------------
# FastAPI dependencies
# -------------------------
def get_session(
    request: Request,
    settings: Settings = Depends(get_settings),
    now: datetime = Depends(get_now),
) -> SessionData:
    return decode_session(request.cookies.get(settings.session_cookie_name), settings, now)


def require_login(session: SessionData = Depends(get_session)) -> SessionData:
    if not session.is_logged_in:
        raise Unauthorized("User not authenticated.")
    return session


def require_admin(session: SessionData = Depends(require_login)) -> SessionData:
    if not session.is_admin:
        raise Unauthorized("Admin access required.", forbidden=True)
    return session
