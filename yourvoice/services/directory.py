# yourvoice/services/directory.py
"""
Identity directory lookups.

Two backends share the `Directory` protocol:
    static - a JSON file of actors, also holding password hashes for the
             local (non-SSO) admin accounts.
    graph  - Microsoft Graph `/users`, authenticated with the
             client-credentials flow. Read-only; no local logins.

Actor ids are the canonical identifiers stored on feedback and mood
documents.
"""
from __future__ import annotations

import json
import logging
import time
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

import httpx
from fastapi import Depends
from passlib.context import CryptContext

from yourvoice.core.config import Settings, get_settings
from yourvoice.core.errors import UpstreamFailure, ValidationFailure
from yourvoice.schemas.session import Actor, ActorPage

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class Directory(Protocol):
    def get_actor(self, actor_id: str) -> Optional[Actor]: ...

    def find_by_username(self, username: str) -> Optional[Actor]: ...

    def list_actors(
        self, page_size: int = 25, cursor: Optional[str] = None, search: Optional[str] = None
    ) -> ActorPage: ...

    def verify_password(self, actor_id: str, password: str) -> bool: ...


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


# -------------------------
# Static (file-backed) directory
# -------------------------
class StaticDirectory:
    def __init__(self, entries: List[Dict[str, Any]]):
        self._actors: List[Actor] = []
        self._hashes: Dict[str, str] = {}
        for raw in entries:
            actor = Actor.model_validate(raw)
            self._actors.append(actor)
            if raw.get("password_hash"):
                self._hashes[actor.id] = raw["password_hash"]

    @classmethod
    def from_file(cls, path: Path) -> "StaticDirectory":
        if not path.exists():
            logger.warning("Directory file %s not found; directory is empty", path)
            return cls([])
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise UpstreamFailure(f"Directory file unreadable: {type(e).__name__}: {e}")
        if isinstance(data, dict):
            data = data.get("users", [])
        return cls(data)

    def get_actor(self, actor_id: str) -> Optional[Actor]:
        return next((a for a in self._actors if a.id == actor_id), None)

    def find_by_username(self, username: str) -> Optional[Actor]:
        needle = username.strip().lower()
        return next((a for a in self._actors if a.username.lower() == needle), None)

    def list_actors(
        self, page_size: int = 25, cursor: Optional[str] = None, search: Optional[str] = None
    ) -> ActorPage:
        actors = self._actors
        if search:
            q = search.strip().lower()
            actors = [
                a
                for a in actors
                if q in a.username.lower() or q in (a.display_name or "").lower() or q in (a.email or "").lower()
            ]

        try:
            offset = max(0, int(cursor)) if cursor else 0
        except ValueError:
            offset = 0
        page_size = max(1, int(page_size))

        items = actors[offset : offset + page_size]
        nxt = offset + page_size
        return ActorPage(items=items, next_cursor=str(nxt) if nxt < len(actors) else None)

    def verify_password(self, actor_id: str, password: str) -> bool:
        hashed = self._hashes.get(actor_id)
        if not hashed:
            return False
        return pwd_context.verify(password, hashed)


# -------------------------
# Microsoft Graph directory
# -------------------------
_GRAPH_SELECT = "id,displayName,mail,userPrincipalName,department,jobTitle"


class GraphDirectory:
    def __init__(self, settings: Settings, client: Optional[httpx.Client] = None):
        if not (settings.graph_tenant_id and settings.graph_client_id and settings.graph_client_secret):
            raise UpstreamFailure("Graph directory is not configured (tenant/client id/secret).")
        self.settings = settings
        self.client = client or httpx.Client(timeout=settings.graph_timeout_seconds)
        self._token: Optional[str] = None
        self._token_expires = 0.0

    def _access_token(self) -> str:
        if self._token and time.time() < self._token_expires - 60:
            return self._token

        url = f"{self.settings.graph_authority}/{self.settings.graph_tenant_id}/oauth2/v2.0/token"
        try:
            r = self.client.post(
                url,
                data={
                    "client_id": self.settings.graph_client_id,
                    "client_secret": self.settings.graph_client_secret,
                    "scope": "https://graph.microsoft.com/.default",
                    "grant_type": "client_credentials",
                },
            )
            r.raise_for_status()
            body = r.json()
        except httpx.HTTPError as e:
            raise UpstreamFailure(f"Directory token request failed: {type(e).__name__}: {e}")

        self._token = body["access_token"]
        self._token_expires = time.time() + float(body.get("expires_in", 3600))
        return self._token

    def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        headers = {"Authorization": f"Bearer {self._access_token()}", "ConsistencyLevel": "eventual"}
        try:
            r = self.client.get(url, params=params, headers=headers)
            if r.status_code == 404:
                return None
            r.raise_for_status()
            return r.json()
        except httpx.HTTPError as e:
            raise UpstreamFailure(f"Directory request failed: {type(e).__name__}: {e}")

    @staticmethod
    def _to_actor(u: Dict[str, Any]) -> Actor:
        upn = u.get("userPrincipalName") or u.get("mail") or u["id"]
        return Actor(
            id=u["id"],
            username=upn,
            display_name=u.get("displayName"),
            email=u.get("mail") or u.get("userPrincipalName"),
            department=u.get("department"),
        )

    def get_actor(self, actor_id: str) -> Optional[Actor]:
        body = self._get(f"{self.settings.graph_base_url}/users/{actor_id}", params={"$select": _GRAPH_SELECT})
        return self._to_actor(body) if body else None

    def find_by_username(self, username: str) -> Optional[Actor]:
        return self.get_actor(username)

    def list_actors(
        self, page_size: int = 25, cursor: Optional[str] = None, search: Optional[str] = None
    ) -> ActorPage:
        # the cursor is Graph's own @odata.nextLink; the bearer token only goes to Graph
        if cursor:
            if not cursor.startswith(self.settings.graph_base_url.rstrip("/") + "/"):
                raise ValidationFailure("cursor is not a directory page link", param="cursor")
            body = self._get(cursor)
        else:
            params: Dict[str, Any] = {"$select": _GRAPH_SELECT, "$top": max(1, int(page_size))}
            if search:
                params["$search"] = f'"displayName:{search}"'
            body = self._get(f"{self.settings.graph_base_url}/users", params=params)

        body = body or {}
        return ActorPage(
            items=[self._to_actor(u) for u in body.get("value", [])],
            next_cursor=body.get("@odata.nextLink"),
        )

    def verify_password(self, actor_id: str, password: str) -> bool:
        # SSO accounts never log in with a local password
        return False


# -------------------------
# FastAPI dependency
# -------------------------
@lru_cache(maxsize=8)
def _static_directory(path: str, mtime: float) -> StaticDirectory:
    return StaticDirectory.from_file(Path(path))


_GRAPH_DIRECTORIES: Dict[tuple, GraphDirectory] = {}


def build_directory(settings: Settings) -> Directory:
    if settings.directory_backend == "graph":
        # one client (and token) per Graph configuration
        key = (settings.graph_base_url, settings.graph_tenant_id, settings.graph_client_id)
        if key not in _GRAPH_DIRECTORIES:
            _GRAPH_DIRECTORIES[key] = GraphDirectory(settings)
        return _GRAPH_DIRECTORIES[key]
    path = settings.abs_directory_file()
    mtime = path.stat().st_mtime if path.exists() else 0.0
    return _static_directory(str(path), mtime)


def get_directory(settings: Settings = Depends(get_settings)) -> Directory:
    return build_directory(settings)
