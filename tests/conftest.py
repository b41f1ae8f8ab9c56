# tests/conftest.py
from __future__ import annotations

import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

# now imports work
from yourvoice.main import app  # noqa


import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict

import pytest
from fastapi.testclient import TestClient

from yourvoice.core.clock import get_now
from yourvoice.core.config import Settings, get_settings
from yourvoice.schemas.feedback import FeedbackRecord, FeedbackStatus, Validity
from yourvoice.services import store as store_mod
from yourvoice.services.directory import hash_password

FIXED_NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

ADMIN_PASSWORD = "admin-pass"
USER_PASSWORD = "user-pass"


def directory_entries() -> list[Dict[str, Any]]:
    user_hash = hash_password(USER_PASSWORD)
    return [
        {
            "id": "U001",
            "username": "admin",
            "display_name": "Portal Admin",
            "email": "admin@example.org",
            "personnel_type": "Admin",
            "password_hash": hash_password(ADMIN_PASSWORD),
        },
        {
            "id": "U002",
            "username": "a.nakato",
            "display_name": "Agnes Nakato",
            "email": "anakato@example.org",
            "department": "People & Culture",
            "password_hash": user_hash,
        },
        {
            "id": "U003",
            "username": "e.okello",
            "display_name": "Edward Okello",
            "email": "eokello@example.org",
            "department": "TES",
            "password_hash": user_hash,
        },
        {
            "id": "U004",
            "username": "no.dept",
            "display_name": "No Department",
            "email": "nodept@example.org",
            "password_hash": user_hash,
        },
        {
            "id": "U005",
            "username": "boss",
            "display_name": "Managing Director",
            "email": "boss@example.org",
            "password_hash": user_hash,
        },
    ]


@pytest.fixture()
def tmp_repo(tmp_path: Path) -> Path:
    """
    Temp repo-like structure so tests never touch the real store or logs.
    """
    (tmp_path / "data" / "stores").mkdir(parents=True, exist_ok=True)
    (tmp_path / "logs").mkdir(parents=True, exist_ok=True)
    (tmp_path / "data" / "directory.json").write_text(
        json.dumps({"users": directory_entries()}), encoding="utf-8"
    )
    return tmp_path


@pytest.fixture()
def test_settings(tmp_repo: Path) -> Settings:
    s = Settings()
    s.repo_root = str(tmp_repo)
    s.data_dir = "data"
    s.logs_dir = "logs"
    s.sqlite_path = "data/stores/portal_store.sqlite"
    s.directory_backend = "static"
    s.directory_file = "data/directory.json"
    s.admin_emails = ["boss@example.org"]
    s.session_secret = "test-secret-that-is-long-enough-for-hs256"
    return s


@pytest.fixture()
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture()
def make_client(test_settings: Settings, now: datetime) -> Callable[[], TestClient]:
    """
    Factory for TestClients sharing one temp store; each client keeps its own
    session cookie.
    """
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_now] = lambda: now
    yield lambda: TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def client(make_client) -> TestClient:
    return make_client()


def _login(c: TestClient, username: str, password: str) -> TestClient:
    r = c.post("/login", json={"username": username, "password": password})
    assert r.status_code == 200, r.text
    return c


@pytest.fixture()
def admin_client(make_client) -> TestClient:
    return _login(make_client(), "admin", ADMIN_PASSWORD)


@pytest.fixture()
def user_client(make_client) -> TestClient:
    return _login(make_client(), "a.nakato", USER_PASSWORD)


@pytest.fixture()
def other_client(make_client) -> TestClient:
    return _login(make_client(), "e.okello", USER_PASSWORD)


@pytest.fixture()
def sqlite_path(test_settings: Settings) -> Path:
    return test_settings.abs_sqlite_path()


@pytest.fixture()
def init_test_db(sqlite_path: Path) -> Path:
    store_mod.init_db(sqlite_path)
    return sqlite_path


@pytest.fixture()
def feedback_payload(now: datetime) -> Dict[str, Any]:
    return {
        "title": "Canteen queue",
        "department": "Operations",
        "concern": "Lunch queues take over forty minutes every day.",
        "possible_solution": "Stagger lunch breaks by department.",
        "validity": {
            "start_date": (now - timedelta(days=1)).isoformat(),
            "end_date": (now + timedelta(days=7)).isoformat(),
        },
        "anonymous": False,
    }


def make_record(now: datetime = FIXED_NOW, **overrides: Any) -> FeedbackRecord:
    data: Dict[str, Any] = {
        "id": "fb_test",
        "title": "Parking space",
        "department": "IT",
        "concern": "Not enough parking for staff vehicles.",
        "status": FeedbackStatus.OPEN,
        "validity": Validity(start_date=now - timedelta(days=10), end_date=now + timedelta(days=10)),
        "created_at": now - timedelta(days=10),
    }
    data.update(overrides)
    return FeedbackRecord(**data)


@pytest.fixture()
def record_factory() -> Callable[..., FeedbackRecord]:
    return make_record
