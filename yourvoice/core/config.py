# yourvoice/core/config.py
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List, Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="YV_", env_file=".env", extra="ignore")

    app_name: str = "YourVoice Portal"

    # Paths
    repo_root: str = "."
    data_dir: str = "data"
    logs_dir: str = "logs"

    # stores/
    sqlite_path: str = "data/stores/portal_store.sqlite"

    # Logging
    log_path: str = "logs/portal.jsonl"

    # Session cookie
    session_secret: str = "complex_password_at_least_32_characters_long"
    session_cookie_name: str = "auth-session"
    session_max_age_seconds: int = 24 * 60 * 60
    session_cookie_secure: bool = False
    session_algorithm: str = "HS256"

    # Accounts whose e-mail is listed here get admin rights on login
    admin_emails: List[str] = []

    # Identity directory
    directory_backend: Literal["static", "graph"] = "static"
    directory_file: str = "data/directory.json"
    directory_page_size: int = 25

    graph_base_url: str = "https://graph.microsoft.com/v1.0"
    graph_authority: str = "https://login.microsoftonline.com"
    graph_tenant_id: Optional[str] = None
    graph_client_id: Optional[str] = None
    graph_client_secret: Optional[str] = None
    graph_timeout_seconds: float = 10.0

    # Analytics
    analysis_months: int = 12

    # --- derived helpers ---
    def root_path(self) -> Path:
        return Path(self.repo_root).resolve()

    def data_path(self) -> Path:
        return (self.root_path() / self.data_dir).resolve()

    def logs_path(self) -> Path:
        return (self.root_path() / self.logs_dir).resolve()

    def abs_log_path(self) -> Path:
        return (self.root_path() / self.log_path).resolve()

    def abs_sqlite_path(self) -> Path:
        return (self.root_path() / self.sqlite_path).resolve()

    def abs_directory_file(self) -> Path:
        return (self.root_path() / self.directory_file).resolve()

    def is_admin_email(self, email: Optional[str]) -> bool:
        if not email:
            return False
        return email.strip().lower() in {e.strip().lower() for e in self.admin_emails}


@lru_cache
def get_settings() -> Settings:
    return Settings()
