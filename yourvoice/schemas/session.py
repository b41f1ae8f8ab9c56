# yourvoice/schemas/session.py
from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

PersonnelType = Literal["Admin", "User"]


class Actor(BaseModel):
    """
    Directory entry. `id` is the canonical actor identifier everywhere.
    """
    id: str
    username: str
    display_name: Optional[str] = None
    email: Optional[str] = None
    personnel_type: PersonnelType = "User"
    department: Optional[str] = None


class ActorPage(BaseModel):
    items: List[Actor] = Field(default_factory=list)
    next_cursor: Optional[str] = None


class SessionData(BaseModel):
    id: Optional[str] = None
    is_logged_in: bool = False
    username: Optional[str] = None
    email: Optional[str] = None
    personnel_type: Optional[PersonnelType] = None
    department: Optional[str] = None
    expires_at: Optional[int] = None  # unix seconds

    @property
    def is_admin(self) -> bool:
        return self.is_logged_in and self.personnel_type == "Admin"


class LoginIn(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)
