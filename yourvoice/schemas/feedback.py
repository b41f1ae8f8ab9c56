# yourvoice/schemas/feedback.py
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class FeedbackStatus(str, Enum):
    OPEN = "Open"
    PENDING = "Pending"
    RESOLVED = "Resolved"
    OVERDUE = "Overdue"


def as_utc(ts: datetime) -> datetime:
    """Naive timestamps are read as UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


class Validity(BaseModel):
    start_date: datetime
    end_date: datetime

    @field_validator("start_date", "end_date")
    @classmethod
    def to_utc(cls, v: datetime) -> datetime:
        return as_utc(v)

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end_date <= self.start_date:
            raise ValueError("End date must be after start date")
        return self


class Comment(BaseModel):
    user_id: Optional[str] = None
    comment: str
    created_at: datetime


class FeedbackRecord(BaseModel):
    """
    Stored feedback document (one JSON body in the `feedback` collection).
    """
    id: str
    object: Literal["feedback"] = "feedback"

    title: str
    department: str
    concern: str
    possible_solution: Optional[str] = None

    submitted_by: Optional[str] = None
    assigned_to: Optional[str] = None
    status: FeedbackStatus = FeedbackStatus.OPEN

    likes: List[str] = Field(default_factory=list)
    dislikes: List[str] = Field(default_factory=list)
    comments: List[Comment] = Field(default_factory=list)

    approved: bool = False
    # older documents were stored without a window
    validity: Optional[Validity] = None

    created_at: datetime
    updated_at: Optional[datetime] = None


class FeedbackCreateIn(BaseModel):
    title: str = Field(min_length=5)
    department: str = Field(min_length=1)
    concern: str = Field(min_length=10)
    possible_solution: Optional[str] = Field(default=None, min_length=10)
    validity: Validity
    anonymous: bool = False

    @field_validator("title", "department", "concern", "possible_solution")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if isinstance(v, str) else v


# -------------------------
# Update operations
# -------------------------
PATCHABLE_FIELDS = ("title", "department", "concern", "possible_solution", "validity")


class LikeOp(BaseModel):
    action: Literal["like"]


class DislikeOp(BaseModel):
    action: Literal["dislike"]


class CommentOp(BaseModel):
    action: Literal["comment"]
    comment: str = Field(min_length=1)


class ApproveOp(BaseModel):
    action: Literal["approve"]


class AssignOp(BaseModel):
    action: Literal["assign"]
    assigned_to: str = Field(min_length=1)


class ResolveOp(BaseModel):
    action: Literal["resolve"]


class PatchFields(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(default=None, min_length=5)
    department: Optional[str] = Field(default=None, min_length=1)
    concern: Optional[str] = Field(default=None, min_length=10)
    possible_solution: Optional[str] = Field(default=None, min_length=10)
    validity: Optional[Validity] = None

    @model_validator(mode="after")
    def not_empty(self):
        if not self.model_fields_set:
            raise ValueError("fields must not be empty")
        for name in ("title", "department", "concern"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", include=self.model_fields_set)


class PatchOp(BaseModel):
    """
    Generic field patch limited to PATCHABLE_FIELDS. Unknown keys are
    rejected instead of being merged into the document.
    """
    action: Literal["patch"]
    fields: PatchFields


FeedbackUpdate = Annotated[
    Union[LikeOp, DislikeOp, CommentOp, ApproveOp, AssignOp, ResolveOp, PatchOp],
    Field(discriminator="action"),
]


class FeedbackUpdateIn(BaseModel):
    op: FeedbackUpdate

    # bodies are flat: {"action": "assign", "assigned_to": "..."}
    @model_validator(mode="before")
    @classmethod
    def accept_flat_body(cls, v):
        if isinstance(v, dict) and "op" not in v:
            return {"op": v}
        return v


class FeedbackList(BaseModel):
    items: List[FeedbackRecord]
    count: int
