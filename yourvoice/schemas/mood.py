# yourvoice/schemas/mood.py
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class MoodLevel(str, Enum):
    GOOD = "good"
    FAIR = "fair"
    BAD = "bad"


class MoodEntry(BaseModel):
    id: str
    object: Literal["mood"] = "mood"
    mood: MoodLevel
    user_id: str
    department: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class MoodIn(BaseModel):
    mood: MoodLevel
    # falls back to the session, then the directory
    department: Optional[str] = Field(default=None, min_length=1)


class MoodUpdateIn(BaseModel):
    mood: MoodLevel


class MoodCounts(BaseModel):
    good: int = 0
    fair: int = 0
    bad: int = 0
    total: int = 0
    score: float = 0.0


class DepartmentMood(MoodCounts):
    department: str


class MoodAggregate(BaseModel):
    per_department: List[DepartmentMood] = Field(default_factory=list)
    overall: MoodCounts = Field(default_factory=MoodCounts)


class MoodSummary(MoodAggregate):
    ranking: List[DepartmentMood] = Field(default_factory=list)
    highest: Optional[DepartmentMood] = None
    lowest: Optional[DepartmentMood] = None
    since: datetime
