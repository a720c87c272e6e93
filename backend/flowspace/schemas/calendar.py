from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from flowspace.core.messages import CalendarMessages
from flowspace.models.scope import VisibilityType
from flowspace.schemas.board import BoardAccessRead
from flowspace.schemas.division import DivisionSummary
from flowspace.schemas.user import UserSummary


def as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def normalize_tags(values: Optional[List[str]]) -> List[str]:
    """Strip, drop blanks and de-duplicate while keeping first-seen order."""
    if not values:
        return []
    seen: dict[str, None] = {}
    for value in values:
        tag = value.strip()
        if tag:
            seen.setdefault(tag, None)
    return list(seen)


class CalendarCreate(BaseModel):
    name: str = Field(min_length=1)
    type: VisibilityType = VisibilityType.general
    division_id: Optional[int] = None
    user_ids: List[int] = Field(default_factory=list)


class CalendarUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    user_ids: Optional[List[int]] = None


class CalendarRead(BaseModel):
    id: int
    name: str
    type: VisibilityType
    division_id: Optional[int] = None
    created_by_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    division: Optional[DivisionSummary] = None
    access: List[BoardAccessRead] = Field(default_factory=list)
    event_count: int = 0


class EventBase(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    tags: List[str] = Field(default_factory=list)

    @field_validator("start_date", "end_date")
    @classmethod
    def ensure_timezone(cls, value: datetime) -> datetime:
        return as_utc(value)

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, value: List[str]) -> List[str]:
        return normalize_tags(value)


class EventCreate(EventBase):
    @model_validator(mode="after")
    def validate_range(self) -> "EventCreate":
        if self.end_date < self.start_date:
            raise ValueError(CalendarMessages.INVALID_RANGE)
        return self


class EventUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    tags: Optional[List[str]] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def ensure_timezone(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value) if value is not None else None

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return None
        return normalize_tags(value)


class EventRead(EventBase):
    id: int
    calendar_id: int
    created_by_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    created_by: Optional[UserSummary] = None
