from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from flowspace.models.scope import VisibilityType
from flowspace.schemas.division import DivisionSummary
from flowspace.schemas.user import UserSummary


class BoardBase(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None


class BoardCreate(BoardBase):
    type: VisibilityType = VisibilityType.general
    division_id: Optional[int] = None
    user_ids: List[int] = Field(default_factory=list)


class BoardUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    user_ids: Optional[List[int]] = None


class BoardAccessRead(BaseModel):
    user_id: int
    can_edit: bool
    user: Optional[UserSummary] = None


class BoardSummary(BaseModel):
    id: int
    name: str
    type: VisibilityType
    division_id: Optional[int] = None

    class Config:
        from_attributes = True


class BoardRead(BoardBase):
    id: int
    type: VisibilityType
    division_id: Optional[int] = None
    created_by_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    division: Optional[DivisionSummary] = None
    access: List[BoardAccessRead] = Field(default_factory=list)
    task_count: int = 0
    issue_count: int = 0
