from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from flowspace.models.issue import IssuePriority, IssueStatus
from flowspace.schemas.board import BoardSummary
from flowspace.schemas.comment import CommentRead
from flowspace.schemas.user import UserSummary


class IssueBase(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    status: IssueStatus = IssueStatus.not_started
    priority: IssuePriority = IssuePriority.medium
    assigned_to_id: Optional[int] = None


class IssueCreate(IssueBase):
    board_id: int


class IssueUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    status: Optional[IssueStatus] = None
    priority: Optional[IssuePriority] = None
    assigned_to_id: Optional[int] = None


class IssueRead(IssueBase):
    id: int
    board_id: int
    created_by_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    board: Optional[BoardSummary] = None
    assigned_to: Optional[UserSummary] = None
    created_by: Optional[UserSummary] = None
    comments: List[CommentRead] = Field(default_factory=list)
    comment_count: int = 0
