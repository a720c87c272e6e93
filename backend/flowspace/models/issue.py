from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import Column, DateTime, ForeignKey, Integer
from sqlmodel import Enum as SQLEnum, Field, Relationship, SQLModel

if TYPE_CHECKING:  # pragma: no cover
    from flowspace.models.board import Board
    from flowspace.models.comment import Comment
    from flowspace.models.user import User


class IssueStatus(str, Enum):
    not_started = "not_started"
    in_progress = "in_progress"
    in_review = "in_review"
    done = "done"
    closed = "closed"


class IssuePriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class Issue(SQLModel, table=True):
    __tablename__ = "issues"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(nullable=False)
    description: Optional[str] = Field(default=None)
    status: IssueStatus = Field(
        default=IssueStatus.not_started,
        sa_column=Column(SQLEnum(IssueStatus, name="issue_status"), nullable=False),
    )
    priority: IssuePriority = Field(
        default=IssuePriority.medium,
        sa_column=Column(SQLEnum(IssuePriority, name="issue_priority"), nullable=False),
    )
    board_id: int = Field(
        sa_column=Column(Integer, ForeignKey("boards.id", ondelete="CASCADE"), nullable=False, index=True),
    )
    created_by_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
    )
    assigned_to_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )

    board: Optional["Board"] = Relationship()
    assigned_to: Optional["User"] = Relationship(
        sa_relationship_kwargs={"foreign_keys": "Issue.assigned_to_id"},
    )
    created_by: Optional["User"] = Relationship(
        sa_relationship_kwargs={"foreign_keys": "Issue.created_by_id"},
    )
    comments: List["Comment"] = Relationship(
        sa_relationship_kwargs={"order_by": "Comment.created_at"},
    )
