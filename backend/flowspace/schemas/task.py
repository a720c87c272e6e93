from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from flowspace.models.task import TaskPriority, TaskStatus
from flowspace.schemas.board import BoardSummary
from flowspace.schemas.user import UserSummary


class TaskBase(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.todo
    priority: TaskPriority = TaskPriority.medium
    assigned_to_id: Optional[int] = None
    due_date: Optional[datetime] = None


class TaskCreate(TaskBase):
    board_id: int


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    board_id: Optional[int] = None
    assigned_to_id: Optional[int] = None
    due_date: Optional[datetime] = None


class TaskStatusUpdate(BaseModel):
    status: TaskStatus


class TaskRead(TaskBase):
    id: int
    board_id: int
    created_by_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    board: Optional[BoardSummary] = None
    assigned_to: Optional[UserSummary] = None
    created_by: Optional[UserSummary] = None

    class Config:
        from_attributes = True
