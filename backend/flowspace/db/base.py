"""Import all models for Alembic or metadata creation."""

from flowspace.models.board import Board, BoardAccess
from flowspace.models.calendar import Calendar, CalendarAccess, CalendarEvent
from flowspace.models.comment import Comment
from flowspace.models.division import Division
from flowspace.models.invitation import Invitation
from flowspace.models.issue import Issue
from flowspace.models.task import Task
from flowspace.models.user import User

__all__ = [
    "Board",
    "BoardAccess",
    "Calendar",
    "CalendarAccess",
    "CalendarEvent",
    "Comment",
    "Division",
    "Invitation",
    "Issue",
    "Task",
    "User",
]
