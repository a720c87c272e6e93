from datetime import datetime, timezone
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import JSON, Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer
from sqlmodel import Enum as SQLEnum, Field, Relationship, SQLModel

from flowspace.models.scope import DIVISION_SCOPE_CHECK, VisibilityType

if TYPE_CHECKING:  # pragma: no cover
    from flowspace.models.division import Division
    from flowspace.models.user import User


class Calendar(SQLModel, table=True):
    __tablename__ = "calendars"
    __table_args__ = (CheckConstraint(DIVISION_SCOPE_CHECK, name="ck_calendars_division_scope"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(nullable=False)
    type: VisibilityType = Field(
        sa_column=Column(SQLEnum(VisibilityType, name="calendar_type"), nullable=False, index=True),
    )
    division_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("divisions.id", ondelete="CASCADE"), nullable=True, index=True),
    )
    created_by_id: Optional[int] = Field(
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

    division: Optional["Division"] = Relationship()
    access: List["CalendarAccess"] = Relationship(back_populates="calendar")
    events: List["CalendarEvent"] = Relationship(
        sa_relationship_kwargs={"order_by": "CalendarEvent.start_date"},
    )


class CalendarAccess(SQLModel, table=True):
    __tablename__ = "calendar_access"

    calendar_id: int = Field(
        sa_column=Column(Integer, ForeignKey("calendars.id", ondelete="CASCADE"), primary_key=True),
    )
    user_id: int = Field(
        sa_column=Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    )
    can_edit: bool = Field(
        default=False,
        sa_column=Column(Boolean, nullable=False, server_default="false"),
    )

    calendar: Optional[Calendar] = Relationship(back_populates="access")
    user: Optional["User"] = Relationship()


class CalendarEvent(SQLModel, table=True):
    __tablename__ = "calendar_events"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(nullable=False)
    description: Optional[str] = Field(default=None)
    start_date: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    end_date: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    tags: List[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False, server_default="[]"),
    )
    calendar_id: int = Field(
        sa_column=Column(Integer, ForeignKey("calendars.id", ondelete="CASCADE"), nullable=False, index=True),
    )
    created_by_id: Optional[int] = Field(
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

    created_by: Optional["User"] = Relationship()
