from datetime import datetime, timezone
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer
from sqlmodel import Enum as SQLEnum, Field, Relationship, SQLModel

from flowspace.models.scope import DIVISION_SCOPE_CHECK, VisibilityType

if TYPE_CHECKING:  # pragma: no cover
    from flowspace.models.division import Division
    from flowspace.models.user import User


class Board(SQLModel, table=True):
    __tablename__ = "boards"
    __table_args__ = (CheckConstraint(DIVISION_SCOPE_CHECK, name="ck_boards_division_scope"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(nullable=False)
    description: Optional[str] = Field(default=None)
    type: VisibilityType = Field(
        sa_column=Column(SQLEnum(VisibilityType, name="board_type"), nullable=False, index=True),
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
    access: List["BoardAccess"] = Relationship(back_populates="board")


class BoardAccess(SQLModel, table=True):
    __tablename__ = "board_access"

    board_id: int = Field(
        sa_column=Column(Integer, ForeignKey("boards.id", ondelete="CASCADE"), primary_key=True),
    )
    user_id: int = Field(
        sa_column=Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    )
    can_edit: bool = Field(
        default=False,
        sa_column=Column(Boolean, nullable=False, server_default="false"),
    )

    board: Optional[Board] = Relationship(back_populates="access")
    user: Optional["User"] = Relationship()
