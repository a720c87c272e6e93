from datetime import datetime, timezone
from enum import Enum
from typing import Optional, TYPE_CHECKING

from sqlalchemy import Column, DateTime, ForeignKey, Integer
from sqlmodel import Enum as SQLEnum, Field, Relationship, SQLModel

if TYPE_CHECKING:  # pragma: no cover
    from flowspace.models.division import Division


class UserRole(str, Enum):
    user = "user"
    admin = "admin"
    master = "master"


class UserStatus(str, Enum):
    pending = "pending"
    active = "active"
    inactive = "inactive"


PRIVILEGED_ROLES = frozenset({UserRole.admin, UserRole.master})


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True, nullable=False)
    name: Optional[str] = Field(default=None)
    hashed_password: str
    avatar: Optional[str] = Field(default=None)
    role: UserRole = Field(
        default=UserRole.user,
        sa_column=Column(SQLEnum(UserRole, name="user_role"), nullable=False, server_default=UserRole.user.value),
    )
    status: UserStatus = Field(
        default=UserStatus.pending,
        sa_column=Column(
            SQLEnum(UserStatus, name="user_status"),
            nullable=False,
            server_default=UserStatus.pending.value,
        ),
    )
    division_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("divisions.id", ondelete="SET NULL"), nullable=True, index=True),
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

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.active

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES
