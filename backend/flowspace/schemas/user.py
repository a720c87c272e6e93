from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from flowspace.models.user import UserRole, UserStatus


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    name: Optional[str] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None


class UserUpdate(BaseModel):
    """Admin-side patch. Only the fields sent are applied."""

    name: Optional[str] = None
    email: Optional[EmailStr] = None
    avatar: Optional[str] = None
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None
    division_id: Optional[int] = None


class UserSummary(BaseModel):
    """Public user information shown next to boards, tasks and comments."""

    id: int
    email: EmailStr
    name: Optional[str] = None
    avatar: Optional[str] = None

    class Config:
        from_attributes = True


class UserRead(UserSummary):
    role: UserRole
    status: UserStatus
    division_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
