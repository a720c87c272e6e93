from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr

from flowspace.models.invitation import InvitationStatus
from flowspace.schemas.user import UserSummary


class InvitationCreate(BaseModel):
    email: EmailStr


class InvitationAcceptRequest(BaseModel):
    user_id: int


class InvitationRead(BaseModel):
    id: int
    email: EmailStr
    token: str
    status: InvitationStatus
    expires_at: datetime
    created_by_id: Optional[int] = None
    user_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    created_by: Optional[UserSummary] = None
    user: Optional[UserSummary] = None

    class Config:
        from_attributes = True


class InvitationCreateResponse(BaseModel):
    message: str
    invitation: InvitationRead
    invitation_link: str


class InvitationLookupResponse(BaseModel):
    invitation: InvitationRead
