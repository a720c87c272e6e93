from typing import List

from fastapi import APIRouter, Request, status

from flowspace.api.deps import CallerDep, CurrentUserDep, SessionDep
from flowspace.core.messages import InvitationMessages
from flowspace.core.rate_limit import PUBLIC_ENDPOINT_LIMIT, limiter
from flowspace.models.invitation import Invitation
from flowspace.schemas.invitation import (
    InvitationAcceptRequest,
    InvitationCreate,
    InvitationCreateResponse,
    InvitationLookupResponse,
    InvitationRead,
)
from flowspace.schemas.token import MessageResponse
from flowspace.services import invitations as invitations_service
from flowspace.services import policy
from flowspace.services.policy import Action

router = APIRouter()


@router.get("/", response_model=List[InvitationRead])
async def list_invitations(session: SessionDep, caller: CallerDep) -> List[Invitation]:
    policy.ensure_allowed(caller, Action.list_invitations)
    return await invitations_service.list_invitations(session)


@router.post("/", response_model=InvitationCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_invitation(
    invitation_in: InvitationCreate,
    session: SessionDep,
    caller: CallerDep,
    current_user: CurrentUserDep,
) -> InvitationCreateResponse:
    policy.ensure_allowed(caller, Action.create_invitation)
    invitation = await invitations_service.create_invitation(
        session,
        email=invitation_in.email,
        created_by=current_user,
    )
    await session.commit()
    invitation = await invitations_service.get_by_token(session, invitation.token, populate_existing=True)
    return InvitationCreateResponse(
        message=InvitationMessages.CREATED,
        invitation=InvitationRead.model_validate(invitation),
        invitation_link=invitations_service.invitation_link(invitation.token),
    )


@router.get("/{token}", response_model=InvitationLookupResponse)
@limiter.limit(PUBLIC_ENDPOINT_LIMIT)
async def get_invitation(request: Request, token: str, session: SessionDep) -> InvitationLookupResponse:
    invitation = await invitations_service.lookup(session, token)
    return InvitationLookupResponse(invitation=InvitationRead.model_validate(invitation))


@router.post("/{token}", response_model=MessageResponse)
@limiter.limit(PUBLIC_ENDPOINT_LIMIT)
async def accept_invitation(
    request: Request,
    token: str,
    payload: InvitationAcceptRequest,
    session: SessionDep,
) -> MessageResponse:
    await invitations_service.accept(session, token, user_id=payload.user_id)
    await session.commit()
    return MessageResponse(message=InvitationMessages.ACCEPTED)
