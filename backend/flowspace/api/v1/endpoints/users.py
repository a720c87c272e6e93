from typing import List

from fastapi import APIRouter

from flowspace.api.deps import CallerDep, CurrentUserDep, SessionDep
from flowspace.core.messages import UserMessages
from flowspace.models.user import User
from flowspace.schemas.token import MessageResponse
from flowspace.schemas.user import UserRead, UserUpdate
from flowspace.services import policy
from flowspace.services import users as users_service
from flowspace.services.policy import Action, Target

router = APIRouter()


@router.get("/me", response_model=UserRead)
async def read_users_me(current_user: CurrentUserDep) -> User:
    return current_user


@router.get("/", response_model=List[UserRead])
async def list_users(session: SessionDep, caller: CallerDep) -> List[User]:
    policy.ensure_allowed(caller, Action.list_users)
    return await users_service.list_users(session)


@router.get("/{user_id}", response_model=UserRead)
async def read_user(user_id: int, session: SessionDep, _current_user: CurrentUserDep) -> User:
    return await users_service.get_user(session, user_id)


@router.patch("/{user_id}", response_model=UserRead)
async def update_user(
    user_id: int,
    user_in: UserUpdate,
    session: SessionDep,
    caller: CallerDep,
) -> User:
    policy.ensure_allowed(caller, Action.update_user)
    user = await users_service.get_user(session, user_id)
    changes = user_in.model_dump(exclude_unset=True)
    policy.ensure_allowed(
        caller,
        Action.update_user,
        Target(
            role=user.role,
            assigns_role=changes.get("role"),
            resulting_status=changes.get("status") or user.status,
        ),
    )
    user = await users_service.update_user(session, user, changes)
    await session.commit()
    await session.refresh(user)
    return user


@router.post("/{user_id}/approve", response_model=UserRead)
async def approve_user(user_id: int, session: SessionDep, caller: CallerDep) -> User:
    policy.ensure_allowed(caller, Action.approve_user)
    user = await users_service.get_user(session, user_id)
    user = await users_service.approve_user(session, user)
    await session.commit()
    await session.refresh(user)
    return user


@router.post("/{user_id}/deactivate", response_model=UserRead)
async def deactivate_user(user_id: int, session: SessionDep, caller: CallerDep) -> User:
    policy.ensure_allowed(caller, Action.deactivate_user)
    user = await users_service.get_user(session, user_id)
    policy.ensure_allowed(caller, Action.deactivate_user, Target(role=user.role))
    user = await users_service.deactivate_user(session, user)
    await session.commit()
    await session.refresh(user)
    return user


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(user_id: int, session: SessionDep, caller: CallerDep) -> MessageResponse:
    policy.ensure_allowed(caller, Action.delete_user)
    user = await users_service.get_user(session, user_id)
    policy.ensure_allowed(caller, Action.delete_user, Target(role=user.role))
    await users_service.delete_user(session, user)
    await session.commit()
    return MessageResponse(message=UserMessages.DELETED)
