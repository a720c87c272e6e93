from typing import List

from fastapi import APIRouter, status

from flowspace.api.deps import CallerDep, CurrentUserDep, SessionDep
from flowspace.core.messages import DivisionMessages
from flowspace.models.division import Division
from flowspace.schemas.division import DivisionCreate, DivisionRead, DivisionUpdate
from flowspace.schemas.token import MessageResponse
from flowspace.services import divisions as divisions_service
from flowspace.services import policy
from flowspace.services.policy import Action, Target

router = APIRouter()


def _serialize_division(division: Division, user_count: int = 0) -> DivisionRead:
    return DivisionRead(
        id=division.id,
        name=division.name,
        created_at=division.created_at,
        updated_at=division.updated_at,
        user_count=user_count,
    )


@router.get("/", response_model=List[DivisionRead])
async def list_divisions(session: SessionDep, _current_user: CurrentUserDep) -> List[DivisionRead]:
    rows = await divisions_service.list_divisions(session)
    return [_serialize_division(division, count) for division, count in rows]


@router.post("/", response_model=DivisionRead, status_code=status.HTTP_201_CREATED)
async def create_division(
    division_in: DivisionCreate,
    session: SessionDep,
    caller: CallerDep,
) -> DivisionRead:
    policy.ensure_allowed(caller, Action.create_division)
    division = await divisions_service.create_division(session, name=division_in.name)
    await session.commit()
    return _serialize_division(division)


@router.get("/{division_id}", response_model=DivisionRead)
async def read_division(division_id: int, session: SessionDep, _current_user: CurrentUserDep) -> DivisionRead:
    division = await divisions_service.get_division(session, division_id)
    user_count = await divisions_service.count_members(session, division_id)
    return _serialize_division(division, user_count)


@router.patch("/{division_id}", response_model=DivisionRead)
async def update_division(
    division_id: int,
    division_in: DivisionUpdate,
    session: SessionDep,
    caller: CallerDep,
) -> DivisionRead:
    policy.ensure_allowed(caller, Action.update_division)
    division = await divisions_service.get_division(session, division_id)
    division = await divisions_service.update_division(session, division, name=division_in.name)
    await session.commit()
    user_count = await divisions_service.count_members(session, division_id)
    return _serialize_division(division, user_count)


@router.delete("/{division_id}", response_model=MessageResponse)
async def delete_division(division_id: int, session: SessionDep, caller: CallerDep) -> MessageResponse:
    policy.ensure_allowed(caller, Action.delete_division)
    division = await divisions_service.get_division(session, division_id)
    member_count = await divisions_service.count_members(session, division_id)
    policy.ensure_allowed(caller, Action.delete_division, Target(member_count=member_count))
    await divisions_service.delete_division(session, division)
    await session.commit()
    return MessageResponse(message=DivisionMessages.DELETED)
