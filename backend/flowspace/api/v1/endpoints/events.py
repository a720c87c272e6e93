from fastapi import APIRouter

from flowspace.api.deps import CallerDep, SessionDep
from flowspace.api.v1.endpoints.calendars import serialize_event
from flowspace.schemas.calendar import EventRead, EventUpdate
from flowspace.schemas.token import SuccessResponse
from flowspace.services import calendars as calendars_service

router = APIRouter()


@router.get("/{event_id}", response_model=EventRead)
async def read_event(event_id: int, session: SessionDep, caller: CallerDep) -> EventRead:
    event = await calendars_service.get_visible_event(session, caller, event_id)
    return serialize_event(event)


@router.put("/{event_id}", response_model=EventRead)
async def update_event(
    event_id: int,
    event_in: EventUpdate,
    session: SessionDep,
    caller: CallerDep,
) -> EventRead:
    event = await calendars_service.get_event_for_change(session, caller, event_id)
    await calendars_service.update_event(session, caller, event, changes=event_in.model_dump(exclude_unset=True))
    await session.commit()
    event = await calendars_service.get_event(session, event_id, populate_existing=True)
    return serialize_event(event)


@router.delete("/{event_id}", response_model=SuccessResponse)
async def delete_event(event_id: int, session: SessionDep, caller: CallerDep) -> SuccessResponse:
    event = await calendars_service.get_event_for_change(session, caller, event_id)
    await calendars_service.delete_event(session, caller, event)
    await session.commit()
    return SuccessResponse()
