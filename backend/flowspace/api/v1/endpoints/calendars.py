from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from flowspace.api.deps import CallerDep, SessionDep
from flowspace.models.calendar import Calendar, CalendarEvent
from flowspace.models.scope import VisibilityType
from flowspace.schemas.board import BoardAccessRead
from flowspace.schemas.calendar import CalendarCreate, CalendarRead, CalendarUpdate, EventCreate, EventRead
from flowspace.schemas.division import DivisionSummary
from flowspace.schemas.token import SuccessResponse
from flowspace.schemas.user import UserSummary
from flowspace.services import calendars as calendars_service

router = APIRouter()


def _serialize_calendar(calendar: Calendar, event_count: int = 0) -> CalendarRead:
    return CalendarRead(
        id=calendar.id,
        name=calendar.name,
        type=calendar.type,
        division_id=calendar.division_id,
        created_by_id=calendar.created_by_id,
        created_at=calendar.created_at,
        updated_at=calendar.updated_at,
        division=DivisionSummary.model_validate(calendar.division) if calendar.division else None,
        access=[
            BoardAccessRead(
                user_id=row.user_id,
                can_edit=row.can_edit,
                user=UserSummary.model_validate(row.user) if row.user else None,
            )
            for row in calendar.access
        ],
        event_count=event_count,
    )


def serialize_event(event: CalendarEvent) -> EventRead:
    return EventRead(
        id=event.id,
        title=event.title,
        description=event.description,
        start_date=event.start_date,
        end_date=event.end_date,
        tags=event.tags or [],
        calendar_id=event.calendar_id,
        created_by_id=event.created_by_id,
        created_at=event.created_at,
        updated_at=event.updated_at,
        created_by=UserSummary.model_validate(event.created_by) if event.created_by else None,
    )


async def _reload(session: AsyncSession, calendar_id: int) -> CalendarRead:
    calendar = await calendars_service.get_calendar(session, calendar_id, populate_existing=True)
    counts = await calendars_service.count_events(session, [calendar_id])
    return _serialize_calendar(calendar, counts.get(calendar_id, 0))


@router.get("/", response_model=List[CalendarRead])
async def list_calendars(
    session: SessionDep,
    caller: CallerDep,
    calendar_type: Optional[VisibilityType] = Query(default=None, alias="type"),
) -> List[CalendarRead]:
    calendars = await calendars_service.list_calendars(session, caller, calendar_type=calendar_type)
    counts = await calendars_service.count_events(session, [calendar.id for calendar in calendars])
    return [_serialize_calendar(calendar, counts.get(calendar.id, 0)) for calendar in calendars]


@router.post("/", response_model=CalendarRead, status_code=status.HTTP_201_CREATED)
async def create_calendar(calendar_in: CalendarCreate, session: SessionDep, caller: CallerDep) -> CalendarRead:
    calendar = await calendars_service.create_calendar(
        session,
        caller,
        name=calendar_in.name,
        calendar_type=calendar_in.type,
        division_id=calendar_in.division_id,
        user_ids=calendar_in.user_ids,
    )
    await session.commit()
    return await _reload(session, calendar.id)


@router.get("/{calendar_id}", response_model=CalendarRead)
async def read_calendar(calendar_id: int, session: SessionDep, caller: CallerDep) -> CalendarRead:
    calendar = await calendars_service.get_visible_calendar(session, caller, calendar_id)
    counts = await calendars_service.count_events(session, [calendar_id])
    return _serialize_calendar(calendar, counts.get(calendar_id, 0))


@router.patch("/{calendar_id}", response_model=CalendarRead)
async def update_calendar(
    calendar_id: int,
    calendar_in: CalendarUpdate,
    session: SessionDep,
    caller: CallerDep,
) -> CalendarRead:
    calendar = await calendars_service.get_calendar_for_change(session, caller, calendar_id)
    await calendars_service.update_calendar(
        session,
        caller,
        calendar,
        changes=calendar_in.model_dump(exclude_unset=True),
    )
    await session.commit()
    return await _reload(session, calendar_id)


@router.delete("/{calendar_id}", response_model=SuccessResponse)
async def delete_calendar(calendar_id: int, session: SessionDep, caller: CallerDep) -> SuccessResponse:
    calendar = await calendars_service.get_calendar_for_change(session, caller, calendar_id)
    await calendars_service.delete_calendar(session, caller, calendar)
    await session.commit()
    return SuccessResponse()


@router.get("/{calendar_id}/events", response_model=List[EventRead])
async def list_calendar_events(
    calendar_id: int,
    session: SessionDep,
    caller: CallerDep,
    start: Optional[datetime] = Query(default=None),
    end: Optional[datetime] = Query(default=None),
) -> List[EventRead]:
    calendar = await calendars_service.get_visible_calendar(session, caller, calendar_id)
    events = await calendars_service.list_events(session, calendar, start=start, end=end)
    return [serialize_event(event) for event in events]


@router.post("/{calendar_id}/events", response_model=EventRead, status_code=status.HTTP_201_CREATED)
async def create_calendar_event(
    calendar_id: int,
    event_in: EventCreate,
    session: SessionDep,
    caller: CallerDep,
) -> EventRead:
    calendar = await calendars_service.get_visible_calendar(session, caller, calendar_id)
    event = await calendars_service.create_event(
        session,
        caller,
        calendar,
        title=event_in.title,
        description=event_in.description,
        start_date=event_in.start_date,
        end_date=event_in.end_date,
        tags=event_in.tags,
    )
    await session.commit()
    event = await calendars_service.get_event(session, event.id, populate_existing=True)
    return serialize_event(event)
