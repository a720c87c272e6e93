from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import and_, func
from sqlalchemy.orm import selectinload
from sqlmodel import delete, select
from sqlmodel.ext.asyncio.session import AsyncSession

from flowspace.core.errors import Forbidden, InvalidInput, NotFound
from flowspace.core.messages import CalendarMessages, DivisionMessages
from flowspace.models.calendar import Calendar, CalendarAccess, CalendarEvent
from flowspace.models.scope import VisibilityType
from flowspace.schemas.calendar import as_utc, normalize_tags
from flowspace.services import policy
from flowspace.services.boards import ensure_users_exist, resolve_scope
from flowspace.services.policy import Action, Caller, Target
from flowspace.services.visibility import calendar_visibility_clause, is_visible

logger = logging.getLogger(__name__)


def _calendar_options():
    return (
        selectinload(Calendar.division),
        selectinload(Calendar.access).selectinload(CalendarAccess.user),
    )


async def get_calendar(
    session: AsyncSession,
    calendar_id: int,
    *,
    populate_existing: bool = False,
) -> Calendar | None:
    stmt = select(Calendar).where(Calendar.id == calendar_id).options(*_calendar_options())
    if populate_existing:
        stmt = stmt.execution_options(populate_existing=True)
    result = await session.exec(stmt)
    return result.one_or_none()


def calendar_is_visible(caller: Caller, calendar: Calendar) -> bool:
    return is_visible(caller, calendar.type, calendar.division_id, (row.user_id for row in calendar.access))


async def get_visible_calendar(session: AsyncSession, caller: Caller, calendar_id: int) -> Calendar:
    calendar = await get_calendar(session, calendar_id)
    if not calendar:
        raise NotFound(CalendarMessages.NOT_FOUND)
    if not calendar_is_visible(caller, calendar):
        raise Forbidden(CalendarMessages.ACCESS_DENIED)
    return calendar


async def get_calendar_for_change(session: AsyncSession, caller: Caller, calendar_id: int) -> Calendar:
    """Like :func:`get_visible_calendar`, but admins and masters skip the visibility check."""
    calendar = await get_calendar(session, calendar_id)
    if not calendar:
        raise NotFound(CalendarMessages.NOT_FOUND)
    if not caller.is_privileged and not calendar_is_visible(caller, calendar):
        raise Forbidden(CalendarMessages.ACCESS_DENIED)
    return calendar


def modify_target(caller: Caller, calendar: Calendar) -> Target:
    grant = next((row for row in calendar.access if row.user_id == caller.user_id), None)
    return Target(owner_id=calendar.created_by_id, can_edit=bool(grant and grant.can_edit))


async def list_calendars(
    session: AsyncSession,
    caller: Caller,
    *,
    calendar_type: Optional[VisibilityType] = None,
) -> List[Calendar]:
    if calendar_type == VisibilityType.division and not caller.is_privileged and caller.division_id is None:
        raise InvalidInput(DivisionMessages.NOT_ASSIGNED)

    clause = calendar_visibility_clause(caller)
    if calendar_type is not None:
        clause = and_(Calendar.type == calendar_type, clause)
    stmt = select(Calendar).where(clause).options(*_calendar_options()).order_by(Calendar.name.asc(), Calendar.id.asc())
    result = await session.exec(stmt)
    return list(result.all())


async def count_events(session: AsyncSession, calendar_ids: Iterable[int]) -> Dict[int, int]:
    ids = list(calendar_ids)
    if not ids:
        return {}
    result = await session.exec(
        select(CalendarEvent.calendar_id, func.count(CalendarEvent.id))
        .where(CalendarEvent.calendar_id.in_(ids))
        .group_by(CalendarEvent.calendar_id)
    )
    counts = {calendar_id: 0 for calendar_id in ids}
    counts.update({calendar_id: count for calendar_id, count in result.all()})
    return counts


async def create_calendar(
    session: AsyncSession,
    caller: Caller,
    *,
    name: str,
    calendar_type: VisibilityType,
    division_id: Optional[int],
    user_ids: Iterable[int] = (),
) -> Calendar:
    division_id = await resolve_scope(
        session,
        caller,
        scope=calendar_type,
        division_id=division_id,
        missing_division_message=CalendarMessages.DIVISION_REQUIRED,
    )
    calendar = Calendar(
        name=name,
        type=calendar_type,
        division_id=division_id,
        created_by_id=caller.user_id,
    )
    session.add(calendar)
    await session.flush()

    if calendar_type == VisibilityType.personal:
        session.add(CalendarAccess(calendar_id=calendar.id, user_id=caller.user_id, can_edit=True))
        for user_id in await ensure_users_exist(session, user_ids):
            if user_id != caller.user_id:
                session.add(CalendarAccess(calendar_id=calendar.id, user_id=user_id, can_edit=False))
        await session.flush()
    logger.info("User %s created %s calendar %s", caller.user_id, calendar_type.value, calendar.id)
    return calendar


async def update_calendar(
    session: AsyncSession,
    caller: Caller,
    calendar: Calendar,
    *,
    changes: dict,
) -> Calendar:
    policy.ensure_allowed(caller, Action.modify_owned, modify_target(caller, calendar))
    user_ids = changes.pop("user_ids", None)
    if changes.get("name") is not None:
        calendar.name = changes["name"]
    calendar.updated_at = datetime.now(timezone.utc)
    session.add(calendar)
    await session.flush()

    if user_ids is not None and calendar.type == VisibilityType.personal:
        preserved = {calendar.created_by_id, caller.user_id} - {None}
        await session.exec(
            delete(CalendarAccess).where(
                CalendarAccess.calendar_id == calendar.id,
                CalendarAccess.user_id.not_in(preserved),
            )
        )
        existing = await session.exec(
            select(CalendarAccess.user_id).where(CalendarAccess.calendar_id == calendar.id)
        )
        kept = set(existing.all())
        for user_id in await ensure_users_exist(session, user_ids):
            if user_id not in kept:
                session.add(CalendarAccess(calendar_id=calendar.id, user_id=user_id, can_edit=False))
        await session.flush()
    return calendar


async def purge_calendar(session: AsyncSession, calendar_id: int) -> None:
    """Delete a calendar with its events and access rows."""
    await session.exec(delete(CalendarEvent).where(CalendarEvent.calendar_id == calendar_id))
    await session.exec(delete(CalendarAccess).where(CalendarAccess.calendar_id == calendar_id))
    await session.exec(delete(Calendar).where(Calendar.id == calendar_id))


async def delete_calendar(session: AsyncSession, caller: Caller, calendar: Calendar) -> None:
    policy.ensure_allowed(caller, Action.modify_owned, modify_target(caller, calendar))
    calendar_id = calendar.id
    await purge_calendar(session, calendar_id)
    await session.flush()
    logger.info("User %s deleted calendar %s", caller.user_id, calendar_id)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


async def get_event(
    session: AsyncSession,
    event_id: int,
    *,
    populate_existing: bool = False,
) -> CalendarEvent | None:
    stmt = select(CalendarEvent).where(CalendarEvent.id == event_id).options(selectinload(CalendarEvent.created_by))
    if populate_existing:
        stmt = stmt.execution_options(populate_existing=True)
    result = await session.exec(stmt)
    return result.one_or_none()


async def get_visible_event(session: AsyncSession, caller: Caller, event_id: int) -> CalendarEvent:
    event = await get_event(session, event_id)
    if not event:
        raise NotFound(CalendarMessages.EVENT_NOT_FOUND)
    await get_visible_calendar(session, caller, event.calendar_id)
    return event


async def get_event_for_change(session: AsyncSession, caller: Caller, event_id: int) -> CalendarEvent:
    event = await get_event(session, event_id)
    if not event:
        raise NotFound(CalendarMessages.EVENT_NOT_FOUND)
    await get_calendar_for_change(session, caller, event.calendar_id)
    return event


async def list_events(
    session: AsyncSession,
    calendar: Calendar,
    *,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[CalendarEvent]:
    """Events of one calendar, optionally those overlapping ``[start, end]``."""
    stmt = (
        select(CalendarEvent)
        .where(CalendarEvent.calendar_id == calendar.id)
        .options(selectinload(CalendarEvent.created_by))
        .order_by(CalendarEvent.start_date.asc(), CalendarEvent.id.asc())
    )
    if start is not None:
        stmt = stmt.where(CalendarEvent.end_date >= start)
    if end is not None:
        stmt = stmt.where(CalendarEvent.start_date <= end)
    result = await session.exec(stmt)
    return list(result.all())


async def create_event(
    session: AsyncSession,
    caller: Caller,
    calendar: Calendar,
    *,
    title: str,
    description: Optional[str],
    start_date: datetime,
    end_date: datetime,
    tags: Iterable[str] = (),
) -> CalendarEvent:
    start_date, end_date = as_utc(start_date), as_utc(end_date)
    if end_date < start_date:
        raise InvalidInput(CalendarMessages.INVALID_RANGE)
    event = CalendarEvent(
        title=title,
        description=description,
        start_date=start_date,
        end_date=end_date,
        tags=normalize_tags(list(tags)),
        calendar_id=calendar.id,
        created_by_id=caller.user_id,
    )
    session.add(event)
    await session.flush()
    return event


async def update_event(
    session: AsyncSession,
    caller: Caller,
    event: CalendarEvent,
    *,
    changes: dict,
) -> CalendarEvent:
    policy.ensure_allowed(caller, Action.modify_owned, Target(owner_id=event.created_by_id))
    start = as_utc(changes.get("start_date") or event.start_date)
    end = as_utc(changes.get("end_date") or event.end_date)
    if end < start:
        raise InvalidInput(CalendarMessages.INVALID_RANGE)
    for field, value in changes.items():
        if field in {"title", "start_date", "end_date"} and value is None:
            continue
        if field == "tags":
            value = normalize_tags(value)
        setattr(event, field, value)
    event.updated_at = datetime.now(timezone.utc)
    session.add(event)
    await session.flush()
    return event


async def delete_event(session: AsyncSession, caller: Caller, event: CalendarEvent) -> None:
    policy.ensure_allowed(caller, Action.modify_owned, Target(owner_id=event.created_by_id))
    await session.delete(event)
    await session.flush()
