from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import List

from sqlalchemy import func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from flowspace.core.errors import InvalidInput, NotFound
from flowspace.core.messages import DivisionMessages
from flowspace.models.board import Board
from flowspace.models.calendar import Calendar
from flowspace.models.division import Division
from flowspace.models.scope import VisibilityType
from flowspace.models.user import User
from flowspace.services import boards as boards_service
from flowspace.services import calendars as calendars_service

logger = logging.getLogger(__name__)


async def get_division(session: AsyncSession, division_id: int) -> Division:
    result = await session.exec(select(Division).where(Division.id == division_id))
    division = result.one_or_none()
    if not division:
        raise NotFound(DivisionMessages.NOT_FOUND)
    return division


async def count_members(session: AsyncSession, division_id: int) -> int:
    result = await session.exec(select(func.count(User.id)).where(User.division_id == division_id))
    return result.one()


async def list_divisions(session: AsyncSession) -> List[tuple[Division, int]]:
    """Every division with its member count, by name."""
    member_count = (
        select(func.count(User.id))
        .where(User.division_id == Division.id)
        .correlate(Division)
        .scalar_subquery()
    )
    result = await session.exec(select(Division, member_count).order_by(Division.name.asc()))
    return [(division, count or 0) for division, count in result.all()]


async def _ensure_name_available(session: AsyncSession, name: str, *, exclude_id: int | None = None) -> None:
    stmt = select(Division.id).where(func.lower(Division.name) == name.lower())
    if exclude_id is not None:
        stmt = stmt.where(Division.id != exclude_id)
    result = await session.exec(stmt)
    if result.first() is not None:
        raise InvalidInput(DivisionMessages.NAME_EXISTS)


async def create_division(session: AsyncSession, *, name: str) -> Division:
    await _ensure_name_available(session, name)
    division = Division(name=name)
    session.add(division)
    await session.flush()
    logger.info("Created division %s (%s)", division.id, division.name)
    return division


async def update_division(session: AsyncSession, division: Division, *, name: str | None) -> Division:
    if name is not None and name != division.name:
        await _ensure_name_available(session, name, exclude_id=division.id)
        division.name = name
    division.updated_at = datetime.now(timezone.utc)
    session.add(division)
    await session.flush()
    return division


async def delete_division(session: AsyncSession, division: Division) -> None:
    """Delete an empty division together with its division boards and calendars."""
    board_ids = await session.exec(
        select(Board.id).where(Board.type == VisibilityType.division, Board.division_id == division.id)
    )
    for board_id in board_ids.all():
        await boards_service.purge_board(session, board_id)

    calendar_ids = await session.exec(
        select(Calendar.id).where(Calendar.type == VisibilityType.division, Calendar.division_id == division.id)
    )
    for calendar_id in calendar_ids.all():
        await calendars_service.purge_calendar(session, calendar_id)

    division_id = division.id
    await session.delete(division)
    await session.flush()
    logger.info("Deleted division %s", division_id)
