"""
Unit tests for the SQL side of the visibility rule.

Each test builds boards or calendars of every type and checks which ones the
listing services return for a given caller.
"""

import pytest
from sqlmodel.ext.asyncio.session import AsyncSession

from flowspace.core.errors import InvalidInput
from flowspace.core.messages import DivisionMessages
from flowspace.models.scope import VisibilityType
from flowspace.models.user import UserRole, UserStatus
from flowspace.services import boards as board_service
from flowspace.services import calendars as calendar_service
from flowspace.services.policy import Caller
from flowspace.services.visibility import DivisionScope
from flowspace.testing import create_board, create_calendar, create_division, create_user


@pytest.fixture
async def layout(session: AsyncSession):
    """Two divisions, one board of each kind, and a personal board shared with one user."""
    eng = await create_division(session, name="Eng")
    ops = await create_division(session, name="Ops")
    owner = await create_user(session, division_id=eng.id)
    friend = await create_user(session, division_id=ops.id)

    boards = {
        "general": await create_board(session, owner),
        "eng": await create_board(session, owner, type=VisibilityType.division, division_id=eng.id),
        "ops": await create_board(session, owner, type=VisibilityType.division, division_id=ops.id),
        "shared": await create_board(session, owner, type=VisibilityType.personal, grantees=[friend]),
        "private": await create_board(session, owner, type=VisibilityType.personal),
    }
    return {"eng": eng, "ops": ops, "owner": owner, "friend": friend, "boards": boards}


def _ids(rows) -> set[int]:
    return {row.id for row in rows}


@pytest.mark.unit
@pytest.mark.service
async def test_regular_user_sees_general_own_division_and_granted(session: AsyncSession, layout):
    boards = layout["boards"]
    caller = Caller.from_user(layout["friend"])

    visible = await board_service.list_boards(session, caller)

    assert _ids(visible) == {boards["general"].id, boards["ops"].id, boards["shared"].id}


@pytest.mark.unit
@pytest.mark.service
async def test_owner_sees_all_own_personal_boards(session: AsyncSession, layout):
    boards = layout["boards"]
    caller = Caller.from_user(layout["owner"])

    visible = await board_service.list_boards(session, caller)

    assert _ids(visible) == {boards["general"].id, boards["eng"].id, boards["shared"].id, boards["private"].id}


@pytest.mark.unit
@pytest.mark.service
async def test_unassigned_user_sees_no_division_boards(session: AsyncSession, layout):
    caller = Caller.from_user(await create_user(session))

    visible = await board_service.list_boards(session, caller)

    assert _ids(visible) == {layout["boards"]["general"].id}


@pytest.mark.unit
@pytest.mark.service
@pytest.mark.parametrize("role", [UserRole.admin, UserRole.master])
async def test_admins_see_every_division_but_not_foreign_personal(session: AsyncSession, layout, role):
    boards = layout["boards"]
    caller = Caller.from_user(await create_user(session, role=role))

    visible = await board_service.list_boards(session, caller)

    assert _ids(visible) == {boards["general"].id, boards["eng"].id, boards["ops"].id}


@pytest.mark.unit
@pytest.mark.service
async def test_division_is_read_from_the_caller_not_cached(session: AsyncSession, layout):
    friend = layout["friend"]
    friend.division_id = layout["eng"].id
    session.add(friend)
    await session.commit()

    visible = await board_service.list_boards(session, Caller.from_user(friend))

    assert layout["boards"]["eng"].id in _ids(visible)
    assert layout["boards"]["ops"].id not in _ids(visible)


@pytest.mark.unit
@pytest.mark.service
async def test_type_filter_narrows_to_one_family(session: AsyncSession, layout):
    caller = Caller.from_user(layout["owner"])

    personal = await board_service.list_boards(session, caller, board_type=VisibilityType.personal)

    assert _ids(personal) == {layout["boards"]["shared"].id, layout["boards"]["private"].id}


@pytest.mark.unit
@pytest.mark.service
async def test_division_filter_requires_assignment_for_regular_users(session: AsyncSession, layout):
    caller = Caller.from_user(await create_user(session))

    with pytest.raises(InvalidInput) as exc_info:
        await board_service.list_boards(session, caller, board_type=VisibilityType.division)

    assert exc_info.value.message == DivisionMessages.NOT_ASSIGNED


@pytest.mark.unit
@pytest.mark.service
async def test_calendars_follow_the_same_rule(session: AsyncSession):
    eng = await create_division(session)
    ops = await create_division(session)
    owner = await create_user(session, division_id=eng.id)
    reader = await create_user(session, division_id=eng.id)

    general = await create_calendar(session, owner)
    eng_calendar = await create_calendar(session, owner, type=VisibilityType.division, division_id=eng.id)
    await create_calendar(session, owner, type=VisibilityType.division, division_id=ops.id)
    await create_calendar(session, owner, type=VisibilityType.personal)
    shared = await create_calendar(session, owner, type=VisibilityType.personal, grantees=[reader])

    visible = await calendar_service.list_calendars(session, Caller.from_user(reader))

    assert _ids(visible) == {general.id, eng_calendar.id, shared.id}


# ---------------------------------------------------------------------------
# Members by scope
# ---------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.service
async def test_general_scope_lists_all_active_users(session: AsyncSession):
    division = await create_division(session)
    active = await create_user(session, division_id=division.id)
    loner = await create_user(session)
    await create_user(session, status=UserStatus.pending)
    await create_user(session, status=UserStatus.inactive)

    members = await board_service.list_members(session, DivisionScope.general())

    assert _ids(members) == {active.id, loner.id}


@pytest.mark.unit
@pytest.mark.service
async def test_division_scope_lists_active_members_of_that_division(session: AsyncSession):
    division = await create_division(session, name="general")
    member = await create_user(session, division_id=division.id)
    await create_user(session, division_id=division.id, status=UserStatus.inactive)
    await create_user(session)

    members = await board_service.list_members(session, DivisionScope.of(division.id))

    assert _ids(members) == {member.id}
