from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import and_, func
from sqlalchemy.orm import selectinload
from sqlmodel import delete, select
from sqlmodel.ext.asyncio.session import AsyncSession

from flowspace.core.errors import Forbidden, InvalidInput, NotFound
from flowspace.core.messages import BoardMessages, DivisionMessages, UserMessages
from flowspace.models.board import Board, BoardAccess
from flowspace.models.comment import Comment
from flowspace.models.division import Division
from flowspace.models.issue import Issue
from flowspace.models.scope import VisibilityType
from flowspace.models.task import Task
from flowspace.models.user import User
from flowspace.services import policy
from flowspace.services.policy import Action, Caller, Target
from flowspace.services.visibility import (
    DivisionScope,
    board_visibility_clause,
    is_visible,
    member_clause,
)

logger = logging.getLogger(__name__)


def _board_options():
    return (
        selectinload(Board.division),
        selectinload(Board.access).selectinload(BoardAccess.user),
    )


async def get_board(
    session: AsyncSession,
    board_id: int,
    *,
    populate_existing: bool = False,
) -> Board | None:
    """Fetch a board with division and access rows loaded for serialization."""
    stmt = select(Board).where(Board.id == board_id).options(*_board_options())
    if populate_existing:
        stmt = stmt.execution_options(populate_existing=True)
    result = await session.exec(stmt)
    return result.one_or_none()


def board_is_visible(caller: Caller, board: Board) -> bool:
    return is_visible(caller, board.type, board.division_id, (row.user_id for row in board.access))


async def get_visible_board(session: AsyncSession, caller: Caller, board_id: int) -> Board:
    board = await get_board(session, board_id)
    if not board:
        raise NotFound(BoardMessages.NOT_FOUND)
    if not board_is_visible(caller, board):
        raise Forbidden(BoardMessages.ACCESS_DENIED)
    return board


async def get_board_for_change(session: AsyncSession, caller: Caller, board_id: int) -> Board:
    """Load a board for update or delete.

    Admins and masters may act on boards they cannot see; everyone else has
    to pass the visibility check before the ownership policy runs.
    """
    board = await get_board(session, board_id)
    if not board:
        raise NotFound(BoardMessages.NOT_FOUND)
    if not caller.is_privileged and not board_is_visible(caller, board):
        raise Forbidden(BoardMessages.ACCESS_DENIED)
    return board


def modify_target(caller: Caller, board: Board) -> Target:
    grant = next((row for row in board.access if row.user_id == caller.user_id), None)
    return Target(owner_id=board.created_by_id, can_edit=bool(grant and grant.can_edit))


async def list_boards(
    session: AsyncSession,
    caller: Caller,
    *,
    board_type: Optional[VisibilityType] = None,
) -> List[Board]:
    if board_type == VisibilityType.division and not caller.is_privileged and caller.division_id is None:
        raise InvalidInput(DivisionMessages.NOT_ASSIGNED)

    clause = board_visibility_clause(caller)
    if board_type is not None:
        clause = and_(Board.type == board_type, clause)
    stmt = select(Board).where(clause).options(*_board_options()).order_by(Board.created_at.desc(), Board.id.desc())
    result = await session.exec(stmt)
    return list(result.all())


async def count_contents(session: AsyncSession, board_ids: Iterable[int]) -> Dict[int, tuple[int, int]]:
    """Task and issue counts per board id."""
    ids = list(board_ids)
    if not ids:
        return {}
    counts: Dict[int, list[int]] = {board_id: [0, 0] for board_id in ids}
    tasks = await session.exec(
        select(Task.board_id, func.count(Task.id)).where(Task.board_id.in_(ids)).group_by(Task.board_id)
    )
    for board_id, count in tasks.all():
        counts[board_id][0] = count
    issues = await session.exec(
        select(Issue.board_id, func.count(Issue.id)).where(Issue.board_id.in_(ids)).group_by(Issue.board_id)
    )
    for board_id, count in issues.all():
        counts[board_id][1] = count
    return {board_id: (tasks_count, issues_count) for board_id, (tasks_count, issues_count) in counts.items()}


async def list_members(session: AsyncSession, scope: DivisionScope) -> List[User]:
    """Active users who can be assigned work on boards in ``scope``."""
    stmt = select(User).where(member_clause(scope)).order_by(User.name.asc(), User.email.asc())
    result = await session.exec(stmt)
    return list(result.all())


async def ensure_users_exist(session: AsyncSession, user_ids: Iterable[int]) -> List[int]:
    wanted = list(dict.fromkeys(user_ids))
    if not wanted:
        return []
    result = await session.exec(select(User.id).where(User.id.in_(wanted)))
    found = set(result.all())
    missing = [user_id for user_id in wanted if user_id not in found]
    if missing:
        raise NotFound(UserMessages.NOT_FOUND)
    return wanted


async def resolve_scope(
    session: AsyncSession,
    caller: Caller,
    *,
    scope: VisibilityType,
    division_id: Optional[int],
    missing_division_message: str,
) -> Optional[int]:
    """Validate the division for a new board or calendar and apply the creation rule."""
    if scope != VisibilityType.division:
        return None
    if division_id is None:
        if caller.is_privileged:
            raise InvalidInput(missing_division_message)
        if caller.division_id is None:
            raise InvalidInput(DivisionMessages.NOT_ASSIGNED)
        division_id = caller.division_id
    policy.ensure_allowed(
        caller,
        Action.create_scoped_resource,
        Target(scope=scope, division_id=division_id),
    )
    if not await session.get(Division, division_id):
        raise NotFound(DivisionMessages.NOT_FOUND)
    return division_id


async def create_board(
    session: AsyncSession,
    caller: Caller,
    *,
    name: str,
    description: Optional[str],
    board_type: VisibilityType,
    division_id: Optional[int],
    user_ids: Iterable[int] = (),
) -> Board:
    division_id = await resolve_scope(
        session,
        caller,
        scope=board_type,
        division_id=division_id,
        missing_division_message=BoardMessages.DIVISION_REQUIRED,
    )
    board = Board(
        name=name,
        description=description,
        type=board_type,
        division_id=division_id,
        created_by_id=caller.user_id,
    )
    session.add(board)
    await session.flush()

    if board_type == VisibilityType.personal:
        session.add(BoardAccess(board_id=board.id, user_id=caller.user_id, can_edit=True))
        for user_id in await ensure_users_exist(session, user_ids):
            if user_id != caller.user_id:
                session.add(BoardAccess(board_id=board.id, user_id=user_id, can_edit=False))
        await session.flush()
    logger.info("User %s created %s board %s", caller.user_id, board_type.value, board.id)
    return board


async def replace_grants(
    session: AsyncSession,
    board: Board,
    caller: Caller,
    user_ids: Iterable[int],
) -> None:
    """Replace access rows, keeping the creator's and the caller's own rows."""
    preserved = {board.created_by_id, caller.user_id} - {None}
    await session.exec(
        delete(BoardAccess).where(
            BoardAccess.board_id == board.id,
            BoardAccess.user_id.not_in(preserved),
        )
    )
    existing = await session.exec(select(BoardAccess.user_id).where(BoardAccess.board_id == board.id))
    kept = set(existing.all())
    for user_id in await ensure_users_exist(session, user_ids):
        if user_id not in kept:
            session.add(BoardAccess(board_id=board.id, user_id=user_id, can_edit=False))
    await session.flush()


async def update_board(
    session: AsyncSession,
    caller: Caller,
    board: Board,
    *,
    changes: dict,
) -> Board:
    policy.ensure_allowed(caller, Action.modify_owned, modify_target(caller, board))
    user_ids = changes.pop("user_ids", None)
    for field, value in changes.items():
        if field == "name" and value is None:
            continue
        setattr(board, field, value)
    board.updated_at = datetime.now(timezone.utc)
    session.add(board)
    await session.flush()
    if user_ids is not None and board.type == VisibilityType.personal:
        await replace_grants(session, board, caller, user_ids)
    return board


async def purge_board(session: AsyncSession, board_id: int) -> None:
    """Delete a board and everything it owns."""
    issue_ids = select(Issue.id).where(Issue.board_id == board_id)
    await session.exec(delete(Comment).where(Comment.issue_id.in_(issue_ids)))
    await session.exec(delete(Issue).where(Issue.board_id == board_id))
    await session.exec(delete(Task).where(Task.board_id == board_id))
    await session.exec(delete(BoardAccess).where(BoardAccess.board_id == board_id))
    await session.exec(delete(Board).where(Board.id == board_id))


async def delete_board(session: AsyncSession, caller: Caller, board: Board) -> None:
    policy.ensure_allowed(caller, Action.modify_owned, modify_target(caller, board))
    board_id = board.id
    await purge_board(session, board_id)
    await session.flush()
    logger.info("User %s deleted board %s", caller.user_id, board_id)
