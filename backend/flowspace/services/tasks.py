from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import List, Optional

from sqlalchemy import and_
from sqlalchemy.orm import selectinload
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from flowspace.core.errors import Forbidden, NotFound
from flowspace.core.messages import BoardMessages, TaskMessages, UserMessages
from flowspace.models.board import Board
from flowspace.models.task import Task, TaskStatus
from flowspace.models.user import User
from flowspace.services import boards as boards_service
from flowspace.services import policy
from flowspace.services.policy import Action, Caller, Target
from flowspace.services.visibility import DivisionScope, board_visibility_clause, scope_clause

logger = logging.getLogger(__name__)


def _task_options():
    return (
        selectinload(Task.board),
        selectinload(Task.assigned_to),
        selectinload(Task.created_by),
    )


async def get_task(
    session: AsyncSession,
    task_id: int,
    *,
    populate_existing: bool = False,
) -> Task | None:
    stmt = select(Task).where(Task.id == task_id).options(*_task_options())
    if populate_existing:
        stmt = stmt.execution_options(populate_existing=True)
    result = await session.exec(stmt)
    return result.one_or_none()


async def get_visible_task(session: AsyncSession, caller: Caller, task_id: int) -> Task:
    """A task is visible exactly when its board is."""
    task = await get_task(session, task_id)
    if not task:
        raise NotFound(TaskMessages.NOT_FOUND)
    await boards_service.get_visible_board(session, caller, task.board_id)
    return task


async def get_task_for_change(session: AsyncSession, caller: Caller, task_id: int) -> Task:
    task = await get_task(session, task_id)
    if not task:
        raise NotFound(TaskMessages.NOT_FOUND)
    await boards_service.get_board_for_change(session, caller, task.board_id)
    return task


async def list_tasks(
    session: AsyncSession,
    caller: Caller,
    *,
    board_id: Optional[int] = None,
    status: Optional[TaskStatus] = None,
    assigned_to_me: bool = False,
    division_scope: Optional[DivisionScope] = None,
) -> List[Task]:
    if division_scope is not None and not caller.is_privileged:
        raise Forbidden(BoardMessages.DIVISION_FILTER_ADMIN_ONLY)

    conditions = [board_visibility_clause(caller)]
    if board_id is not None:
        await boards_service.get_visible_board(session, caller, board_id)
        conditions.append(Task.board_id == board_id)
    if status is not None:
        conditions.append(Task.status == status)
    if assigned_to_me:
        conditions.append(Task.assigned_to_id == caller.user_id)
    if division_scope is not None:
        conditions.append(scope_clause(Board, division_scope))

    stmt = (
        select(Task)
        .join(Board, Board.id == Task.board_id)
        .where(and_(*conditions))
        .options(*_task_options())
        .order_by(Task.created_at.desc(), Task.id.desc())
    )
    result = await session.exec(stmt)
    return list(result.all())


async def _ensure_assignee(session: AsyncSession, user_id: Optional[int]) -> None:
    if user_id is None:
        return
    if not await session.get(User, user_id):
        raise NotFound(UserMessages.NOT_FOUND)


async def create_task(session: AsyncSession, caller: Caller, *, data: dict) -> Task:
    await boards_service.get_visible_board(session, caller, data["board_id"])
    await _ensure_assignee(session, data.get("assigned_to_id"))
    task = Task(**data, created_by_id=caller.user_id)
    session.add(task)
    await session.flush()
    logger.info("User %s created task %s on board %s", caller.user_id, task.id, task.board_id)
    return task


async def update_task(session: AsyncSession, caller: Caller, task: Task, *, changes: dict) -> Task:
    policy.ensure_allowed(caller, Action.modify_owned, Target(owner_id=task.created_by_id))
    if changes.get("board_id") is not None and changes["board_id"] != task.board_id:
        await boards_service.get_visible_board(session, caller, changes["board_id"])
    if "assigned_to_id" in changes:
        await _ensure_assignee(session, changes["assigned_to_id"])
    for field, value in changes.items():
        if field in {"title", "status", "priority", "board_id"} and value is None:
            continue
        setattr(task, field, value)
    task.updated_at = datetime.now(timezone.utc)
    session.add(task)
    await session.flush()
    return task


async def set_status(session: AsyncSession, caller: Caller, task: Task, status: TaskStatus) -> Task:
    return await update_task(session, caller, task, changes={"status": status})


async def delete_task(session: AsyncSession, caller: Caller, task: Task) -> None:
    policy.ensure_allowed(caller, Action.modify_owned, Target(owner_id=task.created_by_id))
    task_id = task.id
    await session.delete(task)
    await session.flush()
    logger.info("User %s deleted task %s", caller.user_id, task_id)
