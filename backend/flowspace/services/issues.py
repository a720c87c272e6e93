from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import and_, func
from sqlalchemy.orm import selectinload
from sqlmodel import delete, select
from sqlmodel.ext.asyncio.session import AsyncSession

from flowspace.core.errors import NotFound
from flowspace.core.messages import IssueMessages, UserMessages
from flowspace.models.board import Board
from flowspace.models.comment import Comment
from flowspace.models.issue import Issue, IssueStatus
from flowspace.models.user import User
from flowspace.services import boards as boards_service
from flowspace.services import policy
from flowspace.services.policy import Action, Caller, Target
from flowspace.services.visibility import board_visibility_clause

logger = logging.getLogger(__name__)


def _issue_options(*, with_comments: bool = False):
    options = [
        selectinload(Issue.board),
        selectinload(Issue.assigned_to),
        selectinload(Issue.created_by),
    ]
    if with_comments:
        options.append(selectinload(Issue.comments).selectinload(Comment.user))
    return options


async def get_issue(
    session: AsyncSession,
    issue_id: int,
    *,
    with_comments: bool = False,
    populate_existing: bool = False,
) -> Issue | None:
    stmt = select(Issue).where(Issue.id == issue_id).options(*_issue_options(with_comments=with_comments))
    if populate_existing:
        stmt = stmt.execution_options(populate_existing=True)
    result = await session.exec(stmt)
    return result.one_or_none()


async def get_visible_issue(
    session: AsyncSession,
    caller: Caller,
    issue_id: int,
    *,
    with_comments: bool = False,
) -> Issue:
    issue = await get_issue(session, issue_id, with_comments=with_comments)
    if not issue:
        raise NotFound(IssueMessages.NOT_FOUND)
    await boards_service.get_visible_board(session, caller, issue.board_id)
    return issue


async def get_issue_for_change(session: AsyncSession, caller: Caller, issue_id: int) -> Issue:
    issue = await get_issue(session, issue_id)
    if not issue:
        raise NotFound(IssueMessages.NOT_FOUND)
    await boards_service.get_board_for_change(session, caller, issue.board_id)
    return issue


async def list_issues(
    session: AsyncSession,
    caller: Caller,
    *,
    board_id: Optional[int] = None,
    status: Optional[IssueStatus] = None,
    assigned_to_me: bool = False,
) -> List[Issue]:
    conditions = [board_visibility_clause(caller)]
    if board_id is not None:
        await boards_service.get_visible_board(session, caller, board_id)
        conditions.append(Issue.board_id == board_id)
    if status is not None:
        conditions.append(Issue.status == status)
    if assigned_to_me:
        conditions.append(Issue.assigned_to_id == caller.user_id)
    stmt = (
        select(Issue)
        .join(Board, Board.id == Issue.board_id)
        .where(and_(*conditions))
        .options(*_issue_options())
        .order_by(Issue.created_at.desc(), Issue.id.desc())
    )
    result = await session.exec(stmt)
    return list(result.all())


async def count_comments(session: AsyncSession, issue_ids: Iterable[int]) -> Dict[int, int]:
    ids = list(issue_ids)
    if not ids:
        return {}
    result = await session.exec(
        select(Comment.issue_id, func.count(Comment.id)).where(Comment.issue_id.in_(ids)).group_by(Comment.issue_id)
    )
    counts = {issue_id: 0 for issue_id in ids}
    counts.update({issue_id: count for issue_id, count in result.all()})
    return counts


async def _ensure_assignee(session: AsyncSession, user_id: Optional[int]) -> None:
    if user_id is not None and not await session.get(User, user_id):
        raise NotFound(UserMessages.NOT_FOUND)


async def create_issue(session: AsyncSession, caller: Caller, *, data: dict) -> Issue:
    await boards_service.get_visible_board(session, caller, data["board_id"])
    await _ensure_assignee(session, data.get("assigned_to_id"))
    issue = Issue(**data, created_by_id=caller.user_id)
    session.add(issue)
    await session.flush()
    logger.info("User %s opened issue %s on board %s", caller.user_id, issue.id, issue.board_id)
    return issue


async def update_issue(session: AsyncSession, caller: Caller, issue: Issue, *, changes: dict) -> Issue:
    policy.ensure_allowed(caller, Action.modify_owned, Target(owner_id=issue.created_by_id))
    if "assigned_to_id" in changes:
        await _ensure_assignee(session, changes["assigned_to_id"])
    for field, value in changes.items():
        if field in {"title", "status", "priority"} and value is None:
            continue
        setattr(issue, field, value)
    issue.updated_at = datetime.now(timezone.utc)
    session.add(issue)
    await session.flush()
    return issue


async def delete_issue(session: AsyncSession, caller: Caller, issue: Issue) -> None:
    policy.ensure_allowed(caller, Action.modify_owned, Target(owner_id=issue.created_by_id))
    issue_id = issue.id
    await session.exec(delete(Comment).where(Comment.issue_id == issue_id))
    await session.exec(delete(Issue).where(Issue.id == issue_id))
    await session.flush()
    logger.info("User %s deleted issue %s", caller.user_id, issue_id)
