from __future__ import annotations

import logging
from typing import List

from sqlalchemy.orm import selectinload
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from flowspace.core.errors import NotFound
from flowspace.core.messages import CommentMessages
from flowspace.models.comment import Comment
from flowspace.models.issue import Issue
from flowspace.services import boards as boards_service
from flowspace.services import policy
from flowspace.services.policy import Action, Caller, Target

logger = logging.getLogger(__name__)


async def get_comment(
    session: AsyncSession,
    comment_id: int,
    *,
    populate_existing: bool = False,
) -> Comment | None:
    stmt = select(Comment).where(Comment.id == comment_id).options(selectinload(Comment.user))
    if populate_existing:
        stmt = stmt.execution_options(populate_existing=True)
    result = await session.exec(stmt)
    return result.one_or_none()


async def list_comments(session: AsyncSession, issue: Issue) -> List[Comment]:
    stmt = (
        select(Comment)
        .where(Comment.issue_id == issue.id)
        .options(selectinload(Comment.user))
        .order_by(Comment.created_at.asc(), Comment.id.asc())
    )
    result = await session.exec(stmt)
    return list(result.all())


async def create_comment(session: AsyncSession, caller: Caller, issue: Issue, *, content: str) -> Comment:
    comment = Comment(content=content, user_id=caller.user_id, issue_id=issue.id)
    session.add(comment)
    await session.flush()
    return comment


async def delete_comment(session: AsyncSession, caller: Caller, comment_id: int) -> None:
    """Authors and admins may delete; regular users must still see the issue's board."""
    comment = await get_comment(session, comment_id)
    if not comment:
        raise NotFound(CommentMessages.NOT_FOUND)
    issue = await session.get(Issue, comment.issue_id)
    if issue is not None:
        await boards_service.get_board_for_change(session, caller, issue.board_id)
    policy.ensure_allowed(caller, Action.modify_owned, Target(owner_id=comment.user_id))
    await session.delete(comment)
    await session.flush()
    logger.info("User %s deleted comment %s", caller.user_id, comment_id)
