"""User accounts and their activation lifecycle.

States move ``pending -> active -> inactive``. There is no way back out of
``inactive``. The functions here do not look at the caller's role; endpoints
run the role policy before calling them.
"""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Any, List

from sqlalchemy import func, update
from sqlmodel import delete, select
from sqlmodel.ext.asyncio.session import AsyncSession

from flowspace.core.errors import Conflict, InvalidInput, NotFound
from flowspace.core.messages import AuthMessages, DivisionMessages, UserMessages
from flowspace.core.security import get_password_hash, verify_password
from flowspace.models.board import Board, BoardAccess
from flowspace.models.calendar import Calendar, CalendarAccess, CalendarEvent
from flowspace.models.comment import Comment
from flowspace.models.division import Division
from flowspace.models.invitation import Invitation
from flowspace.models.issue import Issue
from flowspace.models.task import Task
from flowspace.models.user import User, UserRole, UserStatus

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def get_user(session: AsyncSession, user_id: int) -> User:
    result = await session.exec(select(User).where(User.id == user_id))
    user = result.one_or_none()
    if not user:
        raise NotFound(UserMessages.NOT_FOUND)
    return user


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.exec(select(User).where(func.lower(User.email) == normalize_email(email)))
    return result.one_or_none()


async def list_users(session: AsyncSession) -> List[User]:
    result = await session.exec(select(User).order_by(User.created_at.desc(), User.id.desc()))
    return list(result.all())


async def register_user(
    session: AsyncSession,
    *,
    email: str,
    password: str,
    name: str | None = None,
) -> User:
    """Create a self-registered account. It waits for approval or an invitation."""
    if await get_user_by_email(session, email):
        raise InvalidInput(AuthMessages.EMAIL_REGISTERED)
    user = User(
        email=normalize_email(email),
        name=name,
        hashed_password=get_password_hash(password),
        role=UserRole.user,
        status=UserStatus.pending,
    )
    session.add(user)
    await session.flush()
    logger.info("Registered pending user %s", user.email)
    return user


async def authenticate(session: AsyncSession, *, email: str, password: str) -> User:
    user = await get_user_by_email(session, email)
    if not user or not verify_password(password, user.hashed_password):
        raise InvalidInput(AuthMessages.INVALID_CREDENTIALS)
    if not user.is_active:
        raise InvalidInput(AuthMessages.ACCOUNT_NOT_ACTIVE)
    return user


def _touch(user: User) -> None:
    user.updated_at = datetime.now(timezone.utc)


async def approve_user(session: AsyncSession, user: User) -> User:
    if user.status != UserStatus.pending:
        raise Conflict(UserMessages.NOT_PENDING)
    user.status = UserStatus.active
    _touch(user)
    session.add(user)
    await session.flush()
    logger.info("Approved user %s", user.id)
    return user


async def activate_user(session: AsyncSession, user: User) -> User:
    """Side-effect activation used by invitations; a no-op for active users."""
    if user.status == UserStatus.active:
        return user
    user.status = UserStatus.active
    _touch(user)
    session.add(user)
    await session.flush()
    logger.info("Activated user %s through invitation", user.id)
    return user


async def deactivate_user(session: AsyncSession, user: User) -> User:
    user.status = UserStatus.inactive
    _touch(user)
    session.add(user)
    await session.flush()
    logger.info("Deactivated user %s", user.id)
    return user


async def update_user(session: AsyncSession, user: User, changes: dict[str, Any]) -> User:
    """Apply a patch produced with ``exclude_unset``."""
    if "email" in changes and changes["email"] is not None:
        email = normalize_email(changes["email"])
        existing = await get_user_by_email(session, email)
        if existing and existing.id != user.id:
            raise InvalidInput(UserMessages.EMAIL_IN_USE)
        changes["email"] = email
    if changes.get("division_id") is not None:
        division = await session.get(Division, changes["division_id"])
        if not division:
            raise NotFound(DivisionMessages.NOT_FOUND)
    for field, value in changes.items():
        if field in {"email", "role", "status"} and value is None:
            continue
        setattr(user, field, value)
    _touch(user)
    session.add(user)
    await session.flush()
    return user


async def delete_user(session: AsyncSession, user: User) -> None:
    """Remove a user, their grants and comments, and unlink everything else."""
    user_id = user.id

    await session.exec(delete(BoardAccess).where(BoardAccess.user_id == user_id))
    await session.exec(delete(CalendarAccess).where(CalendarAccess.user_id == user_id))
    await session.exec(delete(Comment).where(Comment.user_id == user_id))

    # Clear nullable foreign key references
    for model, column in (
        (Task, "assigned_to_id"),
        (Task, "created_by_id"),
        (Issue, "assigned_to_id"),
        (Issue, "created_by_id"),
        (Board, "created_by_id"),
        (Calendar, "created_by_id"),
        (CalendarEvent, "created_by_id"),
        (Invitation, "created_by_id"),
        (Invitation, "user_id"),
    ):
        await session.exec(
            update(model).where(getattr(model, column) == user_id).values({column: None})
        )

    await session.delete(user)
    await session.flush()
    logger.info("Deleted user %s", user_id)
