"""Invitation lifecycle.

An invitation is ``pending`` until it is accepted or found past its expiry.
Expiry is lazy: the token lookup marks a stale invitation ``expired`` when it
sees one, while acceptance only refuses it.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging
import secrets
from typing import List

from sqlalchemy import update
from sqlalchemy.orm import selectinload
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from flowspace.core.config import settings
from flowspace.core.errors import Conflict, InvalidInput, NotFound
from flowspace.core.messages import InvitationMessages
from flowspace.models.invitation import Invitation, InvitationStatus
from flowspace.models.user import User, UserStatus
from flowspace.services import users as users_service

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32


class InvitationUnavailable(Conflict):
    """The invitation was already used or has expired."""

    def __init__(self, message: str = InvitationMessages.USED_OR_EXPIRED):
        super().__init__(message)


class InvitationExpired(InvitationUnavailable):
    def __init__(self) -> None:
        super().__init__(InvitationMessages.EXPIRED)


def invitation_link(token: str) -> str:
    return f"{settings.APP_URL}/invite/{token}"


def is_past_expiry(invitation: Invitation, *, now: datetime | None = None) -> bool:
    now = now or datetime.now(timezone.utc)
    expires_at = invitation.expires_at
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at < now


def _invitation_options():
    return (selectinload(Invitation.created_by), selectinload(Invitation.user))


async def get_by_token(
    session: AsyncSession,
    token: str,
    *,
    populate_existing: bool = False,
) -> Invitation | None:
    stmt = select(Invitation).where(Invitation.token == token).options(*_invitation_options())
    if populate_existing:
        stmt = stmt.execution_options(populate_existing=True)
    result = await session.exec(stmt)
    return result.one_or_none()


async def list_invitations(session: AsyncSession) -> List[Invitation]:
    stmt = (
        select(Invitation)
        .options(*_invitation_options())
        .order_by(Invitation.created_at.desc(), Invitation.id.desc())
    )
    result = await session.exec(stmt)
    return list(result.all())


async def _generate_unique_token(session: AsyncSession) -> str:
    for _ in range(5):
        candidate = secrets.token_hex(TOKEN_BYTES)
        if await get_by_token(session, candidate) is None:
            return candidate
    raise RuntimeError("Unable to generate unique invitation token")


async def create_invitation(session: AsyncSession, *, email: str, created_by: User) -> Invitation:
    email = users_service.normalize_email(email)
    user = await users_service.get_user_by_email(session, email)
    if user and user.status == UserStatus.active:
        raise InvalidInput(InvitationMessages.USER_ALREADY_ACTIVE)

    pending = await session.exec(
        select(Invitation.id).where(
            Invitation.email == email,
            Invitation.status == InvitationStatus.pending,
        )
    )
    if pending.first() is not None:
        raise Conflict(InvitationMessages.ALREADY_SENT)

    now = datetime.now(timezone.utc)
    invitation = Invitation(
        email=email,
        token=await _generate_unique_token(session),
        status=InvitationStatus.pending,
        expires_at=now + timedelta(days=settings.INVITATION_EXPIRE_DAYS),
        created_by_id=created_by.id,
        user_id=user.id if user else None,
        created_at=now,
        updated_at=now,
    )
    session.add(invitation)
    await session.flush()

    # An invitation on its own activates a user who registered and is waiting
    if user and user.status == UserStatus.pending:
        await users_service.activate_user(session, user)

    logger.info("User %s invited %s (invitation %s)", created_by.id, email, invitation.id)
    return invitation


def _ensure_redeemable_status(invitation: Invitation) -> None:
    if invitation.status == InvitationStatus.expired:
        raise InvitationExpired()
    if invitation.status != InvitationStatus.pending:
        raise InvitationUnavailable()


async def lookup(session: AsyncSession, token: str) -> Invitation:
    """Resolve a token for the public invite page, expiring it if stale."""
    invitation = await get_by_token(session, token)
    if not invitation:
        raise NotFound(InvitationMessages.NOT_FOUND)
    _ensure_redeemable_status(invitation)
    if is_past_expiry(invitation):
        invitation.status = InvitationStatus.expired
        invitation.updated_at = datetime.now(timezone.utc)
        session.add(invitation)
        await session.commit()
        logger.info("Invitation %s expired", invitation.id)
        raise InvitationExpired()
    return invitation


async def accept(session: AsyncSession, token: str, *, user_id: int) -> Invitation:
    """Accept a pending invitation on behalf of ``user_id`` and activate them.

    The invitation email is not matched against the user.
    """
    invitation = await get_by_token(session, token)
    if not invitation:
        raise NotFound(InvitationMessages.NOT_FOUND)
    _ensure_redeemable_status(invitation)
    if is_past_expiry(invitation):
        raise InvitationExpired()

    user = await users_service.get_user(session, user_id)

    now = datetime.now(timezone.utc)
    result = await session.exec(
        update(Invitation)
        .where(
            Invitation.id == invitation.id,
            Invitation.status == InvitationStatus.pending,
        )
        .values(status=InvitationStatus.accepted, user_id=user.id, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InvitationUnavailable()

    await users_service.activate_user(session, user)
    await session.flush()
    logger.info("Invitation %s accepted by user %s", invitation.id, user.id)
    return invitation
