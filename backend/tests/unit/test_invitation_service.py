"""
Unit tests for the invitation lifecycle.

Covers creation conflicts, lazy expiry on lookup, the non-writing expiry
check on accept, and the guarded status transition on accept.
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from flowspace.core.errors import Conflict, InvalidInput, NotFound
from flowspace.core.messages import InvitationMessages
from flowspace.models.invitation import Invitation, InvitationStatus
from flowspace.models.user import UserRole, UserStatus
from flowspace.services import invitations as invitation_service
from flowspace.services.invitations import InvitationExpired, InvitationUnavailable
from flowspace.testing import create_invitation, create_user


async def _reload(session: AsyncSession, invitation_id: int) -> Invitation:
    result = await session.exec(
        select(Invitation).where(Invitation.id == invitation_id).execution_options(populate_existing=True)
    )
    return result.one()


@pytest.fixture
async def admin(session: AsyncSession):
    return await create_user(session, role=UserRole.admin)


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.service
async def test_create_invitation_for_new_email(session: AsyncSession, admin):
    before = datetime.now(timezone.utc)

    invitation = await invitation_service.create_invitation(session, email=" New@Example.com", created_by=admin)

    assert invitation.email == "new@example.com"
    assert invitation.status == InvitationStatus.pending
    assert invitation.user_id is None
    assert invitation.created_by_id == admin.id
    assert len(invitation.token) == 64
    int(invitation.token, 16)
    assert invitation.expires_at - before >= timedelta(days=7) - timedelta(seconds=5)
    assert invitation.expires_at - before <= timedelta(days=7, seconds=5)


@pytest.mark.unit
@pytest.mark.service
async def test_create_invitation_tokens_are_unique(session: AsyncSession, admin):
    first = await invitation_service.create_invitation(session, email="one@example.com", created_by=admin)
    second = await invitation_service.create_invitation(session, email="two@example.com", created_by=admin)

    assert first.token != second.token


@pytest.mark.unit
@pytest.mark.service
async def test_create_invitation_rejects_active_user(session: AsyncSession, admin):
    await create_user(session, email="active@example.com")

    with pytest.raises(InvalidInput) as exc_info:
        await invitation_service.create_invitation(session, email="active@example.com", created_by=admin)

    assert exc_info.value.message == InvitationMessages.USER_ALREADY_ACTIVE


@pytest.mark.unit
@pytest.mark.service
async def test_create_invitation_rejects_second_pending(session: AsyncSession, admin):
    await invitation_service.create_invitation(session, email="twice@example.com", created_by=admin)

    with pytest.raises(Conflict) as exc_info:
        await invitation_service.create_invitation(session, email="Twice@example.com", created_by=admin)

    assert exc_info.value.message == InvitationMessages.ALREADY_SENT


@pytest.mark.unit
@pytest.mark.service
async def test_create_invitation_allowed_after_previous_expired(session: AsyncSession, admin):
    await create_invitation(session, admin, email="again@example.com", status=InvitationStatus.expired)

    invitation = await invitation_service.create_invitation(session, email="again@example.com", created_by=admin)

    assert invitation.status == InvitationStatus.pending


@pytest.mark.unit
@pytest.mark.service
async def test_create_invitation_activates_pending_user(session: AsyncSession, admin):
    pending = await create_user(session, email="waiting@example.com", status=UserStatus.pending)

    invitation = await invitation_service.create_invitation(session, email="waiting@example.com", created_by=admin)

    assert invitation.user_id == pending.id
    assert pending.status == UserStatus.active


@pytest.mark.unit
@pytest.mark.service
async def test_create_invitation_links_inactive_user_without_activating(session: AsyncSession, admin):
    inactive = await create_user(session, email="gone@example.com", status=UserStatus.inactive)

    invitation = await invitation_service.create_invitation(session, email="gone@example.com", created_by=admin)

    assert invitation.user_id == inactive.id
    assert inactive.status == UserStatus.inactive


@pytest.mark.unit
def test_invitation_link_uses_app_url():
    link = invitation_service.invitation_link("abc")
    assert link.endswith("/invite/abc")


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.service
async def test_lookup_unknown_token(session: AsyncSession):
    with pytest.raises(NotFound):
        await invitation_service.lookup(session, "missing")


@pytest.mark.unit
@pytest.mark.service
async def test_lookup_pending_invitation(session: AsyncSession, admin):
    invitation = await create_invitation(session, admin)

    found = await invitation_service.lookup(session, invitation.token)

    assert found.id == invitation.id


@pytest.mark.unit
@pytest.mark.service
async def test_lookup_expires_stale_invitation_exactly_once(session: AsyncSession, admin):
    stale = await create_invitation(
        session,
        admin,
        expires_at=datetime.now(timezone.utc) - timedelta(minutes=1),
    )

    with pytest.raises(InvitationExpired) as exc_info:
        await invitation_service.lookup(session, stale.token)
    assert exc_info.value.message == InvitationMessages.EXPIRED

    expired = await _reload(session, stale.id)
    assert expired.status == InvitationStatus.expired
    first_write = expired.updated_at

    with pytest.raises(InvitationExpired):
        await invitation_service.lookup(session, stale.token)

    again = await _reload(session, stale.id)
    assert again.status == InvitationStatus.expired
    assert again.updated_at == first_write


@pytest.mark.unit
@pytest.mark.service
async def test_lookup_accepted_invitation(session: AsyncSession, admin):
    used = await create_invitation(session, admin, status=InvitationStatus.accepted)

    with pytest.raises(InvitationUnavailable) as exc_info:
        await invitation_service.lookup(session, used.token)

    assert exc_info.value.message == InvitationMessages.USED_OR_EXPIRED
    assert exc_info.value.status_code == 400


# ---------------------------------------------------------------------------
# Accept
# ---------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.service
async def test_accept_activates_user_and_marks_accepted(session: AsyncSession, admin):
    invitee = await create_user(session, status=UserStatus.pending)
    invitation = await create_invitation(session, admin, email=invitee.email)

    await invitation_service.accept(session, invitation.token, user_id=invitee.id)
    await session.commit()

    accepted = await _reload(session, invitation.id)
    assert accepted.status == InvitationStatus.accepted
    assert accepted.user_id == invitee.id
    assert invitee.status == UserStatus.active


@pytest.mark.unit
@pytest.mark.service
async def test_accept_past_expiry_does_not_write(session: AsyncSession, admin):
    invitee = await create_user(session, status=UserStatus.pending)
    stale = await create_invitation(
        session,
        admin,
        expires_at=datetime.now(timezone.utc) - timedelta(minutes=1),
    )

    with pytest.raises(InvitationExpired):
        await invitation_service.accept(session, stale.token, user_id=invitee.id)

    unchanged = await _reload(session, stale.id)
    assert unchanged.status == InvitationStatus.pending
    assert invitee.status == UserStatus.pending


@pytest.mark.unit
@pytest.mark.service
async def test_accept_twice_fails(session: AsyncSession, admin):
    invitee = await create_user(session, status=UserStatus.pending)
    invitation = await create_invitation(session, admin)

    await invitation_service.accept(session, invitation.token, user_id=invitee.id)
    await session.commit()

    with pytest.raises(InvitationUnavailable):
        await invitation_service.accept(session, invitation.token, user_id=invitee.id)


@pytest.mark.unit
@pytest.mark.service
async def test_accept_unknown_user(session: AsyncSession, admin):
    invitation = await create_invitation(session, admin)

    with pytest.raises(NotFound):
        await invitation_service.accept(session, invitation.token, user_id=4242)


@pytest.mark.unit
@pytest.mark.service
async def test_accept_loses_race_when_status_changed_underneath(session: AsyncSession, admin, monkeypatch):
    """The status write is conditioned on the row still being pending."""
    invitee = await create_user(session, status=UserStatus.pending)
    invitation = await create_invitation(session, admin)

    original_get_by_token = invitation_service.get_by_token

    async def read_then_lose_race(session_, token, **kwargs):
        found = await original_get_by_token(session_, token, **kwargs)
        # A concurrent request accepts the invitation right after this read
        await session_.exec(
            update(Invitation)
            .where(Invitation.id == found.id)
            .values(status=InvitationStatus.accepted)
            .execution_options(synchronize_session=False)
        )
        return found

    monkeypatch.setattr(invitation_service, "get_by_token", read_then_lose_race)

    with pytest.raises(InvitationUnavailable):
        await invitation_service.accept(session, invitation.token, user_id=invitee.id)

    assert invitee.status == UserStatus.pending
