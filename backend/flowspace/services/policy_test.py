"""Tests for the role policy.

Tests cover:
- The deactivate and delete matrices over every caller and target role
- Update rules around master accounts
- Division deletion and scoped resource creation
- Ownership overrides
- Translation of denials into API errors

Uses SimpleNamespace stand-ins for user rows.
"""

from types import SimpleNamespace

import pytest

from flowspace.core.errors import Conflict, Forbidden
from flowspace.core.messages import AuthMessages, DivisionMessages, UserMessages
from flowspace.models.scope import VisibilityType
from flowspace.models.user import UserRole, UserStatus
from flowspace.services.policy import (
    Action,
    Caller,
    DenialKind,
    Target,
    can_perform,
    ensure_allowed,
)

ALL_ROLES = [UserRole.user, UserRole.admin, UserRole.master]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_user(user_id: int = 1, role: UserRole = UserRole.user, division_id: int | None = None) -> SimpleNamespace:
    return SimpleNamespace(id=user_id, role=role, division_id=division_id)


def _caller(role: UserRole = UserRole.user, user_id: int = 1, division_id: int | None = None) -> Caller:
    return Caller.from_user(_make_user(user_id=user_id, role=role, division_id=division_id))


# ---------------------------------------------------------------------------
# Caller
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_caller_from_user_copies_identity_role_and_division():
    caller = Caller.from_user(_make_user(user_id=7, role=UserRole.admin, division_id=3))

    assert caller == Caller(user_id=7, role=UserRole.admin, division_id=3)
    assert caller.is_privileged is True
    assert caller.is_master is False


@pytest.mark.unit
@pytest.mark.parametrize(
    ("role", "privileged", "master"),
    [
        (UserRole.user, False, False),
        (UserRole.admin, True, False),
        (UserRole.master, True, True),
    ],
)
def test_caller_privilege_flags(role, privileged, master):
    caller = _caller(role)
    assert caller.is_privileged is privileged
    assert caller.is_master is master


# ---------------------------------------------------------------------------
# User lifecycle matrices
# ---------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.parametrize("caller_role", ALL_ROLES)
@pytest.mark.parametrize("target_role", ALL_ROLES)
def test_deactivate_matrix(caller_role, target_role):
    decision = can_perform(_caller(caller_role), Action.deactivate_user, Target(role=target_role))

    expected = caller_role in (UserRole.admin, UserRole.master) and target_role != UserRole.master
    assert decision.allowed is expected


@pytest.mark.unit
@pytest.mark.parametrize("caller_role", [UserRole.admin, UserRole.master])
def test_deactivating_master_is_a_conflict(caller_role):
    decision = can_perform(_caller(caller_role), Action.deactivate_user, Target(role=UserRole.master))

    assert decision.kind == DenialKind.conflict
    assert decision.reason == UserMessages.CANNOT_DEACTIVATE_MASTER


@pytest.mark.unit
def test_regular_user_cannot_deactivate_anyone():
    decision = can_perform(_caller(UserRole.user), Action.deactivate_user, Target(role=UserRole.user))

    assert decision.kind == DenialKind.forbidden
    assert decision.reason == AuthMessages.FORBIDDEN


@pytest.mark.unit
@pytest.mark.parametrize("caller_role", ALL_ROLES)
@pytest.mark.parametrize("target_role", ALL_ROLES)
def test_delete_matrix(caller_role, target_role):
    decision = can_perform(_caller(caller_role), Action.delete_user, Target(role=target_role))

    expected = caller_role == UserRole.master and target_role != UserRole.master
    assert decision.allowed is expected
    if not decision.allowed:
        assert decision.kind == DenialKind.forbidden


@pytest.mark.unit
def test_master_cannot_delete_another_master():
    decision = can_perform(_caller(UserRole.master), Action.delete_user, Target(role=UserRole.master))
    assert decision.reason == UserMessages.CANNOT_DELETE_MASTER


# ---------------------------------------------------------------------------
# User updates
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_regular_user_cannot_update_users():
    decision = can_perform(_caller(UserRole.user), Action.update_user, Target(role=UserRole.user))
    assert decision.allowed is False
    assert decision.kind == DenialKind.forbidden


@pytest.mark.unit
def test_admin_updates_regular_user():
    decision = can_perform(
        _caller(UserRole.admin),
        Action.update_user,
        Target(role=UserRole.user, assigns_role=UserRole.admin, resulting_status=UserStatus.active),
    )
    assert decision.allowed is True


@pytest.mark.unit
def test_admin_cannot_touch_master_account():
    decision = can_perform(_caller(UserRole.admin), Action.update_user, Target(role=UserRole.master))

    assert decision.kind == DenialKind.forbidden
    assert decision.reason == UserMessages.CANNOT_MODIFY_MASTER


@pytest.mark.unit
def test_admin_cannot_assign_master_role():
    decision = can_perform(
        _caller(UserRole.admin),
        Action.update_user,
        Target(role=UserRole.user, assigns_role=UserRole.master),
    )

    assert decision.kind == DenialKind.forbidden
    assert decision.reason == UserMessages.CANNOT_ASSIGN_MASTER


@pytest.mark.unit
def test_master_may_promote_and_edit_masters():
    master = _caller(UserRole.master)

    assert can_perform(master, Action.update_user, Target(role=UserRole.user, assigns_role=UserRole.master)).allowed
    assert can_perform(master, Action.update_user, Target(role=UserRole.master)).allowed


@pytest.mark.unit
@pytest.mark.parametrize(
    "target",
    [
        Target(role=UserRole.master, resulting_status=UserStatus.inactive),
        Target(role=UserRole.admin, assigns_role=UserRole.master, resulting_status=UserStatus.inactive),
    ],
)
def test_update_cannot_leave_master_inactive(target):
    decision = can_perform(_caller(UserRole.master), Action.update_user, target)

    assert decision.kind == DenialKind.conflict
    assert decision.reason == UserMessages.CANNOT_DEACTIVATE_MASTER


@pytest.mark.unit
def test_master_cannot_be_demoted_and_deactivated_at_once():
    decision = can_perform(
        _caller(UserRole.master),
        Action.update_user,
        Target(role=UserRole.master, assigns_role=UserRole.user, resulting_status=UserStatus.inactive),
    )

    assert decision.kind == DenialKind.conflict
    assert decision.reason == UserMessages.CANNOT_DEACTIVATE_MASTER


@pytest.mark.unit
def test_demoted_master_may_be_deactivated_afterwards():
    decision = can_perform(
        _caller(UserRole.master),
        Action.update_user,
        Target(role=UserRole.user, resulting_status=UserStatus.inactive),
    )
    assert decision.allowed is True


# ---------------------------------------------------------------------------
# Privileged-only actions
# ---------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.parametrize(
    "action",
    [
        Action.list_users,
        Action.approve_user,
        Action.create_division,
        Action.update_division,
        Action.list_invitations,
        Action.create_invitation,
    ],
)
@pytest.mark.parametrize("role", ALL_ROLES)
def test_privileged_actions(action, role):
    decision = can_perform(_caller(role), action)
    assert decision.allowed is (role != UserRole.user)


# ---------------------------------------------------------------------------
# Divisions
# ---------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.parametrize("role", [UserRole.user, UserRole.admin])
def test_only_master_deletes_divisions(role):
    decision = can_perform(_caller(role), Action.delete_division, Target(member_count=0))
    assert decision.kind == DenialKind.forbidden


@pytest.mark.unit
def test_division_with_members_cannot_be_deleted():
    decision = can_perform(_caller(UserRole.master), Action.delete_division, Target(member_count=3))

    assert decision.kind == DenialKind.conflict
    assert decision.reason == DivisionMessages.has_members(3)
    assert decision.reason == "Cannot delete division with 3 member(s)"


@pytest.mark.unit
def test_empty_division_can_be_deleted_by_master():
    assert can_perform(_caller(UserRole.master), Action.delete_division, Target(member_count=0)).allowed


# ---------------------------------------------------------------------------
# Scoped resource creation
# ---------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.parametrize("scope", [VisibilityType.general, VisibilityType.personal])
def test_anyone_creates_general_and_personal_resources(scope):
    decision = can_perform(_caller(UserRole.user), Action.create_scoped_resource, Target(scope=scope))
    assert decision.allowed is True


@pytest.mark.unit
def test_user_creates_division_resource_for_own_division():
    caller = _caller(UserRole.user, division_id=4)
    decision = can_perform(
        caller,
        Action.create_scoped_resource,
        Target(scope=VisibilityType.division, division_id=4),
    )
    assert decision.allowed is True


@pytest.mark.unit
def test_user_cannot_create_for_other_division():
    caller = _caller(UserRole.user, division_id=4)
    decision = can_perform(
        caller,
        Action.create_scoped_resource,
        Target(scope=VisibilityType.division, division_id=5),
    )

    assert decision.kind == DenialKind.forbidden
    assert decision.reason == DivisionMessages.OWN_DIVISION_ONLY


@pytest.mark.unit
def test_user_without_division_cannot_create_division_resource():
    decision = can_perform(
        _caller(UserRole.user),
        Action.create_scoped_resource,
        Target(scope=VisibilityType.division, division_id=5),
    )

    assert decision.kind == DenialKind.conflict
    assert decision.reason == DivisionMessages.NOT_ASSIGNED


@pytest.mark.unit
@pytest.mark.parametrize("role", [UserRole.admin, UserRole.master])
def test_admins_create_for_any_division(role):
    decision = can_perform(
        _caller(role, division_id=None),
        Action.create_scoped_resource,
        Target(scope=VisibilityType.division, division_id=9),
    )
    assert decision.allowed is True


# ---------------------------------------------------------------------------
# Ownership
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_owner_may_modify():
    assert can_perform(_caller(user_id=5), Action.modify_owned, Target(owner_id=5)).allowed


@pytest.mark.unit
def test_non_owner_may_not_modify():
    decision = can_perform(_caller(user_id=5), Action.modify_owned, Target(owner_id=6))
    assert decision.kind == DenialKind.forbidden


@pytest.mark.unit
def test_edit_grant_allows_modification():
    assert can_perform(_caller(user_id=5), Action.modify_owned, Target(owner_id=6, can_edit=True)).allowed


@pytest.mark.unit
def test_orphaned_resource_only_modifiable_by_admins():
    assert not can_perform(_caller(user_id=5), Action.modify_owned, Target(owner_id=None)).allowed
    assert can_perform(_caller(UserRole.admin), Action.modify_owned, Target(owner_id=None)).allowed


@pytest.mark.unit
@pytest.mark.parametrize("role", [UserRole.admin, UserRole.master])
def test_admins_override_ownership(role):
    assert can_perform(_caller(role, user_id=1), Action.modify_owned, Target(owner_id=2)).allowed


# ---------------------------------------------------------------------------
# ensure_allowed
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_ensure_allowed_passes_silently():
    ensure_allowed(_caller(UserRole.admin), Action.list_users)


@pytest.mark.unit
def test_ensure_allowed_raises_forbidden():
    with pytest.raises(Forbidden) as exc_info:
        ensure_allowed(_caller(UserRole.user), Action.list_users)

    assert exc_info.value.status_code == 403
    assert exc_info.value.message == AuthMessages.FORBIDDEN


@pytest.mark.unit
def test_ensure_allowed_raises_conflict_with_400():
    with pytest.raises(Conflict) as exc_info:
        ensure_allowed(_caller(UserRole.admin), Action.deactivate_user, Target(role=UserRole.master))

    assert exc_info.value.status_code == 400
    assert exc_info.value.message == UserMessages.CANNOT_DEACTIVATE_MASTER


@pytest.mark.unit
def test_denied_master_action_is_logged(caplog):
    with caplog.at_level("WARNING", logger="flowspace.services.policy"):
        with pytest.raises(Forbidden):
            ensure_allowed(_caller(UserRole.master, user_id=3), Action.delete_user, Target(role=UserRole.master))

    assert "Denied delete_user on master account for user 3" in caplog.text
