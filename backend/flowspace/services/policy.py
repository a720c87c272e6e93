"""Role policy: decide whether a caller may perform an action on a target.

The checks here are pure. They take the caller as re-read from the database
for the current request and a small description of the target, and return a
``Decision``. ``ensure_allowed`` turns a denial into the matching API error.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Optional

from flowspace.core.errors import Conflict, Forbidden
from flowspace.core.messages import AuthMessages, DivisionMessages, UserMessages
from flowspace.models.scope import VisibilityType
from flowspace.models.user import PRIVILEGED_ROLES, User, UserRole, UserStatus

logger = logging.getLogger(__name__)


class Action(str, Enum):
    list_users = "list_users"
    approve_user = "approve_user"
    deactivate_user = "deactivate_user"
    update_user = "update_user"
    delete_user = "delete_user"
    create_division = "create_division"
    update_division = "update_division"
    delete_division = "delete_division"
    list_invitations = "list_invitations"
    create_invitation = "create_invitation"
    create_scoped_resource = "create_scoped_resource"
    modify_owned = "modify_owned"


class DenialKind(str, Enum):
    forbidden = "forbidden"
    conflict = "conflict"


@dataclass(frozen=True)
class Caller:
    user_id: int
    role: UserRole
    division_id: Optional[int] = None

    @classmethod
    def from_user(cls, user: User) -> "Caller":
        return cls(user_id=user.id, role=user.role, division_id=user.division_id)

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES

    @property
    def is_master(self) -> bool:
        return self.role == UserRole.master


@dataclass(frozen=True)
class Target:
    """What the action is aimed at. Only the fields an action reads matter."""

    role: Optional[UserRole] = None
    assigns_role: Optional[UserRole] = None
    resulting_status: Optional[UserStatus] = None
    owner_id: Optional[int] = None
    can_edit: bool = False
    member_count: int = 0
    scope: Optional[VisibilityType] = None
    division_id: Optional[int] = None


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None
    kind: Optional[DenialKind] = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def forbid(cls, reason: str = AuthMessages.FORBIDDEN) -> "Decision":
        return cls(allowed=False, reason=reason, kind=DenialKind.forbidden)

    @classmethod
    def conflict(cls, reason: str) -> "Decision":
        return cls(allowed=False, reason=reason, kind=DenialKind.conflict)


_PRIVILEGED_ACTIONS = frozenset(
    {
        Action.list_users,
        Action.approve_user,
        Action.create_division,
        Action.update_division,
        Action.list_invitations,
        Action.create_invitation,
    }
)


def _deactivate_user(caller: Caller, target: Target) -> Decision:
    if not caller.is_privileged:
        return Decision.forbid()
    if target.role == UserRole.master:
        return Decision.conflict(UserMessages.CANNOT_DEACTIVATE_MASTER)
    return Decision.allow()


def _update_user(caller: Caller, target: Target) -> Decision:
    if not caller.is_privileged:
        return Decision.forbid()
    if not caller.is_master:
        if target.role == UserRole.master:
            return Decision.forbid(UserMessages.CANNOT_MODIFY_MASTER)
        if target.assigns_role == UserRole.master:
            return Decision.forbid(UserMessages.CANNOT_ASSIGN_MASTER)
    # a master stays active across the request, whatever role it ends up with
    touches_master = UserRole.master in (target.role, target.assigns_role)
    if touches_master and target.resulting_status == UserStatus.inactive:
        return Decision.conflict(UserMessages.CANNOT_DEACTIVATE_MASTER)
    return Decision.allow()


def _delete_user(caller: Caller, target: Target) -> Decision:
    if not caller.is_master:
        return Decision.forbid()
    if target.role == UserRole.master:
        return Decision.forbid(UserMessages.CANNOT_DELETE_MASTER)
    return Decision.allow()


def _delete_division(caller: Caller, target: Target) -> Decision:
    if not caller.is_master:
        return Decision.forbid()
    if target.member_count > 0:
        return Decision.conflict(DivisionMessages.has_members(target.member_count))
    return Decision.allow()


def _create_scoped_resource(caller: Caller, target: Target) -> Decision:
    if target.scope != VisibilityType.division or caller.is_privileged:
        return Decision.allow()
    if caller.division_id is None:
        return Decision.conflict(DivisionMessages.NOT_ASSIGNED)
    if target.division_id != caller.division_id:
        return Decision.forbid(DivisionMessages.OWN_DIVISION_ONLY)
    return Decision.allow()


def _modify_owned(caller: Caller, target: Target) -> Decision:
    if caller.is_privileged:
        return Decision.allow()
    if target.owner_id is not None and target.owner_id == caller.user_id:
        return Decision.allow()
    if target.can_edit:
        return Decision.allow()
    return Decision.forbid()


_RULES = {
    Action.deactivate_user: _deactivate_user,
    Action.update_user: _update_user,
    Action.delete_user: _delete_user,
    Action.delete_division: _delete_division,
    Action.create_scoped_resource: _create_scoped_resource,
    Action.modify_owned: _modify_owned,
}


def can_perform(caller: Caller, action: Action, target: Target | None = None) -> Decision:
    target = target or Target()
    if action in _PRIVILEGED_ACTIONS:
        return Decision.allow() if caller.is_privileged else Decision.forbid()
    return _RULES[action](caller, target)


def ensure_allowed(caller: Caller, action: Action, target: Target | None = None) -> None:
    decision = can_perform(caller, action, target)
    if decision.allowed:
        return
    if target is not None and target.role == UserRole.master:
        logger.warning(
            "Denied %s on master account for user %s: %s",
            action.value,
            caller.user_id,
            decision.reason,
        )
    if decision.kind == DenialKind.conflict:
        raise Conflict(decision.reason)
    raise Forbidden(decision.reason)
