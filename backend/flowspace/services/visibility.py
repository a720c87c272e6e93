"""Which boards and calendars a caller may see.

The SQL clauses and ``is_visible`` encode the same rule:

* general resources are visible to everyone,
* personal resources are visible to holders of an access row,
* division resources are visible to admins and masters, and to regular
  users whose current division matches.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.sql.elements import ColumnElement

from flowspace.core.errors import InvalidInput
from flowspace.core.messages import DivisionMessages
from flowspace.models.board import Board, BoardAccess
from flowspace.models.calendar import Calendar, CalendarAccess
from flowspace.models.scope import VisibilityType
from flowspace.models.user import User, UserStatus
from flowspace.services.policy import Caller

GENERAL_SCOPE = "general"


@dataclass(frozen=True)
class DivisionScope:
    """Either the ``general`` family or one concrete division."""

    division_id: Optional[int] = None

    @classmethod
    def general(cls) -> "DivisionScope":
        return cls(division_id=None)

    @classmethod
    def of(cls, division_id: int) -> "DivisionScope":
        return cls(division_id=division_id)

    @classmethod
    def parse(cls, value: str | int) -> "DivisionScope":
        if isinstance(value, int):
            return cls.of(value)
        if value == GENERAL_SCOPE:
            return cls.general()
        try:
            return cls.of(int(value))
        except ValueError as exc:
            raise InvalidInput(DivisionMessages.INVALID_SCOPE) from exc

    @property
    def is_general(self) -> bool:
        return self.division_id is None


def _visibility_clause(caller: Caller, model, access_model, access_fk) -> ColumnElement[bool]:
    grant = (
        select(access_model.user_id)
        .where(access_fk == model.id, access_model.user_id == caller.user_id)
        .exists()
    )
    clauses = [
        model.type == VisibilityType.general,
        and_(model.type == VisibilityType.personal, grant),
    ]
    if caller.is_privileged:
        clauses.append(model.type == VisibilityType.division)
    elif caller.division_id is not None:
        clauses.append(
            and_(model.type == VisibilityType.division, model.division_id == caller.division_id)
        )
    return or_(*clauses)


def board_visibility_clause(caller: Caller) -> ColumnElement[bool]:
    return _visibility_clause(caller, Board, BoardAccess, BoardAccess.board_id)


def calendar_visibility_clause(caller: Caller) -> ColumnElement[bool]:
    return _visibility_clause(caller, Calendar, CalendarAccess, CalendarAccess.calendar_id)


def is_visible(
    caller: Caller,
    resource_type: VisibilityType,
    division_id: Optional[int],
    grantee_ids: Iterable[int] = (),
) -> bool:
    if resource_type == VisibilityType.general:
        return True
    if resource_type == VisibilityType.personal:
        return caller.user_id in set(grantee_ids)
    if caller.is_privileged:
        return True
    return caller.division_id is not None and caller.division_id == division_id


def scope_clause(model, scope: DivisionScope) -> ColumnElement[bool]:
    """Restrict boards or calendars to one family picked by a ``DivisionScope``."""
    if scope.is_general:
        return model.type == VisibilityType.general
    return and_(model.type == VisibilityType.division, model.division_id == scope.division_id)


def member_clause(scope: DivisionScope) -> ColumnElement[bool]:
    """Active users reachable from a board in the given scope."""
    active = User.status == UserStatus.active
    if scope.is_general:
        return active
    return and_(active, User.division_id == scope.division_id)
