"""
Shared test utilities and factories.

Re-exports all factory functions for convenient imports:
    from flowspace.testing import create_user, create_board, get_auth_headers
"""

from flowspace.testing.factories import (
    DEFAULT_PASSWORD,
    create_board,
    create_calendar,
    create_division,
    create_event,
    create_invitation,
    create_issue,
    create_task,
    create_user,
    get_auth_headers,
    get_auth_token,
)

__all__ = [
    "DEFAULT_PASSWORD",
    "create_board",
    "create_calendar",
    "create_division",
    "create_event",
    "create_invitation",
    "create_issue",
    "create_task",
    "create_user",
    "get_auth_headers",
    "get_auth_token",
]
