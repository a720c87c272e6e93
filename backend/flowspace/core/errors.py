"""Error taxonomy shared by services and the API layer.

Every error carries the HTTP status it is reported with. The API renders
all of them as ``{"error": "<message>"}``.
"""

from fastapi import status


class FlowspaceError(Exception):
    """Base error for request-level failures."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class Unauthenticated(FlowspaceError):
    """No valid session."""

    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(FlowspaceError):
    """Authenticated, but the policy denies the action."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFound(FlowspaceError):
    """An id does not resolve."""

    status_code = status.HTTP_404_NOT_FOUND


class InvalidInput(FlowspaceError):
    """Missing field, bad enum value or duplicate unique key."""

    status_code = status.HTTP_400_BAD_REQUEST


class Conflict(FlowspaceError):
    """A state-machine precondition does not hold."""

    status_code = status.HTTP_400_BAD_REQUEST
