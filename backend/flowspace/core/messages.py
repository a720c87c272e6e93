"""User-facing error messages, grouped per resource."""


class AuthMessages:
    UNAUTHORIZED = "Unauthorized"
    FORBIDDEN = "Forbidden"
    INVALID_CREDENTIALS = "Invalid credentials"
    ACCOUNT_NOT_ACTIVE = "Account is not active. Please wait for admin approval."
    EMAIL_REGISTERED = "Email already registered"


class UserMessages:
    NOT_FOUND = "User not found"
    NOT_PENDING = "User is not pending approval"
    CANNOT_MODIFY_MASTER = "Cannot modify master user"
    CANNOT_ASSIGN_MASTER = "Cannot assign master role"
    CANNOT_DEACTIVATE_MASTER = "Cannot deactivate master user"
    CANNOT_DELETE_MASTER = "Cannot delete master user"
    EMAIL_IN_USE = "Email already in use"
    DELETED = "User deleted successfully"


class DivisionMessages:
    NOT_FOUND = "Division not found"
    NAME_REQUIRED = "Name is required"
    NAME_EXISTS = "Division name already exists"
    DELETED = "Division deleted successfully"
    NOT_ASSIGNED = "User not assigned to a division"
    OWN_DIVISION_ONLY = "You can only create resources for your own division"
    INVALID_SCOPE = "Division must be \"general\" or a division id"

    @staticmethod
    def has_members(count: int) -> str:
        return f"Cannot delete division with {count} member(s)"


class BoardMessages:
    NOT_FOUND = "Board not found"
    ACCESS_DENIED = "Access denied to this board"
    DIVISION_REQUIRED = "Division ID required for division boards"
    DIVISION_FILTER_ADMIN_ONLY = "Only admins can filter by division"


class TaskMessages:
    NOT_FOUND = "Task not found"


class IssueMessages:
    NOT_FOUND = "Issue not found"


class CommentMessages:
    NOT_FOUND = "Comment not found"


class CalendarMessages:
    NOT_FOUND = "Calendar not found"
    ACCESS_DENIED = "Access denied to this calendar"
    DIVISION_REQUIRED = "Division ID required for division calendars"
    EVENT_NOT_FOUND = "Event not found"
    INVALID_RANGE = "End date must not be before start date"


class InvitationMessages:
    NOT_FOUND = "Invitation not found"
    USER_ALREADY_ACTIVE = "User already exists and is active"
    ALREADY_SENT = "Invitation already sent to this email"
    USED_OR_EXPIRED = "Invitation already used or expired"
    EXPIRED = "Invitation has expired"
    CREATED = "Invitation created successfully"
    ACCEPTED = "Invitation accepted successfully"
