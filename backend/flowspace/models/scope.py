from enum import Enum


class VisibilityType(str, Enum):
    """Who may see a board or calendar."""

    general = "general"
    division = "division"
    personal = "personal"


# Division id is required for division-scoped rows and forbidden otherwise
DIVISION_SCOPE_CHECK = (
    "(type = 'division' AND division_id IS NOT NULL) "
    "OR (type <> 'division' AND division_id IS NULL)"
)
