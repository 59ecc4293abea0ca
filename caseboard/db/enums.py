"""Enum definitions for application constants."""

from enum import Enum


class Role(str, Enum):
    """
    User roles with increasing privilege levels.

    - CLIENT: External requester, sees only the cases they submitted
    - MEMBER: Internal staff working the boards
    - ADMIN: Board administration
    - SUPER_USER: Platform administration
    """

    CLIENT = "client"
    MEMBER = "member"
    ADMIN = "admin"
    SUPER_USER = "super_user"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


ROLES_STAFF = {Role.MEMBER, Role.ADMIN, Role.SUPER_USER}
ROLES_CAN_MANAGE_BOARDS = {Role.ADMIN, Role.SUPER_USER}


class CaseType(str, Enum):
    """Kind of work item a case tracks."""

    ORDER = "ORDER"
    QUOTE = "QUOTE"
    SR = "SR"  # Service request
    QUESTION = "QUESTION"


class CasePriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class EmailDirection(str, Enum):
    INBOUND = "in"
    OUTBOUND = "out"


class EscalationState(str, Enum):
    """
    Escalation state derived from stored link fields.

    - NORMAL: no link in either direction
    - ESCALATED_ORIGINAL: case points at its escalated copy
    - ESCALATED_COPY: another case points at this one
    """

    NORMAL = "normal"
    ESCALATED_ORIGINAL = "escalated_original"
    ESCALATED_COPY = "escalated_copy"


class RouteStatus(str, Enum):
    ACCEPTED = "accepted"
    IGNORED = "ignored"


class RouteIgnoreReason(str, Enum):
    NO_SLUG = "no_slug"
    CASE_NOT_FOUND = "case_not_found"
    DUPLICATE = "duplicate"


DEFAULT_CASE_TYPE = CaseType.ORDER.value
DEFAULT_CASE_PRIORITY = CasePriority.MEDIUM.value

# Lazily created review lanes
ESCALATIONS_COLUMN_NAME = "Escalations"
ESCALATIONS_COLUMN_COLOR = "#ef4444"
DEESCALATED_COLUMN_NAME = "De-escalated"
DEESCALATED_COLUMN_COLOR = "#10b981"

DEFAULT_BOARD_COLOR = "#3b82f6"
DEFAULT_BOARD_COLUMNS = ["To Do", "In Progress", "Done"]
