"""
Tenant context guard: one authorization table and one check per operation entry point.
Pure functions, no I/O.
"""
from enum import Enum
from typing import Dict, FrozenSet, Optional
from uuid import UUID

from registrar.auth.schemas import ServiceContext
from registrar.core.enums import Role
from registrar.core.exceptions import ForbiddenError


class Action(str, Enum):
    ENROLLMENT_READ = "enrollment:read"
    ENROLLMENT_CREATE = "enrollment:create"
    ENROLLMENT_UPDATE = "enrollment:update"
    STUDENT_PROMOTE = "student:promote"
    STUDENT_IMPORT = "student:import"


_ADMINS = frozenset({Role.SUPER_ADMIN, Role.ADMIN})

PERMISSIONS: Dict[Action, FrozenSet[Role]] = {
    Action.ENROLLMENT_READ: _ADMINS | {Role.TEACHER},
    Action.ENROLLMENT_CREATE: _ADMINS,
    Action.ENROLLMENT_UPDATE: _ADMINS,
    Action.STUDENT_PROMOTE: _ADMINS,
    Action.STUDENT_IMPORT: _ADMINS,
}

_DENIED_MESSAGES: Dict[Action, str] = {
    Action.ENROLLMENT_READ: "Insufficient permissions to view enrollments",
    Action.ENROLLMENT_CREATE: "Only admins can enroll students",
    Action.ENROLLMENT_UPDATE: "Only admins can update enrollments",
    Action.STUDENT_PROMOTE: "Only admins can promote students",
    Action.STUDENT_IMPORT: "User does not have admin privileges",
}


def is_allowed(role: Optional[str], action: Action) -> bool:
    try:
        role = Role(role)
    except ValueError:
        return False
    return role in PERMISSIONS.get(action, frozenset())


def authorize(ctx: ServiceContext, school_id: UUID, action: Action) -> None:
    """Raise ForbiddenError unless ctx belongs to school_id and its role may perform action."""
    if ctx.school_id is None:
        raise ForbiddenError("User must be associated with a school")
    if ctx.school_id != school_id:
        raise ForbiddenError("Cannot access records of another school")
    if not is_allowed(ctx.role, action):
        raise ForbiddenError(_DENIED_MESSAGES[action])
