"""
Enrollment status state machine.

PENDING -> ACTIVE -> {COMPLETED, DROPPED, REPEATED, SUSPENDED}; PENDING may also be dropped.
Every non-ACTIVE target is final for the row. A new school year is a new row.
"""
from typing import Dict, FrozenSet

from registrar.core.enums import EnrollmentStatus
from registrar.core.exceptions import ConflictError

ALLOWED_SOURCES: Dict[EnrollmentStatus, FrozenSet[EnrollmentStatus]] = {
    EnrollmentStatus.ACTIVE: frozenset({EnrollmentStatus.PENDING}),
    EnrollmentStatus.COMPLETED: frozenset({EnrollmentStatus.ACTIVE}),
    EnrollmentStatus.REPEATED: frozenset({EnrollmentStatus.ACTIVE}),
    EnrollmentStatus.SUSPENDED: frozenset({EnrollmentStatus.ACTIVE}),
    EnrollmentStatus.DROPPED: frozenset({EnrollmentStatus.ACTIVE, EnrollmentStatus.PENDING}),
}

TERMINAL_STATUSES: FrozenSet[EnrollmentStatus] = frozenset({
    EnrollmentStatus.COMPLETED,
    EnrollmentStatus.DROPPED,
    EnrollmentStatus.REPEATED,
    EnrollmentStatus.SUSPENDED,
})

# Conflict message prefix per target, completed with ": <current status>"
_CONFLICT_MESSAGES: Dict[EnrollmentStatus, str] = {
    EnrollmentStatus.ACTIVE: "Cannot activate enrollment with status",
    EnrollmentStatus.COMPLETED: "Cannot complete enrollment with status",
    EnrollmentStatus.REPEATED: "Cannot mark enrollment as repeated with status",
    EnrollmentStatus.SUSPENDED: "Cannot suspend enrollment with status",
    EnrollmentStatus.DROPPED: "Cannot drop enrollment with status",
}


def can_transition(current: EnrollmentStatus, target: EnrollmentStatus) -> bool:
    return EnrollmentStatus(current) in ALLOWED_SOURCES.get(target, frozenset())


def ensure_transition(current: str, target: EnrollmentStatus) -> None:
    """Raise ConflictError naming the current status when current -> target is not allowed."""
    current_status = EnrollmentStatus(current)
    if not can_transition(current_status, target):
        raise ConflictError(f"{_CONFLICT_MESSAGES[target]}: {current_status.value}")
