"""Assignment record status invariants."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from ..domain_errors import InvalidTransitionError


class AssignmentStatus(str, Enum):
    ASIGNADO = "ASIGNADO"
    EN_PROCESO = "EN_PROCESO"
    COMPLETADO = "COMPLETADO"


TERMINAL_STATUSES: frozenset[str] = frozenset({AssignmentStatus.COMPLETADO.value})
OPEN_STATUSES: frozenset[str] = frozenset(
    status.value for status in AssignmentStatus if status.value not in TERMINAL_STATUSES
)

# Forward-only chain: ASIGNADO -> EN_PROCESO -> COMPLETADO.
_ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    AssignmentStatus.ASIGNADO.value: {AssignmentStatus.EN_PROCESO.value},
    AssignmentStatus.EN_PROCESO.value: {AssignmentStatus.COMPLETADO.value},
    AssignmentStatus.COMPLETADO.value: set(),
}

# Timestamp column stamped when a record enters each status.
STATUS_TIMESTAMP_FIELDS: dict[str, str] = {
    AssignmentStatus.ASIGNADO.value: "assigned_at",
    AssignmentStatus.EN_PROCESO.value: "in_process_at",
    AssignmentStatus.COMPLETADO.value: "completed_at",
}


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def normalize_assignment_status(status: str | AssignmentStatus | None) -> str:
    if status is None:
        return AssignmentStatus.ASIGNADO.value
    if isinstance(status, AssignmentStatus):
        return status.value
    return status.strip().upper()


def is_terminal(status: str | AssignmentStatus | None) -> bool:
    return normalize_assignment_status(status) in TERMINAL_STATUSES


def validate_status_transition(*, current_status: str | None, next_status: str | AssignmentStatus) -> str:
    """Return the normalized next status or raise for anything but a forward step."""
    current = normalize_assignment_status(current_status)
    nxt = normalize_assignment_status(next_status)

    if nxt not in _ALLOWED_TRANSITIONS.get(current, set()):
        raise InvalidTransitionError(current_status=current, next_status=nxt)
    return nxt


def apply_status(record, *, next_status: str | AssignmentStatus, at: datetime) -> None:
    """Move the record forward and stamp the matching timestamp exactly once."""
    nxt = validate_status_transition(current_status=record.status, next_status=next_status)
    field = STATUS_TIMESTAMP_FIELDS[nxt]
    if getattr(record, field) is None:
        setattr(record, field, at)
    record.status = nxt
