"""Domain-level exception primitives with stable machine-readable codes."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(eq=False)
class DomainError(Exception):
    """Use-case level error with stable code and HTTP mapping."""

    code: str
    http_status: int
    message: str
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        return self.message


class NotFoundError(DomainError):
    """Crew, assignment record or complaint type missing."""

    def __init__(self, *, code: str, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(code=code, http_status=404, message=message, details=details)


class CapacityExceededError(DomainError):
    """Crew already holds as many open complaints as its limit allows."""

    def __init__(self, *, crew_id: int, open_count: int, limit: int) -> None:
        super().__init__(
            code="CREW_CAPACITY_EXCEEDED",
            http_status=400,
            message=(
                "The crew has reached its simultaneous complaint limit "
                "and cannot accept the complaint."
            ),
            details={"crewId": crew_id, "openCount": open_count, "limit": limit},
        )


class InvalidTransitionError(DomainError):
    def __init__(self, *, current_status: str, next_status: str) -> None:
        super().__init__(
            code="ASSIGNMENT_INVALID_TRANSITION",
            http_status=400,
            message=f"Invalid assignment status transition: {current_status} -> {next_status}",
            details={"currentStatus": current_status, "nextStatus": next_status},
        )


class SyncFailedError(DomainError):
    """Local transition committed but the Reclamos API rejected the update.

    ``details["localCommitted"]`` tells callers the local state has already
    changed; a pending outbox row keeps retrying in the background.
    """

    def __init__(self, *, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="STATUS_SYNC_FAILED",
            http_status=500,
            message=message,
            details=details,
        )


class NotificationError(DomainError):
    """Messaging provider failure. Never leaves the notifier."""

    def __init__(self, *, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="NOTIFICATION_FAILED",
            http_status=502,
            message=message,
            details=details,
        )
