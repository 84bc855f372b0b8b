"""Crew capacity gate.

A crew may hold at most ``simultaneous_limit`` open assignment records. Only
records outside ``TERMINAL_STATUSES`` count as open, no matter how long ago a
terminal record was closed.
"""

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models import AssignmentRecord
from .assignment_rules import TERMINAL_STATUSES


def can_admit(simultaneous_limit: int, open_count: int) -> bool:
    """True iff one more complaint fits: strictly ``open_count < limit``."""
    return open_count < simultaneous_limit


def availability_after(simultaneous_limit: int, open_count: int) -> bool:
    """Availability flag for a crew that holds ``open_count`` open records."""
    return open_count < simultaneous_limit


def count_open_assignments(db: Session, crew_id: int) -> int:
    count = db.query(func.count(AssignmentRecord.id)).filter(
        AssignmentRecord.crew_id == crew_id,
        AssignmentRecord.status.notin_(sorted(TERMINAL_STATUSES)),
    ).scalar()
    return int(count or 0)
