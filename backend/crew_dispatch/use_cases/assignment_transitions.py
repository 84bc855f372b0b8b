"""Complaint assignment lifecycle use-cases used by assignment router endpoints.

Every transition commits its local write (record, crew, crew message and a
pending status-sync row) in one transaction before the Reclamos API is called.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from sqlalchemy.orm import Session

from ..config import settings
from ..domain_errors import CapacityExceededError, DomainError, NotFoundError
from ..models import AssignmentRecord, Crew, CrewMessage
from ..schemas import ComplaintSnapshot
from ..services.assignment_rules import AssignmentStatus, apply_status, now_utc
from ..services.capacity import availability_after, can_admit, count_open_assignments
from .status_sync import StatusSyncClient, deliver_status_sync, enqueue_status_sync

logger = logging.getLogger(__name__)

SYSTEM_SENDER = "Sistema"
CREW_SENDER = "Cuadrilla"


@dataclass(frozen=True)
class NotificationRequest:
    """Complainant notification to dispatch once a transition fully succeeded.

    ``phone`` is None when the complainant must be looked up in the Reclamos API.
    """

    complaint_id: int
    template: str
    phone: str | None = None
    complainant_name: str | None = None


@dataclass(frozen=True)
class AssignmentHooks:
    sync_client: StatusSyncClient
    dispatch_notification: Callable[[NotificationRequest], None] | None = None
    now_utc: Callable[[], datetime] = now_utc


@dataclass(frozen=True)
class AssignmentOutcome:
    crew: Crew
    record: AssignmentRecord


def get_crew_for_update(*, db: Session, crew_id: int) -> Crew:
    crew = db.query(Crew).filter(Crew.id == crew_id).with_for_update().first()
    if not crew:
        raise NotFoundError(
            code="CREW_NOT_FOUND",
            message="Crew not found",
            details={"crewId": crew_id},
        )
    return crew


def _get_record_for_update(*, db: Session, record_id: int) -> AssignmentRecord:
    record = db.query(AssignmentRecord).filter(AssignmentRecord.id == record_id).with_for_update().first()
    if not record:
        raise NotFoundError(
            code="ASSIGNMENT_RECORD_NOT_FOUND",
            message="Assignment record not found",
            details={"recordId": record_id},
        )
    return record


def refresh_crew_availability(*, db: Session, crew: Crew) -> bool:
    """Recompute the availability flag from committed-plus-pending records."""
    db.flush()
    crew.is_available = availability_after(crew.simultaneous_limit, count_open_assignments(db, crew.id))
    return crew.is_available


def _dispatch_notification(hooks: AssignmentHooks, request: NotificationRequest) -> None:
    if hooks.dispatch_notification is None:
        return
    try:
        hooks.dispatch_notification(request)
    except Exception:
        logger.exception("assignment.notify complaint=%s dispatch failed", request.complaint_id)


def assign_complaint_use_case(
    *,
    db: Session,
    complaint_id: int,
    crew_id: int,
    snapshot: ComplaintSnapshot,
    notify: bool,
    hooks: AssignmentHooks,
) -> AssignmentOutcome:
    """Assign a complaint to a crew if the crew still has a free slot."""
    if not complaint_id:
        raise DomainError(
            code="COMPLAINT_ID_REQUIRED",
            http_status=400,
            message="complaint_id must not be null",
        )

    try:
        # Crew row lock serializes concurrent assignments to the same crew.
        crew = get_crew_for_update(db=db, crew_id=crew_id)
        open_count = count_open_assignments(db, crew.id)
        if not can_admit(crew.simultaneous_limit, open_count):
            raise CapacityExceededError(
                crew_id=crew.id,
                open_count=open_count,
                limit=crew.simultaneous_limit,
            )

        now = hooks.now_utc()
        record = AssignmentRecord(
            complaint_id=complaint_id,
            crew_id=crew.id,
            status=AssignmentStatus.ASIGNADO.value,
            complaint_type=snapshot.complaint_type,
            complaint_date=snapshot.complaint_date,
            priority=snapshot.priority,
            detail=snapshot.detail,
            address=snapshot.address,
            neighborhood=snapshot.neighborhood,
            registered_at=now,
            assigned_at=now,
        )
        db.add(record)
        db.flush()

        crew.is_available = availability_after(crew.simultaneous_limit, open_count + 1)
        crew.last_assigned_at = now
        crew.assigned_complaint_ids = [*(crew.assigned_complaint_ids or []), complaint_id]

        db.add(
            CrewMessage(
                crew_id=crew.id,
                content=f"Complaint #{complaint_id} has been assigned to the crew.",
                sender=SYSTEM_SENDER,
            )
        )
        entry = enqueue_status_sync(
            db=db,
            record=record,
            status=AssignmentStatus.ASIGNADO.value,
            crew_id=crew.id,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "assignment.assign complaint=%s crew=%s record=%s open=%s/%s",
        complaint_id,
        crew.id,
        record.id,
        open_count + 1,
        crew.simultaneous_limit,
    )

    deliver_status_sync(db=db, entry=entry, client=hooks.sync_client)

    if notify and snapshot.complainant_phone:
        _dispatch_notification(
            hooks,
            NotificationRequest(
                complaint_id=complaint_id,
                template=settings.WHATSAPP_TEMPLATE_ASSIGNED,
                phone=snapshot.complainant_phone,
                complainant_name=snapshot.complainant_name,
            ),
        )

    return AssignmentOutcome(crew=crew, record=record)


def mark_in_progress_use_case(
    *,
    db: Session,
    record_id: int,
    notify: bool,
    hooks: AssignmentHooks,
) -> AssignmentRecord:
    """Crew accepted the complaint. No capacity re-check: the slot is already held."""
    try:
        record = _get_record_for_update(db=db, record_id=record_id)
        apply_status(record, next_status=AssignmentStatus.EN_PROCESO, at=hooks.now_utc())

        db.add(
            CrewMessage(
                crew_id=record.crew_id,
                content=f"Complaint #{record.complaint_id} accepted and in progress.",
                sender=CREW_SENDER,
            )
        )
        entry = enqueue_status_sync(db=db, record=record, status=AssignmentStatus.EN_PROCESO.value)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("assignment.in_progress complaint=%s record=%s", record.complaint_id, record.id)

    deliver_status_sync(db=db, entry=entry, client=hooks.sync_client)

    if notify:
        _dispatch_notification(
            hooks,
            NotificationRequest(
                complaint_id=record.complaint_id,
                template=settings.WHATSAPP_TEMPLATE_IN_PROGRESS,
            ),
        )
    return record


def mark_completed_use_case(
    *,
    db: Session,
    record_id: int,
    notify: bool,
    hooks: AssignmentHooks,
) -> AssignmentRecord:
    """Close the record and free the crew slot in the same transaction."""
    try:
        record = _get_record_for_update(db=db, record_id=record_id)
        apply_status(record, next_status=AssignmentStatus.COMPLETADO, at=hooks.now_utc())

        crew = get_crew_for_update(db=db, crew_id=record.crew_id)
        crew.assigned_complaint_ids = [
            complaint_id
            for complaint_id in (crew.assigned_complaint_ids or [])
            if complaint_id != record.complaint_id
        ]
        refresh_crew_availability(db=db, crew=crew)

        entry = enqueue_status_sync(db=db, record=record, status=AssignmentStatus.COMPLETADO.value)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("assignment.completed complaint=%s record=%s", record.complaint_id, record.id)

    deliver_status_sync(db=db, entry=entry, client=hooks.sync_client)

    if notify:
        _dispatch_notification(
            hooks,
            NotificationRequest(
                complaint_id=record.complaint_id,
                template=settings.WHATSAPP_TEMPLATE_COMPLETED,
            ),
        )
    return record


def list_assignment_records_use_case(*, db: Session, crew_id: int | None = None) -> list[AssignmentRecord]:
    query = db.query(AssignmentRecord)
    if crew_id is not None:
        query = query.filter(AssignmentRecord.crew_id == crew_id)
    return query.order_by(AssignmentRecord.complaint_date.desc(), AssignmentRecord.id.desc()).all()
