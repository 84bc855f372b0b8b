"""Crew, crew message and complaint type use-cases."""
from __future__ import annotations

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..domain_errors import DomainError, NotFoundError
from ..models import AssignmentRecord, ComplaintType, Crew, CrewMessage
from ..schemas import ComplaintTypeCreate, CrewCreate, CrewMessageCreate, CrewUpdate
from .assignment_transitions import get_crew_for_update, refresh_crew_availability


def get_crew_or_404(*, db: Session, crew_id: int) -> Crew:
    crew = db.query(Crew).filter(Crew.id == crew_id).first()
    if not crew:
        raise NotFoundError(code="CREW_NOT_FOUND", message="Crew not found", details={"crewId": crew_id})
    return crew


def _get_complaint_type_or_404(*, db: Session, type_id: int) -> ComplaintType:
    complaint_type = db.query(ComplaintType).filter(ComplaintType.id == type_id).first()
    if not complaint_type:
        raise NotFoundError(
            code="COMPLAINT_TYPE_NOT_FOUND",
            message=f"Complaint type {type_id} not found",
            details={"complaintTypeId": type_id},
        )
    return complaint_type


def _resolve_complaint_types(*, db: Session, type_ids: list[int]) -> list[ComplaintType]:
    if not type_ids:
        return []
    found = db.query(ComplaintType).filter(ComplaintType.id.in_(type_ids)).all()
    missing = sorted(set(type_ids) - {item.id for item in found})
    if missing:
        raise NotFoundError(
            code="COMPLAINT_TYPE_NOT_FOUND",
            message="Complaint type not found",
            details={"complaintTypeIds": missing},
        )
    return found


def list_crews_use_case(*, db: Session) -> list[Crew]:
    return db.query(Crew).order_by(Crew.id).all()


def list_crews_by_type_use_case(*, db: Session, type_id: int) -> list[Crew]:
    crews = db.query(Crew).filter(Crew.complaint_types.any(ComplaintType.id == type_id)).order_by(Crew.id).all()
    if not crews:
        raise NotFoundError(
            code="CREW_NOT_FOUND",
            message="No crews found for this complaint type",
            details={"complaintTypeId": type_id},
        )
    return crews


def create_crew_use_case(*, db: Session, data: CrewCreate) -> Crew:
    crew = Crew(
        name=data.name,
        phone=data.phone,
        simultaneous_limit=data.simultaneous_limit,
        is_available=True,
        assigned_complaint_ids=[],
        complaint_types=_resolve_complaint_types(db=db, type_ids=data.complaint_type_ids),
    )
    db.add(crew)
    db.commit()
    db.refresh(crew)
    return crew


def update_crew_use_case(*, db: Session, crew_id: int, data: CrewUpdate) -> Crew:
    """Partial update; only fields present in the request change.

    The crew row is locked like in the assignment transitions, so a limit
    change and a concurrent assignment cannot both recompute availability.
    """
    fields = data.model_dump(exclude_unset=True)
    try:
        crew = get_crew_for_update(db=db, crew_id=crew_id)

        if "name" in fields and data.name is not None:
            crew.name = data.name
        if "phone" in fields:
            crew.phone = data.phone
        if "simultaneous_limit" in fields and data.simultaneous_limit is not None:
            crew.simultaneous_limit = data.simultaneous_limit
            refresh_crew_availability(db=db, crew=crew)
        if "complaint_type_ids" in fields and data.complaint_type_ids is not None:
            crew.complaint_types = _resolve_complaint_types(db=db, type_ids=data.complaint_type_ids)

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(crew)
    return crew


def delete_crew_use_case(*, db: Session, crew_id: int) -> None:
    """Delete a crew that never held an assignment (records are never deleted)."""
    crew = get_crew_or_404(db=db, crew_id=crew_id)
    has_records = db.query(AssignmentRecord.id).filter(AssignmentRecord.crew_id == crew.id).first()
    if has_records:
        raise DomainError(
            code="CREW_HAS_ASSIGNMENTS",
            http_status=409,
            message="Crew has assignment records and cannot be deleted",
            details={"crewId": crew.id},
        )
    db.delete(crew)
    db.commit()


def list_crew_messages_use_case(*, db: Session, crew_id: int) -> list[CrewMessage]:
    get_crew_or_404(db=db, crew_id=crew_id)
    return db.query(CrewMessage).filter(
        CrewMessage.crew_id == crew_id,
    ).order_by(CrewMessage.created_at.asc(), CrewMessage.id.asc()).all()


def post_crew_message_use_case(*, db: Session, crew_id: int, data: CrewMessageCreate) -> CrewMessage:
    get_crew_or_404(db=db, crew_id=crew_id)
    message = CrewMessage(crew_id=crew_id, content=data.content, sender=data.sender, is_read=False)
    db.add(message)
    db.commit()
    db.refresh(message)
    return message


def mark_crew_messages_read_use_case(*, db: Session, crew_id: int) -> int:
    get_crew_or_404(db=db, crew_id=crew_id)
    updated = db.query(CrewMessage).filter(
        CrewMessage.crew_id == crew_id,
        CrewMessage.is_read == False,  # noqa: E712
    ).update({"is_read": True}, synchronize_session=False)
    db.commit()
    return updated


def list_complaint_types_use_case(*, db: Session) -> list[ComplaintType]:
    return db.query(ComplaintType).order_by(ComplaintType.name).all()


def _commit_complaint_type(*, db: Session, complaint_type: ComplaintType) -> ComplaintType:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise DomainError(
            code="COMPLAINT_TYPE_DUPLICATE",
            http_status=409,
            message="A complaint type with this name already exists",
        ) from exc
    db.refresh(complaint_type)
    return complaint_type


def create_complaint_type_use_case(*, db: Session, data: ComplaintTypeCreate) -> ComplaintType:
    complaint_type = ComplaintType(name=data.name)
    db.add(complaint_type)
    return _commit_complaint_type(db=db, complaint_type=complaint_type)


def rename_complaint_type_use_case(*, db: Session, type_id: int, data: ComplaintTypeCreate) -> ComplaintType:
    complaint_type = _get_complaint_type_or_404(db=db, type_id=type_id)
    complaint_type.name = data.name
    return _commit_complaint_type(db=db, complaint_type=complaint_type)


def delete_complaint_type_use_case(*, db: Session, type_id: int) -> None:
    complaint_type = _get_complaint_type_or_404(db=db, type_id=type_id)
    db.delete(complaint_type)
    db.commit()
