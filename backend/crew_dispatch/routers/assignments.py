"""Assignment lifecycle endpoints."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..integrations.reclamos_api import ReclamosApiClient, get_reclamos_client
from ..integrations.whatsapp import WhatsAppNotifier, get_notifier
from ..schemas import (
    AssignComplaintRequest,
    AssignComplaintResponse,
    AssignmentRecordResponse,
    CrewResponse,
    TransitionRequest,
)
from ..use_cases.assignment_transitions import (
    AssignmentHooks,
    NotificationRequest,
    assign_complaint_use_case,
    list_assignment_records_use_case,
    mark_completed_use_case,
    mark_in_progress_use_case,
)
from ..use_cases.notifications import send_transition_notification

router = APIRouter(tags=["assignments"])


def get_assignment_hooks(
    background_tasks: BackgroundTasks,
    reclamos_client: ReclamosApiClient = Depends(get_reclamos_client),
    notifier: WhatsAppNotifier = Depends(get_notifier),
) -> AssignmentHooks:
    """Sync inline; notifications run as background tasks after the response."""

    def _dispatch(request: NotificationRequest) -> None:
        background_tasks.add_task(
            send_transition_notification,
            request,
            notifier=notifier,
            reclamos_client=reclamos_client,
        )

    return AssignmentHooks(sync_client=reclamos_client, dispatch_notification=_dispatch)


@router.post("/assignments", response_model=AssignComplaintResponse)
def assign_complaint(
    data: AssignComplaintRequest,
    hooks: AssignmentHooks = Depends(get_assignment_hooks),
    db: Session = Depends(get_db),
):
    """Assign a complaint to a crew."""
    outcome = assign_complaint_use_case(
        db=db,
        complaint_id=data.complaint_id,
        crew_id=data.crew_id,
        snapshot=data.complaint,
        notify=data.notify,
        hooks=hooks,
    )
    return AssignComplaintResponse(
        message="Complaint assigned and registered successfully",
        crew=CrewResponse.model_validate(outcome.crew),
        record=AssignmentRecordResponse.model_validate(outcome.record),
    )


@router.get("/assignment-records", response_model=list[AssignmentRecordResponse])
def get_assignment_records(
    crew_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    """List assignment records, newest complaint first."""
    return list_assignment_records_use_case(db=db, crew_id=crew_id)


@router.patch("/assignment-records/{record_id}/in-progress", response_model=AssignmentRecordResponse)
def mark_in_progress(
    record_id: int,
    data: Optional[TransitionRequest] = None,
    hooks: AssignmentHooks = Depends(get_assignment_hooks),
    db: Session = Depends(get_db),
):
    """Crew accepted the complaint."""
    return mark_in_progress_use_case(
        db=db,
        record_id=record_id,
        notify=bool(data and data.notify),
        hooks=hooks,
    )


@router.patch("/assignment-records/{record_id}/complete", response_model=AssignmentRecordResponse)
def mark_completed(
    record_id: int,
    data: Optional[TransitionRequest] = None,
    hooks: AssignmentHooks = Depends(get_assignment_hooks),
    db: Session = Depends(get_db),
):
    """Crew finished the work."""
    return mark_completed_use_case(
        db=db,
        record_id=record_id,
        notify=bool(data and data.notify),
        hooks=hooks,
    )
