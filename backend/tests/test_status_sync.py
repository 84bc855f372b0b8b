from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from crew_dispatch.config import settings
from crew_dispatch.domain_errors import SyncFailedError
from crew_dispatch.models import AssignmentRecord, StatusSyncOutbox
from crew_dispatch.schemas import ComplaintSnapshot
from crew_dispatch.use_cases.assignment_transitions import (
    AssignmentHooks,
    assign_complaint_use_case,
    mark_in_progress_use_case,
)
from crew_dispatch.use_cases.status_sync import (
    attempt_delivery,
    deliver_status_sync,
    enqueue_status_sync,
    process_pending_status_syncs,
    retry_backoff,
)

T0 = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def _record(db, crew, complaint_id=101):
    record = AssignmentRecord(
        complaint_id=complaint_id,
        crew_id=crew.id,
        status="ASIGNADO",
        registered_at=T0,
        assigned_at=T0,
    )
    db.add(record)
    db.flush()
    return record


def _pending(db, crew, *, complaint_id=101, status="ASIGNADO", crew_id=None, next_retry_at=None, attempts=0):
    record = _record(db, crew, complaint_id)
    entry = enqueue_status_sync(db=db, record=record, status=status, crew_id=crew_id)
    entry.attempts = attempts
    entry.next_retry_at = next_retry_at
    db.commit()
    return entry


def test_retry_backoff_doubles_per_attempt() -> None:
    assert retry_backoff(1) == timedelta(minutes=2)
    assert retry_backoff(2) == timedelta(minutes=4)
    assert retry_backoff(3) == timedelta(minutes=8)


def test_enqueue_uses_record_and_status_as_idempotency_key(db, make_crew) -> None:
    crew = make_crew()
    entry = _pending(db, crew, crew_id=crew.id)

    assert entry.state == "pending"
    assert entry.idempotency_key == f"{entry.assignment_record_id}:ASIGNADO"
    assert entry.crew_id == crew.id


def test_attempt_delivery_marks_row_sent(db, make_crew, sync_client) -> None:
    crew = make_crew()
    entry = _pending(db, crew, crew_id=crew.id)

    failure = attempt_delivery(entry=entry, client=sync_client, at=T0)

    assert failure is None
    assert entry.state == "sent"
    assert entry.sent_at == T0
    assert sync_client.calls == [(101, "ASIGNADO", crew.id)]


def test_attempt_delivery_schedules_retry_on_failure(db, make_crew, sync_client) -> None:
    crew = make_crew()
    entry = _pending(db, crew)
    sync_client.fail = True

    failure = attempt_delivery(entry=entry, client=sync_client, at=T0)

    assert isinstance(failure, SyncFailedError)
    assert entry.state == "pending"
    assert entry.attempts == 1
    assert entry.last_error == "HTTP_500: boom"
    assert entry.next_retry_at == T0 + timedelta(minutes=2)


def test_attempt_delivery_gives_up_after_max_attempts(db, make_crew, sync_client) -> None:
    crew = make_crew()
    entry = _pending(db, crew, attempts=settings.STATUS_SYNC_MAX_ATTEMPTS - 1)
    sync_client.fail = True

    attempt_delivery(entry=entry, client=sync_client, at=T0)

    assert entry.state == "failed"
    assert entry.attempts == settings.STATUS_SYNC_MAX_ATTEMPTS
    assert entry.failed_at == T0
    assert entry.next_retry_at is None


def test_deliver_status_sync_raises_with_local_commit_flag(db, make_crew, sync_client) -> None:
    crew = make_crew()
    entry = _pending(db, crew)
    sync_client.fail = True

    with pytest.raises(SyncFailedError) as exc:
        deliver_status_sync(db=db, entry=entry, client=sync_client, at=T0)

    assert exc.value.details == {
        "localCommitted": True,
        "recordId": entry.assignment_record_id,
        "complaintId": 101,
        "status": "ASIGNADO",
    }
    stored = db.get(StatusSyncOutbox, entry.id)
    assert stored.state == "pending"
    assert stored.attempts == 1


def test_worker_retries_only_due_pending_rows(db, make_crew, sync_client) -> None:
    crew = make_crew(limit=5)
    due = _pending(db, crew, complaint_id=101, next_retry_at=T0 - timedelta(minutes=1), attempts=1)
    fresh = _pending(db, crew, complaint_id=102)
    later = _pending(db, crew, complaint_id=103, next_retry_at=T0 + timedelta(minutes=10), attempts=1)
    done = _pending(db, crew, complaint_id=104)
    done.state = "sent"
    db.commit()

    result = process_pending_status_syncs(db=db, client=sync_client, at=T0)

    assert result == {"sent": 2, "total_locked": 2}
    assert sorted(call[0] for call in sync_client.calls) == [101, 102]
    assert db.get(StatusSyncOutbox, due.id).state == "sent"
    assert db.get(StatusSyncOutbox, fresh.id).state == "sent"
    assert db.get(StatusSyncOutbox, later.id).state == "pending"


def test_worker_respects_batch_size(db, make_crew, sync_client) -> None:
    crew = make_crew(limit=5)
    for complaint_id in (101, 102, 103):
        _pending(db, crew, complaint_id=complaint_id)

    result = process_pending_status_syncs(db=db, client=sync_client, batch_size=2, at=T0)

    assert result == {"sent": 2, "total_locked": 2}
    assert db.query(StatusSyncOutbox).filter(StatusSyncOutbox.state == "pending").count() == 1


def test_worker_counts_failures_without_raising(db, make_crew, sync_client) -> None:
    crew = make_crew()
    entry = _pending(db, crew, attempts=settings.STATUS_SYNC_MAX_ATTEMPTS - 1)
    sync_client.fail = True

    result = process_pending_status_syncs(db=db, client=sync_client, at=T0)

    assert result == {"sent": 0, "total_locked": 1}
    assert db.get(StatusSyncOutbox, entry.id).state == "failed"


def test_newer_status_supersedes_pending_retry_for_same_complaint(db, make_crew, sync_client) -> None:
    crew = make_crew(limit=2)
    hooks = AssignmentHooks(sync_client=sync_client)
    sync_client.fail = True
    with pytest.raises(SyncFailedError):
        assign_complaint_use_case(
            db=db, complaint_id=101, crew_id=crew.id, snapshot=ComplaintSnapshot(), notify=False, hooks=hooks
        )
    record = db.query(AssignmentRecord).filter(AssignmentRecord.complaint_id == 101).one()

    sync_client.fail = False
    mark_in_progress_use_case(db=db, record_id=record.id, notify=False, hooks=hooks)
    result = process_pending_status_syncs(db=db, client=sync_client, at=datetime.now(timezone.utc) + timedelta(hours=1))

    assert result == {"sent": 0, "total_locked": 0}
    # The crew id the failed assignment owed the remote travels with the newer status.
    assert sync_client.calls == [(101, "ASIGNADO", crew.id), (101, "EN_PROCESO", crew.id)]
    states = {entry.target_status: entry.state for entry in db.query(StatusSyncOutbox).all()}
    assert states == {"ASIGNADO": "superseded", "EN_PROCESO": "sent"}


def test_fresh_row_is_left_to_inline_delivery(db, make_crew, sync_client) -> None:
    crew = make_crew()
    record = _record(db, crew)
    enqueue_status_sync(db=db, record=record, status="ASIGNADO", crew_id=crew.id)
    db.commit()

    result = process_pending_status_syncs(db=db, client=sync_client, at=datetime.now(timezone.utc))

    assert result == {"sent": 0, "total_locked": 0}
    assert sync_client.calls == []


def test_deliver_skips_row_that_is_no_longer_pending(db, make_crew, sync_client) -> None:
    crew = make_crew()
    entry = _pending(db, crew)
    entry.state = "sent"
    db.commit()

    deliver_status_sync(db=db, entry=entry, client=sync_client, at=T0)

    assert sync_client.calls == []
