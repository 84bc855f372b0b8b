"""Status sync outbox: local transitions are mirrored into the Reclamos API.

A pending row is written in the same transaction as the transition; delivery
happens after commit and is retried by the Celery worker until it succeeds or
runs out of attempts.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Protocol

from sqlalchemy.orm import Session

from ..config import settings
from ..domain_errors import SyncFailedError
from ..models import AssignmentRecord, StatusSyncOutbox
from ..services.assignment_rules import now_utc

logger = logging.getLogger(__name__)


class StatusSyncClient(Protocol):
    def update_status(self, complaint_id: int, status: str, crew_id: int | None = None) -> None: ...


def retry_backoff(attempts: int) -> timedelta:
    """2min, 4min, 8min, ..."""
    return timedelta(seconds=2 ** attempts * 60)


def enqueue_status_sync(
    *,
    db: Session,
    record: AssignmentRecord,
    status: str,
    crew_id: int | None = None,
) -> StatusSyncOutbox:
    """Add a pending sync row to the current transaction (caller commits).

    Older pending rows for the same complaint are superseded so a retry can
    never push the remote status backwards. A crew id they still owed the
    Reclamos API travels with the new row.
    """
    ts = now_utc()
    idempotency_key = f"{record.id}:{status}"
    older = (
        db.query(StatusSyncOutbox)
        .filter(
            StatusSyncOutbox.complaint_id == record.complaint_id,
            StatusSyncOutbox.state == 'pending',
        )
        .with_for_update()
        .all()
    )
    for stale in older:
        stale.state = 'superseded'
        stale.next_retry_at = None
        stale.last_error = f"superseded by {idempotency_key}"
        if crew_id is None and stale.crew_id is not None:
            crew_id = stale.crew_id
        logger.info(
            "status_sync.enqueue complaint=%s status=%s supersedes %s",
            record.complaint_id,
            status,
            stale.target_status,
        )

    entry = StatusSyncOutbox(
        assignment_record=record,
        complaint_id=record.complaint_id,
        target_status=status,
        crew_id=crew_id,
        state='pending',
        attempts=0,
        # Inline delivery owns the row first; the worker only sees it after the grace period.
        next_retry_at=ts + timedelta(seconds=settings.STATUS_SYNC_INLINE_GRACE_SECONDS),
        idempotency_key=idempotency_key,
    )
    db.add(entry)
    return entry


def _mark_failed_attempt(entry: StatusSyncOutbox, *, error: str, at: datetime) -> None:
    entry.attempts = (entry.attempts or 0) + 1
    entry.last_error = error
    if entry.attempts >= settings.STATUS_SYNC_MAX_ATTEMPTS:
        entry.state = 'failed'
        entry.failed_at = at
        entry.next_retry_at = None
    else:
        entry.next_retry_at = at + retry_backoff(entry.attempts)


def attempt_delivery(
    *,
    entry: StatusSyncOutbox,
    client: StatusSyncClient,
    at: datetime | None = None,
) -> SyncFailedError | None:
    """Try one delivery and update the row; returns the failure instead of raising."""
    ts = at or now_utc()
    try:
        client.update_status(entry.complaint_id, entry.target_status, crew_id=entry.crew_id)
    except SyncFailedError as exc:
        reason = (exc.details or {}).get("reason") or exc.message
        _mark_failed_attempt(entry, error=str(reason), at=ts)
        return exc

    entry.state = 'sent'
    entry.sent_at = ts
    entry.last_error = None
    entry.next_retry_at = None
    return None


def deliver_status_sync(
    *,
    db: Session,
    entry: StatusSyncOutbox,
    client: StatusSyncClient,
    at: datetime | None = None,
) -> None:
    """Deliver right after the transition committed.

    Raises SyncFailedError when the Reclamos API refuses; the local state is
    already committed and the row stays pending for the worker.
    """
    locked = (
        db.query(StatusSyncOutbox)
        .filter(StatusSyncOutbox.id == entry.id, StatusSyncOutbox.state == 'pending')
        .with_for_update(skip_locked=True)
        .first()
    )
    if locked is None:
        # Already delivered, superseded or held by a worker.
        db.commit()
        return

    failure = attempt_delivery(entry=locked, client=client, at=at)
    db.commit()
    if failure is None:
        return

    logger.warning(
        "status_sync.deliver complaint=%s status=%s attempts=%s failed, left for retry",
        entry.complaint_id,
        entry.target_status,
        entry.attempts,
    )
    raise SyncFailedError(
        message=failure.message,
        details={
            "localCommitted": True,
            "recordId": entry.assignment_record_id,
            "complaintId": entry.complaint_id,
            "status": entry.target_status,
        },
    ) from failure


def process_pending_status_syncs(
    *,
    db: Session,
    client: StatusSyncClient,
    batch_size: int | None = None,
    at: datetime | None = None,
) -> dict[str, int]:
    """Retry due pending rows; rows are locked with FOR UPDATE SKIP LOCKED."""
    ts = at or now_utc()
    entries = (
        db.query(StatusSyncOutbox)
        .filter(
            StatusSyncOutbox.state == 'pending',
            (StatusSyncOutbox.next_retry_at.is_(None)) | (StatusSyncOutbox.next_retry_at <= ts),
        )
        .order_by(StatusSyncOutbox.created_at, StatusSyncOutbox.id)
        .limit(batch_size or settings.STATUS_SYNC_BATCH_SIZE)
        .with_for_update(skip_locked=True)
        .all()
    )

    sent = 0
    for entry in entries:
        if attempt_delivery(entry=entry, client=client, at=ts) is None:
            sent += 1
            logger.info("status_sync.retry complaint=%s status=%s sent", entry.complaint_id, entry.target_status)
        elif entry.state == 'failed':
            logger.error(
                "status_sync.retry complaint=%s status=%s gave up after %s attempts: %s",
                entry.complaint_id,
                entry.target_status,
                entry.attempts,
                entry.last_error,
            )

    db.commit()
    return {"sent": sent, "total_locked": len(entries)}
