from __future__ import annotations

import pytest

from crew_dispatch import celery_app as worker


class _Session:
    def __init__(self) -> None:
        self.rolled_back = False
        self.closed = False

    def rollback(self) -> None:
        self.rolled_back = True

    def close(self) -> None:
        self.closed = True


def test_worker_task_processes_outbox_and_closes_session(monkeypatch) -> None:
    session = _Session()
    seen = {}

    def _process(*, db, client, batch_size):
        seen.update(db=db, client=client, batch_size=batch_size)
        return {"sent": 3, "total_locked": 4}

    monkeypatch.setattr(worker, "SessionLocal", lambda: session)
    monkeypatch.setattr(worker, "ReclamosApiClient", lambda: "client")
    monkeypatch.setattr(worker, "process_pending_status_syncs", _process)

    result = worker.process_status_sync_outbox.run(batch_size=10)

    assert result == {"sent": 3, "total_locked": 4}
    assert seen == {"db": session, "client": "client", "batch_size": 10}
    assert session.closed is True
    assert session.rolled_back is False


def test_worker_task_rolls_back_and_reraises(monkeypatch) -> None:
    session = _Session()

    def _process(**_kwargs):
        raise RuntimeError("db gone")

    monkeypatch.setattr(worker, "SessionLocal", lambda: session)
    monkeypatch.setattr(worker, "ReclamosApiClient", lambda: "client")
    monkeypatch.setattr(worker, "process_pending_status_syncs", _process)

    with pytest.raises(RuntimeError):
        worker.process_status_sync_outbox.run()

    assert session.rolled_back is True
    assert session.closed is True


def test_beat_schedule_runs_outbox_task() -> None:
    entry = worker.celery_app.conf.beat_schedule["process-status-sync-outbox"]

    assert entry["task"] == "process_status_sync_outbox"
    assert entry["schedule"] > 0
