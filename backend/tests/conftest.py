from __future__ import annotations

import os

# Must be set before crew_dispatch.config is imported anywhere.
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from crew_dispatch import models  # noqa: F401
from crew_dispatch.database import Base
from crew_dispatch.domain_errors import SyncFailedError


class FakeReclamosClient:
    """Records status updates; optionally fails like a 500 from the Reclamos API."""

    def __init__(self, *, fail: bool = False, complaint: dict | None = None) -> None:
        self.fail = fail
        self.complaint = complaint or {}
        self.calls: list[tuple[int, str, int | None]] = []
        self.lookups: list[int] = []

    def update_status(self, complaint_id: int, status: str, crew_id: int | None = None) -> None:
        self.calls.append((complaint_id, status, crew_id))
        if self.fail:
            raise SyncFailedError(
                message="Error updating the complaint status in the external API",
                details={"complaintId": complaint_id, "status": status, "reason": "HTTP_500: boom"},
            )

    def get_complaint(self, complaint_id: int) -> dict:
        self.lookups.append(complaint_id)
        return {"id": complaint_id, **self.complaint}


class StepClock:
    """Deterministic clock advancing five minutes per call."""

    def __init__(self) -> None:
        self.current = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)
        self.issued: list[datetime] = []

    def __call__(self) -> datetime:
        self.current += timedelta(minutes=5)
        self.issued.append(self.current)
        return self.current


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def sync_client() -> FakeReclamosClient:
    return FakeReclamosClient(complaint={"telefono": "3491123456", "nombre": "Ana"})


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def make_crew(db):
    def _make(*, limit: int = 2, name: str = "Cuadrilla Norte", phone: str | None = "3491000000"):
        crew = models.Crew(
            name=name,
            phone=phone,
            simultaneous_limit=limit,
            is_available=True,
            assigned_complaint_ids=[],
        )
        db.add(crew)
        db.commit()
        db.refresh(crew)
        return crew

    return _make
