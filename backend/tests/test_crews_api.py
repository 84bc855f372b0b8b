from __future__ import annotations

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from crew_dispatch.database import get_db
from crew_dispatch.main import app
from crew_dispatch.models import AssignmentRecord, Crew
from crew_dispatch.schemas import CrewUpdate
from crew_dispatch.use_cases import crews as crews_use_cases
from crew_dispatch.use_cases.assignment_transitions import get_crew_for_update

T0 = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def client(db):
    def _override_db():
        yield db

    app.dependency_overrides[get_db] = _override_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _create_type(client, name: str) -> int:
    response = client.post("/api/v1/complaint-types", json={"name": name})
    assert response.status_code == 201
    return response.json()["id"]


def test_complaint_type_crud(client) -> None:
    type_id = _create_type(client, "  Poda ")

    assert client.get("/api/v1/complaint-types").json() == [{"id": type_id, "name": "Poda"}]

    renamed = client.patch(f"/api/v1/complaint-types/{type_id}", json={"name": "Poda de árboles"})
    assert renamed.status_code == 200
    assert renamed.json()["name"] == "Poda de árboles"

    assert client.delete(f"/api/v1/complaint-types/{type_id}").status_code == 204
    assert client.get("/api/v1/complaint-types").json() == []


def test_complaint_type_name_rules(client) -> None:
    _create_type(client, "Bacheo")

    short = client.post("/api/v1/complaint-types", json={"name": "B"})
    assert short.status_code == 400
    assert short.json()["code"] == "VALIDATION_ERROR"

    duplicate = client.post("/api/v1/complaint-types", json={"name": "Bacheo"})
    assert duplicate.status_code == 409
    assert duplicate.json()["code"] == "COMPLAINT_TYPE_DUPLICATE"

    missing = client.delete("/api/v1/complaint-types/999")
    assert missing.status_code == 404


def test_create_and_list_crews_by_type(client) -> None:
    pruning = _create_type(client, "Poda")
    lighting = _create_type(client, "Alumbrado")

    created = client.post(
        "/api/v1/crews",
        json={"name": "Cuadrilla Poda", "phone": "3491000000", "simultaneous_limit": 2, "complaint_type_ids": [pruning]},
    )
    assert created.status_code == 201
    body = created.json()
    assert body["is_available"] is True
    assert body["assigned_complaint_ids"] == []
    assert [t["name"] for t in body["complaint_types"]] == ["Poda"]

    by_type = client.get(f"/api/v1/crews/by-type/{pruning}")
    assert [crew["name"] for crew in by_type.json()] == ["Cuadrilla Poda"]

    empty = client.get(f"/api/v1/crews/by-type/{lighting}")
    assert empty.status_code == 404


def test_create_crew_rejects_unknown_type_and_bad_limit(client) -> None:
    unknown = client.post("/api/v1/crews", json={"name": "X", "complaint_type_ids": [42]})
    assert unknown.status_code == 404
    assert unknown.json()["details"] == {"complaintTypeIds": [42]}

    bad_limit = client.post("/api/v1/crews", json={"name": "X", "simultaneous_limit": 0})
    assert bad_limit.status_code == 400


def test_raising_the_limit_recomputes_availability(client, make_crew, db) -> None:
    crew = make_crew(limit=1)
    db.add(AssignmentRecord(
        complaint_id=101,
        crew_id=crew.id,
        status="ASIGNADO",
        registered_at=T0,
        assigned_at=T0,
    ))
    crew.is_available = False
    db.commit()

    response = client.patch(f"/api/v1/crews/{crew.id}", json={"simultaneous_limit": 2})

    assert response.status_code == 200
    assert response.json()["simultaneous_limit"] == 2
    assert response.json()["is_available"] is True


def test_partial_update_keeps_untouched_fields(client, make_crew) -> None:
    crew = make_crew(limit=3, phone="3491000000")

    response = client.patch(f"/api/v1/crews/{crew.id}", json={"name": "Renombrada"})

    assert response.json()["name"] == "Renombrada"
    assert response.json()["phone"] == "3491000000"
    assert response.json()["simultaneous_limit"] == 3


def test_delete_crew_only_without_records(client, make_crew, db) -> None:
    idle = make_crew(name="Libre")
    busy = make_crew(name="Ocupada")
    db.add(AssignmentRecord(
        complaint_id=101,
        crew_id=busy.id,
        status="COMPLETADO",
        registered_at=T0,
        assigned_at=T0,
        completed_at=T0,
    ))
    db.commit()

    assert client.delete(f"/api/v1/crews/{idle.id}").status_code == 204
    assert client.get(f"/api/v1/crews/{idle.id}").status_code == 404

    refused = client.delete(f"/api/v1/crews/{busy.id}")
    assert refused.status_code == 409
    assert refused.json()["code"] == "CREW_HAS_ASSIGNMENTS"


def test_crew_messages_flow(client, make_crew) -> None:
    crew = make_crew()

    posted = client.post(f"/api/v1/crews/{crew.id}/messages", json={"content": "Salimos", "sender": "Cuadrilla"})
    assert posted.status_code == 201
    assert posted.json()["is_read"] is False

    client.post(f"/api/v1/crews/{crew.id}/messages", json={"content": "Llegamos", "sender": "Cuadrilla"})
    messages = client.get(f"/api/v1/crews/{crew.id}/messages").json()
    assert [m["content"] for m in messages] == ["Salimos", "Llegamos"]

    assert client.patch(f"/api/v1/crews/{crew.id}/messages/read").status_code == 204
    assert all(m["is_read"] for m in client.get(f"/api/v1/crews/{crew.id}/messages").json())


def test_messages_for_unknown_crew_are_404(client) -> None:
    assert client.get("/api/v1/crews/999/messages").status_code == 404
    assert client.post("/api/v1/crews/999/messages", json={"content": "x", "sender": "y"}).status_code == 404


def test_failed_crew_update_rolls_back_limit_change(client, make_crew, db) -> None:
    crew = make_crew(limit=1)

    response = client.patch(f"/api/v1/crews/{crew.id}", json={"simultaneous_limit": 3, "complaint_type_ids": [999]})

    assert response.status_code == 404
    assert db.get(Crew, crew.id).simultaneous_limit == 1


def test_limit_change_locks_the_crew_row(make_crew, db, monkeypatch) -> None:
    crew = make_crew(limit=1)
    locked = []

    def _spy(*, db, crew_id):
        locked.append(crew_id)
        return get_crew_for_update(db=db, crew_id=crew_id)

    monkeypatch.setattr(crews_use_cases, "get_crew_for_update", _spy)

    updated = crews_use_cases.update_crew_use_case(db=db, crew_id=crew.id, data=CrewUpdate(simultaneous_limit=2))

    assert locked == [crew.id]
    assert updated.simultaneous_limit == 2
