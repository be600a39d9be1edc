"""
Tests for the appeals HTTP endpoints
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from app.main import app
from app.api.v1.appeals import get_lifecycle
from app.core.database import Database
from app.core.exceptions import AppealNotFoundError
from app.services import appeal_store
from app.services.appeal_lifecycle import AppealLifecycle


@pytest.fixture
def database():
    """Create in-memory test database"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    database = Database(engine)
    database.create_all()
    yield database
    database.dispose()


@pytest.fixture
def client(database):
    app.dependency_overrides[get_lifecycle] = lambda: AppealLifecycle(database)
    yield TestClient(app)
    app.dependency_overrides.clear()


def _submit(client, topic="Water", message="No hot water"):
    response = client.post("/v1/appeals", json={"topic": topic, "message": message})
    assert response.status_code == 201
    return response.json()


def test_submit_appeal(client):
    appeal = _submit(client)
    
    assert appeal["id"] > 0
    assert appeal["topic"] == "Water"
    assert appeal["message"] == "No hot water"
    assert appeal["status"] == "New"
    assert appeal["response_message"] is None
    assert appeal["init_date"] == appeal["update_date"]


def test_submit_rejects_blank_and_missing_fields(client):
    assert client.post("/v1/appeals", json={"topic": " ", "message": "x"}).status_code == 400
    assert client.post("/v1/appeals", json={"topic": "Water"}).status_code == 422
    assert client.get("/v1/appeals").json() == []


def test_lifecycle_over_http(client):
    appeal = _submit(client)
    appeal_id = appeal["id"]
    
    taken = client.put(f"/v1/appeals/{appeal_id}/take")
    assert taken.status_code == 200
    assert taken.json()["status"] == "InProgress"
    
    assert client.put(f"/v1/appeals/{appeal_id}/take").status_code == 404
    
    completed = client.put(f"/v1/appeals/{appeal_id}/complete", json={"solution": "Fixed valve"})
    assert completed.status_code == 200
    assert completed.json()["status"] == "Completed"
    assert completed.json()["response_message"] == "Appeal completed. Solution: Fixed valve"
    
    cancelled = client.put(f"/v1/appeals/{appeal_id}/cancel", json={"cancellation_reason": "x"})
    assert cancelled.status_code == 404
    
    history = client.get(f"/v1/appeals/{appeal_id}/responses")
    assert history.status_code == 200
    assert [r["response_message"] for r in history.json()] == ["Appeal completed. Solution: Fixed valve"]
    assert client.get(f"/v1/appeals/{appeal_id}").json()["status"] == "Completed"


def test_complete_without_body_is_permissive(client):
    appeal_id = _submit(client)["id"]
    client.put(f"/v1/appeals/{appeal_id}/take")
    
    response = client.put(f"/v1/appeals/{appeal_id}/complete")
    
    assert response.status_code == 200
    assert response.json()["response_message"] == "Appeal completed. Solution: "


def test_strict_mode_returns_bad_request(client, database):
    app.dependency_overrides[get_lifecycle] = lambda: AppealLifecycle(database, require_response_message=True)
    appeal_id = _submit(client)["id"]
    
    response = client.put(f"/v1/appeals/{appeal_id}/cancel", json={})
    
    assert response.status_code == 400
    assert client.get(f"/v1/appeals/{appeal_id}").json()["status"] == "New"


def test_cancel_all_in_work(client):
    first = _submit(client, topic="First")
    second = _submit(client, topic="Second")
    untouched = _submit(client, topic="Untouched")
    for appeal in (first, second):
        client.put(f"/v1/appeals/{appeal['id']}/take")
    
    response = client.put("/v1/appeals/cancel-all-in-work", json={"response_message": "Holidays"})
    
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Cancelled 2 appeals"
    assert body["count"] == 2
    assert {a["id"] for a in body["appeals"]} == {first["id"], second["id"]}
    assert all(a["status"] == "Cancelled" for a in body["appeals"])
    assert all(a["response_message"] == "Appeal cancelled. Reason: Holidays" for a in body["appeals"])
    assert client.get(f"/v1/appeals/{untouched['id']}").json()["status"] == "New"


def test_cancel_all_in_work_without_body(client):
    appeal_id = _submit(client)["id"]
    client.put(f"/v1/appeals/{appeal_id}/take")
    
    response = client.put("/v1/appeals/cancel-all-in-work")
    
    assert response.status_code == 200
    assert response.json()["appeals"][0]["response_message"] == "Appeal cancelled. Reason: Cancel all appeals"


def test_cancel_all_in_work_conflict_returns_not_found(client, monkeypatch):
    def changed_rows(*args, **kwargs):
        raise AppealNotFoundError(operation="cancel-all-in-work")
    
    monkeypatch.setattr(appeal_store, "bulk_transition", changed_rows)
    
    response = client.put("/v1/appeals/cancel-all-in-work")
    
    assert response.status_code == 404
    assert "cancel-all-in-work" in response.json()["detail"]


def test_list_filters(client):
    first = _submit(client, topic="First")
    second = _submit(client, topic="Second")
    client.put(f"/v1/appeals/{first['id']}/take")
    
    listed = client.get("/v1/appeals").json()
    assert [a["id"] for a in listed] == [second["id"], first["id"]]
    
    in_progress = client.get("/v1/appeals", params={"status": "InProgress"}).json()
    assert [a["id"] for a in in_progress] == [first["id"]]
    
    today = first["init_date"][:10]
    assert len(client.get("/v1/appeals", params={"date": today}).json()) == 2
    assert client.get("/v1/appeals", params={"startDate": "2000-01-01", "endDate": "2000-01-02"}).json() == []
    
    assert client.get("/v1/appeals", params={"status": "Unknown"}).status_code == 422
    assert client.get("/v1/appeals", params={"date": "not-a-date"}).status_code == 422


def test_unknown_appeal(client):
    assert client.get("/v1/appeals/999").status_code == 404
    assert client.get("/v1/appeals/999/responses").status_code == 404
    assert client.put("/v1/appeals/999/take").status_code == 404


def test_storage_error_returns_server_error(client, monkeypatch):
    appeal_id = _submit(client)["id"]
    
    def failing_insert(db, appeal_id, response_message):
        raise SQLAlchemyError("connection lost")
    
    monkeypatch.setattr(appeal_store, "add_appeal_response", failing_insert)
    
    response = client.put(f"/v1/appeals/{appeal_id}/cancel", json={"cancellation_reason": "x"})
    
    assert response.status_code == 500
    assert client.get(f"/v1/appeals/{appeal_id}").json()["status"] == "New"


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
