"""API tests using FastAPI's TestClient with an in-memory database."""

import json

import pytest
from fastapi.testclient import TestClient

from app.api.routes import get_encryption
from app.main import app
from app.models.database import get_db


@pytest.fixture
def client(session_factory, encryption):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_encryption] = lambda: encryption
    yield TestClient(app)
    app.dependency_overrides.clear()


def _ndjson(*resources):
    return "\n".join(json.dumps(r) for r in resources)


PATIENTS = _ndjson(
    {"resourceType": "Patient", "id": "p1", "gender": "female", "birthDate": "1980-05-05"},
    {"resourceType": "Patient", "id": "p2", "gender": "male", "birthDate": "1975-01-01"},
)


def test_health(client):
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json()["database"] == "connected"


def test_analyze_patients(client):
    response = client.post("/api/v1/analyze", json={"ndjson": PATIENTS + "\nnot json"})
    assert response.status_code == 200

    body = response.json()
    assert body["analyzer"] == "Patient"
    assert body["parse"]["valid_lines"] == 2
    assert body["parse"]["invalid_lines"] == 1
    assert body["parse"]["diagnostics"][0]["line_number"] == 3
    assert "resources" not in body["parse"]
    assert body["analytics"]["total_patients"] == 2
    assert body["tasks"]["analyze"]["status"] == "success"


def test_analyze_encounters(client):
    text = _ndjson({
        "resourceType": "Encounter",
        "id": "e1",
        "class": {"code": "EMER"},
        "period": {"start": "2024-01-15T09:00:00Z", "end": "2024-01-15T09:30:00Z"},
        "subject": {"reference": "Patient/p1"},
    })
    body = client.post("/api/v1/analyze", json={"ndjson": text}).json()

    assert body["analyzer"] == "Encounter"
    assert body["analytics"]["class_distribution"][0]["label"] == "Emergency"
    assert body["analytics"]["los_distribution"][0]["label"] == "<1 hour"


def test_analyze_empty_input(client):
    body = client.post("/api/v1/analyze", json={"ndjson": ""}).json()

    assert body["parse"]["resource_type"] == "Unknown"
    assert body["parse"]["total_lines"] == 0
    assert body["analyzer"] == "generic"


def test_remember_and_clear_input(client):
    assert client.get("/api/v1/input").status_code == 404

    client.post("/api/v1/analyze", json={"ndjson": PATIENTS, "remember": True})
    response = client.get("/api/v1/input")
    assert response.status_code == 200
    assert response.json()["ndjson"] == PATIENTS

    assert client.delete("/api/v1/input").status_code == 204
    assert client.get("/api/v1/input").status_code == 404


def test_analyze_without_remember_stores_nothing(client):
    client.post("/api/v1/analyze", json={"ndjson": PATIENTS})
    assert client.get("/api/v1/input").status_code == 404


def test_preview(client):
    text = _ndjson(*[{"resourceType": "Patient", "id": str(i)} for i in range(7)])
    body = client.post("/api/v1/preview", json={"ndjson": text, "max_records": 3}).json()

    assert body["looks_like_ndjson"] is True
    assert [r["id"] for r in body["resources"]] == ["0", "1", "2"]
    assert body["has_more"] is True


def test_preview_rejects_non_ndjson(client):
    body = client.post("/api/v1/preview", json={"ndjson": "id,name\n1,Jane"}).json()
    assert body["looks_like_ndjson"] is False
    assert body["resources"] == []


def test_export(client):
    text = _ndjson(*[{"resourceType": "Patient", "id": str(i)} for i in range(8)])
    body = client.post("/api/v1/export", json={"ndjson": text + "\n{bad"}).json()

    assert body["resource_type"] == "Patient"
    assert body["pseudo_file_name"] == "Patient.ndjson"
    assert body["total_records"] == 8
    assert body["invalid_lines"] == 1
    assert len(body["sample_records"]) == 5
    assert "exported_at" in body


def test_export_download_name(client):
    text = _ndjson({"resourceType": "Encounter", "id": "e1"})
    response = client.post("/api/v1/export", json={"ndjson": text})
    assert response.headers["content-disposition"] == 'attachment; filename="Encounter-summary.json"'
