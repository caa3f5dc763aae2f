import sys
from datetime import datetime
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.append(str(BASE_DIR))

from curelink import models
from curelink.auth import utils
from curelink.db import Base, get_db
from curelink.main import app
from curelink.medications import SqlMedicationStore, process_due_reminders
from curelink.storage import LocalObjectStore, get_object_store

SQLALCHEMY_DATABASE_URL = "sqlite://"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def setup_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(tmp_path):
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_object_store] = lambda: LocalObjectStore(tmp_path)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


PASSWORD = "secret-pass-123"


def seed() -> int:
    db = TestingSessionLocal()
    try:
        patient = models.User(
            email="pat@example.com", name="Pat", role="patient", hashed_password=utils.hash_password(PASSWORD)
        )
        other = models.User(
            email="other@example.com", name="Other", role="patient", hashed_password=utils.hash_password(PASSWORD)
        )
        db.add_all([patient, other])
        db.commit()
        return patient.id
    finally:
        db.close()


def login(client: TestClient, email: str = "pat@example.com") -> dict:
    resp = client.post("/auth/login", json={"email": email, "password": PASSWORD})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def test_medication_store_writes_through():
    patient_id = seed()
    db = TestingSessionLocal()
    try:
        store = SqlMedicationStore(db, patient_id)
        evening = store.add("Metformin", "20:00")
        store.add("Aspirin", "08:00")
        assert [e.name for e in store.entries()] == ["Aspirin", "Metformin"]

        assert [e.name for e in SqlMedicationStore(db, patient_id).entries()] == ["Aspirin", "Metformin"]
        assert store.remove(evening.id) is True
        assert store.remove(evening.id) is False
        assert [e.name for e in SqlMedicationStore(db, patient_id).entries()] == ["Aspirin"]
    finally:
        db.close()


def test_medication_routes(client: TestClient):
    seed()
    headers = login(client)

    created = client.post("/medications", headers=headers, json={"name": "Aspirin", "reminder_time": "08:30"})
    assert created.status_code == 201
    assert client.post("/medications", headers=headers, json={"name": "X", "reminder_time": "8pm"}).status_code == 422
    assert [m["name"] for m in client.get("/medications", headers=headers).json()] == ["Aspirin"]

    other = login(client, "other@example.com")
    assert client.delete(f"/medications/{created.json()['id']}", headers=other).status_code == 404
    assert client.delete(f"/medications/{created.json()['id']}", headers=headers).status_code == 204
    assert client.get("/medications", headers=headers).json() == []


def test_due_reminders_notify_once_per_day():
    patient_id = seed()
    db = TestingSessionLocal()
    try:
        store = SqlMedicationStore(db, patient_id, clock=lambda: datetime(2026, 3, 2, 7, 0))
        store.add("Aspirin", "08:00")
        store.add("Metformin", "20:00")

        assert process_due_reminders(db, now=datetime(2026, 3, 2, 7, 59)) == {"sent": 0}
        assert process_due_reminders(db, now=datetime(2026, 3, 2, 9, 0)) == {"sent": 1}
        assert process_due_reminders(db, now=datetime(2026, 3, 2, 9, 5)) == {"sent": 0}
        assert process_due_reminders(db, now=datetime(2026, 3, 2, 21, 0)) == {"sent": 1}
        assert process_due_reminders(db, now=datetime(2026, 3, 3, 21, 0)) == {"sent": 2}

        notes = db.query(models.Notification).filter(models.Notification.user_id == patient_id).all()
        assert len(notes) == 4
        assert {n.type for n in notes} == {"medication"}
    finally:
        db.close()


def test_reminder_added_after_its_time_waits_for_tomorrow():
    patient_id = seed()
    db = TestingSessionLocal()
    try:
        store = SqlMedicationStore(db, patient_id, clock=lambda: datetime(2026, 3, 2, 15, 0))
        store.add("Aspirin", "09:00")
        store.add("Metformin", "20:00")

        assert process_due_reminders(db, now=datetime(2026, 3, 2, 15, 1)) == {"sent": 0}
        assert process_due_reminders(db, now=datetime(2026, 3, 2, 20, 0)) == {"sent": 1}
        assert process_due_reminders(db, now=datetime(2026, 3, 3, 9, 0)) == {"sent": 1}
    finally:
        db.close()


def test_notifications_read_flags(client: TestClient):
    patient_id = seed()
    db = TestingSessionLocal()
    try:
        for title in ("One", "Two", "Three"):
            db.add(models.Notification(user_id=patient_id, type="order", title=title, message=title))
        db.commit()
    finally:
        db.close()
    headers = login(client)

    notes = client.get("/notifications", headers=headers).json()
    assert len(notes) == 3
    first_id = notes[0]["id"]
    assert client.post(f"/notifications/{first_id}/read", headers=headers).json()["read"] is True
    assert len(client.get("/notifications?unread_only=true", headers=headers).json()) == 2

    assert client.post(f"/notifications/{first_id}/read", headers=login(client, "other@example.com")).status_code == 404
    assert client.post("/notifications/read-all", headers=headers).json() == {"updated": 2}
    assert client.get("/notifications?unread_only=true", headers=headers).json() == []


def test_medical_record_upload_download_delete(client: TestClient):
    seed()
    headers = login(client)

    rejected = client.post("/records", headers=headers, files={"file": ("run.exe", b"MZ", "application/octet-stream")})
    assert rejected.status_code == 400

    resp = client.post(
        "/records",
        headers=headers,
        files={"file": ("cbc.pdf", b"%PDF-1.4 results", "application/pdf")},
        data={"record_type": "Lab Report"},
    )
    assert resp.status_code == 201
    record = resp.json()
    assert record["record_type"] == "Lab Report"
    assert record["download_url"].endswith(f"/records/{record['id']}/download")

    listed = client.get("/records?record_type=lab report", headers=headers).json()
    assert [r["id"] for r in listed] == [record["id"]]

    download = client.get(f"/records/{record['id']}/download", headers=headers)
    assert download.status_code == 200
    assert download.content == b"%PDF-1.4 results"

    other = login(client, "other@example.com")
    assert client.get(f"/records/{record['id']}/download", headers=other).status_code == 404

    assert client.delete(f"/records/{record['id']}", headers=headers).status_code == 204
    assert client.get("/records", headers=headers).json() == []
