import sys
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
from curelink.ai.providers.base import ProviderError
from curelink.ai.providers.stub import StubProvider
from curelink.auth import utils
from curelink.db import Base, get_db
from curelink.main import app
from curelink.routes.ai_routes import get_chat_provider

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
def client():
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_chat_provider] = lambda: StubProvider()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


PASSWORD = "secret-pass-123"


def seed():
    db = TestingSessionLocal()
    try:
        patient = models.User(email="pat@example.com", name="Pat", role="patient")
        doctor = models.User(
            email="doc@example.com",
            name="Rao",
            role="doctor",
            profile_json='{"specialization": "Cardiologist", "rating_average": 4.8}',
        )
        pharmacy = models.User(email="rx@example.com", role="pharmacy", profile_json='{"pharmacy_name": "Rx"}')
        for user in (patient, doctor, pharmacy):
            user.hashed_password = utils.hash_password(PASSWORD)
        db.add_all([patient, doctor, pharmacy])
        db.commit()
        db.add_all(
            [
                models.Medicine(name="Insulin", price=900.0, stock=2, pharmacy_id=pharmacy.id),
                models.Medicine(name="Panadol", price=30.0, stock=40, pharmacy_id=pharmacy.id),
            ]
        )
        db.commit()
        return {"patient": patient.id, "doctor": doctor.id}
    finally:
        db.close()


def login(client: TestClient, email: str) -> dict:
    resp = client.post("/auth/login", json={"email": email, "password": PASSWORD})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def test_chat_runs_tool_and_persists_session(client: TestClient):
    seed()
    headers = login(client, "pat@example.com")

    resp = client.post("/ai/chat", headers=headers, json={"message": "Find me a cardiologist"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["tool_name"] == "searchDoctors"
    assert body["tool_result"]["count"] == 1
    assert body["answer"].startswith("Here is what I found")
    session_id = body["session_id"]

    again = client.post("/ai/chat", headers=headers, json={"message": "hello", "session_id": session_id})
    assert again.json()["session_id"] == session_id
    assert again.json()["tool_name"] is None

    db = TestingSessionLocal()
    try:
        row = db.query(models.ChatSession).filter(models.ChatSession.session_id == session_id).first()
        assert row is not None
        assert row.turns_json.count('"role": "user"') == 2
        assert db.query(models.AILog).filter(models.AILog.log_type == "chat").count() == 2
    finally:
        db.close()


def test_chat_session_ids_are_scoped_per_patient(client: TestClient):
    seed()
    db = TestingSessionLocal()
    try:
        db.add(models.User(email="sam@example.com", name="Sam", role="patient", hashed_password=utils.hash_password(PASSWORD)))
        db.commit()
    finally:
        db.close()

    first = client.post("/ai/chat", headers=login(client, "pat@example.com"), json={"message": "hello", "session_id": "chat-1"})
    second = client.post("/ai/chat", headers=login(client, "sam@example.com"), json={"message": "hi there", "session_id": "chat-1"})
    assert first.status_code == 200
    assert second.status_code == 200
    assert second.json()["session_id"] == "chat-1"

    db = TestingSessionLocal()
    try:
        rows = db.query(models.ChatSession).filter(models.ChatSession.session_id == "chat-1").all()
        assert len(rows) == 2
        assert all(row.turns_json.count('"role": "user"') == 1 for row in rows)
    finally:
        db.close()


def test_chat_rejects_blank_message_and_non_patients(client: TestClient):
    seed()
    assert client.post("/ai/chat", headers=login(client, "pat@example.com"), json={"message": "  "}).status_code == 400
    assert client.post("/ai/chat", headers=login(client, "doc@example.com"), json={"message": "hi"}).status_code == 403


def test_chat_maps_provider_failure_to_bad_gateway(client: TestClient):
    seed()

    class FailingProvider:
        name = "failing"

        async def complete(self, messages, tools=None):
            raise ProviderError(500, "upstream exploded")

    app.dependency_overrides[get_chat_provider] = lambda: FailingProvider()
    resp = client.post("/ai/chat", headers=login(client, "pat@example.com"), json={"message": "hi"})
    assert resp.status_code == 502


def test_symptom_check_short_circuits_emergencies(client: TestClient):
    seed()
    headers = login(client, "pat@example.com")

    emergency = client.post("/ai/symptom-check", headers=headers, json={"symptom_description": "I have severe chest pain"})
    assert emergency.status_code == 200
    assert emergency.json()["emergency"] is True
    assert "emergency" in emergency.json()["guidance"].lower()

    routine = client.post("/ai/symptom-check", headers=headers, json={"symptom_description": "mild headache since noon"})
    assert routine.json()["emergency"] is False
    assert routine.json()["guidance"]


def test_medical_summary_returns_all_sections(client: TestClient):
    seed()
    resp = client.get("/ai/medical-summary", headers=login(client, "pat@example.com"))
    assert resp.status_code == 200
    body = resp.json()
    assert body["highlights"]
    assert body["recent_activity"]
    assert body["medication_summary"]


def test_doctor_summary_requires_shared_appointment(client: TestClient):
    ids = seed()
    resp = client.post(
        "/ai/doctor-summary",
        headers=login(client, "doc@example.com"),
        json={"patient_id": ids["patient"]},
    )
    assert resp.status_code == 404


def test_stock_alerts_only_for_low_items(client: TestClient):
    seed()
    resp = client.get("/ai/stock-alerts", headers=login(client, "rx@example.com"))
    assert resp.status_code == 200
    alerts = resp.json()
    assert [a["name"] for a in alerts] == ["Insulin"]
    assert alerts[0]["alert_message"]


def test_patient_stock_alert_threshold(client: TestClient):
    seed()
    headers = login(client, "pat@example.com")

    fine = client.post("/ai/patient-stock-alert", headers=headers, json={"product_name": "Insulin", "current_stock": 10})
    assert fine.json()["alert_message"] == "Stock levels are currently fine."

    low = client.post("/ai/patient-stock-alert", headers=headers, json={"product_name": "Insulin", "current_stock": 3})
    assert low.json()["alert_message"] != "Stock levels are currently fine."
