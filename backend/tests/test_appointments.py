import sys
from datetime import date, timedelta
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
from curelink.appointments.slots import candidate_slots
from curelink.auth import utils
from curelink.db import Base, get_db
from curelink.main import app

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
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


PASSWORD = "secret-pass-123"


def next_day(weekday: int) -> date:
    day = date.today() + timedelta(days=1)
    while day.weekday() != weekday:
        day += timedelta(days=1)
    return day


def seed() -> int:
    db = TestingSessionLocal()
    try:
        doctor = models.User(
            email="doc@example.com",
            name="Rao",
            role="doctor",
            profile_json='{"specialization": "Cardiologist", "rating_average": 4.6}',
            hashed_password=utils.hash_password(PASSWORD),
        )
        alice = models.User(
            email="alice@example.com", name="Alice", role="patient", hashed_password=utils.hash_password(PASSWORD)
        )
        bob = models.User(email="bob@example.com", name="Bob", role="patient", hashed_password=utils.hash_password(PASSWORD))
        db.add_all([doctor, alice, bob])
        db.commit()
        return doctor.id
    finally:
        db.close()


def login(client: TestClient, email: str) -> dict:
    resp = client.post("/auth/login", json={"email": email, "password": PASSWORD})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def booking_payload(doctor_id: int, day: date, slot: str = "12:00 PM", kind: str = "normal", name: str = "Alice") -> dict:
    return {
        "doctor_id": doctor_id,
        "date": day.isoformat(),
        "time_slot": slot,
        "appointment_type": kind,
        "patient": {
            "full_name": name,
            "email": f"{name.lower()}@example.com",
            "phone": "+923001234567",
            "gender": "female",
            "age": 30,
        },
    }


def test_candidate_slots_by_weekday():
    assert candidate_slots(next_day(6)) == []
    weekday = candidate_slots(next_day(2))
    assert len(weekday) == 8
    assert weekday[0] == "12:00 PM"
    assert weekday[-1] == "7:00 PM"
    assert candidate_slots(next_day(5)) == ["12:00 PM", "1:00 PM", "2:00 PM", "3:00 PM"]


def test_available_slots_exclude_booked_and_free_after_cancel(client: TestClient):
    doctor_id = seed()
    day = next_day(1)
    alice = login(client, "alice@example.com")

    booked = client.post("/appointments", headers=alice, json=booking_payload(doctor_id, day, "1:00 PM"))
    assert booked.status_code == 201

    slots = client.get(f"/appointments/slots?doctor_id={doctor_id}&date={day.isoformat()}").json()["slots"]
    assert "1:00 PM" not in slots
    assert len(slots) == 7

    assert client.post(f"/appointments/{booked.json()['id']}/cancel", headers=alice).status_code == 200
    slots = client.get(f"/appointments/slots?doctor_id={doctor_id}&date={day.isoformat()}").json()["slots"]
    assert "1:00 PM" in slots


def test_sunday_has_no_slots(client: TestClient):
    doctor_id = seed()
    resp = client.get(f"/appointments/slots?doctor_id={doctor_id}&date={next_day(6).isoformat()}")
    assert resp.json()["slots"] == []


def test_booking_records_fee_status_and_notifies_both_sides(client: TestClient):
    doctor_id = seed()
    alice = login(client, "alice@example.com")

    normal = client.post("/appointments", headers=alice, json=booking_payload(doctor_id, next_day(0)))
    urgent = client.post(
        "/appointments", headers=alice, json=booking_payload(doctor_id, next_day(0), "2:00 PM", kind="urgent")
    )
    assert normal.status_code == 201
    assert normal.json()["status"] == "pending"
    assert normal.json()["fee"] == 1500.0
    assert urgent.json()["fee"] == 3000.0

    patient_notes = client.get("/notifications", headers=alice).json()
    assert {n["title"] for n in patient_notes} == {"Appointment Booked"}
    assert any("Dr. Rao" in n["message"] for n in patient_notes)

    doctor_notes = client.get("/notifications", headers=login(client, "doc@example.com")).json()
    assert len(doctor_notes) == 2
    assert {n["title"] for n in doctor_notes} == {"New Appointment Booked"}


def test_same_slot_can_be_double_booked(client: TestClient):
    doctor_id = seed()
    day = next_day(3)
    alice = login(client, "alice@example.com")
    bob = login(client, "bob@example.com")

    first = client.post("/appointments", headers=alice, json=booking_payload(doctor_id, day))
    second = client.post("/appointments", headers=bob, json=booking_payload(doctor_id, day, name="Bob"))

    assert first.status_code == 201
    assert second.status_code == 201
    doctor_view = client.get("/appointments", headers=login(client, "doc@example.com")).json()
    assert [a["time_slot"] for a in doctor_view] == ["12:00 PM", "12:00 PM"]


def test_booking_rejects_past_dates_and_unknown_slots(client: TestClient):
    doctor_id = seed()
    alice = login(client, "alice@example.com")

    past = client.post("/appointments", headers=alice, json=booking_payload(doctor_id, date.today() - timedelta(days=3)))
    assert past.status_code == 400

    odd = client.post("/appointments", headers=alice, json=booking_payload(doctor_id, next_day(2), "10:00 AM"))
    assert odd.status_code == 400

    sunday = client.post("/appointments", headers=alice, json=booking_payload(doctor_id, next_day(6)))
    assert sunday.status_code == 400

    unknown_doctor = client.post("/appointments", headers=alice, json=booking_payload(9999, next_day(2)))
    assert unknown_doctor.status_code == 404


def test_doctor_state_machine(client: TestClient):
    doctor_id = seed()
    alice = login(client, "alice@example.com")
    doctor = login(client, "doc@example.com")
    appointment_id = client.post("/appointments", headers=alice, json=booking_payload(doctor_id, next_day(4))).json()["id"]

    assert client.post(f"/appointments/{appointment_id}/complete", headers=doctor).status_code == 409
    confirmed = client.post(f"/appointments/{appointment_id}/confirm", headers=doctor)
    assert confirmed.json()["status"] == "confirmed"
    completed = client.post(f"/appointments/{appointment_id}/complete", headers=doctor)
    assert completed.json()["status"] == "completed"
    assert client.post(f"/appointments/{appointment_id}/cancel", headers=alice).status_code == 409

    titles = [n["title"] for n in client.get("/notifications", headers=alice).json()]
    assert "Appointment Confirmed" in titles
    assert "Appointment Completed" in titles

    budget = client.get("/patient/budget", headers=alice).json()
    assert budget["doctor_spending"] == 1500.0


def test_other_patient_cannot_cancel(client: TestClient):
    doctor_id = seed()
    alice = login(client, "alice@example.com")
    appointment_id = client.post("/appointments", headers=alice, json=booking_payload(doctor_id, next_day(1))).json()["id"]

    resp = client.post(f"/appointments/{appointment_id}/cancel", headers=login(client, "bob@example.com"))
    assert resp.status_code == 404


def test_doctor_listing_filters_by_status(client: TestClient):
    doctor_id = seed()
    alice = login(client, "alice@example.com")
    doctor = login(client, "doc@example.com")
    first = client.post("/appointments", headers=alice, json=booking_payload(doctor_id, next_day(2))).json()["id"]
    client.post("/appointments", headers=alice, json=booking_payload(doctor_id, next_day(2), "3:00 PM"))
    client.post(f"/appointments/{first}/decline", headers=doctor)

    pending = client.get("/appointments?status=pending", headers=doctor).json()
    assert [a["time_slot"] for a in pending] == ["3:00 PM"]
    cancelled = client.get("/appointments?status=cancelled", headers=alice).json()
    assert [a["id"] for a in cancelled] == [first]
