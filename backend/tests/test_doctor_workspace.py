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


def seed() -> dict:
    db = TestingSessionLocal()
    try:
        doctor = models.User(email="doc@example.com", name="Dr. Rao", role="doctor")
        other_doctor = models.User(email="doc2@example.com", name="Dr. Shah", role="doctor")
        pat = models.User(email="pat@example.com", name="Pat", role="patient")
        sam = models.User(email="sam@example.com", name="Sam", role="patient")
        lee = models.User(email="lee@example.com", name="Lee", role="patient")
        users = [doctor, other_doctor, pat, sam, lee]
        for user in users:
            user.hashed_password = utils.hash_password(PASSWORD)
        db.add_all(users)
        db.commit()

        def appointment(patient, day, status, phone=None):
            return models.Appointment(
                patient_id=patient.id,
                doctor_id=doctor.id,
                doctor_name=doctor.name,
                date=day,
                time_slot="10:00 AM",
                status=status,
                fee=1500.0,
                patient_name=patient.name,
                patient_email=patient.email,
                patient_phone=phone,
            )

        db.add_all(
            [
                appointment(pat, "2026-03-02", "completed", phone="+15550000001"),
                appointment(sam, "2026-03-05", "confirmed"),
                appointment(lee, "2026-03-07", "cancelled"),
                appointment(pat, "2026-04-10", "pending"),
            ]
        )
        db.add_all(
            [
                models.Review(
                    doctor_id=doctor.id,
                    patient_id=pat.id,
                    patient_name="Pat",
                    rating=5,
                    comment="Very thorough.",
                    created_at=datetime(2026, 3, 3, 9, 0),
                ),
                models.Review(
                    doctor_id=doctor.id,
                    patient_id=sam.id,
                    patient_name="Sam",
                    rating=4,
                    comment=None,
                    created_at=datetime(2026, 3, 6, 9, 0),
                ),
            ]
        )
        db.commit()
        return {"doctor": doctor.id, "other_doctor": other_doctor.id, "pat": pat.id, "sam": sam.id, "lee": lee.id}
    finally:
        db.close()


def login(client: TestClient, email: str) -> dict:
    resp = client.post("/auth/login", json={"email": email, "password": PASSWORD})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def test_doctor_patient_list_is_distinct_and_newest_first(client: TestClient):
    ids = seed()
    patients = client.get("/doctor/patients", headers=login(client, "doc@example.com")).json()

    assert [p["patient_id"] for p in patients] == [ids["pat"], ids["lee"], ids["sam"]]
    pat = patients[0]
    assert pat["last_visit"] == "2026-04-10"
    assert pat["appointment_count"] == 2
    assert pat["phone"] == "+15550000001"

    assert client.get("/doctor/patients", headers=login(client, "doc2@example.com")).json() == []
    assert client.get("/doctor/patients", headers=login(client, "pat@example.com")).status_code == 403


def test_doctor_uploads_prescription_into_patient_records(client: TestClient):
    ids = seed()
    doctor_headers = login(client, "doc@example.com")

    resp = client.post(
        f"/doctor/patients/{ids['pat']}/records",
        headers=doctor_headers,
        files={"file": ("rx.pdf", b"%PDF-1.4 amoxicillin", "application/pdf")},
    )
    assert resp.status_code == 201
    record = resp.json()
    assert record["record_type"] == "Prescription"
    assert record["uploaded_by_id"] == ids["doctor"]

    patient_headers = login(client, "pat@example.com")
    listed = client.get("/records", headers=patient_headers).json()
    assert [r["id"] for r in listed] == [record["id"]]
    download = client.get(f"/records/{record['id']}/download", headers=patient_headers)
    assert download.content == b"%PDF-1.4 amoxicillin"

    notes = client.get("/notifications", headers=patient_headers).json()
    assert [n["title"] for n in notes] == ["New Prescription"]


def test_prescription_upload_requires_an_active_appointment(client: TestClient):
    ids = seed()
    upload = {"file": ("rx.pdf", b"%PDF-1.4", "application/pdf")}

    cancelled_only = client.post(
        f"/doctor/patients/{ids['lee']}/records", headers=login(client, "doc@example.com"), files=upload
    )
    assert cancelled_only.status_code == 404

    stranger = client.post(
        f"/doctor/patients/{ids['pat']}/records", headers=login(client, "doc2@example.com"), files=upload
    )
    assert stranger.status_code == 404

    not_a_file = client.post(
        f"/doctor/patients/{ids['pat']}/records",
        headers=login(client, "doc@example.com"),
        files={"file": ("notes.txt", b"hello", "text/plain")},
    )
    assert not_a_file.status_code == 400


def test_doctor_reviews_listing(client: TestClient):
    ids = seed()

    mine = client.get("/doctor/reviews", headers=login(client, "doc@example.com")).json()
    assert mine["count"] == 2
    assert mine["average_rating"] == 4.5
    assert [r["patient_name"] for r in mine["reviews"]] == ["Sam", "Pat"]

    public = client.get(f"/doctors/{ids['doctor']}/reviews").json()
    assert public == mine

    empty = client.get(f"/doctors/{ids['other_doctor']}/reviews").json()
    assert empty == {"average_rating": None, "count": 0, "reviews": []}

    assert client.get(f"/doctors/{ids['pat']}/reviews").status_code == 404
