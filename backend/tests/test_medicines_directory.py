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


def seed():
    db = TestingSessionLocal()
    try:
        users = [
            models.User(email="rx1@example.com", role="pharmacy", profile_json='{"pharmacy_name": "Rx One"}'),
            models.User(email="rx2@example.com", role="pharmacy", profile_json='{"pharmacy_name": "Rx Two"}'),
            models.User(
                email="card@example.com",
                name="Rao",
                role="doctor",
                profile_json='{"specialization": "Cardiologist", "rating_average": 4.7}',
            ),
            models.User(
                email="derm@example.com",
                name="Iqbal",
                role="doctor",
                profile_json='{"specialization": "Dermatologist", "rating_average": 3.9}',
            ),
            models.User(
                email="city@example.com",
                role="hospital",
                profile_json='{"hospital_name": "City Hospital", "facilities": ["ICU", "Emergency"]}',
            ),
            models.User(
                email="clinic@example.com",
                role="hospital",
                profile_json='{"hospital_name": "Small Clinic", "facilities": ["Pharmacy"]}',
            ),
        ]
        for user in users:
            user.hashed_password = utils.hash_password(PASSWORD)
        db.add_all(users)
        db.commit()
        rx1, rx2 = users[0], users[1]
        db.add_all(
            [
                models.Medicine(name="Panadol", category="Pain", price=30.0, stock=40, pharmacy_id=rx1.id),
                models.Medicine(name="Panadol Extra", category="Pain", price=55.0, stock=0, pharmacy_id=rx2.id),
                models.Medicine(name="Augmentin", category="Antibiotic", price=480.0, stock=12, pharmacy_id=rx2.id),
            ]
        )
        db.commit()
    finally:
        db.close()


def login(client: TestClient, email: str) -> dict:
    resp = client.post("/auth/login", json={"email": email, "password": PASSWORD})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def test_medicine_search_filters_and_sorting(client: TestClient):
    seed()
    names = lambda resp: [m["name"] for m in resp.json()]  # noqa: E731

    assert names(client.get("/medicines/?q=panadol&sort_by=price_desc")) == ["Panadol Extra", "Panadol"]
    assert names(client.get("/medicines/?max_price=100&sort_by=price_asc")) == ["Panadol", "Panadol Extra"]
    assert names(client.get("/medicines/?category=antibiotic")) == ["Augmentin"]
    assert client.get("/medicines/?sort_by=random").status_code == 422


def test_pharmacy_manages_only_its_own_inventory(client: TestClient):
    seed()
    rx1 = login(client, "rx1@example.com")
    rx2 = login(client, "rx2@example.com")

    created = client.post("/medicines/", headers=rx1, json={"name": "Brufen", "price": 90, "stock": 15})
    assert created.status_code == 201
    medicine_id = created.json()["id"]

    assert [m["name"] for m in client.get("/medicines/mine", headers=rx1).json()] == ["Brufen", "Panadol"]
    assert client.patch(f"/medicines/{medicine_id}", headers=rx2, json={"stock": 1}).status_code == 404

    updated = client.patch(f"/medicines/{medicine_id}", headers=rx1, json={"stock": 3})
    assert updated.json()["stock"] == 3
    assert client.post("/medicines/", headers=rx1, json={"name": "Bad", "price": -1, "stock": 1}).status_code == 422

    assert client.delete(f"/medicines/{medicine_id}", headers=rx1).status_code == 204
    assert client.get(f"/medicines/{medicine_id}").status_code == 404


def test_doctor_directory(client: TestClient):
    seed()
    all_doctors = client.get("/doctors").json()
    assert [d["name"] for d in all_doctors] == ["Rao", "Iqbal"]

    cardio = client.get("/doctors?specialization=cardio").json()
    assert [d["specialization"] for d in cardio] == ["Cardiologist"]
    assert [d["name"] for d in client.get("/doctors?min_rating=4").json()] == ["Rao"]

    doctor_id = cardio[0]["id"]
    assert client.get(f"/doctors/{doctor_id}").json()["rating"] == 4.7
    pharmacy_id = client.get("/medicines/?q=augmentin").json()[0]["pharmacy_id"]
    assert client.get(f"/doctors/{pharmacy_id}").status_code == 404


def test_hospital_directory_facility_filter(client: TestClient):
    seed()
    assert [h["name"] for h in client.get("/hospitals").json()] == ["City Hospital", "Small Clinic"]
    icu = client.get("/hospitals?facilities=icu&facilities=emergency").json()
    assert [h["name"] for h in icu] == ["City Hospital"]
