import os

# Must be set before the application settings are imported
os.environ["TESTING"] = "1"
os.environ.setdefault("TEST_DATABASE_URL", "sqlite:///./test_hospital.db")

import pytest
from fastapi.testclient import TestClient

from hospital.main import app
from hospital.core.database import Base, SessionLocal, engine, get_redis, init_db
from hospital.seeds import seed_admin

PASSWORD = "TestPassword123"

class FakeRedis:
    """In-memory stand-in for the handful of Redis commands the rate limiter uses."""

    def __init__(self):
        self.data = {}

    def get(self, key):
        return self.data.get(key)

    def setex(self, key, time, value):
        self.data[key] = str(value)
        return True

    def incr(self, key):
        self.data[key] = str(int(self.data.get(key, "0")) + 1)
        return int(self.data[key])

@pytest.fixture(scope="function")
def test_db():
    # Create tables
    init_db()
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def fake_redis():
    redis = FakeRedis()
    app.dependency_overrides[get_redis] = lambda: redis
    yield redis
    app.dependency_overrides.pop(get_redis, None)

@pytest.fixture
def client(test_db, fake_redis):
    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client

@pytest.fixture
def db_session(test_db):
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}

def register(client, name, email, role):
    """Register a user and return their bearer headers."""
    response = client.post("/api/v1/auth/register", json={
        "name": name,
        "email": email,
        "password": PASSWORD,
        "role": role,
    })
    assert response.status_code == 201, response.text
    return auth_headers(response.json()["token"])

@pytest.fixture
def patient_headers(client):
    headers = register(client, "Alice Johnson", "alice@example.com", "PATIENT")
    response = client.post("/api/v1/patients", json={
        "age": 34, "gender": "Female", "phone": "555-0101"
    }, headers=headers)
    assert response.status_code == 201, response.text
    return headers

@pytest.fixture
def doctor_headers(client):
    headers = register(client, "Dr. John Smith", "john.smith@example.com", "DOCTOR")
    response = client.post("/api/v1/doctors", json={
        "specialization": "Cardiology", "department": "Cardiology"
    }, headers=headers)
    assert response.status_code == 201, response.text
    return headers

@pytest.fixture
def other_doctor_headers(client):
    headers = register(client, "Dr. Emily Chen", "emily.chen@example.com", "DOCTOR")
    response = client.post("/api/v1/doctors", json={
        "specialization": "Pediatrics", "department": "Pediatrics"
    }, headers=headers)
    assert response.status_code == 201, response.text
    return headers

@pytest.fixture
def admin_headers(client, db_session):
    seed_admin(db_session, "Admin User", "admin@example.com", PASSWORD)
    response = client.post("/api/v1/auth/login", json={
        "email": "admin@example.com", "password": PASSWORD
    })
    assert response.status_code == 200, response.text
    return auth_headers(response.json()["token"])
