from datetime import datetime, timedelta, timezone

import pytest

from hospital.core.config import settings
from hospital.models.appointment import Appointment, AppointmentStatus
from tests.conftest import register

def own_doctor_id(client, headers, email):
    doctors = client.get("/api/v1/doctors", headers=headers).json()
    return next(d["id"] for d in doctors if d["user"]["email"] == email)

def own_patient_id(client, headers):
    return client.get("/api/v1/patients", params={"me": "true"}, headers=headers).json()["id"]

def book(client, headers, doctor_id, date="2030-01-15T10:00:00"):
    return client.post("/api/v1/appointments", json={
        "date": date,
        "doctorId": doctor_id,
    }, headers=headers)

@pytest.fixture
def doctor_id(client, doctor_headers):
    return own_doctor_id(client, doctor_headers, "john.smith@example.com")

@pytest.fixture
def other_doctor_id(client, other_doctor_headers):
    return own_doctor_id(client, other_doctor_headers, "emily.chen@example.com")

@pytest.fixture
def appointment(client, patient_headers, doctor_id):
    response = book(client, patient_headers, doctor_id)
    assert response.status_code == 201, response.text
    return response.json()

def set_status(client, headers, appointment_id, status):
    return client.put("/api/v1/appointments", json={
        "id": appointment_id,
        "status": status,
    }, headers=headers)

class TestCreateAppointment:

    def test_create_appointment(self, client, patient_headers, doctor_id):
        response = book(client, patient_headers, doctor_id)
        assert response.status_code == 201

        data = response.json()
        assert data["status"] == "PENDING"
        assert data["date"] == "2030-01-15T10:00:00"
        assert data["doctorId"] == doctor_id
        assert data["patient"]["user"]["name"] == "Alice Johnson"
        assert data["doctor"]["user"]["email"] == "john.smith@example.com"

    def test_create_accepts_snake_case(self, client, patient_headers, doctor_id):
        response = client.post("/api/v1/appointments", json={
            "date": "2030-01-15T10:00:00",
            "doctor_id": doctor_id,
        }, headers=patient_headers)
        assert response.status_code == 201

    def test_timezone_aware_date_stored_as_local_time(self, client, patient_headers, doctor_id):
        response = book(client, patient_headers, doctor_id, date="2030-01-15T10:00:00+00:00")
        assert response.status_code == 201

        expected = datetime(2030, 1, 15, 10, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
        assert response.json()["date"] == expected.isoformat()

    def test_unknown_doctor(self, client, patient_headers):
        response = book(client, patient_headers, 9999)
        assert response.status_code == 400
        assert response.json()["detail"] == "Doctor not found"

    def test_unparsable_date(self, client, patient_headers, doctor_id):
        response = book(client, patient_headers, doctor_id, date="next tuesday-ish")
        assert response.status_code == 400

    def test_missing_fields(self, client, patient_headers):
        response = client.post("/api/v1/appointments", json={"date": "2030-01-15T10:00:00"}, headers=patient_headers)
        assert response.status_code == 400

    def test_requires_patient_profile(self, client, doctor_id):
        headers = register(client, "Bob Smith", "bob@example.com", "PATIENT")

        response = book(client, headers, doctor_id)
        assert response.status_code == 404

    def test_doctor_cannot_book(self, client, doctor_headers, doctor_id):
        response = book(client, doctor_headers, doctor_id)
        assert response.status_code == 403

    def test_requires_authentication(self, client):
        response = client.post("/api/v1/appointments", json={"date": "2030-01-15T10:00:00", "doctorId": 1})
        assert response.status_code == 401

class TestListAppointments:

    def test_requires_authentication(self, client):
        assert client.get("/api/v1/appointments").status_code == 401

    def test_patient_must_scope(self, client, patient_headers):
        response = client.get("/api/v1/appointments", headers=patient_headers)
        assert response.status_code == 400

    def test_invalid_scope(self, client, patient_headers):
        response = client.get("/api/v1/appointments", params={"me": "nurse"}, headers=patient_headers)
        assert response.status_code == 400

    def test_patient_scope_without_profile(self, client):
        headers = register(client, "Bob Smith", "bob@example.com", "PATIENT")

        response = client.get("/api/v1/appointments", params={"me": "patient"}, headers=headers)
        assert response.status_code == 404
        assert response.json()["detail"] == "Patient profile not found"

    def test_patient_cannot_act_as_doctor(self, client, patient_headers):
        response = client.get("/api/v1/appointments", params={"me": "doctor"}, headers=patient_headers)
        assert response.status_code == 404

    def test_scoped_listing_is_ordered(self, client, patient_headers, doctor_headers,
                                       doctor_id, other_doctor_headers, other_doctor_id):
        book(client, patient_headers, doctor_id, date="2030-03-01T10:00:00")
        book(client, patient_headers, other_doctor_id, date="2030-01-01T10:00:00")
        book(client, patient_headers, doctor_id, date="2030-02-01T10:00:00")

        response = client.get("/api/v1/appointments", params={"me": "patient"}, headers=patient_headers)
        assert response.status_code == 200
        dates = [a["date"] for a in response.json()]
        assert dates == ["2030-01-01T10:00:00", "2030-02-01T10:00:00", "2030-03-01T10:00:00"]

        response = client.get("/api/v1/appointments", params={"me": "doctor"}, headers=doctor_headers)
        assert [a["date"] for a in response.json()] == ["2030-02-01T10:00:00", "2030-03-01T10:00:00"]
        assert all(a["patient"]["user"]["name"] == "Alice Johnson" for a in response.json())

        response = client.get("/api/v1/appointments", params={"me": "doctor"}, headers=other_doctor_headers)
        assert len(response.json()) == 1

    def test_admin_sees_everything(self, client, admin_headers, patient_headers,
                                   doctor_id, other_doctor_id):
        book(client, patient_headers, doctor_id)
        book(client, patient_headers, other_doctor_id)

        response = client.get("/api/v1/appointments", headers=admin_headers)
        assert response.status_code == 200
        assert len(response.json()) == 2

    def test_admin_scope_without_profile(self, client, admin_headers):
        response = client.get("/api/v1/appointments", params={"me": "doctor"}, headers=admin_headers)
        assert response.status_code == 404

    def test_today_filter(self, client, db_session, admin_headers, patient_headers, doctor_id):
        patient_id = own_patient_id(client, patient_headers)
        midnight = datetime.now().replace(hour=0, minute=0, second=0, microsecond=0)

        for when in (midnight + timedelta(hours=9),
                     midnight - timedelta(minutes=1),
                     midnight + timedelta(days=1)):
            db_session.add(Appointment(patient_id=patient_id, doctor_id=doctor_id, date=when))
        db_session.commit()

        response = client.get("/api/v1/appointments", params={"date": "today"}, headers=admin_headers)
        assert response.status_code == 200
        assert [a["date"] for a in response.json()] == [(midnight + timedelta(hours=9)).isoformat()]

        response = client.get("/api/v1/appointments", headers=admin_headers)
        assert len(response.json()) == 3

    def test_today_filter_combines_with_scope(self, client, db_session, patient_headers,
                                              doctor_headers, doctor_id, other_doctor_id):
        patient_id = own_patient_id(client, patient_headers)
        today_nine = datetime.now().replace(hour=9, minute=0, second=0, microsecond=0)

        db_session.add(Appointment(patient_id=patient_id, doctor_id=doctor_id, date=today_nine))
        db_session.add(Appointment(patient_id=patient_id, doctor_id=other_doctor_id, date=today_nine))
        db_session.commit()

        response = client.get("/api/v1/appointments", params={"me": "doctor", "date": "today"},
                              headers=doctor_headers)
        assert response.status_code == 200
        assert len(response.json()) == 1
        assert response.json()[0]["doctorId"] == doctor_id

    def test_unsupported_date_filter(self, client, admin_headers):
        response = client.get("/api/v1/appointments", params={"date": "yesterday"}, headers=admin_headers)
        assert response.status_code == 400

class TestUpdateAppointmentStatus:

    def test_doctor_confirms_own_appointment(self, client, db_session, doctor_headers, appointment):
        response = set_status(client, doctor_headers, appointment["id"], "CONFIRMED")
        assert response.status_code == 200
        assert response.json()["status"] == "CONFIRMED"

        stored = db_session.query(Appointment.status).filter(Appointment.id == appointment["id"]).scalar()
        assert stored == AppointmentStatus.CONFIRMED

    def test_doctor_cannot_update_other_doctors_appointment(self, client, other_doctor_headers, appointment):
        response = set_status(client, other_doctor_headers, appointment["id"], "CONFIRMED")
        assert response.status_code == 403

    def test_patient_cannot_update(self, client, patient_headers, appointment):
        response = set_status(client, patient_headers, appointment["id"], "CANCELLED")
        assert response.status_code == 403

    def test_admin_updates_any_appointment(self, client, admin_headers, appointment):
        response = set_status(client, admin_headers, appointment["id"], "CANCELLED")
        assert response.status_code == 200
        assert response.json()["status"] == "CANCELLED"

    def test_unknown_appointment(self, client, admin_headers):
        response = set_status(client, admin_headers, 9999, "CONFIRMED")
        assert response.status_code == 404

    def test_invalid_status(self, client, doctor_headers, appointment):
        response = set_status(client, doctor_headers, appointment["id"], "DONE")
        assert response.status_code == 400

    def test_missing_fields(self, client, doctor_headers, appointment):
        response = client.put("/api/v1/appointments", json={"id": appointment["id"]}, headers=doctor_headers)
        assert response.status_code == 400

    def test_full_workflow(self, client, doctor_headers, appointment):
        assert set_status(client, doctor_headers, appointment["id"], "CONFIRMED").status_code == 200
        assert set_status(client, doctor_headers, appointment["id"], "COMPLETED").status_code == 200

    def test_terminal_status_is_final(self, client, doctor_headers, appointment):
        set_status(client, doctor_headers, appointment["id"], "CONFIRMED")
        set_status(client, doctor_headers, appointment["id"], "COMPLETED")

        response = set_status(client, doctor_headers, appointment["id"], "PENDING")
        assert response.status_code == 400
        assert "COMPLETED" in response.json()["detail"]

    def test_cannot_complete_unconfirmed(self, client, doctor_headers, appointment):
        response = set_status(client, doctor_headers, appointment["id"], "COMPLETED")
        assert response.status_code == 400

    def test_permissive_mode_accepts_any_status(self, client, monkeypatch, admin_headers, appointment):
        monkeypatch.setattr(settings, "ENFORCE_STATUS_TRANSITIONS", False)

        set_status(client, admin_headers, appointment["id"], "COMPLETED")
        response = set_status(client, admin_headers, appointment["id"], "PENDING")
        assert response.status_code == 200
        assert response.json()["status"] == "PENDING"
