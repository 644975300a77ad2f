from datetime import datetime, timedelta

import pytest

from telemed.core.config import settings
from telemed.core.security import UserRole, create_access_token
from telemed.models.consultation import Consultation, ConsultationStatus
from telemed.models.doctor import Category, Doctor
from telemed.models.patient import Patient
from telemed.services.auth_service import AuthService

from tests.conftest import (
    DOCTOR_SIGNUP, PATIENT_SIGNUP, PROVIDER_SIGNUP, auth_headers, login_token, signup
)

@pytest.fixture
def doctor_token(client):
    signup(client, DOCTOR_SIGNUP)
    return login_token(client, DOCTOR_SIGNUP)

@pytest.fixture
def patient_token(client):
    signup(client, PATIENT_SIGNUP)
    return login_token(client, PATIENT_SIGNUP)

class TestAccessMiddleware:

    @pytest.mark.parametrize("path", ["/api/v1/patients", "/api/v1/consultations", "/api/v1/patients/me"])
    def test_missing_header(self, client, path):
        response = client.get(path)
        assert response.status_code == 401
        assert response.json() == {"error": "unauthorized", "message": "Unauthorized"}
        assert response.headers["www-authenticate"] == "Bearer"

    @pytest.mark.parametrize("header", ["Token abc", "Bearer", "Basic dXNlcjpwYXNz"])
    def test_malformed_header(self, client, header):
        response = client.get("/api/v1/patients", headers={"Authorization": header})
        assert response.status_code == 401

    def test_token_failures_look_the_same(self, client):
        """Bad signature, expiry and garbage are all the same 401."""
        expired = create_access_token(1, UserRole.DOCTOR, expires_delta=timedelta(seconds=-5))
        valid = create_access_token(1, UserRole.DOCTOR)
        tampered = valid[:-4] + ("AAAA" if not valid.endswith("AAAA") else "BBBB")

        bodies = []
        for token in (expired, tampered, "garbage"):
            response = client.get("/api/v1/patients", headers=auth_headers(token))
            assert response.status_code == 401
            bodies.append(response.json())
        assert bodies[0] == bodies[1] == bodies[2]

    def test_unprotected_path_passes(self, client):
        response = client.get("/api/v1/doctors")
        assert response.status_code == 200

    def test_missing_secret_is_server_error(self, client, monkeypatch):
        token = create_access_token(1, UserRole.DOCTOR)
        monkeypatch.setattr(settings, "JWT_SECRET", None)

        response = client.get("/api/v1/patients", headers=auth_headers(token))
        assert response.status_code == 500
        assert response.json()["error"] == "server_misconfigured"

class TestPatients:

    def test_list_requires_doctor(self, client, patient_token):
        response = client.get("/api/v1/patients", headers=auth_headers(patient_token))
        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"

    def test_provider_is_forbidden(self, client):
        signup(client, PROVIDER_SIGNUP)
        token = login_token(client, PROVIDER_SIGNUP)

        response = client.get("/api/v1/patients", headers=auth_headers(token))
        assert response.status_code == 403

    def test_list_as_doctor(self, client, patient_token, doctor_token):
        response = client.get("/api/v1/patients", headers=auth_headers(doctor_token))
        assert response.status_code == 200

        patients = response.json()["patients"]
        assert len(patients) == 1
        assert patients[0]["fullName"] == "A B"
        assert patients[0]["user"] == {"email": "a@b.com"}

    def test_my_profile(self, client, patient_token):
        response = client.get("/api/v1/patients/me", headers=auth_headers(patient_token))
        assert response.status_code == 200

        patient = response.json()["patient"]
        assert patient["phone"] == "1234567890"
        assert patient["user"]["email"] == "a@b.com"
        assert patient["user"]["role"] == "PATIENT"

    def test_my_profile_not_found_for_doctor(self, client, doctor_token):
        """A caller without a patient profile gets 404, not 403."""
        response = client.get("/api/v1/patients/me", headers=auth_headers(doctor_token))
        assert response.status_code == 404
        assert response.json() == {"error": "not_found", "message": "Profile not found"}

class TestConsultations:

    def _schedule(self, db, doctor_email, patient_email, hours):
        doctor = db.query(Doctor).join(Doctor.user).filter_by(email=doctor_email).one()
        patient = db.query(Patient).join(Patient.user).filter_by(email=patient_email).one()
        consultation = Consultation(
            doctor_id=doctor.id,
            patient_id=patient.id,
            scheduled_time=datetime(2030, 1, 1, 9, 0) + timedelta(hours=hours),
        )
        db.add(consultation)
        db.commit()
        return consultation.id

    def test_requires_doctor(self, client, patient_token):
        response = client.get("/api/v1/consultations", headers=auth_headers(patient_token))
        assert response.status_code == 403

    def test_requires_token(self, client):
        assert client.get("/api/v1/consultations").status_code == 401

    def test_doctor_sees_own_consultations_in_order(self, client, db, patient_token, doctor_token):
        other_doctor = {**DOCTOR_SIGNUP, "email": "other@example.com"}
        signup(client, other_doctor)

        later = self._schedule(db, DOCTOR_SIGNUP["email"], PATIENT_SIGNUP["email"], hours=5)
        earlier = self._schedule(db, DOCTOR_SIGNUP["email"], PATIENT_SIGNUP["email"], hours=1)
        self._schedule(db, other_doctor["email"], PATIENT_SIGNUP["email"], hours=2)

        response = client.get("/api/v1/consultations", headers=auth_headers(doctor_token))
        assert response.status_code == 200

        consultations = response.json()["consultations"]
        assert [c["id"] for c in consultations] == [earlier, later]
        assert consultations[0]["status"] == ConsultationStatus.SCHEDULED.value
        assert consultations[0]["patient"]["user"]["email"] == "a@b.com"
        assert "scheduledTime" in consultations[0]

class TestDoctors:

    def test_list_with_category_filter(self, client, db):
        signup(client, DOCTOR_SIGNUP)
        signup(client, {**DOCTOR_SIGNUP, "email": "derm@example.com", "fullName": "Derm"})

        cardiology = db.query(Category).filter_by(name="Cardiology").one()
        house = db.query(Doctor).join(Doctor.user).filter_by(email=DOCTOR_SIGNUP["email"]).one()
        house.categories.append(cardiology)
        db.commit()

        everyone = client.get("/api/v1/doctors").json()["doctors"]
        assert len(everyone) == 2

        cardiologists = client.get("/api/v1/doctors", params={"category": "Cardiology"}).json()["doctors"]
        assert [d["fullName"] for d in cardiologists] == ["Gregory House"]
        assert cardiologists[0]["categories"] == [{"id": cardiology.id, "name": "Cardiology"}]

        assert client.get("/api/v1/doctors", params={"category": "Oncology"}).json()["doctors"] == []

    def test_get_doctor(self, client):
        signup(client, DOCTOR_SIGNUP)
        doctor_id = client.get("/api/v1/doctors").json()["doctors"][0]["id"]

        response = client.get(f"/api/v1/doctors/{doctor_id}")
        assert response.status_code == 200
        assert response.json()["doctor"]["degree"] == "MD"

    def test_get_missing_doctor(self, client):
        response = client.get("/api/v1/doctors/9999")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

class TestCors:

    def test_preflight_returns_204(self, client):
        response = client.options(
            "/api/v1/auth/signup",
            headers={
                "Origin": "http://localhost:5173",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "Content-Type, Authorization",
            },
        )
        assert response.status_code == 204
        assert response.headers["access-control-allow-origin"] == "*"

    @pytest.mark.parametrize("path", ["/api/v1/patients", "/api/v1/doctors", "/api/v1/auth/login"])
    def test_bare_options_returns_204(self, client, path):
        response = client.options(path)
        assert response.status_code == 204
        assert response.headers["access-control-allow-origin"] == "*"

    def test_preflight_allows_any_request_header(self, client):
        response = client.options(
            "/api/v1/auth/login",
            headers={
                "Origin": "http://localhost:5173",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "content-type, x-requested-with",
            },
        )
        assert response.status_code == 204
        assert response.headers["access-control-allow-origin"] == "*"

    def test_unexpected_errors_carry_cors_headers(self, client, monkeypatch):
        def exploding_profile(self, user, payload):
            raise RuntimeError("profile store unavailable")

        monkeypatch.setattr(AuthService, "_build_profile", exploding_profile)

        response = client.post(
            "/api/v1/auth/signup",
            json=PATIENT_SIGNUP,
            headers={"Origin": "http://localhost:5173"},
        )
        assert response.status_code == 500
        assert response.json() == {
            "error": "internal_error",
            "message": "An unexpected error occurred",
        }
        assert response.headers["access-control-allow-origin"] == "*"

    def test_error_responses_carry_cors_headers(self, client):
        response = client.get("/api/v1/patients", headers={"Origin": "http://localhost:5173"})
        assert response.status_code == 401
        assert response.headers["access-control-allow-origin"] == "*"

class TestServiceEndpoints:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_unknown_route(self, client):
        response = client.get("/api/v1/nope")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.parametrize("method,path", [
        ("GET", "/does-not-exist"),
        ("POST", "/does-not-exist"),
        ("POST", "/api/v1/nope"),
    ])
    def test_unknown_route_any_method(self, client, method, path):
        response = client.request(method, path)
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_known_route_wrong_method(self, client):
        response = client.post("/api/v1/doctors")
        assert response.status_code == 405
        assert response.json()["error"] == "method_not_allowed"

class TestHandlersRunInThreadpool:

    def test_blocking_routes_are_sync(self):
        """bcrypt and sync SQLAlchemy work must not run on the event loop."""
        import asyncio
        from telemed.api.v1 import auth, consultations, doctors, patients

        routes = [
            auth.signup, auth.login, auth.get_current_user_info,
            doctors.list_doctors, doctors.get_doctor,
            patients.list_patients, patients.get_my_profile,
            consultations.list_consultations,
        ]
        for route in routes:
            assert not asyncio.iscoroutinefunction(route), route.__name__
