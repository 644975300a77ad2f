"""
Shared fixtures. The environment is set before the application is imported
so settings and the engine pick up the in-memory test database.
"""
import os

os.environ["TESTING"] = "1"
os.environ["TEST_DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret-key"
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient

from telemed.main import app
from telemed.core.database import Base, SessionLocal, engine, init_db

PATIENT_SIGNUP = {
    "email": "a@b.com",
    "password": "secret1",
    "role": "PATIENT",
    "fullName": "A B",
    "phone": "1234567890",
}

DOCTOR_SIGNUP = {
    "email": "doc@example.com",
    "password": "doctorpass",
    "role": "DOCTOR",
    "fullName": "Gregory House",
    "phone": "5550001111",
    "degree": "MD",
    "experience": 12,
    "description": "Diagnostic medicine",
}

PROVIDER_SIGNUP = {
    "email": "clinic@example.com",
    "password": "providerpass",
    "role": "PROVIDER",
    "name": "Princeton Clinic",
    "phone": "5552223333",
    "address": "1 Main St",
    "description": "Outpatient clinic",
}

@pytest.fixture(scope="function")
def test_db():
    # Create tables
    init_db()
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def db(test_db):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()

@pytest.fixture
def client(test_db):
    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client

def signup(client, payload):
    return client.post("/api/v1/auth/signup", json=payload)

def login_token(client, payload):
    response = client.post(
        "/api/v1/auth/login",
        json={"email": payload["email"], "password": payload["password"]},
    )
    assert response.status_code == 200, response.text
    return response.json()["token"]

def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}
