from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, select

from .app import app
from .database import engine
from .models import AnalyticsEvent, Company, Person
from .security import create_token, get_company_id

client = TestClient(app)

REGISTRATION = {
    "company_name": "Acme Builders",
    "name": "Ada Admin",
    "email": "ada@acme.example",
    "password": "correct-horse",
}


def register(**fields):
    payload = dict(REGISTRATION)
    payload.update(fields)
    return client.post("/api/auth/register", json=payload)


def login(email="ada@acme.example", password="correct-horse"):
    return client.post("/api/auth/login", json={"email": email, "password": password})


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def login_token():
    return login().json()["data"]["session"]["access_token"]


def test_health():
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["message"] == "SchedulePro API is running"
    assert body["timestamp"]


def test_request_id_is_echoed():
    response = client.get("/health", headers={"X-Request-ID": "req-42"})
    assert response.headers["X-Request-ID"] == "req-42"
    assert client.get("/health").headers["X-Request-ID"]


def test_unknown_route():
    response = client.get("/api/unknown")
    assert response.status_code == 404
    assert response.json() == {"status": "error", "message": "Route not found"}


def test_unhandled_error_uses_envelope():
    def broken_company_id():
        raise RuntimeError("database unavailable")

    app.dependency_overrides[get_company_id] = broken_company_id
    failing_client = TestClient(app, raise_server_exceptions=False)
    response = failing_client.get("/api/people")
    assert response.status_code == 500
    assert response.json() == {"status": "error", "message": "Internal server error"}


def test_register():
    response = register()
    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "success"
    assert body["message"] == "Registration successful"
    data = body["data"]
    assert data["user"]["email"] == "ada@acme.example"
    assert data["session"]["access_token"]
    assert data["session"]["refresh_token"]
    assert data["session"]["token_type"] == "bearer"
    assert data["profile"]["name"] == "Ada Admin"
    assert data["profile"]["company_name"] == "Acme Builders"

    with Session(engine) as session:
        company = session.exec(select(Company)).one()
        person = session.exec(select(Person)).one()
        events = session.exec(select(AnalyticsEvent)).all()
    assert company.slug == "acme-builders"
    assert str(person.company_id) == data["profile"]["company_id"]
    assert str(person.user_id) == data["user"]["id"]
    assert [event.event_name for event in events] == ["company.registered"]


@pytest.mark.parametrize(
    "company_name, slug",
    [("Café Ünion", "cafe-union"), ("  Smith & Sons, Ltd. ", "smith-sons-ltd")],
)
def test_register_slugifies_company_name(company_name, slug):
    response = register(company_name=company_name)
    assert response.status_code == 201
    with Session(engine) as session:
        assert session.exec(select(Company)).one().slug == slug


def test_register_non_latin_company_name():
    assert register(company_name="株式会社").status_code == 201
    with Session(engine) as session:
        slug = session.exec(select(Company)).one().slug
    assert slug
    assert slug.isascii()


@pytest.mark.parametrize("missing", ["company_name", "name", "email", "password"])
def test_register_missing_field(missing):
    payload = dict(REGISTRATION)
    del payload[missing]
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == 400
    assert response.json()["message"] == "Missing required fields: company_name, name, email, password"


def test_register_short_password():
    response = register(password="short")
    assert response.status_code == 400
    assert response.json()["message"] == "Password must be at least 8 characters"


def test_register_duplicate_email():
    assert register().status_code == 201
    response = register(company_name="Another Co")
    assert response.status_code == 400
    assert response.json()["message"] == "User already registered"
    with Session(engine) as session:
        assert len(session.exec(select(Company)).all()) == 1


def test_login():
    register()
    response = login()
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Login successful"
    assert body["data"]["session"]["access_token"]
    assert body["data"]["profile"]["company_name"] == "Acme Builders"


def test_login_wrong_password():
    register()
    response = login(password="wrong-password")
    assert response.status_code == 401
    assert response.json() == {"status": "error", "message": "Invalid email or password"}


def test_login_unknown_email():
    response = login(email="nobody@example.com")
    assert response.status_code == 401


def test_login_missing_fields():
    response = client.post("/api/auth/login", json={"email": "ada@acme.example"})
    assert response.status_code == 400
    assert response.json()["message"] == "Email and password are required"


def test_me():
    token = register().json()["data"]["session"]["access_token"]
    response = client.get("/api/auth/me", headers=bearer(token))
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["name"] == "Ada Admin"
    assert data["email"] == "ada@acme.example"
    assert data["company"]["name"] == "Acme Builders"
    assert data["company"]["slug"] == "acme-builders"


def test_token_gives_access_to_company_resources():
    token = register().json()["data"]["session"]["access_token"]
    response = client.post(
        "/api/vehicles", json={"name": "Van", "license_plate": "VAN-1"}, headers=bearer(token)
    )
    assert response.status_code == 201
    listed = client.get("/api/vehicles", headers=bearer(token)).json()["data"]
    assert [vehicle["license_plate"] for vehicle in listed] == ["VAN-1"]


def test_logout_revokes_token():
    register()
    token = login_token()
    response = client.post("/api/auth/logout", headers=bearer(token))
    assert response.status_code == 200
    assert response.json()["message"] == "Logout successful"

    response = client.get("/api/auth/me", headers=bearer(token))
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid or expired token. Please login again."

    # a fresh login still works
    assert client.get("/api/auth/me", headers=bearer(login_token())).status_code == 200


def test_missing_token():
    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json()["message"] == "No token provided. Please login."


@pytest.mark.parametrize(
    "headers",
    [
        {"Authorization": "Bearer not-a-jwt"},
        {"Authorization": "Token abc"},
        {"Authorization": "Basic YWRhOnBhc3M="},
    ],
)
def test_bad_authorization_header(headers):
    response = client.get("/api/auth/me", headers=headers)
    assert response.status_code == 401
    assert response.json()["status"] == "error"


def test_refresh_token_is_not_an_access_token():
    register()
    refresh_token = login().json()["data"]["session"]["refresh_token"]
    response = client.get("/api/auth/me", headers=bearer(refresh_token))
    assert response.status_code == 401


def test_expired_token():
    user_id = register().json()["data"]["user"]["id"]
    token = create_token(user_id, "access", timedelta(minutes=-5))
    response = client.get("/api/auth/me", headers=bearer(token))
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid or expired token. Please login again."
