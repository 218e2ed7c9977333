import os
import uuid

import pytest

os.environ["DATABASE_URL"] = "sqlite:///./test_schedulepro.db"
os.environ.setdefault("SECRET_KEY", "test-secret-key-with-enough-length-for-hs256")

from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session

from .app import app
from .database import engine
from .models import Company
from .security import Principal, get_current_user


@pytest.fixture(autouse=True)
def reset_database():
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    yield
    app.dependency_overrides = {}


@pytest.fixture(scope="session", autouse=True)
def drop_database():
    yield
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def session():
    with Session(engine) as session:
        yield session


def create_company(name: str) -> uuid.UUID:
    with Session(engine) as session:
        company = Company(name=name, slug=name.lower().replace(" ", "-"))
        session.add(company)
        session.commit()
        return company.id


def act_as(company_id):
    """Make every request run as a user of ``company_id`` (None for no company)."""
    principal = Principal(
        user_id=uuid.uuid4(),
        email="dispatcher@example.com",
        company_id=company_id,
    )
    app.dependency_overrides[get_current_user] = lambda: principal
    return principal


@pytest.fixture
def company_id():
    company_id = create_company("Acme Builders")
    act_as(company_id)
    return company_id


@pytest.fixture
def other_company_id():
    return create_company("Rival Works")
