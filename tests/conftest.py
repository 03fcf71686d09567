from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from serena import auth_service, services
from serena.api_main import create_app
from serena.auth_models import Principal, Role
from serena.auth_security import create_access_token
from serena.config import Settings
from serena.db import Database
from serena.models import CareType


PASSWORD = "segredo123"


def patient_data(**overrides):
    data = {
        "name": "Maria Silva",
        "age": 34,
        "email": "maria@clinica.com.br",
        "phone": "(11) 98765-4321",
        "emergency_contact": "José Silva",
        "emergency_phone": "(11) 91234-5678",
    }
    data.update(overrides)
    return data


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def settings():
    return Settings(database_url="sqlite://", jwt_secret="test-secret", log_level="WARNING")


@pytest.fixture
def db():
    # SQLite em memória compartilhado entre threads (TestClient)
    database = Database("sqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False})
    database.create_all()
    yield database
    database.dispose()


def _principal(db, name, email, role=Role.PSYCHOLOGIST):
    u = auth_service.create_user(db, name, email, PASSWORD, role=role)
    return Principal.from_user(u)


@pytest.fixture
def alice(db):
    return _principal(db, "Alice Souza", "alice@clinica.com.br")


@pytest.fixture
def bob(db):
    return _principal(db, "Bruno Lima", "bruno@clinica.com.br")


@pytest.fixture
def root(db):
    return _principal(db, "Super Admin", "root@clinica.com.br", role=Role.SUPER_ADMIN)


@pytest.fixture
def make_patient(db):
    def _make(principal, **overrides):
        return services.create_patient(db, principal, patient_data(**overrides))

    return _make


@pytest.fixture
def make_appointment(db):
    def _make(principal, patient_id, when, duration=50, mode="legacy", **extra):
        data = {"patient_id": patient_id, "date": when, "duration": duration, "type": CareType.PRESENCIAL}
        data.update(extra)
        return services.create_appointment(db, principal, data, conflict_mode=mode)

    return _make


@pytest.fixture
def client(settings, db):
    app = create_app(settings=settings, database=db)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def token_for(settings):
    def _token(principal):
        return create_access_token(principal, settings)

    return _token


@pytest.fixture
def day():
    return datetime(2030, 3, 14)
