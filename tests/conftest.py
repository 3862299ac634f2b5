# tests/conftest.py
import os
import uuid

# Config lê o ambiente no import; SQLite em memória para os testes
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-only-for-pytest-runs")

import pytest

from app import create_app
from auth.service import hash_password, issue_token
from extensions import db
from models.lead import Lead
from models.unit import Unit
from models.user import User

PASSWORD = "1234567890"  # mesma p/ todos


@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "BCRYPT_LOG_ROUNDS": 4,
        "WHATSAPP_DEFAULT_TENANT_ID": None,
        "REMINDER_WEBHOOK_URL": None,
    })
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


# ---- Utils simples pra gerar dados ----
def make_unit(name="Unidade Centro"):
    unit_id = uuid.uuid4()
    unit = Unit(id=unit_id, tenant_id=unit_id, name=name)
    db.session.add(unit)
    db.session.commit()
    return unit


def make_user(unit, name="Consultor", email=None, is_admin=False, is_master=False):
    user = User(
        id=uuid.uuid4(),
        tenant_id=unit.id,
        unit_id=unit.id,
        name=name,
        email=email or f"{uuid.uuid4().hex[:8]}@x.com",
        password_hash=hash_password(PASSWORD),
        role="admin" if is_admin else "consultor",
        is_admin=is_admin,
        is_master=is_master,
    )
    db.session.add(user)
    db.session.commit()
    return user


_phone_seq = iter(range(10**6))


def rand_phone():
    return f"55119{next(_phone_seq):08d}"


def make_lead(unit, **fields):
    data = {
        "name": "Lead Teste",
        "whatsapp_number": rand_phone(),
        "discipline": "natação",
        "age_group": "adulto",
        "who_searched": "Própria pessoa",
        "origin_channel": "Manual",
        "interest_level": "morno",
        "status": "novo_lead",
    }
    data.update(fields)
    lead = Lead(id=uuid.uuid4(), tenant_id=unit.id, **data)
    db.session.add(lead)
    db.session.commit()
    return lead


def auth_headers(user):
    return {"Authorization": f"Bearer {issue_token(user)}"}


# ---- Fixtures por papel ----
@pytest.fixture
def unit(app):
    return make_unit()


@pytest.fixture
def admin(unit):
    return make_user(unit, name="Admin", is_admin=True)


@pytest.fixture
def consultant(unit):
    return make_user(unit, name="Consultor")


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def consultant_headers(consultant):
    return auth_headers(consultant)
