import uuid
from datetime import timedelta

from extensions import db, bcrypt
from models.agendamento import Agendamento
from models.lead import Lead
from models.unit import Unit
from models.user import User
from utils.dates import utcnow

PASSWORD = "1234567890"  # mesma senha para todos os seeds

UNIT_NAME = "Unidade Demo"

USERS = [
    {"name": "Master",    "email": "master@demo.com",    "is_master": True,  "is_admin": True,  "role": "master"},
    {"name": "Admin",     "email": "admin@demo.com",     "is_master": False, "is_admin": True,  "role": "admin"},
    {"name": "Consultor", "email": "consultor@demo.com", "is_master": False, "is_admin": False, "role": "consultor"},
]

LEADS = [
    {"name": "Ana Souza",     "whatsapp_number": "5511990000001", "discipline": "natação",   "status": "novo_lead"},
    {"name": "Bruno Lima",    "whatsapp_number": "5511990000002", "discipline": "pilates",   "status": "agendado"},
    {"name": "Carla Mendes",  "whatsapp_number": "5511990000003", "discipline": "natação",   "status": "follow_up_1"},
    {"name": "Diego Alves",   "whatsapp_number": "5511990000004", "discipline": "musculação", "status": "em_espera"},
]


def _get_or_create_unit() -> Unit:
    unit = Unit.query.filter_by(name=UNIT_NAME).first()
    if unit:
        return unit
    unit_id = uuid.uuid4()
    unit = Unit(id=unit_id, tenant_id=unit_id, name=UNIT_NAME, phone="1130000000")
    db.session.add(unit)
    db.session.flush()
    return unit


def _upsert_user(unit: Unit, data: dict) -> User:
    user = User.query.filter_by(email=data["email"]).first()
    pwd_hash = bcrypt.generate_password_hash(PASSWORD).decode("utf-8")
    if not user:
        user = User(id=uuid.uuid4(), email=data["email"])
        db.session.add(user)
    user.tenant_id = unit.id
    user.unit_id = unit.id
    user.name = data["name"]
    user.password_hash = pwd_hash
    user.role = data["role"]
    user.is_master = data["is_master"]
    user.is_admin = data["is_admin"]
    return user


def _ensure_lead(unit: Unit, consultant: User, data: dict) -> Lead:
    lead = Lead.query.filter_by(tenant_id=unit.id, whatsapp_number=data["whatsapp_number"]).first()
    if lead:
        return lead
    lead = Lead(
        id=uuid.uuid4(),
        tenant_id=unit.id,
        unit_id=unit.id,
        user_id=consultant.id,
        name=data["name"],
        whatsapp_number=data["whatsapp_number"],
        discipline=data["discipline"],
        age_group="adulto",
        who_searched="Própria pessoa",
        origin_channel="Manual",
        interest_level="morno",
        status=data["status"],
    )
    db.session.add(lead)
    if data["status"] == "agendado":
        when = utcnow() + timedelta(hours=6)
        lead.scheduled_date = when
        db.session.add(Agendamento(
            id=uuid.uuid4(),
            tenant_id=unit.id,
            lead_id=lead.id,
            user_id=consultant.id,
            data_agendamento=when,
            tipo="visita",
        ))
    return lead


def run():
    unit = _get_or_create_unit()
    users = [_upsert_user(unit, u) for u in USERS]
    db.session.flush()
    consultant = users[-1]
    for data in LEADS:
        _ensure_lead(unit, consultant, data)
    db.session.commit()

    print(f"Seeded unit: {unit.name} ({unit.id})")
    print("Seeded users:")
    for u in USERS:
        print(f" - {u['email']} ({u['role']}) / {PASSWORD}")
    print(f"Seeded leads: {len(LEADS)}")
