from __future__ import annotations

import logging
import uuid

from flask_jwt_extended import create_access_token

from extensions import bcrypt, db
from models.unit import Unit
from models.user import User
from units.service import build_unit
from utils.errors import Conflict, InvalidArgument, Unauthenticated

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def hash_password(password: str) -> str:
    return bcrypt.generate_password_hash(password).decode("utf-8")


def issue_token(user: User) -> str:
    return create_access_token(
        identity=str(user.id),
        additional_claims={
            "tenant_id": str(user.tenant_id),
            "is_master": bool(user.is_master),
            "is_admin": bool(user.is_admin),
        },
    )


def serialize_user(user: User) -> dict:
    return {
        "id": str(user.id),
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "tenant_id": str(user.tenant_id),
        "unit_id": str(user.unit_id) if user.unit_id else None,
        "is_master": bool(user.is_master),
        "is_admin": bool(user.is_admin),
    }


def register_tenant(name, email, password, unit_name=None) -> tuple[User, Unit]:
    """
    Cria unidade (tenant_id = próprio id) + primeiro usuário admin numa única
    transação. Se qualquer passo falhar nada fica gravado.
    """
    name = (name or "").strip()
    email = (email or "").strip().lower()
    password = password or ""
    if not name:
        raise InvalidArgument("Nome é obrigatório")
    if not email:
        raise InvalidArgument("Email é obrigatório")
    if len(password.strip()) < MIN_PASSWORD_LENGTH:
        raise InvalidArgument("Senha deve ter pelo menos 6 caracteres")

    if User.query.filter_by(email=email).first():
        raise Conflict("Já existe um usuário com este email")

    try:
        unit = build_unit((unit_name or "").strip() or f"{name} - Escola")
        db.session.flush()
        user = User(
            id=uuid.uuid4(),
            tenant_id=unit.id,
            unit_id=unit.id,
            name=name,
            email=email,
            password_hash=hash_password(password),
            role="admin",
            is_admin=True,
            is_master=False,
        )
        db.session.add(user)
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Tenant bootstrap failed for %s", email)
        raise
    return user, unit


def authenticate(email, password) -> User:
    email = (email or "").strip().lower()
    user = User.query.filter_by(email=email).first() if email else None
    if not user or not password or not bcrypt.check_password_hash(user.password_hash, password):
        raise Unauthenticated("Email ou senha inválidos")
    return user
