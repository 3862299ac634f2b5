from __future__ import annotations

import uuid

from auth.service import MIN_PASSWORD_LENGTH, hash_password
from extensions import db
from models.user import User
from utils.errors import Conflict, InvalidArgument

ROLES = ("admin", "consultor")


def list_users(tenant_id) -> list:
    return (
        User.query.filter(User.tenant_id == tenant_id)
        .order_by(User.created_at.desc())
        .all()
    )


def create_user(tenant_id, data: dict) -> User:
    """Usuário da unidade (admin ou consultor). Master só via seed/operação."""
    name = (data.get("name") or "").strip()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    role = data.get("role") or "consultor"
    if not name:
        raise InvalidArgument("Nome é obrigatório")
    if not email:
        raise InvalidArgument("Email é obrigatório")
    if not isinstance(password, str) or len(password.strip()) < MIN_PASSWORD_LENGTH:
        raise InvalidArgument("Senha deve ter pelo menos 6 caracteres")
    if role not in ROLES:
        raise InvalidArgument(f"role inválido: {role}")
    if User.query.filter_by(email=email).first():
        raise Conflict("Já existe um usuário com este email")

    user = User(
        id=uuid.uuid4(),
        tenant_id=tenant_id,
        unit_id=tenant_id,
        name=name,
        email=email,
        password_hash=hash_password(password),
        role=role,
        is_admin=role == "admin",
        is_master=False,
    )
    db.session.add(user)
    db.session.commit()
    return user
