"""
Isolamento por tenant (unidade), aplicado na camada de aplicação.

Regras:
- Todo acesso usa o tenant_id do token do chamador.
- Usuário master pode informar outro tenant_id explicitamente.
- Qualquer divergência para não-master -> PermissionDenied.

As policies do banco (RLS), se existirem, são apenas uma segunda barreira;
a autoridade é esta verificação.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from functools import wraps
from typing import Optional

from flask_jwt_extended import get_jwt

from extensions import db
from models.unit import Unit
from utils.errors import InvalidArgument, NotFound, PermissionDenied, Unauthenticated


@dataclass(frozen=True)
class Caller:
    user_id: uuid.UUID
    tenant_id: uuid.UUID
    is_master: bool = False
    is_admin: bool = False


def parse_uuid(value, field: str) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError, AttributeError):
        raise InvalidArgument(f"{field} inválido: {value}")


def optional_uuid(value, field: str) -> Optional[uuid.UUID]:
    if value is None or value == "":
        return None
    return parse_uuid(value, field)


def current_caller() -> Caller:
    """Lê o chamador do JWT já validado por @jwt_required()."""
    j = get_jwt()
    sub, tenant = j.get("sub"), j.get("tenant_id")
    if not sub or not tenant:
        raise Unauthenticated("invalid token payload")
    try:
        return Caller(
            user_id=uuid.UUID(str(sub)),
            tenant_id=uuid.UUID(str(tenant)),
            is_master=bool(j.get("is_master")),
            is_admin=bool(j.get("is_admin")),
        )
    except ValueError:
        raise Unauthenticated("invalid token payload")


def can_access_tenant(caller: Caller, tenant_id) -> bool:
    if caller.is_master:
        return True
    return str(caller.tenant_id) == str(tenant_id)


def resolve_tenant_id(caller: Caller, requested=None) -> uuid.UUID:
    """Tenant efetivo da requisição: o próprio, ou o informado (apenas master)."""
    if requested is None or requested == "":
        return caller.tenant_id
    tenant_id = parse_uuid(requested, "tenant_id")
    if not can_access_tenant(caller, tenant_id):
        raise PermissionDenied("Access to this tenant is not allowed")
    if tenant_id != caller.tenant_id and db.session.get(Unit, tenant_id) is None:
        raise NotFound("Unit not found")
    return tenant_id


def ensure_tenant_access(caller: Caller, row_tenant_id) -> None:
    """Para registros já carregados (update/delete por id)."""
    if not can_access_tenant(caller, row_tenant_id):
        raise PermissionDenied("Resource belongs to another tenant")


def require_admin(fn):
    """
    Uso:
      @jwt_required()
      @require_admin
      def delete(...):
          ...
    """

    @wraps(fn)
    def wrapper(*args, **kwargs):
        caller = current_caller()
        if not (caller.is_admin or caller.is_master):
            raise PermissionDenied("Admin role required")
        return fn(*args, **kwargs)

    return wrapper


def require_master(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if not current_caller().is_master:
            raise PermissionDenied("Master role required")
        return fn(*args, **kwargs)

    return wrapper
