from __future__ import annotations

import logging
import uuid
from typing import Optional

from flask import current_app

from extensions import db
from models.anotacao import Anotacao
from models.evento import Evento
from models.lead import Lead
from models.unit import Unit
from models.user import User
from utils.errors import Conflict, InvalidArgument, NotFound
from utils.serialization import sa_model_to_dict

logger = logging.getLogger(__name__)


def serialize_unit(u: Unit) -> dict:
    return sa_model_to_dict(u)


def unit_exists(tenant_id) -> bool:
    try:
        uid = uuid.UUID(str(tenant_id))
    except ValueError:
        return False
    return db.session.get(Unit, uid) is not None


def build_unit(name: str, address: Optional[str] = None, phone: Optional[str] = None) -> Unit:
    """Nova unidade com tenant_id auto-referente (sem commit)."""
    name = (name or "").strip()
    if not name:
        raise InvalidArgument("name é obrigatório")
    unit_id = uuid.uuid4()
    unit = Unit(id=unit_id, tenant_id=unit_id, name=name, address=address, phone=phone)
    db.session.add(unit)
    return unit


def default_tenant_id() -> Optional[uuid.UUID]:
    """Tenant usado quando o canal externo não informa tenant_id."""
    configured = current_app.config.get("WHATSAPP_DEFAULT_TENANT_ID")
    if configured:
        return uuid.UUID(str(configured)) if unit_exists(configured) else None
    first = Unit.query.order_by(Unit.created_at.asc()).first()
    return first.id if first else None


def delete_unit(caller_tenant_id, unit_id) -> None:
    """
    Remove uma unidade sem leads, junto com usuários, anotações e eventos dela.
    Unidade com leads (ou a do próprio master) -> Conflict.
    """
    unit = db.session.get(Unit, unit_id)
    if unit is None:
        raise NotFound("Unit not found")
    if unit.id == caller_tenant_id:
        raise Conflict("Não é possível remover a própria unidade")
    if db.session.query(Lead.id).filter(Lead.tenant_id == unit.id).first() is not None:
        raise Conflict("Unidade possui leads; remova ou transfira antes")

    for model in (Anotacao, Evento):
        model.query.filter(model.tenant_id == unit.id).delete(synchronize_session=False)
    User.query.filter(User.unit_id == unit.id, User.tenant_id != unit.id).update(
        {User.unit_id: None}, synchronize_session=False
    )
    User.query.filter(User.tenant_id == unit.id).delete(synchronize_session=False)
    db.session.delete(unit)
    db.session.commit()
    logger.info("Unit %s removed", unit_id)
