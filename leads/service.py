from __future__ import annotations

import logging
import re
import uuid
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm.exc import StaleDataError

from extensions import db
from eventos.service import record_event
from models.agendamento import Agendamento
from models.lead import Lead
from models.lead_interaction import LeadInteraction
from pipeline.service import apply_status_change
from pipeline.states import (
    INITIAL_STATUS,
    LeadStatus,
    check_transition,
    normalize_interest_level,
    normalize_status,
)
from utils.dates import isoformat, parse_datetime
from utils.errors import Conflict, InvalidArgument, NotFound
from utils.serialization import sa_model_to_dict
from utils.tenancy import Caller, ensure_tenant_access, parse_uuid

logger = logging.getLogger(__name__)

NOT_SPECIFIED = "Não especificado"
DEFAULT_WHO_SEARCHED = "Própria pessoa"

# campos de perfil editáveis livremente
PROFILE_FIELDS = ("name", "discipline", "age_group", "who_searched", "origin_channel", "observations")

SORTABLE = {"name": Lead.name, "created_at": Lead.created_at, "status": Lead.status}

_non_digits = re.compile(r"\D+")


def normalize_phone(value) -> str:
    return _non_digits.sub("", str(value or ""))


def serialize_interaction(i: LeadInteraction) -> dict:
    return {
        "id": str(i.id),
        "interaction_type": i.interaction_type,
        "content": i.content,
        "from_status": i.from_status,
        "to_status": i.to_status,
        "ai_generated": bool(i.ai_generated),
        "created_at": isoformat(i.created_at),
    }


def serialize_lead(lead: Lead, with_interactions: bool = False) -> dict:
    data = sa_model_to_dict(lead)
    if with_interactions:
        items = lead.interactions.order_by(LeadInteraction.created_at.desc()).all()
        data["interactions"] = [serialize_interaction(i) for i in items]
    return data


def find_by_whatsapp(tenant_id, number: str) -> Optional[Lead]:
    return (
        Lead.query.filter(Lead.tenant_id == tenant_id, Lead.whatsapp_number == number)
        .order_by(Lead.created_at.asc())
        .first()
    )


def get_lead_for_caller(caller: Caller, lead_id) -> Lead:
    lead = db.session.get(Lead, parse_uuid(lead_id, "lead_id"))
    if not lead:
        raise NotFound("Lead not found")
    ensure_tenant_access(caller, lead.tenant_id)
    return lead


def build_lead(tenant_id, *, name: str, whatsapp_number: str, **fields) -> Lead:
    lead = Lead(
        id=uuid.uuid4(),
        tenant_id=tenant_id,
        name=name,
        whatsapp_number=whatsapp_number,
        discipline=fields.get("discipline") or NOT_SPECIFIED,
        age_group=fields.get("age_group") or NOT_SPECIFIED,
        who_searched=fields.get("who_searched") or DEFAULT_WHO_SEARCHED,
        origin_channel=fields.get("origin_channel") or "Manual",
        interest_level=fields.get("interest_level") or "morno",
        status=fields.get("status") or INITIAL_STATUS.value,
        scheduled_date=fields.get("scheduled_date"),
        observations=fields.get("observations"),
        ai_interaction_log=fields.get("ai_interaction_log"),
        unit_id=fields.get("unit_id"),
        user_id=fields.get("user_id"),
    )
    db.session.add(lead)
    return lead


def list_leads(tenant_id, args) -> dict:
    qry = Lead.query.filter(Lead.tenant_id == tenant_id)

    search = (args.get("search") or "").strip()
    if search:
        ilike = f"%{search}%"
        qry = qry.filter(or_(Lead.name.ilike(ilike), Lead.whatsapp_number.ilike(ilike)))
    if args.get("channel"):
        qry = qry.filter(Lead.origin_channel == args.get("channel"))
    if args.get("discipline"):
        qry = qry.filter(Lead.discipline == args.get("discipline"))
    if args.get("status"):
        qry = qry.filter(Lead.status == normalize_status(args.get("status")).value)
    if args.get("unit_id"):
        qry = qry.filter(Lead.unit_id == parse_uuid(args.get("unit_id"), "unit_id"))
    start = parse_datetime(args.get("start_date"), "start_date")
    end = parse_datetime(args.get("end_date"), "end_date", end_of_day=True)
    if start:
        qry = qry.filter(Lead.created_at >= start)
    if end:
        qry = qry.filter(Lead.created_at <= end)

    sort_col = SORTABLE.get(args.get("sort_by") or "", Lead.created_at)
    order = sort_col.asc() if args.get("sort_order") == "asc" else sort_col.desc()

    try:
        page = max(1, int(args.get("page", 1)))
        page_size = min(200, max(1, int(args.get("page_size", 50))))
    except (TypeError, ValueError):
        page, page_size = 1, 50

    total = qry.count()
    items = qry.order_by(order).offset((page - 1) * page_size).limit(page_size).all()
    return {
        "leads": [serialize_lead(lead) for lead in items],
        "page": page,
        "page_size": page_size,
        "total": total,
    }


def create_lead(caller: Caller, tenant_id, data: dict) -> Lead:
    name = (data.get("name") or "").strip()
    number = normalize_phone(data.get("whatsapp_number"))
    if not name or not number:
        raise InvalidArgument("name e whatsapp_number são obrigatórios")

    status = normalize_status(data.get("status") or INITIAL_STATUS.value)
    if status not in (LeadStatus.NOVO_LEAD, LeadStatus.AGENDADO):
        raise InvalidArgument("Lead novo deve iniciar em novo_lead ou agendado")
    interest = normalize_interest_level(data.get("interest_level") or "morno")
    scheduled_date = parse_datetime(data.get("scheduled_date"), "scheduled_date")

    existing = find_by_whatsapp(tenant_id, number)
    if existing:
        raise Conflict("Já existe um lead com este número", detail={"lead_id": str(existing.id)})

    lead = build_lead(
        tenant_id,
        name=name,
        whatsapp_number=number,
        discipline=data.get("discipline"),
        age_group=data.get("age_group"),
        who_searched=data.get("who_searched"),
        origin_channel=data.get("origin_channel") or "Manual",
        interest_level=interest,
        status=status.value,
        scheduled_date=scheduled_date,
        observations=data.get("observations"),
        unit_id=parse_uuid(data["unit_id"], "unit_id") if data.get("unit_id") else None,
        user_id=caller.user_id,
    )
    record_event(
        tenant_id,
        "lead_criado",
        f"Lead {name} foi criado",
        lead_id=lead.id,
        user_id=caller.user_id,
        dados={"origin_channel": lead.origin_channel, "interest_level": interest},
    )
    db.session.commit()
    return lead


def _has_appointment(lead: Lead) -> bool:
    return db.session.query(Agendamento.id).filter(Agendamento.lead_id == lead.id).first() is not None


def update_lead(caller: Caller, lead_id, data: dict) -> Lead:
    """
    Atualização genérica (perfil + status/attended/converted).
    Tudo é validado antes de qualquer mutação.
    """
    lead = get_lead_for_caller(caller, lead_id)

    if "version" in data and data["version"] is not None:
        try:
            expected = int(data["version"])
        except (TypeError, ValueError):
            raise InvalidArgument(f"version inválida: {data['version']}")
        if expected != lead.version:
            raise Conflict(
                "Lead foi alterado por outra pessoa",
                detail={"current_version": lead.version},
            )

    target = None
    if data.get("status") is not None:
        target = normalize_status(data["status"])

    if "converted" in data:
        converted = data.get("converted")
        if not isinstance(converted, bool):
            raise InvalidArgument("converted deve ser booleano")
        if converted:
            if target not in (None, LeadStatus.MATRICULADO):
                raise InvalidArgument("converted=true exige status matriculado")
            target = LeadStatus.MATRICULADO
        elif lead.converted or target == LeadStatus.MATRICULADO:
            raise InvalidArgument("Lead matriculado não pode ser desconvertido")

    if target is not None:
        check_transition(lead.status, target)

    interest = None
    if data.get("interest_level") is not None:
        interest = normalize_interest_level(data["interest_level"])

    attended = None
    if "attended" in data:
        attended = data.get("attended")
        if not isinstance(attended, bool):
            raise InvalidArgument("attended deve ser booleano")
        if attended and not _has_appointment(lead):
            raise InvalidArgument("Lead sem agendamento não pode ser marcado como presente")

    number = None
    if "whatsapp_number" in data:
        number = normalize_phone(data.get("whatsapp_number"))
        if not number:
            raise InvalidArgument("whatsapp_number inválido")
        other = find_by_whatsapp(lead.tenant_id, number)
        if other and other.id != lead.id:
            raise Conflict("Já existe um lead com este número", detail={"lead_id": str(other.id)})

    scheduled_date = None
    if data.get("scheduled_date"):
        scheduled_date = parse_datetime(data["scheduled_date"], "scheduled_date")

    # a partir daqui só mutações
    for field in PROFILE_FIELDS:
        if field in data:
            value = data.get(field)
            if field == "name":
                value = (value or "").strip() or lead.name
            setattr(lead, field, value)
    if number:
        lead.whatsapp_number = number
    if interest:
        lead.interest_level = interest
    if attended is not None:
        lead.attended = attended
    if scheduled_date:
        lead.scheduled_date = scheduled_date
    if target is not None:
        apply_status_change(lead, target, user_id=caller.user_id, reason=data.get("reason"))

    try:
        db.session.commit()
    except StaleDataError:
        db.session.rollback()
        raise Conflict("Lead foi alterado por outra pessoa")

    logger.info("Lead updated", extra={"lead_id": str(lead.id)})
    return lead


def delete_lead(caller: Caller, lead_id) -> None:
    lead = get_lead_for_caller(caller, lead_id)
    if lead.matriculas.count() > 0:
        raise Conflict("Lead com matrícula não pode ser removido")
    record_event(
        lead.tenant_id,
        "lead_removido",
        f"Lead {lead.name} foi removido",
        user_id=caller.user_id,
        dados={"lead_id": str(lead.id)},
    )
    db.session.delete(lead)
    db.session.commit()
