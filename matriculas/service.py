from __future__ import annotations

import uuid
from decimal import Decimal, InvalidOperation

from sqlalchemy.orm.exc import StaleDataError

from extensions import db
from eventos.service import record_event
from leads.service import get_lead_for_caller
from models.matricula import Matricula
from pipeline.service import apply_status_change
from pipeline.states import LeadStatus, check_transition
from utils.dates import parse_date, utcnow
from utils.errors import Conflict, InvalidArgument
from utils.serialization import sa_model_to_dict
from utils.tenancy import Caller, optional_uuid


def serialize_matricula(m: Matricula) -> dict:
    return sa_model_to_dict(m)


def _to_decimal(val):
    if val is None or val == "":
        return None
    try:
        return Decimal(str(val))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidArgument(f"valor_mensalidade inválido: {val}")


def list_matriculas(tenant_id, args) -> list:
    qry = Matricula.query.filter(Matricula.tenant_id == tenant_id)
    lead_id = optional_uuid(args.get("lead_id"), "lead_id")
    user_id = optional_uuid(args.get("user_id"), "user_id")
    if lead_id:
        qry = qry.filter(Matricula.lead_id == lead_id)
    if user_id:
        qry = qry.filter(Matricula.user_id == user_id)
    if args.get("status"):
        qry = qry.filter(Matricula.status == args.get("status"))
    return qry.order_by(Matricula.created_at.desc()).all()


def create_matricula(caller: Caller, tenant_id, data: dict) -> Matricula:
    """
    Matrícula + lead em 'matriculado' + converted=True numa só transação.
    Transição inválida -> nada é gravado.
    """
    if not data.get("lead_id"):
        raise InvalidArgument("lead_id é obrigatório")
    plano = (data.get("plano") or "").strip()
    if not plano:
        raise InvalidArgument("plano é obrigatório")

    lead = get_lead_for_caller(caller, data["lead_id"])
    if lead.tenant_id != tenant_id:
        raise InvalidArgument("Lead pertence a outro tenant")
    if lead.converted:
        raise Conflict("Lead já está matriculado")
    check_transition(lead.status, LeadStatus.MATRICULADO)

    data_inicio = parse_date(data.get("data_inicio"), "data_inicio") or utcnow().date()
    data_fim = parse_date(data.get("data_fim"), "data_fim")
    if data_fim and data_fim < data_inicio:
        raise InvalidArgument("data_fim deve ser posterior a data_inicio")

    m = Matricula(
        id=uuid.uuid4(),
        tenant_id=tenant_id,
        lead_id=lead.id,
        user_id=optional_uuid(data.get("user_id"), "user_id") or caller.user_id,
        plano=plano,
        disciplina=(data.get("disciplina") or lead.discipline),
        valor_mensalidade=_to_decimal(data.get("valor_mensalidade")),
        data_inicio=data_inicio,
        data_fim=data_fim,
        forma_pagamento=data.get("forma_pagamento"),
        observacoes=data.get("observacoes"),
    )
    apply_status_change(lead, LeadStatus.MATRICULADO, user_id=caller.user_id, matricula=m, reason="Matrícula registrada")
    record_event(
        tenant_id,
        "matricula_criada",
        f"Matrícula de {lead.name} no plano {plano}",
        lead_id=lead.id,
        matricula_id=m.id,
        user_id=caller.user_id,
    )
    try:
        db.session.commit()
    except StaleDataError:
        db.session.rollback()
        raise Conflict("Lead foi alterado por outra pessoa")
    return m
