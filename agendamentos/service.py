from __future__ import annotations

import uuid

from extensions import db
from eventos.service import record_event
from leads.service import get_lead_for_caller
from models.agendamento import APPOINTMENT_STATUSES, Agendamento
from pipeline.service import apply_status_change
from pipeline.states import LeadStatus
from utils.dates import parse_datetime
from utils.errors import InvalidArgument, NotFound
from utils.serialization import sa_model_to_dict
from utils.tenancy import Caller, ensure_tenant_access, optional_uuid, parse_uuid


def serialize_agendamento(a: Agendamento) -> dict:
    return sa_model_to_dict(a)


def _status(value) -> str:
    key = str(value or "").strip().lower()
    if key not in APPOINTMENT_STATUSES:
        raise InvalidArgument(f"status inválido: {value}")
    return key


def list_agendamentos(tenant_id, args) -> list:
    qry = Agendamento.query.filter(Agendamento.tenant_id == tenant_id)
    lead_id = optional_uuid(args.get("lead_id"), "lead_id")
    user_id = optional_uuid(args.get("user_id"), "user_id")
    if lead_id:
        qry = qry.filter(Agendamento.lead_id == lead_id)
    if user_id:
        qry = qry.filter(Agendamento.user_id == user_id)
    if args.get("status"):
        qry = qry.filter(Agendamento.status == _status(args.get("status")))
    start = parse_datetime(args.get("start_date"), "start_date")
    end = parse_datetime(args.get("end_date"), "end_date", end_of_day=True)
    if start:
        qry = qry.filter(Agendamento.data_agendamento >= start)
    if end:
        qry = qry.filter(Agendamento.data_agendamento <= end)
    return qry.order_by(Agendamento.data_agendamento.asc()).all()


def create_agendamento(caller: Caller, tenant_id, data: dict) -> Agendamento:
    if not data.get("lead_id"):
        raise InvalidArgument("lead_id é obrigatório")
    when = parse_datetime(data.get("data_agendamento"), "data_agendamento")
    if when is None:
        raise InvalidArgument("data_agendamento é obrigatório")

    lead = get_lead_for_caller(caller, data["lead_id"])
    if lead.tenant_id != tenant_id:
        raise InvalidArgument("Lead pertence a outro tenant")

    appt = Agendamento(
        id=uuid.uuid4(),
        tenant_id=tenant_id,
        lead_id=lead.id,
        user_id=optional_uuid(data.get("user_id"), "user_id") or caller.user_id,
        data_agendamento=when,
        status="agendado",
        tipo=(data.get("tipo") or "visita"),
        observacoes=data.get("observacoes"),
    )
    db.session.add(appt)

    lead.scheduled_date = when
    if lead.status == LeadStatus.NOVO_LEAD.value:
        apply_status_change(lead, LeadStatus.AGENDADO, user_id=caller.user_id, reason="Agendamento criado")

    record_event(
        tenant_id,
        "agendamento_criado",
        f"Agendamento de {lead.name} para {when.isoformat()}",
        lead_id=lead.id,
        agendamento_id=appt.id,
        user_id=caller.user_id,
    )
    db.session.commit()
    return appt


def update_agendamento(caller: Caller, agendamento_id, data: dict) -> Agendamento:
    appt = db.session.get(Agendamento, parse_uuid(agendamento_id, "agendamento_id"))
    if not appt:
        raise NotFound("Agendamento not found")
    ensure_tenant_access(caller, appt.tenant_id)

    status = _status(data["status"]) if data.get("status") else None
    when = parse_datetime(data.get("data_agendamento"), "data_agendamento")

    if when:
        appt.data_agendamento = when
        appt.lead.scheduled_date = when
    if "observacoes" in data:
        appt.observacoes = data.get("observacoes")
    if status:
        appt.status = status
        # presença registrada na visita
        if status == "realizado":
            appt.lead.attended = True

    db.session.commit()
    return appt
