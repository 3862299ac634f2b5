from __future__ import annotations

import uuid

from extensions import db
from models.evento import Evento
from utils.serialization import sa_model_to_dict


def record_event(
    tenant_id,
    tipo_evento: str,
    descricao: str,
    *,
    lead_id=None,
    agendamento_id=None,
    matricula_id=None,
    user_id=None,
    dados=None,
) -> Evento:
    """Adiciona um evento de auditoria à sessão atual (o commit é de quem chama)."""
    ev = Evento(
        id=uuid.uuid4(),
        tenant_id=tenant_id,
        lead_id=lead_id,
        agendamento_id=agendamento_id,
        matricula_id=matricula_id,
        user_id=user_id,
        tipo_evento=tipo_evento,
        descricao=descricao,
        dados_evento=dados,
    )
    db.session.add(ev)
    return ev


def serialize_evento(ev: Evento) -> dict:
    return sa_model_to_dict(ev)
