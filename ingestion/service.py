"""
Ingestão de leads vindos de canais externos (WhatsApp, formulário web).

Regra de deduplicação: (tenant, número normalizado). Mensagem de um número
já conhecido só gera interação no lead existente.
Nunca levanta exceção para o chamador: falhas viram {success: False}.
"""

from __future__ import annotations

import logging
import uuid
from datetime import timedelta
from typing import Optional

from flask import current_app

from extensions import db
from eventos.service import record_event
from ingestion.extraction import ExtractionResult, HeuristicExtractor, LeadSignalExtractor
from leads.service import build_lead, find_by_whatsapp, normalize_phone
from models.agendamento import Agendamento
from pipeline.service import add_interaction
from pipeline.states import LeadStatus
from units.service import default_tenant_id, unit_exists
from utils.dates import parse_datetime, utcnow
from utils.errors import ApiError

logger = logging.getLogger(__name__)

WHATSAPP_MESSAGE = "whatsapp_message"
WEB_FORM_MESSAGE = "web_form"


def get_extractor() -> LeadSignalExtractor:
    ext = current_app.extensions.get("lead_extractor")
    if ext is None:
        ext = HeuristicExtractor()
        current_app.extensions["lead_extractor"] = ext
    return ext


def _result(success: bool, message: str, lead_id=None) -> dict:
    out = {"success": success, "message": message}
    if lead_id is not None:
        out["lead_id"] = str(lead_id)
    return out


def _resolve_tenant(tenant_id) -> Optional[uuid.UUID]:
    if tenant_id:
        return uuid.UUID(str(tenant_id)) if unit_exists(tenant_id) else None
    return default_tenant_id()


def _message_time(timestamp):
    try:
        return parse_datetime(timestamp, "timestamp") or utcnow()
    except ApiError:
        return utcnow()


def ingest_whatsapp_message(sender, message, timestamp=None, tenant_id=None) -> dict:
    try:
        return _ingest_whatsapp(sender, message, timestamp, tenant_id)
    except Exception:
        db.session.rollback()
        logger.exception("WhatsApp ingestion failed")
        return _result(False, "Internal server error")


def _ingest_whatsapp(sender, message, timestamp, tenant_id) -> dict:
    number = normalize_phone(sender)
    text = message if isinstance(message, str) else ""
    if not number:
        return _result(False, "Missing sender number")

    tenant = _resolve_tenant(tenant_id)
    if tenant is None:
        return _result(False, "No tenant found")

    existing = find_by_whatsapp(tenant, number)
    if existing:
        add_interaction(existing, WHATSAPP_MESSAGE, text, ai_generated=True)
        db.session.commit()
        return _result(True, "Interaction logged for existing lead", existing.id)

    extraction: ExtractionResult = get_extractor().extract(text)
    if not extraction.name:
        logger.info("No lead candidate in message from %s", number)
        return _result(False, "Could not extract lead information from message")

    received_at = _message_time(timestamp)
    scheduled = extraction.has_scheduling_intent
    scheduled_date = received_at + timedelta(hours=24) if scheduled else None

    lead = build_lead(
        tenant,
        name=extraction.name,
        whatsapp_number=number,
        discipline=extraction.fields.get("discipline"),
        age_group=extraction.fields.get("age_group"),
        who_searched=extraction.fields.get("who_searched"),
        origin_channel="WhatsApp",
        interest_level=extraction.fields.get("interest_level"),
        status=(LeadStatus.AGENDADO if scheduled else LeadStatus.NOVO_LEAD).value,
        scheduled_date=scheduled_date,
        ai_interaction_log={
            "original_message": text,
            "extracted_data": extraction.as_dict(),
            "confidence_score": extraction.confidence,
            "timestamp": timestamp if isinstance(timestamp, str) else received_at.isoformat(),
        },
    )
    db.session.flush()

    if scheduled:
        db.session.add(Agendamento(
            id=uuid.uuid4(),
            tenant_id=tenant,
            lead_id=lead.id,
            data_agendamento=scheduled_date,
            status="agendado",
            tipo="visita",
            observacoes="Agendamento sugerido via WhatsApp",
        ))

    add_interaction(lead, WHATSAPP_MESSAGE, text, ai_generated=True)
    record_event(
        tenant,
        "lead_criado",
        f"Lead {lead.name} foi criado via WhatsApp",
        lead_id=lead.id,
        dados={"origin_channel": "WhatsApp", "confidence_score": extraction.confidence},
    )
    db.session.commit()
    logger.info("Lead %s created from WhatsApp (confidence=%.1f)", lead.id, extraction.confidence)
    return _result(True, "Lead created successfully", lead.id)


def ingest_web_form(name, phone, message=None, tenant_id=None) -> dict:
    """Formulário do site: nome e telefone obrigatórios, mesma deduplicação."""
    try:
        name = (name or "").strip() if isinstance(name, str) else ""
        number = normalize_phone(phone)
        if not name or not number:
            return _result(False, "Nome e telefone são obrigatórios")

        tenant = _resolve_tenant(tenant_id)
        if tenant is None:
            return _result(False, "No tenant found")

        existing = find_by_whatsapp(tenant, number)
        if existing:
            add_interaction(existing, WEB_FORM_MESSAGE, message)
            db.session.commit()
            return _result(True, "Interaction logged for existing lead", existing.id)

        lead = build_lead(
            tenant,
            name=name,
            whatsapp_number=number,
            origin_channel="Webhook",
            observations=message,
        )
        db.session.flush()
        add_interaction(lead, WEB_FORM_MESSAGE, message)
        record_event(
            tenant,
            "lead_criado",
            f"Lead {name} foi criado via formulário",
            lead_id=lead.id,
            dados={"origin_channel": "Webhook"},
        )
        db.session.commit()
        return _result(True, "Lead created successfully", lead.id)
    except Exception:
        db.session.rollback()
        logger.exception("Web form ingestion failed")
        return _result(False, "Internal server error")
