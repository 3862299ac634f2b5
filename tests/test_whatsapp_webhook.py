import uuid
from datetime import datetime

import pytest
from cachetools import TTLCache

from conftest import make_lead, make_unit
from extensions import db
from models.agendamento import Agendamento
from models.evento import Evento
from models.lead import Lead
from models.lead_interaction import LeadInteraction
from whatsapp import routes as whatsapp_routes


@pytest.fixture(autouse=True)
def _reset_rate_limit():
    whatsapp_routes._rate_cache.clear()
    yield
    whatsapp_routes._rate_cache.clear()


def _post(client, **payload):
    r = client.post("/api/v1/whatsapp/webhook", json=payload)
    assert r.status_code == 200, r.get_data(as_text=True)
    return r.get_json()


def test_new_number_creates_scheduled_lead(client, unit):
    body = _post(
        client,
        **{
            "from": "+55 (11) 98888-7777",
            "message": "Meu nome é Carla, quero agendar natação hoje",
            "timestamp": "2026-03-10T12:00:00Z",
            "tenant_id": str(unit.id),
        },
    )
    assert body["success"] is True
    lead = db.session.get(Lead, uuid.UUID(body["lead_id"]))
    assert lead.name == "Carla"
    assert lead.whatsapp_number == "5511988887777"
    assert lead.status == "agendado"
    assert lead.discipline == "natação"
    assert lead.interest_level == "quente"
    assert lead.origin_channel == "WhatsApp"
    assert lead.ai_interaction_log["confidence_score"] == 0.8

    appt = Agendamento.query.filter_by(lead_id=lead.id).one()
    assert appt.data_agendamento.replace(tzinfo=None) == datetime(2026, 3, 11, 12, 0)
    assert Evento.query.filter_by(lead_id=lead.id, tipo_evento="lead_criado").count() == 1


def test_repeat_number_logs_interaction_only(client, unit):
    payload = {
        "from": "5511977776666",
        "message": "Meu nome é Carla, quero agendar natação hoje",
        "tenant_id": str(unit.id),
    }
    first = _post(client, **payload)
    second = _post(client, **{**payload, "message": "qual o horário?"})

    assert second["success"] is True
    assert second["lead_id"] == first["lead_id"]
    assert Lead.query.filter_by(tenant_id=unit.id).count() == 1
    assert LeadInteraction.query.filter_by(interaction_type="whatsapp_message").count() == 2


def test_existing_lead_matched_before_extraction(client, unit):
    lead = make_lead(unit, whatsapp_number="5511911112222")
    body = _post(client, **{"from": "5511911112222", "message": "ok", "tenant_id": str(unit.id)})
    assert body == {
        "success": True,
        "message": "Interaction logged for existing lead",
        "lead_id": str(lead.id),
    }


def test_same_number_in_other_tenant_is_a_new_lead(client, unit):
    other = make_unit("Unidade Norte")
    make_lead(other, whatsapp_number="5511955554444")
    body = _post(client, **{"from": "5511955554444", "message": "Me chamo João", "tenant_id": str(unit.id)})
    assert body["success"] is True
    assert Lead.query.filter_by(whatsapp_number="5511955554444").count() == 2


def test_no_name_returns_failure_without_lead(client, unit):
    body = _post(client, **{"from": "5511900000000", "message": "oi tudo bem?", "tenant_id": str(unit.id)})
    assert body == {"success": False, "message": "Could not extract lead information from message"}
    assert Lead.query.count() == 0


def test_invalid_payloads_never_break(client, unit):
    r = client.post("/api/v1/whatsapp/webhook", data="not json", content_type="text/plain")
    assert r.status_code == 200
    assert r.get_json()["success"] is False

    body = _post(client, **{"message": "Me chamo Ana"})
    assert body["success"] is False


def test_unknown_tenant(client, unit):
    body = _post(client, **{"from": "5511900000001", "message": "Me chamo Ana", "tenant_id": "not-a-uuid"})
    assert body == {"success": False, "message": "No tenant found"}


def test_internal_error_is_contained(client, unit, monkeypatch):
    from ingestion import service

    def boom(*a, **kw):
        raise RuntimeError("db down")

    monkeypatch.setattr(service, "find_by_whatsapp", boom)
    body = _post(client, **{"from": "5511900000002", "message": "Me chamo Ana", "tenant_id": str(unit.id)})
    assert body == {"success": False, "message": "Internal server error"}


def test_rate_limit(client, unit, app):
    app.config["WEBHOOK_RATE_LIMIT_PER_MINUTE"] = 2
    for _ in range(2):
        client.post("/api/v1/whatsapp/webhook", json={"from": "1", "message": "oi"})
    r = client.post("/api/v1/whatsapp/webhook", json={"from": "1", "message": "oi"})
    assert r.status_code == 429
    assert r.get_json()["error_kind"] == "rate_limited"


def test_rate_limit_window_does_not_slide(client, unit, app, monkeypatch):
    clock = [0.0]
    monkeypatch.setattr(
        whatsapp_routes, "_rate_cache", TTLCache(maxsize=100, ttl=60, timer=lambda: clock[0])
    )
    app.config["WEBHOOK_RATE_LIMIT_PER_MINUTE"] = 3

    codes = []
    for _ in range(6):
        codes.append(client.post("/api/v1/whatsapp/webhook", json={"from": "1", "message": "oi"}).status_code)
        clock[0] += 30
    assert codes == [200] * 6


def test_rate_limit_ignores_forwarded_header(client, unit, app):
    app.config["WEBHOOK_RATE_LIMIT_PER_MINUTE"] = 2
    codes = [
        client.post(
            "/api/v1/whatsapp/webhook",
            json={"from": "1", "message": "oi"},
            headers={"X-Forwarded-For": f"10.0.0.{i}"},
        ).status_code
        for i in range(3)
    ]
    assert codes == [200, 200, 429]


def test_web_form_non_object_payload(client, unit):
    r = client.post("/api/v1/leads/webhook", json=["x"])
    assert r.status_code == 200
    assert r.get_json()["success"] is False


def test_web_form_ingestion(client, unit):
    r = client.post(
        "/api/v1/leads/webhook",
        json={"name": "Ana Paula", "phone": "(11) 93333-2222", "message": "Quero conhecer", "tenant_id": str(unit.id)},
    )
    assert r.status_code == 200
    body = r.get_json()
    assert body["success"] is True
    lead = Lead.query.filter_by(whatsapp_number="11933332222").one()
    assert lead.origin_channel == "Webhook"
    assert lead.status == "novo_lead"
