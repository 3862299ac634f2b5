from conftest import make_lead
from extensions import db
from models.evento import Evento
from models.lead import Lead
from models.matricula import Matricula


def _fresh(lead_id):
    db.session.expire_all()
    return db.session.get(Lead, lead_id)


def test_enrollment_converts_lead(client, unit, consultant_headers):
    lead = make_lead(unit, status="agendado", discipline="pilates")
    r = client.post(
        "/api/v1/matriculas",
        headers=consultant_headers,
        json={
            "lead_id": str(lead.id),
            "plano": "Trimestral",
            "valor_mensalidade": "249.90",
            "data_inicio": "2026-11-01",
            "forma_pagamento": "pix",
        },
    )
    assert r.status_code == 201, r.get_data(as_text=True)
    body = r.get_json()
    assert body["disciplina"] == "pilates"
    assert body["valor_mensalidade"] == 249.9
    assert body["status"] == "ativa"

    fresh = _fresh(lead.id)
    assert fresh.status == "matriculado"
    assert fresh.converted is True
    assert Evento.query.filter_by(lead_id=lead.id, tipo_evento="matricula_criada").count() == 1

    r = client.get(f"/api/v1/matriculas?lead_id={lead.id}", headers=consultant_headers)
    assert len(r.get_json()["matriculas"]) == 1


def test_illegal_transition_persists_nothing(client, unit, consultant_headers):
    lead = make_lead(unit, status="novo_lead")
    r = client.post(
        "/api/v1/matriculas",
        headers=consultant_headers,
        json={"lead_id": str(lead.id), "plano": "Mensal"},
    )
    assert r.status_code == 400
    assert Matricula.query.count() == 0
    fresh = _fresh(lead.id)
    assert fresh.status == "novo_lead"
    assert fresh.converted is False


def test_already_converted_conflict(client, unit, consultant_headers):
    lead = make_lead(unit, status="agendado")
    payload = {"lead_id": str(lead.id), "plano": "Mensal"}
    assert client.post("/api/v1/matriculas", headers=consultant_headers, json=payload).status_code == 201
    r = client.post("/api/v1/matriculas", headers=consultant_headers, json=payload)
    assert r.status_code == 409
    assert Matricula.query.count() == 1


def test_legacy_matriculado_without_conversion_is_reconciled(client, unit, consultant_headers):
    lead = make_lead(unit, status="matriculado", converted=False)
    r = client.post(
        "/api/v1/matriculas",
        headers=consultant_headers,
        json={"lead_id": str(lead.id), "plano": "Anual"},
    )
    assert r.status_code == 201, r.get_data(as_text=True)

    fresh = _fresh(lead.id)
    assert fresh.status == "matriculado"
    assert fresh.converted is True
    m = Matricula.query.filter_by(lead_id=lead.id).one()
    assert m.plano == "Anual"
    assert r.get_json()["id"] == str(m.id)


def test_validation(client, unit, consultant_headers):
    lead = make_lead(unit, status="agendado")
    cases = [
        {"lead_id": str(lead.id)},
        {"lead_id": str(lead.id), "plano": "Mensal", "valor_mensalidade": "caro"},
        {"lead_id": str(lead.id), "plano": "Mensal", "data_inicio": "2026-11-10", "data_fim": "2026-11-01"},
    ]
    for payload in cases:
        r = client.post("/api/v1/matriculas", headers=consultant_headers, json=payload)
        assert r.status_code == 400, payload
    assert Matricula.query.count() == 0


def test_notes_link_must_be_same_tenant(client, unit, consultant_headers):
    lead = make_lead(unit)
    r = client.post(
        "/api/v1/anotacoes",
        headers=consultant_headers,
        json={"lead_id": str(lead.id), "conteudo": "Prefere horário noturno", "tipo": "follow_up"},
    )
    assert r.status_code == 201, r.get_data(as_text=True)

    r = client.post(
        "/api/v1/anotacoes",
        headers=consultant_headers,
        json={"lead_id": "8f1c3c1e-0000-4000-8000-000000000000", "conteudo": "x"},
    )
    assert r.status_code == 400

    r = client.get(f"/api/v1/anotacoes?lead_id={lead.id}", headers=consultant_headers)
    assert [n["conteudo"] for n in r.get_json()["anotacoes"]] == ["Prefere horário noturno"]


def test_events_listing(client, unit, consultant_headers):
    lead = make_lead(unit, status="agendado")
    client.post("/api/v1/matriculas", headers=consultant_headers, json={"lead_id": str(lead.id), "plano": "Mensal"})

    r = client.get(f"/api/v1/eventos?lead_id={lead.id}", headers=consultant_headers)
    kinds = {e["tipo_evento"] for e in r.get_json()["eventos"]}
    assert {"status_alterado", "matricula_criada"} <= kinds

    r = client.get("/api/v1/eventos?tipo_evento=matricula_criada", headers=consultant_headers)
    assert len(r.get_json()["eventos"]) == 1
