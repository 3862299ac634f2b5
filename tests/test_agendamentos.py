from conftest import make_lead, make_unit
from extensions import db
from models.evento import Evento
from models.lead import Lead


def _fresh(lead_id):
    db.session.expire_all()
    return db.session.get(Lead, lead_id)


def test_create_moves_new_lead_to_agendado(client, unit, consultant_headers):
    lead = make_lead(unit)
    r = client.post(
        "/api/v1/agendamentos",
        headers=consultant_headers,
        json={"lead_id": str(lead.id), "data_agendamento": "2026-11-02T14:00:00Z", "tipo": "aula_experimental"},
    )
    assert r.status_code == 201, r.get_data(as_text=True)
    body = r.get_json()
    assert body["status"] == "agendado"
    assert body["tipo"] == "aula_experimental"

    fresh = _fresh(lead.id)
    assert fresh.status == "agendado"
    assert fresh.scheduled_date is not None
    assert Evento.query.filter_by(lead_id=lead.id, tipo_evento="agendamento_criado").count() == 1


def test_create_keeps_later_status(client, unit, consultant_headers):
    lead = make_lead(unit, status="follow_up_1")
    r = client.post(
        "/api/v1/agendamentos",
        headers=consultant_headers,
        json={"lead_id": str(lead.id), "data_agendamento": "2026-11-02"},
    )
    assert r.status_code == 201
    assert _fresh(lead.id).status == "follow_up_1"


def test_create_requires_date(client, unit, consultant_headers):
    lead = make_lead(unit)
    r = client.post("/api/v1/agendamentos", headers=consultant_headers, json={"lead_id": str(lead.id)})
    assert r.status_code == 400


def test_create_for_other_tenant_lead_forbidden(client, unit, consultant_headers):
    lead = make_lead(make_unit("Unidade Norte"))
    r = client.post(
        "/api/v1/agendamentos",
        headers=consultant_headers,
        json={"lead_id": str(lead.id), "data_agendamento": "2026-11-02"},
    )
    assert r.status_code == 403


def test_realizado_marks_lead_attended(client, unit, consultant_headers):
    lead = make_lead(unit)
    appt = client.post(
        "/api/v1/agendamentos",
        headers=consultant_headers,
        json={"lead_id": str(lead.id), "data_agendamento": "2026-11-02T14:00:00Z"},
    ).get_json()

    r = client.put(f"/api/v1/agendamentos/{appt['id']}", headers=consultant_headers, json={"status": "realizado"})
    assert r.status_code == 200
    assert r.get_json()["status"] == "realizado"
    assert _fresh(lead.id).attended is True


def test_invalid_status(client, unit, consultant_headers):
    lead = make_lead(unit)
    appt = client.post(
        "/api/v1/agendamentos",
        headers=consultant_headers,
        json={"lead_id": str(lead.id), "data_agendamento": "2026-11-02T14:00:00Z"},
    ).get_json()
    r = client.put(f"/api/v1/agendamentos/{appt['id']}", headers=consultant_headers, json={"status": "adiado"})
    assert r.status_code == 400


def test_list_ordered_by_date(client, unit, consultant_headers):
    lead = make_lead(unit)
    for when in ("2026-11-05T10:00:00Z", "2026-11-01T10:00:00Z", "2026-11-03T10:00:00Z"):
        client.post(
            "/api/v1/agendamentos",
            headers=consultant_headers,
            json={"lead_id": str(lead.id), "data_agendamento": when},
        )
    r = client.get("/api/v1/agendamentos?start_date=2026-11-02", headers=consultant_headers)
    dates = [a["data_agendamento"][:10] for a in r.get_json()["agendamentos"]]
    assert dates == ["2026-11-03", "2026-11-05"]
