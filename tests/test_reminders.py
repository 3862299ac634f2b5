from datetime import timedelta

import httpx

from conftest import make_lead, make_unit
from extensions import db
from models.agendamento import Agendamento
from notifications import reminders
from utils.dates import utcnow


def _appt(unit, lead, when, status="agendado"):
    a = Agendamento(tenant_id=unit.id, lead_id=lead.id, data_agendamento=when, status=status)
    db.session.add(a)
    db.session.commit()
    return a


def test_only_scheduled_appointments_in_window(app, unit):
    now = utcnow()
    lead = make_lead(unit, name="Bruno", status="agendado")
    soon = _appt(unit, lead, now + timedelta(hours=2))
    _appt(unit, lead, now + timedelta(hours=30))
    _appt(unit, lead, now + timedelta(hours=3), status="cancelado")
    _appt(unit, lead, now - timedelta(hours=1))

    out = reminders.check_upcoming_appointments(now=now)
    assert [r["agendamento_id"] for r in out] == [str(soon.id)]
    assert out[0]["lead_name"] == "Bruno"
    assert out[0]["tenant_id"] == str(unit.id)


def test_each_tenant_processed(app, unit):
    now = utcnow()
    other = make_unit("Unidade Norte")
    _appt(unit, make_lead(unit), now + timedelta(hours=1))
    _appt(other, make_lead(other), now + timedelta(hours=5))

    out = reminders.check_upcoming_appointments(now=now)
    assert {r["tenant_id"] for r in out} == {str(unit.id), str(other.id)}


def test_failing_tenant_does_not_stop_the_loop(app, unit, monkeypatch):
    now = utcnow()
    other = make_unit("Unidade Norte")
    _appt(unit, make_lead(unit), now + timedelta(hours=1))
    _appt(other, make_lead(other), now + timedelta(hours=1))

    original = reminders._reminders_for_unit

    def flaky(u, *args):
        if u.id == unit.id:
            raise RuntimeError("query failed")
        return original(u, *args)

    monkeypatch.setattr(reminders, "_reminders_for_unit", flaky)
    out = reminders.check_upcoming_appointments(now=now)
    assert [r["tenant_id"] for r in out] == [str(other.id)]


def test_window_is_configurable(app, unit):
    app.config["REMINDER_WINDOW_HOURS"] = 48
    now = utcnow()
    _appt(unit, make_lead(unit), now + timedelta(hours=30))
    assert len(reminders.check_upcoming_appointments(now=now)) == 1


def test_webhook_delivery(app, unit, monkeypatch):
    app.config["REMINDER_WEBHOOK_URL"] = "https://hooks.example.com/reminders"
    sent = []

    class FakeClient:
        def __init__(self, timeout):
            pass

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def post(self, url, json):
            sent.append((url, json))
            return httpx.Response(200, request=httpx.Request("POST", url))

    monkeypatch.setattr(reminders.httpx, "Client", FakeClient)
    now = utcnow()
    _appt(unit, make_lead(unit), now + timedelta(hours=1))

    out = reminders.check_upcoming_appointments(now=now)
    assert len(sent) == 1
    assert sent[0][0] == "https://hooks.example.com/reminders"
    assert sent[0][1]["agendamento_id"] == out[0]["agendamento_id"]


def test_webhook_failure_is_logged_not_raised(app, unit, monkeypatch):
    app.config["REMINDER_WEBHOOK_URL"] = "https://hooks.example.com/reminders"

    class DownClient:
        def __init__(self, timeout):
            pass

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def post(self, url, json):
            raise httpx.ConnectError("connection refused")

    monkeypatch.setattr(reminders.httpx, "Client", DownClient)
    now = utcnow()
    _appt(unit, make_lead(unit), now + timedelta(hours=1))
    assert len(reminders.check_upcoming_appointments(now=now)) == 1


def test_bad_webhook_url_does_not_stop_other_tenants(app, unit, monkeypatch):
    app.config["REMINDER_WEBHOOK_URL"] = "http://[invalid"

    class BadUrlClient:
        def __init__(self, timeout):
            pass

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def post(self, url, json):
            raise httpx.InvalidURL("Invalid IPv6 URL")

    monkeypatch.setattr(reminders.httpx, "Client", BadUrlClient)
    other = make_unit("Unidade Norte")
    now = utcnow()
    _appt(unit, make_lead(unit), now + timedelta(hours=1))
    _appt(other, make_lead(other), now + timedelta(hours=2))

    out = reminders.check_upcoming_appointments(now=now)
    assert {r["tenant_id"] for r in out} == {str(unit.id), str(other.id)}


def test_scheduler_not_started_in_testing(app):
    reminders.init_scheduler(app)
    assert reminders._scheduler is None


def test_cli_command(app, unit):
    _appt(unit, make_lead(unit), utcnow() + timedelta(hours=1))
    result = app.test_cli_runner().invoke(args=["check-appointments"])
    assert result.exit_code == 0
    assert "1 lembrete(s)" in result.output
