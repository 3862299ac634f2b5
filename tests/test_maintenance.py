import uuid

from sqlalchemy import delete

from conftest import make_lead, make_unit
from eventos.service import record_event
from extensions import db
from models.evento import Evento
from models.lead import Lead
from models.lead_interaction import LeadInteraction
from models.unit import Unit
from pipeline.service import add_interaction
from scripts.maintenance import cleanup_orphans, integrity_report


def _orphan_tenant():
    gone = make_unit("Unidade Fechada")
    lead = make_lead(gone)
    add_interaction(lead, "whatsapp_message", "oi")
    record_event(gone.id, "lead_criado", "x", lead_id=lead.id)
    db.session.commit()
    # remove só a unidade (SQLite de teste não aplica FK)
    db.session.execute(delete(Unit).where(Unit.id == gone.id))
    db.session.commit()
    return gone


def test_cleanup_dry_run_only_counts(app, unit):
    _orphan_tenant()
    keep = make_lead(unit)

    counts = cleanup_orphans(dry_run=True)
    assert counts["leads"] == 1
    assert counts["lead_interactions"] == 1
    assert counts["eventos"] == 1
    assert Lead.query.count() == 2
    assert db.session.get(Lead, keep.id) is not None


def test_cleanup_removes_orphans(app, unit):
    _orphan_tenant()
    keep = make_lead(unit)
    record_event(unit.id, "lead_removido", "y", lead_id=uuid.uuid4())
    db.session.commit()

    counts = cleanup_orphans()
    assert counts["leads"] == 1
    assert counts["eventos_sem_lead"] == 1
    assert [lead.id for lead in Lead.query.all()] == [keep.id]
    assert LeadInteraction.query.count() == 0
    assert Evento.query.count() == 0


def test_integrity_report(app, unit):
    broken = make_lead(unit, status="matriculado", converted=True)
    legacy = make_lead(unit, status="Primeiro Atendimento")
    make_lead(unit)

    report = integrity_report()
    assert [r["id"] for r in report["converted_without_enrollment"]] == [str(broken.id)]
    assert report["invalid_status"] == [
        {"id": str(legacy.id), "tenant_id": str(unit.id), "status": "Primeiro Atendimento"}
    ]


def test_cli_commands(app, unit):
    _orphan_tenant()
    runner = app.test_cli_runner()

    result = runner.invoke(args=["cleanup-orphans", "--dry-run"])
    assert result.exit_code == 0
    assert "leads: 1" in result.output

    result = runner.invoke(args=["integrity-report"])
    assert result.exit_code == 0
    assert "converted_without_enrollment: 0" in result.output


def test_seed_demo(app):
    result = app.test_cli_runner().invoke(args=["seed-demo"])
    assert result.exit_code == 0, result.output
    assert Unit.query.count() == 1
    assert Lead.query.count() == 4
    # idempotente
    app.test_cli_runner().invoke(args=["seed-demo"])
    assert Lead.query.count() == 4
