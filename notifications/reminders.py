"""
Lembretes de agendamentos próximos.

Roda de hora em hora (APScheduler) ou sob demanda via `flask check-appointments`.
Cada unidade é processada isoladamente: falha em uma não interrompe as outras.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import List, Optional

import httpx
from flask import current_app

from extensions import db
from models.agendamento import Agendamento
from models.lead import Lead
from models.unit import Unit
from utils.dates import isoformat, utcnow

logger = logging.getLogger(__name__)

_scheduler = None


def _reminders_for_unit(unit: Unit, now: datetime, until: datetime) -> List[dict]:
    rows = (
        db.session.query(Agendamento, Lead)
        .select_from(Agendamento)
        .join(Lead, Agendamento.lead_id == Lead.id)
        .filter(
            Agendamento.tenant_id == unit.id,
            Agendamento.status == "agendado",
            Agendamento.data_agendamento >= now,
            Agendamento.data_agendamento <= until,
        )
        .order_by(Agendamento.data_agendamento.asc())
        .all()
    )
    return [
        {
            "tenant_id": str(unit.id),
            "unit_name": unit.name,
            "agendamento_id": str(ag.id),
            "lead_id": str(lead.id),
            "lead_name": lead.name,
            "whatsapp_number": lead.whatsapp_number,
            "data_agendamento": isoformat(ag.data_agendamento),
            "tipo": ag.tipo,
        }
        for ag, lead in rows
    ]


def _deliver(url: str, reminder: dict) -> None:
    try:
        with httpx.Client(timeout=5.0) as c:
            r = c.post(url, json=reminder)
            r.raise_for_status()
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.warning("Reminder delivery failed for %s: %s", reminder["agendamento_id"], e)


def check_upcoming_appointments(now: Optional[datetime] = None) -> List[dict]:
    """Agendamentos 'agendado' em [now, now + REMINDER_WINDOW_HOURS], por unidade."""
    now = now or utcnow()
    window = int(current_app.config.get("REMINDER_WINDOW_HOURS", 24))
    until = now + timedelta(hours=window)
    url = current_app.config.get("REMINDER_WEBHOOK_URL")

    emitted: List[dict] = []
    for unit in Unit.query.order_by(Unit.created_at.asc()).all():
        try:
            reminders = _reminders_for_unit(unit, now, until)
        except Exception:
            logger.exception("Reminder check failed for tenant %s", unit.id)
            db.session.rollback()
            continue

        for reminder in reminders:
            logger.info(
                "Lembrete: %s (%s) em %s [%s]",
                reminder["lead_name"],
                reminder["whatsapp_number"],
                reminder["data_agendamento"],
                unit.name,
            )
            if url:
                _deliver(url, reminder)
        emitted.extend(reminders)

    logger.info("Reminder pass done: %d reminder(s)", len(emitted))
    return emitted


def init_scheduler(app) -> None:
    """Agenda a verificação de hora em hora (minuto 0). Desligado em testes."""
    global _scheduler
    if app.config.get("TESTING") or not app.config.get("REMINDERS_SCHEDULER_ENABLED"):
        return
    if _scheduler is not None:
        return

    from apscheduler.schedulers.background import BackgroundScheduler

    scheduler = BackgroundScheduler(timezone="UTC")

    def _run_hourly() -> None:
        with app.app_context():
            check_upcoming_appointments()

    scheduler.add_job(_run_hourly, "cron", minute=0, id="appointment_reminders")
    scheduler.start()
    _scheduler = scheduler
    app.logger.info("Reminder scheduler started")
