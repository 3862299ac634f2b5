"""
Rotinas de manutenção (limpeza de órfãos e relatório de integridade).
Expostas como comandos `flask cleanup-orphans` e `flask integrity-report`.
"""

import logging

from sqlalchemy import exists, select

from extensions import db
from models.agendamento import Agendamento
from models.anotacao import Anotacao
from models.evento import Evento
from models.lead import Lead
from models.lead_interaction import LeadInteraction
from models.matricula import Matricula
from models.unit import Unit
from pipeline.states import VALID_STATUS

logger = logging.getLogger(__name__)

# filhos antes dos pais
_TENANT_SCOPED = (
    ("lead_interactions", LeadInteraction),
    ("anotacoes", Anotacao),
    ("eventos", Evento),
    ("agendamentos", Agendamento),
    ("matriculas", Matricula),
    ("leads", Lead),
)


def _orphan_queries():
    units = select(Unit.id)
    leads = select(Lead.id)
    for label, model in _TENANT_SCOPED:
        yield label, model.query.filter(model.tenant_id.not_in(units))
    # anotações/eventos que apontam para lead removido
    for label, model in (("anotacoes_sem_lead", Anotacao), ("eventos_sem_lead", Evento)):
        yield label, model.query.filter(model.lead_id.isnot(None), model.lead_id.not_in(leads))


def cleanup_orphans(dry_run: bool = False) -> dict:
    counts = {}
    try:
        for label, qry in _orphan_queries():
            if dry_run:
                counts[label] = qry.count()
            else:
                counts[label] = qry.delete(synchronize_session=False)
        if dry_run:
            db.session.rollback()
        else:
            db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("cleanup_orphans dry_run=%s %s", dry_run, counts)
    return counts


def integrity_report() -> dict:
    converted_without_enrollment = (
        Lead.query.filter(
            Lead.converted.is_(True),
            ~exists().where(Matricula.lead_id == Lead.id),
        )
        .order_by(Lead.created_at.asc())
        .all()
    )
    invalid_status = (
        Lead.query.filter(Lead.status.not_in(sorted(VALID_STATUS)))
        .order_by(Lead.created_at.asc())
        .all()
    )
    return {
        "converted_without_enrollment": [
            {"id": str(l.id), "tenant_id": str(l.tenant_id), "name": l.name}
            for l in converted_without_enrollment
        ],
        "invalid_status": [
            {"id": str(l.id), "tenant_id": str(l.tenant_id), "status": l.status}
            for l in invalid_status
        ],
    }
