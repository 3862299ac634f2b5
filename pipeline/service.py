"""
Mudanças de etapa do lead. Único caminho que grava status/converted.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from extensions import db
from eventos.service import record_event
from models.lead import Lead
from models.lead_interaction import LeadInteraction
from models.matricula import Matricula
from pipeline.states import LeadStatus, check_transition, normalize_status
from utils.dates import utcnow

logger = logging.getLogger(__name__)

DEFAULT_PLANO = "A definir"


def add_interaction(
    lead: Lead,
    interaction_type: str,
    content: Optional[str] = None,
    *,
    user_id=None,
    from_status: Optional[str] = None,
    to_status: Optional[str] = None,
    ai_generated: bool = False,
) -> LeadInteraction:
    inter = LeadInteraction(
        id=uuid.uuid4(),
        tenant_id=lead.tenant_id,
        lead_id=lead.id,
        user_id=user_id,
        interaction_type=interaction_type,
        content=content,
        from_status=from_status,
        to_status=to_status,
        ai_generated=ai_generated,
    )
    db.session.add(inter)
    return inter


def _default_matricula(lead: Lead, user_id=None) -> Matricula:
    return Matricula(
        id=uuid.uuid4(),
        tenant_id=lead.tenant_id,
        lead_id=lead.id,
        user_id=user_id,
        plano=DEFAULT_PLANO,
        disciplina=lead.discipline or "Não especificado",
        data_inicio=utcnow().date(),
    )


def _ensure_enrollment(lead: Lead, matricula: Optional[Matricula], user_id=None) -> Optional[Matricula]:
    if matricula is not None:
        db.session.add(matricula)
    elif lead.matriculas.count() == 0:
        matricula = _default_matricula(lead, user_id)
        db.session.add(matricula)
    lead.converted = True
    return matricula


def apply_status_change(
    lead: Lead,
    target,
    *,
    user_id=None,
    matricula: Optional[Matricula] = None,
    reason: Optional[str] = None,
) -> bool:
    """
    Aplica a transição na sessão (sem commit). Retorna False se já estava no status
    (exceto lead legado em 'matriculado' sem converted, que é reconciliado).

    Chegar em 'matriculado' marca converted=True e garante uma matrícula
    na mesma transação.
    """
    current = lead.status
    dst = normalize_status(target)
    if not check_transition(current, dst):
        if dst == LeadStatus.MATRICULADO and not lead.converted:
            # legado: já 'matriculado' sem converted/matrícula
            matricula = _ensure_enrollment(lead, matricula, user_id)
            lead.updated_at = utcnow()
            record_event(
                lead.tenant_id,
                "matricula_reconciliada",
                f"Lead {lead.name} marcado como convertido",
                lead_id=lead.id,
                matricula_id=matricula.id if matricula is not None else None,
                user_id=user_id,
            )
            logger.info("Lead %s: converted restored for status matriculado", lead.id)
            return True
        return False

    if dst == LeadStatus.MATRICULADO:
        matricula = _ensure_enrollment(lead, matricula, user_id)

    lead.status = dst.value
    lead.updated_at = utcnow()

    add_interaction(
        lead,
        "STATUS_CHANGE",
        reason,
        user_id=user_id,
        from_status=current,
        to_status=dst.value,
    )
    record_event(
        lead.tenant_id,
        "status_alterado",
        f"Lead {lead.name} movido de {current} para {dst.value}",
        lead_id=lead.id,
        matricula_id=matricula.id if matricula is not None else None,
        user_id=user_id,
        dados={"from": current, "to": dst.value},
    )
    logger.info("Lead %s: %s -> %s", lead.id, current, dst.value)
    return True
