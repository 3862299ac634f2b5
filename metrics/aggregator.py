"""
Métricas do dashboard e relatórios.

Cada número sai de uma consulta própria sobre o mesmo filtro
(tenant + unidade + período), para que possa ser auditado isoladamente.
Se uma seção falha, ela volta com o valor padrão, o nome vai para
`partial_failures` e as demais seções seguem normalmente.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, List, Optional

from sqlalchemy import case, func

from extensions import db
from models.lead import Lead
from models.matricula import Matricula
from models.user import User
from pipeline.states import LeadStatus, pipeline_rank
from utils.dates import isoformat, shift_months, start_of_month, utcnow

logger = logging.getLogger(__name__)

MONTHS_IN_EVOLUTION = 12
_ONE_DECIMAL = Decimal("0.1")


def percentage(part, whole) -> float:
    """part/whole*100 com uma casa (half-up), 0 se whole == 0, sempre em [0, 100]."""
    if not whole:
        return 0.0
    value = Decimal(part or 0) * 100 / Decimal(whole)
    value = min(max(value, Decimal(0)), Decimal(100))
    return float(value.quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class MetricsScope:
    tenant_id: uuid.UUID
    start: datetime
    end: datetime
    unit_id: Optional[uuid.UUID] = None


def _month_key(column):
    dialect = db.engine.dialect.name
    if dialect == "postgresql":
        return func.to_char(func.date_trunc("month", column), "YYYY-MM")
    if dialect in ("mysql", "mariadb"):
        return func.date_format(column, "%Y-%m")
    return func.strftime("%Y-%m", column)


def _converted_count():
    return func.count(case((Lead.converted.is_(True), 1)))


class SectionedAggregator:
    def __init__(self, scope: MetricsScope):
        self.scope = scope
        self.failures: List[str] = []

    def _section(self, name: str, fn: Callable[[], Any], default):
        try:
            return fn()
        except Exception:
            logger.exception(
                "Metrics section %s failed (tenant=%s)", name, self.scope.tenant_id
            )
            db.session.rollback()
            self.failures.append(name)
            return default

    def _tenant_leads(self):
        qry = Lead.query.filter(Lead.tenant_id == self.scope.tenant_id)
        if self.scope.unit_id:
            qry = qry.filter(Lead.unit_id == self.scope.unit_id)
        return qry

    def _leads(self):
        return self._tenant_leads().filter(
            Lead.created_at >= self.scope.start,
            Lead.created_at <= self.scope.end,
        )

    def _scoped(self, qry):
        qry = qry.filter(
            Lead.tenant_id == self.scope.tenant_id,
            Lead.created_at >= self.scope.start,
            Lead.created_at <= self.scope.end,
        )
        if self.scope.unit_id:
            qry = qry.filter(Lead.unit_id == self.scope.unit_id)
        return qry


class DashboardAggregator(SectionedAggregator):
    def __init__(self, scope: MetricsScope, recent_limit: int = 10, now: Optional[datetime] = None):
        super().__init__(scope)
        self.recent_limit = recent_limit
        self.now = now or utcnow()

    # contagens, uma consulta cada
    def total_leads(self) -> int:
        return self._leads().count()

    def scheduled_leads(self) -> int:
        return self._leads().filter(Lead.status == LeadStatus.AGENDADO.value).count()

    def attended_leads(self) -> int:
        return self._leads().filter(Lead.attended.is_(True)).count()

    def converted_leads(self) -> int:
        return self._leads().filter(Lead.converted.is_(True)).count()

    def new_leads(self) -> int:
        return self._leads().filter(Lead.status == LeadStatus.NOVO_LEAD.value).count()

    def monthly_evolution(self) -> list:
        """Últimos 12 meses (por created_at), do mais recente para o mais antigo."""
        current = start_of_month(self.now)
        months = [shift_months(current, -i).strftime("%Y-%m") for i in range(MONTHS_IN_EVOLUTION)]
        since = shift_months(current, -(MONTHS_IN_EVOLUTION - 1))

        key = _month_key(Lead.created_at).label("month")
        qry = db.session.query(key, func.count(Lead.id), _converted_count()).filter(
            Lead.tenant_id == self.scope.tenant_id,
            Lead.created_at >= since,
        )
        if self.scope.unit_id:
            qry = qry.filter(Lead.unit_id == self.scope.unit_id)
        rows = {r[0]: (int(r[1]), int(r[2] or 0)) for r in qry.group_by(key).all()}

        return [
            {
                "month": m,
                "total_leads": rows.get(m, (0, 0))[0],
                "converted_leads": rows.get(m, (0, 0))[1],
            }
            for m in months
        ]

    def pipeline_data(self) -> list:
        rows = self._scoped(
            db.session.query(Lead.status, func.count(Lead.id))
        ).group_by(Lead.status).all()
        ordered = sorted(rows, key=lambda r: (pipeline_rank(r[0]), r[0] or ""))
        return [{"status": status, "count": int(count)} for status, count in ordered]

    def discipline_data(self) -> list:
        rows = self._scoped(
            db.session.query(Lead.discipline, func.count(Lead.id))
        ).group_by(Lead.discipline).all()
        total = sum(int(c) for _, c in rows)
        ordered = sorted(rows, key=lambda r: (-int(r[1]), r[0] or ""))
        return [
            {"discipline": d, "count": int(c), "percentage": percentage(c, total)}
            for d, c in ordered
        ]

    def recent_leads(self) -> list:
        items = self._leads().order_by(Lead.created_at.desc()).limit(self.recent_limit).all()
        return [
            {
                "id": str(lead.id),
                "name": lead.name,
                "whatsapp_number": lead.whatsapp_number,
                "status": lead.status,
                "created_at": isoformat(lead.created_at),
            }
            for lead in items
        ]

    def compute(self) -> dict:
        total = self._section("total_leads", self.total_leads, 0)
        scheduled = self._section("scheduled_leads", self.scheduled_leads, 0)
        attended = self._section("attended_leads", self.attended_leads, 0)
        converted = self._section("converted_leads", self.converted_leads, 0)
        new = self._section("new_leads", self.new_leads, 0)

        return {
            "tenant_id": str(self.scope.tenant_id),
            "unit_id": str(self.scope.unit_id) if self.scope.unit_id else None,
            "start_date": isoformat(self.scope.start),
            "end_date": isoformat(self.scope.end),
            "total_leads": total,
            "scheduled_leads": scheduled,
            "attended_leads": attended,
            "converted_leads": converted,
            "new_leads": new,
            "scheduling_rate": percentage(scheduled, total),
            "attendance_rate": percentage(attended, scheduled),
            "conversion_rate": percentage(converted, total),
            "monthly_evolution": self._section("monthly_evolution", self.monthly_evolution, []),
            "pipeline_data": self._section("pipeline_data", self.pipeline_data, []),
            "discipline_data": self._section("discipline_data", self.discipline_data, []),
            "recent_leads": self._section("recent_leads", self.recent_leads, []),
            "partial_failures": list(self.failures),
        }


class ReportsAggregator(SectionedAggregator):
    def conversion_by_channel(self) -> list:
        rows = self._scoped(
            db.session.query(Lead.origin_channel, func.count(Lead.id), _converted_count())
        ).group_by(Lead.origin_channel).all()
        items = [
            {
                "label": channel,
                "value": int(conv or 0),
                "total": int(total),
                "rate": percentage(conv, total),
            }
            for channel, total, conv in rows
        ]
        return sorted(items, key=lambda i: (-i["value"], -i["total"], i["label"] or ""))

    def consultant_ranking(self) -> list:
        rows = (
            self._scoped(
                db.session.query(User.name, func.count(Lead.id))
                .select_from(Lead)
                .join(User, Lead.user_id == User.id)
            )
            .filter(Lead.converted.is_(True))
            .group_by(User.name)
            .all()
        )
        ordered = sorted(rows, key=lambda r: (-int(r[1]), r[0] or ""))
        return [{"label": name, "value": int(count)} for name, count in ordered]

    def _matriculas(self, *columns):
        qry = db.session.query(*columns).select_from(Matricula).filter(
            Matricula.tenant_id == self.scope.tenant_id,
            Matricula.created_at >= self.scope.start,
            Matricula.created_at <= self.scope.end,
        )
        if self.scope.unit_id:
            qry = qry.join(Lead, Matricula.lead_id == Lead.id).filter(Lead.unit_id == self.scope.unit_id)
        return qry

    def enrollments_by_discipline(self) -> list:
        rows = (
            self._matriculas(Matricula.disciplina, func.count(Matricula.id))
            .group_by(Matricula.disciplina)
            .all()
        )
        ordered = sorted(rows, key=lambda r: (-int(r[1]), r[0] or ""))
        return [{"label": d, "value": int(c)} for d, c in ordered]

    def average_funnel_time(self) -> Optional[dict]:
        """Tempo médio entre a criação do lead e a matrícula."""
        qry = self._matriculas(Matricula.created_at, Lead.created_at)
        if not self.scope.unit_id:
            qry = qry.join(Lead, Matricula.lead_id == Lead.id)
        durations = [
            (enrolled - created).total_seconds()
            for enrolled, created in qry.all()
            if enrolled is not None and created is not None
        ]
        if not durations:
            return None
        avg = max(0, int(sum(durations) / len(durations)))
        days, rest = divmod(avg, 86400)
        hours, rest = divmod(rest, 3600)
        return {"days": days, "hours": hours, "minutes": rest // 60}

    def compute(self) -> dict:
        return {
            "conversion_by_channel": self._section("conversion_by_channel", self.conversion_by_channel, []),
            "consultant_ranking": self._section("consultant_ranking", self.consultant_ranking, []),
            "enrollments_by_discipline": self._section(
                "enrollments_by_discipline", self.enrollments_by_discipline, []
            ),
            "average_funnel_time": self._section("average_funnel_time", self.average_funnel_time, None),
            "partial_failures": list(self.failures),
        }
