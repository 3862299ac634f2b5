import uuid
from sqlalchemy.dialects.postgresql import UUID, NUMERIC
from extensions import db
from utils.dates import utcnow


class Matricula(db.Model):
    __tablename__ = "matriculas"

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = db.Column(
        UUID(as_uuid=True),
        db.ForeignKey("units.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    lead_id = db.Column(
        UUID(as_uuid=True),
        db.ForeignKey("leads.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    user_id = db.Column(UUID(as_uuid=True), db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    plano = db.Column(db.String(120), nullable=False)
    disciplina = db.Column(db.String(120), nullable=False)
    valor_mensalidade = db.Column(NUMERIC(12, 2))
    data_inicio = db.Column(db.Date, nullable=False)
    data_fim = db.Column(db.Date)
    status = db.Column(db.String(32), nullable=False, default="ativa")
    forma_pagamento = db.Column(db.String(64))
    observacoes = db.Column(db.Text)

    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Matricula id={self.id} lead_id={self.lead_id} plano={self.plano}>"
