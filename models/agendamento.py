import uuid
from sqlalchemy.dialects.postgresql import UUID
from extensions import db
from utils.dates import utcnow

APPOINTMENT_STATUSES = ("agendado", "realizado", "cancelado", "faltou")


class Agendamento(db.Model):
    __tablename__ = "agendamentos"

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = db.Column(
        UUID(as_uuid=True),
        db.ForeignKey("units.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    lead_id = db.Column(
        UUID(as_uuid=True),
        db.ForeignKey("leads.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = db.Column(UUID(as_uuid=True), db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    data_agendamento = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    status = db.Column(db.String(32), nullable=False, default="agendado")
    tipo = db.Column(db.String(64), nullable=False, default="visita")
    observacoes = db.Column(db.Text)

    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Agendamento id={self.id} lead_id={self.lead_id} em={self.data_agendamento}>"
