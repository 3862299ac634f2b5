import uuid
from sqlalchemy.dialects.postgresql import UUID
from extensions import db
from utils.dates import utcnow

NOTE_TYPES = ("geral", "follow_up", "visita", "matricula", "cancelamento")


class Anotacao(db.Model):
    __tablename__ = "anotacoes"

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = db.Column(
        UUID(as_uuid=True),
        db.ForeignKey("units.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # vínculos opcionais; sem FK para manter notas após limpeza de leads
    lead_id = db.Column(UUID(as_uuid=True), nullable=True, index=True)
    agendamento_id = db.Column(UUID(as_uuid=True), nullable=True)
    matricula_id = db.Column(UUID(as_uuid=True), nullable=True)
    user_id = db.Column(UUID(as_uuid=True), nullable=True)

    tipo = db.Column(db.String(32), nullable=False, default="geral")
    titulo = db.Column(db.String(255))
    conteudo = db.Column(db.Text, nullable=False)
    is_importante = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
