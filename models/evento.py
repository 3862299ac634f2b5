import uuid
from sqlalchemy.dialects.postgresql import UUID, JSONB
from extensions import db
from utils.dates import utcnow


class Evento(db.Model):
    __tablename__ = "eventos"

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = db.Column(
        UUID(as_uuid=True),
        db.ForeignKey("units.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    lead_id = db.Column(UUID(as_uuid=True), nullable=True, index=True)
    agendamento_id = db.Column(UUID(as_uuid=True), nullable=True)
    matricula_id = db.Column(UUID(as_uuid=True), nullable=True)
    user_id = db.Column(UUID(as_uuid=True), nullable=True)

    tipo_evento = db.Column(db.String(64), nullable=False)
    descricao = db.Column(db.Text, nullable=False)
    dados_evento = db.Column(db.JSON().with_variant(JSONB(), "postgresql"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<Evento id={self.id} tipo={self.tipo_evento}>"
