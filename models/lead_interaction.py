import uuid
from sqlalchemy.dialects.postgresql import UUID
from extensions import db
from utils.dates import utcnow


class LeadInteraction(db.Model):
    """Histórico append-only de mensagens e mudanças de etapa de um lead."""

    __tablename__ = "lead_interactions"

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

    interaction_type = db.Column(db.String(64), nullable=False)
    content = db.Column(db.Text)
    from_status = db.Column(db.String(32))
    to_status = db.Column(db.String(32))
    ai_generated = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<LeadInteraction id={self.id} type={self.interaction_type} lead_id={self.lead_id}>"
