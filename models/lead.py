import uuid
from sqlalchemy.dialects.postgresql import UUID, JSONB
from extensions import db
from utils.dates import utcnow


class Lead(db.Model):
    __tablename__ = "leads"
    __table_args__ = (
        db.Index("ix_leads_tenant_whatsapp", "tenant_id", "whatsapp_number"),
        db.Index("ix_leads_tenant_created", "tenant_id", "created_at"),
    )

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = db.Column(
        UUID(as_uuid=True),
        db.ForeignKey("units.id", ondelete="CASCADE"),
        nullable=False,
    )
    unit_id = db.Column(UUID(as_uuid=True), nullable=True, index=True)
    user_id = db.Column(UUID(as_uuid=True), db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    name = db.Column(db.String, nullable=False)
    # chave natural de deduplicação por tenant (sem UNIQUE no banco)
    whatsapp_number = db.Column(db.String(32), nullable=False)
    discipline = db.Column(db.String(120), nullable=False, default="Não especificado")
    age_group = db.Column(db.String(64), nullable=False, default="Não especificado")
    who_searched = db.Column(db.String(64), nullable=False, default="Própria pessoa")
    origin_channel = db.Column(db.String(64), nullable=False, default="Manual")

    status = db.Column(db.String(32), nullable=False, default="novo_lead", index=True)
    interest_level = db.Column(db.String(16), nullable=False, default="morno")
    scheduled_date = db.Column(db.DateTime(timezone=True), nullable=True)
    attended = db.Column(db.Boolean, nullable=False, default=False)
    converted = db.Column(db.Boolean, nullable=False, default=False)
    observations = db.Column(db.Text)

    ai_interaction_log = db.Column(db.JSON().with_variant(JSONB(), "postgresql"), nullable=True)

    version = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    # UPDATE ... WHERE version = :old (StaleDataError em corrida)
    __mapper_args__ = {"version_id_col": version}

    interactions = db.relationship(
        "LeadInteraction",
        backref="lead",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )
    agendamentos = db.relationship(
        "Agendamento",
        backref="lead",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )
    matriculas = db.relationship("Matricula", backref="lead", lazy="dynamic")

    def __repr__(self) -> str:
        return f"<Lead id={self.id} name={self.name} status={self.status}>"
