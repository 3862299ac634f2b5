import uuid
from sqlalchemy.dialects.postgresql import UUID
from extensions import db
from utils.dates import utcnow


class Unit(db.Model):
    """Unidade (tenant). O próprio id é o tenant_id de todas as linhas da unidade."""

    __tablename__ = "units"

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # auto-referência: tenant_id == id
    tenant_id = db.Column(UUID(as_uuid=True), nullable=True, index=True)
    name = db.Column(db.String(255), nullable=False)
    address = db.Column(db.String)
    phone = db.Column(db.String(32))

    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Unit id={self.id} name={self.name}>"
