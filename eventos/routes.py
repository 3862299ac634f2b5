from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from eventos.service import serialize_evento
from models.evento import Evento
from utils.responses import ok
from utils.tenancy import current_caller, optional_uuid, resolve_tenant_id

bp = Blueprint("eventos", __name__)


@bp.get("")
@jwt_required()
def list_eventos():
    tenant_id = resolve_tenant_id(current_caller(), request.args.get("tenant_id"))
    qry = Evento.query.filter(Evento.tenant_id == tenant_id)
    lead_id = optional_uuid(request.args.get("lead_id"), "lead_id")
    if lead_id:
        qry = qry.filter(Evento.lead_id == lead_id)
    if request.args.get("tipo_evento"):
        qry = qry.filter(Evento.tipo_evento == request.args.get("tipo_evento"))
    items = qry.order_by(Evento.created_at.desc()).limit(500).all()
    return ok({"eventos": [serialize_evento(e) for e in items]})
