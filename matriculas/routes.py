from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from matriculas.service import create_matricula, list_matriculas, serialize_matricula
from utils.responses import created, json_body, ok
from utils.tenancy import current_caller, resolve_tenant_id

bp = Blueprint("matriculas", __name__)


@bp.get("")
@jwt_required()
def list_route():
    tenant_id = resolve_tenant_id(current_caller(), request.args.get("tenant_id"))
    items = list_matriculas(tenant_id, request.args)
    return ok({"matriculas": [serialize_matricula(m) for m in items]})


@bp.post("")
@jwt_required()
def create_route():
    caller = current_caller()
    payload = json_body()
    tenant_id = resolve_tenant_id(caller, payload.get("tenant_id"))
    m = create_matricula(caller, tenant_id, payload)
    return created(serialize_matricula(m))
