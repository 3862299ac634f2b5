from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from agendamentos.service import (
    create_agendamento,
    list_agendamentos,
    serialize_agendamento,
    update_agendamento,
)
from utils.responses import created, json_body, ok
from utils.tenancy import current_caller, resolve_tenant_id

bp = Blueprint("agendamentos", __name__)


@bp.get("")
@jwt_required()
def list_route():
    tenant_id = resolve_tenant_id(current_caller(), request.args.get("tenant_id"))
    items = list_agendamentos(tenant_id, request.args)
    return ok({"agendamentos": [serialize_agendamento(a) for a in items]})


@bp.post("")
@jwt_required()
def create_route():
    caller = current_caller()
    payload = json_body()
    tenant_id = resolve_tenant_id(caller, payload.get("tenant_id"))
    appt = create_agendamento(caller, tenant_id, payload)
    return created(serialize_agendamento(appt))


@bp.put("/<uuid:agendamento_id>")
@jwt_required()
def update_route(agendamento_id):
    payload = json_body()
    appt = update_agendamento(current_caller(), agendamento_id, payload)
    return ok(serialize_agendamento(appt))
