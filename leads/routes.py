from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from ingestion.service import ingest_web_form
from leads.service import (
    create_lead,
    delete_lead,
    get_lead_for_caller,
    list_leads,
    serialize_lead,
    update_lead,
)
from utils.responses import created, json_body, no_content, ok
from utils.tenancy import current_caller, require_admin, resolve_tenant_id

# Blueprint sem prefixo interno; app.py define /api/v1/leads
bp = Blueprint("leads", __name__)


@bp.get("")
@jwt_required()
def list_route():
    caller = current_caller()
    tenant_id = resolve_tenant_id(caller, request.args.get("tenant_id"))
    return ok(list_leads(tenant_id, request.args))


@bp.post("")
@jwt_required()
def create_route():
    caller = current_caller()
    payload = json_body()
    tenant_id = resolve_tenant_id(caller, payload.get("tenant_id"))
    lead = create_lead(caller, tenant_id, payload)
    return created(serialize_lead(lead))


@bp.post("/webhook")
def web_form_route():
    # formulário público do site; sem token, nunca quebra com payload ruim
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return ok({"success": False, "message": "Invalid payload"})
    result = ingest_web_form(
        payload.get("name"),
        payload.get("phone"),
        payload.get("message"),
        payload.get("tenant_id"),
    )
    return ok(result)


@bp.get("/<uuid:lead_id>")
@jwt_required()
def get_route(lead_id):
    lead = get_lead_for_caller(current_caller(), lead_id)
    return ok(serialize_lead(lead, with_interactions=True))


@bp.put("/<uuid:lead_id>")
@jwt_required()
def update_route(lead_id):
    payload = json_body()
    lead = update_lead(current_caller(), lead_id, payload)
    return ok(serialize_lead(lead))


@bp.delete("/<uuid:lead_id>")
@jwt_required()
@require_admin
def delete_route(lead_id):
    delete_lead(current_caller(), lead_id)
    return no_content()
