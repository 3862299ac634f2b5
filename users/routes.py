from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from auth.service import serialize_user
from users.service import create_user, list_users
from utils.responses import created, json_body, ok
from utils.tenancy import current_caller, require_admin, resolve_tenant_id

# Registered by app.py at /api/v1/users
bp = Blueprint("users", __name__)


@bp.get("")
@jwt_required()
def list_route():
    tenant_id = resolve_tenant_id(current_caller(), request.args.get("tenant_id"))
    return ok({"users": [serialize_user(u) for u in list_users(tenant_id)]})


@bp.post("")
@jwt_required()
@require_admin
def create_route():
    """Body JSON: {"name", "email", "password", "role"?: "admin"|"consultor", "tenant_id"?}"""
    payload = json_body()
    tenant_id = resolve_tenant_id(current_caller(), payload.get("tenant_id"))
    user = create_user(tenant_id, payload)
    return created(serialize_user(user))
