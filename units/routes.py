from flask import Blueprint
from flask_jwt_extended import jwt_required

from extensions import db
from models.unit import Unit
from units.service import build_unit, delete_unit, serialize_unit
from utils.errors import NotFound, PermissionDenied
from utils.responses import created, json_body, no_content, ok
from utils.tenancy import current_caller, ensure_tenant_access, require_master

bp = Blueprint("units", __name__)


@bp.get("")
@jwt_required()
def list_units():
    caller = current_caller()
    qry = Unit.query
    if not caller.is_master:
        qry = qry.filter(Unit.id == caller.tenant_id)
    units = qry.order_by(Unit.name.asc()).all()
    return ok({"units": [serialize_unit(u) for u in units]})


@bp.post("")
@jwt_required()
@require_master
def create_unit():
    payload = json_body()
    unit = build_unit(payload.get("name"), payload.get("address"), payload.get("phone"))
    db.session.commit()
    return created(serialize_unit(unit))


@bp.put("/<uuid:unit_id>")
@jwt_required()
def update_unit(unit_id):
    caller = current_caller()
    unit = db.session.get(Unit, unit_id)
    if not unit:
        raise NotFound("Unit not found")
    ensure_tenant_access(caller, unit.id)
    if not (caller.is_admin or caller.is_master):
        raise PermissionDenied("Admin role required")

    data = json_body()
    if "name" in data:
        unit.name = (data.get("name") or "").strip() or unit.name
    if "address" in data:
        unit.address = data.get("address")
    if "phone" in data:
        unit.phone = data.get("phone")
    db.session.commit()
    return ok(serialize_unit(unit))


@bp.delete("/<uuid:unit_id>")
@jwt_required()
@require_master
def delete_unit_route(unit_id):
    delete_unit(current_caller().tenant_id, unit_id)
    return no_content()
