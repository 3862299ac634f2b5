"""Auth routes: registro de nova unidade, login e /me.

O frontend chama a API com Authorization: Bearer <access_token>.
"""

from flask import Blueprint
from flask_jwt_extended import jwt_required

from auth.service import authenticate, issue_token, register_tenant, serialize_user
from extensions import db
from models.user import User
from units.service import serialize_unit
from utils.errors import NotFound
from utils.responses import created, json_body, ok
from utils.tenancy import current_caller

# Registered by app.py at /api/v1/auth
bp = Blueprint("auth", __name__)


@bp.post("/register")
def register():
    """Body JSON: {"name": str, "email": str, "password": str, "unit_name"?: str}"""
    data = json_body()
    user, unit = register_tenant(
        data.get("name"),
        data.get("email"),
        data.get("password"),
        data.get("unit_name"),
    )
    return created({
        "token": issue_token(user),
        "user": serialize_user(user),
        "unit": serialize_unit(unit),
    })


@bp.post("/login")
def login():
    data = json_body()
    user = authenticate(data.get("email"), data.get("password"))
    return ok({"token": issue_token(user), "user": serialize_user(user)})


@bp.get("/me")
@jwt_required()
def me():
    caller = current_caller()
    user = db.session.get(User, caller.user_id)
    if not user:
        raise NotFound("User not found")
    return ok(serialize_user(user))
