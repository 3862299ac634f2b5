import uuid

from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from extensions import db
from models.agendamento import Agendamento
from models.anotacao import NOTE_TYPES, Anotacao
from models.lead import Lead
from models.matricula import Matricula
from utils.errors import InvalidArgument
from utils.responses import created, json_body, ok
from utils.serialization import sa_model_to_dict
from utils.tenancy import current_caller, optional_uuid, resolve_tenant_id

bp = Blueprint("anotacoes", __name__)

# vínculo opcional -> modelo que precisa existir no mesmo tenant
_LINKS = (("lead_id", Lead), ("agendamento_id", Agendamento), ("matricula_id", Matricula))


@bp.post("")
@jwt_required()
def create_anotacao():
    caller = current_caller()
    data = json_body()
    tenant_id = resolve_tenant_id(caller, data.get("tenant_id"))

    conteudo = (data.get("conteudo") or "").strip()
    if not conteudo:
        raise InvalidArgument("conteudo é obrigatório")
    tipo = data.get("tipo") or "geral"
    if tipo not in NOTE_TYPES:
        raise InvalidArgument(f"tipo inválido: {tipo}")

    links = {}
    for field, model in _LINKS:
        ref = optional_uuid(data.get(field), field)
        if ref is not None:
            row = db.session.get(model, ref)
            if row is None or row.tenant_id != tenant_id:
                raise InvalidArgument(f"{field} não encontrado neste tenant")
        links[field] = ref

    note = Anotacao(
        id=uuid.uuid4(),
        tenant_id=tenant_id,
        user_id=caller.user_id,
        tipo=tipo,
        titulo=data.get("titulo"),
        conteudo=conteudo,
        is_importante=bool(data.get("is_importante")),
        **links,
    )
    db.session.add(note)
    db.session.commit()
    return created(sa_model_to_dict(note))


@bp.get("")
@jwt_required()
def list_anotacoes():
    tenant_id = resolve_tenant_id(current_caller(), request.args.get("tenant_id"))
    qry = Anotacao.query.filter(Anotacao.tenant_id == tenant_id)
    lead_id = optional_uuid(request.args.get("lead_id"), "lead_id")
    if lead_id:
        qry = qry.filter(Anotacao.lead_id == lead_id)
    items = qry.order_by(Anotacao.created_at.desc()).all()
    return ok({"anotacoes": [sa_model_to_dict(n) for n in items]})
