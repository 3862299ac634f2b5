from flask import Blueprint, current_app, request
from flask_jwt_extended import jwt_required

from metrics.aggregator import DashboardAggregator, MetricsScope, ReportsAggregator
from utils.dates import resolve_range
from utils.responses import ok
from utils.tenancy import current_caller, optional_uuid, resolve_tenant_id

# Blueprints sem prefixo interno; app.py define /api/v1/metrics e /api/v1/reports
bp = Blueprint("metrics", __name__)
reports_bp = Blueprint("reports", __name__)


def _scope() -> MetricsScope:
    caller = current_caller()
    tenant_id = resolve_tenant_id(caller, request.args.get("tenant_id"))
    start, end = resolve_range(request.args.get("start_date"), request.args.get("end_date"))
    return MetricsScope(
        tenant_id=tenant_id,
        start=start,
        end=end,
        unit_id=optional_uuid(request.args.get("unit_id"), "unit_id"),
    )


@bp.get("/dashboard")
@jwt_required()
def dashboard():
    """
    Query params: tenant_id (apenas master), unit_id, start_date, end_date.
    Sem datas: do início do mês corrente até agora.
    """
    limit = current_app.config.get("METRICS_RECENT_LEADS_LIMIT", 10)
    return ok(DashboardAggregator(_scope(), recent_limit=limit).compute())


@reports_bp.get("")
@jwt_required()
def reports():
    scope = _scope()
    data = ReportsAggregator(scope).compute()
    data["start_date"] = scope.start.isoformat()
    data["end_date"] = scope.end.isoformat()
    return ok(data)
