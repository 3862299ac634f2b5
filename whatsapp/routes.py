from cachetools import TTLCache
from flask import Blueprint, current_app, request

from ingestion.service import ingest_whatsapp_message
from utils.errors import error_response
from utils.responses import ok

bp = Blueprint("whatsapp", __name__)

RATE_WINDOW_SECONDS = 60

_rate_cache: TTLCache = TTLCache(maxsize=10000, ttl=RATE_WINDOW_SECONDS)


def _rate_limit_exceeded(ip: str) -> bool:
    # janela fixa: a chave muda a cada minuto, a contagem não se prolonga
    limit = current_app.config.get("WEBHOOK_RATE_LIMIT_PER_MINUTE", 120)
    key = (ip, int(_rate_cache.timer() // RATE_WINDOW_SECONDS))
    count = _rate_cache.get(key, 0) + 1
    _rate_cache[key] = count
    return count > limit


@bp.post("/webhook")
def webhook():
    """
    Mensagem recebida do provedor de WhatsApp.
    Body: {"from": str, "message": str, "timestamp": str, "tenant_id"?: str}
    Sempre 200 com {success, lead_id?, message}; nunca quebra com payload ruim.
    """
    # remote_addr já vem corrigido pelo ProxyFix quando há proxy confiável
    ip = request.remote_addr or "?"
    if _rate_limit_exceeded(ip):
        return error_response("rate_limited", "Too Many Requests", 429)

    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return ok({"success": False, "message": "Invalid payload"})

    result = ingest_whatsapp_message(
        payload.get("from"),
        payload.get("message"),
        payload.get("timestamp"),
        payload.get("tenant_id"),
    )
    if not result["success"]:
        current_app.logger.info("WhatsApp webhook not processed: %s", result["message"])
    return ok(result)
