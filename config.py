import os
from datetime import timedelta


def _parse_duration(s: str) -> timedelta:
    if not s:
        return timedelta(hours=24)
    s = s.strip().lower()
    if s.endswith("d"):
        return timedelta(days=int(s[:-1] or 1))
    if s.endswith("h"):
        return timedelta(hours=int(s[:-1] or 24))
    if s.endswith("m"):
        return timedelta(minutes=int(s[:-1] or 60))
    return timedelta(seconds=int(s))


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _engine_options(uri: str) -> dict:
    # SQLite (testes) usa StaticPool/NullPool e rejeita pool_size/max_overflow
    if uri.startswith("sqlite"):
        return {}
    return {
        "pool_pre_ping": True,
        "pool_recycle": int(os.getenv("DB_POOL_RECYCLE", "1800")),
        "pool_size": int(os.getenv("DB_POOL_SIZE", "5")),
        "max_overflow": int(os.getenv("DB_MAX_OVERFLOW", "10")),
    }


class Config:
    # DB
    # Prefer DATABASE_URL, caindo para SQLALCHEMY_DATABASE_URI
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL") or os.getenv("SQLALCHEMY_DATABASE_URI")
    if not SQLALCHEMY_DATABASE_URI:
        raise RuntimeError("DATABASE_URL/SQLALCHEMY_DATABASE_URI não definida no ambiente/.env")

    # Corrige URLs antigas 'postgres://'
    if SQLALCHEMY_DATABASE_URI.startswith("postgres://"):
        SQLALCHEMY_DATABASE_URI = SQLALCHEMY_DATABASE_URI.replace("postgres://", "postgresql+psycopg2://", 1)

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = os.getenv("SQLALCHEMY_ECHO", "0") == "1"
    SQLALCHEMY_ENGINE_OPTIONS = _engine_options(SQLALCHEMY_DATABASE_URI)

    # Tokens (sub, tenant_id, is_master, is_admin, exp)
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY") or os.getenv("JWT_SECRET", "dev-secret")
    JWT_ACCESS_TOKEN_EXPIRES = _parse_duration(os.getenv("JWT_ACCESS_TOKEN_EXPIRES", "24h"))
    JWT_TOKEN_LOCATION = ["headers"]

    # CORS
    _cors_from_env = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]
    CORS_ORIGINS = _cors_from_env or [
        "http://localhost:5173",
        "http://localhost:4000",
    ]

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    # Ingestão via WhatsApp
    WHATSAPP_DEFAULT_TENANT_ID = os.getenv("WHATSAPP_DEFAULT_TENANT_ID") or None
    WEBHOOK_RATE_LIMIT_PER_MINUTE = int(os.getenv("WEBHOOK_RATE_LIMIT_PER_MINUTE", "120"))
    # quantos proxies reversos confiáveis preenchem X-Forwarded-For (0 = nenhum)
    TRUSTED_PROXY_HOPS = int(os.getenv("TRUSTED_PROXY_HOPS", "0"))

    # Lembretes de agendamento
    REMINDERS_SCHEDULER_ENABLED = _flag("REMINDERS_SCHEDULER_ENABLED")
    REMINDER_WINDOW_HOURS = int(os.getenv("REMINDER_WINDOW_HOURS", "24"))
    REMINDER_WEBHOOK_URL = os.getenv("REMINDER_WEBHOOK_URL") or None

    METRICS_RECENT_LEADS_LIMIT = int(os.getenv("METRICS_RECENT_LEADS_LIMIT", "10"))
