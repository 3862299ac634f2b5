# app.py
import os
from pathlib import Path
from dotenv import load_dotenv

# Carrega .env antes de importar config/extensões
ENV_PATH = Path(__file__).resolve().with_name(".env")
load_dotenv(dotenv_path=ENV_PATH)

import click
from flask import Flask, jsonify, request
from sqlalchemy import text
from werkzeug.middleware.proxy_fix import ProxyFix

# Suporte a execução como script (python app.py) e como módulo (flask --app app)
try:
    from config import Config
    from extensions import db, init_cors, bcrypt, jwt
except ModuleNotFoundError:
    from .config import Config  # type: ignore
    from .extensions import db, init_cors, bcrypt, jwt  # type: ignore

from utils.errors import error_response, register_error_handlers
from utils.logging_setup import configure_logging


def _register_jwt_callbacks():
    # token ausente/inválido/expirado -> mesmo payload de erro das demais rotas
    @jwt.unauthorized_loader
    def _missing_token(reason):
        return error_response("unauthenticated", reason, 401)

    @jwt.invalid_token_loader
    def _invalid_token(reason):
        return error_response("unauthenticated", reason, 401)

    @jwt.expired_token_loader
    def _expired_token(jwt_header, jwt_payload):
        return error_response("unauthenticated", "Token has expired", 401)


def create_app(test_config=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    hops = int(app.config.get("TRUSTED_PROXY_HOPS") or 0)
    if hops > 0:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=hops, x_proto=hops)

    db.init_app(app)
    bcrypt.init_app(app)
    jwt.init_app(app)
    init_cors(app)
    _register_jwt_callbacks()
    register_error_handlers(app)

    # extrator de dados de lead usado pela ingestão (substituível)
    from ingestion.extraction import HeuristicExtractor
    app.extensions.setdefault("lead_extractor", HeuristicExtractor())

    # Garantir resposta ao preflight (OPTIONS) globalmente
    @app.before_request
    def _handle_cors_preflight():
        if request.method == "OPTIONS":
            return "", 204

    # Blueprints
    from auth.routes import bp as auth_bp
    from units.routes import bp as units_bp
    from users.routes import bp as users_bp
    from leads.routes import bp as leads_bp
    from whatsapp.routes import bp as whatsapp_bp
    from agendamentos.routes import bp as agendamentos_bp
    from matriculas.routes import bp as matriculas_bp
    from anotacoes.routes import bp as anotacoes_bp
    from eventos.routes import bp as eventos_bp
    from metrics.routes import bp as metrics_bp, reports_bp

    app.register_blueprint(auth_bp, url_prefix="/api/v1/auth")
    app.register_blueprint(units_bp, url_prefix="/api/v1/units")
    app.register_blueprint(users_bp, url_prefix="/api/v1/users")
    app.register_blueprint(leads_bp, url_prefix="/api/v1/leads")
    app.register_blueprint(whatsapp_bp, url_prefix="/api/v1/whatsapp")
    app.register_blueprint(agendamentos_bp, url_prefix="/api/v1/agendamentos")
    app.register_blueprint(matriculas_bp, url_prefix="/api/v1/matriculas")
    app.register_blueprint(anotacoes_bp, url_prefix="/api/v1/anotacoes")
    app.register_blueprint(eventos_bp, url_prefix="/api/v1/eventos")
    app.register_blueprint(metrics_bp, url_prefix="/api/v1/metrics")
    app.register_blueprint(reports_bp, url_prefix="/api/v1/reports")

    # Health
    @app.get("/api/v1/health")
    def health():
        # Verifica conectividade com o banco
        try:
            db.session.execute(text("SELECT 1"))
            db_ok = True
            detail = None
        except Exception as e:
            db.session.rollback()
            db_ok = False
            detail = str(e)

        payload = {
            "status": "ok" if db_ok else "error",
            "db": "ok" if db_ok else "error",
        }
        if detail and not db_ok:
            payload["detail"] = detail

        return jsonify(payload), (200 if db_ok else 500)

    # Comandos de CLI
    @app.cli.command("check-appointments")
    def check_appointments_cmd():
        """Executa uma verificação de lembretes agora."""
        from notifications.reminders import check_upcoming_appointments
        with app.app_context():
            reminders = check_upcoming_appointments()
        click.echo(f"{len(reminders)} lembrete(s) emitido(s)")

    @app.cli.command("seed-demo")
    def seed_demo_cmd():
        with app.app_context():
            from scripts.seed_demo import run as seed_demo_run
            seed_demo_run()

    @app.cli.command("cleanup-orphans")
    @click.option("--dry-run", is_flag=True, help="Apenas conta, não remove.")
    def cleanup_orphans_cmd(dry_run):
        from scripts.maintenance import cleanup_orphans
        with app.app_context():
            counts = cleanup_orphans(dry_run=dry_run)
        for label, count in counts.items():
            click.echo(f" - {label}: {count}")

    @app.cli.command("integrity-report")
    def integrity_report_cmd():
        from scripts.maintenance import integrity_report
        with app.app_context():
            report = integrity_report()
        for section, rows in report.items():
            click.echo(f"{section}: {len(rows)}")
            for row in rows:
                click.echo(f" - {row}")

    from notifications.reminders import init_scheduler
    init_scheduler(app)

    return app


app = create_app()

if __name__ == "__main__":
    with app.app_context():
        # opcional: criar tabelas se não usa migrations
        try:
            db.create_all()
        except Exception as e:
            print("DB create_all skipped or failed:", e)

    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
