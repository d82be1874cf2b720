import logging

from flask import Flask
from dotenv import load_dotenv

from panel.config import Config
from panel.extensions import db, migrate


def _apply_statement_timeout(app: Flask) -> None:
    """
    Límite por sentencia en PostgreSQL. Un lock que no se libera a tiempo
    aborta la transacción completa (sin escrituras parciales).
    """
    timeout_ms = int(app.config.get("DB_STATEMENT_TIMEOUT_MS") or 0)
    uri = app.config.get("SQLALCHEMY_DATABASE_URI") or ""
    if timeout_ms <= 0 or not uri.startswith("postgresql"):
        return

    options = dict(app.config.get("SQLALCHEMY_ENGINE_OPTIONS") or {})
    connect_args = dict(options.get("connect_args") or {})
    connect_args["options"] = f"-c statement_timeout={timeout_ms}"
    options["connect_args"] = connect_args
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = options


def create_app(config_object=None):
    load_dotenv()

    app = Flask(__name__)
    app.config.from_object(config_object or Config)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    _apply_statement_timeout(app)

    # Extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Modelos registrados antes de create_all / Alembic
    from panel import models  # noqa: F401

    # Blueprints
    from panel.blueprints.printers import printers_bp

    app.register_blueprint(printers_bp)

    # Simple healthcheck
    @app.get("/health")
    def health():
        return {"ok": True}

    return app
