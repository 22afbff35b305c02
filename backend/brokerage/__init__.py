# backend/brokerage/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.vendors import vendors_bp
    from .routes.jobs import jobs_bp
    from .routes.profit import profit_bp
    from .routes.payments import payments_bp
    from .routes.lifecycle import lifecycle_bp
    from .routes.readiness import readiness_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(vendors_bp)
    app.register_blueprint(jobs_bp)
    app.register_blueprint(profit_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(lifecycle_bp)
    app.register_blueprint(readiness_bp)

    # Downstream invoices are only logged unless a real dispatcher is installed
    from .services.invoice_dispatch import EXTENSION_KEY, LoggingInvoiceDispatcher
    app.extensions.setdefault(EXTENSION_KEY, LoggingInvoiceDispatcher())

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type, X-Actor"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
