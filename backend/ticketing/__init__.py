# backend/ticketing/__init__.py
from flask import Flask, jsonify, request

from .config import Config
from .errors import ConsoleError
from .extensions import db, migrate
from .logging_config import configure_logging


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register change-feed session listeners
    from .services import change_feed  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.console import console_bp
    from .routes.flights import flights_bp
    from .routes.settings import settings_bp
    from .routes.admin import admin_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(console_bp)
    app.register_blueprint(flights_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(admin_bp)

    @app.errorhandler(ConsoleError)
    def handle_console_error(exc: ConsoleError):
        if exc.status_code >= 500:
            app.logger.warning("%s: %s", type(exc).__name__, exc.message)
        return jsonify(exc.to_dict()), exc.status_code

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in app.config["CORS_ALLOWED_ORIGINS"]:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Console stores follow sign-out / profile changes
    from .services import console_registry
    console_registry.install()

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
