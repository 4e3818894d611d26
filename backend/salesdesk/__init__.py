# backend/salesdesk/__init__.py
import logging
import os

from flask import Flask, jsonify, request
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from .config import Config
from .errors import AppError, ValidationError, from_integrity_error
from .extensions import db, migrate
from .logging_config import configure_logging

logger = logging.getLogger(__name__)


def create_app(test_config=None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)

    # Overrides must land before extensions read the config
    if test_config:
        app.config.update(test_config)

    if not app.config.get("UPLOAD_FOLDER"):
        app.config["UPLOAD_FOLDER"] = os.path.join(app.instance_path, "uploads")
    os.makedirs(app.config["UPLOAD_FOLDER"], exist_ok=True)

    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.users import users_bp
    from .routes.clients import clients_bp
    from .routes.sales import sales_bp
    from .routes.invoices import invoices_bp
    from .routes.commissions import commissions_bp
    from .routes.settings import settings_bp
    from .routes.analytics import analytics_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(clients_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(invoices_bp)
    app.register_blueprint(commissions_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(analytics_bp)

    register_error_handlers(app)

    allowed_origins = set(app.config.get("CORS_ORIGINS") or [])

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
            response.headers["Access-Control-Expose-Headers"] = "Content-Disposition"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app


def register_error_handlers(app: Flask) -> None:
    """Map the error taxonomy (and framework errors) to JSON responses."""

    @app.errorhandler(AppError)
    def handle_app_error(e: AppError):
        db.session.rollback()
        if e.status_code >= 500:
            logger.error("%s: %s", type(e).__name__, e.message)
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(e: IntegrityError):
        db.session.rollback()
        logger.warning("Integrity error on %s %s: %s", request.method, request.path, e.orig)
        err = from_integrity_error(e)
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(RequestEntityTooLarge)
    def handle_too_large(e):
        err = ValidationError("Request body too large")
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return jsonify({"error": e.description or e.name}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        db.session.rollback()
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": "Internal server error"}), 500
