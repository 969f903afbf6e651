"""
Taskboard
Flask Application Factory.

Usage:
    from taskboard import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from taskboard.config import config
from taskboard.core.exceptions import AccessDeniedError, ValidationError, WorkflowError
from taskboard.models import db
from taskboard.middleware.logging_config import configure_logging
from taskboard.middleware.timing import init_request_timing
from taskboard.utils.errors import E, api_error

logger = logging.getLogger(__name__)

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],  # per-route limits only
)
migrate = Migrate()


def register_error_handlers(app):
    """Map service exceptions to the standard error body."""

    @app.errorhandler(ValidationError)
    def _validation_error(e):
        return api_error(E.VALIDATION_INVALID, str(e), details=e.details)

    @app.errorhandler(AccessDeniedError)
    def _access_denied(e):
        return api_error(E.FORBIDDEN, "Access denied")

    @app.errorhandler(WorkflowError)
    def _workflow_error(e):
        origin = e.origin
        if isinstance(origin, AccessDeniedError):
            return api_error(E.FORBIDDEN, "Access denied")
        if e.is_not_found:
            return api_error(E.NOT_FOUND, "Story not found")
        logger.error("Workflow failed at %s: %s", e.stage, origin, exc_info=e)
        return api_error(E.WORKFLOW, "Request could not be completed", details={"stage": e.stage})

    @app.errorhandler(404)
    def _not_found(e):
        return api_error(E.NOT_FOUND, "Not found")

    @app.errorhandler(405)
    def _method_not_allowed(e):
        return api_error(E.METHOD_NOT_ALLOWED, "Method not allowed")

    @app.errorhandler(429)
    def _rate_limited(e):
        return api_error(E.RATE_LIMITED, f"Rate limit exceeded: {e.description}")

    @app.errorhandler(500)
    def _server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")


def create_app(config_name=None, collaborators=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: One of "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.
        collaborators: Optional ``Collaborators`` bundle replacing the
                       SQL-backed defaults (used by tests).

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name]())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db, directory=app.config["MIGRATIONS_DIR"])
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Request middleware ───────────────────────────────────────────────
    from taskboard.middleware.current_user import init_current_user
    init_request_timing(app)
    init_current_user(app)

    # ── Import all models so create_all and Alembic see every table ──────
    from taskboard.models import board as _board_models          # noqa: F401
    from taskboard.models import user as _user_models            # noqa: F401
    from taskboard.models import change_event as _change_models  # noqa: F401

    db_uri = app.config.get("SQLALCHEMY_DATABASE_URI") or ""
    if db_uri.startswith("sqlite:///") and ":memory:" not in db_uri:
        os.makedirs(app.instance_path, exist_ok=True)

    # Production schemas come from `flask db upgrade`
    if app.config.get("AUTO_CREATE_TABLES"):
        with app.app_context():
            db.create_all()
            app.logger.debug("db.create_all() completed")

    # ── Service collaborators ────────────────────────────────────────────
    from taskboard.services import EXTENSION_KEY, build_collaborators
    app.extensions[EXTENSION_KEY] = collaborators or build_collaborators(app)

    # ── Blueprints ───────────────────────────────────────────────────────
    from taskboard.blueprints.story_bp import story_bp
    app.register_blueprint(story_bp)

    register_error_handlers(app)

    @app.route("/api/v1/health")
    def health():
        return {"status": "ok", "app": "Taskboard"}

    return app
