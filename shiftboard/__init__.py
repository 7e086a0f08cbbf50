"""
Shiftboard — branch shift scheduling and task tracking.
Flask Application Factory.

Usage:
    from shiftboard import create_app
    app = create_app()           # defaults to APP_ENV or "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

import click
from flask import Flask, abort, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event

from shiftboard.clock import create_clock
from shiftboard.config import config
from shiftboard.middleware.jwt_auth import init_jwt_middleware
from shiftboard.middleware.logging_config import configure_logging
from shiftboard.middleware.rate_limiter import init_rate_limits
from shiftboard.middleware.timing import init_request_timing
from shiftboard.models import db
from shiftboard.services.jwt_service import RevocationList
from shiftboard.storage import create_backend
from shiftboard.storage.seed import seed_backend
from shiftboard.utils.errors import register_error_handlers

logger = logging.getLogger(__name__)


# ── SQLite FK enforcement (global engine event) ─────────────────────────
@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],  # no global limit; applied per blueprint
)


def _init_storage(app):
    """Create the configured backend and clock, then seed if asked to."""
    backend = create_backend(app.config["STORAGE_BACKEND"], app.config["BCRYPT_ROUNDS"])
    clock = create_clock(app.config["CLOCK_MODE"])
    app.extensions["shiftboard.backend"] = backend
    app.extensions["shiftboard.clock"] = clock
    app.extensions["shiftboard.revocations"] = RevocationList()

    with app.app_context():
        if backend.kind == "sql":
            db.create_all()
        if app.config.get("SEED_DEMO_DATA") and not backend.list_managers():
            seed_backend(backend, clock.now(), app.config["BCRYPT_ROUNDS"])

    logger.info("Storage ready", extra={"backend": backend.kind})


def create_app(config_name=None, config_overrides=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.
        config_overrides: Optional dict applied on top of the config class
                          (tests use it to pick the storage backend).

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name]())
    if config_overrides:
        app.config.update(config_overrides)
    if not app.config.get("SQLALCHEMY_DATABASE_URI"):
        # Memory backend deployments still initialise Flask-SQLAlchemy.
        app.config["SQLALCHEMY_DATABASE_URI"] = "sqlite:///:memory:"
    os.makedirs(app.instance_path, exist_ok=True)

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Request timing + JWT auth middleware ─────────────────────────────
    init_request_timing(app)
    init_jwt_middleware(app)

    # ── Request guards (input length + Content-Type) ─────────────────────
    app.config.setdefault("MAX_CONTENT_LENGTH", 1024 * 1024)  # 1 MB

    @app.before_request
    def _guard_request():
        if request.method in ("POST", "PUT", "PATCH") and request.path.startswith("/api/"):
            ct = request.content_type or ""
            if request.content_length and "json" not in ct:
                abort(415, description="Content-Type must be application/json")

    # ── Storage backend + clock ──────────────────────────────────────────
    _init_storage(app)

    # ── Blueprints ───────────────────────────────────────────────────────
    from shiftboard.blueprints.activities_bp import activities_bp
    from shiftboard.blueprints.auth_bp import auth_bp
    from shiftboard.blueprints.board_bp import board_bp
    from shiftboard.blueprints.clock_bp import clock_bp
    from shiftboard.blueprints.health_bp import health_bp
    from shiftboard.blueprints.people_bp import collaborators_bp, managers_bp
    from shiftboard.blueprints.tenant_config_bp import tenant_config_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(activities_bp)
    app.register_blueprint(collaborators_bp)
    app.register_blueprint(managers_bp)
    app.register_blueprint(tenant_config_bp)
    app.register_blueprint(board_bp)
    app.register_blueprint(clock_bp)
    app.register_blueprint(health_bp)

    # ── Error handlers ───────────────────────────────────────────────────
    register_error_handlers(app)

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("seed-demo")
    @click.option("--force", is_flag=True, help="Seed even if managers already exist.")
    def seed_demo_cmd(force):
        """Load the demo branch (manager 999, four collaborators, Monday agenda)."""
        backend = app.extensions["shiftboard.backend"]
        if backend.kind == "memory":
            logger.warning("Memory backend: seeded data lives only for this command's process.")
        if backend.list_managers() and not force:
            click.echo("Managers already exist; use --force to seed anyway.")
            return
        counts = seed_backend(backend, app.extensions["shiftboard.clock"].now(),
                              app.config["BCRYPT_ROUNDS"])
        click.echo(f"Seeded demo data: {counts}")

    return app
