"""
Health check blueprint.

Endpoints:
    GET /api/v1/health/ready  — simple 200 for load balancers
    GET /api/v1/health/live   — storage backend and clock status
"""

import logging
import time

from flask import Blueprint, current_app, jsonify

from shiftboard.blueprints import get_backend, get_clock
from shiftboard.core.exceptions import StorageError

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/v1/health")


@health_bp.route("/ready", methods=["GET"])
def ready():
    """Simple readiness probe — always 200 if app is running."""
    return jsonify({"status": "ok"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    """Detailed liveness check with dependency status."""
    checks = {}
    overall = True

    # ── Storage backend ──────────────────────────────────────────────
    backend = get_backend()
    try:
        t0 = time.perf_counter()
        info = backend.ping()
        checks["storage"] = {**info, "latency_ms": round((time.perf_counter() - t0) * 1000, 1)}
    except StorageError as exc:
        checks["storage"] = {"status": "error", "backend": backend.kind, "detail": str(exc)}
        overall = False
        logger.error("Health check — storage failed: %s", exc)

    # ── Clock ────────────────────────────────────────────────────────
    clock = get_clock()
    checks["clock"] = {
        "status": "ok",
        "mode": "simulated" if clock.simulated else "system",
        "now": clock.now().isoformat(),
    }

    checks["app"] = {
        "name": "Shiftboard",
        "debug": current_app.debug,
        "testing": current_app.testing,
    }

    status_code = 200 if overall else 503
    return jsonify({
        "status": "healthy" if overall else "degraded",
        "checks": checks,
    }), status_code
