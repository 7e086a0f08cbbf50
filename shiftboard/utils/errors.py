"""Standardised API error responses.

Usage
-----
    from shiftboard.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Activity not found")
    return api_error(E.VALIDATION_REQUIRED, "description is required")
"""

from __future__ import annotations

import logging

from flask import jsonify

from shiftboard.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    FirstLoginRequired,
    NotFoundError,
    StorageError,
    ValidationError,
)

logger = logging.getLogger(__name__)


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants (ERR_ prefix)."""

    # Validation – HTTP 400 / 422
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    VALIDATION_RULE = "ERR_VALIDATION_RULE"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Conflict / duplicate – HTTP 409
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"

    # Auth – HTTP 401 / 403
    UNAUTHENTICATED = "ERR_UNAUTHENTICATED"
    FORBIDDEN = "ERR_FORBIDDEN"
    FIRST_LOGIN = "ERR_FIRST_LOGIN"

    # Backend – HTTP 503 / 500
    STORAGE = "ERR_STORAGE"
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.VALIDATION_RULE: 422,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.UNAUTHENTICATED: 401,
    E.FORBIDDEN: 403,
    E.FIRST_LOGIN: 403,
    E.STORAGE: 503,
    E.INTERNAL: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation for developers / UI.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Extra structured payload (field errors, etc.).

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views.
    """

    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details

    return jsonify(body), http_status


def storage_unavailable():
    """Response for an operation the backend did not complete."""
    return api_error(E.STORAGE, "Storage backend did not complete the operation")


def register_error_handlers(app):
    """Map the service exception hierarchy to JSON responses once, app-wide."""

    @app.errorhandler(ValidationError)
    def _validation(exc):
        return api_error(E.VALIDATION_RULE, str(exc), details=exc.details)

    @app.errorhandler(NotFoundError)
    def _not_found(exc):
        logger.debug("Not found: %s", exc)
        return api_error(E.NOT_FOUND, f"{exc.resource} not found")

    @app.errorhandler(ConflictError)
    def _conflict(exc):
        return api_error(E.CONFLICT_DUPLICATE, str(exc))

    @app.errorhandler(AuthenticationError)
    def _unauthenticated(exc):
        return api_error(E.UNAUTHENTICATED, str(exc) or "Authentication required")

    @app.errorhandler(AuthorizationError)
    def _forbidden(exc):
        return api_error(E.FORBIDDEN, str(exc))

    @app.errorhandler(FirstLoginRequired)
    def _first_login(exc):
        return api_error(E.FIRST_LOGIN, str(exc))

    @app.errorhandler(StorageError)
    def _storage(exc):
        logger.error("Storage error reached the HTTP layer: %s", exc)
        return storage_unavailable()

    @app.errorhandler(404)
    def _route_not_found(e):
        from flask import request
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(405)
    def _method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(413)
    def _payload_too_large(e):
        return {"error": "Request body too large"}, 413

    @app.errorhandler(415)
    def _unsupported_media_type(e):
        return {"error": e.description or "Unsupported media type"}, 415

    @app.errorhandler(429)
    def _rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def _server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")
