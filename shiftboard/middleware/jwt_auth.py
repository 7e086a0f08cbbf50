"""
JWT Auth Middleware — parses the Bearer token and loads ``g.principal``.

For every ``/api/v1/`` request outside the public prefixes:
  1. No / invalid / expired / revoked token    → 401 ERR_UNAUTHENTICATED
  2. Principal no longer exists                → 401 ERR_UNAUTHENTICATED
  3. Principal still has ``is_first_login``    → 403 ERR_FIRST_LOGIN, unless
     the path is one of FIRST_LOGIN_ALLOWED
  4. Otherwise g.principal / g.jwt_payload are set for the views.

The principal is re-read from storage on every request, so the first-login
flag in the token is informational only.
"""

import logging

import jwt as pyjwt
from flask import current_app, g, request

from shiftboard.core.exceptions import StorageError
from shiftboard.services.jwt_service import decode_access_token, principal_key
from shiftboard.utils.errors import E, api_error, storage_unavailable

logger = logging.getLogger(__name__)

# Paths that skip JWT auth entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/auth/login",
    "/api/v1/health",
)

# Paths reachable while the password change is still pending
FIRST_LOGIN_ALLOWED = frozenset({
    "/api/v1/auth/change-password",
    "/api/v1/auth/logout",
    "/api/v1/auth/me",
})


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.principal = None
        g.jwt_payload = None
        g.data_store = None

        path = request.path
        if request.method == "OPTIONS" or not path.startswith("/api/v1/"):
            return None
        if path.startswith(JWT_SKIP_PREFIXES):
            return None

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return api_error(E.UNAUTHENTICATED, "Bearer token required")

        try:
            payload = decode_access_token(auth_header[7:])
        except pyjwt.ExpiredSignatureError:
            return api_error(E.UNAUTHENTICATED, "Token expired")
        except pyjwt.InvalidTokenError as exc:
            logger.info("Rejected token: %s", exc, extra={"path": path})
            return api_error(E.UNAUTHENTICATED, "Invalid token")

        role, principal_id = principal_key(payload)
        backend = current_app.extensions["shiftboard.backend"]
        try:
            principal = backend.get_principal(role, principal_id)
        except StorageError:
            logger.exception("Principal lookup failed", extra={"principal_id": principal_id})
            return storage_unavailable()
        if principal is None:
            return api_error(E.UNAUTHENTICATED, "Account no longer exists")

        g.principal = principal
        g.jwt_payload = payload

        if principal.is_first_login and path not in FIRST_LOGIN_ALLOWED:
            return api_error(E.FIRST_LOGIN, "Password change required before continuing")
        return None
