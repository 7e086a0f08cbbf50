"""
Auth Blueprint — login and the first-login password change.

  POST /api/v1/auth/login            — employee number + password → access token
  POST /api/v1/auth/change-password  — new + confirm → fresh access token
  POST /api/v1/auth/logout           — revoke the current token
  GET  /api/v1/auth/me               — current principal + gate state
"""

import logging

from flask import Blueprint, current_app, g, jsonify

from shiftboard import limiter
from shiftboard.blueprints import current_gate, json_body
from shiftboard.services.jwt_service import generate_access_token, revoke_token
from shiftboard.utils.errors import E, api_error, storage_unavailable

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")


def _login_limit():
    return current_app.config.get("LOGIN_RATE_LIMIT", "10/minute")


def _session_payload(gate):
    return {
        **generate_access_token(gate.principal),
        "state": gate.state.value,
        "principal": gate.principal.to_dict(),
    }


# ═══════════════════════════════════════════════════════════════
# POST /api/v1/auth/login
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/login", methods=["POST"])
@limiter.limit(_login_limit)
def login():
    """
    Authenticate with employee number + password.

    Body: { "employee_number": "...", "password": "..." }

    The response ``state`` is FIRST_LOGIN when the password must be changed
    before anything else is allowed.
    """
    data = json_body()
    employee_number = (data.get("employee_number") or "").strip()
    password = data.get("password") or ""
    if not employee_number or not password:
        return api_error(E.VALIDATION_REQUIRED, "employee_number and password are required")

    gate = current_gate()
    if gate.login(employee_number, password) is None:
        return storage_unavailable()
    return jsonify(_session_payload(gate)), 200


# ═══════════════════════════════════════════════════════════════
# POST /api/v1/auth/change-password
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/change-password", methods=["POST"])
def change_password():
    """
    Body: { "new_password": "...", "confirm_password": "..." }

    The old token is revoked; the response carries a new one whose
    ``first_login`` claim is false.
    """
    data = json_body()
    gate = current_gate()
    if gate.change_password(data.get("new_password"), data.get("confirm_password")) is None:
        return storage_unavailable()
    revoke_token(g.jwt_payload)
    return jsonify(_session_payload(gate)), 200


# ═══════════════════════════════════════════════════════════════
# POST /api/v1/auth/logout
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/logout", methods=["POST"])
def logout():
    revoke_token(g.jwt_payload)
    gate = current_gate()
    logger.info("Logout", extra={"principal_id": gate.principal.id, "role": gate.principal.role.value})
    gate.logout()
    return jsonify({"state": gate.state.value}), 200


# ═══════════════════════════════════════════════════════════════
# GET /api/v1/auth/me
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/me", methods=["GET"])
def me():
    gate = current_gate()
    return jsonify({"state": gate.state.value, "principal": gate.principal.to_dict()}), 200
