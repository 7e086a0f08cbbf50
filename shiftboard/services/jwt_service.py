"""
JWT Service — access token generation, verification and revocation.

Access token: 8 hours (configurable via JWT_ACCESS_EXPIRES)
Algorithm:    HS256

Token payload:
{
    "sub": "<principal_id>",
    "role": "ADMIN" | "MANAGER" | "COLLABORATOR",
    "first_login": true | false,
    "type": "access",
    "iat": <issued_at>,
    "exp": <expires_at>,
    "jti": <unique_id>
}

Principals are addressed by (role, id), so ``role`` is always needed to
load the principal back from storage.
"""

import threading
import uuid
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app

from shiftboard.domain import Role

# ─── Defaults ────────────────────────────────────────────────
DEFAULT_ACCESS_EXPIRES = 8 * 3600
ALGORITHM = "HS256"


def _get_secret():
    return current_app.config.get("JWT_SECRET_KEY") or current_app.config["SECRET_KEY"]


def _get_access_expires():
    return current_app.config.get("JWT_ACCESS_EXPIRES", DEFAULT_ACCESS_EXPIRES)


# ═══════════════════════════════════════════════════════════════
# Token Generation
# ═══════════════════════════════════════════════════════════════
def generate_access_token(principal) -> dict:
    """Issue an access token for a principal.

    Returns:
        {"access_token", "token_type", "expires_in", "first_login"}
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(principal.id),
        "role": principal.role.value,
        "first_login": bool(principal.is_first_login),
        "type": "access",
        "iat": now,
        "exp": now + timedelta(seconds=_get_access_expires()),
        "jti": str(uuid.uuid4()),
    }
    return {
        "access_token": jwt.encode(payload, _get_secret(), algorithm=ALGORITHM),
        "token_type": "Bearer",
        "expires_in": _get_access_expires(),
        "first_login": payload["first_login"],
    }


# ═══════════════════════════════════════════════════════════════
# Token Verification
# ═══════════════════════════════════════════════════════════════
def decode_access_token(token: str) -> dict:
    """Decode and verify an access token.

    Raises jwt.exceptions on failure (ExpiredSignatureError, InvalidTokenError, ...)
    including for tokens revoked by logout.
    """
    payload = jwt.decode(token, _get_secret(), algorithms=[ALGORITHM])
    if payload.get("type") != "access":
        raise jwt.InvalidTokenError(f"Expected access token, got {payload.get('type')}")
    if payload.get("role") not in {r.value for r in Role}:
        raise jwt.InvalidTokenError("Unknown role claim")
    if is_revoked(payload.get("jti")):
        raise jwt.InvalidTokenError("Token has been revoked")
    return payload


def principal_key(payload: dict) -> tuple[Role, int]:
    """(role, id) from a decoded payload."""
    return Role(payload["role"]), int(payload["sub"])


# ═══════════════════════════════════════════════════════════════
# Revocation (logout)
# Kept per process; tokens also expire on their own.
# ═══════════════════════════════════════════════════════════════
class RevocationList:
    def __init__(self):
        self._lock = threading.Lock()
        self._revoked: dict[str, datetime] = {}

    def revoke(self, jti: str, expires_at: datetime) -> None:
        now = datetime.now(timezone.utc)
        with self._lock:
            self._revoked = {k: v for k, v in self._revoked.items() if v > now}
            self._revoked[jti] = expires_at

    def __contains__(self, jti) -> bool:
        with self._lock:
            return jti in self._revoked


def _revocations() -> RevocationList:
    return current_app.extensions["shiftboard.revocations"]


def revoke_token(payload: dict) -> None:
    expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
    _revocations().revoke(payload["jti"], expires_at)


def is_revoked(jti: str | None) -> bool:
    return jti is not None and jti in _revocations()
