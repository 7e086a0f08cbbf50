"""
Shiftboard blueprint helpers.

Views never touch storage directly: they build the caller's ``DataStore``
with ``current_store()`` and map "did not happen" results (None/False)
to 503 with ``storage_result()``.
"""

from flask import current_app, g, jsonify, request

from shiftboard.core.exceptions import StorageError, ValidationError
from shiftboard.services.auth_gate import AuthGate
from shiftboard.utils.errors import storage_unavailable

TENANT_HEADER = "X-Tenant-ID"


def get_backend():
    return current_app.extensions["shiftboard.backend"]


def get_clock():
    return current_app.extensions["shiftboard.clock"]


def json_body() -> dict:
    """Request JSON object; empty dict when absent."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def selected_tenant_id() -> int | None:
    """Admin tenant selection from ``?tenant_id=`` or the X-Tenant-ID header."""
    raw = request.args.get("tenant_id") or request.headers.get(TENANT_HEADER)
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError("tenant_id must be an integer", details={"tenant_id": raw}) from None


def current_gate() -> AuthGate:
    return AuthGate(get_backend(), getattr(g, "principal", None))


def current_store():
    """The caller's DataStore, built once per request."""
    store = getattr(g, "data_store", None)
    if store is None:
        store = current_gate().data_store(get_clock(), selected_tenant_id())
        if not store.loaded:
            raise StorageError("Could not load tenant data")
        g.data_store = store
    return store


def storage_result(result, status: int = 200):
    """jsonify an entity (or list/dict); None/False means the backend call failed."""
    if result is None or result is False:
        return storage_unavailable()
    if result is True:
        return jsonify({"ok": True}), status
    if hasattr(result, "to_dict"):
        result = result.to_dict()
    return jsonify(result), status
