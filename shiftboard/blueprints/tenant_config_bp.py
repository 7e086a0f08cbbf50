"""
Tenant Config Blueprint — branch, shifts, activity catalog, emergency contacts.

All routes act on the caller's context tenant; admins select it with
``?tenant_id=`` or the X-Tenant-ID header.

  GET    /api/v1/config/branch
  PUT    /api/v1/config/branch
  GET    /api/v1/config/shifts
  PUT    /api/v1/config/shifts
  GET    /api/v1/config/activity-types
  POST   /api/v1/config/activity-types
  DELETE /api/v1/config/activity-types/<name>
  GET    /api/v1/config/contacts
  POST   /api/v1/config/contacts
  DELETE /api/v1/config/contacts/<id>
"""

from flask import Blueprint, jsonify

from shiftboard.blueprints import current_store, json_body, storage_result

tenant_config_bp = Blueprint("tenant_config", __name__, url_prefix="/api/v1/config")


# ── Branch ───────────────────────────────────────────────────────────────
@tenant_config_bp.route("/branch", methods=["GET"])
def get_branch():
    return jsonify(current_store().branch_config().to_dict())


@tenant_config_bp.route("/branch", methods=["PUT", "PATCH"])
def update_branch():
    return storage_result(current_store().update_branch_config(json_body()))


# ── Shifts ───────────────────────────────────────────────────────────────
@tenant_config_bp.route("/shifts", methods=["GET"])
def get_shifts():
    return jsonify(current_store().shift_config().to_dict())


@tenant_config_bp.route("/shifts", methods=["PUT", "PATCH"])
def update_shifts():
    """
    Body: { "MATUTINO": {"start": "08:00", "end": "15:00", "lunch": ["13:00", "13:30"]},
            "VESPERTINO": {...} }   — either shift may be omitted
    """
    return storage_result(current_store().update_shift_config(json_body()))


# ── Activity catalog ─────────────────────────────────────────────────────
@tenant_config_bp.route("/activity-types", methods=["GET"])
def list_activity_types():
    return jsonify({"items": current_store().activity_types()})


@tenant_config_bp.route("/activity-types", methods=["POST"])
def add_activity_type():
    return storage_result(current_store().add_activity_type(json_body().get("name")), 201)


@tenant_config_bp.route("/activity-types/<path:name>", methods=["DELETE"])
def remove_activity_type(name):
    return storage_result(current_store().remove_activity_type(name))


# ── Emergency contacts ───────────────────────────────────────────────────
@tenant_config_bp.route("/contacts", methods=["GET"])
def list_contacts():
    items = [c.to_dict() for c in current_store().emergency_contacts()]
    return jsonify({"items": items, "total": len(items)})


@tenant_config_bp.route("/contacts", methods=["POST"])
def add_contact():
    data = json_body()
    return storage_result(
        current_store().add_emergency_contact(data.get("name"), data.get("phone")), 201
    )


@tenant_config_bp.route("/contacts/<contact_id>", methods=["DELETE"])
def remove_contact(contact_id):
    return storage_result(current_store().remove_emergency_contact(contact_id))
