"""
People Blueprints — collaborators (manager/admin) and managers (admin only).

  GET    /api/v1/collaborators              — visible collaborators
  POST   /api/v1/collaborators              — create (admin passes manager_id)
  PATCH  /api/v1/collaborators/<id>         — update
  DELETE /api/v1/collaborators/<id>         — delete with the collaborator's activities
  GET    /api/v1/collaborators/team         — teammates of the caller

  GET    /api/v1/managers                   — managers (admin: all, others: own tenant)
  POST   /api/v1/managers                   — create + provision tenant defaults
  PATCH  /api/v1/managers/<id>              — update
  DELETE /api/v1/managers/<id>              — delete (must own no collaborators)
"""

from flask import Blueprint, jsonify

from shiftboard.blueprints import current_store, json_body, storage_result

collaborators_bp = Blueprint("collaborators", __name__, url_prefix="/api/v1/collaborators")
managers_bp = Blueprint("managers", __name__, url_prefix="/api/v1/managers")


# ═══════════════════════════════════════════════════════════════
# Collaborators
# ═══════════════════════════════════════════════════════════════
@collaborators_bp.route("", methods=["GET"])
def list_collaborators():
    items = [c.to_dict() for c in current_store().visible_collaborators()]
    return jsonify({"items": items, "total": len(items)})


@collaborators_bp.route("/team", methods=["GET"])
def list_team():
    items = [c.to_dict() for c in current_store().team_members()]
    return jsonify({"items": items, "total": len(items)})


@collaborators_bp.route("", methods=["POST"])
def create_collaborator():
    """
    Body: { "name": "...", "employee_number": "...", "role_title": "...",
            "shift": "MATUTINO" | "VESPERTINO", "manager_id": 999 (admin only) }
    """
    return storage_result(current_store().add_collaborator(json_body()), 201)


@collaborators_bp.route("/<int:collaborator_id>", methods=["PATCH", "PUT"])
def update_collaborator(collaborator_id):
    return storage_result(current_store().update_collaborator(collaborator_id, json_body()))


@collaborators_bp.route("/<int:collaborator_id>", methods=["DELETE"])
def delete_collaborator(collaborator_id):
    return storage_result(current_store().delete_collaborator(collaborator_id))


# ═══════════════════════════════════════════════════════════════
# Managers
# ═══════════════════════════════════════════════════════════════
@managers_bp.route("", methods=["GET"])
def list_managers():
    items = [m.to_dict() for m in current_store().managers()]
    return jsonify({"items": items, "total": len(items)})


@managers_bp.route("", methods=["POST"])
def create_manager():
    """
    Body: { "name": "...", "employee_number": "..." }

    The initial password is the employee number.
    """
    return storage_result(current_store().add_manager(json_body()), 201)


@managers_bp.route("/<int:manager_id>", methods=["PATCH", "PUT"])
def update_manager(manager_id):
    return storage_result(current_store().update_manager(manager_id, json_body()))


@managers_bp.route("/<int:manager_id>", methods=["DELETE"])
def delete_manager(manager_id):
    return storage_result(current_store().delete_manager(manager_id))
