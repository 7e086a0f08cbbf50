"""
Board Blueprint — dashboard read models.

  GET /api/v1/board/live               — live board (manager/admin)
  GET /api/v1/board/agenda             — ?collaborator_id= (staff), ?day=
  GET /api/v1/board/team               — teammates' current activity
  GET /api/v1/board/planning/<day>     — visible activities on a day
  GET /api/v1/board/stats              — ?range=DAY|WEEK|MONTH|YEAR|ALL
  GET /api/v1/board/branch-info        — branch, shifts, contacts, catalog
"""

from flask import Blueprint, jsonify, request

from shiftboard.blueprints import current_store
from shiftboard.core.exceptions import AuthorizationError
from shiftboard.services import board_service, stats_service

board_bp = Blueprint("board", __name__, url_prefix="/api/v1/board")


def _staff_store():
    store = current_store()
    if store.principal.is_collaborator:
        raise AuthorizationError("view the team board", store.principal.role.value)
    return store


@board_bp.route("/live", methods=["GET"])
def live():
    return jsonify(board_service.live_board(_staff_store()))


@board_bp.route("/agenda", methods=["GET"])
def agenda():
    store = current_store()
    collaborator_id = request.args.get("collaborator_id", type=int)
    if store.principal.is_collaborator:
        collaborator_id = store.principal.id
    return jsonify(board_service.agenda(store, collaborator_id, request.args.get("day")))


@board_bp.route("/team", methods=["GET"])
def team():
    return jsonify({"items": board_service.team_status(current_store())})


@board_bp.route("/planning/<int:day>", methods=["GET"])
def planning(day):
    return jsonify(board_service.planning_day(_staff_store(), day))


@board_bp.route("/stats", methods=["GET"])
def stats():
    return jsonify(stats_service.collaborator_stats(_staff_store(), request.args.get("range", "DAY")))


@board_bp.route("/branch-info", methods=["GET"])
def branch_info():
    return jsonify(board_service.branch_info(current_store()))
