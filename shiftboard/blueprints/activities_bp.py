"""
Activities Blueprint — the weekly schedule.

  GET    /api/v1/activities                 — visible activities (?day=, ?collaborator_id=)
  POST   /api/v1/activities                 — schedule an activity (manager/admin)
  PATCH  /api/v1/activities/<id>            — edit fields / set completion
  POST   /api/v1/activities/<id>/toggle     — flip completion (collaborator checkbox)
  DELETE /api/v1/activities/<id>            — delete (manager/admin)
"""

from flask import Blueprint, jsonify, request

from shiftboard.blueprints import current_store, json_body, storage_result
from shiftboard.utils.timeslots import classify_activity, time_to_minutes

activities_bp = Blueprint("activities", __name__, url_prefix="/api/v1/activities")


def _with_status(activity, now) -> dict:
    d = activity.to_dict()
    d["status"] = classify_activity(activity, now).value
    return d


@activities_bp.route("", methods=["GET"])
def list_activities():
    store = current_store()
    day = request.args.get("day", type=int)
    collaborator_id = request.args.get("collaborator_id", type=int)

    activities = store.visible_activities()
    if day is not None:
        activities = [a for a in activities if a.day == day]
    if collaborator_id is not None:
        activities = [a for a in activities if a.collaborator_id == collaborator_id]
    activities.sort(key=lambda a: (a.day, time_to_minutes(a.start_time)))

    now = store.clock.now()
    return jsonify({"items": [_with_status(a, now) for a in activities], "total": len(activities)})


@activities_bp.route("", methods=["POST"])
def create_activity():
    """
    Body: { "collaborator_id": 1, "day": 1, "start_time": "09:00",
            "end_time": "09:30", "description": "Apertura de Caja" }
    """
    return storage_result(current_store().add_activity(json_body()), 201)


@activities_bp.route("/<activity_id>", methods=["PATCH", "PUT"])
def update_activity(activity_id):
    return storage_result(current_store().update_activity(activity_id, json_body()))


@activities_bp.route("/<activity_id>/toggle", methods=["POST"])
def toggle_activity(activity_id):
    return storage_result(current_store().toggle_activity(activity_id))


@activities_bp.route("/<activity_id>", methods=["DELETE"])
def delete_activity(activity_id):
    return storage_result(current_store().delete_activity(activity_id))
