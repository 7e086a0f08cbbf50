"""
Clock Blueprint — read and (when simulated) move the application clock.

  GET /api/v1/clock   — current instant, day, slot, active shift label
  PUT /api/v1/clock   — manager/admin, CLOCK_MODE=simulated only

PUT body (any combination, applied in this order):
    { "instant": "2024-06-03T09:40", "day": 3, "time": "14:30", "advance_minutes": 30 }
"""

import logging
from datetime import datetime

from flask import Blueprint, jsonify

from shiftboard.blueprints import current_gate, get_clock, json_body
from shiftboard.core.exceptions import AuthorizationError, ValidationError
from shiftboard.utils.timeslots import DAYS_OF_WEEK, current_time_slot, day_of_week, is_valid_time

logger = logging.getLogger(__name__)

clock_bp = Blueprint("clock", __name__, url_prefix="/api/v1/clock")


def _clock_state(clock) -> dict:
    now = clock.now()
    day = day_of_week(now)
    return {
        "now": now.isoformat(),
        "day": day,
        "day_name": DAYS_OF_WEEK[day],
        "current_slot": current_time_slot(now),
        "simulated": clock.simulated,
    }


@clock_bp.route("", methods=["GET"])
def get_clock_state():
    current_gate().require_authenticated()
    return jsonify(_clock_state(get_clock()))


@clock_bp.route("", methods=["PUT", "PATCH"])
def move_clock():
    principal = current_gate().require_authenticated()
    if principal.is_collaborator:
        raise AuthorizationError("move the clock", principal.role.value)
    clock = get_clock()
    if not clock.simulated:
        raise ValidationError("The clock is not simulated (CLOCK_MODE=system)")

    data = json_body()
    try:
        if "instant" in data:
            clock.set(datetime.fromisoformat(data["instant"]).replace(tzinfo=None))
        if "day" in data:
            clock.travel_to_day(int(data["day"]))
        if "time" in data:
            if not is_valid_time(data["time"]):
                raise ValueError("time must be HH:MM")
            hour, minute = data["time"].split(":")
            clock.set_time(int(hour), int(minute))
        if "advance_minutes" in data:
            clock.advance(int(data["advance_minutes"]))
    except (TypeError, ValueError, OverflowError) as exc:
        raise ValidationError(str(exc)) from None

    state = _clock_state(clock)
    logger.info("Clock moved to %s", state["now"], extra={"principal_id": principal.id})
    return jsonify(state)
