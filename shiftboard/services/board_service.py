"""
Board Service — read models for the manager and collaborator dashboards.

Every function takes a ``DataStore`` (already scoped to the caller) and
reads "now" from its clock once, at the start of the computation.

Functions:
    - live_board:    per-collaborator snapshot for today (manager/admin view)
    - agenda:        one collaborator's day, split into current/completed/upcoming
    - team_status:   teammates' current activity and lunch flag
    - planning_day:  all visible activities on a day, with lunch markers
    - branch_info:   branch, shift and contact config of the context tenant
"""

import logging

from shiftboard.core.exceptions import ValidationError
from shiftboard.utils.timeslots import (
    DAYS_OF_WEEK,
    ActivityStatus,
    active_shift_label,
    classify_activity,
    current_time_slot,
    day_of_week,
    is_lunch_time,
    time_to_minutes,
)

logger = logging.getLogger(__name__)

_IN_PROGRESS = (ActivityStatus.CURRENT, ActivityStatus.LATE)


def _by_start(activities):
    return sorted(activities, key=lambda a: time_to_minutes(a.start_time))


def _activity_view(activity, now) -> dict:
    d = activity.to_dict()
    d["status"] = classify_activity(activity, now).value
    return d


def current_activity(activities, now):
    """First activity (by start) whose status is CURRENT or LATE, else None."""
    for activity in _by_start(activities):
        if classify_activity(activity, now) in _IN_PROGRESS:
            return activity
    return None


def next_activity(activities, slot: str):
    """Earliest activity starting strictly after ``slot``, else None."""
    later = [a for a in activities if time_to_minutes(a.start_time) > time_to_minutes(slot)]
    return _by_start(later)[0] if later else None


def _parse_day(day) -> int:
    try:
        day = int(day)
    except (TypeError, ValueError):
        raise ValidationError("day must be an integer 0..6", details={"day": "0..6"}) from None
    if not 0 <= day <= 6:
        raise ValidationError("day must be an integer 0..6", details={"day": "0..6"})
    return day


# ═══════════════════════════════════════════════════════════════
# Live board
# ═══════════════════════════════════════════════════════════════
def live_board(store) -> dict:
    """Today's snapshot of every visible collaborator.

    Per collaborator: today's activities with status, the current (CURRENT
    or LATE) activity, the next one after the current slot, the lunch flag
    and a board status of LUNCH, LATE, CURRENT or IDLE. Admin rows carry
    the owning manager's name since they span tenants.
    """
    now = store.clock.now()
    today = day_of_week(now)
    slot = current_time_slot(now)
    managers = {m.id: m.name for m in store.managers()} if store.principal.is_admin else {}

    by_collaborator = {}
    for activity in store.visible_activities():
        if activity.day == today:
            by_collaborator.setdefault(activity.collaborator_id, []).append(activity)

    rows = []
    for collaborator in store.visible_collaborators():
        todays = _by_start(by_collaborator.get(collaborator.id, []))
        current = current_activity(todays, now)
        upcoming = next_activity(todays, slot)
        shift_config = store.shift_config_for(collaborator.manager_id)
        lunch = is_lunch_time(slot, collaborator.shift, shift_config)

        if lunch:
            board_status = "LUNCH"
        elif current is not None:
            board_status = classify_activity(current, now).value
        else:
            board_status = "IDLE"

        row = {
            "collaborator": collaborator.to_dict(),
            "activities": [_activity_view(a, now) for a in todays],
            "current_activity": _activity_view(current, now) if current else None,
            "next_activity": _activity_view(upcoming, now) if upcoming else None,
            "is_lunch": lunch,
            "board_status": board_status,
        }
        if store.principal.is_admin:
            row["manager_name"] = managers.get(collaborator.manager_id)
        rows.append(row)

    result = {
        "now": now.isoformat(),
        "day": today,
        "day_name": DAYS_OF_WEEK[today],
        "current_slot": slot,
        "collaborators": rows,
    }
    if not store.principal.is_admin or store.selected_tenant_id is not None:
        shift_config = store.shift_config()
        result["branch"] = store.branch_config().to_dict()
        result["active_shift"] = active_shift_label(slot, shift_config)
    return result


# ═══════════════════════════════════════════════════════════════
# Collaborator views
# ═══════════════════════════════════════════════════════════════
def agenda(store, collaborator_id: int | None = None, day=None) -> dict:
    """A collaborator's activities on ``day`` (default: today), sorted by start.

    When the day is today the activities are split into the current one,
    the completed ones and the upcoming ones (neither completed nor current).
    """
    now = store.clock.now()
    today = day_of_week(now)
    day = today if day is None else _parse_day(day)
    if collaborator_id is None:
        collaborator_id = store.principal.id if store.principal.is_collaborator else None
    if collaborator_id is None:
        raise ValidationError("collaborator_id is required", details={"collaborator_id": "required"})
    collaborator = store.find_collaborator(collaborator_id)

    mine = _by_start(
        a for a in store.visible_activities()
        if a.collaborator_id == collaborator.id and a.day == day
    )
    result = {
        "collaborator": collaborator.to_dict(),
        "day": day,
        "day_name": DAYS_OF_WEEK[day],
        "is_today": day == today,
        "activities": [_activity_view(a, now) for a in mine],
    }
    if day == today:
        current = current_activity(mine, now)
        result["current_activity"] = _activity_view(current, now) if current else None
        result["completed"] = [_activity_view(a, now) for a in mine if a.completed]
        result["upcoming"] = [
            _activity_view(a, now) for a in mine
            if not a.completed and (current is None or a.id != current.id)
        ]
    return result


def team_status(store) -> list[dict]:
    """Teammates (the caller excluded) with what they are doing right now."""
    now = store.clock.now()
    today = day_of_week(now)
    slot = current_time_slot(now)
    activities = [a for a in store.visible_activities() if a.day == today]

    rows = []
    for member in store.team_members():
        current = current_activity([a for a in activities if a.collaborator_id == member.id], now)
        rows.append({
            "collaborator": member.to_dict(),
            "current_activity": _activity_view(current, now) if current else None,
            "is_lunch": is_lunch_time(slot, member.shift, store.shift_config_for(member.manager_id)),
        })
    return rows


# ═══════════════════════════════════════════════════════════════
# Planning & branch info
# ═══════════════════════════════════════════════════════════════
def planning_day(store, day) -> dict:
    """Visible activities on ``day`` sorted by start, with collaborator name and lunch flag."""
    now = store.clock.now()
    day = _parse_day(day)
    collaborators = {c.id: c for c in store.visible_collaborators()}

    entries = []
    for activity in _by_start(a for a in store.visible_activities() if a.day == day):
        collaborator = collaborators.get(activity.collaborator_id)
        shift = collaborator.shift if collaborator else "MATUTINO"
        shift_config = store.shift_config_for(collaborator.manager_id) if collaborator else None
        view = _activity_view(activity, now)
        view["collaborator_name"] = collaborator.name if collaborator else None
        view["is_lunch"] = is_lunch_time(activity.start_time, shift, shift_config)
        entries.append(view)
    return {"day": day, "day_name": DAYS_OF_WEEK[day], "activities": entries}


def branch_info(store) -> dict:
    return {
        "tenant_id": store.context_tenant_id(),
        "branch": store.branch_config().to_dict(),
        "shifts": store.shift_config().to_dict(),
        "emergency_contacts": [c.to_dict() for c in store.emergency_contacts()],
        "activity_types": store.activity_types(),
    }
