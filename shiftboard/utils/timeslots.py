"""Half-hour slot arithmetic and activity status classification.

All times are local wall-clock strings ``"HH:MM"``. Nothing here reads the
clock itself: callers pass the instant they obtained from the injected
``Clock`` at the moment of computation.

    >>> time_to_minutes("08:30")
    510
    >>> current_time_slot(datetime(2024, 1, 1, 9, 47))
    '09:30'
"""

from __future__ import annotations

import re
from datetime import datetime
from enum import Enum

SLOT_MINUTES = 30

TIME_SLOTS_MATUTINO = [
    "08:00", "08:30", "09:00", "09:30", "10:00", "10:30", "11:00", "11:30",
    "12:00", "12:30", "13:00", "13:30", "14:00", "14:30", "15:00",
    "15:30", "16:00", "16:30", "17:00",
]

TIME_SLOTS_VESPERTINO = [
    "12:00", "12:30", "13:00", "13:30", "14:00", "14:30", "15:00",
    "15:30", "16:00", "16:30", "17:00", "17:30", "18:00", "18:30",
    "19:00", "19:30", "20:00", "20:30", "21:00",
]

ALL_TIME_SLOTS = sorted(set(TIME_SLOTS_MATUTINO) | set(TIME_SLOTS_VESPERTINO))

DEFAULT_LUNCH_WINDOWS = {
    "MATUTINO": ["13:00", "13:30"],
    "VESPERTINO": ["16:00", "16:30"],
}

DAYS_OF_WEEK = ["Domingo", "Lunes", "Martes", "Miércoles", "Jueves", "Viernes", "Sábado"]

_HHMM_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


class ActivityStatus(str, Enum):
    COMPLETED = "COMPLETED"
    CURRENT = "CURRENT"
    LATE = "LATE"
    UPCOMING = "UPCOMING"


def is_valid_time(value) -> bool:
    """True for a zero-padded 24h ``HH:MM`` string."""
    return isinstance(value, str) and bool(_HHMM_RE.match(value))


def time_to_minutes(time_str: str | None) -> int:
    """Convert ``"HH:MM"`` to minutes since midnight. Empty input is 0."""
    if not time_str:
        return 0
    hours, minutes = time_str.split(":")
    return int(hours) * 60 + int(minutes)


def minutes_of_day(instant: datetime) -> int:
    return instant.hour * 60 + instant.minute


def day_of_week(instant: datetime) -> int:
    """Day index with 0=Sunday..6=Saturday (``datetime.weekday`` is 0=Monday)."""
    return (instant.weekday() + 1) % 7


def current_time_slot(instant: datetime) -> str:
    """Floor the instant's minutes to the half-hour grid, hour kept as-is."""
    rounded = "00" if instant.minute < SLOT_MINUTES else "30"
    return f"{instant.hour:02d}:{rounded}"


def classify_activity(activity, now: datetime) -> ActivityStatus:
    """Status of an activity relative to ``now`` (wall-clock of day only).

    Day-of-week is ignored: callers filter activities to ``now``'s day
    before reading CURRENT/LATE as meaningful.
    """
    if activity.completed:
        return ActivityStatus.COMPLETED

    start = time_to_minutes(activity.start_time)
    end = time_to_minutes(activity.end_time) if activity.end_time else start + SLOT_MINUTES
    now_minutes = minutes_of_day(now)

    if start <= now_minutes < end:
        return ActivityStatus.CURRENT
    if now_minutes >= end:
        return ActivityStatus.LATE
    return ActivityStatus.UPCOMING


def lunch_window(shift: str, shift_config=None) -> list[str]:
    """Lunch slots for a shift: the tenant's configured window, else the default pair."""
    if shift_config is not None:
        schedule = shift_config.schedule_for(shift)
        if schedule is not None:
            return list(schedule.lunch)
    return list(DEFAULT_LUNCH_WINDOWS.get(shift, []))


def is_lunch_time(slot: str, shift: str, shift_config=None) -> bool:
    return slot in lunch_window(shift, shift_config)


def active_shift_label(slot: str, shift_config) -> str:
    """Which shift is running at ``slot``: OVERLAP, MATUTINO, VESPERTINO or OFF_HOURS."""
    now = time_to_minutes(slot)
    mat_start = time_to_minutes(shift_config.matutino.start)
    mat_end = time_to_minutes(shift_config.matutino.end)
    ves_start = time_to_minutes(shift_config.vespertino.start)
    ves_end = time_to_minutes(shift_config.vespertino.end)

    if ves_start <= now < mat_end:
        return "OVERLAP"
    if mat_start <= now < mat_end:
        return "MATUTINO"
    if ves_start <= now < ves_end:
        return "VESPERTINO"
    return "OFF_HOURS"


def avatar_initials(name: str) -> str:
    """First letter of each word, first two, upper-cased ("Ana García" -> "AG")."""
    return "".join(part[0] for part in name.split() if part)[:2].upper()
