"""
Clock capability.

Every time-dependent computation (status classification, slot rounding,
lunch checks, completion timestamps) reads ``clock.now()`` at the moment
it runs. Two implementations:

    SystemClock     — local wall clock
    SimulatedClock  — mutable instant for demos and tests ("time travel")

The application holds exactly one clock (``app.extensions["shiftboard.clock"]``),
chosen by the CLOCK_MODE config value.
"""

import threading
from datetime import datetime, timedelta

from shiftboard.utils.timeslots import day_of_week


class Clock:
    """Source of the current instant."""

    simulated = False

    def now(self) -> datetime:
        raise NotImplementedError


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now().replace(second=0, microsecond=0)


class SimulatedClock(Clock):
    """A clock whose instant only moves when told to."""

    simulated = True

    def __init__(self, start: datetime | None = None):
        self._lock = threading.Lock()
        self._now = start or default_simulation_start()

    def now(self) -> datetime:
        with self._lock:
            return self._now

    def set(self, instant: datetime) -> datetime:
        with self._lock:
            self._now = instant
            return self._now

    def set_time(self, hour: int, minute: int) -> datetime:
        """Keep the date, replace the wall-clock time."""
        if not (0 <= hour <= 23 and 0 <= minute <= 59):
            raise ValueError(f"Invalid time {hour:02d}:{minute:02d}")
        with self._lock:
            self._now = self._now.replace(hour=hour, minute=minute, second=0, microsecond=0)
            return self._now

    def travel_to_day(self, day: int) -> datetime:
        """Move to ``day`` (0=Sunday..6=Saturday) within the current Sunday-based week."""
        if not 0 <= day <= 6:
            raise ValueError(f"day must be between 0 and 6, got {day}")
        with self._lock:
            diff = day - day_of_week(self._now)
            self._now = self._now + timedelta(days=diff)
            return self._now

    def advance(self, minutes: int) -> datetime:
        with self._lock:
            self._now = self._now + timedelta(minutes=minutes)
            return self._now


def default_simulation_start(today: datetime | None = None) -> datetime:
    """Monday of the current week at 10:15."""
    today = today or datetime.now()
    monday = today - timedelta(days=day_of_week(today) - 1)
    return monday.replace(hour=10, minute=15, second=0, microsecond=0)


def create_clock(mode: str) -> Clock:
    if mode == "simulated":
        return SimulatedClock()
    if mode == "system":
        return SystemClock()
    raise ValueError(f"Unknown CLOCK_MODE {mode!r} (expected 'system' or 'simulated')")
