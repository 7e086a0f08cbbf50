"""
Slot arithmetic, status classification, lunch windows and shift labels.
"""

from datetime import datetime

import pytest

from shiftboard.domain import Activity, ShiftConfig, ShiftSchedule
from shiftboard.utils.timeslots import (
    ActivityStatus,
    active_shift_label,
    avatar_initials,
    classify_activity,
    current_time_slot,
    day_of_week,
    is_lunch_time,
    is_valid_time,
    lunch_window,
    time_to_minutes,
)


def _activity(start, end, completed=False):
    return Activity(id="a1", collaborator_id=1, day=1, start_time=start, end_time=end,
                    description="Apertura de Caja", completed=completed)


def _at(hour, minute):
    return datetime(2024, 6, 3, hour, minute)


class TestSlotArithmetic:
    def test_time_to_minutes(self):
        assert time_to_minutes("08:30") == 510
        assert time_to_minutes("00:00") == 0
        assert time_to_minutes("") == 0
        assert time_to_minutes(None) == 0

    @pytest.mark.parametrize("hour,minute,slot", [
        (9, 47, "09:30"),
        (9, 29, "09:00"),
        (14, 0, "14:00"),
        (14, 30, "14:30"),
        (0, 5, "00:00"),
        (23, 59, "23:30"),
    ])
    def test_current_time_slot_floors_to_half_hour(self, hour, minute, slot):
        assert current_time_slot(_at(hour, minute)) == slot

    def test_day_of_week_is_sunday_based(self):
        assert day_of_week(datetime(2024, 6, 2)) == 0  # Sunday
        assert day_of_week(datetime(2024, 6, 3)) == 1  # Monday
        assert day_of_week(datetime(2024, 6, 8)) == 6  # Saturday

    @pytest.mark.parametrize("value,ok", [
        ("08:00", True), ("23:59", True), ("24:00", False),
        ("8:00", False), ("08:60", False), ("", False), (None, False), (830, False),
    ])
    def test_is_valid_time(self, value, ok):
        assert is_valid_time(value) is ok


class TestClassifyActivity:
    def test_completed_wins_over_time(self):
        assert classify_activity(_activity("08:00", "08:30", True), _at(12, 0)) is ActivityStatus.COMPLETED

    def test_current_inside_window(self):
        assert classify_activity(_activity("09:30", "10:00"), _at(9, 40)) is ActivityStatus.CURRENT

    def test_start_is_inclusive(self):
        assert classify_activity(_activity("09:30", "10:00"), _at(9, 30)) is ActivityStatus.CURRENT

    def test_end_is_exclusive_and_late_after(self):
        assert classify_activity(_activity("09:30", "10:00"), _at(10, 0)) is ActivityStatus.LATE
        assert classify_activity(_activity("09:30", "10:00"), _at(18, 0)) is ActivityStatus.LATE

    def test_upcoming_before_start(self):
        assert classify_activity(_activity("12:00", "12:30"), _at(9, 40)) is ActivityStatus.UPCOMING

    def test_missing_end_time_lasts_one_slot(self):
        activity = _activity("09:30", "")
        assert classify_activity(activity, _at(9, 59)) is ActivityStatus.CURRENT
        assert classify_activity(activity, _at(10, 0)) is ActivityStatus.LATE


class TestLunchAndShifts:
    def test_default_lunch_windows(self):
        assert lunch_window("MATUTINO") == ["13:00", "13:30"]
        assert lunch_window("VESPERTINO") == ["16:00", "16:30"]
        assert lunch_window("NOCTURNO") == []

    def test_configured_lunch_window_overrides_default(self):
        config = ShiftConfig(manager_id=999,
                             matutino=ShiftSchedule("08:00", "15:00", ["12:00"]))
        assert is_lunch_time("12:00", "MATUTINO", config)
        assert not is_lunch_time("13:00", "MATUTINO", config)
        # The other shift keeps its defaults
        assert is_lunch_time("16:30", "VESPERTINO", config)

    @pytest.mark.parametrize("slot,label", [
        ("07:30", "OFF_HOURS"),
        ("08:00", "MATUTINO"),
        ("11:30", "MATUTINO"),
        ("12:00", "OVERLAP"),
        ("14:30", "OVERLAP"),
        ("15:00", "VESPERTINO"),
        ("19:30", "VESPERTINO"),
        ("20:00", "OFF_HOURS"),
    ])
    def test_active_shift_label_with_default_hours(self, slot, label):
        assert active_shift_label(slot, ShiftConfig(manager_id=999)) == label


class TestAvatarInitials:
    def test_first_two_words(self):
        assert avatar_initials("Ana García") == "AG"
        assert avatar_initials("juan carlos pérez") == "JC"

    def test_single_word_and_extra_spaces(self):
        assert avatar_initials("Madonna") == "M"
        assert avatar_initials("  María   López ") == "ML"
