"""
Clock capability — simulated time travel and the /api/v1/clock endpoint.
"""

from datetime import datetime

import pytest

from shiftboard.clock import SimulatedClock, SystemClock, create_clock, default_simulation_start


class TestSimulatedClock:
    def test_now_is_frozen(self, clock):
        assert clock.now() == datetime(2024, 6, 3, 9, 40)
        assert clock.now() == datetime(2024, 6, 3, 9, 40)

    def test_set_time_keeps_date(self, clock):
        assert clock.set_time(14, 30) == datetime(2024, 6, 3, 14, 30)

    def test_set_time_rejects_invalid(self, clock):
        with pytest.raises(ValueError):
            clock.set_time(24, 0)

    def test_travel_within_sunday_based_week(self, clock):
        assert clock.travel_to_day(0) == datetime(2024, 6, 2, 9, 40)
        assert clock.travel_to_day(6) == datetime(2024, 6, 8, 9, 40)

    def test_travel_rejects_out_of_range_day(self, clock):
        with pytest.raises(ValueError):
            clock.travel_to_day(7)

    def test_advance(self, clock):
        assert clock.advance(50) == datetime(2024, 6, 3, 10, 30)

    def test_default_start_is_monday_morning(self):
        assert default_simulation_start(datetime(2024, 6, 5, 15, 0)) == datetime(2024, 6, 3, 10, 15)
        # Sunday opens the week, so its Monday is the following day
        assert default_simulation_start(datetime(2024, 6, 9, 8, 0)) == datetime(2024, 6, 10, 10, 15)


class TestCreateClock:
    def test_modes(self):
        assert isinstance(create_clock("simulated"), SimulatedClock)
        assert isinstance(create_clock("system"), SystemClock)

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            create_clock("sundial")

    def test_system_clock_truncates_seconds(self):
        now = SystemClock().now()
        assert now.second == 0 and now.microsecond == 0


class TestClockAPI:
    def test_get_clock_state(self, client, collaborator_headers):
        res = client.get("/api/v1/clock", headers=collaborator_headers)
        assert res.status_code == 200
        body = res.get_json()
        assert body["day"] == 1
        assert body["day_name"] == "Lunes"
        assert body["current_slot"] == "09:30"
        assert body["simulated"] is True

    def test_manager_moves_clock(self, client, manager_headers, app_clock):
        res = client.put("/api/v1/clock", json={"day": 3, "time": "14:30"}, headers=manager_headers)
        assert res.status_code == 200
        assert res.get_json()["current_slot"] == "14:30"
        assert app_clock.now() == datetime(2024, 6, 5, 14, 30)

    def test_advance_minutes(self, client, manager_headers):
        res = client.patch("/api/v1/clock", json={"advance_minutes": 30}, headers=manager_headers)
        assert res.get_json()["current_slot"] == "10:00"

    def test_collaborator_cannot_move_clock(self, client, collaborator_headers):
        res = client.put("/api/v1/clock", json={"time": "12:00"}, headers=collaborator_headers)
        assert res.status_code == 403

    def test_invalid_time_rejected(self, client, manager_headers):
        res = client.put("/api/v1/clock", json={"time": "25:00"}, headers=manager_headers)
        assert res.status_code == 422

    def test_huge_advance_rejected(self, client, manager_headers, app_clock):
        res = client.put("/api/v1/clock", json={"advance_minutes": 10 ** 15}, headers=manager_headers)
        assert res.status_code == 422
        assert app_clock.now() == datetime(2024, 6, 3, 9, 40)

    def test_system_clock_cannot_move(self, app, client, manager_headers):
        app.extensions["shiftboard.clock"] = SystemClock()
        res = client.put("/api/v1/clock", json={"time": "12:00"}, headers=manager_headers)
        assert res.status_code == 422
