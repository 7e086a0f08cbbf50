"""
Completion statistics — helper functions and the /board/stats endpoint.
"""

import pytest

from shiftboard.domain import Activity
from shiftboard.services.stats_service import (
    _percentage,
    best_executed,
    most_executed,
    performance_rating,
)

STATS = "/api/v1/board/stats"


def _acts(*specs):
    return [
        Activity(id=str(i), collaborator_id=1, day=1, start_time="09:00", end_time="09:30",
                 description=desc, completed=done)
        for i, (desc, done) in enumerate(specs)
    ]


class TestHelpers:
    @pytest.mark.parametrize("completed,total,expected", [
        (0, 0, 0), (1, 8, 13), (2, 3, 67), (1, 2, 50), (1, 3, 33), (3, 5, 60), (5, 5, 100),
    ])
    def test_percentage_rounds_half_up(self, completed, total, expected):
        assert _percentage(completed, total) == expected

    def test_most_executed(self):
        acts = _acts(("Arqueo", False), ("Caja", True), ("Arqueo", True))
        assert most_executed(acts) == "Arqueo"
        assert most_executed([]) == "N/A"

    def test_best_executed_prefers_rate_then_volume(self):
        acts = _acts(("Caja", True), ("Arqueo", True), ("Arqueo", True), ("Bóveda", False))
        assert best_executed(acts) == "Arqueo"
        assert best_executed(_acts(("Caja", False), ("Bóveda", True))) == "Bóveda"
        assert best_executed([]) == "N/A"

    @pytest.mark.parametrize("percentage,total,rating", [
        (100, 3, "EXCELLENT"), (90, 10, "EXCELLENT"), (89, 10, "GOOD"),
        (60, 5, "GOOD"), (59, 5, "NEEDS_ATTENTION"), (0, 0, "GOOD"),
    ])
    def test_performance_rating(self, percentage, total, rating):
        assert performance_rating(percentage, total) == rating


class TestStatsAPI:
    def test_day_range(self, client, manager_headers):
        res = client.get(STATS, headers=manager_headers)
        assert res.status_code == 200
        body = res.get_json()
        assert body["range"] == "DAY"
        assert (body["total"], body["completed"], body["percentage"]) == (5, 3, 60)

        rows = {r["collaborator"]["id"]: r for r in body["collaborators"]}
        assert (rows[1]["total"], rows[1]["completed"], rows[1]["percentage"]) == (3, 2, 67)
        assert rows[1]["rating"] == "GOOD"
        assert rows[2]["rating"] == "EXCELLENT"
        assert rows[2]["best_executed"] == "Apertura de Caja"
        assert rows[3]["rating"] == "NEEDS_ATTENTION"
        assert rows[4]["most_executed"] == "N/A"
        assert rows[4]["rating"] == "GOOD"

    def test_day_follows_clock(self, client, manager_headers, app_clock):
        app_clock.travel_to_day(2)
        assert client.get(STATS, headers=manager_headers).get_json()["total"] == 0
        week = client.get(f"{STATS}?range=week", headers=manager_headers).get_json()
        assert week["range"] == "WEEK"
        assert week["total"] == 5

    def test_invalid_range(self, client, manager_headers):
        assert client.get(f"{STATS}?range=DECADE", headers=manager_headers).status_code == 422

    def test_collaborator_forbidden(self, client, collaborator_headers):
        assert client.get(STATS, headers=collaborator_headers).status_code == 403
