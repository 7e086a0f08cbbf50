"""Completion statistics per visible collaborator."""

import logging
from collections import Counter

from shiftboard.core.exceptions import ValidationError
from shiftboard.utils.timeslots import day_of_week

logger = logging.getLogger(__name__)

STAT_RANGES = ("DAY", "WEEK", "MONTH", "YEAR", "ALL")
NOT_AVAILABLE = "N/A"


def _percentage(completed: int, total: int) -> int:
    """Whole percent, halves rounded up (1/8 -> 13)."""
    return (completed * 200 + total) // (2 * total) if total else 0


def most_executed(activities) -> str:
    """Description scheduled most often (first seen wins a tie)."""
    counts = Counter(a.description for a in activities)
    if not counts:
        return NOT_AVAILABLE
    return counts.most_common(1)[0][0]


def best_executed(activities) -> str:
    """Description with the highest completion rate; ties go to the larger volume."""
    totals, done = Counter(), Counter()
    for a in activities:
        totals[a.description] += 1
        if a.completed:
            done[a.description] += 1
    if not totals:
        return NOT_AVAILABLE
    return max(totals, key=lambda name: (done[name] / totals[name], totals[name]))


def performance_rating(percentage: int, total: int) -> str:
    if percentage >= 90:
        return "EXCELLENT"
    if total > 0 and percentage < 60:
        return "NEEDS_ATTENTION"
    return "GOOD"


def collaborator_stats(store, time_range: str = "DAY") -> dict:
    """Per-collaborator completion stats plus team totals.

    ``DAY`` counts only activities on today's day-of-week. Activities carry
    no calendar date, so every wider range covers the whole weekly
    schedule.
    """
    time_range = (time_range or "DAY").upper()
    if time_range not in STAT_RANGES:
        raise ValidationError(
            f"range must be one of {', '.join(STAT_RANGES)}", details={"range": "invalid"}
        )
    today = day_of_week(store.clock.now())
    activities = store.visible_activities()

    rows = []
    for collaborator in store.visible_collaborators():
        mine = [
            a for a in activities
            if a.collaborator_id == collaborator.id and (time_range != "DAY" or a.day == today)
        ]
        total = len(mine)
        completed = sum(1 for a in mine if a.completed)
        percentage = _percentage(completed, total)
        rows.append({
            "collaborator": collaborator.to_dict(),
            "total": total,
            "completed": completed,
            "percentage": percentage,
            "most_executed": most_executed(mine),
            "best_executed": best_executed(mine),
            "rating": performance_rating(percentage, total),
        })

    global_total = sum(r["total"] for r in rows)
    global_completed = sum(r["completed"] for r in rows)
    return {
        "range": time_range,
        "collaborators": rows,
        "total": global_total,
        "completed": global_completed,
        "percentage": _percentage(global_completed, global_total),
    }
