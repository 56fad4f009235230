from datetime import date

import pytest
from freezegun import freeze_time

from iman.core.logs import PRAYER_NAMES, HABIT_KEYS, PrayerStatus
from iman.core.points import POINTS
from iman.plugins.stats import aggregation


@pytest.fixture
def seeded(tracker):
    with freeze_time("2026-03-10 21:00:00"):
        for prayer in PRAYER_NAMES:
            tracker.mark_prayer(prayer, "2026-03-08")
        tracker.set_habit_log("2026-03-08", {h: True for h in HABIT_KEYS})
        tracker.mark_prayer("fajr", "2026-03-09")
        tracker.set_prayer_status("dhuhr", PrayerStatus.MISSED, "2026-03-09")
        tracker.set_habit("quran", True, "2026-03-10")
    return tracker


def test_day_stats(seeded):
    stats = aggregation.day_stats(seeded.logbook, "2026-03-08")
    assert stats.prayers_completed == 5
    assert stats.habits_completed == len(HABIT_KEYS)
    assert stats.perfect
    assert not aggregation.day_stats(seeded.logbook, "2026-03-01").has_data


def test_weekly_total_equals_sum_of_daily_points(seeded):
    weekly = aggregation.weekly_stats(seeded.logbook, "2026-03-10")
    daily = aggregation.daily_stats(seeded.logbook, "2026-03-04", "2026-03-10")
    assert len(weekly["days"]) == 7
    assert weekly["total_points"] == sum(d.points for d in daily)
    assert weekly["total_points"] == seeded.get_profile().total_points
    assert weekly["perfect_days"] == 1
    assert weekly["avg_prayers"] == round(6 / 7, 1)


def test_monthly_stats(seeded):
    monthly = aggregation.monthly_stats(seeded.logbook, 2026, 3)
    assert len(monthly["days"]) == 31
    assert monthly["total_points"] == seeded.get_profile().total_points


def test_prayer_and_habit_stats(seeded):
    dates = [date(2026, 3, 8), date(2026, 3, 9), date(2026, 3, 10)]
    prayers = {p["key"]: p for p in aggregation.prayer_stats(seeded.logbook, dates)}
    assert prayers["fajr"] == {"key": "fajr", "ontime": 0, "late": 2, "missed": 0, "total": 3}
    assert prayers["dhuhr"]["missed"] == 1
    habits = {h["key"]: h for h in aggregation.habit_stats(seeded.logbook, dates)}
    assert habits["quran"] == {"key": "quran", "completed": 2, "total": 3}


@pytest.mark.parametrize("intensity,level", [(0, 0), (0.2, 1), (0.25, 2), (0.5, 3), (0.74, 3), (0.75, 4), (1.0, 4)])
def test_heat_level_buckets(intensity, level):
    assert aggregation.heat_level(intensity) == level


def test_calendar_heatmap_is_monday_first(seeded):
    heatmap = aggregation.calendar_heatmap(seeded.logbook, 2026, 3, today=date(2026, 3, 10))
    # 1 March 2026 is a Sunday
    assert heatmap["offset"] == 6
    cells = heatmap["cells"]
    assert len(cells) == 6 + 31
    assert all(c["is_empty"] for c in cells[:6])
    best = next(c for c in cells if c["date"] == "2026-03-08")
    assert best["intensity"] == 1.0 and best["level"] == 4
    assert heatmap["max_points"] == best["points"]
    assert next(c for c in cells if c["date"] == "2026-03-10")["is_today"]


def test_empty_month_heatmap_has_no_division_by_zero(tracker):
    heatmap = aggregation.calendar_heatmap(tracker.logbook, 2026, 2)
    assert heatmap["max_points"] == 1
    assert all(c["level"] == 0 for c in heatmap["cells"])


def test_weekly_prayer_strip(seeded):
    strip = aggregation.weekly_prayer_strip(seeded.logbook, "2026-03-10")
    assert [s["completed"] for s in strip][-3:] == [5, 1, 0]
    assert strip[-2]["has_data"] is True
    assert strip[-1]["has_data"] is False


def test_points_of_quran_day(seeded):
    assert aggregation.day_stats(seeded.logbook, "2026-03-10").points == POINTS["QURAN"]
