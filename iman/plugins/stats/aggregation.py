"""
Read-only aggregation over the day logs: per-day numbers, weekly/monthly summaries,
per-prayer and per-habit counts, and the month heatmap.

Pruned days come from their archived summary, so totals stay consistent after cleanup;
they carry no per-prayer or per-habit breakdown.
"""
import calendar
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from iman.core import clock
from iman.core.logs import HABIT_KEYS, PRAYER_NAMES, PrayerStatus, LogBook
from iman.core.points import has_content, resolve_day

PERFECT_DAY_PRAYERS = len(PRAYER_NAMES)


@dataclass
class DayStats:
    date: str
    points: int = 0
    prayers_completed: int = 0
    prayers_ontime: int = 0
    habits_completed: int = 0
    has_data: bool = False
    archived: bool = False

    @property
    def perfect(self) -> bool:
        return self.prayers_completed == PERFECT_DAY_PRAYERS and self.habits_completed == len(HABIT_KEYS)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "points": self.points,
            "prayers_completed": self.prayers_completed,
            "prayers_ontime": self.prayers_ontime,
            "habits_completed": self.habits_completed,
            "has_data": self.has_data,
            "archived": self.archived,
        }


def day_stats(logbook: LogBook, day: clock.DateLike = None) -> DayStats:
    day_key = clock.date_key(day)
    prayer_log = logbook.get_prayer_log(day_key)
    habit_log = logbook.get_habit_log(day_key)
    summary, archived = resolve_day(prayer_log, habit_log, logbook.archived_days().get(day_key))
    return DayStats(
        date=day_key,
        points=summary.points,
        prayers_completed=summary.prayers_completed,
        prayers_ontime=summary.prayers_ontime,
        habits_completed=summary.habits_completed,
        has_data=archived or has_content(prayer_log, habit_log),
        archived=archived,
    )


def daily_stats(logbook: LogBook, start: clock.DateLike, end: clock.DateLike) -> List[DayStats]:
    return [day_stats(logbook, d) for d in clock.date_range(start, end)]


def today_stats(logbook: LogBook) -> DayStats:
    return day_stats(logbook, clock.today())


def _summarize(days: List[DayStats]) -> Dict[str, Any]:
    count = len(days) or 1
    return {
        "days": [d.to_dict() for d in days],
        "total_points": sum(d.points for d in days),
        "avg_prayers": round(sum(d.prayers_completed for d in days) / count, 1),
        "avg_habits": round(sum(d.habits_completed for d in days) / count, 1),
        "perfect_days": sum(1 for d in days if d.perfect),
    }


def weekly_stats(logbook: LogBook, end: clock.DateLike = None) -> Dict[str, Any]:
    """The 7 days ending at end (today by default), oldest first."""
    return _summarize([day_stats(logbook, d) for d in clock.last_n_days(7, end)])


def monthly_stats(logbook: LogBook, year: int, month: int) -> Dict[str, Any]:
    result = _summarize([day_stats(logbook, d) for d in clock.month_days(year, month)])
    result.update({"year": year, "month": month})
    return result


def prayer_stats(logbook: LogBook, dates: Iterable[clock.DateLike]) -> List[Dict[str, Any]]:
    """Per-prayer ontime/late/missed counts over the given days."""
    stats = {p: {"key": p, "ontime": 0, "late": 0, "missed": 0, "total": 0} for p in PRAYER_NAMES}
    for d in _bounded(dates):
        log = logbook.get_prayer_log(d)
        for prayer in PRAYER_NAMES:
            stats[prayer]["total"] += 1
            status = log.status_of(prayer)
            if status != PrayerStatus.NONE:
                stats[prayer][status.value] += 1
    return [stats[p] for p in PRAYER_NAMES]


def habit_stats(logbook: LogBook, dates: Iterable[clock.DateLike]) -> List[Dict[str, Any]]:
    stats = {h: {"key": h, "completed": 0, "total": 0} for h in HABIT_KEYS}
    for d in _bounded(dates):
        log = logbook.get_habit_log(d)
        for habit in HABIT_KEYS:
            stats[habit]["total"] += 1
            if log.get(habit):
                stats[habit]["completed"] += 1
    return [stats[h] for h in HABIT_KEYS]


def _bounded(dates: Iterable[clock.DateLike]) -> List[date]:
    result = []
    for d in dates:
        if len(result) >= clock.MAX_RANGE_DAYS:
            break
        result.append(clock.to_date(d))
    return result


def heat_level(intensity: float) -> int:
    if intensity <= 0:
        return 0
    if intensity < 0.25:
        return 1
    if intensity < 0.5:
        return 2
    if intensity < 0.75:
        return 3
    return 4


def calendar_heatmap(logbook: LogBook, year: int, month: int, today: Optional[date] = None) -> Dict[str, Any]:
    """Month grid, Monday first. Leading cells pad the first week; intensity is relative to the best day."""
    today = today or clock.today()
    days = [day_stats(logbook, d) for d in clock.month_days(year, month)]
    offset = calendar.monthrange(year, month)[0]
    max_points = max([d.points for d in days] + [1])

    cells: List[Dict[str, Any]] = [
        {"day": 0, "date": None, "points": 0, "intensity": 0.0, "level": 0, "is_today": False, "is_empty": True}
        for _ in range(offset)
    ]
    for index, stats in enumerate(days, start=1):
        intensity = stats.points / max_points
        cells.append({
            "day": index,
            "date": stats.date,
            "points": stats.points,
            "intensity": round(intensity, 3),
            "level": heat_level(intensity),
            "is_today": stats.date == today.isoformat(),
            "is_empty": False,
        })
    return {"year": year, "month": month, "offset": offset, "max_points": max_points, "cells": cells}


def weekly_prayer_strip(logbook: LogBook, end: clock.DateLike = None) -> List[Dict[str, Any]]:
    """Last 7 days of prayer completion for the dashboard strip."""
    strip = []
    for d in clock.last_n_days(7, end):
        log = logbook.get_prayer_log(d)
        strip.append({
            "date": log.date,
            "weekday": d.weekday(),
            "completed": log.completed,
            "has_data": log.has_data,
        })
    return strip
