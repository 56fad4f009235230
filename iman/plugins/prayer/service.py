"""
Service layer: cache prayer times per day in the record store and mark prayers against them.
"""
import logging
from datetime import date
from typing import Dict, Optional

from iman.core import clock, keys
from iman.core.logs import MarkResult, PRAYER_NAMES, PrayerStatus, check_prayer
from iman.core.tracker import Tracker
from iman.plugins.prayer.prayer_base import PrayerBackend, normalize_time

logger = logging.getLogger(__name__)


def save_prayer_times(tracker: Tracker, prayer_date: clock.DateLike, times: Dict[str, str]) -> Dict[str, str]:
    """Replace the cached times for a day. Unknown prayers and malformed times are dropped."""
    data = {}
    for prayer, value in times.items():
        normalized = normalize_time(value)
        if prayer in PRAYER_NAMES and normalized:
            data[prayer] = normalized
    tracker.store.set(keys.prayer_times_key(clock.date_key(prayer_date)), data)
    return data


def get_prayer_times(tracker: Tracker, prayer_date: clock.DateLike = None) -> Dict[str, str]:
    """Cached times for a day ({} when none were fetched)."""
    data = tracker.store.get(keys.prayer_times_key(clock.date_key(prayer_date)), {})
    return data if isinstance(data, dict) else {}


class PrayerService:
    def __init__(self, tracker: Tracker, backend: Optional[PrayerBackend] = None):
        self.tracker = tracker
        self.backend = backend

    def refresh(self, prayer_date: clock.DateLike = None) -> Optional[Dict[str, str]]:
        """Fetch times from the backend and cache them. None when no backend or the fetch failed."""
        day = clock.to_date(prayer_date)
        if self.backend is None:
            logger.info("No prayer backend configured; skipping refresh")
            return None
        times = self.backend.get_prayer_times(day)
        if not times:
            return None
        saved = save_prayer_times(self.tracker, day, times)
        logger.info(f"Prayer times saved for {day}: {saved}")
        return saved

    def times_for(self, prayer_date: clock.DateLike = None, fetch: bool = True) -> Dict[str, str]:
        times = get_prayer_times(self.tracker, prayer_date)
        if not times and fetch:
            times = self.refresh(prayer_date) or {}
        return times

    def scheduled_time(self, prayer: str, prayer_date: clock.DateLike = None) -> Optional[str]:
        """Scheduled time for the time gate; only today's marks are gated."""
        check_prayer(prayer)
        day = clock.to_date(prayer_date)
        if day != clock.today():
            return None
        return self.times_for(day).get(prayer)

    def mark(self, prayer: str, prayer_date: clock.DateLike = None) -> MarkResult:
        return self.tracker.mark_prayer(prayer, prayer_date, self.scheduled_time(prayer, prayer_date))

    def set_status(self, prayer: str, status: PrayerStatus, prayer_date: clock.DateLike = None) -> MarkResult:
        return self.tracker.set_prayer_status(
            prayer, status, prayer_date, self.scheduled_time(prayer, prayer_date)
        )

    def next_prayer(self, current_time=None) -> Optional[Dict[str, str]]:
        """First of today's prayers whose time has not passed yet."""
        current_time = current_time or clock.now()
        times = self.times_for(current_time.date())
        for prayer in PRAYER_NAMES:
            minutes = clock.minutes_since(times.get(prayer), current_time)
            if minutes is not None and minutes < 0:
                return {"prayer": prayer, "time": times[prayer]}
        return None


def prune_prayer_times(tracker: Tracker, cutoff: date) -> int:
    """Drop cached times for days before cutoff."""
    removed = 0
    for key in tracker.store.keys(keys.PRAYER_TIMES_PREFIX):
        day_key = key[len(keys.PRAYER_TIMES_PREFIX):]
        try:
            if date.fromisoformat(day_key) < cutoff:
                removed += int(tracker.store.delete(key))
        except ValueError:
            removed += int(tracker.store.delete(key))
    return removed
