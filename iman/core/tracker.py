"""
Tracker: the single handle every consumer goes through.

Each mutation follows the same path: write the day record, recompute the streak, recompute
total points. Reads always go back to the record store, so a presentation layer that regains
focus (or a sync merge that rewrote records underneath us) only needs to call reload().
"""
import logging
import threading
from typing import Any, Dict, Optional

from iman.core import clock, keys
from iman.core.events import ActionEvent, AnalyticsSink, LoggingAnalyticsSink
from iman.core.logs import (
    ARCHIVED_DAY,
    FUTURE_DAY,
    HABIT_KEYS,
    HabitLog,
    LogBook,
    MarkResult,
    PrayerLog,
    PrayerEntry,
    PrayerStatus,
    check_habit,
    check_prayer,
    resolve_manual_status,
    resolve_smart_mark,
)
from iman.core.points import PointsEngine, RewardKind
from iman.core.profile import ProfileRepository, UserProfile
from iman.core.store import RecordStore
from iman.core.streak import StreakEngine

logger = logging.getLogger(__name__)


class Tracker:
    def __init__(self, store: Optional[RecordStore] = None, analytics: Optional[AnalyticsSink] = None):
        self.store = store or RecordStore()
        self.logbook = LogBook(self.store)
        self.profiles = ProfileRepository(self.store)
        self.points = PointsEngine(self.store, self.logbook, self.profiles)
        self.streaks = StreakEngine(self.logbook, self.profiles)
        self.analytics = analytics or LoggingAnalyticsSink()
        # one logical writer: API threads and scheduled tasks take turns
        self.lock = threading.RLock()

    def track(self, action: str, **details: Any) -> None:
        try:
            self.analytics.record(ActionEvent(action=action, details=details))
        except Exception as e:
            logger.warning(f"Analytics sink failed for {action}: {e}")

    # ---- profile ----

    def ensure_profile(self) -> UserProfile:
        """Persist the default profile on first use so joined_at is fixed."""
        with self.lock:
            if not self.profiles.exists():
                logger.info("Creating user profile")
                return self.profiles.save(self.profiles.get())
            return self.profiles.get()

    def get_profile(self) -> UserProfile:
        return self.profiles.get()

    def update_profile(self, changes: Dict[str, Any]) -> UserProfile:
        with self.lock:
            profile = self.profiles.update(changes)
        self.track("profile_updated", fields=sorted(changes))
        return profile

    # ---- prayers ----

    def get_prayer_log(self, day: clock.DateLike = None) -> PrayerLog:
        return self.logbook.get_prayer_log(day)

    def mark_prayer(
        self,
        prayer: str,
        day: clock.DateLike = None,
        scheduled_time: Optional[str] = None,
    ) -> MarkResult:
        """One-tap mark: toggles off a prayed entry, otherwise on time / late by the time window."""
        check_prayer(prayer)
        with self.lock:
            log = self.logbook.get_prayer_log(day)
            current = log.status_of(prayer)
            if self.logbook.is_archived(log.date):
                return self._apply_prayer_status(log, prayer, current, None, ARCHIVED_DAY)
            new_status, reason = resolve_smart_mark(current, clock.to_date(log.date), scheduled_time)
            return self._apply_prayer_status(log, prayer, current, new_status, reason)

    def set_prayer_status(
        self,
        prayer: str,
        status: PrayerStatus,
        day: clock.DateLike = None,
        scheduled_time: Optional[str] = None,
    ) -> MarkResult:
        """Explicit status pick; picking the current status again clears it."""
        check_prayer(prayer)
        status = PrayerStatus(status)
        with self.lock:
            log = self.logbook.get_prayer_log(day)
            current = log.status_of(prayer)
            if self.logbook.is_archived(log.date):
                return self._apply_prayer_status(log, prayer, current, None, ARCHIVED_DAY)
            new_status, reason = resolve_manual_status(
                current, status, clock.to_date(log.date), scheduled_time
            )
            return self._apply_prayer_status(log, prayer, current, new_status, reason)

    def _apply_prayer_status(
        self,
        log: PrayerLog,
        prayer: str,
        current: PrayerStatus,
        new_status: Optional[PrayerStatus],
        reason: Optional[str],
    ) -> MarkResult:
        if new_status is None:
            logger.info(f"Prayer mark rejected: {prayer} on {log.date} ({reason})")
            return MarkResult(False, prayer, log.date, current, current, reason)
        if new_status == PrayerStatus.NONE:
            log.prayers[prayer] = PrayerEntry()
        else:
            log.prayers[prayer] = PrayerEntry(status=new_status, timestamp=clock.now().isoformat())
        self.logbook.save_prayer_log(log)
        self._after_log_change()
        self.track("prayer_marked", prayer=prayer, date=log.date, status=new_status.value)
        return MarkResult(True, prayer, log.date, new_status, current)

    # ---- habits ----

    def get_habit_log(self, day: clock.DateLike = None) -> HabitLog:
        return self.logbook.get_habit_log(day)

    def set_habit(self, habit: str, value: bool, day: clock.DateLike = None) -> HabitLog:
        check_habit(habit)
        with self.lock:
            log = self.logbook.get_habit_log(day)
            if clock.to_date(log.date) > clock.today():
                logger.info(f"Habit change rejected: {habit} on {log.date} ({FUTURE_DAY})")
                return log
            if self.logbook.is_archived(log.date):
                logger.info(f"Habit change rejected: {habit} on {log.date} ({ARCHIVED_DAY})")
                return log
            if log.get(habit) == bool(value):
                return log
            log.set(habit, value)
            self.logbook.save_habit_log(log)
            self._after_log_change()
        self.track("habit_toggled", habit=habit, date=log.date, value=bool(value))
        return log

    def toggle_habit(self, habit: str, day: clock.DateLike = None) -> HabitLog:
        check_habit(habit)
        with self.lock:
            current = self.logbook.get_habit_log(day).get(habit)
            return self.set_habit(habit, not current, day)

    def set_habit_log(self, day: clock.DateLike, values: Dict[str, bool]) -> HabitLog:
        """Overwrite several habit flags of one day; unknown keys raise ValueError."""
        for habit in values:
            check_habit(habit)
        with self.lock:
            log = self.logbook.get_habit_log(day)
            if clock.to_date(log.date) > clock.today():
                logger.info(f"Habit log change rejected for {log.date} ({FUTURE_DAY})")
                return log
            if self.logbook.is_archived(log.date):
                logger.info(f"Habit log change rejected for {log.date} ({ARCHIVED_DAY})")
                return log
            for habit in HABIT_KEYS:
                if habit in values:
                    log.set(habit, bool(values[habit]))
            self.logbook.save_habit_log(log)
            self._after_log_change()
        return log

    # ---- derived state ----

    def _after_log_change(self) -> None:
        self.streaks.update_streak()
        self.points.recalculate_total_points()

    def update_streak(self):
        with self.lock:
            return self.streaks.update_streak()

    def recalculate_total_points(self) -> UserProfile:
        with self.lock:
            return self.points.recalculate_total_points()

    def award_once(self, kind: RewardKind, identifier: Any, points: int) -> bool:
        with self.lock:
            paid = self.points.award_once(kind, identifier, points)
        if paid:
            self.track("reward", kind=RewardKind(kind).value, identifier=str(identifier), points=points)
        return paid

    def add_extra_points(self, points: int, kind: RewardKind = RewardKind.EXTRA,
                         identifier: Optional[str] = None) -> bool:
        with self.lock:
            return self.points.add_extra_points(points, kind, identifier)

    def reload(self) -> UserProfile:
        """Re-derive everything from the stored records (after focus regain or an external merge)."""
        with self.lock:
            self.streaks.update_streak()
            profile = self.points.recalculate_total_points()
        logger.info(f"Reloaded derived state: {profile.total_points} points, streak {profile.streak}")
        return profile

    def reset_all(self) -> int:
        """Delete every record the core owns. Presentation flags are kept."""
        with self.lock:
            count = self.store.clear(keys.CORE_PREFIXES, exact_keys=keys.CORE_KEYS)
        logger.warning(f"All user data reset ({count} records removed)")
        self.track("reset_all", records=count)
        return count
