"""
Retention: day logs older than the window are folded into archived day summaries.

Pruned days keep their points and their place in the streak through the summary; only the
per-prayer and per-habit detail is dropped. Old ibadah sessions and cached prayer times go too
(session points live in the reward ledger, not in the session list).
"""
import logging
from dataclasses import asdict, dataclass
from datetime import date, timedelta
from typing import Dict, Optional

from iman.core import clock, keys
from iman.core.logs import HabitLog, PrayerLog
from iman.core.points import resolve_day
from iman.core.tracker import Tracker
from iman.plugins.prayer.service import prune_prayer_times

logger = logging.getLogger(__name__)

MAX_LOG_DAYS = 90


@dataclass
class CleanupResult:
    cutoff: str
    days_archived: int = 0
    sessions_removed: int = 0
    prayer_times_removed: int = 0

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


def cleanup_old_logs(tracker: Tracker, retention_days: int = MAX_LOG_DAYS,
                     today: Optional[date] = None) -> CleanupResult:
    retention_days = max(1, int(retention_days))
    cutoff = (today or clock.today()) - timedelta(days=retention_days)
    cutoff_key = cutoff.isoformat()
    result = CleanupResult(cutoff=cutoff_key)

    with tracker.lock:
        logbook = tracker.logbook
        prayer_logs = logbook.all_prayer_logs()
        habit_logs = logbook.all_habit_logs()
        old_days = sorted(k for k in set(prayer_logs) | set(habit_logs) if k < cutoff_key)

        if old_days:
            archived = logbook.archived_days()
            for day_key in old_days:
                prayer_log = prayer_logs.get(day_key) or PrayerLog.default(day_key)
                habit_log = habit_logs.get(day_key) or HabitLog.default(day_key)
                archived[day_key], _ = resolve_day(prayer_log, habit_log, archived.get(day_key))
            # summaries first, so a crash in between never loses points
            logbook.save_archived_days(archived)
            for day_key in old_days:
                logbook.delete_day(day_key)
            result.days_archived = len(old_days)

        sessions = tracker.store.get(keys.IBADAH_SESSIONS, [])
        if isinstance(sessions, list):
            kept = [s for s in sessions if isinstance(s, dict) and str(s.get("date") or "") >= cutoff_key]
            if len(kept) < len(sessions):
                tracker.store.set(keys.IBADAH_SESSIONS, kept)
                result.sessions_removed = len(sessions) - len(kept)

        result.prayer_times_removed = prune_prayer_times(tracker, cutoff)

        if old_days:
            tracker.reload()

    logger.info(
        f"Cleanup before {cutoff_key}: {result.days_archived} days archived, "
        f"{result.sessions_removed} sessions and {result.prayer_times_removed} cached times removed"
    )
    return result
