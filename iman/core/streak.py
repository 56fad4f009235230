"""
Streak of consecutive days with all five prayers prayed (on time or late).
"""
import logging
from datetime import timedelta
from typing import Dict, Tuple

from iman.core import clock
from iman.core.logs import PRAYER_NAMES, DaySummary, LogBook
from iman.core.points import day_summaries
from iman.core.profile import ProfileRepository

logger = logging.getLogger(__name__)

MAX_STREAK_SCAN_DAYS = 365


def _day_complete(day_key: str, summaries: Dict[str, DaySummary]) -> bool:
    summary = summaries.get(day_key)
    return summary is not None and summary.prayers_completed >= len(PRAYER_NAMES)


def compute_streak(
    summaries: Dict[str, DaySummary],
    today: clock.DateLike = None,
    max_days: int = MAX_STREAK_SCAN_DAYS,
) -> int:
    """Consecutive complete days ending yesterday, plus today once today is complete."""
    start = clock.to_date(today)
    streak = 1 if _day_complete(start.isoformat(), summaries) else 0
    for offset in range(1, max_days):
        day_key = (start - timedelta(days=offset)).isoformat()
        if not _day_complete(day_key, summaries):
            break
        streak += 1
    return streak


class StreakEngine:
    def __init__(self, logbook: LogBook, profiles: ProfileRepository):
        self.logbook = logbook
        self.profiles = profiles

    def update_streak(self) -> Tuple[int, int]:
        """Recompute streak and persist it; longest_streak only ever grows."""
        streak = compute_streak(day_summaries(self.logbook))
        profile = self.profiles.get()
        profile.streak = streak
        profile.longest_streak = max(profile.longest_streak, streak)
        self.profiles.save(profile)
        logger.debug(f"Streak updated: {streak} (longest {profile.longest_streak})")
        return profile.streak, profile.longest_streak
