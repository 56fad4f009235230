"""
Points table, level ladder, and the points ledger.

Log-based points (prayers, habits) are never added or subtracted incrementally: logs can be
toggled back and forth, so total_points is always rebuilt from the stored logs by
recalculate_total_points(). One-off rewards (reading a hadith, a timer session, ...) are not
day logs; they go through award_once(), which records the identifier with the amount paid in a
per-kind "rewarded" ledger. The ledger is part of the recomputation, so both paths agree.
"""
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from iman.core import keys
from iman.core.logs import HABIT_KEYS, PRAYER_NAMES, DaySummary, HabitLog, LogBook, PrayerLog, PrayerStatus
from iman.core.profile import ProfileRepository, UserProfile
from iman.core.store import RecordStore

logger = logging.getLogger(__name__)

POINTS: Dict[str, int] = {
    "PRAYER_ONTIME": 15,
    "PRAYER_LATE": 7,
    "QURAN": 5,
    "HADITH": 3,
    "AZKAR": 3,
    "CHARITY": 8,
    "FASTING": 20,
    "NAMES_QUIZ": 5,
    "DUA": 3,
    "TAFSIR": 4,
    "DAILY_BONUS": 25,
    "IBADAH_MINUTE": 2,
    "MEMORIZE_REPEAT": 5,
    "QUIZ_CORRECT": 2,
    "ZAKAT": 10,
    "SURAH_READ": 5,
    "SEERAH_CHAPTER": 10,
}

HABIT_POINTS: Dict[str, int] = {
    "quran": POINTS["QURAN"],
    "azkar_morning": POINTS["AZKAR"],
    "azkar_evening": POINTS["AZKAR"],
    "charity": POINTS["CHARITY"],
    "fasting": POINTS["FASTING"],
    "dua": POINTS["DUA"],
}

PRAYER_POINTS: Dict[PrayerStatus, int] = {
    PrayerStatus.ONTIME: POINTS["PRAYER_ONTIME"],
    PrayerStatus.LATE: POINTS["PRAYER_LATE"],
}

# Best possible day from logs alone
MAX_DAY_POINTS = len(PRAYER_NAMES) * POINTS["PRAYER_ONTIME"] + sum(HABIT_POINTS[h] for h in HABIT_KEYS)


@dataclass(frozen=True)
class Level:
    name: str
    icon: str
    min_points: int

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "icon": self.icon, "min_points": self.min_points}


LEVELS: List[Level] = [
    Level("Talib", "🌱", 0),
    Level("Muslim", "☪️", 200),
    Level("Mu'min", "📿", 750),
    Level("Muhsin", "⭐", 2000),
    Level("Muttaqi", "🌙", 5000),
    Level("Salih", "🕌", 10000),
    Level("Hafiz", "📖", 20000),
    Level("Mujtahid", "🔥", 40000),
    Level("Sheikh", "👑", 75000),
    Level("Imam", "✨", 150000),
]


def get_current_level(points: int) -> Level:
    """Highest level whose threshold is <= points (reaching min_points exactly counts)."""
    current = LEVELS[0]
    for level in LEVELS:
        if points >= level.min_points:
            current = level
        else:
            break
    return current


def get_next_level(points: int) -> Optional[Level]:
    for level in LEVELS:
        if level.min_points > points:
            return level
    return None


def level_progress(points: int) -> float:
    """Percent of the way from the current level to the next (100 at the top level)."""
    current = get_current_level(points)
    nxt = get_next_level(points)
    if nxt is None:
        return 100.0
    span = nxt.min_points - current.min_points
    return round((points - current.min_points) / span * 100, 1)


def prayer_log_points(log: PrayerLog) -> int:
    return sum(PRAYER_POINTS.get(log.prayers[name].status, 0) for name in PRAYER_NAMES)


def habit_log_points(log: HabitLog) -> int:
    return sum(HABIT_POINTS[habit] for habit in HABIT_KEYS if getattr(log, habit))


def day_points(prayer_log: PrayerLog, habit_log: HabitLog) -> int:
    return prayer_log_points(prayer_log) + habit_log_points(habit_log)


def summarize_day(prayer_log: PrayerLog, habit_log: HabitLog) -> DaySummary:
    return DaySummary(
        points=day_points(prayer_log, habit_log),
        prayers_completed=prayer_log.completed,
        prayers_ontime=prayer_log.ontime,
        habits_completed=habit_log.completed,
    )


def has_content(prayer_log: PrayerLog, habit_log: HabitLog) -> bool:
    return prayer_log.has_data or habit_log.completed > 0


def resolve_day(
    prayer_log: PrayerLog,
    habit_log: HabitLog,
    archived: Optional[DaySummary] = None,
) -> Tuple[DaySummary, bool]:
    """The summary a day counts with, and whether it came from the archive.

    Live logs win only when they carry content; an empty log never hides an archived day.
    Points, streak and per-day stats all go through here.
    """
    if archived is not None and not has_content(prayer_log, habit_log):
        return archived, True
    return summarize_day(prayer_log, habit_log), False


def day_summaries(logbook: LogBook) -> Dict[str, DaySummary]:
    prayer_logs = logbook.all_prayer_logs()
    habit_logs = logbook.all_habit_logs()
    archived = logbook.archived_days()
    summaries = {}
    for day_key in set(prayer_logs) | set(habit_logs) | set(archived):
        summaries[day_key], _ = resolve_day(
            prayer_logs.get(day_key) or PrayerLog.default(day_key),
            habit_logs.get(day_key) or HabitLog.default(day_key),
            archived.get(day_key),
        )
    return summaries


class RewardKind(str, Enum):
    """One-off reward categories; each has its own persisted "already rewarded" ledger."""
    HADITH = "hadith"
    SURAH = "surah"
    SEERAH = "seerah"
    STORY = "story"
    NAME = "name"
    QUIZ = "quiz"
    ZAKAT = "zakat"
    IBADAH = "ibadah"
    MEMORIZE = "memorize"
    DAILY_BONUS = "daily_bonus"
    EXTRA = "extra"


def _clamp_points(value: Any) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0


class PointsEngine:
    """Owns every write to total_points."""

    def __init__(self, store: RecordStore, logbook: LogBook, profiles: ProfileRepository):
        self.store = store
        self.logbook = logbook
        self.profiles = profiles

    # ---- reward ledgers ----

    def ledger(self, kind: RewardKind) -> Dict[str, int]:
        data = self.store.get(keys.rewarded_key(RewardKind(kind).value), {})
        if not isinstance(data, dict):
            return {}
        return {str(k): _clamp_points(v) for k, v in data.items()}

    def is_rewarded(self, kind: RewardKind, identifier: Any) -> bool:
        return str(identifier) in self.ledger(kind)

    def ledger_total(self) -> int:
        return sum(sum(self.ledger(kind).values()) for kind in RewardKind)

    def award_once(self, kind: RewardKind, identifier: Any, points: int) -> bool:
        """Pay points for (kind, identifier) unless it was already paid. Returns True if paid now."""
        kind = RewardKind(kind)
        identifier = str(identifier)
        points = _clamp_points(points)
        ledger = self.ledger(kind)
        if identifier in ledger:
            logger.debug(f"Reward {kind.value}:{identifier} already paid")
            return False
        ledger[identifier] = points
        self.store.set(keys.rewarded_key(kind.value), ledger)
        self._add_to_total(points)
        logger.info(f"Awarded {points} points for {kind.value}:{identifier}")
        return True

    def add_extra_points(
        self,
        points: int,
        kind: RewardKind = RewardKind.EXTRA,
        identifier: Optional[str] = None,
    ) -> bool:
        if identifier is None:
            identifier = uuid.uuid4().hex
        return self.award_once(kind, identifier, points)

    def _add_to_total(self, points: int) -> UserProfile:
        profile = self.profiles.get()
        profile.total_points = max(0, profile.total_points + points)
        profile.level = get_current_level(profile.total_points).name
        return self.profiles.save(profile)

    # ---- full recomputation ----

    def compute_total(self) -> int:
        """total_points as a pure function of stored logs, archived days and reward ledgers."""
        total = sum(summary.points for summary in day_summaries(self.logbook).values())
        total += self.ledger_total()
        return total

    def recalculate_total_points(self) -> UserProfile:
        total = self.compute_total()
        profile = self.profiles.get()
        if profile.total_points != total:
            logger.debug(f"Recalculated total points: {profile.total_points} -> {total}")
        profile.total_points = total
        profile.level = get_current_level(total).name
        return self.profiles.save(profile)
