"""
Per-day prayer and habit logs, the default-day factory, and the prayer status rules.

Log records are closed dataclasses: from_dict() always builds a complete day, filling
anything missing or malformed from the default day, so partial records never leak out.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from iman.core import clock, keys
from iman.core.store import RecordStore

logger = logging.getLogger(__name__)

ONTIME_WINDOW_MINUTES = 30


class PrayerStatus(str, Enum):
    NONE = "none"
    ONTIME = "ontime"
    LATE = "late"
    MISSED = "missed"

    @classmethod
    def parse(cls, value: Any) -> "PrayerStatus":
        try:
            return cls(value)
        except ValueError:
            return cls.NONE


PRAYER_NAMES: Tuple[str, ...] = ("fajr", "dhuhr", "asr", "maghrib", "isha")

HABIT_KEYS: Tuple[str, ...] = (
    "quran",
    "azkar_morning",
    "azkar_evening",
    "charity",
    "fasting",
    "dua",
)

PRAYED = (PrayerStatus.ONTIME, PrayerStatus.LATE)


def check_prayer(prayer: str) -> str:
    if prayer not in PRAYER_NAMES:
        raise ValueError(f"Unknown prayer: {prayer!r}")
    return prayer


def check_habit(habit: str) -> str:
    if habit not in HABIT_KEYS:
        raise ValueError(f"Unknown habit: {habit!r}")
    return habit


@dataclass
class PrayerEntry:
    status: PrayerStatus = PrayerStatus.NONE
    timestamp: Optional[str] = None

    @property
    def prayed(self) -> bool:
        return self.status in PRAYED

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status.value, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: Any) -> "PrayerEntry":
        if not isinstance(data, dict):
            return cls()
        status = PrayerStatus.parse(data.get("status"))
        timestamp = data.get("timestamp") if status != PrayerStatus.NONE else None
        return cls(status=status, timestamp=timestamp if isinstance(timestamp, str) else None)


@dataclass
class PrayerLog:
    date: str
    prayers: Dict[str, PrayerEntry] = field(default_factory=dict)

    def __post_init__(self):
        for name in PRAYER_NAMES:
            self.prayers.setdefault(name, PrayerEntry())

    @classmethod
    def default(cls, day_key: str) -> "PrayerLog":
        return cls(date=day_key)

    @property
    def completed(self) -> int:
        return sum(1 for name in PRAYER_NAMES if self.prayers[name].prayed)

    @property
    def ontime(self) -> int:
        return sum(1 for name in PRAYER_NAMES if self.prayers[name].status == PrayerStatus.ONTIME)

    @property
    def all_prayed(self) -> bool:
        return self.completed == len(PRAYER_NAMES)

    @property
    def has_data(self) -> bool:
        return any(self.prayers[name].status != PrayerStatus.NONE for name in PRAYER_NAMES)

    def status_of(self, prayer: str) -> PrayerStatus:
        return self.prayers[check_prayer(prayer)].status

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "prayers": {name: self.prayers[name].to_dict() for name in PRAYER_NAMES},
        }

    @classmethod
    def from_dict(cls, data: Any, day_key: str) -> "PrayerLog":
        prayers = data.get("prayers") if isinstance(data, dict) else None
        if not isinstance(prayers, dict):
            prayers = {}
        return cls(
            date=day_key,
            prayers={name: PrayerEntry.from_dict(prayers.get(name)) for name in PRAYER_NAMES},
        )


@dataclass
class HabitLog:
    date: str
    quran: bool = False
    azkar_morning: bool = False
    azkar_evening: bool = False
    charity: bool = False
    fasting: bool = False
    dua: bool = False

    @classmethod
    def default(cls, day_key: str) -> "HabitLog":
        return cls(date=day_key)

    def get(self, habit: str) -> bool:
        return bool(getattr(self, check_habit(habit)))

    def set(self, habit: str, value: bool) -> None:
        setattr(self, check_habit(habit), bool(value))

    @property
    def completed(self) -> int:
        return sum(1 for habit in HABIT_KEYS if getattr(self, habit))

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"date": self.date}
        data.update({habit: bool(getattr(self, habit)) for habit in HABIT_KEYS})
        return data

    @classmethod
    def from_dict(cls, data: Any, day_key: str) -> "HabitLog":
        if not isinstance(data, dict):
            data = {}
        return cls(date=day_key, **{habit: data.get(habit) is True for habit in HABIT_KEYS})


@dataclass
class DaySummary:
    """What survives of a day after retention cleanup."""
    points: int = 0
    prayers_completed: int = 0
    prayers_ontime: int = 0
    habits_completed: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "points": self.points,
            "prayers_completed": self.prayers_completed,
            "prayers_ontime": self.prayers_ontime,
            "habits_completed": self.habits_completed,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "DaySummary":
        if not isinstance(data, dict):
            return cls()

        def _int(name: str) -> int:
            try:
                return max(0, int(data.get(name, 0)))
            except (TypeError, ValueError):
                return 0

        return cls(
            points=_int("points"),
            prayers_completed=_int("prayers_completed"),
            prayers_ontime=_int("prayers_ontime"),
            habits_completed=_int("habits_completed"),
        )


class LogBook:
    """Prayer/habit day records in the record store. Logs are created lazily and only persisted on save."""

    def __init__(self, store: RecordStore):
        self.store = store

    # ---- prayer logs ----

    def get_prayer_log(self, day: clock.DateLike = None) -> PrayerLog:
        day_key = clock.date_key(day)
        return PrayerLog.from_dict(self.store.get(keys.prayer_log_key(day_key), None), day_key)

    def save_prayer_log(self, log: PrayerLog) -> PrayerLog:
        self.store.set(keys.prayer_log_key(log.date), log.to_dict())
        return log

    def all_prayer_logs(self) -> Dict[str, PrayerLog]:
        logs = {}
        for key, data in self.store.items(keys.PRAYER_LOG_PREFIX):
            day_key = key[len(keys.PRAYER_LOG_PREFIX):]
            if not _valid_day_key(day_key):
                logger.warning(f"Skipping prayer log with bad date key: {key!r}")
                continue
            logs[day_key] = PrayerLog.from_dict(data, day_key)
        return logs

    # ---- habit logs ----

    def get_habit_log(self, day: clock.DateLike = None) -> HabitLog:
        day_key = clock.date_key(day)
        return HabitLog.from_dict(self.store.get(keys.habit_log_key(day_key), None), day_key)

    def save_habit_log(self, log: HabitLog) -> HabitLog:
        self.store.set(keys.habit_log_key(log.date), log.to_dict())
        return log

    def all_habit_logs(self) -> Dict[str, HabitLog]:
        logs = {}
        for key, data in self.store.items(keys.HABIT_LOG_PREFIX):
            day_key = key[len(keys.HABIT_LOG_PREFIX):]
            if not _valid_day_key(day_key):
                logger.warning(f"Skipping habit log with bad date key: {key!r}")
                continue
            logs[day_key] = HabitLog.from_dict(data, day_key)
        return logs

    # ---- archived summaries ----

    def archived_days(self) -> Dict[str, DaySummary]:
        data = self.store.get(keys.ARCHIVED_DAYS, {})
        if not isinstance(data, dict):
            return {}
        return {k: DaySummary.from_dict(v) for k, v in data.items() if _valid_day_key(k)}

    def is_archived(self, day: clock.DateLike) -> bool:
        return clock.date_key(day) in self.archived_days()

    def save_archived_days(self, days: Dict[str, DaySummary]) -> None:
        self.store.set(keys.ARCHIVED_DAYS, {k: days[k].to_dict() for k in sorted(days)})

    def delete_day(self, day_key: str) -> None:
        self.store.delete(keys.prayer_log_key(day_key))
        self.store.delete(keys.habit_log_key(day_key))


def _valid_day_key(day_key: str) -> bool:
    try:
        date.fromisoformat(day_key)
        return True
    except ValueError:
        return False


# ---- status transition rules ----

@dataclass
class MarkResult:
    """Outcome of a prayer mark attempt. Rejections are normal results, not errors."""
    applied: bool
    prayer: str
    date: str
    status: PrayerStatus
    previous: PrayerStatus
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "applied": self.applied,
            "prayer": self.prayer,
            "date": self.date,
            "status": self.status.value,
            "previous": self.previous.value,
            "reason": self.reason,
        }


LOCKED = "locked"
FUTURE_DAY = "future_day"
RETROACTIVE_ONTIME = "retroactive_ontime"
ARCHIVED_DAY = "archived_day"


def resolve_smart_mark(
    current: PrayerStatus,
    day: date,
    scheduled_time: Optional[str],
    current_time: Optional[datetime] = None,
) -> Tuple[Optional[PrayerStatus], Optional[str]]:
    """Status produced by the one-tap mark. Returns (new_status, None) or (None, reason)."""
    current_time = current_time or clock.now()
    today = current_time.date()
    if day > today:
        return None, FUTURE_DAY
    if current in PRAYED:
        return PrayerStatus.NONE, None
    if day < today:
        return PrayerStatus.LATE, None
    minutes = clock.minutes_since(scheduled_time, current_time)
    if minutes is not None and minutes < 0:
        return None, LOCKED
    if minutes is not None and minutes > ONTIME_WINDOW_MINUTES:
        return PrayerStatus.LATE, None
    return PrayerStatus.ONTIME, None


def resolve_manual_status(
    current: PrayerStatus,
    requested: PrayerStatus,
    day: date,
    scheduled_time: Optional[str],
    current_time: Optional[datetime] = None,
) -> Tuple[Optional[PrayerStatus], Optional[str]]:
    """Status produced by an explicit status pick. Returns (new_status, None) or (None, reason)."""
    current_time = current_time or clock.now()
    today = current_time.date()
    if day > today:
        return None, FUTURE_DAY
    if day < today and requested == PrayerStatus.ONTIME:
        return None, RETROACTIVE_ONTIME
    if requested == current or requested == PrayerStatus.NONE:
        return PrayerStatus.NONE, None
    if current != PrayerStatus.NONE:
        # overriding an existing mark is a plain overwrite
        return requested, None
    if day == today and requested != PrayerStatus.MISSED:
        minutes = clock.minutes_since(scheduled_time, current_time)
        if minutes is not None and minutes < 0:
            return None, LOCKED
    return requested, None
