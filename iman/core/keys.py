"""
Record-store key schema. Everything here is owned by the core and removed by a full reset;
presentation flags (theme, onboarding) live under UI_PREFIX and are left alone.
"""

PROFILE = "profile"
PRAYER_LOG_PREFIX = "prayer_log:"
HABIT_LOG_PREFIX = "habit_log:"
ZAKAT_ASSETS = "zakat:assets"
ZAKAT_HISTORY = "zakat:history"
QURAN_BOOKMARKS = "bookmarks:quran"
FAVORITES_PREFIX = "favorites:"
REWARDED_PREFIX = "rewarded:"
IBADAH_SESSIONS = "ibadah:sessions"
ARCHIVED_DAYS = "archive:days"
MEMORIZATION = "memorization:surahs"
PRAYER_TIMES_PREFIX = "prayer_times:"

UI_PREFIX = "ui:"

CORE_KEYS = (PROFILE,)

CORE_PREFIXES = (
    PRAYER_LOG_PREFIX,
    HABIT_LOG_PREFIX,
    "zakat:",
    "bookmarks:",
    FAVORITES_PREFIX,
    REWARDED_PREFIX,
    "ibadah:",
    "memorization:",
    "archive:",
    PRAYER_TIMES_PREFIX,
)


def prayer_log_key(day_key: str) -> str:
    return f"{PRAYER_LOG_PREFIX}{day_key}"


def habit_log_key(day_key: str) -> str:
    return f"{HABIT_LOG_PREFIX}{day_key}"


def favorites_key(kind: str) -> str:
    return f"{FAVORITES_PREFIX}{kind}"


def rewarded_key(kind: str) -> str:
    return f"{REWARDED_PREFIX}{kind}"


def prayer_times_key(day_key: str) -> str:
    return f"{PRAYER_TIMES_PREFIX}{day_key}"


def is_core_key(key: str) -> bool:
    return key in CORE_KEYS or any(key.startswith(p) for p in CORE_PREFIXES)
