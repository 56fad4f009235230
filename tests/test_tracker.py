from freezegun import freeze_time

from iman.core import keys
from iman.core.logs import FUTURE_DAY, LOCKED, PRAYER_NAMES, PrayerStatus
from iman.core.points import POINTS


@freeze_time("2026-03-10 13:00:00")
def test_mark_prayer_on_time_awards_points(tracker):
    result = tracker.mark_prayer("dhuhr", scheduled_time="12:45")
    assert result.applied
    assert result.status == PrayerStatus.ONTIME
    assert tracker.get_profile().total_points == POINTS["PRAYER_ONTIME"]
    entry = tracker.get_prayer_log().prayers["dhuhr"]
    assert entry.timestamp is not None


@freeze_time("2026-03-10 13:00:00")
def test_mark_twice_toggles_back(tracker):
    tracker.mark_prayer("dhuhr", scheduled_time="12:45")
    result = tracker.mark_prayer("dhuhr", scheduled_time="12:45")
    assert result.applied and result.status == PrayerStatus.NONE
    assert result.previous == PrayerStatus.ONTIME
    assert tracker.get_prayer_log().prayers["dhuhr"].timestamp is None
    assert tracker.get_profile().total_points == 0


@freeze_time("2026-03-10 12:00:00")
def test_locked_mark_has_no_side_effect(tracker):
    result = tracker.mark_prayer("asr", scheduled_time="15:45")
    assert not result.applied
    assert result.reason == LOCKED
    assert not tracker.store.exists(keys.prayer_log_key("2026-03-10"))
    assert tracker.get_profile().total_points == 0


@freeze_time("2026-03-10 12:00:00")
def test_future_day_is_rejected(tracker):
    assert tracker.mark_prayer("fajr", "2026-03-11").reason == FUTURE_DAY
    log = tracker.set_habit("quran", True, "2026-03-11")
    assert log.quran is False
    assert not tracker.store.exists(keys.habit_log_key("2026-03-11"))


@freeze_time("2026-03-10 12:00:00")
def test_recalculate_is_idempotent(tracker):
    tracker.mark_prayer("fajr", "2026-03-09")
    tracker.set_habit("fasting", True, "2026-03-09")
    first = tracker.recalculate_total_points().total_points
    second = tracker.recalculate_total_points().total_points
    assert first == second == POINTS["PRAYER_LATE"] + POINTS["FASTING"]


@freeze_time("2026-03-10 20:00:00")
def test_streak_counts_complete_days_and_longest_is_kept(tracker):
    for day in ("2026-03-07", "2026-03-08", "2026-03-09"):
        for prayer in PRAYER_NAMES:
            tracker.mark_prayer(prayer, day)
    profile = tracker.get_profile()
    assert (profile.streak, profile.longest_streak) == (3, 3)

    # unmarking one prayer yesterday breaks the chain
    tracker.mark_prayer("fajr", "2026-03-09")
    profile = tracker.get_profile()
    assert (profile.streak, profile.longest_streak) == (0, 3)


@freeze_time("2026-03-10 20:00:00")
def test_complete_today_extends_streak(tracker):
    for prayer in PRAYER_NAMES:
        tracker.mark_prayer(prayer, "2026-03-09")
    assert tracker.get_profile().streak == 1
    for prayer in PRAYER_NAMES:
        tracker.set_prayer_status(prayer, PrayerStatus.LATE)
    assert tracker.get_profile().streak == 2


@freeze_time("2026-03-10 20:00:00")
def test_missed_prayer_does_not_count(tracker):
    for prayer in PRAYER_NAMES:
        tracker.mark_prayer(prayer, "2026-03-09")
    tracker.set_prayer_status("isha", PrayerStatus.MISSED, "2026-03-09")
    assert tracker.get_profile().streak == 0
    assert tracker.get_profile().total_points == 4 * POINTS["PRAYER_LATE"]


@freeze_time("2026-03-10 12:00:00")
def test_habit_toggle_symmetry(tracker):
    tracker.toggle_habit("charity")
    assert tracker.get_profile().total_points == POINTS["CHARITY"]
    tracker.toggle_habit("charity")
    assert tracker.get_profile().total_points == 0
    assert tracker.get_habit_log().charity is False


@freeze_time("2026-03-10 12:00:00")
def test_set_habit_log_updates_several_flags(tracker):
    log = tracker.set_habit_log("2026-03-10", {"quran": True, "dua": True})
    assert log.completed == 2
    assert tracker.get_profile().total_points == POINTS["QURAN"] + POINTS["DUA"]


def test_reload_picks_up_records_written_underneath(tracker):
    tracker.store.set(keys.habit_log_key("2026-01-05"), {"date": "2026-01-05", "fasting": True})
    profile = tracker.reload()
    assert profile.total_points == POINTS["FASTING"]


def test_reset_keeps_presentation_flags(tracker):
    tracker.store.set("ui:theme", "dark")
    tracker.store.set("profile_photo", "data:")
    tracker.award_once("hadith", "1", 3)
    removed = tracker.reset_all()
    assert removed >= 2
    assert tracker.store.get("ui:theme") == "dark"
    assert tracker.store.get("profile_photo") == "data:"
    assert not tracker.store.exists(keys.PROFILE)
    assert tracker.get_profile().total_points == 0


def test_profile_update_ignores_engine_fields(tracker):
    joined = tracker.get_profile().joined_at
    profile = tracker.update_profile({"name": "Yusuf", "total_points": 9999, "joined_at": "2000-01-01"})
    assert profile.name == "Yusuf"
    assert profile.total_points == 0
    assert tracker.get_profile().joined_at == joined


@freeze_time("2026-03-10 13:00:00")
def test_actions_are_reported_to_analytics(tracker, analytics):
    tracker.mark_prayer("dhuhr")
    tracker.toggle_habit("quran")
    assert analytics.actions() == ["prayer_marked", "habit_toggled"]


def test_corrupted_log_reads_as_default_day(tracker):
    from iman.core.db import session_scope
    from iman.core.models import Record

    with session_scope() as session:
        session.add(Record(key=keys.prayer_log_key("2026-02-01"), value="[broken"))
    log = tracker.get_prayer_log("2026-02-01")
    assert log.completed == 0
    assert tracker.reload().total_points == 0
    assert tracker.store.get_raw(keys.prayer_log_key("2026-02-01")) == "[broken"
