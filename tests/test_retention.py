from freezegun import freeze_time

from iman.core import keys
from iman.core.logs import PRAYER_NAMES
from iman.core.points import POINTS
from iman.plugins.maintenance.retention import cleanup_old_logs
from iman.plugins.rewards.service import RewardService
from iman.plugins.stats import aggregation


def _complete_day(tracker, day):
    for prayer in PRAYER_NAMES:
        tracker.mark_prayer(prayer, day)


@freeze_time("2026-06-30 21:00:00")
def test_cleanup_archives_old_days_and_keeps_points(tracker):
    _complete_day(tracker, "2026-03-01")
    tracker.set_habit("fasting", True, "2026-03-01")
    tracker.set_habit("quran", True, "2026-06-29")
    before = tracker.get_profile().total_points

    result = cleanup_old_logs(tracker, 90)

    assert result.cutoff == "2026-04-01"
    assert result.days_archived == 1
    assert not tracker.store.exists(keys.prayer_log_key("2026-03-01"))
    assert not tracker.store.exists(keys.habit_log_key("2026-03-01"))
    assert tracker.store.exists(keys.habit_log_key("2026-06-29"))
    assert tracker.get_profile().total_points == before
    archived = aggregation.day_stats(tracker.logbook, "2026-03-01")
    assert archived.archived and archived.points == 5 * POINTS["PRAYER_LATE"] + POINTS["FASTING"]


@freeze_time("2026-06-30 21:00:00")
def test_streak_survives_cleanup(tracker):
    for day in ("2026-06-27", "2026-06-28", "2026-06-29"):
        _complete_day(tracker, day)
    cleanup_old_logs(tracker, 2)
    assert set(tracker.logbook.all_prayer_logs()) == {"2026-06-28", "2026-06-29"}
    assert "2026-06-27" in tracker.logbook.archived_days()
    assert tracker.update_streak() == (3, 3)


@freeze_time("2026-06-30 21:00:00")
def test_cleanup_drops_old_sessions_but_not_their_points(tracker):
    rewards = RewardService(tracker)
    with freeze_time("2026-01-10 20:00:00"):
        rewards.add_ibadah_session(20)
    rewards.add_ibadah_session(10)
    total = tracker.get_profile().total_points

    result = cleanup_old_logs(tracker, 90)

    assert result.sessions_removed == 1
    assert rewards.total_ibadah_minutes() == 10
    assert tracker.recalculate_total_points().total_points == total == 30 * POINTS["IBADAH_MINUTE"]


@freeze_time("2026-06-30 21:00:00")
def test_cleanup_is_a_no_op_on_recent_data(tracker):
    tracker.set_habit("dua", True)
    result = cleanup_old_logs(tracker)
    assert result.days_archived == 0
    assert tracker.logbook.archived_days() == {}


@freeze_time("2026-06-30 21:00:00")
def test_restored_log_with_content_supersedes_archived_summary(tracker):
    _complete_day(tracker, "2026-03-01")
    cleanup_old_logs(tracker, 90)
    tracker.store.set(keys.prayer_log_key("2026-03-01"), {
        "date": "2026-03-01",
        "prayers": {"fajr": {"status": "late", "timestamp": "2026-03-01T08:00:00"}},
    })
    assert tracker.reload().total_points == POINTS["PRAYER_LATE"]
    stats = aggregation.day_stats(tracker.logbook, "2026-03-01")
    assert not stats.archived and stats.points == POINTS["PRAYER_LATE"]


@freeze_time("2026-06-30 21:00:00")
def test_empty_restored_log_does_not_hide_archived_summary(tracker):
    _complete_day(tracker, "2026-03-01")
    cleanup_old_logs(tracker, 90)
    tracker.store.set(keys.prayer_log_key("2026-03-01"), {"date": "2026-03-01", "prayers": {}})
    tracker.store.set(keys.habit_log_key("2026-03-01"), {"date": "2026-03-01"})

    assert tracker.reload().total_points == 5 * POINTS["PRAYER_LATE"]
    assert aggregation.day_stats(tracker.logbook, "2026-03-01").archived

    # pruning the empty logs again keeps the original summary
    cleanup_old_logs(tracker, 90)
    assert tracker.logbook.archived_days()["2026-03-01"].points == 5 * POINTS["PRAYER_LATE"]


@freeze_time("2026-06-30 21:00:00")
def test_archived_day_is_read_only(tracker):
    _complete_day(tracker, "2026-01-05")
    cleanup_old_logs(tracker, 90)
    total = tracker.get_profile().total_points
    assert total == 5 * POINTS["PRAYER_LATE"]

    tracker.toggle_habit("quran", "2026-01-05")
    tracker.toggle_habit("quran", "2026-01-05")
    tracker.set_habit_log("2026-01-05", {"fasting": True})
    result = tracker.mark_prayer("fajr", "2026-01-05")

    assert not result.applied and result.reason == "archived_day"
    assert not tracker.store.exists(keys.habit_log_key("2026-01-05"))
    assert not tracker.store.exists(keys.prayer_log_key("2026-01-05"))
    assert tracker.get_profile().total_points == total
    assert aggregation.day_stats(tracker.logbook, "2026-01-05").points == total


@freeze_time("2026-06-30 21:00:00")
def test_archived_day_keeps_streak_after_edit_attempt(tracker):
    for day in ("2026-06-27", "2026-06-28", "2026-06-29"):
        _complete_day(tracker, day)
    cleanup_old_logs(tracker, 2)
    tracker.toggle_habit("dua", "2026-06-27")
    tracker.set_prayer_status("fajr", "missed", "2026-06-27")
    assert tracker.update_streak() == (3, 3)
