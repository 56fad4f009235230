from datetime import date, datetime

from iman.core.logs import (
    FUTURE_DAY,
    LOCKED,
    RETROACTIVE_ONTIME,
    PrayerStatus,
    resolve_manual_status,
    resolve_smart_mark,
)

NOW = datetime(2026, 3, 10, 13, 0)
TODAY = NOW.date()
YESTERDAY = date(2026, 3, 9)
TOMORROW = date(2026, 3, 11)


def test_smart_mark_inside_window_is_ontime():
    assert resolve_smart_mark(PrayerStatus.NONE, TODAY, "12:30", NOW) == (PrayerStatus.ONTIME, None)


def test_smart_mark_window_boundary():
    at_30 = datetime(2026, 3, 10, 13, 0)
    at_31 = datetime(2026, 3, 10, 13, 1)
    assert resolve_smart_mark(PrayerStatus.NONE, TODAY, "12:30", at_30)[0] == PrayerStatus.ONTIME
    assert resolve_smart_mark(PrayerStatus.NONE, TODAY, "12:30", at_31)[0] == PrayerStatus.LATE


def test_smart_mark_before_prayer_time_is_locked():
    assert resolve_smart_mark(PrayerStatus.NONE, TODAY, "15:45", NOW) == (None, LOCKED)


def test_smart_mark_unknown_time_counts_as_ontime():
    assert resolve_smart_mark(PrayerStatus.NONE, TODAY, None, NOW) == (PrayerStatus.ONTIME, None)


def test_smart_mark_toggles_prayed_entry_off():
    assert resolve_smart_mark(PrayerStatus.LATE, TODAY, "12:30", NOW) == (PrayerStatus.NONE, None)
    assert resolve_smart_mark(PrayerStatus.ONTIME, YESTERDAY, None, NOW) == (PrayerStatus.NONE, None)


def test_smart_mark_past_day_is_late_and_future_day_rejected():
    assert resolve_smart_mark(PrayerStatus.NONE, YESTERDAY, "12:30", NOW) == (PrayerStatus.LATE, None)
    assert resolve_smart_mark(PrayerStatus.MISSED, YESTERDAY, None, NOW) == (PrayerStatus.LATE, None)
    assert resolve_smart_mark(PrayerStatus.NONE, TOMORROW, None, NOW) == (None, FUTURE_DAY)


def test_manual_ontime_on_past_day_is_rejected():
    assert resolve_manual_status(PrayerStatus.NONE, PrayerStatus.ONTIME, YESTERDAY, None, NOW) == (
        None, RETROACTIVE_ONTIME)
    assert resolve_manual_status(PrayerStatus.NONE, PrayerStatus.LATE, YESTERDAY, None, NOW) == (
        PrayerStatus.LATE, None)


def test_manual_same_status_clears():
    assert resolve_manual_status(PrayerStatus.LATE, PrayerStatus.LATE, TODAY, "12:30", NOW) == (
        PrayerStatus.NONE, None)


def test_manual_time_gate_applies_to_fresh_entries_only():
    assert resolve_manual_status(PrayerStatus.NONE, PrayerStatus.LATE, TODAY, "15:45", NOW) == (None, LOCKED)
    # missed may be recorded before the prayer time
    assert resolve_manual_status(PrayerStatus.NONE, PrayerStatus.MISSED, TODAY, "15:45", NOW) == (
        PrayerStatus.MISSED, None)
    # overriding an existing mark is not gated
    assert resolve_manual_status(PrayerStatus.MISSED, PrayerStatus.LATE, TODAY, "15:45", NOW) == (
        PrayerStatus.LATE, None)


def test_manual_future_day_rejected():
    assert resolve_manual_status(PrayerStatus.NONE, PrayerStatus.MISSED, TOMORROW, None, NOW) == (
        None, FUTURE_DAY)
