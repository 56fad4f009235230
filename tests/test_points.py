import pytest

from iman.core.points import (
    LEVELS,
    MAX_DAY_POINTS,
    RewardKind,
    get_current_level,
    get_next_level,
    level_progress,
)


@pytest.mark.parametrize("points,name", [
    (0, "Talib"),
    (199, "Talib"),
    (200, "Muslim"),
    (749, "Muslim"),
    (750, "Mu'min"),
    (149999, "Sheikh"),
    (150000, "Imam"),
])
def test_level_boundaries(points, name):
    assert get_current_level(points).name == name


def test_level_thresholds_strictly_increase_from_zero():
    thresholds = [level.min_points for level in LEVELS]
    assert thresholds[0] == 0
    assert thresholds == sorted(set(thresholds))


def test_next_level_and_progress():
    assert get_next_level(0).name == "Muslim"
    assert level_progress(100) == 50.0
    assert get_next_level(150000) is None
    assert level_progress(200000) == 100.0


def test_max_day_points():
    assert MAX_DAY_POINTS == 5 * 15 + 5 + 3 + 3 + 8 + 20 + 3


def test_award_once_pays_a_single_time(tracker):
    assert tracker.award_once(RewardKind.HADITH, "nawawi-1", 3) is True
    assert tracker.award_once(RewardKind.HADITH, "nawawi-1", 3) is False
    assert tracker.get_profile().total_points == 3
    # the ledger is part of the full recomputation
    assert tracker.recalculate_total_points().total_points == 3


def test_negative_award_is_clamped(tracker):
    assert tracker.award_once(RewardKind.STORY, "adam", -50) is True
    assert tracker.get_profile().total_points == 0


def test_extra_points_without_identifier_always_pay(tracker):
    assert tracker.add_extra_points(5)
    assert tracker.add_extra_points(5)
    assert tracker.get_profile().total_points == 10


def test_level_follows_total(tracker):
    tracker.add_extra_points(750)
    assert tracker.get_profile().level == "Mu'min"
