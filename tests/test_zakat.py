import pytest
from freezegun import freeze_time

from iman.core.points import POINTS
from iman.plugins.zakat.ledger import ZakatAssets, ZakatLedger


@pytest.fixture
def ledger(tracker):
    return ZakatLedger(tracker)


def test_nisab_defaults(ledger):
    assert ledger.nisab == 85 * 65


def test_set_assets_clamps_bad_values(ledger):
    snapshot = ledger.set_zakat_assets({"cash": "abc", "savings": -10, "gold_grams": 5})
    assert snapshot.cash == 0 and snapshot.savings == 0 and snapshot.gold_grams == 5
    assert ledger.get_zakat_assets() == snapshot


def test_zakat_formula_above_nisab(ledger):
    assets = {"cash": 5000, "savings": 1000, "gold_grams": 10, "silver_grams": 100,
              "investments": 0, "business": 0, "debts_owed_to_you": 200, "debts_you_owe": 700}
    result = ledger.calculate(assets)
    total = 5000 + 1000 + 10 * 65 + 100 * 0.83 + 200 - 700
    assert result["total_assets"] == pytest.approx(total)
    assert result["meets_nisab"] is True
    assert result["zakat_amount"] == round(total * 0.025, 2)


def test_below_nisab_owes_nothing(ledger):
    result = ledger.calculate({"cash": 1000})
    assert result["meets_nisab"] is False
    assert result["zakat_amount"] == 0


def test_exactly_nisab_meets_it(ledger):
    assert ledger.calculate({"cash": 5525})["meets_nisab"] is True


@freeze_time("2026-04-01 10:00:00")
def test_add_entry_saves_newest_first_and_rewards_once_per_day(ledger, tracker):
    first = ledger.add_zakat_entry({"cash": 6000})
    second = ledger.add_zakat_entry({"cash": 7000})
    history = ledger.get_zakat_history()
    assert [e.id for e in history] == [second.id, first.id]
    assert first.date == "2026-04-01"
    assert tracker.get_profile().total_points == POINTS["ZAKAT"]


def test_add_entry_rejects_non_positive_total(ledger):
    assert ledger.add_zakat_entry({"cash": 100, "debts_you_owe": 500}) is None
    assert ledger.get_zakat_history() == []


def test_add_entry_uses_saved_snapshot_by_default(ledger):
    ledger.set_zakat_assets(ZakatAssets(cash=6000))
    entry = ledger.add_zakat_entry()
    assert entry.total_assets == 6000
    assert entry.zakat_amount == 150.0


@freeze_time("2026-04-01 10:00:00")
def test_mark_paid_is_one_way(ledger):
    entry = ledger.add_zakat_entry({"cash": 10000})
    assert ledger.mark_zakat_paid(entry.id) is True
    assert ledger.mark_zakat_paid(entry.id) is False
    assert ledger.mark_zakat_paid("missing") is False
    assert ledger.paid_total(2026) == 250.0
    assert ledger.paid_total(2025) == 0


def test_prices_come_from_config(tracker):
    ledger = ZakatLedger.from_config(tracker, {"gold_price_per_gram": 100, "nisab_gold_grams": 85})
    assert ledger.nisab == 8500
